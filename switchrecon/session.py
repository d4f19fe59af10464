"""One ingestion session: a reconciler per channel, projection and output."""

import logging
import threading
import time
from typing import Callable

from switchrecon.config import Config
from switchrecon.mappers import project
from switchrecon.models import Channel, NormalizedTransaction, TransactionPair
from switchrecon.reconcilers import FixedFieldReconciler, JsonReconciler, RetentionPolicy
from switchrecon.sink import JsonLinesSink
from switchrecon.stats import ReconcileStats

logger = logging.getLogger(__name__)


class ReconcileSession:
    """Serializes all reconciler calls behind a single lock.

    Watchdog delivers file events on its observer thread while shutdown runs
    on the main thread; the lock keeps ``finish`` from interleaving with an
    in-flight ``ingest``.
    """

    def __init__(
        self,
        retention: RetentionPolicy | None = None,
        emit_orphan_responses: bool = False,
        sink: JsonLinesSink | None = None,
        stats: ReconcileStats | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.fixed_field = FixedFieldReconciler(retention, clock=clock)
        self.json = JsonReconciler(retention, emit_orphan_responses=emit_orphan_responses, clock=clock)
        self._sink = sink
        self._stats = stats or ReconcileStats()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config, sink: JsonLinesSink | None = None,
                    stats: ReconcileStats | None = None) -> "ReconcileSession":
        retention = RetentionPolicy(
            max_pending=config.max_pending,
            max_age_seconds=config.max_age_seconds,
        )
        return cls(
            retention=retention,
            emit_orphan_responses=config.emit_orphan_json_responses,
            sink=sink,
            stats=stats,
        )

    @property
    def stats(self) -> ReconcileStats:
        return self._stats

    def _reconciler(self, channel: Channel):
        return self.fixed_field if channel is Channel.FIXED_FIELD else self.json

    def _publish(self, pairs: list[TransactionPair]) -> list[NormalizedTransaction]:
        self._stats.record_pairs(pairs)
        transactions = [project(pair) for pair in pairs]
        if self._sink is not None:
            self._sink.emit(transactions)
        return transactions

    def ingest(self, channel: Channel | str, text: str) -> list[NormalizedTransaction]:
        """Buffer one chunk and publish whatever it completes."""
        channel = Channel(channel)
        with self._lock:
            reconciler = self._reconciler(channel)
            result = reconciler.process_chunk(text)
            self._stats.record_entries(channel, result.new_entry_count)

            pairs = reconciler.pair_incremental()
            evicted = reconciler.evict_expired()
            self._stats.record_evicted(len(evicted))
            pairs.extend(evicted)

            if pairs:
                logger.info("%s: %d new entries, %d transaction(s) completed",
                            channel.value, result.new_entry_count, len(pairs))
            return self._publish(pairs)

    def finish(self) -> list[NormalizedTransaction]:
        """Drain both channels; fixed-field results feed the JSON drain as context."""
        with self._lock:
            fixed_txs = self._publish(self.fixed_field.drain_all())
            json_txs = self._publish(self.json.drain_all(fixed_context=fixed_txs))
            logger.info("Drained %d fixed-field and %d JSON transaction(s)",
                        len(fixed_txs), len(json_txs))
            return fixed_txs + json_txs

    def reset(self) -> None:
        with self._lock:
            self.fixed_field.reset()
            self.json.reset()
