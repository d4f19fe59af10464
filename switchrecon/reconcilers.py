"""Stateful request/response pairing for the fixed-field and JSON channels.

Each reconciler instance owns its pending buffer; nothing is shared between
instances. Instances are not thread-safe: the owner serializes calls
(see ReconcileSession).

Candidate responses are always scanned in arrival order, so the earliest
buffered response wins among several carrying the same key.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from switchrecon import keys
from switchrecon.models import ChunkResult, Entry, TransactionPair
from switchrecon.tokenizers import tokenize_fixed_field, tokenize_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionPolicy:
    """Bounds on how long and how many entries may wait for a counterpart.

    ``None`` disables a bound; both are disabled by default.
    """
    max_pending: int | None = None
    max_age_seconds: float | None = None

    def __post_init__(self):
        if self.max_pending is not None and self.max_pending < 0:
            raise ValueError(f"max_pending must be >= 0, got {self.max_pending}")
        if self.max_age_seconds is not None and self.max_age_seconds < 0:
            raise ValueError(f"max_age_seconds must be >= 0, got {self.max_age_seconds}")

    @property
    def enabled(self) -> bool:
        return self.max_pending is not None or self.max_age_seconds is not None


def select_expired(entries: list[Entry], policy: RetentionPolicy, now: float) -> list[Entry]:
    """Entries (given oldest first) that violate *policy*, returned oldest first."""
    expired = []
    kept = []
    for entry in entries:
        if policy.max_age_seconds is not None and now - entry.received_at > policy.max_age_seconds:
            expired.append(entry)
        else:
            kept.append(entry)
    if policy.max_pending is not None and len(kept) > policy.max_pending:
        expired.extend(kept[:len(kept) - policy.max_pending])
    return sorted(expired, key=lambda e: e.sequence)


def _index_of(candidates: list[Entry], predicate: Callable[[Entry], bool]) -> int | None:
    for i, candidate in enumerate(candidates):
        if predicate(candidate):
            return i
    return None


class _PendingBuffer:
    """Arrival stamping and retention shared by both reconcilers."""

    def __init__(self, retention: RetentionPolicy | None = None, clock: Callable[[], float] = time.time):
        self._retention = retention or RetentionPolicy()
        self._clock = clock
        self._sequence = itertools.count(1)

    @property
    def retention(self) -> RetentionPolicy:
        return self._retention

    def _stamp(self, entries: Iterable[Entry]) -> None:
        now = self._clock()
        for entry in entries:
            entry.received_at = now
            entry.sequence = next(self._sequence)

    def _expired(self, pending: list[Entry], now: float | None) -> list[Entry]:
        if not self._retention.enabled or not pending:
            return []
        now = self._clock() if now is None else now
        return select_expired(sorted(pending, key=lambda e: e.sequence), self._retention, now)


# ---------------------------------------------------------------------------
# Fixed-field channel
# ---------------------------------------------------------------------------


class FixedFieldReconciler(_PendingBuffer):
    """Pairs fixed-field requests and responses by trace number (field 011)."""

    def __init__(self, retention: RetentionPolicy | None = None, clock: Callable[[], float] = time.time):
        super().__init__(retention, clock)
        self._requests: list[Entry] = []
        self._responses: list[Entry] = []

    @property
    def pending_requests(self) -> list[Entry]:
        return list(self._requests)

    @property
    def pending_responses(self) -> list[Entry]:
        return list(self._responses)

    @property
    def pending_count(self) -> int:
        return len(self._requests) + len(self._responses)

    def process_chunk(self, raw_text: str) -> ChunkResult:
        entries = tokenize_fixed_field(raw_text)
        self._stamp(entries)
        for entry in entries:
            if entry.is_request:
                self._requests.append(entry)
            else:
                self._responses.append(entry)
        return ChunkResult(new_entry_count=len(entries))

    def _match(self) -> tuple[list[TransactionPair], list[Entry]]:
        """Trace-key matching over the buffer. Consumed responses leave self._responses."""
        pairs = []
        unmatched = []
        for request in self._requests:
            trace = keys.fixed_trace_key(request)
            idx = None
            if trace:
                idx = _index_of(self._responses, lambda rsp: keys.fixed_trace_key(rsp) == trace)
            if idx is None:
                unmatched.append(request)
            else:
                pairs.append(TransactionPair(request=request, response=self._responses.pop(idx)))
        return pairs, unmatched

    def pair_incremental(self) -> list[TransactionPair]:
        """Emit newly completed pairs; unmatched entries stay buffered."""
        pairs, self._requests = self._match()
        return pairs

    def drain_all(self) -> list[TransactionPair]:
        """Final pairing pass, then every leftover entry as an orphan pair. Empties the buffer."""
        pairs, unmatched = self._match()
        pairs.extend(TransactionPair(request=req, response=None) for req in unmatched)
        pairs.extend(TransactionPair(request=None, response=rsp) for rsp in self._responses)
        self.reset()
        return pairs

    def evict_expired(self, now: float | None = None) -> list[TransactionPair]:
        """Release entries past the retention policy as orphan pairs."""
        expired = self._expired(self._requests + self._responses, now)
        if not expired:
            return []
        gone = {id(e) for e in expired}
        self._requests = [e for e in self._requests if id(e) not in gone]
        self._responses = [e for e in self._responses if id(e) not in gone]
        logger.warning("Evicted %d fixed-field entries past retention", len(expired))
        return [
            TransactionPair(request=e, response=None) if e.is_request
            else TransactionPair(request=None, response=e)
            for e in expired
        ]

    def reset(self) -> None:
        self._requests = []
        self._responses = []


# ---------------------------------------------------------------------------
# JSON channel
# ---------------------------------------------------------------------------


def _find_identified(request: Entry, responses: list[Entry]) -> int | None:
    """Phase 1: network-management requests match on trace number, all others on reference number."""
    if keys.is_network_management(request):
        trace = keys.request_trace_number(request)
        if trace:
            return _index_of(responses, lambda rsp: keys.response_trace_number(rsp) == trace)
        return None

    ref = keys.request_reference(request)
    if ref:
        return _index_of(responses, lambda rsp: keys.response_reference(rsp) == ref)
    return None


def _reference_pcode_index(fixed_context) -> dict:
    index = {}
    for tx in fixed_context or ():
        if tx.ref_num and tx.ref_num != "N/A" and tx.pcode:
            index[f"{tx.ref_num}-{tx.pcode}"] = tx
    return index


class JsonReconciler(_PendingBuffer):
    """Pairs JSON-channel requests and responses in two phases.

    Phase 1 matches on identifying keys. Phase 2 hands each still-unmatched
    request the first anonymous response (one with no identifying key at all),
    first come first served. Phase 2 is a heuristic that assumes anonymous
    error responses are rare and arrive in request order; nothing checks that
    the claimed response really belongs to the request.
    """

    def __init__(
        self,
        retention: RetentionPolicy | None = None,
        emit_orphan_responses: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(retention, clock)
        self._emit_orphan_responses = emit_orphan_responses
        self._entries: list[Entry] = []

    @property
    def pending(self) -> list[Entry]:
        return list(self._entries)

    @property
    def pending_count(self) -> int:
        return len(self._entries)

    def process_chunk(self, raw_text: str) -> ChunkResult:
        entries = tokenize_json(raw_text)
        self._stamp(entries)
        self._entries.extend(entries)
        return ChunkResult(new_entry_count=len(entries))

    def _pair(self) -> tuple[list[TransactionPair], list[Entry], list[Entry]]:
        """Run both phases. Returns (pairs, unmatched requests, unclaimed responses)."""
        requests = [e for e in self._entries if e.is_request]
        responses = [e for e in self._entries if not e.is_request]
        pairs = []

        unmatched = []
        for request in requests:
            idx = _find_identified(request, responses)
            if idx is None:
                unmatched.append(request)
            else:
                pairs.append(TransactionPair(request=request, response=responses.pop(idx)))

        still_unmatched = []
        for request in unmatched:
            idx = _index_of(responses, keys.is_anonymous)
            if idx is None:
                still_unmatched.append(request)
            else:
                pairs.append(TransactionPair(request=request, response=responses.pop(idx)))

        return pairs, still_unmatched, responses

    def pair_incremental(self) -> list[TransactionPair]:
        """Emit newly completed pairs; unmatched requests and unclaimed responses stay buffered."""
        pairs, _, _ = self._pair()
        if pairs:
            consumed = set()
            for pair in pairs:
                consumed.add(id(pair.request))
                consumed.add(id(pair.response))
            self._entries = [e for e in self._entries if id(e) not in consumed]
        return pairs

    def drain_all(self, fixed_context=None) -> list[TransactionPair]:
        """Final two-phase pass; leftover requests become orphans. Empties the buffer.

        *fixed_context* takes the finalized fixed-field transactions. They are
        indexed by reference number and pcode for cross-channel use but do
        not influence matching.
        """
        context = _reference_pcode_index(fixed_context)
        if context:
            logger.debug("Fixed-field context: %d reference/pcode keys", len(context))

        pairs, unmatched, leftover = self._pair()
        pairs.extend(TransactionPair(request=req, response=None) for req in unmatched)
        if leftover:
            if self._emit_orphan_responses:
                pairs.extend(TransactionPair(request=None, response=rsp) for rsp in leftover)
            else:
                logger.info("Discarding %d unpaired JSON response(s) at drain", len(leftover))
        self.reset()
        return pairs

    def evict_expired(self, now: float | None = None) -> list[TransactionPair]:
        """Release entries past the retention policy; responses follow the drain rule."""
        expired = self._expired(self._entries, now)
        if not expired:
            return []
        gone = {id(e) for e in expired}
        self._entries = [e for e in self._entries if id(e) not in gone]
        logger.warning("Evicted %d JSON entries past retention", len(expired))

        pairs = []
        dropped = 0
        for entry in expired:
            if entry.is_request:
                pairs.append(TransactionPair(request=entry, response=None))
            elif self._emit_orphan_responses:
                pairs.append(TransactionPair(request=None, response=entry))
            else:
                dropped += 1
        if dropped:
            logger.info("Discarding %d evicted JSON response(s)", dropped)
        return pairs

    def reset(self) -> None:
        self._entries = []
