"""Reconciliation counters with atomic JSON persistence."""

import json
import os
import tempfile
import time
from datetime import datetime, timezone

from switchrecon.models import Channel, TransactionPair


class ReconcileStats:
    COUNTERS = (
        "entries_fixed_field",
        "entries_json",
        "pairs_matched",
        "orphan_requests",
        "orphan_responses",
        "parse_errors",
        "evicted",
    )

    def __init__(self, path: str | None = None):
        self._counters: dict[str, int] = {name: 0 for name in self.COUNTERS}
        self._path = path
        self._start_time = time.time()

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    # ------------------------------------------------------------------
    # Recording helpers used by the session
    # ------------------------------------------------------------------

    def record_entries(self, channel: Channel, count: int) -> None:
        self.increment(f"entries_{Channel(channel).value}", count)

    def record_pairs(self, pairs: list[TransactionPair]) -> None:
        """Classify each pair as matched or orphan and count entries that failed to parse."""
        for pair in pairs:
            if not pair.is_orphan:
                self.increment("pairs_matched")
            elif pair.request is None:
                self.increment("orphan_responses")
            else:
                self.increment("orphan_requests")
            for entry in (pair.request, pair.response):
                if entry is not None and entry.has_parse_error:
                    self.increment("parse_errors")

    def record_evicted(self, count: int) -> None:
        if count:
            self.increment("evicted", count)

    def match_rate(self) -> float | None:
        """Share of emitted transactions that had both sides, None before any were emitted."""
        matched = self.get("pairs_matched")
        total = matched + self.get("orphan_requests") + self.get("orphan_responses")
        if not total:
            return None
        return round(matched / total, 4)

    def get_all(self) -> dict:
        return {
            "counters": dict(self._counters),
            "match_rate": self.match_rate(),
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }

    def save(self) -> None:
        """Write ``get_all()`` to the stats file; no-op when no path is configured."""
        if not self._path:
            return
        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.get_all(), f, indent=2)
                f.write("\n")
            os.replace(tmp, self._path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
