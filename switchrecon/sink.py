"""JSON-lines output for normalized transactions."""

import json
import logging
import os
import sys
from typing import TextIO

from switchrecon.models import NormalizedTransaction, transaction_to_dict

logger = logging.getLogger(__name__)


class JsonLinesSink:
    """Writes one JSON object per transaction. ``path=None`` writes to stdout."""

    def __init__(self, path: str | None = None, stream: TextIO | None = None):
        self._path = path
        self._owns_stream = False
        if stream is not None:
            self._stream = stream
        elif path:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            self._stream = open(path, "a", encoding="utf-8")
            self._owns_stream = True
        else:
            self._stream = sys.stdout
        self._written = 0

    @property
    def written(self) -> int:
        return self._written

    def emit(self, transactions: list[NormalizedTransaction]) -> None:
        for tx in transactions:
            self._stream.write(json.dumps(transaction_to_dict(tx), default=str))
            self._stream.write("\n")
        if transactions:
            self._stream.flush()
            self._written += len(transactions)
            logger.debug("Emitted %d transaction(s) (total: %d)", len(transactions), self._written)

    def close(self) -> None:
        if self._owns_stream:
            self._stream.close()
