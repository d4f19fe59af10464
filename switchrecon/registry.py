"""Read positions of tailed switch logs, persisted so a restart resumes where it stopped."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)


@dataclass
class FilePosition:
    offset: int = 0
    inode: int | None = None


class OffsetRegistry:
    def __init__(self, registry_file: str):
        self._path = registry_file
        self._positions: dict[str, FilePosition] = {}
        self._load()

    def _load(self):
        if not os.path.exists(self._path):
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self._positions = {
                path: FilePosition(offset=int(pos.get("offset", 0)), inode=pos.get("inode"))
                for path, pos in raw.items()
            }
            logger.info("Loaded offset registry from %s (%d files)", self._path, len(self._positions))
        except (json.JSONDecodeError, OSError, AttributeError, ValueError) as e:
            logger.warning("Failed to load registry %s: %s", self._path, e)
            self._positions = {}

    def save(self):
        """Atomic write: temp file in the same directory, then replace."""
        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)
        data = {path: asdict(pos) for path, pos in list(self._positions.items())}
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def position(self, path: str) -> FilePosition:
        return self._positions.get(path, FilePosition())

    def update(self, path: str, offset: int, inode: int | None):
        self._positions[path] = FilePosition(offset=offset, inode=inode)

    def forget(self, path: str):
        self._positions.pop(path, None)
