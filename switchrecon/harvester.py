"""ChunkHarvester: watchdog event handler that feeds appended log text to a session."""

import logging
import os

from watchdog.events import FileSystemEventHandler

from switchrecon.grammar import match_json_header, scan_fixed_headers
from switchrecon.models import Channel
from switchrecon.registry import OffsetRegistry

logger = logging.getLogger(__name__)


def last_entry_start(channel: Channel, text: str) -> int | None:
    """Offset of the last entry header in *text*, None when it has no header."""
    if channel is Channel.FIXED_FIELD:
        headers = scan_fixed_headers(text)
        return headers[-1].start if headers else None

    start = None
    pos = 0
    for line in text.split("\n"):
        if match_json_header(line) is not None:
            start = pos
        pos += len(line) + 1
    return start


class ChunkHarvester(FileSystemEventHandler):
    """Tails each watched file and hands finished entries to ``session.ingest``.

    A trailing partial line is held back until its newline arrives. The last
    entry of every read is also held back until the next header shows it is
    complete, so an entry written in several appends reaches the tokenizer
    whole. Held entries are flushed on ``close_all`` or when the file goes
    away. The persisted offset never moves past held-back bytes.
    """

    def __init__(self, files: dict[str, Channel], session, registry: OffsetRegistry):
        super().__init__()
        self._channels = {os.path.abspath(p): Channel(c) for p, c in files.items()}
        self._session = session
        self._registry = registry
        self._handles: dict[str, object] = {}
        self._partial: dict[str, bytes] = {}
        self._held: dict[str, bytes] = {}

    @classmethod
    def from_config(cls, config, session, registry: OffsetRegistry) -> "ChunkHarvester":
        files = {p: Channel.FIXED_FIELD for p in config.fixed_field_files}
        files.update({p: Channel.JSON for p in config.json_files})
        return cls(files, session, registry)

    def _open_file(self, abs_path: str):
        """Open file and seek to registered offset. Handles rotation and truncation."""
        if abs_path in self._handles:
            self._handles.pop(abs_path).close()
        self._flush(abs_path)

        try:
            stat = os.stat(abs_path)
        except FileNotFoundError:
            logger.debug("File not found: %s", abs_path)
            return

        saved = self._registry.position(abs_path)
        offset = saved.offset
        if saved.inode is not None and saved.inode != stat.st_ino:
            logger.info("File rotated (inode changed): %s", abs_path)
            offset = 0
        elif stat.st_size < offset:
            logger.info("File truncated: %s", abs_path)
            offset = 0

        try:
            fh = open(abs_path, "rb")
        except OSError as e:
            logger.error("Failed to open %s: %s", abs_path, e)
            return
        fh.seek(offset)
        self._handles[abs_path] = fh
        self._partial.pop(abs_path, None)
        self._registry.update(abs_path, offset, stat.st_ino)
        logger.debug("Opened %s at offset %d", abs_path, offset)

    def _dispatch(self, abs_path: str, data: bytes):
        """Ingest every entry before the last header in *data* and hold the rest."""
        channel = self._channels[abs_path]
        text = data.decode("utf-8", errors="surrogateescape")
        start = last_entry_start(channel, text)
        if start is None:
            ready, held = data, b""
        else:
            cut = len(text[:start].encode("utf-8", errors="surrogateescape"))
            ready, held = data[:cut], data[cut:]

        if held:
            self._held[abs_path] = held
        if ready.strip():
            self._session.ingest(channel, ready.decode("utf-8", errors="replace"))

    def _flush(self, abs_path: str):
        held = self._held.pop(abs_path, b"")
        if held:
            logger.debug("Flushing %d held byte(s) from %s", len(held), abs_path)
            self._session.ingest(self._channels[abs_path], held.decode("utf-8", errors="replace"))

    def _commit_offset(self, abs_path: str):
        fh = self._handles.get(abs_path)
        if fh is None:
            return
        pending = len(self._partial.get(abs_path, b"")) + len(self._held.get(abs_path, b""))
        try:
            inode = os.stat(abs_path).st_ino
        except FileNotFoundError:
            inode = None
        self._registry.update(abs_path, fh.tell() - pending, inode)

    def read_new_text(self, path: str):
        """Read from current position to EOF and ingest the finished entries."""
        abs_path = os.path.abspath(path)
        if abs_path not in self._channels:
            return
        if abs_path not in self._handles:
            self._open_file(abs_path)
        if abs_path not in self._handles:
            return

        fh = self._handles[abs_path]
        try:
            data = fh.read()
        except OSError as e:
            logger.error("Failed to read %s: %s", abs_path, e)
            return
        if not data:
            return

        data = self._partial.pop(abs_path, b"") + data
        cut = data.rfind(b"\n") + 1
        complete, rest = data[:cut], data[cut:]
        if rest:
            self._partial[abs_path] = rest

        if complete:
            self._dispatch(abs_path, self._held.pop(abs_path, b"") + complete)
        self._commit_offset(abs_path)

    def on_modified(self, event):
        if not event.is_directory:
            self.read_new_text(event.src_path)

    def on_created(self, event):
        if event.is_directory:
            return
        abs_path = os.path.abspath(event.src_path)
        if abs_path in self._channels:
            logger.info("Watched file created: %s", abs_path)
            self._open_file(abs_path)
            self.read_new_text(abs_path)

    def on_deleted(self, event):
        if event.is_directory:
            return
        abs_path = os.path.abspath(event.src_path)
        if abs_path not in self._channels:
            return
        logger.info("Watched file deleted: %s", abs_path)
        self._flush(abs_path)
        self._partial.pop(abs_path, None)
        fh = self._handles.pop(abs_path, None)
        if fh is not None:
            fh.close()
        self._registry.forget(abs_path)

    def startup_read(self):
        """Ingest any existing content from watched files at startup."""
        for path in sorted(self._channels):
            if os.path.exists(path):
                logger.info("Startup read: %s (%s)", path, self._channels[path].value)
                self._open_file(path)
                self.read_new_text(path)

    def close_all(self):
        """Flush held entries to the session, record final offsets and close handles."""
        for abs_path in sorted(self._held):
            self._flush(abs_path)
            self._commit_offset(abs_path)
        for fh in self._handles.values():
            try:
                fh.close()
            except OSError as e:
                logger.debug("Close failed: %s", e)
        self._handles.clear()

    def get_watched_dirs(self) -> set[str]:
        """Return unique parent directories of watched files (for Observer scheduling)."""
        return {os.path.dirname(p) for p in self._channels}
