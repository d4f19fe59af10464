"""Split raw switch log chunks into entries.

Both tokenizers are restartable and keep no state between calls. Malformed
content never raises: a fixed-field chunk without any header becomes a
single fallback entry, a JSON payload that does not decode becomes a
ParseError marker on its entry.
"""

import json
import logging
from datetime import datetime, timezone

from switchrecon.grammar import (
    DEFAULT_MTI,
    extract_json_payload,
    iter_fields,
    match_json_header,
    scan_fixed_headers,
)
from switchrecon.models import Channel, Direction, Entry, ParseError

logger = logging.getLogger(__name__)


def _require_text(raw_text) -> None:
    if not isinstance(raw_text, str):
        raise TypeError(f"expected str chunk, got {type(raw_text).__name__}")


def _parse_fields(body: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for tag, value in iter_fields(body):
        fields[tag] = value
    return fields


def tokenize_fixed_field(raw_text: str) -> list[Entry]:
    """Tokenize a fixed-field chunk.

    Each header opens an entry whose body runs to the start of the next
    header (or the end of the chunk). Non-blank text with no header at all
    yields exactly one REQUEST entry holding the whole chunk.
    """
    _require_text(raw_text)
    if not raw_text.strip():
        return []

    headers = scan_fixed_headers(raw_text)
    if not headers:
        logger.debug("No fixed-field header in %d chars, emitting fallback entry", len(raw_text))
        return [Entry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            direction=Direction.REQUEST,
            channel=Channel.FIXED_FIELD,
            raw_body=raw_text,
            fields=_parse_fields(raw_text),
            mti=DEFAULT_MTI,
        )]

    if raw_text[:headers[0].start].strip():
        logger.debug("Dropping %d chars before the first fixed-field header", headers[0].start)

    entries = []
    for i, header in enumerate(headers):
        body_end = headers[i + 1].start if i + 1 < len(headers) else len(raw_text)
        body = raw_text[header.end:body_end]
        entries.append(Entry(
            timestamp=header.timestamp,
            direction=header.direction,
            channel=Channel.FIXED_FIELD,
            raw_body=body,
            fields=_parse_fields(body),
            mti=header.mti,
        ))
    return entries


def _decode_payload(body: str):
    payload = extract_json_payload(body)
    if payload is None:
        return {}
    try:
        return json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.debug("JSON payload failed to decode: %s", e)
        return ParseError(message=str(e))


def tokenize_json(raw_text: str) -> list[Entry]:
    """Tokenize a JSON-channel chunk line by line.

    A header line opens an entry; following lines accumulate into its body
    until the next header. The body includes the header line itself, so a
    payload that starts on the header line is still found. Lines before the
    first header belong to no entry.
    """
    _require_text(raw_text)

    entries = []
    current = None
    body_lines: list[str] = []
    skipped = 0

    def _close():
        body = "".join(body_lines)
        entries.append(Entry(
            timestamp=current.timestamp,
            direction=current.direction,
            channel=Channel.JSON,
            raw_body=body,
            fields=_decode_payload(body),
        ))

    for line in raw_text.split("\n"):
        header = match_json_header(line)
        if header is not None:
            if current is not None:
                _close()
            current = header
            body_lines = [line + "\n"]
        elif current is not None:
            body_lines.append(line + "\n")
        elif line.strip():
            skipped += 1

    if current is not None:
        _close()

    if skipped:
        logger.debug("Skipped %d line(s) before the first JSON header", skipped)
    return entries
