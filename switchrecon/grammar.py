"""Header and field recognizers for the two switch log channels.

Fixed-field channel:
  header  := '['? timestamp ']'? ( '<' mti '>' )?
  timestamp := 'DD Mon YYYY HH:MM:SS.mmm' | 'YYYY-MM-DD HH:MM:SS.mmm'
  field   := 'Field '? tag [: ]+ '['? value ']'?      (tag is exactly 3 digits)

JSON channel (line oriented):
  header  := '['? timestamp ']'? ' ' '<'? ('REQ' | 'RSP') '>'?
  payload := first '{' ... last '}' of the entry body
"""

import re
from dataclasses import dataclass
from typing import Iterator

from switchrecon.models import Direction

DEFAULT_MTI = "0000"

# ---------------------------------------------------------------------------
# Compiled patterns
# ---------------------------------------------------------------------------

_FIXED_HEADER_RE = re.compile(
    r'\[?'
    r'(?P<timestamp>\d{1,2}\s+[A-Za-z]{3}\s+\d{4}\s+[\d:.]+'
    r'|[\d-]{10}\s+[\d:.]{8,})'
    r'\]?'
    r'(?:\s*<(?P<mti>\d{4})>)?'
)

# The separator never crosses a line break, so an empty value cannot swallow the next line.
_FIELD_RE = re.compile(
    r'(?:Field\s+)?'
    r'(?<!\d)(?P<tag>\d{3})(?!\d)'
    r'[:\t ]+'
    r'\[?(?P<value>[^\]\r\n]+)\]?'
)

# The marker must be a whole word: 'REQUEST' or 'RSPX' does not open an entry.
_JSON_HEADER_RE = re.compile(
    r'^\s*\[?(?P<timestamp>[\w\s:.-]+?)\]?\s+'
    r'<?(?P<marker>REQ|RSP)\b>?'
)


@dataclass(frozen=True)
class FixedHeader:
    start: int
    end: int
    timestamp: str
    mti: str

    @property
    def direction(self) -> Direction:
        return direction_for_mti(self.mti)


@dataclass(frozen=True)
class JsonHeader:
    timestamp: str
    direction: Direction


# ---------------------------------------------------------------------------
# Fixed-field rules
# ---------------------------------------------------------------------------


def direction_for_mti(mti: str) -> Direction:
    """Even third digit is a request (0200, 0800), odd is a response (0210, 0810)."""
    digit = mti[2] if len(mti) > 2 and mti[2].isdigit() else "0"
    return Direction.REQUEST if int(digit) % 2 == 0 else Direction.RESPONSE


def scan_fixed_headers(text: str) -> list[FixedHeader]:
    """Return every header occurrence in *text*, in order of appearance."""
    headers = []
    for m in _FIXED_HEADER_RE.finditer(text):
        headers.append(FixedHeader(
            start=m.start(),
            end=m.end(),
            timestamp=m.group("timestamp").strip(),
            mti=m.group("mti") or DEFAULT_MTI,
        ))
    return headers


def iter_fields(body: str) -> Iterator[tuple[str, str]]:
    """Yield (tag, trimmed value) for every tagged field in an entry body."""
    for m in _FIELD_RE.finditer(body):
        yield m.group("tag"), m.group("value").strip()


# ---------------------------------------------------------------------------
# JSON rules
# ---------------------------------------------------------------------------


def match_json_header(line: str) -> JsonHeader | None:
    m = _JSON_HEADER_RE.match(line)
    if not m:
        return None
    direction = Direction.REQUEST if m.group("marker") == "REQ" else Direction.RESPONSE
    return JsonHeader(timestamp=m.group("timestamp").strip(), direction=direction)


def extract_json_payload(body: str) -> str | None:
    """Substring from the first '{' to the last '}', or None when there is no such span."""
    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end <= start:
        return None
    return body[start:end + 1]
