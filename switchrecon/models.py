"""Entries, transaction pairs and normalized transactions shared by every stage."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any


class Channel(str, Enum):
    FIXED_FIELD = "fixed_field"
    JSON = "json"


class Direction(str, Enum):
    REQUEST = "REQ"
    RESPONSE = "RSP"


@dataclass(frozen=True)
class ParseError:
    """Stored as an entry's fields when its JSON payload could not be decoded."""
    message: str


@dataclass
class Entry:
    timestamp: str
    direction: Direction
    channel: Channel
    raw_body: str
    # dict[str, str] for fixed-field entries; decoded JSON value or ParseError for JSON entries
    fields: Any = field(default_factory=dict)
    mti: str | None = None

    # Stamped by a reconciler on buffering; not part of the parsed content.
    received_at: float = field(default=0.0, compare=False)
    sequence: int = field(default=0, compare=False)

    @property
    def is_request(self) -> bool:
        return self.direction is Direction.REQUEST

    @property
    def has_parse_error(self) -> bool:
        return isinstance(self.fields, ParseError)

    def field_value(self, tag: str) -> str | None:
        """Fixed-field value for a 3-digit tag, None when absent."""
        if isinstance(self.fields, dict):
            return self.fields.get(tag)
        return None


@dataclass(frozen=True)
class TransactionPair:
    request: Entry | None
    response: Entry | None

    def __post_init__(self):
        if self.request is None and self.response is None:
            raise ValueError("a transaction pair needs at least one side")

    @property
    def is_orphan(self) -> bool:
        return self.request is None or self.response is None


@dataclass(frozen=True)
class ChunkResult:
    new_entry_count: int


@dataclass
class FixedFieldTransaction:
    request: dict | None
    response: dict | None
    ref_num: str
    response_code: str | None
    trace_number: str | None
    pcode: str | None
    amount: int | None
    status: str
    timestamp: str | None
    raw_content: str
    channel: str = Channel.FIXED_FIELD.value


@dataclass
class JsonTransaction:
    request: dict | None
    response: dict | None
    trace_number: Any
    serial_number: Any
    pcode: Any
    ref_num: Any
    response_status: Any
    response_message: Any
    status: str
    timestamp: str | None
    raw_content: str
    channel: str = Channel.JSON.value


NormalizedTransaction = FixedFieldTransaction | JsonTransaction


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    """Plain-dict view of an entry for JSON output."""
    fields = entry.fields
    if isinstance(fields, ParseError):
        fields = {"parseError": fields.message}
    d = {
        "timestamp": entry.timestamp,
        "direction": entry.direction.value,
        "fields": fields,
        "content": entry.raw_body,
    }
    if entry.mti is not None:
        d["mti"] = entry.mti
    return d


def transaction_to_dict(tx: NormalizedTransaction) -> dict[str, Any]:
    """Convert a normalized transaction to a dict, dropping None values for cleaner JSON."""
    return {k: v for k, v in asdict(tx).items() if v is not None}
