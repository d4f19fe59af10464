"""Match-key extraction strategies.

Every strategy is a pure function ``Entry -> key | None``. Where a key can
live in more than one place, the places are listed as an ordered tuple and
tried in sequence; the first non-empty value wins.
"""

from typing import Any, Callable

from switchrecon.models import Entry

NETWORK_MANAGEMENT_MTI = "0800"
TRACE_TAG = "011"

KeyStrategy = Callable[[Entry], Any]


def _get(obj, key: str):
    return obj.get(key) if isinstance(obj, dict) else None


def _payload(entry: Entry) -> dict:
    # ParseError markers and non-object payloads carry no keys.
    return entry.fields if isinstance(entry.fields, dict) else {}


def _unwrapped(entry: Entry) -> dict:
    """Response body under the ``data`` wrapper when present, else the payload itself."""
    payload = _payload(entry)
    inner = payload.get("data")
    return inner if isinstance(inner, dict) else payload


def first_key(entry: Entry, strategies: tuple[KeyStrategy, ...]):
    for strategy in strategies:
        key = strategy(entry)
        if key:
            return key
    return None


# ---------------------------------------------------------------------------
# Fixed-field channel
# ---------------------------------------------------------------------------


def fixed_trace_key(entry: Entry) -> str | None:
    return entry.field_value(TRACE_TAG) or None


# ---------------------------------------------------------------------------
# JSON channel: requests
# ---------------------------------------------------------------------------


def is_network_management(entry: Entry) -> bool:
    return _payload(entry).get("mti") == NETWORK_MANAGEMENT_MTI


def request_trace_number(entry: Entry):
    return _payload(entry).get("traceNumber") or None


def request_reference(entry: Entry):
    """Reference number, only when the request also carries a pcode."""
    payload = _payload(entry)
    ref = payload.get("referenceNumber")
    if ref and payload.get("pcode"):
        return ref
    return None


# ---------------------------------------------------------------------------
# JSON channel: responses
# ---------------------------------------------------------------------------


def response_trace_number(entry: Entry):
    return _get(_payload(entry).get("data"), "traceNumber") or None


def _nested_reference(entry: Entry):
    return _get(_unwrapped(entry).get("transactionInfo"), "referenceNumber") or None


def _direct_reference(entry: Entry):
    return _unwrapped(entry).get("referenceNumber") or None


def _unwrapped_trace_number(entry: Entry):
    return _unwrapped(entry).get("traceNumber") or None


RESPONSE_REFERENCE_STRATEGIES: tuple[KeyStrategy, ...] = (
    _nested_reference,
    _direct_reference,
)

IDENTIFYING_KEY_STRATEGIES: tuple[KeyStrategy, ...] = (
    _direct_reference,
    _unwrapped_trace_number,
    _nested_reference,
)


def response_reference(entry: Entry):
    return first_key(entry, RESPONSE_REFERENCE_STRATEGIES)


def is_anonymous(entry: Entry) -> bool:
    """True when a response carries no reference number, trace number or nested reference."""
    return first_key(entry, IDENTIFYING_KEY_STRATEGIES) is None
