"""Group normalized transactions from both channels by reference number."""

import itertools
from dataclasses import dataclass, field
from datetime import datetime

from switchrecon.models import FixedFieldTransaction, JsonTransaction

_TIMESTAMP_FORMATS = (
    "%d %b %Y %H:%M:%S.%f",
    "%d %b %Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)


@dataclass
class CorrelatedGroup:
    reference: str | None
    fixed_field: list[FixedFieldTransaction] = field(default_factory=list)
    json: list[JsonTransaction] = field(default_factory=list)
    sort_time: datetime = datetime.min

    @property
    def is_matched(self) -> bool:
        return bool(self.fixed_field) and bool(self.json)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse the channel timestamp shapes (and ISO 8601) into a naive datetime."""
    if not value:
        return None
    text = value.strip()
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def _fixed_reference(tx: FixedFieldTransaction) -> str | None:
    ref = (tx.ref_num or "").strip()
    return ref if ref and ref != "N/A" else None


def _json_reference(tx: JsonTransaction) -> str | None:
    if tx.ref_num is None:
        return None
    ref = str(tx.ref_num).strip()
    return ref or None


def join_by_reference(
    fixed: list[FixedFieldTransaction],
    json_txs: list[JsonTransaction],
    descending: bool = True,
) -> list[CorrelatedGroup]:
    """Join both channels on reference number, several legs per reference allowed.

    Transactions without a reference each get a group of their own. Groups
    are ordered by their latest leg timestamp; unparseable timestamps sort
    as oldest.
    """
    groups: dict[object, CorrelatedGroup] = {}
    unkeyed = itertools.count()

    def _group_for(ref: str | None) -> CorrelatedGroup:
        key = ref if ref is not None else ("unkeyed", next(unkeyed))
        if key not in groups:
            groups[key] = CorrelatedGroup(reference=ref)
        return groups[key]

    def _touch(group: CorrelatedGroup, timestamp: str | None):
        parsed = parse_timestamp(timestamp)
        if parsed is not None and parsed > group.sort_time:
            group.sort_time = parsed

    for tx in fixed:
        group = _group_for(_fixed_reference(tx))
        group.fixed_field.append(tx)
        _touch(group, tx.timestamp)

    for tx in json_txs:
        group = _group_for(_json_reference(tx))
        group.json.append(tx)
        _touch(group, tx.timestamp)

    return sorted(groups.values(), key=lambda g: g.sort_time, reverse=descending)
