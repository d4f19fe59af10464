"""Project transaction pairs into normalized transactions for display.

Pure functions; nothing here is cached or stored.
"""

from switchrecon.models import (
    Channel,
    Entry,
    FixedFieldTransaction,
    JsonTransaction,
    NormalizedTransaction,
    TransactionPair,
    entry_to_dict,
)

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILED = "FAILED"
STATUS_TIMEOUT = "TIMEOUT"
STATUS_EMPTY_RC = "EMPTY_RC"

APPROVED = "00"


def _status(has_response: bool, code) -> str:
    if not has_response:
        return STATUS_TIMEOUT
    if not code:
        return STATUS_EMPTY_RC
    return STATUS_SUCCESS if code == APPROVED else STATUS_FAILED


def parse_amount(raw: str | None) -> int | None:
    """'000000100000' -> 1000: the last two digits are the minor-unit scale and are dropped."""
    if not raw:
        return None
    digits = raw.strip()[:-2]
    if not digits.isdigit():
        return None
    return int(digits)


def _first_field(tag: str, *entries: Entry | None) -> str | None:
    for entry in entries:
        if entry is not None:
            value = entry.field_value(tag)
            if value:
                return value
    return None


def project_fixed_field(pair: TransactionPair) -> FixedFieldTransaction:
    req, rsp = pair.request, pair.response
    response_code = rsp.field_value("039") if rsp is not None else None
    source = req if req is not None else rsp
    return FixedFieldTransaction(
        request=entry_to_dict(req) if req is not None else None,
        response=entry_to_dict(rsp) if rsp is not None else None,
        ref_num=_first_field("037", req, rsp) or "N/A",
        response_code=response_code,
        trace_number=_first_field("011", req, rsp),
        pcode=_first_field("003", req, rsp),
        amount=parse_amount(_first_field("004", req, rsp)),
        status=_status(rsp is not None, response_code),
        timestamp=source.timestamp,
        raw_content=source.raw_body,
    )


def _data(entry: Entry | None) -> dict:
    if entry is None or not isinstance(entry.fields, dict):
        return {}
    return entry.fields


def project_json(pair: TransactionPair) -> JsonTransaction:
    req, rsp = pair.request, pair.response
    req_data = _data(req)
    rsp_data = _data(rsp)
    source = req if req is not None else rsp
    return JsonTransaction(
        request=entry_to_dict(req) if req is not None else None,
        response=entry_to_dict(rsp) if rsp is not None else None,
        trace_number=req_data.get("traceNumber"),
        serial_number=req_data.get("serialNumber"),
        pcode=req_data.get("pcode"),
        ref_num=req_data.get("referenceNumber"),
        response_status=rsp_data.get("responseStatus"),
        response_message=rsp_data.get("responseMessage"),
        status=_status(rsp is not None, rsp_data.get("responseStatus")),
        timestamp=source.timestamp,
        raw_content=source.raw_body,
    )


def project(pair: TransactionPair) -> NormalizedTransaction:
    """Dispatch on the channel of whichever side is present."""
    entry = pair.request if pair.request is not None else pair.response
    if entry.channel is Channel.FIXED_FIELD:
        return project_fixed_field(pair)
    return project_json(pair)
