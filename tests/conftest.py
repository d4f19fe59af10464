import pytest

from switchrecon.models import Channel, Direction, Entry


FIXED_REQUEST = """[15 Jan 2024 10:00:00.123] <0200>
Field 003: [401000]
Field 004: [000000100000]
Field 011: [123456]
Field 037: [REF000000001]
"""

FIXED_RESPONSE = """[15 Jan 2024 10:00:01.456] <0210>
Field 003: [401000]
Field 011: [123456]
Field 037: [REF000000001]
Field 039: [00]
"""

JSON_CHUNK = """[2024-01-15 10:00:00.200] REQ
{
  "mti": "0200",
  "referenceNumber": "R1",
  "pcode": "401000",
  "traceNumber": "000111"
}
[2024-01-15 10:00:01.000] RSP {"responseStatus": "00", "data": {"referenceNumber": "R1"}}
"""


@pytest.fixture
def fixed_request_chunk():
    return FIXED_REQUEST


@pytest.fixture
def fixed_response_chunk():
    return FIXED_RESPONSE


@pytest.fixture
def json_chunk():
    return JSON_CHUNK


def json_entry(direction: Direction, fields, timestamp: str = "2024-01-15 10:00:00.000") -> Entry:
    return Entry(
        timestamp=timestamp,
        direction=direction,
        channel=Channel.JSON,
        raw_body="",
        fields=fields,
    )


def fixed_entry(direction: Direction, fields: dict, timestamp: str = "15 Jan 2024 10:00:00.000") -> Entry:
    return Entry(
        timestamp=timestamp,
        direction=direction,
        channel=Channel.FIXED_FIELD,
        raw_body="",
        fields=fields,
        mti="0200" if direction is Direction.REQUEST else "0210",
    )
