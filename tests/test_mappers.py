"""Tests for switchrecon/mappers.py"""

import pytest

from conftest import fixed_entry, json_entry
from switchrecon.mappers import parse_amount, project, project_fixed_field, project_json
from switchrecon.models import (
    Direction,
    FixedFieldTransaction,
    JsonTransaction,
    ParseError,
    TransactionPair,
    transaction_to_dict,
)

REQ = Direction.REQUEST
RSP = Direction.RESPONSE


@pytest.mark.parametrize("raw, expected", [
    ("000000100000", 1000),
    ("000000015050", 150),
    ("12", None),
    ("", None),
    (None, None),
    ("abc00", None),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


class TestFixedFieldProjection:

    def test_full_pair(self):
        req = fixed_entry(REQ, {"003": "401000", "004": "000000250000", "011": "111", "037": "REF1"},
                          timestamp="15 Jan 2024 10:00:00.000")
        rsp = fixed_entry(RSP, {"011": "222", "039": "00"}, timestamp="15 Jan 2024 10:00:01.000")
        tx = project_fixed_field(TransactionPair(request=req, response=rsp))

        assert tx.ref_num == "REF1"
        assert tx.response_code == "00"
        assert tx.trace_number == "111"
        assert tx.pcode == "401000"
        assert tx.amount == 2500
        assert tx.status == "SUCCESS"
        assert tx.timestamp == "15 Jan 2024 10:00:00.000"
        assert tx.channel == "fixed_field"
        assert tx.request["fields"]["037"] == "REF1"
        assert tx.request["mti"] == "0200"

    def test_amount_from_response_only(self):
        rsp = fixed_entry(RSP, {"004": "000000100000", "039": "00"})
        tx = project_fixed_field(TransactionPair(request=None, response=rsp))
        assert tx.amount == 1000
        assert tx.request is None

    def test_trace_falls_back_to_response(self):
        req = fixed_entry(REQ, {"003": "301000"})
        rsp = fixed_entry(RSP, {"011": "222", "039": "05"})
        tx = project_fixed_field(TransactionPair(request=req, response=rsp))
        assert tx.trace_number == "222"
        assert tx.status == "FAILED"

    def test_no_response(self):
        tx = project_fixed_field(TransactionPair(request=fixed_entry(REQ, {"011": "1"}), response=None))
        assert tx.status == "TIMEOUT"
        assert tx.ref_num == "N/A"
        assert tx.response_code is None

    def test_response_without_code(self):
        tx = project_fixed_field(TransactionPair(
            request=fixed_entry(REQ, {"011": "1"}),
            response=fixed_entry(RSP, {"011": "1"}),
        ))
        assert tx.status == "EMPTY_RC"


class TestJsonProjection:

    def test_fields_read_from_each_side(self):
        req = json_entry(REQ, {
            "traceNumber": "000111", "serialNumber": "SN1", "pcode": "401000",
            "referenceNumber": "R1",
        }, timestamp="2024-01-15 10:00:00.200")
        rsp = json_entry(RSP, {"responseStatus": "00", "responseMessage": "Approved"},
                         timestamp="2024-01-15 10:00:01.000")
        tx = project_json(TransactionPair(request=req, response=rsp))

        assert tx.trace_number == "000111"
        assert tx.serial_number == "SN1"
        assert tx.pcode == "401000"
        assert tx.ref_num == "R1"
        assert tx.response_status == "00"
        assert tx.response_message == "Approved"
        assert tx.status == "SUCCESS"
        assert tx.timestamp == "2024-01-15 10:00:00.200"

    def test_parse_error_response(self):
        req = json_entry(REQ, {"referenceNumber": "R1", "pcode": "401000"})
        rsp = json_entry(RSP, ParseError("Expecting value"))
        tx = project_json(TransactionPair(request=req, response=rsp))

        assert tx.response_status is None
        assert tx.status == "EMPTY_RC"
        assert tx.response["fields"] == {"parseError": "Expecting value"}

    def test_orphan_request(self):
        tx = project_json(TransactionPair(request=json_entry(REQ, {"pcode": "301000"}), response=None))
        assert tx.status == "TIMEOUT"
        assert tx.response is None

    def test_failed_status(self):
        tx = project_json(TransactionPair(
            request=json_entry(REQ, {}),
            response=json_entry(RSP, {"responseStatus": "51"}),
        ))
        assert tx.status == "FAILED"


def test_project_dispatches_on_channel():
    fixed = project(TransactionPair(request=fixed_entry(REQ, {}), response=None))
    js = project(TransactionPair(request=None, response=json_entry(RSP, {})))
    assert isinstance(fixed, FixedFieldTransaction)
    assert isinstance(js, JsonTransaction)


def test_transaction_to_dict_drops_none():
    tx = project_fixed_field(TransactionPair(request=fixed_entry(REQ, {"011": "1"}), response=None))
    d = transaction_to_dict(tx)
    assert "response" not in d
    assert "amount" not in d
    assert d["trace_number"] == "1"
    assert d["status"] == "TIMEOUT"


def test_pair_needs_one_side():
    with pytest.raises(ValueError):
        TransactionPair(request=None, response=None)
