"""Tests for the match-key extraction strategies."""

from conftest import fixed_entry, json_entry
from switchrecon import keys
from switchrecon.models import Direction, ParseError

REQ = Direction.REQUEST
RSP = Direction.RESPONSE


def test_fixed_trace_key():
    assert keys.fixed_trace_key(fixed_entry(REQ, {"011": "123456"})) == "123456"
    assert keys.fixed_trace_key(fixed_entry(REQ, {"037": "R"})) is None
    assert keys.fixed_trace_key(fixed_entry(REQ, {"011": ""})) is None


def test_network_management_detection():
    assert keys.is_network_management(json_entry(REQ, {"mti": "0800"}))
    assert not keys.is_network_management(json_entry(REQ, {"mti": "0200"}))
    assert not keys.is_network_management(json_entry(REQ, ParseError("bad")))


def test_request_reference_needs_pcode():
    assert keys.request_reference(json_entry(REQ, {"referenceNumber": "R1", "pcode": "401000"})) == "R1"
    assert keys.request_reference(json_entry(REQ, {"referenceNumber": "R1"})) is None


def test_response_trace_number_is_nested_only():
    assert keys.response_trace_number(json_entry(RSP, {"data": {"traceNumber": "T1"}})) == "T1"
    assert keys.response_trace_number(json_entry(RSP, {"traceNumber": "T1"})) is None


class TestResponseReference:

    def test_direct(self):
        assert keys.response_reference(json_entry(RSP, {"referenceNumber": "R1"})) == "R1"

    def test_under_data_wrapper(self):
        assert keys.response_reference(json_entry(RSP, {"data": {"referenceNumber": "R1"}})) == "R1"

    def test_under_transaction_info(self):
        entry = json_entry(RSP, {"data": {"transactionInfo": {"referenceNumber": "R1"}}})
        assert keys.response_reference(entry) == "R1"

    def test_transaction_info_takes_precedence(self):
        entry = json_entry(RSP, {"data": {"referenceNumber": "A", "transactionInfo": {"referenceNumber": "B"}}})
        assert keys.response_reference(entry) == "B"

    def test_strategies_tried_in_order(self):
        entry = json_entry(RSP, {"transactionInfo": {}, "referenceNumber": "R9"})
        assert keys.first_key(entry, keys.RESPONSE_REFERENCE_STRATEGIES) == "R9"


class TestAnonymous:

    def test_empty_payload(self):
        assert keys.is_anonymous(json_entry(RSP, {}))

    def test_parse_error(self):
        assert keys.is_anonymous(json_entry(RSP, ParseError("Expecting value")))

    def test_status_only(self):
        assert keys.is_anonymous(json_entry(RSP, {"responseStatus": "96", "responseMessage": "error"}))

    def test_non_object_payload(self):
        assert keys.is_anonymous(json_entry(RSP, [1, 2, 3]))

    def test_identified_shapes(self):
        for fields in (
            {"referenceNumber": "R1"},
            {"data": {"traceNumber": "T1"}},
            {"transactionInfo": {"referenceNumber": "R1"}},
            {"data": {"transactionInfo": {"referenceNumber": "R1"}}},
        ):
            assert not keys.is_anonymous(json_entry(RSP, fields)), fields
