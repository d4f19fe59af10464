"""Tests for the fixed-field and JSON tokenizers."""

import pytest

from switchrecon.models import Channel, Direction, ParseError
from switchrecon.tokenizers import tokenize_fixed_field, tokenize_json


# ------------------------------------------------------------------
# Fixed-field channel
# ------------------------------------------------------------------

class TestFixedField:

    def test_request_and_response(self, fixed_request_chunk, fixed_response_chunk):
        entries = tokenize_fixed_field(fixed_request_chunk + fixed_response_chunk)

        assert len(entries) == 2
        req, rsp = entries
        assert req.direction is Direction.REQUEST
        assert req.channel is Channel.FIXED_FIELD
        assert req.mti == "0200"
        assert req.timestamp == "15 Jan 2024 10:00:00.123"
        assert req.fields == {
            "003": "401000",
            "004": "000000100000",
            "011": "123456",
            "037": "REF000000001",
        }
        assert rsp.direction is Direction.RESPONSE
        assert rsp.fields["039"] == "00"

    def test_body_runs_to_next_header(self):
        text = "[15 Jan 2024 10:00:00.000] <0200>\nField 011: [1]\n[15 Jan 2024 10:00:01.000] <0210>\nField 011: [1]\n"
        first, second = tokenize_fixed_field(text)
        assert first.raw_body == "\nField 011: [1]\n"
        assert second.raw_body == "\nField 011: [1]\n"

    def test_field_order_and_duplicates(self):
        text = "[15 Jan 2024 10:00:00.000] <0200>\nField 011: [1]\nField 003: [x]\nField 011: [2]\n"
        (entry,) = tokenize_fixed_field(text)
        assert list(entry.fields) == ["011", "003"]
        assert entry.fields["011"] == "2"

    def test_idempotent(self, fixed_request_chunk, fixed_response_chunk):
        text = fixed_request_chunk + fixed_response_chunk
        assert tokenize_fixed_field(text) == tokenize_fixed_field(text)

    def test_fallback_entry_keeps_whole_input(self):
        text = "Field 011: [999]\nsome trailing text without any header"
        entries = tokenize_fixed_field(text)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.direction is Direction.REQUEST
        assert entry.mti == "0000"
        assert entry.raw_body == text
        assert entry.fields == {"011": "999"}
        assert entry.timestamp

    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t"])
    def test_blank_input_yields_nothing(self, text):
        assert tokenize_fixed_field(text) == []

    def test_malformed_timestamp_still_opens_entry(self):
        (entry,) = tokenize_fixed_field("9999-99-99 99:99:99.999 <0210>\n039: 05\n")
        assert entry.timestamp == "9999-99-99 99:99:99.999"
        assert entry.direction is Direction.RESPONSE
        assert entry.fields == {"039": "05"}

    def test_header_without_mti(self):
        (entry,) = tokenize_fixed_field("2024-01-15 10:00:00.000\nField 011: [1]\n")
        assert entry.mti == "0000"
        assert entry.direction is Direction.REQUEST

    def test_text_before_first_header_is_not_an_entry(self):
        entries = tokenize_fixed_field("noise\n[15 Jan 2024 10:00:00.000] <0200>\nField 011: [1]\n")
        assert len(entries) == 1
        assert entries[0].fields == {"011": "1"}

    def test_rejects_non_text(self):
        with pytest.raises(TypeError):
            tokenize_fixed_field(None)


# ------------------------------------------------------------------
# JSON channel
# ------------------------------------------------------------------

class TestJson:

    def test_multiline_and_inline_payloads(self, json_chunk):
        entries = tokenize_json(json_chunk)

        assert len(entries) == 2
        req, rsp = entries
        assert req.channel is Channel.JSON
        assert req.direction is Direction.REQUEST
        assert req.timestamp == "2024-01-15 10:00:00.200"
        assert req.fields == {
            "mti": "0200",
            "referenceNumber": "R1",
            "pcode": "401000",
            "traceNumber": "000111",
        }
        assert req.raw_body.startswith("[2024-01-15 10:00:00.200] REQ\n")
        assert req.mti is None
        assert rsp.direction is Direction.RESPONSE
        assert rsp.fields["data"] == {"referenceNumber": "R1"}

    def test_malformed_payload_becomes_marker(self):
        entries = tokenize_json('2024-01-15 10:00:00 REQ {"a": }\n2024-01-15 10:00:01 RSP {}\n')

        assert len(entries) == 2
        assert isinstance(entries[0].fields, ParseError)
        assert entries[0].has_parse_error
        assert entries[0].fields.message
        assert entries[1].fields == {}

    def test_deeply_nested_payload_becomes_marker(self):
        nested = '{"a": ' + "[" * 100000 + "]" * 100000 + "}"
        entries = tokenize_json(
            f"2024-01-15 10:00:00 REQ {nested}\n"
            '2024-01-15 10:00:01 RSP {"responseStatus": "00"}\n'
        )

        assert len(entries) == 2
        assert entries[0].has_parse_error
        assert entries[1].fields == {"responseStatus": "00"}

    def test_entry_without_payload_has_empty_fields(self):
        (entry,) = tokenize_json("2024-01-15 10:00:00 RSP timeout, no body\n")
        assert entry.fields == {}
        assert not entry.has_parse_error

    def test_lines_before_first_header_are_skipped(self):
        entries = tokenize_json('noise {"x": 1}\n2024-01-15 10:00:00 RSP {"responseStatus": "05"}\n')
        assert len(entries) == 1
        assert entries[0].fields == {"responseStatus": "05"}

    def test_empty_input(self):
        assert tokenize_json("") == []

    def test_idempotent(self, json_chunk):
        assert tokenize_json(json_chunk) == tokenize_json(json_chunk)

    def test_rejects_non_text(self):
        with pytest.raises(TypeError):
            tokenize_json(b"2024-01-15 10:00:00 REQ {}")
