"""
Tests for the JSON rendering of decoded PDUs.
"""

import json
from datetime import datetime

from s7dissect import dissect, to_dict, to_json
from s7dissect.datatypes import S7CommPlusDatatypeFlags, S7PDUType
from s7dissect.error import OutOfBounds

SETUP_COMMUNICATION = bytes.fromhex("32010000040000080000" "f0000001000101e0")


class TestToDict:
    """Test the conversion of result trees."""

    def test_scalars(self):
        assert to_dict(b"\x2a\xff") == "2aff"
        assert to_dict(datetime(2014, 7, 12, 17, 32, 2)) == "2014-07-12T17:32:02"
        assert to_dict(5) == 5
        assert to_dict(None) is None

    def test_enum(self):
        assert to_dict(S7PDUType.JOB) == {"value": 1, "name": "JOB"}

    def test_flags(self):
        flags = S7CommPlusDatatypeFlags.ARRAY | S7CommPlusDatatypeFlags.STRING_SPECIAL
        assert to_dict(flags) == {"value": 0x50, "flags": ["ARRAY", "STRING_SPECIAL"]}

    def test_error(self):
        assert to_dict(OutOfBounds(12, 2, 1)) == {
            "kind": "OutOfBounds",
            "offset": 12,
            "message": OutOfBounds(12, 2, 1).message,
        }

    def test_pdu(self):
        result = to_dict(dissect(SETUP_COMMUNICATION))
        assert result["type"] == "ClassicJobAck"
        assert result["header"]["rosctr"] == {"value": 1, "name": "JOB"}
        assert result["header"]["pdu_ref"] == 0x0400
        assert result["header"]["error_class"] is None
        assert result["body"]["type"] == "SetupCommunication"
        assert result["body"]["pdu_length"] == 480
        assert result["errors"] == []
        assert result["trailing"] == ""

    def test_partial_pdu(self):
        result = to_dict(dissect(bytes.fromhex("32010000000100020000f000")))
        assert result["body"]["type"] == "OpaqueParameter"
        assert result["body"]["parameter"] == "00"
        assert result["errors"][0]["kind"] == "OutOfBounds"
        assert result["errors"][0] == result["body"]["error"]


class TestToJson:
    """Test the JSON serialization."""

    def test_indented(self):
        text = to_json(dissect(SETUP_COMMUNICATION))
        assert "\n" in text
        assert json.loads(text)["body"]["max_amq_calling"] == 1

    def test_one_line(self):
        text = to_json(dissect(bytes.fromhex("72ff0500")), indent=0)
        assert "\n" not in text
        assert json.loads(text)["header"]["sequence_number"] == 5
