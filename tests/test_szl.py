"""
Tests for the SZL record catalogue and the list decoder.
"""

import struct

import pytest

from s7dissect.cursor import DecodeCursor
from s7dissect.error import LengthMismatch
from s7dissect.szl import (
    SZL_RECORDS,
    OpaqueSzlRecord,
    SzlId,
    SzlRecord,
    decode_szl_record,
    decode_szl_response,
    encode_szl_record,
)


def szl_header(szl_id: int, index: int, list_length: int, list_count: int) -> bytes:
    return struct.pack(">HHHH", szl_id, index, list_length, list_count)


class TestSzlId:
    """Test splitting of the SZL-ID."""

    def test_split(self):
        szl_id = SzlId(0x0424)
        assert szl_id.diagnostic_type == 0x0
        assert szl_id.extract == 0x4
        assert szl_id.partial_list == 0x24
        assert szl_id.diagnostic_type_name == "CPU"
        assert szl_id.partial_list_name == "Modes"
        assert int(szl_id) == 0x0424

    def test_module_class(self):
        assert SzlId(0xC131).diagnostic_type_name == "CP"
        assert SzlId(0x4131).diagnostic_type_name == "IM"
        assert SzlId(0x1131).diagnostic_type_name is None


class TestSzlRecord:
    """Test the fixed record layouts."""

    @pytest.mark.parametrize("key", sorted(SZL_RECORDS))
    def test_round_trip(self, key):
        layout = SZL_RECORDS[key]
        data = bytes((i * 7 + 3) & 0xFF for i in range(layout.size))
        record = decode_szl_record(key[0], key[1], data)
        assert isinstance(record, SzlRecord)
        assert encode_szl_record(record) == data

    def test_round_trip_with_extra(self):
        data = bytes(range(30)) + b"\x01\x02"
        record = decode_szl_record(0x0132, 0x0001, data)
        assert record.extra == b"\x01\x02"
        assert encode_szl_record(record) == data

    def test_unknown_pair_is_opaque(self):
        record = decode_szl_record(0x0A00, 0x0000, b"\x01\x02\x03")
        assert record == OpaqueSzlRecord(szl_id=0x0A00, index=0, raw=b"\x01\x02\x03")
        assert encode_szl_record(record) == b"\x01\x02\x03"

    def test_short_record_is_opaque(self):
        assert isinstance(decode_szl_record(0x0111, 0x0001, bytes(10)), OpaqueSzlRecord)

    def test_module_identification(self):
        data = struct.pack(">H20sHHH", 1, b"6ES7 315-2EH14-0AB0 ", 0, 0x0001, 0x0001)
        record = decode_szl_record(0x0111, 0x0001, data)
        assert record.values["mlfb"] == "6ES7 315-2EH14-0AB0 "
        assert encode_szl_record(record) == data

    def test_value_names(self):
        data = struct.pack(">HHIHHIIIIII", 0x0001, 0x0001, 0x40000, 0x0001, 0, 0, 0, 0, 0, 0, 0)
        record = decode_szl_record(0x0013, 0x0000, data)
        assert record.value_name("index") == "work memory"
        assert record.value_name("code") == "volatile memory (RAM)"
        assert record.value_name("size") is None
        assert record.flags("mode") == ["Volatile memory area"]

    def test_mode_transition(self):
        data = struct.pack(">HBB4s4B8s", 0x4303, 0xFF, 0x38, b"\x00" * 4, 0, 0x03, 0, 0, b"\x00" * 8)
        record = decode_szl_record(0x0424, 0x0000, data)
        assert record.value_name("bzu_id") == "STOP (self initialization) -> RUN"
        assert record.value_name("anlinfo2") == "Complete restart set at mode selector"

    def test_capability_flags(self):
        data = bytes([0x00, 0x01, 0x06]) + bytes(37)
        record = decode_szl_record(0x0131, 0x0002, data)
        assert record.flags("funkt_0") == ["Block status", "Variable status"]


class TestSzlResponse:
    """Test decoding of read-SZL response lists."""

    def test_single_record(self):
        record = struct.pack(">H5H28s", 4, 3, 0, 0, 1, 2, bytes(28))
        cursor = DecodeCursor(szl_header(0x0132, 0x0004, 40, 1) + record)
        response = decode_szl_response(cursor, 48)
        assert response.szl_id == SzlId(0x0132)
        assert response.index == 0x0004
        assert not response.truncated
        assert response.records[0].values["key"] == 3
        assert response.records[0].value_name("bart_sch") == "RUN"
        assert cursor.at_end()
        assert cursor.errors == []

    def test_fragmented_list_is_clamped(self):
        data = szl_header(0x0A00, 0x0000, 20, 10) + bytes(range(100)) + bytes(12)
        cursor = DecodeCursor(data, end=108)
        response = decode_szl_response(cursor, 8 + 200)
        assert len(response.records) == 5
        assert response.truncated
        assert response.tail == b""
        assert cursor.position == 108
        assert isinstance(cursor.errors[0], LengthMismatch)

    def test_partial_record_in_tail(self):
        data = szl_header(0x0A00, 0x0000, 20, 10) + bytes(110)
        cursor = DecodeCursor(data)
        response = decode_szl_response(cursor, 8 + 200)
        assert len(response.records) == 5
        assert response.truncated
        assert response.tail == bytes(10)
        assert cursor.at_end()

    def test_declared_length_limits_records(self):
        data = szl_header(0x0A00, 0x0000, 4, 3) + bytes(12)
        cursor = DecodeCursor(data)
        response = decode_szl_response(cursor, 8 + 8)
        assert len(response.records) == 2
        assert response.truncated
        assert response.tail == b""

    def test_empty_list(self):
        cursor = DecodeCursor(szl_header(0x0000, 0x0000, 0, 0) + b"\xaa")
        response = decode_szl_response(cursor, 8)
        assert response.records == []
        assert not response.truncated
        assert cursor.errors == []
        assert cursor.remaining == 1

    def test_zero_length_records(self):
        cursor = DecodeCursor(szl_header(0x0000, 0x0000, 0, 5))
        response = decode_szl_response(cursor, 8)
        assert response.records == []
        assert not response.truncated
