"""
Tests for the bounds checked decode cursor.
"""

import logging

import pytest

from s7dissect.cursor import DecodeCursor
from s7dissect.error import LengthMismatch, OutOfBounds


class TestDecodeCursor:
    """Test reads, windows and diagnostics."""

    def test_fixed_width_reads(self):
        cursor = DecodeCursor(bytes.fromhex("0102030405060708"))
        assert cursor.read_u8() == 0x01
        assert cursor.read_u16() == 0x0203
        assert cursor.read_u24() == 0x040506
        assert cursor.remaining == 2
        assert cursor.read_i16() == 0x0708

    def test_signed_reads(self):
        cursor = DecodeCursor(bytes.fromhex("fffffe"))
        assert cursor.read_i8() == -1
        assert cursor.read_i16() == -2

    def test_out_of_bounds(self):
        cursor = DecodeCursor(b"\x01")
        with pytest.raises(OutOfBounds) as excinfo:
            cursor.read_u16()
        assert excinfo.value.offset == 0
        assert excinfo.value.wanted == 2
        assert excinfo.value.available == 1
        assert cursor.position == 0

    def test_read_ascii_strips_padding(self):
        assert DecodeCursor(b"AB\x00\x00").read_ascii(4) == "AB"

    def test_peek_does_not_advance(self):
        cursor = DecodeCursor(bytes.fromhex("7201020304"))
        assert cursor.peek_u8() == 0x72
        assert cursor.peek_u8(1) == 0x01
        assert cursor.peek_u16() == 0x7201
        assert cursor.peek_u32() == 0x72010203
        assert cursor.position == 0

    def test_window_offsets_are_absolute(self):
        cursor = DecodeCursor(bytes(range(10)))
        cursor.skip(3)
        window = cursor.window(4, "block")
        assert cursor.position == 7
        assert window.read_u8() == 3
        assert window.position == 4
        assert window.remaining == 3

    def test_window_clamps(self):
        cursor = DecodeCursor(bytes(6))
        cursor.skip(2)
        window = cursor.window(10, "data")
        assert window.remaining == 4
        assert cursor.at_end()
        assert len(cursor.errors) == 1
        assert isinstance(cursor.errors[0], LengthMismatch)
        assert cursor.errors[0].offset == 2
        assert cursor.errors[0].expected == 10
        assert cursor.errors[0].actual == 4
        assert window.errors is cursor.errors

    def test_window_bounds_reads(self):
        cursor = DecodeCursor(bytes(4))
        window = cursor.window(2)
        window.skip(2)
        with pytest.raises(OutOfBounds):
            window.read_u8()

    def test_vlq_reads(self):
        cursor = DecodeCursor(bytes([0x81, 0x00, 0x40]))
        assert cursor.read_varuint32() == 128
        assert cursor.read_varint32() == -64
        assert cursor.at_end()

    def test_vlq_respects_window(self):
        cursor = DecodeCursor(bytes([0x81, 0x00]))
        window = cursor.window(1)
        with pytest.raises(OutOfBounds):
            window.read_varuint32()

    def test_report_logs_warning(self, caplog):
        cursor = DecodeCursor(b"")
        with caplog.at_level(logging.WARNING):
            cursor.report(OutOfBounds(5, 2, 1))
        assert "OutOfBounds at offset 5" in caplog.text
        assert cursor.errors == [OutOfBounds(5, 2, 1)]
