"""
Tests for the classic address item and data item codecs.
"""

from s7dissect.cursor import DecodeCursor
from s7dissect.datatypes import (
    S7Area,
    S7DataTransportSize,
    S7ReturnCode,
    S7Tia1200Area,
    S7Tia1200LidFlag,
    S7WordLen,
)
from s7dissect.error import OutOfBounds
from s7dissect.items import (
    DbReadItem,
    OpaqueItem,
    S7AnyItem,
    Tia1200SymbolicItem,
    UnknownAddressItem,
    data_length_in_bytes,
    decode_address_item,
    decode_address_items,
    decode_data_items,
    decode_return_codes,
)

# DB1.DBB10, one byte
S7ANY_DB1_DBB10 = bytes.fromhex("120a10020001000184000050")
DB_READ = bytes.fromhex("1207b00104000500" "10")
TIA_SYMBOLIC = bytes.fromhex("120eb2008a0e00051234567840000002")


class TestAddressItem:
    """Test the four variable specification syntaxes."""

    def test_s7any(self):
        cursor = DecodeCursor(S7ANY_DB1_DBB10)
        item = decode_address_item(cursor)
        assert isinstance(item, S7AnyItem)
        assert item.transport_size == S7WordLen.BYTE
        assert item.length == 1
        assert item.db_number == 1
        assert item.area == S7Area.DB
        assert item.byte_address == 10
        assert item.bit_address == 0
        assert cursor.at_end()

    def test_s7any_bit_address(self):
        item = decode_address_item(DecodeCursor(bytes.fromhex("120a10010001000083000055")))
        assert item.area == S7Area.MK
        assert item.byte_address == 10
        assert item.bit_address == 5

    def test_s7any_length_in_bytes(self):
        assert S7AnyItem(S7WordLen.BIT, 10, 0, S7Area.MK, 0).length_in_bytes == 2
        assert S7AnyItem(S7WordLen.WORD, 3, 1, S7Area.DB, 0).length_in_bytes == 6
        assert S7AnyItem(S7WordLen.REAL, 2, 1, S7Area.DB, 0).length_in_bytes == 8

    def test_db_read(self):
        cursor = DecodeCursor(DB_READ)
        item = decode_address_item(cursor)
        assert item == DbReadItem(fixed=0x01, number_of_bytes=4, db_number=5, start_address=0x10)
        assert cursor.at_end()

    def test_tia_symbolic_db(self):
        item = decode_address_item(DecodeCursor(TIA_SYMBOLIC))
        assert isinstance(item, Tia1200SymbolicItem)
        assert item.db_number == 5
        assert item.root_area is None
        assert item.crc == 0x12345678
        assert len(item.lids) == 1
        assert item.lids[0].flags == S7Tia1200LidFlag.OBTAIN_BY_LID
        assert item.lids[0].value == 2

    def test_tia_symbolic_root_area(self):
        item = decode_address_item(DecodeCursor(bytes.fromhex("120eb20000000052000000013000000a")))
        assert item.db_number is None
        assert item.root_area == S7Tia1200Area.M
        assert item.lids[0].flags == S7Tia1200LidFlag.ENCAPSULATED_INDEX
        assert item.lids[0].value == 10

    def test_unknown_syntax(self):
        cursor = DecodeCursor(bytes.fromhex("1204ffaabbcc"))
        item = decode_address_item(cursor)
        assert item == UnknownAddressItem(syntax_id=0xFF, raw=bytes.fromhex("aabbcc"))
        assert cursor.at_end()

    def test_odd_items_are_padded(self):
        cursor = DecodeCursor(DB_READ + b"\x00" + DB_READ)
        items = decode_address_items(cursor, 2)
        assert len(items) == 2
        assert all(isinstance(item, DbReadItem) for item in items)
        assert cursor.at_end()

    def test_last_item_not_padded(self):
        cursor = DecodeCursor(DB_READ + b"\x00")
        decode_address_items(cursor, 1)
        assert cursor.remaining == 1

    def test_missing_item(self):
        cursor = DecodeCursor(S7ANY_DB1_DBB10)
        items = decode_address_items(cursor, 2)
        assert isinstance(items[0], S7AnyItem)
        assert isinstance(items[1], OpaqueItem)
        assert items[1].raw == b""
        assert isinstance(cursor.errors[0], OutOfBounds)


class TestDataItem:
    """Test read results and write values."""

    def test_single_byte(self):
        cursor = DecodeCursor(bytes.fromhex("ff0400012a"))
        (item,) = decode_data_items(cursor, 1)
        assert item.return_code == S7ReturnCode.OK
        assert item.transport_size == S7DataTransportSize.BYTE
        assert item.payload == b"\x2a"
        assert item.fill_byte is None
        assert item.ok
        assert cursor.at_end()

    def test_fill_byte_between_items(self):
        cursor = DecodeCursor(bytes.fromhex("ff0400082a00" "ff0400100102"))
        first, second = decode_data_items(cursor, 2)
        assert first.payload == b"\x2a"
        assert first.fill_byte == 0
        assert second.payload == b"\x01\x02"
        assert cursor.at_end()

    def test_octet_string_counts_bytes(self):
        (item,) = decode_data_items(DecodeCursor(bytes.fromhex("ff090003616263")), 1)
        assert item.payload == b"abc"
        assert item.length_in_bytes == 3

    def test_error_item_has_no_payload(self):
        cursor = DecodeCursor(bytes.fromhex("0a000000" "ff0400082a"))
        first, second = decode_data_items(cursor, 2)
        assert first.return_code == S7ReturnCode.OBJECT_MISSING
        assert first.payload == b""
        assert not first.ok
        assert first.return_code_text == "Object does not exist"
        assert second.payload == b"\x2a"

    def test_truncated_payload(self):
        cursor = DecodeCursor(bytes.fromhex("ff04002001"))
        (item,) = decode_data_items(cursor, 1)
        assert isinstance(item, OpaqueItem)
        assert item.raw == bytes.fromhex("ff04002001")
        assert isinstance(item.error, OutOfBounds)
        assert cursor.errors == [item.error]

    def test_length_in_bytes(self):
        assert data_length_in_bytes(S7DataTransportSize.BIT, 1) == 1
        assert data_length_in_bytes(S7DataTransportSize.BYTE, 16) == 2
        assert data_length_in_bytes(S7DataTransportSize.INTEGER, 17) == 3
        assert data_length_in_bytes(S7DataTransportSize.REAL, 4) == 4

    def test_return_codes(self):
        codes = decode_return_codes(DecodeCursor(b"\xff\x0a"), 2)
        assert codes == [S7ReturnCode.OK, S7ReturnCode.OBJECT_MISSING]
