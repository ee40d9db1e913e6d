"""
Classic S7comm item codecs.

Address items (the variable specifications of a Read/Write Var parameter
block) in their four syntaxes, and the data items returned by a read or sent
by a write.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .cursor import DecodeCursor
from .datatypes import (
    S7Area,
    S7DataTransportSize,
    S7ReturnCode,
    S7SyntaxId,
    S7Tia1200Area,
    S7Tia1200LidFlag,
    S7WordLen,
    TIA_AREA1_DB,
    TIA_AREA1_IQMCT,
    lookup,
)
from .error import S7DecodeError, return_code_text

logger = logging.getLogger(__name__)

#: variable specification type of every known address item
VAR_SPEC_TYPE = 0x12

#: size in bytes of a single element per item transport size
WORD_LEN_SIZE = {
    S7WordLen.BIT: 1,
    S7WordLen.BYTE: 1,
    S7WordLen.CHAR: 1,
    S7WordLen.WORD: 2,
    S7WordLen.INT: 2,
    S7WordLen.DWORD: 4,
    S7WordLen.DINT: 4,
    S7WordLen.REAL: 4,
    S7WordLen.DATE: 2,
    S7WordLen.TOD: 4,
    S7WordLen.TIME: 4,
    S7WordLen.S5TIME: 2,
    S7WordLen.DATE_AND_TIME: 8,
    S7WordLen.COUNTER: 2,
    S7WordLen.TIMER: 2,
    S7WordLen.IEC_COUNTER: 4,
    S7WordLen.IEC_TIMER: 4,
    S7WordLen.HS_COUNTER: 4,
}


@dataclass
class S7AnyItem:
    """S7-Any pointer, e.g. DB1.DBX10.2 with a repetition count."""

    transport_size: Union[S7WordLen, int]
    length: int
    db_number: int
    area: Union[S7Area, int]
    address: int  # byte position * 8 + bit position
    syntax_id: int = S7SyntaxId.S7ANY

    @property
    def byte_address(self) -> int:
        return self.address >> 3

    @property
    def bit_address(self) -> int:
        return self.address & 0x07

    @property
    def length_in_bytes(self) -> int:
        """Number of bytes covered by the item; bit granular items round up to whole bytes."""
        if self.transport_size == S7WordLen.BIT:
            return (self.length + 7) // 8
        return WORD_LEN_SIZE.get(self.transport_size, 1) * self.length


@dataclass
class DbReadItem:
    """The S7-400 DB read form."""

    fixed: int
    number_of_bytes: int
    db_number: int
    start_address: int
    extra: bytes = b""
    syntax_id: int = S7SyntaxId.DBREAD


@dataclass
class Tia1200Lid:
    """One nesting level of a symbolic S7-1200 address."""

    flags: Union[S7Tia1200LidFlag, int]
    value: int  # 28 bit


@dataclass
class Tia1200SymbolicItem:
    """Symbolic S7-1200 address: root area or DB, name CRC and the LID chain."""

    reserved: int
    area1: int
    area2: int
    crc: int
    lids: List[Tia1200Lid] = field(default_factory=list)
    extra: bytes = b""
    syntax_id: int = S7SyntaxId.S1200SYM

    @property
    def root_area(self) -> Optional[Union[S7Tia1200Area, int]]:
        if self.area1 == TIA_AREA1_IQMCT:
            return lookup(S7Tia1200Area, self.area2)
        return None

    @property
    def db_number(self) -> Optional[int]:
        if self.area1 == TIA_AREA1_DB:
            return self.area2
        return None


@dataclass
class UnknownAddressItem:
    """Variable specification in an unknown syntax, kept as raw bytes."""

    syntax_id: int
    raw: bytes


@dataclass
class OpaqueItem:
    """An item that could not be decoded; its bytes and the reason are kept."""

    raw: bytes
    error: S7DecodeError


AddressItem = Union[S7AnyItem, DbReadItem, Tia1200SymbolicItem, UnknownAddressItem]


@dataclass
class DataItem:
    """A read result or write value: return code, transport size, length, payload."""

    return_code: Union[S7ReturnCode, int]
    transport_size: Union[S7DataTransportSize, int]
    length: int  # as declared, bits or bytes depending on the transport size
    payload: bytes = b""
    fill_byte: Optional[int] = None

    @property
    def length_in_bytes(self) -> int:
        return data_length_in_bytes(self.transport_size, self.length)

    @property
    def ok(self) -> bool:
        return self.return_code == S7ReturnCode.OK

    @property
    def return_code_text(self) -> str:
        return return_code_text(int(self.return_code))


def data_length_in_bytes(transport_size: int, length: int) -> int:
    """Converts a declared data length to bytes; bit counted sizes round up.

    Examples:
        >>> data_length_in_bytes(S7DataTransportSize.BYTE, 1)
        1
        >>> data_length_in_bytes(S7DataTransportSize.OCTET_STRING, 3)
        3
    """
    if S7DataTransportSize.length_in_bits(transport_size):
        return (length + 7) // 8
    return length


def decode_address_item(cursor: DecodeCursor) -> AddressItem:
    """
    Decodes one variable specification.

    The 2 byte head (type, length) bounds the item; whatever the syntax
    specific layout does not consume is kept in ``extra``.

    Args:
        cursor: positioned on the variable specification type byte

    Returns:
        one of the four address item variants
    """
    var_spec_type = cursor.read_u8()
    var_spec_length = cursor.read_u8()
    body = cursor.window(var_spec_length, "variable specification")
    syntax_id = body.read_u8()

    if var_spec_type == VAR_SPEC_TYPE and var_spec_length == 10 and syntax_id == S7SyntaxId.S7ANY:
        return S7AnyItem(
            transport_size=lookup(S7WordLen, body.read_u8()),
            length=body.read_u16(),
            db_number=body.read_u16(),
            area=lookup(S7Area, body.read_u8()),
            address=body.read_u24(),
        )

    if var_spec_type == VAR_SPEC_TYPE and var_spec_length >= 7 and syntax_id == S7SyntaxId.DBREAD:
        return DbReadItem(
            fixed=body.read_u8(),
            number_of_bytes=body.read_u8(),
            db_number=body.read_u16(),
            start_address=body.read_u16(),
            extra=body.read_rest(),
        )

    if var_spec_type == VAR_SPEC_TYPE and var_spec_length >= 14 and syntax_id == S7SyntaxId.S1200SYM:
        item = Tia1200SymbolicItem(
            reserved=body.read_u8(),
            area1=body.read_u16(),
            area2=body.read_u16(),
            crc=body.read_u32(),
        )
        for _ in range((var_spec_length - 10) // 4):
            value = body.read_u32()
            item.lids.append(Tia1200Lid(flags=lookup(S7Tia1200LidFlag, value >> 28), value=value & 0x0FFFFFFF))
        item.extra = body.read_rest()
        return item

    logger.debug(f"unknown variable specification {var_spec_type:#04x}/{syntax_id:#04x}")
    return UnknownAddressItem(syntax_id=syntax_id, raw=body.read_rest())


def decode_data_item(cursor: DecodeCursor, last: bool) -> DataItem:
    """
    Decodes one data item of a read response or write request.

    The payload is only present when the return code is OK or Reserved. A
    payload of odd length that is not the last item is followed by one fill
    byte, which is consumed but not part of the payload.

    Args:
        cursor: positioned on the return code
        last: whether this is the last item of the sequence
    """
    item = DataItem(
        return_code=lookup(S7ReturnCode, cursor.read_u8()),
        transport_size=lookup(S7DataTransportSize, cursor.read_u8()),
        length=cursor.read_u16(),
    )
    if item.return_code in (S7ReturnCode.OK, S7ReturnCode.RESERVED):
        size = item.length_in_bytes
        item.payload = cursor.read_bytes(size)
        if size % 2 and not last:
            item.fill_byte = cursor.read_u8()
    return item


def decode_item_sequence(cursor: DecodeCursor, count: int, decode) -> List:
    """
    Decodes ``count`` items with ``decode(cursor, last)``.

    A failing item is recorded as diagnostic and replaced by an
    :class:`OpaqueItem` holding the rest of the enclosing block, since the
    boundary of the following item is unknown from then on.
    """
    items: List = []
    for index in range(count):
        start = cursor.position
        try:
            items.append(decode(cursor, index == count - 1))
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            items.append(OpaqueItem(raw=cursor.read_rest(), error=e))
            break
    return items


def decode_address_items(cursor: DecodeCursor, count: int) -> List:
    """Decodes the address items of a Read/Write Var parameter block."""

    def decode(cur: DecodeCursor, last: bool) -> AddressItem:
        start = cur.position
        item = decode_address_item(cur)
        if (cur.position - start) % 2 and not last:
            cur.skip(1)
        return item

    return decode_item_sequence(cursor, count, decode)


def decode_data_items(cursor: DecodeCursor, count: int) -> List:
    """Decodes the data items of a read response or a write request."""
    return decode_item_sequence(cursor, count, decode_data_item)


def decode_return_codes(cursor: DecodeCursor, count: int) -> List:
    """Decodes the one byte per item answer to a Write Var job."""
    return decode_item_sequence(cursor, count, lambda cur, last: lookup(S7ReturnCode, cur.read_u8()))
