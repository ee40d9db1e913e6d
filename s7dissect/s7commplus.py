"""
S7comm-Plus protocol decoder.

S7comm-Plus is spoken by the S7-1200 and S7-1500. A telegram has a 4 byte
header, a body of the declared data length and usually a 4 byte trailer
repeating protocol id and PDU type. Integers in the body are mostly encoded
as variable length quantities, see :mod:`s7dissect.primitives`.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .cursor import DecodeCursor
from .datatypes import (
    CONNECT_FUNCTIONS,
    CYCLIC_DATASET_WITH_ITEMS,
    DATA_FUNCTIONS,
    EXPLORE_NUMBERED_AREAS,
    S7COMMP_MIN_TELEGRAM_LENGTH,
    S7COMMP_PROTOCOL_ID,
    TIA_AREA1_DB,
    TIA_AREA1_IQMCT,
    S7CommPlusBaseArea,
    S7CommPlusCyclicReturn,
    S7CommPlusDatatype,
    S7CommPlusDatatypeFlags,
    S7CommPlusExploreArea,
    S7CommPlusFunction,
    S7CommPlusOpcode,
    S7CommPlusPDUType,
    S7CommPlusSessionValueType,
    S7CommPlusSyntaxId,
    S7Tia1200Area,
    lookup,
)
from .error import LengthMismatch, S7DecodeError, S7ProtocolError, UnknownVariant, UnsupportedEncoding
from .items import OpaqueItem, decode_item_sequence
from .types import PlusConnect, PlusData, PlusHeader, PlusKeepAlive, PlusPdu, PlusTrailer

logger = logging.getLogger(__name__)

#: unknown bytes in front of the attributes of a start session telegram
START_SESSION_PREFIX_LENGTH = 16

#: constant part at the end of read and write requests
RW_REQUEST_TRAILER_LENGTH = 27

UNIX_EPOCH = datetime(1970, 1, 1)


@dataclass
class PlusValue:
    """
    A typed value, scalar or array.

    For arrays ``value`` is a list holding one element per entry, except for
    arrays of Null, which carry no bytes and keep only ``array_size``. A Blob
    without the special string flag carries one reserved byte in front of its
    size; an S7String carries its maximum length.
    """

    flags: S7CommPlusDatatypeFlags
    datatype: Union[S7CommPlusDatatype, int]
    value: Any = None
    array_size: Optional[int] = None
    reserved: Optional[int] = None
    max_length: Optional[int] = None

    @property
    def is_array(self) -> bool:
        return bool(self.flags & (S7CommPlusDatatypeFlags.ARRAY | S7CommPlusDatatypeFlags.ADDRESS_ARRAY))

    @property
    def struct_openings(self) -> int:
        """Number of struct levels opened by this value."""
        if self.datatype != S7CommPlusDatatype.STRUCT:
            return 0
        return len(self.value) if self.is_array else 1


@dataclass
class PlusLidChain:
    """Symbolic address of a read or write item."""

    crc: int
    area: int
    nesting_depth: int
    base_area: Union[S7CommPlusBaseArea, int]
    lids: List[int] = field(default_factory=list)

    @property
    def area1(self) -> int:
        return self.area >> 16

    @property
    def area2(self) -> int:
        return self.area & 0xFFFF

    @property
    def db_number(self) -> Optional[int]:
        if self.area1 == TIA_AREA1_DB:
            return self.area2
        return None

    @property
    def root_area(self) -> Optional[Union[S7Tia1200Area, int]]:
        if self.area1 == TIA_AREA1_IQMCT:
            return lookup(S7Tia1200Area, self.area2)
        return None


@dataclass
class PlusItemValue:
    item_number: int
    value: PlusValue
    depth: int = 1  # struct nesting level


@dataclass
class PlusErrorItem:
    item_number: int
    flags: int
    error_value1: int
    error_value2: int


@dataclass
class PlusWriteItem:
    address: PlusLidChain
    item_number: int
    value: PlusValue


@dataclass
class PlusSessionAttribute:
    tag_id: int
    type_id: Union[S7CommPlusSessionValueType, int]
    value: Any


@dataclass
class PlusOpaqueBody:
    """Body or payload that is not (or could not be) decoded."""

    raw: bytes
    error: Optional[S7DecodeError] = None


@dataclass
class PlusCyclicItem:
    """
    One item of a cyclic dataset.

    ``reference`` is the item reference number given when subscribing; for
    the vartab return value it is an unknown 4 byte value. Only successful
    items carry a value.
    """

    return_value: Union[S7CommPlusCyclicReturn, int]
    reference: int
    value: Optional[PlusValue] = None
    depth: int = 1


@dataclass
class PlusCyclic:
    """
    Cyclic data pushed by the PLC.

    Only datasets with ``unknown2`` 0x0400 carry a sequence number and items;
    bytes behind the items stay in ``raw``.
    """

    opcode: Union[S7CommPlusOpcode, int]
    session_id: int
    unknown2: Optional[int] = None
    unknown1: Optional[int] = None
    reserved1: Optional[int] = None
    sequence_number: Optional[int] = None
    reserved2: Optional[int] = None
    items: List = field(default_factory=list)
    raw: bytes = b""
    error: Optional[S7DecodeError] = None


@dataclass
class PlusBody:
    """Head of a Request or Response body and the function specific payload."""

    opcode: Union[S7CommPlusOpcode, int]
    reserved1: int
    function: Union[S7CommPlusFunction, int]
    reserved2: int
    sequence_number: int
    session_id: Optional[int] = None
    reserved3: Optional[int] = None
    payload: Any = None

    @property
    def is_request(self) -> bool:
        return self.opcode == S7CommPlusOpcode.REQUEST


@dataclass
class StartSession:
    prefix: bytes
    attributes: List[PlusSessionAttribute] = field(default_factory=list)


@dataclass
class EndSession:
    session_id: int
    result: Optional[int] = None


@dataclass
class ModifySession:
    session_id: int
    item_count: int
    values: List = field(default_factory=list)


@dataclass
class ReadRequest:
    """
    Read request; a non-zero ``marker`` announces a layout that is not known,
    in which case everything behind it is kept in ``raw``.
    """

    marker: int
    item_count: Optional[int] = None
    field_count: Optional[int] = None
    addresses: List = field(default_factory=list)
    trailer: bytes = b""
    raw: bytes = b""


@dataclass
class WriteRequest:
    """
    Write request.

    A non-zero ``marker`` is the id of a session whose settings are written.
    Such a request has one byte item and address counts, the varint32
    ``addresses`` and one id / value list per item in ``settings``; bytes
    between the settings and the trailer are kept in ``raw``.
    """

    marker: int
    item_count: Optional[int] = None
    field_count: Optional[int] = None
    items: List = field(default_factory=list)
    address_count: Optional[int] = None
    addresses: List[int] = field(default_factory=list)
    settings: List = field(default_factory=list)
    trailer: bytes = b""
    raw: bytes = b""


@dataclass
class ReadResponse:
    result: int
    error_codes: Optional[Tuple[int, int]] = None
    values: List = field(default_factory=list)
    errors: List = field(default_factory=list)


@dataclass
class WriteResponse:
    result: int
    error_codes: Optional[Tuple[int, int]] = None
    values: List = field(default_factory=list)
    errors: List = field(default_factory=list)


@dataclass
class PlusObjectStart:
    unknown1: int
    unknown2: int


@dataclass
class PlusSyntaxMarker:
    """Entry of an id / value list without content, like the end of an object."""

    syntax_id: Union[S7CommPlusSyntaxId, int]


@dataclass
class PlusSyntaxA4:
    unknown1: int
    unknown2: int


@dataclass
class PlusTagDescription:
    """
    Description of a tag inside an id / value list.

    ``reserved`` holds the single bytes of unknown meaning in telegram order,
    ``trailer`` the variable part up to the end marker.
    """

    name: str
    datatype: Union[S7CommPlusDatatype, int]
    attribute_flags: int
    lid: int
    string_length: int  # maximum length when the datatype is S7String
    reserved: bytes = b""
    trailer: bytes = b""


@dataclass
class PlusIdValue:
    syntax_id: Union[S7CommPlusSyntaxId, int]
    id_number: int
    value: Optional[PlusValue] = None
    depth: int = 1


@dataclass
class ExploreArea:
    """Memory area to explore, possibly with a DB or FB number in the low bytes."""

    area: int

    @property
    def kind(self) -> Union[S7CommPlusExploreArea, int]:
        masked = self.area & 0xFF000000
        if masked in EXPLORE_NUMBERED_AREAS:
            return lookup(S7CommPlusExploreArea, masked)
        return lookup(S7CommPlusExploreArea, self.area)

    @property
    def db_number(self) -> Optional[int]:
        if self.kind == S7CommPlusExploreArea.GLOBAL_DB:
            return self.area & 0xFFFF
        return None

    @property
    def sub_element(self) -> Optional[int]:
        """Sub structure element of a global DB."""
        if self.kind == S7CommPlusExploreArea.GLOBAL_DB:
            return (self.area >> 16) & 0xFF
        return None

    @property
    def fb_number(self) -> Optional[int]:
        """Number of the FB an instance DB is derived from."""
        if self.kind == S7CommPlusExploreArea.INSTANCE_DB:
            return self.area & 0xFFFF
        return None


@dataclass
class ExploreRequest:
    area: ExploreArea
    unknown: bytes = b""


@dataclass
class ExploreResponse:
    """
    Answer to an explore request.

    The id / value list only follows when ``unknown1`` is 0; bytes in front
    of its first object are kept in ``skipped``.
    """

    unknown1: int
    unknown2: int
    unknown3: int
    skipped: bytes = b""
    entries: List = field(default_factory=list)


@dataclass
class Function0586Response:
    """Response of function 0x0586, values are only decoded when ``unknown1`` is 0."""

    unknown1: Optional[int] = None
    values: List = field(default_factory=list)


def _read_text(cursor: DecodeCursor, size: int) -> str:
    offset = cursor.position
    raw = cursor.read_bytes(size)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnsupportedEncoding(f"string is not valid UTF-8: {e.reason}", offset) from e


def _read_timestamp(cursor: DecodeCursor) -> datetime:
    offset = cursor.position
    nanoseconds = cursor.read_u64()
    try:
        return UNIX_EPOCH + timedelta(microseconds=nanoseconds // 1000)
    except OverflowError as e:
        raise UnsupportedEncoding(f"timestamp {nanoseconds} out of range", offset) from e


def _read_lint(cursor: DecodeCursor) -> int:
    value = cursor.read_varuint64()
    if value & (1 << 63):
        value -= 1 << 64
    return value


#: fixed reader per datatype; Null, Blob, WString and S7String are handled in decode_element
SCALAR_READERS: Dict[int, Callable[[DecodeCursor], Any]] = {
    S7CommPlusDatatype.BOOL: DecodeCursor.read_u8,
    S7CommPlusDatatype.USINT: DecodeCursor.read_u8,
    S7CommPlusDatatype.BYTE: DecodeCursor.read_u8,
    S7CommPlusDatatype.UINT: DecodeCursor.read_u16,
    S7CommPlusDatatype.WORD: DecodeCursor.read_u16,
    S7CommPlusDatatype.UDINT: DecodeCursor.read_varuint32,
    S7CommPlusDatatype.ULINT: DecodeCursor.read_varuint64,
    S7CommPlusDatatype.TIMESPAN: DecodeCursor.read_varuint64,  # nanoseconds
    S7CommPlusDatatype.LINT: _read_lint,
    S7CommPlusDatatype.SINT: DecodeCursor.read_i8,
    S7CommPlusDatatype.INT: DecodeCursor.read_i16,
    S7CommPlusDatatype.DINT: DecodeCursor.read_varint32,
    S7CommPlusDatatype.DWORD: DecodeCursor.read_u32,
    S7CommPlusDatatype.RID: DecodeCursor.read_u32,
    S7CommPlusDatatype.AID: DecodeCursor.read_u32,
    S7CommPlusDatatype.STRUCT: DecodeCursor.read_u32,
    S7CommPlusDatatype.LWORD: DecodeCursor.read_u64,
    S7CommPlusDatatype.TIMESTAMP: _read_timestamp,
    S7CommPlusDatatype.REAL: DecodeCursor.read_f32,
    S7CommPlusDatatype.LREAL: DecodeCursor.read_f64,
}


def decode_element(cursor: DecodeCursor, value: PlusValue) -> Any:
    """Reads one element of ``value.datatype``; Blob and S7String also fill in their extra fields."""
    datatype = value.datatype
    special = bool(value.flags & S7CommPlusDatatypeFlags.STRING_SPECIAL)

    reader = SCALAR_READERS.get(datatype)
    if reader is not None:
        return reader(cursor)
    if datatype == S7CommPlusDatatype.NULL:
        return None
    if datatype == S7CommPlusDatatype.BLOB:
        if not special:
            value.reserved = cursor.read_u8()
        return cursor.read_bytes(cursor.read_varuint32())
    if datatype == S7CommPlusDatatype.WSTRING:
        length = cursor.read_varuint32()
        if special and length > 0:
            # special length announces the actual length and a terminating NUL
            length = cursor.read_varuint32() + 1
        elif special:
            return ""
        return _read_text(cursor, length).rstrip("\x00")
    if datatype == S7CommPlusDatatype.S7STRING:
        block = cursor.window(cursor.read_varuint32(), "S7String")
        value.max_length = block.read_u8()
        actual_length = block.read_u8()
        return _read_text(block, actual_length)
    raise UnknownVariant("datatype", datatype, cursor.position - 1)


def decode_value(cursor: DecodeCursor) -> PlusValue:
    """
    Decodes a flags byte, a datatype and the value.

    Raises:
        UnknownVariant: the datatype is not known, the value can not be skipped
        LengthMismatch: an array declares more elements than bytes are left
    """
    value = PlusValue(flags=S7CommPlusDatatypeFlags(cursor.read_u8()), datatype=lookup(S7CommPlusDatatype, cursor.read_u8()))
    if value.is_array:
        offset = cursor.position
        value.array_size = cursor.read_varuint32()
        if value.datatype == S7CommPlusDatatype.NULL:
            return value
        # every other element takes at least one byte
        if value.array_size > cursor.remaining:
            raise LengthMismatch("array size", value.array_size, cursor.remaining, offset)
        value.value = [decode_element(cursor, value) for _ in range(value.array_size)]
    else:
        value.value = decode_element(cursor, value)
    return value


def decode_lid_chain(cursor: DecodeCursor) -> PlusLidChain:
    """Decodes the symbolic address of one read or write item."""
    chain = PlusLidChain(crc=cursor.read_varuint32(), area=cursor.read_varuint32(), nesting_depth=0, base_area=0)
    offset = cursor.position
    chain.nesting_depth = cursor.read_varuint32()
    if chain.nesting_depth < 1:
        raise LengthMismatch("LID nesting depth", 1, chain.nesting_depth, offset)
    chain.base_area = lookup(S7CommPlusBaseArea, cursor.read_varuint32())
    chain.lids = [cursor.read_varuint32() for _ in range(chain.nesting_depth - 1)]
    return chain


def decode_value_series(cursor: DecodeCursor) -> List:
    """
    Decodes item number / value pairs up to the terminating item number 0.

    A Struct value opens a nesting level, which is closed by an item number
    0; the series ends when the outermost level is closed. An item that can
    not be decoded ends the series with an :class:`OpaqueItem` holding the
    remaining bytes.
    """
    values: List = []
    level = 1
    while True:
        start = cursor.position
        try:
            item_number = cursor.read_varuint32()
            if item_number == 0:
                level -= 1
                if level <= 0:
                    break
                continue
            value = decode_value(cursor)
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            values.append(OpaqueItem(raw=cursor.read_rest(), error=e))
            break
        values.append(PlusItemValue(item_number=item_number, value=value, depth=level))
        level += value.struct_openings
    return values


def decode_error_series(cursor: DecodeCursor) -> List:
    """Decodes item number / error value records up to the terminating item number 0."""
    errors: List = []
    while True:
        start = cursor.position
        try:
            item_number = cursor.read_varuint32()
            if item_number == 0:
                break
            errors.append(
                PlusErrorItem(
                    item_number=item_number,
                    flags=cursor.read_u8(),
                    error_value1=cursor.read_u32(),
                    error_value2=cursor.read_u32(),
                )
            )
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            errors.append(OpaqueItem(raw=cursor.read_rest(), error=e))
            break
    return errors


def _aborted(series: List) -> bool:
    return bool(series) and isinstance(series[-1], OpaqueItem)


def decode_tag_description(cursor: DecodeCursor) -> PlusTagDescription:
    reserved = bytearray([cursor.read_u8()])
    name = _read_text(cursor, cursor.read_varuint32())
    reserved.append(cursor.read_u8())
    datatype = lookup(S7CommPlusDatatype, cursor.read_u8())
    reserved.append(cursor.read_u8())
    attribute_flags = cursor.read_u16()
    reserved += cursor.read_bytes(2)
    lid = cursor.read_varuint32()
    reserved.append(cursor.read_u8())
    string_length = cursor.read_u8()
    reserved += cursor.read_bytes(3)
    trailer = bytearray()
    while cursor.peek_u8() != S7CommPlusSyntaxId.TERM_TAG_DESCRIPTION:
        trailer.append(cursor.read_u8())
    return PlusTagDescription(
        name=name,
        datatype=datatype,
        attribute_flags=attribute_flags,
        lid=lid,
        string_length=string_length,
        reserved=bytes(reserved),
        trailer=bytes(trailer),
    )


def decode_id_value_list(cursor: DecodeCursor) -> List:
    """
    Decodes an id / value list as used by explore responses and session settings.

    Each entry starts with a syntax id. Objects and tag descriptions are
    opened and closed by their own markers, everything that is not a known
    marker is an id followed by a value, unless the id is 0. A Struct value
    opens a level which the syntax id 0 closes; the list ends when the
    outermost level is closed or the input runs out.
    """
    entries: List = []
    level = 1
    while not cursor.at_end():
        start = cursor.position
        try:
            syntax_id = lookup(S7CommPlusSyntaxId, cursor.read_u8())
            if syntax_id == S7CommPlusSyntaxId.START_OBJECT:
                entries.append(PlusObjectStart(unknown1=cursor.read_u32(), unknown2=cursor.read_u32()))
            elif syntax_id == S7CommPlusSyntaxId.UNKNOWN_A4:
                entries.append(PlusSyntaxA4(unknown1=cursor.read_u32(), unknown2=cursor.read_u16()))
            elif syntax_id == S7CommPlusSyntaxId.START_TAG_DESCRIPTION:
                entries.append(decode_tag_description(cursor))
            elif syntax_id in (S7CommPlusSyntaxId.TERM_OBJECT, S7CommPlusSyntaxId.TERM_TAG_DESCRIPTION):
                entries.append(PlusSyntaxMarker(syntax_id=syntax_id))
            elif syntax_id == S7CommPlusSyntaxId.TERM_STRUCT:
                level -= 1
                if level <= 0:
                    break
                entries.append(PlusSyntaxMarker(syntax_id=syntax_id))
            else:
                entry = PlusIdValue(syntax_id=syntax_id, id_number=cursor.read_varuint32(), depth=level)
                if entry.id_number:
                    entry.value = decode_value(cursor)
                    level += entry.value.struct_openings
                entries.append(entry)
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            entries.append(OpaqueItem(raw=cursor.read_rest(), error=e))
            break
    return entries


def decode_start_session(body: PlusBody, cursor: DecodeCursor) -> StartSession:
    """
    Decodes the attributes of a start session telegram.

    Each attribute is a 4 byte tag id and a type id selecting the value
    encoding. The list ends with the end marker type, a tag id of 0, or an
    unknown type id, after which the layout is unknown.
    """
    session = StartSession(prefix=cursor.read_bytes(min(START_SESSION_PREFIX_LENGTH, cursor.remaining)))
    while cursor.remaining >= 4:
        tag_id = cursor.read_u32()
        if tag_id == 0:
            break
        offset = cursor.position
        type_id = lookup(S7CommPlusSessionValueType, cursor.read_u8())
        if type_id == S7CommPlusSessionValueType.END:
            break
        if type_id in (S7CommPlusSessionValueType.RID, S7CommPlusSessionValueType.AID):
            value: Any = cursor.read_u32()
        elif type_id == S7CommPlusSessionValueType.VARUINT32:
            value = cursor.read_varuint32()
        elif type_id == S7CommPlusSessionValueType.BLOB:
            value = cursor.read_bytes(cursor.read_varuint32())
        elif type_id == S7CommPlusSessionValueType.STRING:
            value = _read_text(cursor, cursor.read_varuint32())
        else:
            cursor.report(UnknownVariant("start session value type", type_id, offset))
            break
        session.attributes.append(PlusSessionAttribute(tag_id=tag_id, type_id=type_id, value=value))
    return session


def decode_end_session(body: PlusBody, cursor: DecodeCursor) -> EndSession:
    result = None if body.is_request else cursor.read_u8()
    return EndSession(result=result, session_id=cursor.read_u32())


def decode_modify_session(body: PlusBody, cursor: DecodeCursor) -> ModifySession:
    session = ModifySession(session_id=cursor.read_u32(), item_count=cursor.read_u8())
    session.values = decode_value_series(cursor)
    return session


def _read_request_trailer(cursor: DecodeCursor) -> bytes:
    if cursor.remaining >= RW_REQUEST_TRAILER_LENGTH:
        return cursor.read_bytes(RW_REQUEST_TRAILER_LENGTH)
    return b""


def decode_read_request(body: PlusBody, cursor: DecodeCursor) -> ReadRequest:
    request = ReadRequest(marker=cursor.read_u32())
    if request.marker != 0:
        request.raw = cursor.read_rest()
        return request
    request.item_count = cursor.read_varuint32()
    request.field_count = cursor.read_varuint32()
    request.addresses = decode_item_sequence(cursor, request.item_count, lambda cur, last: decode_lid_chain(cur))
    request.trailer = _read_request_trailer(cursor)
    return request


def decode_write_item(cursor: DecodeCursor, last: bool) -> PlusWriteItem:
    address = decode_lid_chain(cursor)
    return PlusWriteItem(address=address, item_number=cursor.read_varuint32(), value=decode_value(cursor))


def decode_session_settings(request: WriteRequest, cursor: DecodeCursor) -> WriteRequest:
    request.item_count = cursor.read_u8()
    request.address_count = cursor.read_u8()
    for _ in range(request.address_count):
        if cursor.at_end():
            break
        request.addresses.append(cursor.read_varint32())
    for _ in range(request.item_count):
        if cursor.at_end():
            break
        settings = decode_id_value_list(cursor)
        request.settings.append(settings)
        if _aborted(settings):
            return request
    if cursor.remaining > RW_REQUEST_TRAILER_LENGTH:
        request.raw = cursor.read_bytes(cursor.remaining - RW_REQUEST_TRAILER_LENGTH)
    request.trailer = _read_request_trailer(cursor)
    return request


def decode_write_request(body: PlusBody, cursor: DecodeCursor) -> WriteRequest:
    request = WriteRequest(marker=cursor.read_u32())
    if request.marker != 0:
        return decode_session_settings(request, cursor)
    request.item_count = cursor.read_varuint32()
    request.field_count = cursor.read_varuint32()
    request.items = decode_item_sequence(cursor, request.item_count, decode_write_item)
    request.trailer = _read_request_trailer(cursor)
    return request


def _read_error_codes(cursor: DecodeCursor) -> Tuple[int, int]:
    return cursor.read_varint32(), cursor.read_varint32()


def decode_read_response(body: PlusBody, cursor: DecodeCursor) -> ReadResponse:
    response = ReadResponse(result=cursor.read_u8())
    if response.result != 0:
        response.error_codes = _read_error_codes(cursor)
    response.values = decode_value_series(cursor)
    if not _aborted(response.values):
        response.errors = decode_error_series(cursor)
    return response


def decode_write_response(body: PlusBody, cursor: DecodeCursor) -> WriteResponse:
    """A failed write goes straight to the error records, a successful one may return values first."""
    response = WriteResponse(result=cursor.read_u8())
    if response.result != 0:
        response.error_codes = _read_error_codes(cursor)
    else:
        response.values = decode_value_series(cursor)
        if _aborted(response.values):
            return response
    response.errors = decode_error_series(cursor)
    return response


def decode_explore_request(body: PlusBody, cursor: DecodeCursor) -> ExploreRequest:
    return ExploreRequest(area=ExploreArea(cursor.read_u32()), unknown=cursor.read_rest())


def decode_explore_response(body: PlusBody, cursor: DecodeCursor) -> ExploreResponse:
    response = ExploreResponse(unknown1=cursor.read_u16(), unknown2=cursor.read_u16(), unknown3=cursor.read_u8())
    if response.unknown1 != 0:
        return response
    skipped = bytearray()
    while not cursor.at_end() and cursor.peek_u8() != S7CommPlusSyntaxId.START_OBJECT:
        skipped.append(cursor.read_u8())
    response.skipped = bytes(skipped)
    response.entries = decode_id_value_list(cursor)
    return response


def decode_function_0586_response(body: PlusBody, cursor: DecodeCursor) -> Function0586Response:
    """Values follow a zero word and run up to a 0 byte, any other layout is left undecoded."""
    response = Function0586Response()
    if cursor.remaining < 2 or cursor.peek_u16() != 0:
        return response
    response.unknown1 = cursor.read_u16()
    while not cursor.at_end() and cursor.peek_u8() != 0:
        start = cursor.position
        try:
            response.values.append(decode_value(cursor))
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            response.values.append(OpaqueItem(raw=cursor.read_rest(), error=e))
    return response


def decode_cyclic_items(cursor: DecodeCursor) -> List:
    """
    Decodes the items of a cyclic dataset up to the terminating return value 0.

    An unknown return value stops decoding, the bytes from there on are left
    to the caller.
    """
    items: List = []
    level = 1
    while True:
        start = cursor.position
        try:
            return_value = lookup(S7CommPlusCyclicReturn, cursor.read_u8())
            if return_value == 0:
                level -= 1
                if level <= 0:
                    break
                continue
            if not isinstance(return_value, S7CommPlusCyclicReturn):
                cursor.report(UnknownVariant("cyclic item return value", return_value, start))
                cursor.position = start
                break
            item = PlusCyclicItem(return_value=return_value, reference=cursor.read_u32(), depth=level)
            if return_value == S7CommPlusCyclicReturn.OK:
                item.value = decode_value(cursor)
                level += item.value.struct_openings
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = start
            items.append(OpaqueItem(raw=cursor.read_rest(), error=e))
            break
        items.append(item)
    return items


def decode_cyclic(cyclic: PlusCyclic, cursor: DecodeCursor) -> PlusCyclic:
    cyclic.unknown2 = cursor.read_u16()
    cyclic.unknown1 = cursor.read_u16()
    if cyclic.unknown2 == CYCLIC_DATASET_WITH_ITEMS:
        cyclic.reserved1 = cursor.read_u8()
        cyclic.sequence_number = cursor.read_u16()
        cyclic.reserved2 = cursor.read_u8()
        cyclic.items = decode_cyclic_items(cursor)
    cyclic.raw = cursor.read_rest()
    return cyclic


PayloadDecoder = Callable[[PlusBody, DecodeCursor], Any]

#: payload decoder of request bodies per function
REQUEST_DECODERS: Dict[int, PayloadDecoder] = {
    S7CommPlusFunction.READ: decode_read_request,
    S7CommPlusFunction.WRITE: decode_write_request,
    S7CommPlusFunction.MODIFY_SESSION: decode_modify_session,
    S7CommPlusFunction.START_SESSION: decode_start_session,
    S7CommPlusFunction.END_SESSION: decode_end_session,
    S7CommPlusFunction.EXPLORE: decode_explore_request,
}

#: payload decoder of response bodies per function
RESPONSE_DECODERS: Dict[int, PayloadDecoder] = {
    S7CommPlusFunction.READ: decode_read_response,
    S7CommPlusFunction.WRITE: decode_write_response,
    S7CommPlusFunction.START_SESSION: decode_start_session,
    S7CommPlusFunction.END_SESSION: decode_end_session,
    S7CommPlusFunction.EXPLORE: decode_explore_response,
    S7CommPlusFunction.FUNCTION_0586: decode_function_0586_response,
}

#: function codes known per PDU type
PDU_FUNCTIONS = {
    S7CommPlusPDUType.CONNECT: CONNECT_FUNCTIONS,
    S7CommPlusPDUType.DATA: DATA_FUNCTIONS,
}


def decode_body_head(cursor: DecodeCursor) -> Union[PlusBody, PlusCyclic]:
    opcode = lookup(S7CommPlusOpcode, cursor.read_u8())
    if opcode == S7CommPlusOpcode.CYCLIC:
        return PlusCyclic(opcode=opcode, session_id=cursor.read_u32())
    body = PlusBody(
        opcode=opcode,
        reserved1=cursor.read_u16(),
        function=lookup(S7CommPlusFunction, cursor.read_u16()),
        reserved2=cursor.read_u16(),
        sequence_number=cursor.read_u16(),
    )
    if body.is_request:
        body.session_id = cursor.read_u32()
    body.reserved3 = cursor.read_u8()
    return body


def decode_body(header: PlusHeader, cursor: DecodeCursor) -> Any:
    """
    Decodes the body of a Connect or Data telegram.

    Args:
        header: the decoded header, selecting the function table
        cursor: cursor over the declared data length

    Returns:
        a :class:`PlusBody`, a :class:`PlusCyclic` or a :class:`PlusOpaqueBody`
    """
    if cursor.at_end():
        return None
    known_functions = PDU_FUNCTIONS.get(header.pdu_type)  # type: ignore
    if known_functions is None or cursor.peek_u8() not in set(S7CommPlusOpcode):
        return PlusOpaqueBody(raw=cursor.read_rest())

    start = cursor.position
    try:
        body = decode_body_head(cursor)
    except S7DecodeError as e:
        cursor.report(e)
        cursor.position = start
        return PlusOpaqueBody(raw=cursor.read_rest(), error=e)

    if isinstance(body, PlusCyclic):
        payload_start = cursor.position
        try:
            return decode_cyclic(body, cursor)
        except S7DecodeError as e:
            cursor.report(e)
            cursor.position = payload_start
            return PlusCyclic(opcode=body.opcode, session_id=body.session_id, raw=cursor.read_rest(), error=e)

    logger.debug(f"S7comm-Plus {body.opcode!r} function {body.function!r} sequence {body.sequence_number}")
    if body.function not in known_functions:
        error = UnknownVariant(f"function of {header.pdu_type!r}", int(body.function), start + 3)
        cursor.report(error)
        body.payload = PlusOpaqueBody(raw=cursor.read_rest(), error=error)
        return body

    decoders = REQUEST_DECODERS if body.is_request else RESPONSE_DECODERS
    decode = decoders.get(body.function)
    if decode is None:
        body.payload = PlusOpaqueBody(raw=cursor.read_rest())
        return body

    payload_start = cursor.position
    try:
        body.payload = decode(body, cursor)
    except S7DecodeError as e:
        cursor.report(e)
        cursor.position = payload_start
        body.payload = PlusOpaqueBody(raw=cursor.read_rest(), error=e)
    return body


def check_plus(data: bytes) -> None:
    """
    Checks that ``data`` looks like an S7comm-Plus telegram.

    Raises:
        S7ProtocolError: too short or wrong protocol id
    """
    if len(data) < S7COMMP_MIN_TELEGRAM_LENGTH:
        raise S7ProtocolError(f"telegram too short for S7comm-Plus: {len(data)} bytes")
    if data[0] != S7COMMP_PROTOCOL_ID:
        raise S7ProtocolError(f"Invalid protocol ID: {data[0]:#04x}")


def decode_plus(data: bytes) -> PlusPdu:
    """
    Decodes one S7comm-Plus telegram.

    Bytes of the declared data length that the body does not cover end up in
    ``trailing``. A 4 byte trailer behind the data is decoded when it starts
    with the protocol id, anything else behind the data is kept in ``excess``.

    Args:
        data: the telegram, without TPKT/COTP framing

    Returns:
        a :class:`PlusConnect`, :class:`PlusData` or :class:`PlusKeepAlive`
        (the plain :class:`PlusPdu` for the PDU types 3 and 4)

    Raises:
        S7ProtocolError: the buffer is not an S7comm-Plus telegram
    """
    check_plus(data)
    cursor = DecodeCursor(data)
    header = PlusHeader(protocol_id=cursor.read_u8(), pdu_type=lookup(S7CommPlusPDUType, cursor.read_u8()))

    if header.pdu_type == S7CommPlusPDUType.KEEP_ALIVE:
        header.sequence_number = cursor.read_u8()
        header.reserved = cursor.read_u8()
        keep_alive = PlusKeepAlive(header=header, errors=cursor.errors)
        keep_alive.excess = cursor.read_rest()
        return keep_alive

    header.dlength = cursor.read_u16()
    logger.debug(f"S7comm-Plus {header.pdu_type!r}, dlength {header.dlength}")
    pdu: PlusPdu
    if header.pdu_type == S7CommPlusPDUType.CONNECT:
        pdu = PlusConnect(header=header, errors=cursor.errors)
    elif header.pdu_type == S7CommPlusPDUType.DATA:
        pdu = PlusData(header=header, errors=cursor.errors)
    else:
        pdu = PlusPdu(header=header, errors=cursor.errors)

    body_cursor = cursor.window(header.dlength, "data")
    pdu.body = decode_body(header, body_cursor)
    pdu.trailing = body_cursor.read_rest()

    if cursor.remaining >= 4 and cursor.peek_u8() == S7COMMP_PROTOCOL_ID:
        pdu.trailer = PlusTrailer(
            protocol_id=cursor.read_u8(),
            pdu_type=lookup(S7CommPlusPDUType, cursor.read_u8()),
            dlength=cursor.read_u16(),
        )
    pdu.excess = cursor.read_rest()
    return pdu
