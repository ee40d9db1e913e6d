"""
Classic S7comm user data (ROSCTR 7) decoder.

The parameter head selects a function group and a subfunction, the data part
starts with a 4 byte head (return code, transport size, length) followed by
the subfunction specific payload. Decoding is driven by :data:`DECODERS`, a
table keyed by ``(group, subfunction)``. Every decoder returns the payload
dataclass, or None when it does not know the combination of type and return
code, in which case the payload is kept as raw bytes.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .cursor import DecodeCursor
from .datatypes import (
    SUBFUNCTIONS,
    S7BlockFlags,
    S7BlockLanguage,
    S7BlockSecurity,
    S7BlockSubfunction,
    S7BlockType,
    S7CyclicSubfunction,
    S7DataTransportSize,
    S7DiagRegister,
    S7ProgSubfunction,
    S7ReturnCode,
    S7SubBlockType,
    S7SzlSubfunction,
    S7TimeSubfunction,
    S7UserDataGroup,
    S7UserDataType,
    S7VartabArea,
    S7VartabDataType,
    lookup,
)
from .error import S7DecodeError
from .items import data_length_in_bytes, decode_address_items, decode_data_items, decode_item_sequence
from .primitives import S7DateTime, decode_epoch_timestamp
from .szl import SzlId, SzlReadRequest, decode_szl_response
from .types import ClassicHeader

logger = logging.getLogger(__name__)

#: size of the data head preceding every user data payload
DATA_HEAD_LENGTH = 4

#: size of the fixed block info record
BLOCK_INFO_LENGTH = 78


@dataclass
class UserDataParameter:
    """The 8 or 12 byte user data parameter head."""

    head: bytes  # always 00 01 12
    parameter_length: int
    method: int  # 0x11 request, 0x12 response
    type: Union[S7UserDataType, int]
    group: Union[S7UserDataGroup, int]
    subfunction: int
    sequence_number: int
    data_unit_reference: Optional[int] = None
    last_data_unit: Optional[int] = None
    error_code: Optional[int] = None

    @property
    def is_request(self) -> bool:
        return self.type == S7UserDataType.REQUEST


@dataclass
class UserDataHead:
    return_code: Union[S7ReturnCode, int]
    transport_size: Union[S7DataTransportSize, int]
    length: int

    @property
    def ok(self) -> bool:
        return self.return_code == S7ReturnCode.OK


@dataclass
class OpaquePayload:
    """Payload of an unknown or undecodable subfunction."""

    raw: bytes
    error: Optional[S7DecodeError] = None


@dataclass
class UserDataBody:
    """
    Decoded parameter and data part of a user data telegram.

    ``extra_parameter`` holds parameter bytes beyond the 8 or 12 byte head,
    ``extra`` data bytes the payload decoder did not consume.
    """

    parameter: Optional[UserDataParameter]
    data_head: Optional[UserDataHead] = None
    payload: Any = None
    extra_parameter: bytes = b""
    extra: bytes = b""


# Programmer commands


@dataclass
class DiagDataLine:
    """One requested register line of an online block view."""

    address: Optional[int]
    unknown: int
    registers: S7DiagRegister


@dataclass
class DiagDataRequest:
    """Request diagnostic data (start of an online block view)."""

    ask_header_size: int
    ask_size: int
    unknown1: bytes
    answer_size: int
    unknown2: bytes
    block_type: Union[S7SubBlockType, int]
    block_number: int
    start_address_awl: int
    saz: int  # step address counter
    unknown3: int
    line_count: int
    registers: S7DiagRegister
    unknown4: Optional[int] = None
    lines: List[DiagDataLine] = field(default_factory=list)


@dataclass
class VartabRequestItem:
    area: Union[S7VartabArea, int]
    repetition_factor: int
    db_number: int
    start_address: int


@dataclass
class VartabResponseItem:
    return_code: Union[S7ReturnCode, int]
    transport_size: Union[S7DataTransportSize, int]
    length: int
    payload: bytes = b""
    fill_byte: Optional[int] = None


@dataclass
class Vartab:
    """Variable table request or response."""

    reserved: int
    data_type: Union[S7VartabDataType, int]
    byte_count: int
    unknown: bytes
    item_count: int
    items: List = field(default_factory=list)


# Cyclic data


@dataclass
class CyclicSubscription:
    reserved: int
    item_count: int
    timebase: int
    interval: int
    items: List = field(default_factory=list)


@dataclass
class CyclicData:
    reserved: int
    item_count: int
    items: List = field(default_factory=list)


# Block functions


@dataclass
class BlockCount:
    block_type: Union[S7BlockType, int]
    count: int


@dataclass
class BlockListEntry:
    block_number: int
    flags: int
    language: Union[S7BlockLanguage, int]


@dataclass
class BlockList:
    entries: List = field(default_factory=list)


@dataclass
class BlockOfTypeRequest:
    block_type: Union[S7BlockType, int]


@dataclass
class BlockInfoRequest:
    block_type: Union[S7BlockType, int]
    block_number: str
    filesystem: str


@dataclass
class BlockInfo:
    """The fixed block info record answering a get-block-info request."""

    constant1: int
    block_type: int
    info_length: int
    constant2: int
    constant3: bytes  # 'pp'
    unknown: int
    flags: S7BlockFlags
    language: Union[S7BlockLanguage, int]
    subblock_type: Union[S7SubBlockType, int]
    block_number: int
    load_memory_length: int
    security: Union[S7BlockSecurity, int]
    code_timestamp: datetime
    interface_timestamp: datetime
    ssb_length: int
    add_length: int
    localdata_length: int
    mc7_length: int
    author: str
    family: str
    name: str
    version: int
    unknown2: int
    checksum: int
    reserved1: int
    reserved2: int

    @property
    def version_major(self) -> int:
        return self.version >> 4

    @property
    def version_minor(self) -> int:
        return self.version & 0x0F


Decoder = Callable[[UserDataParameter, UserDataHead, DecodeCursor], Optional[Any]]


def decode_userdata_parameter(header: ClassicHeader, cursor: DecodeCursor) -> UserDataParameter:
    head = cursor.read_bytes(3)
    parameter_length = cursor.read_u8()
    method = cursor.read_u8()
    type_group = cursor.read_u8()
    group = lookup(S7UserDataGroup, type_group & 0x0F)
    subfunction = cursor.read_u8()
    enum_type = SUBFUNCTIONS.get(group)  # type: ignore
    parameter = UserDataParameter(
        head=head,
        parameter_length=parameter_length,
        method=method,
        type=lookup(S7UserDataType, type_group >> 4),
        group=group,
        subfunction=lookup(enum_type, subfunction) if enum_type else subfunction,
        sequence_number=cursor.read_u8(),
    )
    if header.plength >= 12:
        parameter.data_unit_reference = cursor.read_u8()
        parameter.last_data_unit = cursor.read_u8()
        parameter.error_code = cursor.read_u16()
    return parameter


def decode_userdata(header: ClassicHeader, parameter: DecodeCursor, data: DecodeCursor) -> UserDataBody:
    """
    Decodes parameter and data part of a user data telegram.

    Args:
        header: the already decoded telegram header
        parameter: cursor over the parameter part
        data: cursor over the data part

    Returns:
        the body; payloads that could not be decoded are kept as :class:`OpaquePayload`
    """
    start = parameter.position
    try:
        body = UserDataBody(parameter=decode_userdata_parameter(header, parameter))
    except S7DecodeError as e:
        parameter.report(e)
        parameter.position = start
        return UserDataBody(parameter=None, extra_parameter=parameter.read_rest(), payload=OpaquePayload(raw=data.read_rest(), error=e))
    body.extra_parameter = parameter.read_rest()
    logger.debug(f"user data {body.parameter.type!r} group {body.parameter.group!r} subfunction {body.parameter.subfunction!r}")

    if data.remaining < DATA_HEAD_LENGTH:
        body.extra = data.read_rest()
        return body
    body.data_head = UserDataHead(
        return_code=lookup(S7ReturnCode, data.read_u8()),
        transport_size=lookup(S7DataTransportSize, data.read_u8()),
        length=data.read_u16(),
    )
    if data.at_end():
        return body

    decode = DECODERS.get((int(body.parameter.group), int(body.parameter.subfunction)))
    start = data.position
    try:
        payload = decode(body.parameter, body.data_head, data) if decode else None
    except S7DecodeError as e:
        data.report(e)
        data.position = start
        body.payload = OpaquePayload(raw=data.read_rest(), error=e)
        return body
    if payload is None:
        data.position = start
        body.payload = OpaquePayload(raw=data.read_rest())
    else:
        body.payload = payload
        body.extra = data.read_rest()
    return body


def decode_request_diag_data(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[DiagDataRequest]:
    """Decodes the request of an online block view, both the 0x01 and the 0x13 variant."""
    if parameter.type == S7UserDataType.FOLLOW:
        return None
    second_form = parameter.subfunction == S7ProgSubfunction.REQUEST_DIAG_DATA_2
    request = DiagDataRequest(
        ask_header_size=cursor.read_u16(),
        ask_size=cursor.read_u16(),
        unknown1=cursor.read_bytes(6),
        answer_size=cursor.read_u16(),
        unknown2=cursor.read_bytes(13),
        block_type=lookup(S7SubBlockType, cursor.read_u8()),
        block_number=cursor.read_u16(),
        start_address_awl=cursor.read_u16(),
        saz=cursor.read_u16(),
        unknown3=cursor.read_u8(),
        line_count=0,
        registers=S7DiagRegister(0),
    )
    if second_form:
        request.line_count = cursor.read_u8()
        request.unknown4 = cursor.read_u8()
    else:
        request.line_count = max(0, (request.ask_size - 2) // 2)
    request.registers = S7DiagRegister(cursor.read_u8())
    for _ in range(request.line_count):
        address = cursor.read_u16() if second_form else None
        request.lines.append(DiagDataLine(address=address, unknown=cursor.read_u8(), registers=S7DiagRegister(cursor.read_u8())))
    return request


def decode_vartab_request_item(cursor: DecodeCursor, last: bool) -> VartabRequestItem:
    return VartabRequestItem(
        area=lookup(S7VartabArea, cursor.read_u8()),
        repetition_factor=cursor.read_u8(),
        db_number=cursor.read_u16(),
        start_address=cursor.read_u16(),
    )


def decode_vartab_response_item(cursor: DecodeCursor, last: bool) -> VartabResponseItem:
    item = VartabResponseItem(
        return_code=lookup(S7ReturnCode, cursor.read_u8()),
        transport_size=lookup(S7DataTransportSize, cursor.read_u8()),
        length=cursor.read_u16(),
    )
    if item.return_code in (S7ReturnCode.OK, S7ReturnCode.RESERVED):
        size = data_length_in_bytes(item.transport_size, item.length)
        item.payload = cursor.read_bytes(size)
        if size % 2 and not last:
            item.fill_byte = cursor.read_u8()
    return item


def decode_vartab(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[Vartab]:
    reserved = cursor.read_u8()
    data_type = lookup(S7VartabDataType, cursor.read_u8())
    byte_count = cursor.read_u16()
    if data_type == S7VartabDataType.REQUEST:
        unknown = cursor.read_bytes(20)
        decode_item = decode_vartab_request_item
    elif data_type == S7VartabDataType.RESPONSE:
        unknown = cursor.read_bytes(4)
        decode_item = decode_vartab_response_item  # type: ignore
    else:
        return None
    vartab = Vartab(reserved=reserved, data_type=data_type, byte_count=byte_count, unknown=unknown, item_count=cursor.read_u16())
    vartab.items = decode_item_sequence(cursor, vartab.item_count, decode_item)
    return vartab


def decode_cyclic_memory(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Union[CyclicSubscription, CyclicData]:
    reserved = cursor.read_u8()
    item_count = cursor.read_u8()
    if parameter.is_request:
        subscription = CyclicSubscription(reserved=reserved, item_count=item_count, timebase=cursor.read_u8(), interval=cursor.read_u8())
        subscription.items = decode_address_items(cursor, item_count)
        return subscription
    return CyclicData(reserved=reserved, item_count=item_count, items=decode_data_items(cursor, item_count))


def decode_block_type(cursor: DecodeCursor) -> Union[S7BlockType, int]:
    # the first of the two type characters is always '0'
    cursor.skip(1)
    return lookup(S7BlockType, cursor.read_u8())


def decode_list_all(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[BlockList]:
    if parameter.is_request:
        return None
    block_list = BlockList()
    for _ in range(head.length // 4):
        block_list.entries.append(BlockCount(block_type=decode_block_type(cursor), count=cursor.read_u16()))
    return block_list


def decode_list_blocks_of_type(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[Any]:
    if head.transport_size == S7DataTransportSize.NULL:
        return None
    if parameter.is_request:
        return BlockOfTypeRequest(block_type=decode_block_type(cursor))
    block_list = BlockList()
    for _ in range(head.length // 4):
        block_list.entries.append(
            BlockListEntry(
                block_number=cursor.read_u16(),
                flags=cursor.read_u8(),
                language=lookup(S7BlockLanguage, cursor.read_u8()),
            )
        )
    return block_list


def decode_block_info(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[Any]:
    if parameter.is_request:
        if head.transport_size == S7DataTransportSize.NULL:
            return None
        return BlockInfoRequest(block_type=decode_block_type(cursor), block_number=cursor.read_ascii(5), filesystem=cursor.read_ascii(1))
    if not head.ok:
        return None

    record = cursor.window(BLOCK_INFO_LENGTH, "block info")
    if record.remaining < BLOCK_INFO_LENGTH:
        # the window reported the short block already
        return None
    return BlockInfo(
        constant1=record.read_u8(),
        block_type=record.read_u8(),
        info_length=record.read_u16(),
        constant2=record.read_u16(),
        constant3=record.read_bytes(2),
        unknown=record.read_u8(),
        flags=S7BlockFlags(record.read_u8()),
        language=lookup(S7BlockLanguage, record.read_u8()),
        subblock_type=lookup(S7SubBlockType, record.read_u8()),
        block_number=record.read_u16(),
        load_memory_length=record.read_u32(),
        security=lookup(S7BlockSecurity, record.read_u32()),
        code_timestamp=decode_epoch_timestamp(record.read_u32(), record.read_u16()),
        interface_timestamp=decode_epoch_timestamp(record.read_u32(), record.read_u16()),
        ssb_length=record.read_u16(),
        add_length=record.read_u16(),
        localdata_length=record.read_u16(),
        mc7_length=record.read_u16(),
        author=record.read_ascii(8),
        family=record.read_ascii(8),
        name=record.read_ascii(8),
        version=record.read_u8(),
        unknown2=record.read_u8(),
        checksum=record.read_u16(),
        reserved1=record.read_u32(),
        reserved2=record.read_u32(),
    )


def decode_read_szl(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[Any]:
    if parameter.is_request:
        return SzlReadRequest(szl_id=SzlId(cursor.read_u16()), index=cursor.read_u16())
    if not head.ok:
        return None
    return decode_szl_response(cursor, head.length)


def decode_clock(parameter: UserDataParameter, head: UserDataHead, cursor: DecodeCursor) -> Optional[S7DateTime]:
    """Read clock responses and set clock requests carry a 10 byte BCD timestamp."""
    if not head.ok:
        return None
    if parameter.subfunction == S7TimeSubfunction.SET_CLOCK:
        carries_time = parameter.is_request
    else:
        carries_time = parameter.type == S7UserDataType.RESPONSE
    if not carries_time:
        return None
    return S7DateTime.from_bytes(cursor.read_bytes(10))


#: payload decoder per (function group, subfunction); missing pairs stay opaque
DECODERS: Dict[Tuple[int, int], Decoder] = {
    (S7UserDataGroup.PROGRAMMER, S7ProgSubfunction.REQUEST_DIAG_DATA_1): decode_request_diag_data,
    (S7UserDataGroup.PROGRAMMER, S7ProgSubfunction.REQUEST_DIAG_DATA_2): decode_request_diag_data,
    (S7UserDataGroup.PROGRAMMER, S7ProgSubfunction.VARTAB): decode_vartab,
    (S7UserDataGroup.CYCLIC_DATA, S7CyclicSubfunction.MEMORY): decode_cyclic_memory,
    (S7UserDataGroup.BLOCK_INFO, S7BlockSubfunction.LIST_ALL): decode_list_all,
    (S7UserDataGroup.BLOCK_INFO, S7BlockSubfunction.LIST_BLOCKS_OF_TYPE): decode_list_blocks_of_type,
    (S7UserDataGroup.BLOCK_INFO, S7BlockSubfunction.BLOCK_INFO): decode_block_info,
    (S7UserDataGroup.SZL, S7SzlSubfunction.READ_SZL): decode_read_szl,
    (S7UserDataGroup.TIME, S7TimeSubfunction.READ_CLOCK): decode_clock,
    (S7UserDataGroup.TIME, S7TimeSubfunction.READ_CLOCK_FOLLOWING): decode_clock,
    (S7UserDataGroup.TIME, S7TimeSubfunction.SET_CLOCK): decode_clock,
}
