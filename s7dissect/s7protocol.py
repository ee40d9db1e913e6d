"""
S7comm (classic) protocol decoder.

Handles the telegram header, the ROSCTR dispatch and the parameter/data
decoding of Job and Ack_Data telegrams. Userdata telegrams are handed to
:mod:`s7dissect.userdata`.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .cursor import DecodeCursor
from .datatypes import (
    S7BlockType,
    S7COMM_MIN_TELEGRAM_LENGTH,
    S7COMM_PROTOCOL_ID,
    S7ErrorClass,
    S7Function,
    S7PDUType,
    lookup,
)
from .error import S7DecodeError, S7ProtocolError
from .items import decode_address_items, decode_data_items, decode_return_codes
from .types import ClassicHeader, ClassicJobAck, ClassicPdu, ClassicUserData
from .userdata import decode_userdata

logger = logging.getLogger(__name__)

#: ROSCTR values carrying a 12 byte header with error class and code
ACK_TYPES = (S7PDUType.ACK, S7PDUType.ACK_DATA)

#: every ROSCTR the decoder accepts
ACCEPTED_ROSCTR = frozenset(S7PDUType)

#: block transfer functions sharing the 0x1A..0x1F parameter layout
BLOCK_CONTROL_FUNCTIONS = frozenset(
    {
        S7Function.REQUEST_DOWNLOAD,
        S7Function.DOWNLOAD_BLOCK,
        S7Function.DOWNLOAD_ENDED,
        S7Function.START_UPLOAD,
        S7Function.UPLOAD,
        S7Function.END_UPLOAD,
    }
)


@dataclass
class VarRequest:
    """Read Var or Write Var job: address items and, for a write, the values."""

    function: Union[S7Function, int]
    item_count: int
    items: List = field(default_factory=list)
    data: List = field(default_factory=list)


@dataclass
class VarResponse:
    """Read Var (data items) or Write Var (return codes) acknowledgement."""

    function: Union[S7Function, int]
    item_count: int
    data: List = field(default_factory=list)


@dataclass
class SetupCommunication:
    function: Union[S7Function, int]
    reserved: int
    max_amq_calling: int
    max_amq_called: int
    pdu_length: int


@dataclass
class BlockReference:
    """Block type, five digit ASCII block number and destination filesystem ('P' passive, 'A' active)."""

    block_type: Union[S7BlockType, int]
    block_number: str
    destination_filesystem: str


@dataclass
class BlockControl:
    """
    Parameter of the block transfer functions 0x1A to 0x1F.

    Upload and end-upload carry only the function and the unknown part; the
    block reference follows when the parameter is longer than 8 bytes and the
    two length strings only for a request download longer than 18 bytes.
    """

    function: Union[S7Function, int]
    unknown: bytes
    length_part1: Optional[int] = None
    file_identifier: Optional[str] = None
    block: Optional[BlockReference] = None
    length_part2: Optional[int] = None
    unknown_char: Optional[str] = None
    load_memory_length: Optional[str] = None
    mc7_length: Optional[str] = None
    data: bytes = b""


@dataclass
class PlcControl:
    """PLC control (0x28): an argument or a block list, then the PI service name, e.g. ``_INSE``."""

    function: Union[S7Function, int]
    unknown: bytes
    length_part1: int
    argument: Optional[str] = None
    blocks: List[BlockReference] = field(default_factory=list)
    service: str = ""
    data: bytes = b""


@dataclass
class PlcStop:
    function: Union[S7Function, int]
    unknown: bytes
    service: str = ""
    data: bytes = b""


@dataclass
class OpaqueParameter:
    """Parameter and data of an unknown (or undecodable) function, kept as raw bytes."""

    function: Optional[Union[S7Function, int]]
    parameter: bytes = b""
    data: bytes = b""
    error: Optional[S7DecodeError] = None


def check_classic(data: bytes) -> None:
    """
    Checks that ``data`` looks like a classic S7comm telegram.

    Raises:
        S7ProtocolError: too short, wrong protocol id or ROSCTR not accepted
    """
    if len(data) < S7COMM_MIN_TELEGRAM_LENGTH:
        raise S7ProtocolError(f"telegram too short for S7comm: {len(data)} bytes")
    if data[0] != S7COMM_PROTOCOL_ID:
        raise S7ProtocolError(f"Invalid protocol ID: {data[0]:#04x}")
    if data[1] not in ACCEPTED_ROSCTR:
        raise S7ProtocolError(f"Invalid ROSCTR: {data[1]:#04x}")
    if data[1] in ACK_TYPES and len(data) < 12:
        raise S7ProtocolError("telegram too short for S7comm acknowledgement header")


def decode_header(cursor: DecodeCursor) -> ClassicHeader:
    header = ClassicHeader(
        protocol_id=cursor.read_u8(),
        rosctr=lookup(S7PDUType, cursor.read_u8()),
        redundancy_id=cursor.read_u16(),
        pdu_ref=cursor.read_u16(),
        plength=cursor.read_u16(),
        dlength=cursor.read_u16(),
    )
    if header.rosctr in ACK_TYPES:
        header.error_class = lookup(S7ErrorClass, cursor.read_u8())
        header.error_code = cursor.read_u8()
    return header


def decode_classic(data: bytes) -> ClassicPdu:
    """
    Decodes one classic S7comm telegram.

    Args:
        data: the telegram, without TPKT/COTP framing

    Returns:
        a :class:`ClassicJobAck` or :class:`ClassicUserData`

    Raises:
        S7ProtocolError: the buffer is not an S7comm telegram

    Examples:
        >>> pdu = decode_classic(bytes.fromhex("32010000000100020000f000"))
        >>> pdu.header.pdu_ref
        1
    """
    check_classic(data)
    cursor = DecodeCursor(data)
    header = decode_header(cursor)
    logger.debug(f"S7comm {header.rosctr!r} pdu_ref {header.pdu_ref}, plength {header.plength}, dlength {header.dlength}")

    parameter = cursor.window(header.plength, "parameter")
    data_part = cursor.window(header.dlength, "data")

    pdu: ClassicPdu
    if header.rosctr == S7PDUType.USERDATA:
        pdu = ClassicUserData(header=header, errors=cursor.errors)
        pdu.body = decode_userdata(header, parameter, data_part)
    else:
        pdu = ClassicJobAck(header=header, errors=cursor.errors)
        if header.rosctr in (S7PDUType.JOB, S7PDUType.ACK_DATA):
            pdu.body = decode_req_resp(header, parameter, data_part)
        elif header.plength or header.dlength:
            pdu.body = OpaqueParameter(function=None, parameter=parameter.read_rest(), data=data_part.read_rest())

    pdu.trailing = cursor.read_rest()
    return pdu


def decode_req_resp(header: ClassicHeader, parameter: DecodeCursor, data: DecodeCursor) -> Optional[object]:
    """
    Decodes the parameter and data part of a Job or Ack_Data telegram.

    A failure inside the function specific layout keeps the raw parameter and
    data bytes in an :class:`OpaqueParameter`.
    """
    if parameter.at_end():
        return None

    start, data_start = parameter.position, data.position
    function = lookup(S7Function, parameter.read_u8())
    logger.debug(f"function {function!r}")
    try:
        if header.rosctr == S7PDUType.JOB:
            body = decode_job(function, header, parameter, data)
        else:
            body = decode_ack_data(function, header, parameter, data)
    except S7DecodeError as e:
        parameter.report(e)
        parameter.position, data.position = start + 1, data_start
        return OpaqueParameter(function=function, parameter=parameter.read_rest(), data=data.read_rest(), error=e)
    if body is None:
        return OpaqueParameter(function=function, parameter=parameter.read_rest(), data=data.read_rest())
    return body


def decode_job(function: int, header: ClassicHeader, parameter: DecodeCursor, data: DecodeCursor) -> Optional[object]:
    if function in (S7Function.READ_VAR, S7Function.WRITE_VAR):
        item_count = parameter.read_u8()
        request = VarRequest(function=function, item_count=item_count, items=decode_address_items(parameter, item_count))
        if function == S7Function.WRITE_VAR and header.dlength > 0:
            request.data = decode_data_items(data, item_count)
        return request
    elif function == S7Function.SETUP_COMMUNICATION:
        return decode_setup_communication(function, parameter)
    elif function in BLOCK_CONTROL_FUNCTIONS:
        body = decode_block_control(function, header.plength, parameter)
        body.data = data.read_rest()
        return body
    elif function == S7Function.PLC_CONTROL:
        plc_control = decode_plc_control(function, parameter)
        plc_control.data = data.read_rest()
        return plc_control
    elif function == S7Function.PLC_STOP:
        plc_stop = decode_plc_stop(function, parameter)
        plc_stop.data = data.read_rest()
        return plc_stop
    return None


def decode_ack_data(function: int, header: ClassicHeader, parameter: DecodeCursor, data: DecodeCursor) -> Optional[object]:
    if function in (S7Function.READ_VAR, S7Function.WRITE_VAR):
        item_count = parameter.read_u8()
        response = VarResponse(function=function, item_count=item_count)
        if function == S7Function.READ_VAR and header.dlength > 0:
            response.data = decode_data_items(data, item_count)
        elif function == S7Function.WRITE_VAR and header.dlength > 0:
            response.data = decode_return_codes(data, item_count)
        return response
    elif function == S7Function.SETUP_COMMUNICATION:
        return decode_setup_communication(function, parameter)
    return None


def decode_setup_communication(function: int, cursor: DecodeCursor) -> SetupCommunication:
    return SetupCommunication(
        function=function,
        reserved=cursor.read_u8(),
        max_amq_calling=cursor.read_u16(),
        max_amq_called=cursor.read_u16(),
        pdu_length=cursor.read_u16(),
    )


def decode_block_reference(cursor: DecodeCursor) -> BlockReference:
    # first byte of the block type is always '0'
    cursor.skip(1)
    return BlockReference(
        block_type=lookup(S7BlockType, cursor.read_u8()),
        block_number=cursor.read_ascii(5),
        destination_filesystem=cursor.read_ascii(1),
    )


def decode_block_control(function: int, plength: int, cursor: DecodeCursor) -> BlockControl:
    """Decodes the parameter of the block transfer functions 0x1A..0x1F."""
    body = BlockControl(function=function, unknown=cursor.read_bytes(7))
    if plength <= 8:
        return body
    body.length_part1 = cursor.read_u8()
    body.file_identifier = cursor.read_ascii(1)
    body.block = decode_block_reference(cursor)
    if function == S7Function.REQUEST_DOWNLOAD and plength > 18:
        body.length_part2 = cursor.read_u8()
        body.unknown_char = cursor.read_ascii(1)
        body.load_memory_length = cursor.read_ascii(6)
        body.mc7_length = cursor.read_ascii(6)
    return body


def decode_plc_control(function: int, cursor: DecodeCursor) -> PlcControl:
    """Decodes the parameter of a PLC control (0x28) job."""
    body = PlcControl(function=function, unknown=cursor.read_bytes(7), length_part1=cursor.read_u16())
    if body.length_part1 == 2:
        # e.g. 'C ' for a cold start
        body.argument = cursor.read_ascii(2)
    elif body.length_part1 > 2:
        count = cursor.read_u8()
        cursor.skip(1)
        for _ in range(count):
            body.blocks.append(decode_block_reference(cursor))
    body.service = cursor.read_ascii(cursor.read_u8())
    return body


def decode_plc_stop(function: int, cursor: DecodeCursor) -> PlcStop:
    body = PlcStop(function=function, unknown=cursor.read_bytes(5))
    body.service = cursor.read_ascii(cursor.read_u8())
    return body
