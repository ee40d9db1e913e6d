"""
System status list (SZL) records.

A read-SZL response carries ``list_count`` records of ``list_len`` bytes each.
The layout of a record depends on the (SZL-ID, index) pair; known pairs are
decoded with the fixed layouts in :data:`SZL_RECORDS`, everything else is kept
as opaque bytes.
"""

import logging
import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .cursor import DecodeCursor
from .error import LengthMismatch

logger = logging.getLogger(__name__)

#: id, index, list length and list count precede the records
SZL_HEADER_LENGTH = 8

diagnostic_type_names = {
    0x0: "CPU",
    0x4: "IM",
    0x8: "FM",
    0xC: "CP",
}

partial_list_names = {
    0x00: "List of all the SZL-IDs of a module",
    0x11: "Module identification",
    0x12: "CPU characteristics",
    0x13: "User memory areas",
    0x14: "System areas",
    0x15: "Block types",
    0x16: "Priority classes",
    0x17: "List of the permitted SDBs with a number < 1000",
    0x18: "Maximum S7-300 I/O configuration",
    0x19: "Status of the module LEDs",
    0x1C: "Component Identification",
    0x21: "Interrupt / error assignment",
    0x22: "Interrupt status",
    0x23: "Priority classes",
    0x24: "Modes",
    0x25: "Assignment between process image partitions and OBs",
    0x31: "Communication capability parameters",
    0x32: "Communication status data",
    0x33: "Diagnostics: device logon list",
    0x37: "Ethernet - Details of a Module",
    0x71: "H CPU group information",
    0x74: "Status of the module LEDs",
    0x75: "Switched DP slaves in the H-system",
    0x81: "Start information list",
    0x82: "Start event list",
    0x91: "Module status information",
    0x92: "Rack / station status information",
    0x94: "Rack / station status information",
    0x95: "Extended DP master system information",
    0x96: "Module status information, PROFINET IO and PROFIBUS DP",
    0xA0: "Diagnostic buffer of the CPU",
    0xB1: "Module diagnostic information (data record 0)",
    0xB2: "Module diagnostic information (data record 1), geographical address",
    0xB3: "Module diagnostic information (data record 1), logical address",
    0xB4: "Diagnostic data of a DP slave",
}

memory_area_names = {
    0x0001: "work memory",
    0x0002: "load memory integrated",
    0x0003: "load memory plugged in",
    0x0004: "maximum plug-in load memory",
    0x0005: "size of the backup memory",
}

memory_type_names = {
    0x0001: "volatile memory (RAM)",
    0x0002: "non-volatile memory (FEPROM)",
    0x0003: "mixed memory (RAM + FEPROM)",
}

mode_switch_names = {
    0: "undefined or cannot be ascertained",
    1: "RUN",
    2: "RUN_P",
    3: "STOP",
    4: "MRES",
}

startup_switch_names = {
    0: "undefined, does not exist or cannot be be ascertained",
    1: "CRST",
    2: "WRST",
}

operating_mode_names = {
    0x1: "STOP (update)",
    0x2: "STOP (memory reset)",
    0x3: "STOP (self initialization)",
    0x4: "STOP (internal)",
    0x5: "Startup (complete restart)",
    0x7: "Restart",
    0x8: "RUN",
    0xA: "HOLD",
    0xD: "DEFECT",
}

startup_type_names = {
    0x00: "No startup type",
    0x01: "Complete restart in multicomputing",
    0x03: "Complete restart set at mode selector",
    0x04: "Complete restart command via MPI",
    0x0A: "Restart in multicomputing",
    0x0B: "Restart set at mode selector",
    0x0C: "Restart command via MPI",
    0x10: "Automatic complete restart after battery-backed power on",
    0x13: "Complete restart set at mode selector; last power on battery backed",
    0x14: "Complete restart command via MPI; last power on battery backed",
    0x20: "Automatic complete restart after non battery backed power on (with memory reset by system)",
    0x23: "Complete restart set at mode selector; last power on unbattery backed",
    0x24: "Complete restart command via MPI; last power on unbattery backed",
    0xA0: "Automatic restart after battery backed power on according to parameter assignment",
}


@dataclass(frozen=True)
class SzlId:
    """A 16 bit SZL-ID split in diagnostic type, partial list extract and partial list number.

    Examples:
        >>> SzlId(0x0131).partial_list
        49
        >>> SzlId(0x0131).extract
        1
    """

    value: int

    @property
    def diagnostic_type(self) -> int:
        return (self.value >> 12) & 0x0F

    @property
    def extract(self) -> int:
        return (self.value >> 8) & 0x0F

    @property
    def partial_list(self) -> int:
        return self.value & 0xFF

    @property
    def diagnostic_type_name(self) -> Optional[str]:
        return diagnostic_type_names.get(self.diagnostic_type)

    @property
    def partial_list_name(self) -> Optional[str]:
        return partial_list_names.get(self.partial_list)

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True)
class SzlRecordLayout:
    """Fixed layout of one SZL record, a struct format plus one name per unpacked value."""

    title: str
    fmt: str
    fields: Tuple[str, ...]
    text_fields: Tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return struct.calcsize(self.fmt)

    def unpack(self, data: bytes) -> Dict[str, Any]:
        values = dict(zip(self.fields, struct.unpack(self.fmt, data)))
        for name in self.text_fields:
            values[name] = values[name].decode("latin-1")
        return values

    def pack(self, values: Dict[str, Any]) -> bytes:
        ordered = []
        for name in self.fields:
            value = values[name]
            if name in self.text_fields:
                value = value.encode("latin-1")
            ordered.append(value)
        return struct.pack(self.fmt, *ordered)


def _numbered(prefix: str, count: int, start: int = 0) -> Tuple[str, ...]:
    return tuple(f"{prefix}{i}" for i in range(start, start + count))


#: record layouts by (SZL-ID, index)
SZL_RECORDS: Dict[Tuple[int, int], SzlRecordLayout] = {
    (0x0013, 0x0000): SzlRecordLayout(
        "Data records of all memory areas",
        ">HHIHHIIIIII",
        ("index", "code", "size", "mode", "granu", "ber1", "belegt1", "block1", "ber2", "belegt2", "block2"),
    ),
    (0x0111, 0x0001): SzlRecordLayout(
        "Identification of the module",
        ">H20sHHH",
        ("index", "mlfb", "bgtyp", "ausbg", "ausbe"),
        text_fields=("mlfb",),
    ),
    (0x0131, 0x0001): SzlRecordLayout(
        "General communication capability",
        ">HHHII26s",
        ("index", "pdu", "anz", "mpi_bps", "kbus_bps", "res"),
    ),
    (0x0131, 0x0002): SzlRecordLayout(
        "Test and installation function capability",
        ">H6B6s6s8B4HI",
        ("index",)
        + _numbered("funkt_", 6)
        + ("aseg", "eseg")
        + _numbered("trgereig_", 3)
        + ("trgbed", "pfad", "tiefe", "systrig", "erg_par", "erg_pat_1", "erg_pat_2", "force", "time", "res"),
    ),
    (0x0131, 0x0003): SzlRecordLayout(
        "Operator interface function capability",
        ">H4BHHHH26s",
        ("index",) + _numbered("funkt_", 4) + ("data", "anz", "per_min", "per_max", "res"),
    ),
    (0x0131, 0x0004): SzlRecordLayout(
        "Object management system capability",
        ">H8B5B25s",
        ("index",) + _numbered("funkt_", 8) + ("kop", "del", "kett", "hoch", "ver", "res"),
    ),
    (0x0132, 0x0001): SzlRecordLayout(
        "General communication status",
        ">H9H10s",
        ("index", "res_pg", "res_os", "u_pg", "u_os", "proj", "auf", "free", "used", "last", "res"),
    ),
    (0x0132, 0x0002): SzlRecordLayout(
        "Test and installation status",
        ">HH36s",
        ("index", "anz", "res"),
    ),
    (0x0132, 0x0004): SzlRecordLayout(
        "Protection level status",
        ">H5H28s",
        ("index", "key", "param", "real", "bart_sch", "crst_wrst", "res"),
    ),
    (0x0424, 0x0000): SzlRecordLayout(
        "Current mode transition",
        ">HBB4s4B8s",
        ("ereig", "ae", "bzu_id", "res") + _numbered("anlinfo", 4, start=1) + ("time",),
    ),
}

#: names of enumerated field values by (SZL-ID, index) and field
VALUE_NAMES: Dict[Tuple[int, int], Dict[str, Dict[int, str]]] = {
    (0x0013, 0x0000): {"index": memory_area_names, "code": memory_type_names},
    (0x0132, 0x0004): {"bart_sch": mode_switch_names, "crst_wrst": startup_switch_names},
    (0x0424, 0x0000): {"anlinfo2": startup_type_names, "anlinfo4": startup_type_names},
}

#: bit names, least significant bit first, of bit field values
FLAG_NAMES: Dict[Tuple[int, int], Dict[str, Tuple[str, ...]]] = {
    (0x0013, 0x0000): {
        "mode": (
            "Volatile memory area",
            "Non-volatile memory area",
            "Mixed memory area",
            "Code and data separate (for work memory)",
            "Code and data together (for work memory)",
        ),
    },
    (0x0131, 0x0002): {
        "funkt_0": (
            "Reserved",
            "Block status",
            "Variable status",
            "Output ISTACK",
            "Output BSTACK",
            "Output LSTACK",
            "Time measurement from ... to ...",
            "Force selection",
        ),
        "funkt_1": (
            "Modify variable",
            "Force",
            "Breakpoint",
            "Exit HOLD",
            "Memory reset",
            "Disable job",
            "Enable job",
            "Delete job",
        ),
        "funkt_2": ("Read job list", "Read job", "Replace job"),
    },
    (0x0131, 0x0003): {
        "funkt_0": (
            "Read once",
            "Write once",
            "Initialize cyclic reading (start implicitly)",
            "Initialize cyclic reading (start explicitly)",
            "Start cyclic reading",
            "Stop cyclic reading",
            "Clear cyclic reading",
        ),
        "funkt_1": ("", "", "", "", "Peripheral I/Os", "Inputs", "Outputs", "Bit memory"),
        "funkt_2": ("User DB", "Data record", "", "", "", "", "", "S7 counter"),
        "funkt_3": ("S7 timer", "IEC counter", "IEC timer", "High speed counter"),
    },
}


@dataclass
class SzlRecord:
    """One decoded SZL record; ``extra`` holds bytes of a declared length beyond the known layout."""

    szl_id: int
    index: int
    values: Dict[str, Any]
    extra: bytes = b""

    @property
    def layout(self) -> SzlRecordLayout:
        return SZL_RECORDS[(self.szl_id, self.index)]

    def value_name(self, name: str) -> Optional[str]:
        """Name of an enumerated field value, None when the field or value has no name."""
        if (self.szl_id, self.index) == (0x0424, 0x0000) and name == "bzu_id":
            value = self.values[name]
            previous = operating_mode_names.get(value >> 4, f"{value >> 4:#x}")
            requested = operating_mode_names.get(value & 0x0F, f"{value & 0x0F:#x}")
            return f"{previous} -> {requested}"
        names = VALUE_NAMES.get((self.szl_id, self.index), {}).get(name)
        if names is None:
            return None
        return names.get(self.values[name])

    def flags(self, name: str) -> List[str]:
        """Names of the bits set in a bit field value."""
        names = FLAG_NAMES.get((self.szl_id, self.index), {}).get(name, ())
        value = self.values[name]
        return [text for bit, text in enumerate(names) if text and value & (1 << bit)]


@dataclass
class OpaqueSzlRecord:
    """A record of an unknown (SZL-ID, index) pair, or one shorter than its known layout."""

    szl_id: int
    index: int
    raw: bytes


AnySzlRecord = Union[SzlRecord, OpaqueSzlRecord]


def decode_szl_record(szl_id: int, index: int, data: bytes) -> AnySzlRecord:
    """
    Decodes one record of ``list_len`` bytes.

    Args:
        szl_id: SZL-ID of the response
        index: SZL index of the response
        data: exactly one record

    Returns:
        a :class:`SzlRecord` for catalogued pairs, otherwise an :class:`OpaqueSzlRecord`

    Examples:
        >>> record = decode_szl_record(0x0132, 0x0002, bytes(40))
        >>> record.values["anz"]
        0
    """
    layout = SZL_RECORDS.get((szl_id, index))
    if layout is None or len(data) < layout.size:
        return OpaqueSzlRecord(szl_id=szl_id, index=index, raw=bytes(data))
    return SzlRecord(szl_id=szl_id, index=index, values=layout.unpack(data[: layout.size]), extra=bytes(data[layout.size :]))


def encode_szl_record(record: AnySzlRecord) -> bytes:
    """Encodes a record back to the bytes :func:`decode_szl_record` read it from."""
    if isinstance(record, OpaqueSzlRecord):
        return record.raw
    return record.layout.pack(record.values) + record.extra


@dataclass
class SzlReadRequest:
    szl_id: SzlId
    index: int


@dataclass
class SzlResponse:
    """
    The records of one read-SZL response.

    ``list_count`` is the count as declared. When the records do not fit the
    telegram the list continues in a later one: only the complete records
    that fit are decoded, ``truncated`` is set and ``tail`` holds the bytes of
    the partial record.
    """

    szl_id: SzlId
    index: int
    list_length: int
    list_count: int
    records: List[AnySzlRecord] = field(default_factory=list)
    truncated: bool = False
    tail: bytes = b""


def decode_szl_response(cursor: DecodeCursor, data_length: int) -> SzlResponse:
    """
    Decodes a read-SZL response data part.

    Args:
        cursor: positioned on the SZL-ID, directly after the 4 byte data head
        data_length: length declared in the data head, SZL header included

    Returns:
        the response with at most as many records as fit the available bytes
    """
    szl_id = SzlId(cursor.read_u16())
    index = cursor.read_u16()
    list_length = cursor.read_u16()
    list_count = cursor.read_u16()
    response = SzlResponse(szl_id=szl_id, index=index, list_length=list_length, list_count=list_count)
    logger.debug(f"SZL response id {szl_id.value:#06x} index {index:#06x}, {list_count} x {list_length} bytes")

    available = min(max(data_length - SZL_HEADER_LENGTH, 0), cursor.remaining)
    if list_count == 0 or list_length == 0:
        return response

    count = list_count
    if list_count * list_length > available:
        count = available // list_length
        response.truncated = True
        cursor.report(LengthMismatch("SZL list", list_count * list_length, available, cursor.position))

    for _ in range(count):
        response.records.append(decode_szl_record(szl_id.value, index, cursor.read_bytes(list_length)))
    if response.truncated:
        response.tail = cursor.read_bytes(available - count * list_length)
    return response
