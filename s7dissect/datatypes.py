"""
S7 code tables.

Closed enumerations for every tag the dissector dispatches on, for classic
S7comm and S7comm-Plus.
"""

from enum import IntEnum, IntFlag
from typing import Type, TypeVar, Union

E = TypeVar("E", bound=IntEnum)

#: protocol id of a classic S7comm telegram
S7COMM_PROTOCOL_ID = 0x32

#: protocol id of an S7comm-Plus telegram
S7COMMP_PROTOCOL_ID = 0x72

#: shortest classic telegram: the 10 byte Job header
S7COMM_MIN_TELEGRAM_LENGTH = 10

#: shortest S7comm-Plus telegram: the 4 byte header
S7COMMP_MIN_TELEGRAM_LENGTH = 4


def lookup(enum_type: Type[E], value: int) -> Union[E, int]:
    """Returns the member of ``enum_type`` for ``value``, or the plain int when unknown.

    Examples:
        >>> lookup(S7Area, 0x84)
        <S7Area.DB: 132>
        >>> lookup(S7Area, 0x99)
        153
    """
    try:
        return enum_type(value)
    except ValueError:
        return value


class S7PDUType(IntEnum):
    """ROSCTR, the classic telegram kind."""

    JOB = 0x01  # request
    ACK = 0x02  # acknowledgement without data
    ACK_DATA = 0x03  # response
    USERDATA = 0x07


class S7ErrorClass(IntEnum):
    """Error class byte of Ack/Ack_Data headers."""

    NONE = 0x00
    APPLICATION_RELATIONSHIP = 0x81
    OBJECT_DEFINITION = 0x82
    NO_RESOURCES = 0x83
    SERVICE_PROCESSING = 0x84
    SUPPLIES = 0x85
    ACCESS = 0x87


class S7Function(IntEnum):
    """S7 protocol function codes."""

    CPU_SERVICES = 0x00
    READ_VAR = 0x04
    WRITE_VAR = 0x05
    REQUEST_DOWNLOAD = 0x1A
    DOWNLOAD_BLOCK = 0x1B
    DOWNLOAD_ENDED = 0x1C
    START_UPLOAD = 0x1D
    UPLOAD = 0x1E
    END_UPLOAD = 0x1F
    PLC_CONTROL = 0x28
    PLC_STOP = 0x29
    SETUP_COMMUNICATION = 0xF0


class S7Area(IntEnum):
    """S7 memory area identifiers."""

    SYSINFO_200 = 0x03  # system info of 200 family
    SYSFLAGS_200 = 0x05
    ANAIN_200 = 0x06
    ANAOUT_200 = 0x07
    P = 0x80  # direct peripheral access
    PE = 0x81  # inputs
    PA = 0x82  # outputs
    MK = 0x83  # flags
    DB = 0x84
    DI = 0x85  # instance data blocks
    LOCAL = 0x86
    V = 0x87  # previous local data
    CT = 0x1C  # S7 counters
    TM = 0x1D  # S7 timers
    IEC_COUNTER_200 = 0x1E
    IEC_TIMER_200 = 0x1F


class S7WordLen(IntEnum):
    """Transport size of an address item."""

    BIT = 0x01
    BYTE = 0x02
    CHAR = 0x03
    WORD = 0x04
    INT = 0x05
    DWORD = 0x06
    DINT = 0x07
    REAL = 0x08
    DATE = 0x09
    TOD = 0x0A
    TIME = 0x0B
    S5TIME = 0x0C
    DATE_AND_TIME = 0x0F
    COUNTER = 0x1C
    TIMER = 0x1D
    IEC_COUNTER = 0x1E
    IEC_TIMER = 0x1F
    HS_COUNTER = 0x20


class S7DataTransportSize(IntEnum):
    """Transport size of a data item; decides whether its length counts bits or bytes."""

    NULL = 0x00
    BIT = 0x03  # length in bits
    BYTE = 0x04  # byte/word/dword, length in bits
    INTEGER = 0x05  # length in bits
    REAL = 0x07  # length in bytes
    OCTET_STRING = 0x09  # length in bytes

    @classmethod
    def length_in_bits(cls, transport_size: int) -> bool:
        return cls.BIT <= transport_size <= cls.INTEGER


class S7SyntaxId(IntEnum):
    """Syntax id of a variable specification."""

    S7ANY = 0x10
    DRIVEESANY = 0xA2  # Drive ES Starter with routing
    DBREAD = 0xB0  # seen on S7-400
    S1200SYM = 0xB2  # symbolic addressing of the S7-1200


class S7ReturnCode(IntEnum):
    """Return code of a read/write data item."""

    RESERVED = 0x00
    HARDWARE_FAULT = 0x01
    ACCESS_FAULT = 0x03
    OUT_OF_RANGE = 0x05
    NOT_SUPPORTED = 0x06
    SIZE_MISMATCH = 0x07
    OBJECT_MISSING = 0x0A
    OK = 0xFF


class S7BlockType(IntEnum):
    """Block type as ASCII character, used in block functions and PLC control."""

    OB = ord("8")
    DB = ord("A")
    SDB = ord("B")
    FC = ord("C")
    SFC = ord("D")
    FB = ord("E")
    SFB = ord("F")


class S7SubBlockType(IntEnum):
    """Binary block type used in block info and diagnostic requests."""

    OB = 0x08
    DB = 0x0A
    SDB = 0x0B
    FC = 0x0C
    SFC = 0x0D
    FB = 0x0E
    SFB = 0x0F


class S7BlockSecurity(IntEnum):
    NONE = 0
    KNOW_HOW_PROTECT = 3


class S7BlockLanguage(IntEnum):
    NOT_DEFINED = 0x00
    AWL = 0x01
    KOP = 0x02
    FUP = 0x03
    SCL = 0x04
    DB = 0x05
    GRAPH = 0x06
    SDB = 0x07
    CPU_DB = 0x08  # created by the PLC program
    SDB_AFTER_RESET = 0x11
    SDB_ROUTING = 0x12


class S7BlockFlags(IntFlag):
    """Flags byte of a block info response."""

    LINKED = 0x01
    STANDARD_BLOCK = 0x08
    NON_RETAIN = 0x20


class S7UserDataType(IntEnum):
    """High nibble of the user data type/group byte."""

    FOLLOW = 0x0
    REQUEST = 0x4
    RESPONSE = 0x8


class S7UserDataGroup(IntEnum):
    """Low nibble of the user data type/group byte."""

    PROGRAMMER = 0x1
    CYCLIC_DATA = 0x2
    BLOCK_INFO = 0x3
    SZL = 0x4
    SECURITY = 0x5
    TIME = 0x7


class S7ProgSubfunction(IntEnum):
    REQUEST_DIAG_DATA_1 = 0x01  # start online block view
    VARTAB = 0x02
    ERASE = 0x0C
    READ_DIAG_DATA = 0x0E
    REMOVE_DIAG_DATA = 0x0F  # stop online block view
    FORCE = 0x10
    REQUEST_DIAG_DATA_2 = 0x13


class S7CyclicSubfunction(IntEnum):
    MEMORY = 0x01
    UNSUBSCRIBE = 0x04


class S7BlockSubfunction(IntEnum):
    LIST_ALL = 0x01
    LIST_BLOCKS_OF_TYPE = 0x02
    BLOCK_INFO = 0x03


class S7SzlSubfunction(IntEnum):
    READ_SZL = 0x01
    SYSTEM_STATE = 0x02


class S7SecuritySubfunction(IntEnum):
    PASSWORD = 0x01


class S7TimeSubfunction(IntEnum):
    READ_CLOCK = 0x01
    READ_CLOCK_FOLLOWING = 0x03
    SET_CLOCK = 0x04


#: subfunction table per function group
SUBFUNCTIONS = {
    S7UserDataGroup.PROGRAMMER: S7ProgSubfunction,
    S7UserDataGroup.CYCLIC_DATA: S7CyclicSubfunction,
    S7UserDataGroup.BLOCK_INFO: S7BlockSubfunction,
    S7UserDataGroup.SZL: S7SzlSubfunction,
    S7UserDataGroup.SECURITY: S7SecuritySubfunction,
    S7UserDataGroup.TIME: S7TimeSubfunction,
}


class S7VartabDataType(IntEnum):
    REQUEST = 0x14
    RESPONSE = 0x04


class S7VartabArea(IntEnum):
    """Area of a variable table item, low nibble width, high nibble area."""

    MB = 0x01
    MW = 0x02
    MD = 0x03
    IB = 0x11
    IW = 0x12
    ID = 0x13
    QB = 0x21
    QW = 0x22
    QD = 0x23
    PIB = 0x31
    PIW = 0x32
    PID = 0x33
    DBB = 0x71
    DBW = 0x72
    DBD = 0x73
    T = 0x54
    C = 0x64


class S7DiagRegister(IntFlag):
    """Registers requested per line of an online block view."""

    STW = 0x01
    ACCU1 = 0x02
    ACCU2 = 0x04
    AR1 = 0x08
    AR2 = 0x10
    DB1 = 0x20
    DB2 = 0x40


class S7Tia1200LidFlag(IntEnum):
    ENCAPSULATED_LID = 0x2
    ENCAPSULATED_INDEX = 0x3
    OBTAIN_BY_LID = 0x4
    OBTAIN_BY_INDEX = 0x5
    PART_START_ADDRESS = 0x6
    PART_LENGTH = 0x7


class S7Tia1200Area(IntEnum):
    """Root area of a symbolic S7-1200 item."""

    I = 0x50  # noqa: E741
    Q = 0x51
    M = 0x52
    C = 0x53
    T = 0x54


#: area1 value announcing a DB number in area2 (S7-1200 symbolic and Plus addresses)
TIA_AREA1_DB = 0x8A0E
#: area1 value announcing an I/Q/M/C/T root area in area2
TIA_AREA1_IQMCT = 0x0000


class Weekday(IntEnum):
    UNDEFINED = 0
    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7


# S7comm-Plus


class S7CommPlusPDUType(IntEnum):
    CONNECT = 0x01
    DATA = 0x02
    TYPE_3 = 0x03
    TYPE_4 = 0x04
    KEEP_ALIVE = 0xFF


class S7CommPlusOpcode(IntEnum):
    """First byte of a Connect/Data body."""

    REQUEST = 0x31
    RESPONSE = 0x32
    CYCLIC = 0x33
    RESPONSE_2 = 0x02  # HMI cyclic data responses


class S7CommPlusFunction(IntEnum):
    EXPLORE = 0x04BB
    START_SESSION = 0x04CA
    END_SESSION = 0x04D4
    MODIFY_SESSION = 0x04F2
    WRITE = 0x0542
    READ = 0x054C
    FUNCTION_0586 = 0x0586


#: function codes understood in Connect PDUs
CONNECT_FUNCTIONS = frozenset({S7CommPlusFunction.START_SESSION})

#: function codes understood in Data PDUs
DATA_FUNCTIONS = frozenset(S7CommPlusFunction) - CONNECT_FUNCTIONS


class S7CommPlusDatatype(IntEnum):
    """Datatype tag of an S7comm-Plus value."""

    NULL = 0x00
    BOOL = 0x01
    USINT = 0x02
    UINT = 0x03
    UDINT = 0x04  # varuint32
    ULINT = 0x05  # varuint64
    SINT = 0x06
    INT = 0x07
    DINT = 0x08  # varint32
    LINT = 0x09  # varuint64, two's complement
    BYTE = 0x0A
    WORD = 0x0B
    DWORD = 0x0C
    LWORD = 0x0D
    REAL = 0x0E
    LREAL = 0x0F
    TIMESTAMP = 0x10
    TIMESPAN = 0x11
    RID = 0x12
    AID = 0x13
    BLOB = 0x14
    WSTRING = 0x15
    STRUCT = 0x17
    S7STRING = 0x19


class S7CommPlusDatatypeFlags(IntFlag):
    ARRAY = 0x10
    ADDRESS_ARRAY = 0x20
    STRING_SPECIAL = 0x40
    UNKNOWN_80 = 0x80


class S7CommPlusBaseArea(IntEnum):
    IQMCT = 0x0E98
    DB = 0x09F6


class S7CommPlusSessionValueType(IntEnum):
    """Type id of a start-session attribute."""

    END = 0x00
    VARUINT32 = 0x04
    RID = 0x12
    AID = 0x13
    BLOB = 0x14
    STRING = 0x15


class S7CommPlusSyntaxId(IntEnum):
    """Leading byte of an entry in an id / value list."""

    TERM_STRUCT = 0x00
    VALUE_IN_STRUCT = 0x82
    START_OBJECT = 0xA1
    TERM_OBJECT = 0xA2
    ID_VALUE = 0xA3
    UNKNOWN_A4 = 0xA4
    START_TAG_DESCRIPTION = 0xA7
    TERM_TAG_DESCRIPTION = 0xA8


class S7CommPlusExploreArea(IntEnum):
    """Memory area to explore; the global and instance DB forms carry numbers in the low bytes."""

    DB = 0x00000003
    TON_INSTANCE = 0x0200001F
    GLOBAL_DB = 0x92000000
    INSTANCE_DB = 0x93000000
    INPUT = 0x90010000
    OUTPUT = 0x90020000
    BIT_MEMORY = 0x90030000
    AREA_9004 = 0x90040000
    AREA_9005 = 0x90050000
    AREA_9006 = 0x90060000


#: areas whose low 3 bytes hold a DB or FB number
EXPLORE_NUMBERED_AREAS = frozenset({S7CommPlusExploreArea.GLOBAL_DB, S7CommPlusExploreArea.INSTANCE_DB})


class S7CommPlusCyclicReturn(IntEnum):
    """Return value in front of each item of a cyclic dataset."""

    ACCESS_ERROR = 0x13
    OK = 0x92
    VARTAB = 0x9C


#: cyclic data unknown2 value of datasets carrying items
CYCLIC_DATASET_WITH_ITEMS = 0x0400
