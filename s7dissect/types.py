"""
Result tree of a dissected PDU.

A :class:`Pdu` holds the decoded header and body of one telegram, the
diagnostics collected while decoding it, and any bytes that could not be
attributed to a structure.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from .datatypes import S7CommPlusPDUType, S7ErrorClass, S7PDUType
from .error import S7DecodeError, error_class_text


@dataclass
class ClassicHeader:
    """The 10 byte (Job, Userdata) or 12 byte (Ack, Ack_Data) S7comm header."""

    protocol_id: int
    rosctr: Union[S7PDUType, int]
    redundancy_id: int
    pdu_ref: int
    plength: int
    dlength: int
    error_class: Optional[Union[S7ErrorClass, int]] = None
    error_code: Optional[int] = None

    @property
    def length(self) -> int:
        return 10 if self.error_class is None else 12

    @property
    def error_text(self) -> Optional[str]:
        if self.error_class is None:
            return None
        return error_class_text(int(self.error_class))


@dataclass
class PlusHeader:
    """The 4 byte S7comm-Plus header; KeepAlive carries a sequence number instead of a length."""

    protocol_id: int
    pdu_type: Union[S7CommPlusPDUType, int]
    dlength: Optional[int] = None
    sequence_number: Optional[int] = None
    reserved: Optional[int] = None


@dataclass
class PlusTrailer:
    protocol_id: int
    pdu_type: Union[S7CommPlusPDUType, int]
    dlength: int


@dataclass
class Pdu:
    """One decoded telegram."""

    header: Any
    body: Any = None
    errors: List[S7DecodeError] = field(default_factory=list)
    trailing: bytes = b""

    @property
    def ok(self) -> bool:
        """True when the whole PDU was decoded without diagnostics."""
        return not self.errors


@dataclass
class ClassicPdu(Pdu):
    """Base of the classic telegrams; ``trailing`` holds bytes beyond plength + dlength."""


@dataclass
class ClassicJobAck(ClassicPdu):
    """Job, Ack or Ack_Data telegram."""


@dataclass
class ClassicUserData(ClassicPdu):
    """Userdata telegram."""


@dataclass
class PlusPdu(Pdu):
    """
    Base of the S7comm-Plus telegrams.

    ``trailing`` holds the part of the declared data length not covered by the
    decoded body, ``excess`` whatever follows the data and is not a trailer.
    """

    trailer: Optional[PlusTrailer] = None
    excess: bytes = b""


@dataclass
class PlusConnect(PlusPdu):
    pass


@dataclass
class PlusData(PlusPdu):
    pass


@dataclass
class PlusKeepAlive(PlusPdu):
    pass
