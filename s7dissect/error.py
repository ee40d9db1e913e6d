"""
S7 error handling and exception classes.

Two families live here. :class:`S7ProtocolError` rejects a whole buffer that is
not a telegram of the requested protocol. :class:`S7DecodeError` and its
subclasses describe a single field or item that could not be decoded; those are
collected on the cursor and returned next to the decoded tree instead of
escaping to the caller.
"""

from typing import Optional, Any
from functools import cache


class S7Error(Exception):
    """Base exception for all S7 dissector errors."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code


class S7ProtocolError(S7Error):
    """Raised when a buffer is not a telegram of the requested protocol."""

    pass


class S7DecodeError(S7Error):
    """Base class of the diagnostics attached to a partially decoded PDU.

    Args:
        message: human readable description
        offset: absolute byte offset in the PDU buffer where decoding stopped
    """

    kind = "DecodeError"

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.offset = offset

    @property
    def message(self) -> str:
        return str(self.args[0])

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.args == other.args and self.offset == other.offset

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.args, self.offset))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, offset={self.offset})"


class OutOfBounds(S7DecodeError):
    """A read wanted more bytes than the buffer (or the enclosing length) holds."""

    kind = "OutOfBounds"

    def __init__(self, offset: int, wanted: int, available: int):
        super().__init__(f"need {wanted} byte(s) at offset {offset}, only {available} available", offset)
        self.wanted = wanted
        self.available = available


class UnknownVariant(S7DecodeError):
    """A tag, function code or type id is not part of the known dialect."""

    kind = "UnknownVariant"

    def __init__(self, what: str, tag: int, offset: Optional[int] = None):
        super().__init__(f"unknown {what}: {tag:#x}", offset)
        self.what = what
        self.tag = tag


class LengthMismatch(S7DecodeError):
    """A declared length disagrees with what the structure or the buffer allows."""

    kind = "LengthMismatch"

    def __init__(self, what: str, expected: int, actual: int, offset: Optional[int] = None):
        super().__init__(f"{what}: declared {expected} byte(s), {actual} available", offset)
        self.what = what
        self.expected = expected
        self.actual = actual


class UnsupportedEncoding(S7DecodeError):
    """The bytes use an encoding the dissector can not interpret."""

    kind = "UnsupportedEncoding"


# error classes from the header of Ack and Ack_Data telegrams
header_error_classes = {
    0x00: "No error",
    0x81: "Application relationship",
    0x82: "Object definition",
    0x83: "No resources available",
    0x84: "Error on service processing",
    0x85: "Error on supplies",
    0x87: "Access error",
}

# return codes of read/write data items
item_return_codes = {
    0x00: "Reserved",
    0x01: "Hardware error",
    0x03: "Accessing the object not allowed",
    0x05: "Invalid address",
    0x06: "Data type not supported",
    0x07: "Data type inconsistent",
    0x0A: "Object does not exist",
    0xFF: "Success",
}


@cache
def error_class_text(error_class: int) -> str:
    """Returns a textual explanation of a header error class.

    Args:
        error_class: error class byte of an Ack/Ack_Data header.

    Returns:
        The error class description.

    Examples:
        >>> error_class_text(0x85)
        'Error on supplies'
    """
    return header_error_classes.get(error_class, f"Unknown error class: {error_class:#04x}")


@cache
def return_code_text(return_code: int) -> str:
    """Returns a textual explanation of a data item return code."""
    return item_return_codes.get(return_code, f"Unknown return code: {return_code:#04x}")
