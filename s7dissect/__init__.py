"""
S7comm and S7comm-Plus PDU decoder.

Pure Python dissector for the two protocols spoken by Siemens S7 PLCs,
turning captured telegrams into a tree of dataclasses.
"""

from importlib.metadata import version, PackageNotFoundError

from .dissector import dissect, detect_protocol
from .error import S7Error, S7ProtocolError, S7DecodeError, OutOfBounds, UnknownVariant, LengthMismatch, UnsupportedEncoding
from .s7protocol import decode_classic
from .s7commplus import decode_plus
from .render import to_dict, to_json

__all__ = [
    "dissect",
    "detect_protocol",
    "decode_classic",
    "decode_plus",
    "to_dict",
    "to_json",
    "S7Error",
    "S7ProtocolError",
    "S7DecodeError",
    "OutOfBounds",
    "UnknownVariant",
    "LengthMismatch",
    "UnsupportedEncoding",
]

try:
    __version__ = version("python-s7dissect")
except PackageNotFoundError:
    __version__ = "0.0rc0"
