"""
Bounds checked byte reader threaded through every decoder.
"""

import logging
import struct
from typing import List, Optional

from .error import S7DecodeError, OutOfBounds, LengthMismatch
from .primitives import decode_varint32, decode_varuint32, decode_varuint64

logger = logging.getLogger(__name__)


class DecodeCursor:
    """
    Reader over an immutable PDU buffer.

    Every read advances :attr:`position` and raises :class:`OutOfBounds` when
    fewer bytes than requested remain before :attr:`end`. Sub-cursors created
    with :meth:`window` share the buffer and the diagnostics list, so offsets
    stay absolute and all errors of one PDU end up in one place.
    """

    def __init__(self, data: bytes, position: int = 0, end: Optional[int] = None, errors: Optional[List[S7DecodeError]] = None):
        self.data = bytes(data)
        self.position = position
        self.end = len(self.data) if end is None else min(end, len(self.data))
        self.errors: List[S7DecodeError] = [] if errors is None else errors

    def __repr__(self) -> str:
        return f"<DecodeCursor position={self.position} end={self.end} errors={len(self.errors)}>"

    @property
    def remaining(self) -> int:
        return max(self.end - self.position, 0)

    def at_end(self) -> bool:
        return self.position >= self.end

    def _take(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise OutOfBounds(self.position, size, self.remaining)
        chunk = self.data[self.position : self.position + size]
        self.position += size
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_i8(self) -> int:
        return struct.unpack(">b", self._take(1))[0]

    def read_u16(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def read_i16(self) -> int:
        return struct.unpack(">h", self._take(2))[0]

    def read_u24(self) -> int:
        high, low = struct.unpack(">BH", self._take(3))
        return (high << 16) | low

    def read_u32(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def read_u64(self) -> int:
        return struct.unpack(">Q", self._take(8))[0]

    def read_f32(self) -> float:
        return struct.unpack(">f", self._take(4))[0]

    def read_f64(self) -> float:
        return struct.unpack(">d", self._take(8))[0]

    def read_bytes(self, size: int) -> bytes:
        return self._take(size)

    def read_ascii(self, size: int) -> str:
        """Reads a fixed width character field, stripping trailing NUL padding."""
        return self._take(size).decode("latin-1").rstrip("\x00")

    def read_rest(self) -> bytes:
        return self._take(self.remaining)

    def peek_u8(self, ahead: int = 0) -> int:
        if ahead >= self.remaining:
            raise OutOfBounds(self.position + ahead, 1, 0)
        return self.data[self.position + ahead]

    def peek_u16(self) -> int:
        if self.remaining < 2:
            raise OutOfBounds(self.position, 2, self.remaining)
        return struct.unpack_from(">H", self.data, self.position)[0]

    def peek_u32(self) -> int:
        if self.remaining < 4:
            raise OutOfBounds(self.position, 4, self.remaining)
        return struct.unpack_from(">I", self.data, self.position)[0]

    def skip(self, size: int) -> None:
        self._take(size)

    def read_varuint32(self) -> int:
        value, count = decode_varuint32(self.data, self.position, self.end)
        self.position += count
        return value

    def read_varint32(self) -> int:
        value, count = decode_varint32(self.data, self.position, self.end)
        self.position += count
        return value

    def read_varuint64(self) -> int:
        value, count = decode_varuint64(self.data, self.position, self.end)
        self.position += count
        return value

    def window(self, length: int, what: str = "block") -> "DecodeCursor":
        """
        Returns a cursor over the next ``length`` bytes and advances past them.

        A declared length reaching beyond the available bytes is clamped and
        reported as :class:`LengthMismatch`, it never leads to an over-read.

        Args:
            length: declared length of the enclosed block
            what: name of the block for the diagnostic

        Returns:
            the sub-cursor, sharing buffer and diagnostics with this one
        """
        if length > self.remaining:
            self.report(LengthMismatch(what, length, self.remaining, self.position))
            length = self.remaining
        sub = DecodeCursor(self.data, self.position, self.position + length, self.errors)
        self.position += length
        return sub

    def report(self, error: S7DecodeError) -> None:
        """Records a diagnostic for the PDU being decoded."""
        logger.warning(f"{error.kind} at offset {error.offset}: {error.message}")
        self.errors.append(error)
