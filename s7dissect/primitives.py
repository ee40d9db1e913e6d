"""
Primitive codecs shared by both protocol variants.

BCD digits, the two S7 timestamp encodings and the variable length quantity
(VLQ) integers of S7comm-Plus.
"""

import logging
from datetime import datetime, timedelta
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .datatypes import Weekday, lookup
from .error import OutOfBounds, UnsupportedEncoding

logger = logging.getLogger(__name__)

#: 1984-01-01 00:00:00, the epoch of the 6 byte S7 timestamps
S7_EPOCH = datetime(1984, 1, 1)

#: a 32 bit VLQ never needs more than 5 octets (4*7 + 4 bits)
VLQ32_MAX_OCTETS = 5

#: a 64 bit VLQ has 8 octets of 7 bits plus one full 8 bit octet
VLQ64_MAX_OCTETS = 9


def bcd_to_int(byte: int) -> int:
    """Converts one packed BCD byte to its integer value.

    Examples:
        >>> bcd_to_int(0x59)
        59
    """
    return 10 * (byte >> 4) + (byte & 0x0F)


def int_to_bcd(value: int) -> int:
    """Converts an integer between 0 and 99 to a packed BCD byte."""
    if not 0 <= value <= 99:
        raise ValueError(f"value {value} can not be represented as two BCD digits")
    return ((value // 10) << 4) | (value % 10)


def decode_epoch_timestamp(milliseconds: int, days: int) -> datetime:
    """Converts the millisecond-of-day / day-count pair to a datetime.

    Args:
        milliseconds: milliseconds since midnight
        days: days since 1984-01-01

    Returns:
        the absolute (naive, UTC) timestamp
    """
    return S7_EPOCH + timedelta(days=days, milliseconds=milliseconds)


def encode_epoch_timestamp(timestamp: datetime) -> bytes:
    """Encodes a datetime in the 6 byte layout read by :func:`decode_epoch_timestamp`."""
    delta = timestamp - S7_EPOCH
    milliseconds = delta.seconds * 1000 + delta.microseconds // 1000
    return milliseconds.to_bytes(4, "big") + delta.days.to_bytes(2, "big")


@dataclass
class S7DateTime:
    """The 10 byte BCD date and time used by the clock functions.

    Layout: reserved, century, year, month, day, hour, minute, second, the two
    high millisecond digits and a last byte holding the lowest millisecond digit
    in its high nibble and the weekday in its low nibble.
    """

    reserved: int
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    millisecond: int
    weekday: Union[Weekday, int]

    @classmethod
    def from_bytes(cls, data: bytes) -> "S7DateTime":
        """Decodes the 10 BCD bytes.

        Examples:
            >>> S7DateTime.from_bytes(bytes([0, 0x20, 0x14, 0x07, 0x12, 0x17, 0x32, 0x02, 0x85, 0x41])).year
            2014
        """
        if len(data) != 10:
            raise ValueError(f"BCD timestamp needs 10 bytes, got {len(data)}")
        return cls(
            reserved=data[0],
            year=bcd_to_int(data[1]) * 100 + bcd_to_int(data[2]),
            month=bcd_to_int(data[3]),
            day=bcd_to_int(data[4]),
            hour=bcd_to_int(data[5]),
            minute=bcd_to_int(data[6]),
            second=bcd_to_int(data[7]),
            millisecond=bcd_to_int(data[8]) * 10 + (data[9] >> 4),
            weekday=lookup(Weekday, data[9] & 0x0F),
        )

    def to_bytes(self) -> bytes:
        return bytes(
            [
                self.reserved,
                int_to_bcd(self.year // 100),
                int_to_bcd(self.year % 100),
                int_to_bcd(self.month),
                int_to_bcd(self.day),
                int_to_bcd(self.hour),
                int_to_bcd(self.minute),
                int_to_bcd(self.second),
                int_to_bcd(self.millisecond // 10),
                ((self.millisecond % 10) << 4) | (int(self.weekday) & 0x0F),
            ]
        )

    def to_datetime(self) -> Optional[datetime]:
        """The timestamp as datetime, None when the fields do not form a valid date."""
        try:
            return datetime(self.year, self.month, self.day, self.hour, self.minute, self.second, self.millisecond * 1000)
        except ValueError:
            return None


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


def _octet(data: bytes, position: int, end: int, start: int) -> int:
    if position >= end:
        raise OutOfBounds(start, position - start + 1, max(end - start, 0))
    return data[position]


def decode_varuint32(data: bytes, offset: int = 0, end: Optional[int] = None) -> Tuple[int, int]:
    """Decodes an unsigned VLQ.

    Every octet carries 7 payload bits, most significant group first. The top
    bit of an octet flags that another octet follows.

    Args:
        data: buffer to read
        offset: position of the first octet
        end: exclusive upper bound for the read, defaults to the buffer length

    Returns:
        the value and the number of octets consumed

    Raises:
        OutOfBounds: the buffer ends inside the quantity
        UnsupportedEncoding: the continuation flag is still set on the 5th octet

    Examples:
        >>> decode_varuint32(bytes([0x81, 0x00]))
        (128, 2)
    """
    end = len(data) if end is None else min(end, len(data))
    value = 0
    for count in range(1, VLQ32_MAX_OCTETS + 1):
        octet = _octet(data, offset + count - 1, end, offset)
        value = (value << 7) | (octet & 0x7F)
        if not octet & 0x80:
            return value & 0xFFFFFFFF, count
    raise UnsupportedEncoding(f"VLQ continues past {VLQ32_MAX_OCTETS} octets", offset)


def decode_varint32(data: bytes, offset: int = 0, end: Optional[int] = None) -> Tuple[int, int]:
    """Decodes a signed VLQ.

    Identical to :func:`decode_varuint32` except that bit 6 of the first octet
    is a sign flag: when set, the accumulator starts sign extended.

    Examples:
        >>> decode_varint32(bytes([0x40]))
        (-64, 1)
    """
    end = len(data) if end is None else min(end, len(data))
    value = 0
    for count in range(1, VLQ32_MAX_OCTETS + 1):
        octet = _octet(data, offset + count - 1, end, offset)
        if count == 1 and octet & 0x40:
            value = -64 + (octet & 0x3F)
        else:
            value = (value << 7) + (octet & 0x7F)
        if not octet & 0x80:
            return _to_signed(value, 32), count
    raise UnsupportedEncoding(f"VLQ continues past {VLQ32_MAX_OCTETS} octets", offset)


def decode_varuint64(data: bytes, offset: int = 0, end: Optional[int] = None) -> Tuple[int, int]:
    """Decodes a 64 bit unsigned VLQ, the 9th octet (if any) carries 8 full bits."""
    end = len(data) if end is None else min(end, len(data))
    value = 0
    for count in range(1, VLQ64_MAX_OCTETS):
        octet = _octet(data, offset + count - 1, end, offset)
        value = (value << 7) | (octet & 0x7F)
        if not octet & 0x80:
            return value, count
    octet = _octet(data, offset + VLQ64_MAX_OCTETS - 1, end, offset)
    return ((value << 8) | octet) & 0xFFFFFFFFFFFFFFFF, VLQ64_MAX_OCTETS


def encode_varuint32(value: int) -> bytes:
    """Encodes an unsigned 32 bit integer as VLQ.

    Examples:
        >>> encode_varuint32(128)
        b'\\x81\\x00'
    """
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"{value} is not an unsigned 32 bit integer")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append(value & 0x7F)
        value >>= 7
    groups.reverse()
    return bytes([group | 0x80 for group in groups[:-1]] + [groups[-1]])


def encode_varint32(value: int) -> bytes:
    """Encodes a signed 32 bit integer as VLQ, the shortest form that keeps the sign."""
    if not -0x80000000 <= value <= 0x7FFFFFFF:
        raise ValueError(f"{value} is not a signed 32 bit integer")
    octets = 1
    while not -(1 << (7 * octets - 1)) <= value < (1 << (7 * octets - 1)):
        octets += 1
    raw = value & ((1 << (7 * octets)) - 1)
    groups = [(raw >> (7 * shift)) & 0x7F for shift in reversed(range(octets))]
    return bytes([group | 0x80 for group in groups[:-1]] + [groups[-1]])


def encode_varuint64(value: int) -> bytes:
    """Encodes an unsigned 64 bit integer in the layout read by :func:`decode_varuint64`."""
    if not 0 <= value <= 0xFFFFFFFFFFFFFFFF:
        raise ValueError(f"{value} is not an unsigned 64 bit integer")
    if value >= 1 << 56:
        head, last = value >> 8, value & 0xFF
        groups = [(head >> (7 * shift)) & 0x7F for shift in reversed(range(8))]
        return bytes([group | 0x80 for group in groups] + [last])
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append(value & 0x7F)
        value >>= 7
    groups.reverse()
    return bytes([group | 0x80 for group in groups[:-1]] + [groups[-1]])
