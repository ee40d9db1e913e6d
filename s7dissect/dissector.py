"""
Entry point of the decoder: protocol detection and dispatch.
"""

import logging
from typing import Optional

from .datatypes import (
    S7COMM_MIN_TELEGRAM_LENGTH,
    S7COMM_PROTOCOL_ID,
    S7COMMP_MIN_TELEGRAM_LENGTH,
    S7COMMP_PROTOCOL_ID,
)
from .error import S7ProtocolError
from .s7commplus import decode_plus
from .s7protocol import decode_classic
from .types import Pdu

logger = logging.getLogger(__name__)

CLASSIC = "classic"
PLUS = "plus"
AUTO = "auto"

#: values of the ``protocol`` argument of :func:`dissect`
PROTOCOLS = (AUTO, CLASSIC, PLUS)

#: ROSCTR values the classic heuristic accepts, 0x01..0x07 without 0x05 and 0x06
HEURISTIC_ROSCTR = frozenset({0x01, 0x02, 0x03, 0x04, 0x07})


def detect_protocol(data: bytes) -> Optional[str]:
    """
    Guesses the protocol of a telegram from its first bytes.

    Args:
        data: the telegram, without TPKT/COTP framing

    Returns:
        ``"classic"``, ``"plus"`` or None when neither heuristic matches

    Examples:
        >>> detect_protocol(bytes.fromhex("72ff0100"))
        'plus'
        >>> detect_protocol(b"\\x32\\x01") is None
        True
    """
    if len(data) >= S7COMM_MIN_TELEGRAM_LENGTH and data[0] == S7COMM_PROTOCOL_ID and data[1] in HEURISTIC_ROSCTR:
        return CLASSIC
    if len(data) >= S7COMMP_MIN_TELEGRAM_LENGTH and data[0] == S7COMMP_PROTOCOL_ID:
        return PLUS
    return None


def dissect(data: bytes, protocol: str = AUTO) -> Pdu:
    """
    Decodes one PDU.

    Decoding never raises for malformed content inside a recognised telegram:
    the returned tree is as complete as the bytes allow and every problem is
    listed in ``errors``.

    Args:
        data: one reassembled PDU, without TPKT/COTP framing
        protocol: ``"classic"``, ``"plus"`` or ``"auto"`` to detect it

    Returns:
        the decoded PDU

    Raises:
        S7ProtocolError: the buffer is not a telegram of the (detected) protocol
        ValueError: unknown ``protocol`` argument
    """
    if protocol == AUTO:
        detected = detect_protocol(data)
        if detected is None:
            raise S7ProtocolError("not an S7comm or S7comm-Plus telegram")
        logger.debug(f"detected {detected} telegram of {len(data)} bytes")
        protocol = detected

    if protocol == CLASSIC:
        return decode_classic(data)
    elif protocol == PLUS:
        return decode_plus(data)
    raise ValueError(f"unknown protocol {protocol!r}, expected one of {', '.join(PROTOCOLS)}")
