"""
Conversion of decoded PDUs to plain JSON types.
"""

import json
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum, IntFlag
from typing import Any

from .error import S7DecodeError


def to_dict(obj: Any) -> Any:
    """
    Converts a decoded PDU (or any part of it) to dicts, lists and scalars.

    Dataclasses become dicts with their class name under ``"type"``, bytes
    become lowercase hex strings, enum members ``{"value", "name"}``, flag
    values ``{"value", "flags"}`` and datetimes ISO 8601 strings.

    Examples:
        >>> to_dict(b"\\x2a\\xff")
        '2aff'
    """
    if isinstance(obj, S7DecodeError):
        return {"kind": obj.kind, "offset": obj.offset, "message": obj.message}
    if isinstance(obj, IntFlag):
        names = [member.name for member in type(obj) if member.value and obj & member == member]
        return {"value": int(obj), "flags": names}
    if isinstance(obj, Enum):
        return {"value": obj.value, "name": obj.name}
    if is_dataclass(obj) and not isinstance(obj, type):
        result = {"type": type(obj).__name__}
        for f in fields(obj):
            result[f.name] = to_dict(getattr(obj, f.name))
        return result
    if isinstance(obj, (bytes, bytearray)):
        return obj.hex()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(key): to_dict(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_dict(value) for value in obj]
    return obj


def to_json(obj: Any, indent: int = 2) -> str:
    """Serializes :func:`to_dict` of ``obj``; ``indent`` 0 gives one line."""
    return json.dumps(to_dict(obj), indent=indent or None)
