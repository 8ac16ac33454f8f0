"""
Field readers for decoding wire records.

Every decoder goes through these so that a missing or mistyped field surfaces
as MalformedInput instead of KeyError/TypeError.
"""

from typing import Any, Dict, List

from .errors import MalformedInput


def require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedInput(f"{what}: expected object, got {type(data).__name__}")
    return data


def require_field(data: Dict[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise MalformedInput(f"{what}: missing field '{key}'")
    return data[key]


def require_int(data: Dict[str, Any], key: str, what: str, minimum: int = 0) -> int:
    value = require_field(data, key, what)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedInput(f"{what}.{key}: expected integer")
    if value < minimum:
        raise MalformedInput(f"{what}.{key}: must be >= {minimum}")
    return value


def require_str(data: Dict[str, Any], key: str, what: str) -> str:
    value = require_field(data, key, what)
    if not isinstance(value, str) or not value:
        raise MalformedInput(f"{what}.{key}: expected non-empty string")
    return value


def require_list(data: Dict[str, Any], key: str, what: str) -> List[Any]:
    value = require_field(data, key, what)
    if not isinstance(value, list):
        raise MalformedInput(f"{what}.{key}: expected list")
    return value
