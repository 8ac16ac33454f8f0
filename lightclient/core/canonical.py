"""
Canonical encoding for digest computation.

Every header, committee and contents record is hashed over the bytes produced
here. Re-encoding a decoded record must reproduce the same bytes, so the
encoder refuses values that have no single JSON spelling (floats, bytes,
non-string keys).
"""

import json
from typing import Any

from .errors import MalformedInput


def canonicalize(obj: Any) -> Any:
    """
    Convert nested dict/list/tuple data to canonical form.

    Rules:
    - dict keys sorted, must be strings
    - tuples converted to lists
    - floats rejected (no canonical spelling)
    - bool, int, str and None pass through

    Raises:
        MalformedInput: If obj contains a value with no canonical encoding
    """
    if isinstance(obj, dict):
        for k in obj:
            if not isinstance(k, str):
                raise MalformedInput(f"non-string key in canonical record: {k!r}")
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, float):
        raise MalformedInput("floats have no canonical encoding")
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    raise MalformedInput(f"unsupported type in canonical record: {type(obj).__name__}")


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic JSON bytes for hashing and wire storage.

    Guarantees:
    - sorted keys, no whitespace
    - ensure_ascii=False keeps UTF-8 stable

    Returns:
        UTF-8 encoded JSON bytes
    """
    canon = canonicalize(obj)
    s = json.dumps(canon, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    """Same guarantees as canonical_json_bytes but returns a string."""
    return canonical_json_bytes(obj).decode("utf-8")


def decode_json(data: Any) -> Any:
    """
    Decode wire bytes/str into Python data.

    Raises:
        MalformedInput: If the input is not valid UTF-8 JSON
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise MalformedInput(f"undecodable record: {e}") from e
