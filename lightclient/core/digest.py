"""
Content-addressing digests.

A digest is the lowercase hex SHA-256 of a record's canonical encoding.
"""

import hashlib
import re
from typing import Any, Optional

from .canonical import canonical_json_bytes
from .errors import MalformedInput

Digest = str

ZERO_DIGEST: Digest = "0" * 64

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def digest_bytes(data: bytes) -> Digest:
    """SHA-256 of raw bytes as hex."""
    return hashlib.sha256(data).hexdigest()


def digest_of(obj: Any) -> Digest:
    """
    Digest of a record's canonical encoding.

    Example:
        digest_of({"b": 1, "a": 2}) == digest_of({"a": 2, "b": 1})
    """
    return digest_bytes(canonical_json_bytes(obj))


def is_digest(value: Any) -> bool:
    return isinstance(value, str) and bool(_DIGEST_RE.match(value))


def require_digest(value: Any, field_name: str) -> Digest:
    """
    Validate a wire digest value.

    Raises:
        MalformedInput: If value is not a 64-char lowercase hex string
    """
    if not is_digest(value):
        raise MalformedInput(f"{field_name}: not a digest: {value!r}")
    return value


def optional_digest(value: Any, field_name: str) -> Optional[Digest]:
    if value is None:
        return None
    return require_digest(value, field_name)
