"""
Aggregate signature encoding.

The aggregate is the base64 concatenation of one 64-byte Ed25519 signature per
signer, in signer-index order. Verification is all-or-nothing: one bad
component invalidates the aggregate.
"""

import base64
import binascii
from typing import List, Sequence

from cryptography.exceptions import InvalidSignature as CryptoInvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from ..core.errors import MalformedInput

ED25519_SIGNATURE_LEN = 64


def load_public_key(public_key_b64: str) -> Ed25519PublicKey:
    """
    Decode a committee member's public key.

    Raises:
        MalformedInput: If the key is not base64 of 32 raw bytes
    """
    try:
        raw = base64.b64decode(public_key_b64, validate=True)
        return Ed25519PublicKey.from_public_bytes(raw)
    except (binascii.Error, ValueError) as e:
        raise MalformedInput(f"invalid validator public key: {e}") from e


def verify_one(public_key_b64: str, message: bytes, signature: bytes) -> bool:
    """Verify a single validator signature. Returns False on any mismatch."""
    key = load_public_key(public_key_b64)
    try:
        key.verify(signature, message)
        return True
    except CryptoInvalidSignature:
        return False


def aggregate_signatures(signatures: Sequence[bytes]) -> str:
    for s in signatures:
        if len(s) != ED25519_SIGNATURE_LEN:
            raise ValueError(f"expected {ED25519_SIGNATURE_LEN}-byte signature, got {len(s)}")
    return base64.b64encode(b"".join(signatures)).decode("ascii")


def split_aggregate(aggregate_b64: str, count: int) -> List[bytes]:
    """
    Split an aggregate into its component signatures.

    Raises:
        ValueError: If the aggregate length does not match count signers
    """
    raw = base64.b64decode(aggregate_b64, validate=True)
    if len(raw) != count * ED25519_SIGNATURE_LEN:
        raise ValueError(
            f"aggregate holds {len(raw)} bytes, expected {count * ED25519_SIGNATURE_LEN}"
        )
    return [
        raw[i * ED25519_SIGNATURE_LEN:(i + 1) * ED25519_SIGNATURE_LEN]
        for i in range(count)
    ]


def verify_aggregate(message: bytes, public_keys: Sequence[str], aggregate_b64: str) -> bool:
    """
    Verify an aggregate signature against the signer public keys.

    Args:
        message: Signed bytes
        public_keys: Base64 public keys, in the same order as the signatures
        aggregate_b64: Aggregate produced by aggregate_signatures()

    Returns:
        True if every component verifies
    """
    try:
        parts = split_aggregate(aggregate_b64, len(public_keys))
    except (binascii.Error, ValueError):
        return False
    return all(verify_one(pk, message, sig) for pk, sig in zip(public_keys, parts))
