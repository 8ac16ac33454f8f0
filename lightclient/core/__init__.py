"""
Core primitives shared by every light client component.

- Canonical: deterministic encoding that digests are computed over
- Digest: SHA-256 content addressing
- Committee: per-epoch validator set
- Errors: verification error taxonomy
"""

from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, decode_json
from .committee import Committee, CommitteeMember
from .digest import ZERO_DIGEST, Digest, digest_bytes, digest_of, is_digest
from .errors import (
    LightClientError,
    VerificationError,
    ChainDiscontinuity,
    SequenceGap,
    CommitteeMismatch,
    DigestMismatch,
    QuorumNotMet,
    InvalidSignature,
    MalformedInput,
    CommitteeNotFound,
    DuplicateEpoch,
    SourceError,
    SourceUnavailable,
    CheckpointNotAvailable,
    ConfigError,
)

__all__ = [
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "decode_json",
    "Committee",
    "CommitteeMember",
    "ZERO_DIGEST",
    "Digest",
    "digest_bytes",
    "digest_of",
    "is_digest",
    "LightClientError",
    "VerificationError",
    "ChainDiscontinuity",
    "SequenceGap",
    "CommitteeMismatch",
    "DigestMismatch",
    "QuorumNotMet",
    "InvalidSignature",
    "MalformedInput",
    "CommitteeNotFound",
    "DuplicateEpoch",
    "SourceError",
    "SourceUnavailable",
    "CheckpointNotAvailable",
    "ConfigError",
]
