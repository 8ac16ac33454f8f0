"""
Checkpoint model, signing and verification.

Provides:
- Header/certificate/contents model with canonical digests
- Ed25519 validator keys and aggregate signatures
- Verification against a trusted state or a standalone committee
- On-disk archive of verified certificates
"""

from .model import (
    CheckpointRef,
    CheckpointHeader,
    CheckpointCertificate,
    CheckpointContents,
    ExecutionDigests,
    signature_message,
)
from .aggregate import aggregate_signatures, verify_aggregate
from .signer import ValidatorKey, certify, generate_committee
from .verify import (
    QuorumPolicy,
    DEFAULT_POLICY,
    VerifiedHeader,
    VerificationResult,
    select_committee,
    verify_certificate,
    verify_with_committee,
    check_certificate,
)
from .store import CheckpointStore

__all__ = [
    "CheckpointRef",
    "CheckpointHeader",
    "CheckpointCertificate",
    "CheckpointContents",
    "ExecutionDigests",
    "signature_message",
    "aggregate_signatures",
    "verify_aggregate",
    "ValidatorKey",
    "certify",
    "generate_committee",
    "QuorumPolicy",
    "DEFAULT_POLICY",
    "VerifiedHeader",
    "VerificationResult",
    "select_committee",
    "verify_certificate",
    "verify_with_committee",
    "check_certificate",
    "CheckpointStore",
]
