"""
Transaction and object proofs against trusted checkpoints.
"""

from .model import ObjectRef, TransactionEffects, TransactionEvents
from .inclusion import (
    InclusionStatus,
    InclusionResult,
    check_inclusion,
    verify_inclusion,
    verify_effects,
    verify_events,
)
from .objects import ProofVerifier, verify_object

__all__ = [
    "ObjectRef",
    "TransactionEffects",
    "TransactionEvents",
    "InclusionStatus",
    "InclusionResult",
    "check_inclusion",
    "verify_inclusion",
    "verify_effects",
    "verify_events",
    "ProofVerifier",
    "verify_object",
]
