"""
Checkpoint verification against a trusted state.

Verification levels:
- verify_certificate: full chain step (sequence, linkage, epoch, digest,
  quorum, signature) against the tracker's TrustedState
- verify_with_committee: a standalone checkpoint against the committee of its
  epoch, without linkage (historical proofs)

Both are pure: they never mutate their inputs and raise a VerificationError
subclass on the first failed check.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..core.committee import Committee
from ..core.errors import (
    ChainDiscontinuity,
    CommitteeMismatch,
    DigestMismatch,
    InvalidSignature,
    MalformedInput,
    QuorumNotMet,
    SequenceGap,
    VerificationError,
)
from .aggregate import verify_aggregate
from .model import CheckpointCertificate, CheckpointHeader, signature_message

if TYPE_CHECKING:
    from ..tracker.state import TrustedState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuorumPolicy:
    """
    Byzantine quorum threshold.

    Default: signed stake strictly greater than two-thirds of total stake.
    inclusive=True accepts exactly two-thirds.
    """
    inclusive: bool = False

    def is_met(self, signed_stake: int, total_stake: int) -> bool:
        # integer arithmetic; no rounding at the boundary
        if self.inclusive:
            return 3 * signed_stake >= 2 * total_stake
        return 3 * signed_stake > 2 * total_stake


DEFAULT_POLICY = QuorumPolicy()


@dataclass(frozen=True)
class VerifiedHeader:
    """
    A header that passed verification.

    Fields:
        header: The verified header
        committee: Committee whose quorum signed it
        signed_stake: Total stake of the signers
    """
    header: CheckpointHeader
    committee: Committee
    signed_stake: int


@dataclass
class VerificationResult:
    """
    Non-raising verification outcome (CLI and reporting).

    Fields:
        valid: All checks passed
        sequence_number: Candidate sequence number
        signed_stake: Signed stake when verification succeeded
        error: Error message if verification failed
        error_type: VerificationError subclass name if verification failed
    """
    valid: bool
    sequence_number: Optional[int] = None
    signed_stake: Optional[int] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


def select_committee(header: CheckpointHeader, trusted: "TrustedState") -> Committee:
    """
    Choose the committee that must have signed header.

    Raises:
        CommitteeMismatch: If header.epoch is not verifiable from trusted
    """
    seq = header.sequence_number
    anchor = trusted.checkpoint
    committee = trusted.committee

    if header.epoch == committee.epoch:
        if anchor.is_epoch_boundary:
            # rotation already absorbed: committee must be the announced one
            if anchor.epoch + 1 == header.epoch and anchor.next_committee == committee:
                return committee
        elif anchor.epoch == header.epoch:
            return committee
        raise CommitteeMismatch(
            f"trusted committee for epoch {committee.epoch} does not follow checkpoint "
            f"{anchor.sequence_number} (epoch {anchor.epoch})",
            seq,
        )

    if header.epoch == committee.epoch + 1:
        nxt = anchor.next_committee
        if nxt is not None and anchor.epoch == committee.epoch and nxt.epoch == header.epoch:
            return nxt
        raise CommitteeMismatch(
            f"epoch {header.epoch} requires an epoch-boundary checkpoint announcing its committee",
            seq,
        )

    raise CommitteeMismatch(
        f"header epoch {header.epoch} not verifiable with committee of epoch {committee.epoch}",
        seq,
    )


def check_announced_committee(header: CheckpointHeader) -> None:
    """
    An epoch boundary must announce the committee of the following epoch.

    Raises:
        CommitteeMismatch: If next_committee is for any other epoch
    """
    nxt = header.next_committee
    if nxt is not None and nxt.epoch != header.epoch + 1:
        raise CommitteeMismatch(
            f"epoch {header.epoch} boundary announces a committee for epoch {nxt.epoch}",
            header.sequence_number,
        )


def _verify_signed(
    certificate: CheckpointCertificate, committee: Committee, policy: QuorumPolicy
) -> VerifiedHeader:
    """Digest, quorum and signature checks shared by both verification levels."""
    header = certificate.header
    seq = header.sequence_number

    # Step: recompute header digest
    computed = header.compute_digest()
    if computed != header.digest:
        raise DigestMismatch(
            f"header digest mismatch: computed {computed}, claimed {header.digest}", seq
        )

    # Step: signed stake against quorum
    public_keys = []
    signed_stake = 0
    for idx in certificate.signers:
        member = committee.member_at(idx)
        if member is None:
            raise MalformedInput(
                f"signer index {idx} outside committee of {len(committee)} (epoch {committee.epoch})",
                seq,
            )
        public_keys.append(member.public_key)
        signed_stake += member.stake

    total = committee.total_stake
    if not policy.is_met(signed_stake, total):
        raise QuorumNotMet(f"signed stake {signed_stake} of {total} below quorum", seq)

    # Step: aggregate signature
    message = signature_message(header.epoch, header.digest)
    if not verify_aggregate(message, public_keys, certificate.aggregate_signature):
        raise InvalidSignature(f"aggregate signature invalid for checkpoint {seq}", seq)

    return VerifiedHeader(header=header, committee=committee, signed_stake=signed_stake)


def verify_certificate(
    certificate: CheckpointCertificate,
    trusted: "TrustedState",
    policy: QuorumPolicy = DEFAULT_POLICY,
) -> VerifiedHeader:
    """
    Verify certificate as the direct successor of trusted.

    Checks, in order:
    0. structure (signers ascending/unique, signature decodable)
    1. sequence_number == trusted + 1            -> SequenceGap
    2. previous_digest == trusted digest          -> ChainDiscontinuity
    3. epoch verifiable by a trusted committee,
       next_committee (if any) for epoch + 1      -> CommitteeMismatch
    4. header digest recomputes                   -> DigestMismatch
    5. signed stake meets quorum                  -> QuorumNotMet
    6. aggregate signature verifies               -> InvalidSignature

    Args:
        certificate: Candidate checkpoint
        trusted: Current trusted state (not modified)
        policy: Quorum threshold policy

    Returns:
        VerifiedHeader

    Raises:
        VerificationError: Subclass naming the first failed check
    """
    header = certificate.header
    seq = header.sequence_number

    # Step 0: structure
    certificate.check_structure()

    # Step 1: sequence
    expected_seq = trusted.checkpoint.sequence_number + 1
    if seq != expected_seq:
        raise SequenceGap(f"expected sequence {expected_seq}, got {seq}", seq)

    # Step 2: linkage
    if header.previous_digest != trusted.checkpoint.digest:
        raise ChainDiscontinuity(
            f"previous_digest {header.previous_digest} does not match trusted "
            f"{trusted.checkpoint.digest}",
            seq,
        )

    # Step 3: committee for header.epoch
    committee = select_committee(header, trusted)
    check_announced_committee(header)

    # Steps 4-6
    verified = _verify_signed(certificate, committee, policy)
    logger.debug(
        "verified checkpoint %d (epoch %d, stake %d/%d)",
        seq,
        header.epoch,
        verified.signed_stake,
        committee.total_stake,
    )
    return verified


def verify_with_committee(
    certificate: CheckpointCertificate,
    committee: Committee,
    policy: QuorumPolicy = DEFAULT_POLICY,
) -> VerifiedHeader:
    """
    Verify a standalone certificate against the committee of its epoch.

    No chain linkage is checked; the caller must obtain committee from a
    trusted source (genesis or a verified epoch-boundary checkpoint).

    Raises:
        VerificationError: Subclass naming the first failed check
    """
    header = certificate.header
    certificate.check_structure()
    if header.epoch != committee.epoch:
        raise CommitteeMismatch(
            f"header epoch {header.epoch} does not match committee epoch {committee.epoch}",
            header.sequence_number,
        )
    check_announced_committee(header)
    return _verify_signed(certificate, committee, policy)


def check_certificate(
    certificate: CheckpointCertificate,
    trusted: "TrustedState",
    policy: QuorumPolicy = DEFAULT_POLICY,
) -> VerificationResult:
    """
    Verify without raising.

    Returns:
        VerificationResult with error details on failure
    """
    try:
        verified = verify_certificate(certificate, trusted, policy)
    except VerificationError as e:
        return VerificationResult(
            valid=False,
            sequence_number=certificate.header.sequence_number,
            error=str(e),
            error_type=e.reason,
        )
    return VerificationResult(
        valid=True,
        sequence_number=verified.header.sequence_number,
        signed_stake=verified.signed_stake,
    )
