"""
Object proofs and historical proof resolution.

ProofVerifier answers proofs against any checkpoint the tracker has accepted,
not just the latest one. An archived certificate is re-verified against the
stored committee of its epoch before its header is used, so the archive on
disk is never trusted by itself.
"""

import logging
from typing import Optional, Tuple

from ..checkpoint.model import CheckpointCertificate, CheckpointContents, CheckpointHeader
from ..checkpoint.store import CheckpointStore
from ..checkpoint.verify import verify_with_committee
from ..core.digest import Digest
from ..core.errors import CheckpointNotAvailable, DigestMismatch, SequenceGap
from ..tracker.tracker import ChainTracker
from .inclusion import InclusionResult, check_inclusion, verify_effects
from .model import ObjectRef, TransactionEffects

logger = logging.getLogger(__name__)


def verify_object(
    object_ref: ObjectRef,
    effects: TransactionEffects,
    contents: CheckpointContents,
    header: CheckpointHeader,
) -> bool:
    """
    True if effects are included in header and wrote exactly object_ref.

    Raises:
        DigestMismatch: If contents do not hash to header.contents_digest
    """
    if not verify_effects(effects, contents, header).included:
        return False
    return object_ref in effects.changed_objects


class ProofVerifier:
    """
    Proofs against historical checkpoints.

    Usage:
        verifier = ProofVerifier(tracker, CheckpointStore(state_dir / "checkpoints"))
        result = verifier.check_transaction(seq, tx_digest, effects_digest)
    """

    def __init__(self, tracker: ChainTracker, archive: CheckpointStore):
        self.tracker = tracker
        self.archive = archive

    def trusted_header(self, sequence_number: int) -> CheckpointHeader:
        """
        Header of an accepted checkpoint, verified against its epoch's committee.

        Raises:
            SequenceGap: If sequence_number is beyond the trusted checkpoint
            CheckpointNotAvailable: If the archive does not hold it
            CommitteeNotFound: If the epoch's committee was pruned
            VerificationError: If the archived certificate does not verify
        """
        trusted = self.tracker.current_trusted_state().checkpoint
        if sequence_number > trusted.sequence_number:
            raise SequenceGap(
                f"checkpoint {sequence_number} is beyond trusted checkpoint "
                f"{trusted.sequence_number}",
                sequence_number,
            )
        if sequence_number == trusted.sequence_number:
            return trusted

        path = self.archive.find(sequence_number)
        if path is None:
            raise CheckpointNotAvailable(sequence_number)
        certificate: CheckpointCertificate = self.archive.load(path)
        if certificate.sequence_number != sequence_number:
            raise DigestMismatch(
                f"archive file {path} holds checkpoint {certificate.sequence_number}",
                sequence_number,
            )
        committee = self.tracker.committee_for(certificate.header.epoch)
        verified = verify_with_committee(certificate, committee, self.tracker.policy)
        return verified.header

    def _load(self, sequence_number: int) -> Tuple[CheckpointHeader, CheckpointContents]:
        header = self.trusted_header(sequence_number)
        contents: Optional[CheckpointContents] = self.archive.load_contents(sequence_number)
        if contents is None:
            raise CheckpointNotAvailable(sequence_number)
        return header, contents

    def check_transaction(
        self, sequence_number: int, transaction_digest: Digest, effects_digest: Digest
    ) -> InclusionResult:
        header, contents = self._load(sequence_number)
        return check_inclusion(transaction_digest, effects_digest, contents, header)

    def check_effects(self, sequence_number: int, effects: TransactionEffects) -> InclusionResult:
        header, contents = self._load(sequence_number)
        return verify_effects(effects, contents, header)

    def check_object(
        self, sequence_number: int, object_ref: ObjectRef, effects: TransactionEffects
    ) -> bool:
        header, contents = self._load(sequence_number)
        return verify_object(object_ref, effects, contents, header)
