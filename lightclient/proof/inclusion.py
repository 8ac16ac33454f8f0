"""
Transaction inclusion proofs against a trusted checkpoint.

The caller supplies a header it already trusts (from the tracker or a
verified archive entry) and the checkpoint's full contents. Contents are only
believed after their digest matches header.contents_digest; because the
manifest is complete, a transaction missing from it is a definite negative.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict

from ..checkpoint.model import CheckpointContents, CheckpointHeader, CheckpointRef
from ..core.digest import Digest
from ..core.errors import DigestMismatch
from .model import TransactionEffects, TransactionEvents

logger = logging.getLogger(__name__)


class InclusionStatus(str, enum.Enum):
    INCLUDED = "included"
    ABSENT = "absent"
    # transaction present but with different effects: the claimed result is false
    MISMATCHED = "mismatched"


@dataclass(frozen=True)
class InclusionResult:
    status: InclusionStatus
    transaction_digest: Digest
    effects_digest: Digest
    checkpoint: CheckpointRef

    @property
    def included(self) -> bool:
        return self.status is InclusionStatus.INCLUDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "included": self.included,
            "transaction_digest": self.transaction_digest,
            "effects_digest": self.effects_digest,
            "checkpoint": self.checkpoint.to_dict(),
        }


def _check_contents(contents: CheckpointContents, header: CheckpointHeader) -> None:
    computed = contents.digest()
    if computed != header.contents_digest:
        raise DigestMismatch(
            f"contents digest {computed} does not match checkpoint {header.sequence_number} "
            f"contents_digest {header.contents_digest}",
            header.sequence_number,
        )


def check_inclusion(
    transaction_digest: Digest,
    effects_digest: Digest,
    contents: CheckpointContents,
    header: CheckpointHeader,
) -> InclusionResult:
    """
    Decide whether (transaction_digest, effects_digest) was executed in header.

    Args:
        transaction_digest: Transaction being proven
        effects_digest: Claimed effects digest of that transaction
        contents: Full contents of the checkpoint
        header: Trusted checkpoint header

    Returns:
        InclusionResult (INCLUDED, ABSENT or MISMATCHED)

    Raises:
        DigestMismatch: If contents do not hash to header.contents_digest
    """
    _check_contents(contents, header)

    status = InclusionStatus.ABSENT
    for entry in contents:
        if entry.transaction_digest != transaction_digest:
            continue
        if entry.effects_digest == effects_digest:
            status = InclusionStatus.INCLUDED
        else:
            status = InclusionStatus.MISMATCHED
        break

    logger.debug(
        "transaction %s in checkpoint %d: %s",
        transaction_digest[:16],
        header.sequence_number,
        status.value,
    )
    return InclusionResult(
        status=status,
        transaction_digest=transaction_digest,
        effects_digest=effects_digest,
        checkpoint=header.ref(),
    )


def verify_inclusion(
    transaction_digest: Digest,
    effects_digest: Digest,
    contents: CheckpointContents,
    header: CheckpointHeader,
) -> bool:
    return check_inclusion(transaction_digest, effects_digest, contents, header).included


def verify_effects(
    effects: TransactionEffects,
    contents: CheckpointContents,
    header: CheckpointHeader,
) -> InclusionResult:
    """Inclusion of a full effects record, keyed by its own digest."""
    return check_inclusion(effects.transaction_digest, effects.digest(), contents, header)


def verify_events(effects: TransactionEffects, events: TransactionEvents) -> None:
    """
    Check events against the digest committed in effects.

    An empty event list matches only effects with no events_digest.

    Raises:
        DigestMismatch: If events are not the ones effects committed to
    """
    if len(events) == 0 and effects.events_digest is None:
        return
    if effects.events_digest is None:
        raise DigestMismatch(
            f"transaction {effects.transaction_digest[:16]} emitted no events, got {len(events)}"
        )
    computed = events.digest()
    if computed != effects.events_digest:
        raise DigestMismatch(
            f"events digest {computed} does not match effects events_digest {effects.events_digest}"
        )
