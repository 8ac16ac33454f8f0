"""
Exception types for the light client.

VerificationError subclasses mean "reject this candidate checkpoint". They are
terminal for the call that raised them and permanent for the candidate bytes;
a sync driver may move on to other sources but never retries the same input.
"""

from typing import Optional


class LightClientError(Exception):
    """Base class for light client errors."""
    pass


class VerificationError(LightClientError):
    """Raised when a candidate checkpoint or proof input is not trustworthy."""

    def __init__(self, message: str, sequence_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.sequence_number = sequence_number

    @property
    def reason(self) -> str:
        """Short machine-readable reason (class name), used for metrics labels."""
        return type(self).__name__


class ChainDiscontinuity(VerificationError):
    """previous_digest does not link to the trusted checkpoint."""
    pass


class SequenceGap(VerificationError):
    """sequence_number is not exactly trusted + 1 (gaps and replays)."""
    pass


class CommitteeMismatch(VerificationError):
    """Header epoch cannot be verified by any committee the client trusts."""
    pass


class DigestMismatch(VerificationError):
    """A recomputed digest differs from the committed one."""
    pass


class QuorumNotMet(VerificationError):
    """Signed stake is below the Byzantine quorum threshold."""
    pass


class InvalidSignature(VerificationError):
    """Aggregate signature does not verify against the signer keys."""
    pass


class MalformedInput(VerificationError):
    """Wire input could not be decoded or is structurally invalid."""
    pass


class CommitteeNotFound(LookupError):
    """No committee stored for the requested epoch (ordinary negative result)."""

    def __init__(self, epoch: int) -> None:
        super().__init__(f"no committee for epoch {epoch}")
        self.epoch = epoch


class DuplicateEpoch(LightClientError):
    """A different committee is already stored for this epoch."""

    def __init__(self, epoch: int) -> None:
        super().__init__(f"conflicting committee already stored for epoch {epoch}")
        self.epoch = epoch


class SourceError(LightClientError):
    """Raised by checkpoint sources (network/storage layer)."""
    pass


class SourceUnavailable(SourceError):
    """Transient transport failure; the fetch may be retried."""
    pass


class CheckpointNotAvailable(SourceError):
    """The source does not hold the requested checkpoint."""

    def __init__(self, sequence_number: int) -> None:
        super().__init__(f"checkpoint {sequence_number} not available")
        self.sequence_number = sequence_number


class ConfigError(LightClientError):
    """Invalid configuration value."""
    pass
