"""
Chain tracker: the single owner of the trusted-state cursor.

apply() is the only way trust advances. It verifies a certificate as the
direct successor of the current state and, on success, swaps in a new
TrustedState (absorbing a committee rotation when the checkpoint closes an
epoch). Out-of-order input is rejected, never buffered; ordering belongs to
the sync driver.

Concurrency:
- one writer at a time (apply holds _write_lock for the whole transaction)
- readers get the current immutable TrustedState reference
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional

from ..checkpoint.model import CheckpointCertificate
from ..checkpoint.verify import DEFAULT_POLICY, QuorumPolicy, VerifiedHeader, verify_certificate
from ..committee.store import CommitteeStore
from ..core.committee import Committee
from ..core.errors import CommitteeMismatch, ConfigError, DuplicateEpoch, VerificationError
from .. import metrics
from .state import TrustedState

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

ApplyHook = Callable[[CheckpointCertificate, TrustedState], None]


def _check_genesis(genesis: TrustedState) -> None:
    anchor = genesis.checkpoint
    committee = genesis.committee
    nxt = anchor.next_committee
    if nxt is not None and nxt.epoch != anchor.epoch + 1:
        raise ConfigError(
            f"genesis checkpoint {anchor.sequence_number} (epoch {anchor.epoch}) announces a "
            f"committee for epoch {nxt.epoch}"
        )
    if committee.epoch == anchor.epoch:
        return
    if (
        anchor.next_committee is not None
        and committee.epoch == anchor.epoch + 1
        and anchor.next_committee == committee
    ):
        return
    raise ConfigError(
        f"genesis committee epoch {committee.epoch} does not match checkpoint "
        f"{anchor.sequence_number} (epoch {anchor.epoch})"
    )


class ChainTracker:
    """
    Sequential validator of the checkpoint chain.

    Usage:
        tracker = ChainTracker(genesis_state)
        tracker.apply(certificate)
        state = tracker.current_trusted_state()

    Invariants:
    - sequence_number strictly increases with every successful apply
    - epoch never decreases
    - a failed apply leaves state and committee store untouched
    """

    def __init__(
        self,
        genesis: TrustedState,
        store: Optional[CommitteeStore] = None,
        policy: QuorumPolicy = DEFAULT_POLICY,
        on_apply: Optional[ApplyHook] = None,
    ) -> None:
        """
        Initialize from a configuration-supplied genesis state.

        The genesis state is trusted as given; it is checked for internal
        consistency only.

        Raises:
            ConfigError: If the genesis committee does not fit its checkpoint
            DuplicateEpoch: If store already holds a different genesis committee
        """
        _check_genesis(genesis)
        self._store = store if store is not None else CommitteeStore()
        self._policy = policy
        self._on_apply = on_apply
        self._state = genesis
        self._write_lock = threading.Lock()
        self._read_lock = threading.Lock()

        self._store.insert(genesis.committee)
        if genesis.checkpoint.next_committee is not None:
            self._store.insert(genesis.checkpoint.next_committee)

    @property
    def store(self) -> CommitteeStore:
        return self._store

    @property
    def policy(self) -> QuorumPolicy:
        return self._policy

    def set_apply_hook(self, hook: Optional[ApplyHook]) -> None:
        with self._write_lock:
            self._on_apply = hook

    def current_trusted_state(self) -> TrustedState:
        """Snapshot of the trusted state (immutable, safe to hold)."""
        with self._read_lock:
            return self._state

    def committee_for(self, epoch: int) -> Committee:
        """
        Committee that signed checkpoints of epoch.

        Raises:
            CommitteeNotFound: If the epoch is unknown or was pruned
        """
        return self._store.get(epoch)

    def verify(self, certificate: CheckpointCertificate) -> VerifiedHeader:
        """Verify certificate against the current state without applying it."""
        return verify_certificate(certificate, self.current_trusted_state(), self._policy)

    def apply(self, certificate: CheckpointCertificate) -> TrustedState:
        """
        Verify certificate and advance the trusted state.

        Returns:
            The new TrustedState

        Raises:
            VerificationError: Candidate rejected; state unchanged
        """
        with self._write_lock:
            current = self._state
            try:
                verified = verify_certificate(certificate, current, self._policy)
            except VerificationError as e:
                logger.warning(
                    "rejected checkpoint %d: %s (%s)",
                    certificate.header.sequence_number,
                    e,
                    e.reason,
                )
                metrics.record_rejection(e.reason)
                raise

            new_state = self._commit(verified)
            hook = self._on_apply
            if hook is not None:
                # state is already swapped; hook errors are logged, not raised
                try:
                    hook(certificate, new_state)
                except Exception:
                    logger.exception(
                        "apply hook failed for checkpoint %d", certificate.header.sequence_number
                    )

        return new_state

    def _commit(self, verified: VerifiedHeader) -> TrustedState:
        """
        Store the announced committee and swap the cursor as one step.

        Runs under _write_lock.
        """
        header = verified.header
        inserted = False
        nxt = header.next_committee
        if nxt is not None:
            try:
                inserted = self._store.insert(nxt)
            except DuplicateEpoch as e:
                metrics.record_rejection(CommitteeMismatch.__name__)
                raise CommitteeMismatch(
                    f"checkpoint announces a committee for epoch {nxt.epoch} that conflicts "
                    f"with the stored one",
                    header.sequence_number,
                ) from e

        try:
            # header.epoch may already be past the previous committee when the
            # previous state had not absorbed its rotation
            new_state = TrustedState(checkpoint=header, committee=nxt or verified.committee)
            with self._read_lock:
                self._state = new_state
        except BaseException:
            if inserted:
                self._store.remove(nxt.epoch)
            raise

        if nxt is not None:
            logger.info(
                "epoch %d closed at checkpoint %d; committee for epoch %d adopted",
                header.epoch,
                header.sequence_number,
                nxt.epoch,
            )
        logger.info(
            "applied checkpoint %d (epoch %d, digest %s)",
            header.sequence_number,
            header.epoch,
            header.digest[:16],
        )
        metrics.record_applied(header.sequence_number, header.epoch)
        return new_state

    def snapshot_dict(self) -> Dict[str, Any]:
        """
        Trusted state plus every stored committee, read consistently.

        Holding the write lock keeps an in-flight apply from landing between
        the two reads.
        """
        with self._write_lock:
            return {
                "version": SNAPSHOT_VERSION,
                "trusted_state": self._state.to_dict(),
                "committees": self._store.to_dict()["committees"],
            }

    def apply_all(self, certificates: Iterable[CheckpointCertificate]) -> TrustedState:
        """
        Apply certificates in order, stopping at the first failure.

        Raises:
            VerificationError: From the first rejected certificate
        """
        state = self.current_trusted_state()
        for cert in certificates:
            state = self.apply(cert)
        return state
