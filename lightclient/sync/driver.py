"""
Sync driver: fetch checkpoints concurrently, apply them strictly in order.

Fetches run on a bounded ThreadPoolExecutor and may complete in any order;
results are buffered by sequence number and handed to ChainTracker.apply()
one at a time, lowest first. Transient transport failures are retried with
exponential backoff plus jitter. The first rejected checkpoint stops the run:
the tracker never skips ahead, so nothing after it can be applied.
"""

import logging
import random
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .. import metrics
from ..checkpoint.model import CheckpointCertificate, CheckpointContents
from ..checkpoint.store import CheckpointStore
from ..core.errors import MalformedInput, SourceUnavailable, VerificationError
from ..logging_config import get_logger
from ..tracker.tracker import ChainTracker
from .source import CheckpointSource

logger = logging.getLogger(__name__)

Fetched = Tuple[CheckpointCertificate, Optional[CheckpointContents]]


@dataclass
class SyncResult:
    """
    Outcome of one sync run.

    Fields:
        applied: Number of checkpoints applied during the run
        last_sequence_number: Trusted sequence number after the run
        target: Sequence number the run tried to reach (None if source empty)
        rejected: First VerificationError, if the run stopped on one
    """
    applied: int
    last_sequence_number: int
    target: Optional[int] = None
    rejected: Optional[VerificationError] = None

    @property
    def ok(self) -> bool:
        return self.rejected is None

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "last_sequence_number": self.last_sequence_number,
            "target": self.target,
            "rejected": None if self.rejected is None else {
                "reason": self.rejected.reason,
                "sequence_number": self.rejected.sequence_number,
                "message": str(self.rejected),
            },
        }


class SyncDriver:
    """
    Drive a ChainTracker from a CheckpointSource.

    Usage:
        driver = SyncDriver(tracker, DirectoryCheckpointSource("/data/checkpoints"))
        result = driver.sync()
    """

    def __init__(
        self,
        tracker: ChainTracker,
        source: CheckpointSource,
        max_workers: int = 8,
        max_retries: int = 5,
        backoff_base: float = 0.1,
        jitter: float = 0.2,
        archive: Optional[CheckpointStore] = None,
        keep_checkpoints: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.tracker = tracker
        self.source = source
        self.max_workers = max_workers
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.jitter = jitter
        self.archive = archive
        self.keep_checkpoints = keep_checkpoints
        self._sleep = sleep

    def _backoff(self, attempt: int) -> float:
        return (2 ** attempt) * self.backoff_base + random.uniform(0, self.jitter)

    def fetch(self, sequence_number: int) -> Fetched:
        """
        Fetch certificate and contents, retrying transient failures.

        Raises:
            SourceUnavailable: When retries are exhausted
            CheckpointNotAvailable: If the source does not hold the checkpoint
            MalformedInput: If the fetched bytes do not decode
        """
        for attempt in range(self.max_retries + 1):
            try:
                certificate = self.source.fetch_certificate(sequence_number)
                contents = self.source.fetch_contents(sequence_number)
                return certificate, contents
            except SourceUnavailable as e:
                if attempt >= self.max_retries:
                    logger.error(
                        "giving up on checkpoint %d after %d attempts: %s",
                        sequence_number,
                        attempt + 1,
                        e,
                    )
                    raise
                backoff = self._backoff(attempt)
                logger.warning(
                    "fetch of checkpoint %d failed (attempt %d/%d), retrying in %.2fs: %s",
                    sequence_number,
                    attempt + 1,
                    self.max_retries + 1,
                    backoff,
                    e,
                )
                metrics.record_retry()
                self._sleep(backoff)
        raise AssertionError("unreachable")

    def _latest(self) -> Optional[int]:
        for attempt in range(self.max_retries + 1):
            try:
                return self.source.latest_sequence_number()
            except SourceUnavailable:
                if attempt >= self.max_retries:
                    raise
                metrics.record_retry()
                self._sleep(self._backoff(attempt))
        raise AssertionError("unreachable")

    def _archive(self, certificate: CheckpointCertificate, contents: Optional[CheckpointContents]) -> None:
        if self.archive is None:
            return
        if contents is not None and contents.digest() != certificate.header.contents_digest:
            # contents are checked again at proof time; do not keep a known-bad copy
            logger.warning(
                "contents for checkpoint %d do not match its contents_digest; not archived",
                certificate.sequence_number,
            )
            contents = None
        self.archive.save(certificate, contents)

    def sync(self, target: Optional[int] = None) -> SyncResult:
        """
        Advance the tracker up to target (default: the source's latest).

        Returns:
            SyncResult; rejected is set if a checkpoint failed verification

        Raises:
            SourceError: If a checkpoint could not be fetched
        """
        with metrics.track_sync_duration():
            return self._sync(target)

    def _sync(self, target: Optional[int]) -> SyncResult:
        start = self.tracker.current_trusted_state().sequence_number + 1
        if target is None:
            target = self._latest()
        if target is None or target < start:
            logger.info("nothing to sync (trusted %d, target %s)", start - 1, target)
            return SyncResult(applied=0, last_sequence_number=start - 1, target=target)

        log = get_logger(__name__, trace_id=f"sync-{start}-{target}")
        log.info("syncing checkpoints %d..%d with %d workers", start, target, self.max_workers)
        window = self.max_workers * 2
        applied = 0
        rejected = None
        pending: Dict[int, "Future[Fetched]"] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            next_submit = start
            next_apply = start
            try:
                while next_apply <= target:
                    while next_submit <= target and len(pending) < window:
                        pending[next_submit] = pool.submit(self.fetch, next_submit)
                        next_submit += 1

                    future = pending.pop(next_apply)
                    try:
                        certificate, contents = future.result()
                        if certificate.sequence_number != next_apply:
                            raise MalformedInput(
                                f"source returned checkpoint {certificate.sequence_number} "
                                f"for {next_apply}",
                                next_apply,
                            )
                    except VerificationError as e:
                        if e.sequence_number is None:
                            e.sequence_number = next_apply
                        metrics.record_rejection(e.reason)
                        rejected = e
                        break

                    try:
                        self.tracker.apply(certificate)
                    except VerificationError as e:
                        rejected = e
                        break

                    self._archive(certificate, contents)
                    applied += 1
                    next_apply += 1
            finally:
                for f in pending.values():
                    f.cancel()

        if rejected is not None:
            log.warning(
                "sync stopped at checkpoint %s: %s (%s)",
                rejected.sequence_number,
                rejected,
                rejected.reason,
            )

        if self.archive is not None and self.keep_checkpoints > 0:
            self.archive.rotate(self.keep_checkpoints)

        last = self.tracker.current_trusted_state().sequence_number
        log.info("sync finished: %d applied, trusted checkpoint %d", applied, last)
        return SyncResult(applied=applied, last_sequence_number=last, target=target, rejected=rejected)
