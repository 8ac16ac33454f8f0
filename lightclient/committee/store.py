"""
Epoch-indexed committee store.

Holds every committee the client has trusted: the genesis committee and each
committee announced by a verified epoch-boundary checkpoint. Superseded
committees stay available for historical proofs until a caller prunes them.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from ..core.committee import Committee
from ..core.errors import CommitteeNotFound, DuplicateEpoch
from ..core.fields import require_list, require_mapping

logger = logging.getLogger(__name__)


class CommitteeStore:
    """
    In-memory committee store.

    Guarantees:
    - at most one committee per epoch
    - re-inserting an identical committee is a no-op
    - no implicit eviction (see prune())
    """

    def __init__(self) -> None:
        self._committees: Dict[int, Committee] = {}
        self._lock = threading.Lock()

    def get(self, epoch: int) -> Committee:
        """
        Raises:
            CommitteeNotFound: If no committee is stored for epoch
        """
        with self._lock:
            committee = self._committees.get(epoch)
        if committee is None:
            raise CommitteeNotFound(epoch)
        return committee

    def find(self, epoch: int) -> Optional[Committee]:
        with self._lock:
            return self._committees.get(epoch)

    def insert(self, committee: Committee) -> bool:
        """
        Store committee for its epoch.

        Returns:
            True if newly inserted, False if an identical committee was present

        Raises:
            DuplicateEpoch: If a different committee is stored for the epoch
        """
        with self._lock:
            existing = self._committees.get(committee.epoch)
            if existing is not None:
                if existing == committee:
                    return False
                raise DuplicateEpoch(committee.epoch)
            self._committees[committee.epoch] = committee
        logger.info(
            "stored committee for epoch %d (%d members, stake %d)",
            committee.epoch,
            len(committee),
            committee.total_stake,
        )
        return True

    def remove(self, epoch: int) -> None:
        with self._lock:
            self._committees.pop(epoch, None)

    def prune(self, before_epoch: int) -> int:
        """
        Drop committees for epochs older than before_epoch.

        Returns:
            Number of committees removed
        """
        with self._lock:
            stale = [e for e in self._committees if e < before_epoch]
            for e in stale:
                del self._committees[e]
        if stale:
            logger.info("pruned %d committees older than epoch %d", len(stale), before_epoch)
        return len(stale)

    def epochs(self) -> List[int]:
        with self._lock:
            return sorted(self._committees)

    def latest(self) -> Optional[Committee]:
        with self._lock:
            if not self._committees:
                return None
            return self._committees[max(self._committees)]

    def __contains__(self, epoch: object) -> bool:
        with self._lock:
            return epoch in self._committees

    def __len__(self) -> int:
        with self._lock:
            return len(self._committees)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {"committees": [self._committees[e].to_dict() for e in sorted(self._committees)]}

    @classmethod
    def from_dict(cls, data: Any) -> "CommitteeStore":
        data = require_mapping(data, "committee store")
        store = cls()
        for raw in require_list(data, "committees", "committee store"):
            store.insert(Committee.from_dict(raw))
        return store
