"""
Validator committee model.

A committee is the ordered set of validators allowed to sign checkpoints for
one epoch. Member order is significant: certificate signer bitmaps refer to
members by index.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from .digest import Digest, digest_of
from .errors import MalformedInput
from .fields import require_int, require_list, require_mapping, require_str


@dataclass(frozen=True)
class CommitteeMember:
    """
    One validator in a committee.

    Fields:
        validator_id: Stable validator identity
        public_key: Base64 raw Ed25519 public key
        stake: Voting power (positive)
    """
    validator_id: str
    public_key: str
    stake: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "validator_id": self.validator_id,
            "public_key": self.public_key,
            "stake": self.stake,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CommitteeMember":
        data = require_mapping(data, "committee member")
        return cls(
            validator_id=require_str(data, "validator_id", "committee member"),
            public_key=require_str(data, "public_key", "committee member"),
            stake=require_int(data, "stake", "committee member", minimum=1),
        )


@dataclass(frozen=True)
class Committee:
    """
    Immutable committee for a single epoch.

    Invariants (checked on construction):
    - at least one member
    - validator ids unique
    - every stake positive
    """
    epoch: int
    members: Tuple[CommitteeMember, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.members, tuple):
            object.__setattr__(self, "members", tuple(self.members))
        if self.epoch < 0:
            raise MalformedInput("committee epoch must be non-negative")
        if not self.members:
            raise MalformedInput(f"committee for epoch {self.epoch} is empty")
        seen = set()
        for m in self.members:
            if m.validator_id in seen:
                raise MalformedInput(f"duplicate validator id in committee: {m.validator_id}")
            if m.stake <= 0:
                raise MalformedInput(f"validator {m.validator_id} has non-positive stake")
            seen.add(m.validator_id)

    @property
    def total_stake(self) -> int:
        return sum(m.stake for m in self.members)

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[CommitteeMember]:
        return iter(self.members)

    def member_at(self, index: int) -> Optional[CommitteeMember]:
        if 0 <= index < len(self.members):
            return self.members[index]
        return None

    def index_of(self, validator_id: str) -> Optional[int]:
        for i, m in enumerate(self.members):
            if m.validator_id == validator_id:
                return i
        return None

    def digest(self) -> Digest:
        """Digest of the canonical committee record."""
        return digest_of(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch": self.epoch,
            "members": [m.to_dict() for m in self.members],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Committee":
        data = require_mapping(data, "committee")
        members = tuple(
            CommitteeMember.from_dict(m) for m in require_list(data, "members", "committee")
        )
        return cls(epoch=require_int(data, "epoch", "committee"), members=members)
