"""
Execution records a proof is checked against.

TransactionEffects is the record whose digest a checkpoint's contents list as
effects_digest; it in turn commits to the transaction's events and to the
objects the transaction wrote.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from ..core.canonical import decode_json
from ..core.digest import Digest, digest_of, optional_digest, require_digest
from ..core.errors import MalformedInput
from ..core.fields import require_field, require_int, require_list, require_mapping, require_str

EFFECTS_STATUSES = ("success", "failure")


@dataclass(frozen=True)
class ObjectRef:
    """(object_id, version, digest) of an object written by a transaction."""
    object_id: str
    version: int
    digest: Digest

    def to_dict(self) -> Dict[str, Any]:
        return {"object_id": self.object_id, "version": self.version, "digest": self.digest}

    @classmethod
    def from_dict(cls, data: Any) -> "ObjectRef":
        data = require_mapping(data, "object ref")
        return cls(
            object_id=require_str(data, "object_id", "object ref"),
            version=require_int(data, "version", "object ref"),
            digest=require_digest(require_field(data, "digest", "object ref"), "digest"),
        )


@dataclass(frozen=True)
class TransactionEvents:
    """Ordered events emitted by one transaction."""
    events: Tuple[Dict[str, Any], ...]

    def __post_init__(self) -> None:
        if not isinstance(self.events, tuple):
            object.__setattr__(self, "events", tuple(self.events))

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def digest(self) -> Digest:
        return digest_of(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {"events": list(self.events)}

    @classmethod
    def from_dict(cls, data: Any) -> "TransactionEvents":
        data = require_mapping(data, "transaction events")
        events = require_list(data, "events", "transaction events")
        for event in events:
            require_mapping(event, "transaction event")
        return cls(events=tuple(events))

    @classmethod
    def from_json(cls, raw: Any) -> "TransactionEvents":
        return cls.from_dict(decode_json(raw))


@dataclass(frozen=True)
class TransactionEffects:
    """
    Execution result of a transaction.

    Fields:
        transaction_digest: Transaction these effects belong to
        status: "success" or "failure"
        events_digest: Digest of TransactionEvents, None when no events
        changed_objects: Objects created or mutated, as ObjectRef
    """
    transaction_digest: Digest
    status: str
    events_digest: Optional[Digest] = None
    changed_objects: Tuple[ObjectRef, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.changed_objects, tuple):
            object.__setattr__(self, "changed_objects", tuple(self.changed_objects))

    def digest(self) -> Digest:
        return digest_of(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_digest": self.transaction_digest,
            "status": self.status,
            "events_digest": self.events_digest,
            "changed_objects": [o.to_dict() for o in self.changed_objects],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TransactionEffects":
        what = "transaction effects"
        data = require_mapping(data, what)
        status = require_str(data, "status", what)
        if status not in EFFECTS_STATUSES:
            raise MalformedInput(f"{what}.status: unknown status {status!r}")
        return cls(
            transaction_digest=require_digest(
                require_field(data, "transaction_digest", what), "transaction_digest"
            ),
            status=status,
            events_digest=optional_digest(data.get("events_digest"), "events_digest"),
            changed_objects=tuple(
                ObjectRef.from_dict(o) for o in data.get("changed_objects", [])
            ),
        )

    @classmethod
    def from_json(cls, raw: Any) -> "TransactionEffects":
        return cls.from_dict(decode_json(raw))
