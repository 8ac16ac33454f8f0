"""
Trusted state: what the client currently believes.

The tracker owns the only mutable reference to a TrustedState; the value
itself is immutable, so handing it to readers is a snapshot.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..checkpoint.model import CheckpointHeader
from ..core.canonical import canonical_json_bytes
from ..core.committee import Committee
from ..core.fields import require_field, require_mapping


@dataclass(frozen=True)
class TrustedState:
    """
    Latest trusted checkpoint and the committee that verifies its successor.

    After an epoch-boundary checkpoint the committee is already the next
    epoch's committee (the one embedded in checkpoint.next_committee).
    """
    checkpoint: CheckpointHeader
    committee: Committee

    @property
    def sequence_number(self) -> int:
        return self.checkpoint.sequence_number

    @property
    def epoch(self) -> int:
        return self.checkpoint.epoch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checkpoint": self.checkpoint.to_dict(),
            "committee": self.committee.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TrustedState":
        data = require_mapping(data, "trusted state")
        return cls(
            checkpoint=CheckpointHeader.from_dict(require_field(data, "checkpoint", "trusted state")),
            committee=Committee.from_dict(require_field(data, "committee", "trusted state")),
        )

    def to_bytes(self) -> bytes:
        return canonical_json_bytes(self.to_dict())
