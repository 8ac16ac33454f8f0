"""
Checkpoint model: headers, certificates and contents.

A header commits to its own fields through `digest`, to the previous header
through `previous_digest`, and to its transaction manifest through
`contents_digest`. An epoch's last header carries the next committee.
A certificate is a header plus the committee's signatures over it; until it
passes verification it is only a claim.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from ..core.canonical import canonical_json_bytes, decode_json
from ..core.committee import Committee
from ..core.digest import Digest, digest_of, optional_digest, require_digest
from ..core.errors import MalformedInput
from ..core.fields import require_field, require_int, require_list, require_mapping

SIGNATURE_INTENT = "checkpoint_summary"


@dataclass(frozen=True)
class CheckpointRef:
    """Compact reference to a checkpoint (what a proof result points at)."""
    sequence_number: int
    digest: Digest
    epoch: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "digest": self.digest,
            "epoch": self.epoch,
        }


@dataclass(frozen=True)
class CheckpointHeader:
    """
    Checkpoint summary.

    Fields:
        epoch: Epoch the checkpoint belongs to
        sequence_number: Position in the chain (genesis may start anywhere)
        digest: Digest of signing_payload()
        previous_digest: Digest of the preceding header (None only for genesis)
        contents_digest: Digest of the CheckpointContents it summarises
        timestamp_ms: Producer timestamp, informational only
        next_committee: Present iff this is the last checkpoint of its epoch
    """
    epoch: int
    sequence_number: int
    digest: Digest
    previous_digest: Optional[Digest]
    contents_digest: Digest
    timestamp_ms: int
    next_committee: Optional[Committee] = None

    @property
    def is_epoch_boundary(self) -> bool:
        return self.next_committee is not None

    def signing_payload(self) -> Dict[str, Any]:
        """
        Every field except digest. This is what the digest commits to.
        """
        return {
            "epoch": self.epoch,
            "sequence_number": self.sequence_number,
            "previous_digest": self.previous_digest,
            "contents_digest": self.contents_digest,
            "timestamp_ms": self.timestamp_ms,
            "next_committee": self.next_committee.to_dict() if self.next_committee else None,
        }

    def compute_digest(self) -> Digest:
        return digest_of(self.signing_payload())

    def ref(self) -> CheckpointRef:
        return CheckpointRef(self.sequence_number, self.digest, self.epoch)

    def to_dict(self) -> Dict[str, Any]:
        data = self.signing_payload()
        data["digest"] = self.digest
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "CheckpointHeader":
        data = require_mapping(data, "checkpoint header")
        what = "checkpoint header"
        next_committee = data.get("next_committee")
        return cls(
            epoch=require_int(data, "epoch", what),
            sequence_number=require_int(data, "sequence_number", what),
            digest=require_digest(require_field(data, "digest", what), "digest"),
            previous_digest=optional_digest(data.get("previous_digest"), "previous_digest"),
            contents_digest=require_digest(
                require_field(data, "contents_digest", what), "contents_digest"
            ),
            timestamp_ms=require_int(data, "timestamp_ms", what),
            next_committee=Committee.from_dict(next_committee) if next_committee is not None else None,
        )

    @classmethod
    def build(
        cls,
        epoch: int,
        sequence_number: int,
        previous_digest: Optional[Digest],
        contents_digest: Digest,
        timestamp_ms: int = 0,
        next_committee: Optional[Committee] = None,
    ) -> "CheckpointHeader":
        """Construct a header with its digest filled in."""
        draft = cls(
            epoch=epoch,
            sequence_number=sequence_number,
            digest="",
            previous_digest=previous_digest,
            contents_digest=contents_digest,
            timestamp_ms=timestamp_ms,
            next_committee=next_committee,
        )
        return cls(
            epoch=epoch,
            sequence_number=sequence_number,
            digest=draft.compute_digest(),
            previous_digest=previous_digest,
            contents_digest=contents_digest,
            timestamp_ms=timestamp_ms,
            next_committee=next_committee,
        )


def signature_message(epoch: int, digest: Digest) -> bytes:
    """
    Bytes each validator signs for a checkpoint.

    Binding the epoch keeps a signature from one epoch's committee from being
    replayed under another.
    """
    return canonical_json_bytes({"intent": SIGNATURE_INTENT, "epoch": epoch, "digest": digest})


@dataclass(frozen=True)
class CheckpointCertificate:
    """
    Header plus committee signatures.

    Fields:
        header: The claimed checkpoint header
        signers: Committee member indices that signed, strictly ascending
        aggregate_signature: Base64 aggregate signature over signature_message()
    """
    header: CheckpointHeader
    signers: Tuple[int, ...]
    aggregate_signature: str

    def __post_init__(self) -> None:
        if not isinstance(self.signers, tuple):
            object.__setattr__(self, "signers", tuple(self.signers))

    @property
    def sequence_number(self) -> int:
        return self.header.sequence_number

    def check_structure(self) -> None:
        """
        Structural checks that need no committee or cryptography.

        Raises:
            MalformedInput: Unordered/duplicate signers or undecodable signature
        """
        seq = self.header.sequence_number
        if not self.signers:
            raise MalformedInput("certificate has no signers", seq)
        prev = -1
        for idx in self.signers:
            if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0:
                raise MalformedInput(f"invalid signer index {idx!r}", seq)
            if idx <= prev:
                # a repeated index would count one validator's stake twice
                raise MalformedInput(f"signer indices not strictly ascending at {idx}", seq)
            prev = idx
        try:
            base64.b64decode(self.aggregate_signature, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise MalformedInput(f"aggregate signature not base64: {e}", seq) from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": self.header.to_dict(),
            "signers": list(self.signers),
            "aggregate_signature": self.aggregate_signature,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CheckpointCertificate":
        data = require_mapping(data, "certificate")
        signers = require_list(data, "signers", "certificate")
        sig = require_field(data, "aggregate_signature", "certificate")
        if not isinstance(sig, str):
            raise MalformedInput("certificate.aggregate_signature: expected string")
        cert = cls(
            header=CheckpointHeader.from_dict(require_field(data, "header", "certificate")),
            signers=tuple(signers),
            aggregate_signature=sig,
        )
        cert.check_structure()
        return cert

    def to_json(self) -> str:
        """Serialize to JSON string (for file storage)."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, raw: Any) -> "CheckpointCertificate":
        return cls.from_dict(decode_json(raw))


@dataclass(frozen=True)
class ExecutionDigests:
    """(transaction digest, effects digest) pair recorded in checkpoint contents."""
    transaction_digest: Digest
    effects_digest: Digest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_digest": self.transaction_digest,
            "effects_digest": self.effects_digest,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ExecutionDigests":
        data = require_mapping(data, "execution digests")
        return cls(
            transaction_digest=require_digest(
                require_field(data, "transaction_digest", "execution digests"), "transaction_digest"
            ),
            effects_digest=require_digest(
                require_field(data, "effects_digest", "execution digests"), "effects_digest"
            ),
        )


@dataclass(frozen=True)
class CheckpointContents:
    """
    Ordered manifest of every transaction executed in a checkpoint.

    The manifest is complete, so absence of a transaction is a definite
    negative.
    """
    transactions: Tuple[ExecutionDigests, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))

    def __iter__(self) -> Iterator[ExecutionDigests]:
        return iter(self.transactions)

    def __len__(self) -> int:
        return len(self.transactions)

    def digest(self) -> Digest:
        return digest_of(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {"transactions": [t.to_dict() for t in self.transactions]}

    @classmethod
    def from_dict(cls, data: Any) -> "CheckpointContents":
        data = require_mapping(data, "checkpoint contents")
        return cls(
            transactions=tuple(
                ExecutionDigests.from_dict(t)
                for t in require_list(data, "transactions", "checkpoint contents")
            )
        )

    @classmethod
    def from_json(cls, raw: Any) -> "CheckpointContents":
        return cls.from_dict(decode_json(raw))
