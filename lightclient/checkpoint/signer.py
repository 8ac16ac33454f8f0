"""
Ed25519 validator keys and checkpoint certification.

Public keys travel as base64 of the raw 32-byte Ed25519 key, which is what
committee records carry.
"""

import base64
import os
from typing import Mapping, Optional, Sequence, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..core.committee import Committee, CommitteeMember
from .aggregate import aggregate_signatures
from .model import CheckpointCertificate, CheckpointHeader, signature_message


class ValidatorKey:
    """
    Ed25519 signing key for one validator.

    Provides:
    - Key generation
    - PEM load/save
    - Signing raw checkpoint messages
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "ValidatorKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def load_from_file(cls, path: str) -> "ValidatorKey":
        """
        Load private key from PEM file.

        Raises:
            FileNotFoundError: If key file doesn't exist
            ValueError: If key is not an Ed25519 private key
        """
        with open(path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=None)

        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("Key file is not Ed25519 private key")

        return cls(private_key)

    def save_to_file(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        private_pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        with open(path, "wb") as f:
            f.write(private_pem)

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)

    def public_key_b64(self) -> str:
        raw = self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return base64.b64encode(raw).decode("ascii")

    def member(self, validator_id: str, stake: int) -> CommitteeMember:
        """Committee entry for this key."""
        return CommitteeMember(validator_id=validator_id, public_key=self.public_key_b64(), stake=stake)


def certify(
    header: CheckpointHeader,
    committee: Committee,
    keys: Mapping[int, ValidatorKey],
    signers: Optional[Sequence[int]] = None,
) -> CheckpointCertificate:
    """
    Produce a certificate for header signed by the given committee indices.

    Args:
        header: Header to certify
        committee: Committee whose indices `keys` refers to
        keys: Committee index -> signing key
        signers: Indices that sign (default: every index in keys)

    Returns:
        CheckpointCertificate
    """
    indices = sorted(keys.keys() if signers is None else signers)
    message = signature_message(header.epoch, header.digest)
    sigs = [keys[i].sign(message) for i in indices]
    return CheckpointCertificate(
        header=header,
        signers=tuple(indices),
        aggregate_signature=aggregate_signatures(sigs),
    )


def generate_committee(
    epoch: int, stakes: Sequence[int], id_prefix: str = "validator"
) -> Tuple[Committee, Mapping[int, ValidatorKey]]:
    """
    Generate a fresh committee with one key per stake entry.

    Returns:
        (committee, index -> key) tuple
    """
    keys = {i: ValidatorKey.generate() for i in range(len(stakes))}
    members = tuple(keys[i].member(f"{id_prefix}-{i}", stake) for i, stake in enumerate(stakes))
    return Committee(epoch=epoch, members=members), keys
