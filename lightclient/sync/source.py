"""
Checkpoint sources.

A source is untrusted transport: everything it returns goes through the
tracker's verification before it is believed. Sources only distinguish
"try again later" (SourceUnavailable) from "not there" (CheckpointNotAvailable).

Directory layout read by DirectoryCheckpointSource:
    {seq}.json           certificate
    {seq}.contents.json  checkpoint contents (optional)
"""

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from ..checkpoint.model import CheckpointCertificate, CheckpointContents
from ..core.errors import CheckpointNotAvailable, ConfigError, SourceUnavailable

_CERT_RE = re.compile(r"^(\d+)\.json$")


class CheckpointSource(ABC):
    """
    Abstract checkpoint source.

    Implementations must be safe to call from several threads at once.
    """

    @abstractmethod
    def latest_sequence_number(self) -> Optional[int]:
        """
        Highest sequence number the source can serve.

        Returns:
            Sequence number, or None if the source is empty

        Raises:
            SourceUnavailable: On transport failure
        """
        pass

    @abstractmethod
    def fetch_certificate(self, sequence_number: int) -> CheckpointCertificate:
        """
        Fetch and decode one certificate.

        Raises:
            SourceUnavailable: On transport failure (retryable)
            CheckpointNotAvailable: If the source does not hold it
            MalformedInput: If the bytes do not decode
        """
        pass

    def fetch_contents(self, sequence_number: int) -> Optional[CheckpointContents]:
        """Fetch checkpoint contents, or None if the source does not serve them."""
        return None


class DirectoryCheckpointSource(CheckpointSource):
    """Checkpoint files in a local (or mounted) directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _read(self, path: Path) -> str:
        try:
            with open(path, "r") as f:
                return f.read()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise SourceUnavailable(f"failed to read {path}: {e}") from e

    def latest_sequence_number(self) -> Optional[int]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            raise SourceUnavailable(f"failed to list {self.directory}: {e}") from e
        latest = None
        for name in names:
            m = _CERT_RE.match(name)
            if m is None:
                continue
            seq = int(m.group(1))
            if latest is None or seq > latest:
                latest = seq
        return latest

    def fetch_certificate(self, sequence_number: int) -> CheckpointCertificate:
        path = self.directory / f"{sequence_number}.json"
        try:
            raw = self._read(path)
        except FileNotFoundError:
            raise CheckpointNotAvailable(sequence_number)
        return CheckpointCertificate.from_json(raw)

    def fetch_contents(self, sequence_number: int) -> Optional[CheckpointContents]:
        path = self.directory / f"{sequence_number}.contents.json"
        try:
            raw = self._read(path)
        except FileNotFoundError:
            return None
        return CheckpointContents.from_json(raw)


def source_from_url(
    url: str,
    s3_endpoint_url: Optional[str] = None,
    s3_region: str = "us-east-1",
) -> CheckpointSource:
    """
    Build a source from a URL.

    Supported:
        file:///path/to/dir (or a bare path)
        s3://bucket/prefix

    Raises:
        ConfigError: For unsupported schemes
    """
    parsed = urlparse(url)
    if parsed.scheme in ("", "file"):
        return DirectoryCheckpointSource(parsed.path if parsed.scheme else url)
    if parsed.scheme == "s3":
        from .s3_source import S3CheckpointSource

        return S3CheckpointSource(
            bucket=parsed.netloc,
            prefix=parsed.path.lstrip("/") or "checkpoints",
            endpoint_url=s3_endpoint_url,
            region=s3_region,
        )
    raise ConfigError(f"unsupported checkpoint source: {url}")
