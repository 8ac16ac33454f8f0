"""
Archive of verified checkpoint certificates.

Certificates are stored as separate JSON files in a directory.
Naming: cp_{sequence_number:010d}_{digest_prefix}.json
Contents (optional): contents_{sequence_number:010d}.json
Epoch index: epochs.json, the sequence numbers of end-of-epoch checkpoints

The archive only stores what the tracker already accepted; it is not a trust
root. Historical proofs re-verify archived certificates against the stored
committee of their epoch.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..core.canonical import canonical_json_str, decode_json
from ..core.errors import MalformedInput
from .model import CheckpointCertificate, CheckpointContents

EPOCH_INDEX_FILENAME = "epochs.json"


class CheckpointStore:
    """
    Manage archived checkpoint files on disk.

    Zero-padded sequence numbers keep lexicographic and numeric order equal.
    """

    def __init__(self, directory: str = "checkpoints"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _contents_path(self, sequence_number: int) -> Path:
        return self.directory / f"contents_{sequence_number:010d}.json"

    def _write(self, path: Path, text: str) -> None:
        # temp file + rename; readers never see a partial file
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=str(self.directory))
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def save(
        self,
        certificate: CheckpointCertificate,
        contents: Optional[CheckpointContents] = None,
    ) -> str:
        """
        Save certificate (and optionally its contents) to disk.

        Epoch-boundary certificates are also recorded in the epoch index.

        Returns:
            Path to the saved certificate file
        """
        header = certificate.header
        filename = f"cp_{header.sequence_number:010d}_{header.digest[:8]}.json"
        filepath = self.directory / filename

        self._write(filepath, certificate.to_json())

        if contents is not None:
            self.save_contents(header.sequence_number, contents)

        if header.is_epoch_boundary:
            self.record_epoch_boundary(header.epoch, header.sequence_number)

        return str(filepath)

    def save_contents(self, sequence_number: int, contents: CheckpointContents) -> str:
        path = self._contents_path(sequence_number)
        self._write(path, canonical_json_str(contents.to_dict()))
        return str(path)

    def load(self, filepath: str) -> CheckpointCertificate:
        """
        Load certificate from file.

        Raises:
            MalformedInput: If the file is not a valid certificate
        """
        with open(filepath, "r") as f:
            return CheckpointCertificate.from_json(f.read())

    def load_contents(self, sequence_number: int) -> Optional[CheckpointContents]:
        path = self._contents_path(sequence_number)
        if not path.exists():
            return None
        with open(path, "r") as f:
            return CheckpointContents.from_json(f.read())

    def list_checkpoints(self) -> List[str]:
        """
        List archived certificate files, sorted by sequence number.
        """
        def extract_seq(path: str) -> int:
            # cp_{seq}_{digest}.json
            return int(os.path.basename(path).split("_")[1])

        checkpoint_files = [str(p) for p in self.directory.glob("cp_*.json")]
        checkpoint_files.sort(key=extract_seq)
        return checkpoint_files

    def find(self, sequence_number: int) -> Optional[str]:
        matches = sorted(self.directory.glob(f"cp_{sequence_number:010d}_*.json"))
        return str(matches[0]) if matches else None

    def find_latest(self) -> Optional[str]:
        checkpoints = self.list_checkpoints()
        if not checkpoints:
            return None
        return checkpoints[-1]

    def find_at_or_before(self, sequence_number: int) -> Optional[str]:
        """
        Find the archived checkpoint with the largest sequence <= target.
        """
        best = None
        for cp_path in self.list_checkpoints():
            seq = int(os.path.basename(cp_path).split("_")[1])
            if seq <= sequence_number:
                best = cp_path
            else:
                break
        return best

    def delete(self, filepath: str) -> None:
        os.remove(filepath)

    def rotate(self, keep_count: int = 10) -> int:
        """
        Keep only the latest keep_count certificates.

        End-of-epoch certificates are never rotated out: historical proofs
        need them to recover committees.

        Returns:
            Number of certificates deleted
        """
        boundaries = set(self.epoch_boundaries())
        checkpoints = self.list_checkpoints()
        if len(checkpoints) <= keep_count:
            return 0

        deleted = 0
        for cp_path in checkpoints[: len(checkpoints) - keep_count]:
            seq = int(os.path.basename(cp_path).split("_")[1])
            if seq in boundaries:
                continue
            self.delete(cp_path)
            contents_path = self._contents_path(seq)
            if contents_path.exists():
                os.remove(contents_path)
            deleted += 1
        return deleted

    def _epoch_index(self) -> dict:
        """
        Raises:
            MalformedInput: If epochs.json is not a JSON object
        """
        path = self.directory / EPOCH_INDEX_FILENAME
        if not path.exists():
            return {}
        with open(path, "r") as f:
            index = decode_json(f.read())
        if not isinstance(index, dict):
            raise MalformedInput(f"{path}: epoch index must be an object")
        return index

    def record_epoch_boundary(self, epoch: int, sequence_number: int) -> None:
        """Record that sequence_number is the last checkpoint of epoch."""
        index = self._epoch_index()
        index[str(epoch)] = sequence_number
        self._write(self.directory / EPOCH_INDEX_FILENAME, canonical_json_str(index))

    def epoch_boundaries(self) -> List[int]:
        """End-of-epoch checkpoint sequence numbers, ascending."""
        return sorted(self._epoch_index().values())

    def boundary_for_epoch(self, epoch: int) -> Optional[int]:
        return self._epoch_index().get(str(epoch))
