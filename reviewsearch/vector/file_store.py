"""
File-backed vector index: the mirror file.

Record i occupies bytes [i * dim * 4, (i + 1) * dim * 4) of `reviews.index`.
Every append is serialized by one lock, fsynced, and checked to have grown
the file by exactly one record; any mismatch poisons the store until it is
reopened and verified.
"""

import os
import threading
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np

from .codec import decode_matrix, decode_vector, encode_vector, record_size
from .index import IVectorIndex
from ..core.config import VECTOR_FILE_NAME
from ..core.exceptions import IntegrityError, NotFoundError
from ..util.logging import logger


class FileVectorIndex(IVectorIndex):
    """Append-only binary vector log with integrity-checked writes."""

    def __init__(self, path: Path, dim: int):
        """
        Initialize the index over an existing mirror file.

        Args:
            path: Absolute path of the mirror file
            dim: Dimension of the stored vectors
        """
        if dim < 1:
            raise ValueError(f"dimension must be >= 1, got {dim}")
        self.path = Path(path)
        self.dim = dim
        self.bytes_per_vector = record_size(dim)
        self._lock = threading.Lock()
        self._file = open(self.path, "ab")
        self._poisoned = False
        self._check_alignment()

    @classmethod
    def open(cls, data_dir, dim: int) -> 'FileVectorIndex':
        """Open (creating if needed) `reviews.index` under data_dir."""
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        path = (data_dir / VECTOR_FILE_NAME).resolve()
        path.touch(exist_ok=True)
        logger.log_store_event("vector", "open", {"path": str(path), "dim": dim})
        return cls(path, dim)

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def _file_size(self) -> int:
        return os.stat(self.path).st_size

    def _check_alignment(self) -> None:
        size = self._file_size()
        trailing = size % self.bytes_per_vector
        if trailing:
            self._poison("misaligned", {"size": size, "trailing_bytes": trailing})

    def _poison(self, reason: str, details: Dict[str, Any]) -> None:
        self._poisoned = True
        logger.log_store_event("vector", "poisoned", dict(details, path=str(self.path), reason=reason),
                               status="failed")

    def append(self, vector) -> int:
        arr = self.check_vector(vector)
        payload = encode_vector(arr)

        with self._lock:
            if self._poisoned:
                raise IntegrityError(
                    f"vector store {self.path} is poisoned; reopen and verify before writing"
                )

            before = self._file_size()
            if before % self.bytes_per_vector:
                self._poison("misaligned", {"size": before})
                raise IntegrityError(
                    f"mirror file {self.path} holds {before % self.bytes_per_vector} trailing bytes"
                )
            record_id = before // self.bytes_per_vector

            try:
                self._file.write(payload)
                self._file.flush()
                os.fsync(self._file.fileno())
            except OSError as e:
                # Some bytes may have reached disk; no further write can trust the offset
                self._poison("write failed", {"before": before, "error": str(e)})
                raise

            after = self._file_size()
            if after != before + self.bytes_per_vector:
                self._poison("length mismatch", {
                    "before": before,
                    "after": after,
                    "expected_increase": self.bytes_per_vector,
                })
                raise IntegrityError(
                    f"mirror write failed: {before} -> {after} "
                    f"(expect +{self.bytes_per_vector}) @ {self.path}"
                )

        logger.log_vector_append(record_id, after, str(self.path))
        return record_id

    def get(self, record_id: int) -> np.ndarray:
        total = self.count()
        if record_id < 0 or record_id >= total:
            raise NotFoundError(f"vector id {record_id} not found ({total} stored)")

        with open(self.path, "rb") as f:
            f.seek(record_id * self.bytes_per_vector)
            data = f.read(self.bytes_per_vector)
        return decode_vector(data, self.dim)

    def count(self) -> int:
        """Record count inferred from the mirror file length."""
        return self._file_size() // self.bytes_per_vector

    def read_matrix(self, limit: int) -> np.ndarray:
        limit = max(limit, 0)
        with open(self.path, "rb") as f:
            data = f.read(limit * self.bytes_per_vector)
        return decode_matrix(data, self.dim)

    def verify(self) -> Tuple[bool, Dict[str, Any]]:
        """Check that the mirror file holds a whole number of records."""
        size = self._file_size()
        details = {
            "path": str(self.path),
            "size": size,
            "records": size // self.bytes_per_vector,
            "trailing_bytes": size % self.bytes_per_vector,
            "poisoned": self._poisoned,
        }
        ok = details["trailing_bytes"] == 0 and not self._poisoned
        return ok, details

    def reopen(self) -> bool:
        """Reopen the file handle and clear poisoning if the file is aligned.

        Returns:
            True when the store accepts writes again
        """
        with self._lock:
            self._file.close()
            self._file = open(self.path, "ab")
            self._poisoned = False
            self._check_alignment()
            logger.log_store_event("vector", "reopen", {
                "path": str(self.path),
                "poisoned": self._poisoned,
            })
            return not self._poisoned

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()
