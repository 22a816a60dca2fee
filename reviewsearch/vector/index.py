"""
Vector index interface and an in-memory implementation.
Ids are ordinal: the n-th appended vector gets id n - 1.
"""

from abc import ABC, abstractmethod
import threading
from typing import List

import numpy as np

from ..core.exceptions import NotFoundError, ValidationError


class IVectorIndex(ABC):
    """Abstract interface for append-only vector storage."""

    dim: int

    @abstractmethod
    def append(self, vector) -> int:
        """Append a vector and return its ordinal id."""
        pass

    @abstractmethod
    def get(self, record_id: int) -> np.ndarray:
        """Return the stored vector for an id."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of vectors currently stored."""
        pass

    @abstractmethod
    def read_matrix(self, limit: int) -> np.ndarray:
        """Return the first `limit` vectors as a (limit, dim) float32 matrix."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass

    @property
    def poisoned(self) -> bool:
        return False

    def check_vector(self, vector) -> np.ndarray:
        """Coerce to float32 and reject anything but a vector of length dim."""
        try:
            arr = np.asarray(vector, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Vector is not numeric: {e}") from e
        if arr.ndim != 1 or arr.shape[0] != self.dim:
            raise ValidationError(
                f"Vector dimension {arr.shape} does not match expected dimension {self.dim}"
            )
        return arr


class InMemoryVectorIndex(IVectorIndex):
    """Simple in-memory implementation of IVectorIndex for ephemeral deployments."""

    def __init__(self, dim: int):
        self.dim = dim
        self._vectors: List[np.ndarray] = []
        self._lock = threading.Lock()

    def append(self, vector) -> int:
        arr = self.check_vector(vector).copy()
        with self._lock:
            self._vectors.append(arr)
            return len(self._vectors) - 1

    def get(self, record_id: int) -> np.ndarray:
        vectors = self._vectors
        if record_id < 0 or record_id >= len(vectors):
            raise NotFoundError(f"vector id {record_id} not found ({len(vectors)} stored)")
        return vectors[record_id].copy()

    def count(self) -> int:
        return len(self._vectors)

    def read_matrix(self, limit: int) -> np.ndarray:
        rows = self._vectors[:max(limit, 0)]
        if not rows:
            return np.zeros((0, self.dim), dtype=np.float32)
        return np.vstack(rows).astype(np.float32)
