"""
Hashing-trick TF-IDF embeddings with online corpus statistics.

Tokens are hashed into a fixed number of buckets; document frequencies are
counted per bucket as reviews are indexed, so no vocabulary is stored.
"""

from abc import ABC, abstractmethod
import hashlib
import threading
from typing import Iterable, List, Set, Tuple

import numpy as np
import regex

# Alphabetic includes the combining vowel signs of Thai and Indic scripts
_TOKEN_RE = regex.compile(r"[\p{Alphabetic}\p{N}]+")

NORM_EPSILON = 1e-6


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_index(self, text: str) -> np.ndarray:
        """Embed a document being indexed, updating corpus statistics."""
        pass

    @abstractmethod
    def embed_query(self, text: str) -> np.ndarray:
        """Embed a query against the current corpus statistics without mutating them."""
        pass

    @abstractmethod
    def retract_index(self, text: str) -> None:
        """Remove a document counted by embed_index whose vector was not stored."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class CorpusStatistics:
    """Per-bucket document frequencies and total document count.

    Owned by one embedder and guarded by a single lock so the
    read-modify-write of one indexed document never interleaves with another.
    """

    def __init__(self, dimension: int):
        self.dimension = dimension
        self._df = np.zeros(dimension, dtype=np.int64)
        self._docs = 0
        self._lock = threading.Lock()

    @property
    def document_count(self) -> int:
        with self._lock:
            return self._docs

    def document_frequency(self, bucket: int) -> int:
        with self._lock:
            return int(self._df[bucket])

    def observe(self, buckets: Iterable[int]) -> Tuple[np.ndarray, int]:
        """Count one document touching `buckets` and read back the updated state.

        Returns:
            (df values for `buckets` in the given order, document count)
        """
        idx = np.fromiter(buckets, dtype=np.int64)
        with self._lock:
            self._df[idx] += 1
            self._docs += 1
            return self._df[idx].copy(), self._docs

    def forget(self, buckets: Iterable[int]) -> None:
        """Undo one `observe` of the same buckets for a document that was never stored."""
        idx = np.fromiter(buckets, dtype=np.int64)
        with self._lock:
            if self._docs == 0 or np.any(self._df[idx] == 0):
                raise ValueError("cannot forget a document that was not observed")
            self._df[idx] -= 1
            self._docs -= 1

    def snapshot(self, buckets: Iterable[int]) -> Tuple[np.ndarray, int]:
        """Read df values for `buckets` and the document count without mutating."""
        idx = np.fromiter(buckets, dtype=np.int64)
        with self._lock:
            return self._df[idx].copy(), self._docs

    def reset(self) -> None:
        with self._lock:
            self._df[:] = 0
            self._docs = 0


class TfIdfHashingEmbedder(IEmbeddingProvider):
    """TF-IDF embedder over hashed token buckets.

    idf for bucket i is ln((docs + 1) / (df_i + 1)) + 1 and every output is
    L2-normalized here, so a dot product between two outputs is a cosine
    similarity.
    """

    def __init__(self, dimension: int = 4096, statistics: CorpusStatistics = None):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        if statistics is not None and statistics.dimension != dimension:
            raise ValueError(
                f"statistics dimension {statistics.dimension} does not match {dimension}"
            )
        self.dimension = dimension
        self.statistics = statistics if statistics is not None else CorpusStatistics(dimension)

    @staticmethod
    def tokenize(text: str) -> List[str]:
        """Split on runs of non-alphanumeric characters, dropping empty tokens."""
        return _TOKEN_RE.findall(text)

    def bucket(self, token: str) -> int:
        """Stable bucket for a token: MD5 of the lowercased token modulo dimension."""
        digest = hashlib.md5(token.lower().encode("utf-8")).digest()
        return int.from_bytes(digest[:8], "little") % self.dimension

    def _term_frequencies(self, text: str) -> Tuple[np.ndarray, Set[int]]:
        tf = np.zeros(self.dimension, dtype=np.float64)
        touched = set()
        for token in self.tokenize(text):
            i = self.bucket(token)
            tf[i] += 1.0
            touched.add(i)
        return tf, touched

    def _weight(self, tf: np.ndarray, buckets: List[int], df: np.ndarray, docs: int) -> np.ndarray:
        if buckets:
            idf = np.log((docs + 1.0) / (df.astype(np.float64) + 1.0)) + 1.0
            tf[buckets] *= idf
        norm = max(float(np.sqrt(np.dot(tf, tf))), NORM_EPSILON)
        return (tf / norm).astype(np.float32)

    def embed_index(self, text: str) -> np.ndarray:
        tf, touched = self._term_frequencies(text)
        buckets = sorted(touched)
        df, docs = self.statistics.observe(buckets)
        return self._weight(tf, buckets, df, docs)

    def embed_query(self, text: str) -> np.ndarray:
        tf, touched = self._term_frequencies(text)
        buckets = sorted(touched)
        df, docs = self.statistics.snapshot(buckets)
        return self._weight(tf, buckets, df, max(docs, 1))

    def observe_text(self, text: str) -> None:
        """Count a stored document in the statistics without producing a vector."""
        _, touched = self._term_frequencies(text)
        self.statistics.observe(sorted(touched))

    def retract_index(self, text: str) -> None:
        _, touched = self._term_frequencies(text)
        self.statistics.forget(sorted(touched))

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension
