"""
Ingestion pipeline: embed a review, append its vector, append its metadata.

Both appends of one review happen inside a single pipeline lock, so vector
record i and metadata line i always describe the same review.
"""

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from .exceptions import IntegrityError
from .meta_store import MetadataStore
from .schema import Review
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import IVectorIndex
from ..util.logging import logger


ReviewInput = Union[Review, Mapping[str, Any]]


@dataclass
class BulkInsertResult:
    inserted: int
    error: Optional[str] = None


class IngestionPipeline:
    """Sequences embed -> vector append -> metadata append per review."""

    def __init__(self, embedder: IEmbeddingProvider, vector_index: IVectorIndex, meta_store: MetadataStore):
        if embedder.get_dimension() != vector_index.dim:
            raise ValueError(
                f"embedder dimension {embedder.get_dimension()} does not match "
                f"vector index dimension {vector_index.dim}"
            )
        self.embedder = embedder
        self.vector_index = vector_index
        self.meta_store = meta_store
        self._lock = threading.Lock()
        self._desynced = False

    @property
    def desynced(self) -> bool:
        """True once a metadata append failed after its vector was stored."""
        return self._desynced

    @staticmethod
    def _coerce(review: ReviewInput) -> Review:
        if not isinstance(review, Review):
            review = Review.from_dict(review)
        review.validate()
        return review

    def insert_one(self, review: ReviewInput) -> int:
        """Store one review and return its ordinal id.

        Raises:
            ValidationError: malformed review (nothing is stored)
            IntegrityError: a store is poisoned or the id spaces diverged
            OSError: file system failure
        """
        review = self._coerce(review)

        with self._lock:
            if self._desynced:
                raise IntegrityError(
                    "vector and metadata stores are out of step; reopen the service before writing"
                )

            if self.vector_index.poisoned:
                raise IntegrityError("vector store is poisoned; reopen and verify before writing")

            text = review.text()
            vector = self.embedder.embed_index(text)
            try:
                record_id = self.vector_index.append(vector)
            except Exception:
                # Never stored, so not part of the corpus
                self.embedder.retract_index(text)
                raise

            try:
                meta_id = self.meta_store.append(review)
            except Exception as e:
                self._desynced = True
                logger.log_desync(record_id, f"metadata append failed: {e}")
                raise

            if meta_id != record_id:
                self._desynced = True
                logger.log_desync(record_id, f"metadata assigned id {meta_id}")
                raise IntegrityError(
                    f"vector id {record_id} and metadata id {meta_id} diverged"
                )

        logger.log_ingest(record_id, review.review_title)
        return record_id

    def insert_bulk_detailed(self, reviews: Iterable[ReviewInput]) -> BulkInsertResult:
        """Insert reviews in order, stopping at the first failure."""
        reviews = list(reviews)
        inserted = 0
        for review in reviews:
            try:
                self.insert_one(review)
            except (ValueError, IntegrityError, OSError) as e:
                logger.log_bulk_ingest(len(reviews), inserted, error=str(e))
                return BulkInsertResult(inserted=inserted, error=str(e))
            inserted += 1

        logger.log_bulk_ingest(len(reviews), inserted)
        return BulkInsertResult(inserted=inserted)

    def insert_bulk(self, reviews: Iterable[ReviewInput]) -> int:
        """Insert reviews fail-fast and return how many were stored."""
        return self.insert_bulk_detailed(reviews).inserted
