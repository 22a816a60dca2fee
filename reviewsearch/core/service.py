"""
Process-wide wiring: one embedder, one vector index, one metadata store,
shared by every request handler for the lifetime of the process.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import corpus_stats_rebuild_enabled, ensure_data_directory, get_embed_dim, get_embedding_provider, get_vector_index
from .exceptions import ValidationError
from .ingest import BulkInsertResult, IngestionPipeline, ReviewInput
from .meta_store import MetadataStore
from .schema import SearchHit
from .search_service import SearchEngine
from ..util.logging import logger


class ReviewSearchService:
    """Insert, bulk insert and query over the two positional stores."""

    def __init__(self, embedder, vector_index, meta_store: MetadataStore):
        self.embedder = embedder
        self.vector_index = vector_index
        self.meta_store = meta_store
        self.pipeline = IngestionPipeline(embedder, vector_index, meta_store)
        self.engine = SearchEngine(embedder, vector_index, meta_store)

    @classmethod
    def open(cls, data_dir=None, dim: Optional[int] = None, rebuild_stats: Optional[bool] = None) -> 'ReviewSearchService':
        """
        Open the stores under data_dir and build the service.

        Args:
            data_dir: Directory for the vector and metadata files (default DATA_DIR)
            dim: Vector dimension (default EMBED_DIM)
            rebuild_stats: Recompute corpus statistics from stored reviews
                (default CORPUS_STATS_REBUILD)
        """
        data_dir = ensure_data_directory(data_dir)
        dim = dim if dim is not None else get_embed_dim()
        logger.info(f"data dir = {Path(data_dir).resolve()}")

        embedder = get_embedding_provider(dim)
        vector_index = get_vector_index(data_dir, dim)
        meta_store = MetadataStore.open(data_dir)
        service = cls(embedder, vector_index, meta_store)

        if rebuild_stats is None:
            rebuild_stats = corpus_stats_rebuild_enabled()
        if rebuild_stats:
            service.rebuild_statistics()
        elif meta_store.count():
            logger.warning(
                f"corpus statistics start empty while {meta_store.count()} reviews are stored; "
                "idf weights will differ from the stored vectors"
            )

        issues = service.verify()
        for issue in issues:
            logger.warning(f"store check: {issue}")
        return service

    def rebuild_statistics(self) -> int:
        """Recompute document frequencies from the stored reviews.

        Stored vectors are left as they are. Returns the number of reviews counted.
        """
        self.embedder.statistics.reset()
        counted = 0
        for record_id in range(self.meta_store.count()):
            try:
                review = self.meta_store.read(record_id)
            except ValidationError as e:
                logger.warning(f"skipping unreadable review id={record_id}: {e}")
                continue
            self.embedder.observe_text(review.text())
            counted += 1
        logger.log_store_event("corpus", "rebuild", {"documents": counted})
        return counted

    def insert(self, review: ReviewInput) -> int:
        return self.pipeline.insert_one(review)

    def insert_bulk(self, reviews: Iterable[ReviewInput]) -> BulkInsertResult:
        return self.pipeline.insert_bulk_detailed(reviews)

    def query(self, text: str, top_k: Optional[int] = None) -> List[SearchHit]:
        return self.engine.search(text, top_k)

    def health(self) -> Dict[str, Any]:
        """Store sizes and write-path state for the health endpoint."""
        vector_count = self.vector_index.count()
        metadata_count = self.meta_store.count()
        poisoned = self.vector_index.poisoned
        desynced = self.pipeline.desynced
        healthy = not poisoned and not desynced and vector_count == metadata_count
        return {
            "status": "healthy" if healthy else "degraded",
            "vector_count": vector_count,
            "metadata_count": metadata_count,
            "dimension": self.vector_index.dim,
            "poisoned": poisoned,
            "desynced": desynced,
        }

    def verify(self) -> List[str]:
        """Return a list of consistency issues between the two stores."""
        issues = []
        verify = getattr(self.vector_index, "verify", None)
        if verify is not None:
            _, details = verify()
            if details["trailing_bytes"]:
                issues.append(
                    f"vector file has {details['trailing_bytes']} trailing bytes past the last record"
                )
            if details["poisoned"]:
                issues.append("vector store is poisoned")

        vector_count = self.vector_index.count()
        metadata_count = self.meta_store.count()
        if vector_count != metadata_count:
            issues.append(
                f"vector count {vector_count} != metadata count {metadata_count}; "
                f"search covers the first {min(vector_count, metadata_count)} ids"
            )
        if self.pipeline.desynced:
            issues.append("ingestion pipeline is desynced")
        return issues

    def close(self) -> None:
        self.vector_index.close()
