"""
Brute-force nearest-neighbour search over the stored review vectors.
Query-path failures degrade to fewer or zero hits instead of raising, so
reads stay available while the write path is degraded.
"""

from typing import List, Optional

import numpy as np

from .config import get_default_top_k, get_max_top_k
from .meta_store import MetadataStore
from .schema import SearchHit
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import IVectorIndex
from ..util.logging import logger


class SearchEngine:
    """Scores a query vector against every stored vector and joins metadata."""

    def __init__(self, embedder: IEmbeddingProvider, vector_index: IVectorIndex, meta_store: MetadataStore):
        self.embedder = embedder
        self.vector_index = vector_index
        self.meta_store = meta_store

    def search(self, query: str, top_k: Optional[int] = None) -> List[SearchHit]:
        """
        Return up to top_k stored reviews ranked by similarity to query.

        Args:
            query: The search query string
            top_k: Maximum number of results, clamped to MAX_TOP_K;
                None means DEFAULT_TOP_K and values <= 0 return nothing

        Returns:
            Hits ordered by descending score. May be shorter than top_k when
            a metadata read fails for a ranked id.
        """
        k = get_default_top_k() if top_k is None else top_k
        k = min(k, get_max_top_k())
        if k <= 0:
            return []

        try:
            query_vector = np.asarray(self.embedder.embed_query(query), dtype=np.float32)
        except Exception as e:
            logger.error(f"embed_query fail: {e}")
            return []
        if query_vector.shape != (self.vector_index.dim,):
            logger.error(f"query dim mismatch: {query_vector.shape} != ({self.vector_index.dim},)")
            return []

        try:
            n = min(self.meta_store.count(), self.vector_index.count())
            matrix = self.vector_index.read_matrix(n)
        except Exception as e:
            logger.error(f"store count/read fail: {e}")
            return []

        # Stores may have grown between count() and the read
        n = min(n, matrix.shape[0])
        if n == 0:
            logger.log_search(query, k, 0, 0)
            return []

        scores = matrix[:n] @ query_vector
        # Stable sort on negated scores keeps lower ids first among ties
        ranked = np.argsort(-scores, kind="stable")[:k]

        hits = []
        for record_id in ranked:
            record_id = int(record_id)
            try:
                review = self.meta_store.read(record_id)
            except Exception as e:
                logger.warning(f"meta read id={record_id} failed: {e}")
                continue
            hits.append(SearchHit(id=record_id, score=float(scores[record_id]), review=review))

        logger.log_search(query, k, n, len(hits))
        return hits
