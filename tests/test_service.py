"""
Test cases for service wiring: open, corpus statistics rebuild, health and verify.
"""

import os
import shutil
import tempfile

import pytest

from reviewsearch.core.schema import Review
from reviewsearch.core.service import ReviewSearchService
from reviewsearch.vector.file_store import FileVectorIndex
from reviewsearch.vector.index import InMemoryVectorIndex


@pytest.fixture
def data_dir():
    """Create a temporary data directory."""
    test_dir = tempfile.mkdtemp()
    yield test_dir
    shutil.rmtree(test_dir)


@pytest.fixture(autouse=True)
def file_provider(monkeypatch):
    monkeypatch.setenv("VECTOR_PROVIDER", "file")


def test_open_uses_configured_dimension(data_dir, monkeypatch):
    monkeypatch.setenv("EMBED_DIM", "64")
    service = ReviewSearchService.open(data_dir)
    try:
        assert isinstance(service.vector_index, FileVectorIndex)
        assert service.vector_index.dim == 64
        assert service.embedder.get_dimension() == 64
    finally:
        service.close()


def test_memory_provider(data_dir, monkeypatch):
    monkeypatch.setenv("VECTOR_PROVIDER", "memory")
    service = ReviewSearchService.open(data_dir, dim=32)
    try:
        assert isinstance(service.vector_index, InMemoryVectorIndex)
        assert service.insert(Review("a", "b", "p", 1)) == 0
    finally:
        service.close()


def test_insert_and_query_operations(data_dir):
    """Test the insert / insert_bulk / query operation surface."""
    service = ReviewSearchService.open(data_dir, dim=4096)
    try:
        assert service.insert(Review("good product", "really good", "p1", 5)) == 0
        result = service.insert_bulk([
            {"review_title": "bad product", "review_body": "really bad", "product_id": "p2", "review_rating": 1},
        ])
        assert result.inserted == 1

        hits = service.query("good", top_k=1)
        assert hits[0].id == 0
    finally:
        service.close()


def test_statistics_rebuilt_from_stored_reviews(data_dir):
    """Test that a restarted service recovers document frequencies from metadata."""
    service = ReviewSearchService.open(data_dir, dim=512)
    service.insert(Review("zoom lens", "sharp", "p1", 5))
    service.insert(Review("zoom", "blurry", "p2", 2))
    before_docs = service.embedder.statistics.document_count
    before_df = service.embedder.statistics.document_frequency(service.embedder.bucket("zoom"))
    service.close()

    restarted = ReviewSearchService.open(data_dir, dim=512, rebuild_stats=True)
    try:
        stats = restarted.embedder.statistics
        assert stats.document_count == before_docs == 2
        assert stats.document_frequency(restarted.embedder.bucket("zoom")) == before_df == 2
    finally:
        restarted.close()


def test_statistics_start_empty_without_rebuild(data_dir):
    service = ReviewSearchService.open(data_dir, dim=128)
    service.insert(Review("zoom", "lens", "p1", 5))
    service.close()

    restarted = ReviewSearchService.open(data_dir, dim=128, rebuild_stats=False)
    try:
        assert restarted.embedder.statistics.document_count == 0
    finally:
        restarted.close()


def test_rebuild_skips_corrupt_lines(data_dir):
    with open(os.path.join(data_dir, "reviews.jsonl"), "w", encoding="utf-8") as f:
        f.write("garbage\n")
        f.write('{"review_title": "ok", "review_body": "fine", "product_id": "p", "review_rating": 3}\n')

    service = ReviewSearchService.open(data_dir, dim=64, rebuild_stats=True)
    try:
        assert service.embedder.statistics.document_count == 1
    finally:
        service.close()


def test_health_reports_counts(data_dir):
    service = ReviewSearchService.open(data_dir, dim=64)
    try:
        service.insert(Review("a", "b", "p", 1))
        health = service.health()
        assert health["status"] == "healthy"
        assert health["vector_count"] == health["metadata_count"] == 1
        assert health["dimension"] == 64
        assert health["poisoned"] is False
        assert health["desynced"] is False
    finally:
        service.close()


def test_verify_detects_count_mismatch(data_dir):
    """Test that an orphan vector is reported and health degrades."""
    service = ReviewSearchService.open(data_dir, dim=16)
    try:
        service.insert(Review("a", "b", "p", 1))
        service.vector_index.append([0.0] * 16)

        issues = service.verify()
        assert any("vector count 2 != metadata count 1" in issue for issue in issues)
        assert service.health()["status"] == "degraded"
    finally:
        service.close()


def test_verify_clean_store(data_dir):
    service = ReviewSearchService.open(data_dir, dim=16)
    try:
        service.insert(Review("a", "b", "p", 1))
        assert service.verify() == []
    finally:
        service.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
