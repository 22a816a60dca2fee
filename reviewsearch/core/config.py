"""
Process configuration for the review search service.
All settings come from environment variables; accessors re-read the
environment so tests can flip flags at runtime.
"""

import os
from pathlib import Path

# Storage configuration
DATA_DIR = os.getenv("DATA_DIR", "./data")
VECTOR_FILE_NAME = "reviews.index"
META_FILE_NAME = "reviews.jsonl"

# Embedding configuration
EMBED_DIM = int(os.getenv("EMBED_DIM", "4096"))
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "file")  # file|memory

# Query configuration
DEFAULT_TOP_K = int(os.getenv("DEFAULT_TOP_K", "5"))
MAX_TOP_K = int(os.getenv("MAX_TOP_K", "100"))

# Corpus statistics are never persisted; this controls the startup recompute
CORPUS_STATS_REBUILD = os.getenv("CORPUS_STATS_REBUILD", "true").lower() == "true"

# Review validation
REVIEW_RATING_STRICT = os.getenv("REVIEW_RATING_STRICT", "false").lower() == "true"
RATING_MIN = 1
RATING_MAX = 5

# API server
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Version string
VERSION = "1.0.0"


def get_data_dir() -> Path:
    """Get the data directory holding the vector and metadata files."""
    return Path(os.getenv("DATA_DIR", DATA_DIR))


def get_embed_dim() -> int:
    """Get the configured vector dimension."""
    return int(os.getenv("EMBED_DIM", str(EMBED_DIM)))


def get_vector_provider() -> str:
    """Get the vector index provider (file|memory)."""
    return os.getenv("VECTOR_PROVIDER", VECTOR_PROVIDER).lower()


def get_default_top_k() -> int:
    return int(os.getenv("DEFAULT_TOP_K", str(DEFAULT_TOP_K)))


def get_max_top_k() -> int:
    return int(os.getenv("MAX_TOP_K", str(MAX_TOP_K)))


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def corpus_stats_rebuild_enabled():
    """Check if corpus statistics should be recomputed from stored reviews at startup."""
    return os.getenv("CORPUS_STATS_REBUILD", "true").lower() == "true"


def rating_validation_strict():
    """Check if review ratings must fall within RATING_MIN..RATING_MAX."""
    return os.getenv("REVIEW_RATING_STRICT", "false").lower() == "true"


def ensure_data_directory(data_dir=None) -> Path:
    """Ensure the data directory exists and return it."""
    path = Path(data_dir) if data_dir is not None else get_data_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_vector_index(data_dir=None, dim=None):
    """Get configured vector index implementation."""
    dim = dim if dim is not None else get_embed_dim()
    provider = get_vector_provider()

    if provider == "memory":
        from ..vector.index import InMemoryVectorIndex
        return InMemoryVectorIndex(dim)

    from ..vector.file_store import FileVectorIndex
    return FileVectorIndex.open(ensure_data_directory(data_dir), dim)


def get_embedding_provider(dim=None):
    """Get the TF-IDF hashing embedder with fresh corpus statistics."""
    from ..vector.embeddings import TfIdfHashingEmbedder
    return TfIdfHashingEmbedder(dim if dim is not None else get_embed_dim())


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    try:
        if get_embed_dim() < 1:
            issues.append("EMBED_DIM must be >= 1")
    except ValueError:
        issues.append(f"Invalid EMBED_DIM: {os.getenv('EMBED_DIM')}")

    if get_vector_provider() not in ["file", "memory"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {get_vector_provider()}")

    try:
        if get_max_top_k() < 1:
            issues.append("MAX_TOP_K must be >= 1")
        if get_default_top_k() > get_max_top_k():
            issues.append("DEFAULT_TOP_K must not exceed MAX_TOP_K")
    except ValueError:
        issues.append("DEFAULT_TOP_K and MAX_TOP_K must be integers")

    return issues
