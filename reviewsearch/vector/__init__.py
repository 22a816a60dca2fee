"""
Vector layer: embeddings, byte codec and append-only vector indexes.
"""

# Package initialization for vector module
from .index import IVectorIndex, InMemoryVectorIndex
from .file_store import FileVectorIndex
from .embeddings import IEmbeddingProvider, CorpusStatistics, TfIdfHashingEmbedder
from .codec import encode_vector, decode_vector, decode_matrix

__all__ = [
    'IVectorIndex',
    'InMemoryVectorIndex',
    'FileVectorIndex',
    'IEmbeddingProvider',
    'CorpusStatistics',
    'TfIdfHashingEmbedder',
    'encode_vector',
    'decode_vector',
    'decode_matrix'
]
