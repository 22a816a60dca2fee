"""
Explicit byte encoding for stored vectors: little-endian IEEE-754 float32,
no header, records laid out back to back.
"""

import numpy as np

VECTOR_DTYPE = np.dtype("<f4")
BYTES_PER_FLOAT = VECTOR_DTYPE.itemsize


def record_size(dim: int) -> int:
    """Number of bytes one stored vector occupies."""
    return dim * BYTES_PER_FLOAT


def encode_vector(vector) -> bytes:
    """Encode a one-dimensional vector as little-endian float32 bytes."""
    return np.asarray(vector, dtype=np.float32).astype(VECTOR_DTYPE, copy=False).tobytes()


def decode_vector(data: bytes, dim: int) -> np.ndarray:
    """Decode exactly one record into a native float32 vector."""
    if len(data) != record_size(dim):
        raise ValueError(f"expected {record_size(dim)} bytes, got {len(data)}")
    return np.frombuffer(data, dtype=VECTOR_DTYPE).astype(np.float32)


def decode_matrix(data: bytes, dim: int) -> np.ndarray:
    """Decode back-to-back records into a (count, dim) float32 matrix.

    Trailing bytes that do not form a whole record are ignored.
    """
    count = len(data) // record_size(dim)
    usable = data[:count * record_size(dim)]
    return np.frombuffer(usable, dtype=VECTOR_DTYPE).astype(np.float32).reshape(count, dim)
