"""
Test cases for the vector codec, the file-backed mirror index and the in-memory index.
"""

import os
import shutil
import tempfile
import threading
from unittest.mock import patch

import numpy as np
import pytest

from reviewsearch.core.exceptions import IntegrityError, NotFoundError, ValidationError
from reviewsearch.vector import FileVectorIndex, InMemoryVectorIndex, IVectorIndex
from reviewsearch.vector.codec import decode_matrix, decode_vector, encode_vector, record_size


@pytest.fixture
def data_dir():
    """Create a temporary data directory."""
    test_dir = tempfile.mkdtemp()
    yield test_dir
    shutil.rmtree(test_dir)


@pytest.fixture
def file_index(data_dir):
    index = FileVectorIndex.open(data_dir, 4)
    yield index
    index.close()


def test_encode_vector_is_little_endian_float32():
    """Test the byte layout of one record."""
    data = encode_vector([1.0, -2.5])
    assert data == bytes.fromhex("0000803f") + bytes.fromhex("000020c0")
    assert record_size(2) == 8


def test_decode_vector_requires_exact_record():
    with pytest.raises(ValueError):
        decode_vector(b"\x00" * 7, 2)


def test_decode_matrix_ignores_trailing_bytes():
    data = encode_vector([1.0, 2.0]) + encode_vector([3.0, 4.0]) + b"\x01\x02"
    matrix = decode_matrix(data, 2)

    assert matrix.shape == (2, 2)
    assert matrix.dtype == np.float32
    assert matrix.tolist() == [[1.0, 2.0], [3.0, 4.0]]


def test_file_index_implements_interface(file_index):
    assert isinstance(file_index, IVectorIndex)
    assert file_index.dim == 4
    assert file_index.bytes_per_vector == 16


def test_open_creates_mirror_file(data_dir):
    """Test that opening creates reviews.index under the data directory."""
    nested = os.path.join(data_dir, "nested", "data")
    index = FileVectorIndex.open(nested, 8)
    try:
        assert os.path.exists(os.path.join(nested, "reviews.index"))
        assert index.count() == 0
        assert index.path.is_absolute()
    finally:
        index.close()


def test_append_assigns_sequential_ids(file_index):
    """Test that ids follow append order and map to byte offsets."""
    ids = [file_index.append([float(i)] * 4) for i in range(3)]

    assert ids == [0, 1, 2]
    assert file_index.count() == 3
    assert os.path.getsize(file_index.path) == 3 * 16


def test_get_returns_stored_vector(file_index):
    file_index.append([0.1, 0.2, 0.3, 0.4])
    file_index.append([1.0, 0.0, 0.0, 0.0])

    np.testing.assert_allclose(file_index.get(0), [0.1, 0.2, 0.3, 0.4], rtol=1e-6)
    np.testing.assert_array_equal(file_index.get(1), [1.0, 0.0, 0.0, 0.0])


def test_get_missing_id_raises_not_found(file_index):
    file_index.append([1.0, 0.0, 0.0, 0.0])

    with pytest.raises(NotFoundError):
        file_index.get(1)
    with pytest.raises(NotFoundError):
        file_index.get(-1)


def test_wrong_length_rejected_without_advancing_ids(file_index):
    """Test that a dimension mismatch fails before any mutation."""
    with pytest.raises(ValidationError):
        file_index.append([1.0, 2.0, 3.0])
    with pytest.raises(ValidationError):
        file_index.append(np.zeros((2, 2)))

    assert file_index.count() == 0
    assert os.path.getsize(file_index.path) == 0
    assert file_index.append([1.0, 2.0, 3.0, 4.0]) == 0


def test_non_numeric_vector_rejected(file_index):
    with pytest.raises(ValidationError):
        file_index.append(["a", "b", "c", "d"])


def test_read_matrix_clamps_to_available_records(file_index):
    file_index.append([1.0, 0.0, 0.0, 0.0])
    file_index.append([0.0, 1.0, 0.0, 0.0])

    assert file_index.read_matrix(10).shape == (2, 4)
    assert file_index.read_matrix(1).tolist() == [[1.0, 0.0, 0.0, 0.0]]
    assert file_index.read_matrix(0).shape == (0, 4)


def test_reopen_preserves_records(data_dir):
    """Test that records survive closing and reopening the store."""
    index = FileVectorIndex.open(data_dir, 4)
    index.append([1.0, 2.0, 3.0, 4.0])
    index.close()

    reopened = FileVectorIndex.open(data_dir, 4)
    try:
        assert reopened.count() == 1
        assert reopened.append([5.0, 6.0, 7.0, 8.0]) == 1
        np.testing.assert_array_equal(reopened.get(0), [1.0, 2.0, 3.0, 4.0])
    finally:
        reopened.close()


def test_length_mismatch_poisons_store(file_index):
    """Test that a write which does not grow the file by one record poisons the store."""
    with patch.object(file_index, "_file_size", side_effect=[0, 3]):
        with pytest.raises(IntegrityError):
            file_index.append([1.0, 1.0, 1.0, 1.0])

    assert file_index.poisoned
    with pytest.raises(IntegrityError):
        file_index.append([2.0, 2.0, 2.0, 2.0])


def test_reopen_clears_poison_when_file_is_aligned(file_index):
    with patch.object(file_index, "_file_size", side_effect=[0, 3]):
        with pytest.raises(IntegrityError):
            file_index.append([1.0, 1.0, 1.0, 1.0])

    # The bytes did land on disk, so the file is whole again
    assert file_index.reopen() is True
    assert not file_index.poisoned
    assert file_index.append([2.0, 2.0, 2.0, 2.0]) == 1


def test_misaligned_file_opens_poisoned(data_dir):
    """Test that trailing bytes past the last record are detected at open."""
    with open(os.path.join(data_dir, "reviews.index"), "wb") as f:
        f.write(encode_vector([1.0, 2.0, 3.0, 4.0]) + b"\x00\x01\x02")

    index = FileVectorIndex.open(data_dir, 4)
    try:
        assert index.poisoned
        assert index.count() == 1
        ok, details = index.verify()
        assert not ok
        assert details["trailing_bytes"] == 3
        with pytest.raises(IntegrityError):
            index.append([0.0, 0.0, 0.0, 0.0])
        assert index.reopen() is False
    finally:
        index.close()


class TornFile:
    """Writes only part of each payload to the real file and then fails."""

    def __init__(self, real, keep):
        self.real = real
        self.keep = keep

    def write(self, data):
        self.real.write(data[:self.keep])
        self.real.flush()
        raise OSError("no space left on device")

    def flush(self):
        self.real.flush()

    def fileno(self):
        return self.real.fileno()


def test_torn_write_poisons_store(file_index):
    """Test that a write failing after some bytes landed blocks later appends."""
    file_index.append([1.0, 1.0, 1.0, 1.0])
    real = file_index._file
    file_index._file = TornFile(real, keep=6)
    try:
        with pytest.raises(OSError):
            file_index.append([2.0, 2.0, 2.0, 2.0])
    finally:
        file_index._file = real

    assert file_index.poisoned
    with pytest.raises(IntegrityError):
        file_index.append([3.0, 3.0, 3.0, 3.0])
    assert file_index.count() == 1
    ok, details = file_index.verify()
    assert not ok
    assert details["trailing_bytes"] == 6
    assert file_index.reopen() is False


def test_append_refuses_misaligned_file(file_index):
    """Test that bytes appended behind the store's back are caught before writing."""
    file_index.append([1.0, 1.0, 1.0, 1.0])
    with open(file_index.path, "ab") as f:
        f.write(b"\x00\x01\x02")

    with pytest.raises(IntegrityError):
        file_index.append([2.0, 2.0, 2.0, 2.0])

    assert file_index.poisoned
    assert os.path.getsize(file_index.path) == record_size(4) + 3


def test_verify_reports_clean_store(file_index):
    file_index.append([1.0, 2.0, 3.0, 4.0])

    ok, details = file_index.verify()
    assert ok
    assert details["records"] == 1
    assert details["trailing_bytes"] == 0


def test_concurrent_appends_keep_ids_and_offsets_aligned(file_index):
    """Test that concurrent writers never interleave records."""
    results = {}

    def worker(value):
        results[value] = file_index.append([float(value)] * 4)

    threads = [threading.Thread(target=worker, args=(v,)) for v in range(1, 41)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results.values()) == list(range(40))
    for value, record_id in results.items():
        np.testing.assert_array_equal(file_index.get(record_id), [float(value)] * 4)


def test_memory_index_contract():
    """Test that the in-memory index follows the same contract."""
    index = InMemoryVectorIndex(3)

    assert index.append([1.0, 0.0, 0.0]) == 0
    assert index.append([0.0, 1.0, 0.0]) == 1
    assert index.count() == 2
    assert index.read_matrix(5).shape == (2, 3)
    assert index.read_matrix(0).shape == (0, 3)
    np.testing.assert_array_equal(index.get(1), [0.0, 1.0, 0.0])
    assert not index.poisoned

    with pytest.raises(ValidationError):
        index.append([1.0, 2.0])
    with pytest.raises(NotFoundError):
        index.get(2)
    assert index.count() == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
