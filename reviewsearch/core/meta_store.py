"""
Append-only JSON-lines document log. Line i holds the review whose vector
is record i of the mirror file.
"""

import json
import os
import threading
from pathlib import Path
from typing import List

from .config import META_FILE_NAME
from .exceptions import NotFoundError, ValidationError
from .schema import Review
from ..util.logging import logger


class MetadataStore:
    """Review log indexed by ordinal line number.

    Line start offsets are kept in memory so `read` is a single seek rather
    than a scan from the top of the file.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._offsets: List[int] = []
        self._end = 0
        self._load_offsets()

    @classmethod
    def open(cls, data_dir) -> 'MetadataStore':
        """Open (creating if needed) `reviews.jsonl` under data_dir."""
        data_dir = Path(data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        path = (data_dir / META_FILE_NAME).resolve()
        path.touch(exist_ok=True)
        store = cls(path)
        logger.log_store_event("metadata", "open", {"path": str(path), "records": store.count()})
        return store

    def _load_offsets(self) -> None:
        offsets = []
        position = 0
        with open(self.path, "rb") as f:
            for line in f:
                if not line.endswith(b"\n"):
                    break
                offsets.append(position)
                position += len(line)

        size = os.stat(self.path).st_size
        if size > position:
            # Torn final write: drop the fragment so the next append starts a fresh line
            logger.log_store_event("metadata", "truncate", {
                "path": str(self.path),
                "dropped_bytes": size - position,
            }, status="repaired")
            with open(self.path, "r+b") as f:
                f.truncate(position)

        self._offsets = offsets
        self._end = position

    def append(self, review: Review) -> int:
        """Append one review as a JSON line and return its line number."""
        if not isinstance(review, Review):
            raise ValidationError(f"expected Review, got {type(review).__name__}")
        line = json.dumps(review.to_dict(), ensure_ascii=False, separators=(",", ":"))
        data = line.encode("utf-8") + b"\n"

        with self._lock:
            try:
                with open(self.path, "ab") as f:
                    f.write(data)
                    f.flush()
            except OSError:
                # Drop any fragment so the next line starts at a recorded offset
                os.truncate(self.path, self._end)
                logger.log_store_event("metadata", "truncate", {
                    "path": str(self.path),
                    "size": self._end,
                }, status="repaired")
                raise
            record_id = len(self._offsets)
            self._offsets.append(self._end)
            self._end += len(data)
            return record_id

    def read(self, record_id: int) -> Review:
        """Return the review stored on line `record_id`.

        Raises:
            NotFoundError: record_id is negative or past the last line
            ValidationError: the stored line is not a valid review
        """
        offsets = self._offsets
        if record_id < 0 or record_id >= len(offsets):
            raise NotFoundError("metadata line not found")

        with open(self.path, "rb") as f:
            f.seek(offsets[record_id])
            line = f.readline()
        try:
            data = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"metadata line {record_id} is corrupt: {e}") from e
        return Review.from_dict(data)

    def count(self) -> int:
        """Number of complete lines currently present."""
        return len(self._offsets)
