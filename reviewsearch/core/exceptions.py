"""
Error types shared by the stores, the ingestion pipeline and the API layer.
File system failures are not wrapped; they surface as the built-in OSError.
"""


class ReviewSearchError(Exception):
    """Base exception for review search operations."""
    pass


class ValidationError(ReviewSearchError, ValueError):
    """Input rejected before any store mutation (bad dimension, malformed review)."""
    pass


class IntegrityError(ReviewSearchError):
    """A store can no longer guarantee id to record correspondence.

    Raised when a write did not grow the backing file by exactly one record,
    and on every later write attempt until the store is reopened and verified.
    """
    pass


class NotFoundError(ReviewSearchError, LookupError):
    """Requested ordinal id is past the end of a store."""
    pass
