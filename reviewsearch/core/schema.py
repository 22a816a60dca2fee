"""
Core records: the stored review document and a ranked search hit.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping

from .exceptions import ValidationError
from . import config as config_module


REVIEW_FIELDS = ("review_title", "review_body", "product_id", "review_rating")


@dataclass(frozen=True)
class Review:
    review_title: str
    review_body: str
    product_id: str
    review_rating: int

    def text(self) -> str:
        """Text fed to the embedder: title and body joined by one space."""
        return f"{self.review_title} {self.review_body}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert review to a dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Review':
        """Build a review from a mapping, rejecting malformed input.

        Raises:
            ValidationError: missing field or wrong type
        """
        if not isinstance(data, Mapping):
            raise ValidationError(f"review must be an object, got {type(data).__name__}")

        missing = [name for name in REVIEW_FIELDS if name not in data]
        if missing:
            raise ValidationError(f"review is missing fields: {missing}")

        for name in ("review_title", "review_body", "product_id"):
            if not isinstance(data[name], str):
                raise ValidationError(f"{name} must be a string")

        rating = data["review_rating"]
        # bool is an int subclass but never a valid rating
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError("review_rating must be an integer")

        return cls(
            review_title=data["review_title"],
            review_body=data["review_body"],
            product_id=data["product_id"],
            review_rating=rating,
        )

    def validate(self) -> None:
        """Apply the configured rating policy (range checked only in strict mode)."""
        if config_module.rating_validation_strict():
            if not config_module.RATING_MIN <= self.review_rating <= config_module.RATING_MAX:
                raise ValidationError(
                    f"review_rating must be between {config_module.RATING_MIN} "
                    f"and {config_module.RATING_MAX}, got {self.review_rating}"
                )


@dataclass
class SearchHit:
    """A stored review matched by a query."""

    id: int
    """Ordinal id shared by the vector and metadata stores"""

    score: float
    """Dot product of the L2-normalized query and stored vectors"""

    review: Review
    """The stored review document"""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "score": self.score, "review": self.review.to_dict()}
