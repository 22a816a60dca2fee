"""
Request and response models for the review search HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class ReviewModel(BaseModel):
    review_title: str
    review_body: str
    product_id: str
    review_rating: int

    @field_validator('review_rating', mode='before')
    @classmethod
    def rating_must_be_integer(cls, v):
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError('review_rating must be an integer')
        return v


class InsertRequest(BaseModel):
    review: ReviewModel


class InsertResponse(BaseModel):
    id: int


class BulkInsertRequest(BaseModel):
    # Items are validated one by one during ingestion so a malformed review
    # aborts the batch at its position instead of rejecting the whole request
    reviews: List[Dict[str, Any]]


class BulkInsertResponse(BaseModel):
    inserted: int
    error: Optional[str] = None


class SearchRequest(BaseModel):
    query: str
    top_k: Optional[int] = None


class SearchHitModel(BaseModel):
    id: int
    score: float
    review: ReviewModel


class SearchResponse(BaseModel):
    hits: List[SearchHitModel]


class HealthResponse(BaseModel):
    status: str
    version: str
    vector_count: int
    metadata_count: int
    dimension: int
    poisoned: bool
    desynced: bool


class ErrorResponse(BaseModel):
    error_type: str
    detail: str
    timestamp: datetime = None
    debug: Optional[str] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
