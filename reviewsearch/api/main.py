"""
HTTP surface for the review search service: insert, bulk insert, search, health.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    InsertRequest,
    InsertResponse,
    BulkInsertRequest,
    BulkInsertResponse,
    SearchRequest,
    SearchHitModel,
    SearchResponse,
    HealthResponse,
    ErrorResponse,
)
from ..core.config import VERSION, debug_enabled, validate_config
from ..core.exceptions import IntegrityError, NotFoundError, ValidationError
from ..core.service import ReviewSearchService
from ..util.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the stores once at startup and close them at shutdown."""
    for issue in validate_config():
        logger.warning(f"config: {issue}")
    service = ReviewSearchService.open()
    app.state.service = service
    logger.info("review search service started")
    try:
        yield
    finally:
        service.close()
        logger.info("review search service stopped")


# Initialize the FastAPI application
app = FastAPI(
    title="Review Search API",
    version=VERSION,
    description="TF-IDF hashing embeddings over product reviews with brute-force search",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

# The admin console is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service(request: Request) -> ReviewSearchService:
    return request.app.state.service


@app.post("/reviews", response_model=InsertResponse)
def insert_review_endpoint(req: InsertRequest, service: ReviewSearchService = Depends(get_service)):
    """Store one review and return its ordinal id."""
    record_id = service.insert(req.review.model_dump())
    return InsertResponse(id=record_id)


@app.post("/reviews/bulk", response_model=BulkInsertResponse)
def insert_bulk_endpoint(req: BulkInsertRequest, service: ReviewSearchService = Depends(get_service)):
    """Store reviews in order; stops at the first failing review."""
    result = service.insert_bulk(req.reviews)
    return BulkInsertResponse(inserted=result.inserted, error=result.error)


@app.post("/search", response_model=SearchResponse)
def search_endpoint(req: SearchRequest, service: ReviewSearchService = Depends(get_service)):
    """Rank stored reviews by similarity to the query text."""
    hits = service.query(req.query, req.top_k)
    return SearchResponse(hits=[SearchHitModel(**hit.to_dict()) for hit in hits])


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(service: ReviewSearchService = Depends(get_service)):
    """Report store sizes and write-path state."""
    return HealthResponse(version=VERSION, **service.health())


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    content = ErrorResponse(
        error_type=type(exc).__name__,
        detail=str(exc),
        debug=repr(exc) if debug_enabled() else None,
    )
    return JSONResponse(status_code=status_code, content=content.model_dump(mode="json"))


@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc):
    logger.warning(f"rejected request to {request.url.path}: {exc}")
    return _error_response(400, exc)


@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc):
    return _error_response(404, exc)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request, exc):
    logger.error(f"write refused on {request.url.path}: {exc}")
    return _error_response(503, exc)


@app.exception_handler(OSError)
async def os_error_handler(request, exc):
    logger.error(f"storage failure on {request.url.path}: {exc}")
    return _error_response(500, exc)
