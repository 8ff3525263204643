"""API routes for clearpage."""

from datetime import UTC, datetime
from functools import lru_cache

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from clearpage import __version__
from clearpage.api.models import (
    ArticleContent,
    ErrorDetail,
    ErrorResponse,
    FetchMetadata,
    FetchRequest,
    FetchResponse,
    HealthResponse,
)
from clearpage.config import get_settings
from clearpage.models import Failure, FailureKind
from clearpage.profiles import get_profile
from clearpage.services.reader import ArticleReader
from clearpage.utils.logging import get_logger
from clearpage.utils.urls import is_valid_url

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])

ERROR_CODES = {
    FailureKind.EXTRACTION_FAILED: "EXTRACTION_FAILED",
    FailureKind.PAYWALL_DETECTED: "PAYWALL_DETECTED",
    FailureKind.TIMEOUT: "TIMEOUT",
}


@lru_cache(maxsize=1)
def get_reader() -> ArticleReader:
    """Shared reader; it holds configuration only, never request state."""
    return ArticleReader.from_settings(get_settings())


def _error(status_code: int, code: str, message: str, source: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, source=source))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _failure_response(failure: Failure) -> JSONResponse:
    code = ERROR_CODES.get(failure.kind, "FETCH_FAILED")
    return _error(502, code, failure.message, failure.source)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.post(
    "/fetch",
    response_model=FetchResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def fetch(
    request: FetchRequest,
    reader: ArticleReader = Depends(get_reader),
) -> FetchResponse | JSONResponse:
    """Retrieve the readable content of an article.

    The URL's site profile picks the retrieval strategies; the first accepted
    page is run through the extraction tiers.

    Returns:
        FetchResponse on success. 400 for an invalid URL, 502 when every
        strategy or every extraction tier failed.
    """
    url = request.url.strip()
    if not is_valid_url(url):
        return _error(400, "INVALID_URL", "Invalid URL format")

    profile = get_profile(url)
    logger.info("Fetch endpoint called", url=url, profile=profile.name)

    result = await reader.retrieve_article(url, profile)
    if isinstance(result, Failure):
        return _failure_response(result)

    return FetchResponse(
        strategy=result.strategy,
        content=ArticleContent(
            title=result.title,
            text=result.text,
            html=result.html_fragment,
            author=result.author,
            excerpt=result.excerpt,
            length=result.length,
            extraction_tier=result.extraction_tier,
        ),
        metadata=FetchMetadata(
            original_url=url,
            profile=profile.name,
            timestamp=datetime.now(UTC).isoformat(),
        ),
    )
