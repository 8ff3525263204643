"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field


class FetchRequest(BaseModel):
    """Request body for the fetch endpoint."""

    url: str = Field(description="Article URL to retrieve")


class ArticleContent(BaseModel):
    """Extracted article content."""

    title: str = Field(description="Article title")
    text: str = Field(description="Plain article text")
    html: str = Field(description="Cleaned HTML fragment")
    author: str | None = Field(default=None, description="Byline, if found")
    excerpt: str | None = Field(default=None, description="Page description, if found")
    length: int = Field(description="Character count of text")
    extraction_tier: str = Field(description="Extraction tier that produced the content")


class FetchMetadata(BaseModel):
    """Request bookkeeping returned with a successful fetch."""

    original_url: str = Field(description="URL as requested")
    profile: str = Field(description="Site profile used")
    timestamp: str = Field(description="ISO-8601 time the response was built")


class FetchResponse(BaseModel):
    """Response model for a successful fetch."""

    success: bool = Field(default=True)
    strategy: str | None = Field(description="Retrieval strategy whose HTML was used")
    content: ArticleContent
    metadata: FetchMetadata


class ErrorDetail(BaseModel):
    """A single terminal error."""

    code: str = Field(description="Stable error code")
    message: str = Field(description="Human-readable reason")
    source: str | None = Field(default=None, description="Strategy, tier or component of origin")


class ErrorResponse(BaseModel):
    """Response model for a failed fetch."""

    success: bool = Field(default=False)
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(description="Health status")
    version: str = Field(description="Application version")
