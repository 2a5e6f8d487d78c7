"""Shared Pydantic v2 schemas: pagination metadata and error bodies."""

from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Pagination metadata included in paginated responses."""

    total: int = Field(description="Total number of items")
    page: int = Field(description="Current page number")
    page_size: int = Field(description="Items per page")
    total_pages: int = Field(description="Total number of pages")


class ErrorResponse(BaseModel):
    """Error body returned by the processor endpoint."""

    error: str = Field(description="Short error summary")
    details: str | None = Field(default=None, description="Underlying failure message")
