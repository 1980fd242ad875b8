"""
SubTrack Backend: Shared Schemas
===================================

What:  Base model and cross-cutting response shapes (errors, health, simple
       acknowledgements, PDF conversion results).
Why:   The frontend speaks camelCase JSON; Python code stays snake_case.
       `CamelModel` bridges the two with an alias generator, so
       `renewal_date` is read from and written as `renewalDate`.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every request/response model exchanged with the frontend.

    populate_by_name: services construct responses with snake_case kwargs
    from_attributes:  allows `Model.model_validate(orm_row)`
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Generic Responses
# ══════════════════════════════════════════════════════════════════════════


class SuccessResponse(CamelModel):
    success: bool = Field(default=True)
    message: Optional[str] = Field(default=None)


class CountResponse(CamelModel):
    """Returned by bulk operations."""
    success: bool = Field(default=True)
    count: int = Field(description="Number of rows written")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Invoice 3f2c... not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class PdfConversionResponse(CamelModel):
    """
    Result of rendering the first pages of a PDF.

    `images` holds data URLs (`data:image/png;base64,...`) in page order;
    `page_count` is the document's total page count, which may exceed
    the number of rendered images.
    """
    page_count: int = Field(description="Total pages in the uploaded document")
    rendered_pages: int = Field(description="Number of pages rendered")
    images: List[str] = Field(description="Rendered pages as data URLs")
