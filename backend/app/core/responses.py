"""Response envelope models.

Consistent error format for all API endpoints. The library UI reads the
human-readable message straight from the ``error`` key, so the envelope is
flat: ``{"error": "<message>", "code": "<CODE>"}``.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response body.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.message, code=exc.code
            ).model_dump(exclude_none=True),
        )

    Attributes:
        error: Human-readable error message.
        code: Machine-readable error code (e.g., "INVALID_DOMAIN").
        details: Optional list of field-level errors (for validation).
    """

    error: str
    code: str
    details: list[dict] | None = None


class MessageResponse(BaseModel):
    """Plain acknowledgement body, e.g. ``{"message": "Sent"}``."""

    message: str
