"""Pydantic request/response schemas for API endpoints."""

from app.schemas.verification import (
    SendVerificationRequest,
    VerifyTokenRequest,
    VerifyTokenResponse,
)

__all__ = [
    # Verification flow
    "SendVerificationRequest",
    "VerifyTokenRequest",
    "VerifyTokenResponse",
]
