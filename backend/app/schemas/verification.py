"""Request/response schemas for the verification endpoints.

Field names match what the library UI already sends and reads
(``redirectUrl`` is camelCase on the wire).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

_CODE_PATTERN = r"^\d{6}$"


class SendVerificationRequest(BaseModel):
    """Request body for POST /auth/send-verification."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class VerifyTokenRequest(BaseModel):
    """Request body for POST /auth/verify-token.

    At least one of token or email must accompany the code; the check lives
    in the redeemer so the caller gets the MISSING_IDENTIFIER error.
    """

    model_config = ConfigDict(extra="forbid")

    code: str = Field(pattern=_CODE_PATTERN)
    token: str | None = Field(default=None, max_length=256)
    email: EmailStr | None = None


class VerifyTokenResponse(BaseModel):
    """Successful redemption."""

    model_config = ConfigDict(populate_by_name=True)

    message: Literal["Verified"] = "Verified"
    redirect_url: str = Field(alias="redirectUrl")
    role: Literal["admin", "student"]
