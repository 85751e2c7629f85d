"""Email-code verification endpoints.

Passwordless sign-in for institutional emails: request a 6-digit code by
email, then redeem it (with the emailed token or the email) for a one-time
sign-in link.

Endpoints:
- POST /auth/send-verification: issue a code and email it
- POST /auth/verify-token: redeem a code, returns the sign-in link and role
"""

import logging

from fastapi import APIRouter, Request

from app.api.deps import DbSession, Directory, Policy
from app.core.config import settings
from app.core.rate_limiting import limiter
from app.core.responses import MessageResponse
from app.schemas.verification import (
    SendVerificationRequest,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from app.services.verification_issuer import VerificationIssuer
from app.services.verification_redeemer import VerificationRedeemer

logger = logging.getLogger(__name__)

router = APIRouter()


# ===================================================================
# POST /auth/send-verification
# ===================================================================


@router.post("/send-verification")
@limiter.limit(lambda: settings.rate_limit_issue)
async def send_verification(
    request: Request,  # noqa: ARG001
    body: SendVerificationRequest,
    db: DbSession,
    policy: Policy,
) -> MessageResponse:
    """Issue a verification code and email it.

    Errors: INVALID_DOMAIN (400), STORAGE_ERROR (500), DELIVERY_ERROR (502).
    """
    await VerificationIssuer(db, policy).issue(body.email)
    return MessageResponse(message="Sent")


# ===================================================================
# POST /auth/verify-token
# ===================================================================


@router.post("/verify-token", response_model_by_alias=True)
@limiter.limit(lambda: settings.rate_limit_redeem)
async def verify_token(
    request: Request,  # noqa: ARG001
    body: VerifyTokenRequest,
    db: DbSession,
    directory: Directory,
    policy: Policy,
) -> VerifyTokenResponse:
    """Redeem a verification code for a one-time sign-in link.

    The token wins when both token and email are supplied.

    Errors: MISSING_IDENTIFIER, INVALID_OR_EXPIRED_CODE, CODE_EXPIRED (400),
    STORAGE_ERROR (500), SIGN_IN_LINK_ERROR (502).
    """
    result = await VerificationRedeemer(db, directory, policy).redeem(
        body.code, token=body.token, email=body.email
    )
    if result.warnings:
        logger.warning(
            "Redemption completed with reconciliation warnings",
            extra={
                "email": result.email,
                "steps": [w.step.value for w in result.warnings],
            },
        )
    return VerifyTokenResponse(redirect_url=result.redirect_url, role=result.role)
