"""Verification issuer: create, persist, and email a login code.

Each call issues a brand-new record (opaque token + 6-digit code) for an
institutional email, stores it with a fixed expiry, and emails the code with
a scannable image. A record is always persisted before anything is sent.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.core.email import send_verification_email
from app.core.errors import StorageError
from app.core.qr_code import render_qr_png
from app.models.base import utcnow
from app.repositories.verification_repository import VerificationRepository
from app.services.access_policy import AccessPolicy
from app.services.verification_types import (
    CodeStore,
    IssuedVerification,
    SendEmailFunction,
)

logger = logging.getLogger(__name__)

_CODE_MIN = 100000
_CODE_SPAN = 900000  # codes are drawn from [100000, 999999]


def generate_code() -> str:
    """Draw a uniformly random 6-digit code with no leading zero."""
    return str(secrets.randbelow(_CODE_SPAN) + _CODE_MIN)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a plain token (what the Code Store keeps)."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> tuple[str, str]:
    """Generate an opaque token and its hash.

    Returns:
        Tuple of (plain_token, token_hash).
    """
    token = secrets.token_urlsafe(32)
    return token, hash_token(token)


def build_verify_url(frontend_url: str, token: str) -> str:
    """Build the emailed link to the client's verify page."""
    return f"{frontend_url.rstrip('/')}/verify?{urlencode({'token': token})}"


class VerificationIssuer:
    """Issues verification records and delivers them by email.

    Args:
        db: Async database session for the Code Store.
        policy: Domain gate applied before anything else happens.
        config: Settings for expiry, link base URL and image content.
        code_store: Code Store implementation (repository by default).
        send_email: Email sender (Resend by default).
    """

    def __init__(
        self,
        db: AsyncSession,
        policy: AccessPolicy,
        *,
        config: Settings | None = None,
        code_store: CodeStore | None = None,
        send_email: SendEmailFunction | None = None,
    ) -> None:
        config = config or settings
        self._db = db
        self._policy = policy
        self._ttl_minutes = config.verification_code_ttl_minutes
        self._frontend_url = config.frontend_url
        self._qr_content = config.verification_qr_content
        self._codes: CodeStore = code_store or VerificationRepository()
        self._send_email = send_email or send_verification_email

    async def issue(self, email: str) -> IssuedVerification:
        """Issue a new code for an email and send it.

        Args:
            email: Email as submitted by the user.

        Returns:
            IssuedVerification describing the stored record.

        Raises:
            InvalidDomainError: Email outside the institutional domain.
                Nothing is stored or sent.
            StorageError: The record could not be persisted. Nothing is sent.
            DeliveryError: The email could not be sent. The record stays
                stored and unused; a retry issues a new one.
        """
        normalized = self._policy.require_allowed_domain(email)

        token, token_hash = generate_token()
        code = generate_code()
        expires_at = utcnow() + timedelta(minutes=self._ttl_minutes)

        try:
            record = await self._codes.create(
                self._db,
                email=normalized,
                token_hash=token_hash,
                code=code,
                expires_at=expires_at,
            )
            verification_id = record.id
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception(
                "Failed to store verification record", extra={"email": normalized}
            )
            raise StorageError() from exc

        verify_url = build_verify_url(self._frontend_url, token)
        qr_png = render_qr_png(code if self._qr_content == "code" else verify_url)

        await self._send_email(
            to_email=normalized,
            code=code,
            verify_url=verify_url,
            qr_png=qr_png,
            expires_minutes=self._ttl_minutes,
        )

        logger.info(
            "Verification issued",
            extra={"email": normalized, "verification_id": str(verification_id)},
        )
        return IssuedVerification(
            verification_id=verification_id,
            email=normalized,
            expires_at=expires_at,
        )
