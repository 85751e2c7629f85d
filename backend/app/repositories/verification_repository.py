"""Repository for Verification (Code Store) operations.

Pure data access for issued verification records: insert, newest-unused
lookup, and the conditional mark-used update that makes redemption
single-use under concurrency.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.verification import Verification


class VerificationRepository:
    """Stateless repository for Verification table operations.

    All methods are static; there is no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        token_hash: str,
        code: str,
        expires_at: datetime,
    ) -> Verification:
        """Store a new, unused verification record.

        Args:
            db: Async database session.
            email: Normalized recipient email.
            token_hash: SHA-256 hash of the plain token.
            code: Six-digit numeric code.
            expires_at: Redemption deadline.

        Returns:
            Created Verification.
        """
        verification = Verification(
            email=email,
            token_hash=token_hash,
            code=code,
            expires_at=expires_at,
            used=False,
        )
        db.add(verification)
        await db.flush()
        return verification

    @staticmethod
    async def get_latest_unused(
        db: AsyncSession,
        *,
        code: str,
        token_hash: str | None = None,
        email: str | None = None,
    ) -> Verification | None:
        """Find the newest unused record for a code and one identifier.

        Exactly one of token_hash or email narrows the match. Older unused
        rows with the same code and identifier are never returned.

        Args:
            db: Async database session.
            code: Six-digit code presented by the user.
            token_hash: SHA-256 hash of the token from the email link.
            email: Normalized email, compared exactly as stored.

        Returns:
            Newest matching Verification, or None.

        Raises:
            ValueError: If neither or both identifiers are given.
        """
        if (token_hash is None) == (email is None):
            msg = "Exactly one of token_hash or email is required"
            raise ValueError(msg)

        stmt = select(Verification).where(
            Verification.code == code,
            Verification.used.is_(False),
        )
        if token_hash is not None:
            stmt = stmt.where(Verification.token_hash == token_hash)
        else:
            stmt = stmt.where(Verification.email == email)

        stmt = stmt.order_by(Verification.created_at.desc()).limit(1)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_used(db: AsyncSession, verification_id: uuid.UUID) -> bool:
        """Atomically flip used from false to true.

        Compare-and-set: the UPDATE only matches while the row still shows
        used = false, so of two concurrent callers exactly one sees a row.

        Args:
            db: Async database session.
            verification_id: Primary key of the record to burn.

        Returns:
            True if this call burned the record, False if it was already used.
        """
        stmt = (
            update(Verification)
            .where(
                Verification.id == verification_id,
                Verification.used.is_(False),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1
