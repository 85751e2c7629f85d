"""Verification model - one row per login attempt.

Stores the issued (email, token, code, expiry, used) tuple. Rows are created
by the issuer, flipped to used exactly once by the redeemer, and never
deleted by the verification flow.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class Verification(Base):
    """Issued verification record.

    Attributes:
        id: UUID primary key.
        email: Lowercased institutional email the code was sent to.
        token_hash: SHA-256 hex digest of the opaque token from the email link.
        code: Six-digit numeric code shown in the email.
        expires_at: Redemption deadline.
        used: True once redeemed. Never flips back.
        created_at: Issue time; the newest matching row wins on redemption.
    """

    __tablename__ = "verifications"
    __table_args__ = (
        Index("idx_verifications_code_used_created", "code", "used", "created_at"),
        Index("idx_verifications_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
