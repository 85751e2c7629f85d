"""Profile model - the application-owned user profile.

The verification flow only touches id, email and role. Display fields belong
to the rest of the library application and must survive id reconciliation.
"""

import uuid

from sqlalchemy import CheckConstraint, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


class Profile(Base, TimestampMixin):
    """Library user profile.

    Invariant: id equals the Identity Directory id for the same email once
    a redemption has reconciled the two.

    Attributes:
        id: UUID primary key, mirrored from the Identity Directory.
        email: Unique email address.
        role: "student" or "admin".
        display_name: Name shown in the UI.
        phone: Optional contact number.
        profile_path: Object-storage path of the avatar image.
        created_at: Row creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            f"role IN ('{ROLE_STUDENT}', '{ROLE_ADMIN}')", name="ck_users_role_valid"
        ),
        Index("idx_users_email", "email", unique=True),
        Index("idx_users_email_lower", text("lower(email)")),
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
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ROLE_STUDENT,
        server_default=text(f"'{ROLE_STUDENT}'"),
    )
    display_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    profile_path: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
