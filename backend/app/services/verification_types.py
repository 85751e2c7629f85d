"""Type definitions for the verification flow.

Shared between the issuer, the redeemer, and their tests:

**Store protocols:** the shape of the Code Store and Profile Store the
services depend on. The SQLAlchemy repositories satisfy them; tests pass
in-memory fakes with the same signatures.

**Results:** what issuing and redeeming hand back to the API layer,
including the warning channel for lenient reconciliation failures.
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

# =============================================================================
# Record Protocols
# =============================================================================


class VerificationLike(Protocol):
    """Protocol for verification records (avoids tight coupling to ORM model)."""

    id: uuid.UUID
    email: str
    code: str
    expires_at: datetime
    used: bool


class ProfileLike(Protocol):
    """Protocol for profile records (avoids tight coupling to ORM model)."""

    id: uuid.UUID
    email: str
    role: str


# =============================================================================
# Store Protocols
# =============================================================================


class CodeStore(Protocol):
    """Persistence of issued verification records."""

    async def create(
        self,
        db: Any,
        *,
        email: str,
        token_hash: str,
        code: str,
        expires_at: datetime,
    ) -> VerificationLike: ...

    async def get_latest_unused(
        self,
        db: Any,
        *,
        code: str,
        token_hash: str | None = None,
        email: str | None = None,
    ) -> VerificationLike | None: ...

    async def mark_used(self, db: Any, verification_id: uuid.UUID) -> bool: ...


class ProfileStore(Protocol):
    """Application-owned profile table, keyed by identity id."""

    async def get_by_email(self, db: Any, email: str) -> ProfileLike | None: ...

    async def create(
        self, db: Any, *, profile_id: uuid.UUID, email: str, role: str
    ) -> ProfileLike: ...

    async def update_role(self, db: Any, profile_id: uuid.UUID, role: str) -> bool: ...

    async def reassign_id(
        self, db: Any, old_id: uuid.UUID, new_id: uuid.UUID, role: str
    ) -> bool: ...


# Type alias for the email sender signature (app.core.email.send_verification_email)
SendEmailFunction = Callable[..., Awaitable[None]]


# =============================================================================
# Results
# =============================================================================


class ReconciliationStep(Enum):
    """Reconciliation sub-steps that may fail without failing redemption."""

    IDENTITY_LOOKUP = "identity_lookup"
    IDENTITY_ROLE_UPDATE = "identity_role_update"
    IDENTITY_CREATE = "identity_create"
    PROFILE_LOOKUP = "profile_lookup"
    PROFILE_CREATE = "profile_create"
    PROFILE_ROLE_UPDATE = "profile_role_update"
    PROFILE_ID_REPAIR = "profile_id_repair"


@dataclass(frozen=True)
class ReconciliationWarning:
    """A non-fatal reconciliation failure.

    Attributes:
        step: Which sub-step failed.
        detail: Short description for logs and assertions.
    """

    step: ReconciliationStep
    detail: str


@dataclass(frozen=True)
class IssuedVerification:
    """Outcome of a successful issue.

    Attributes:
        verification_id: Primary key of the stored record.
        email: Normalized email the code was sent to.
        expires_at: Redemption deadline.
    """

    verification_id: uuid.UUID
    email: str
    expires_at: datetime


@dataclass
class RedemptionResult:
    """Outcome of a successful redemption.

    Attributes:
        redirect_url: One-time sign-in link for the client to follow.
        role: Role assigned for this login ("admin" or "student").
        email: Email of the redeemed record.
        identity_id: Identity Directory id, None if lookup and create failed.
        warnings: Lenient reconciliation failures, in the order they occurred.
    """

    redirect_url: str
    role: str
    email: str
    identity_id: uuid.UUID | None = None
    warnings: list[ReconciliationWarning] = field(default_factory=list)
