"""Verification redeemer: burn a code, reconcile identity, issue sign-in link.

Ordering:
    1. Find the newest unused record for (code, token | email).
    2. Reject expired records without burning them.
    3. Burn the record with a compare-and-set update and commit it, so a
       retried or concurrent request with the same code fails fast.
    4. Reconcile the Identity Directory and the Profile Store so that
       Profile.id == Identity.id. Every sub-step here is lenient: failures
       become ReconciliationWarning entries and the login proceeds.
    5. Ask the Identity Directory for a one-time sign-in link. This is strict.

Reconciliation is lookup-based and idempotent, so whatever a failed run left
behind is repaired by the next successful login.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    ExpiredCodeError,
    InvalidOrExpiredCodeError,
    MissingIdentifierError,
    SignInLinkError,
    StorageError,
)
from app.models.base import utcnow
from app.providers.errors import DirectoryConflictError, IdentityDirectoryError
from app.providers.identity.base import IdentityDirectory
from app.repositories.profile_repository import ProfileRepository
from app.repositories.verification_repository import VerificationRepository
from app.services.access_policy import AccessPolicy, normalize_email
from app.services.verification_issuer import hash_token
from app.services.verification_types import (
    CodeStore,
    ProfileStore,
    ReconciliationStep,
    ReconciliationWarning,
    RedemptionResult,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class VerificationRedeemer:
    """Redeems verification codes and keeps identity and profile in sync.

    Args:
        db: Async database session shared by the Code Store and Profile Store.
        directory: Identity Directory adapter.
        policy: Role policy applied to the redeemed email.
        code_store: Code Store implementation (repository by default).
        profile_store: Profile Store implementation (repository by default).
    """

    def __init__(
        self,
        db: AsyncSession,
        directory: IdentityDirectory,
        policy: AccessPolicy,
        *,
        code_store: CodeStore | None = None,
        profile_store: ProfileStore | None = None,
    ) -> None:
        self._db = db
        self._directory = directory
        self._policy = policy
        self._codes: CodeStore = code_store or VerificationRepository()
        self._profiles: ProfileStore = profile_store or ProfileRepository()

    # =========================================================================
    # Public API
    # =========================================================================

    async def redeem(
        self,
        code: str,
        *,
        token: str | None = None,
        email: str | None = None,
    ) -> RedemptionResult:
        """Redeem a code presented with its emailed token or the email.

        When both token and email are supplied, the token is used.

        Args:
            code: Six-digit code.
            token: Opaque token from the emailed link.
            email: Email the code was requested for.

        Returns:
            RedemptionResult with the sign-in link, the role, and any
            reconciliation warnings.

        Raises:
            MissingIdentifierError: Neither token nor email supplied.
            InvalidOrExpiredCodeError: No unused record matches, or a
                concurrent request burned it first.
            ExpiredCodeError: The matching record is past its expiry. The
                record is left unused.
            StorageError: The Code Store could not be read or updated.
            SignInLinkError: The sign-in link could not be generated.
        """
        if token:
            lookup: dict[str, str] = {"token_hash": hash_token(token)}
        elif email:
            lookup = {"email": normalize_email(email)}
        else:
            raise MissingIdentifierError()

        try:
            record = await self._codes.get_latest_unused(self._db, code=code, **lookup)
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception("Failed to read verification record")
            raise StorageError() from exc

        if record is None:
            logger.warning(
                "Redemption rejected: no matching unused code",
                extra={"by": next(iter(lookup))},
            )
            raise InvalidOrExpiredCodeError()

        # Plain locals: a rollback later on expires ORM attributes
        record_id = record.id
        record_email = record.email

        if _as_utc(record.expires_at) < utcnow():
            logger.warning(
                "Redemption rejected: code expired",
                extra={"email": record_email, "verification_id": str(record_id)},
            )
            raise ExpiredCodeError()

        try:
            burned = await self._codes.mark_used(self._db, record_id)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception(
                "Failed to mark verification used",
                extra={"verification_id": str(record_id)},
            )
            raise StorageError() from exc

        if not burned:
            logger.warning(
                "Redemption rejected: code already used",
                extra={"email": record_email, "verification_id": str(record_id)},
            )
            raise InvalidOrExpiredCodeError()

        role = self._policy.role_for(record_email)
        result = RedemptionResult(redirect_url="", role=role, email=record_email)

        result.identity_id = await self._reconcile_identity(
            record_email, role, result.warnings
        )
        await self._reconcile_profile(
            record_email, role, result.identity_id, result.warnings
        )

        try:
            result.redirect_url = await self._directory.generate_one_time_sign_in_link(
                record_email
            )
        except IdentityDirectoryError as exc:
            logger.exception(
                "Failed to generate sign-in link", extra={"email": record_email}
            )
            raise SignInLinkError() from exc

        logger.info(
            "Verification redeemed",
            extra={
                "email": record_email,
                "role": role,
                "warning_count": len(result.warnings),
            },
        )
        return result

    async def reconcile(self, email: str, role: str) -> RedemptionResult:
        """Run identity and profile reconciliation without a code.

        Same steps as a redemption after the burn, minus the sign-in link.
        Safe to run any number of times for the same email.

        Args:
            email: Email to reconcile (normalized here).
            role: Role to apply to both stores.

        Returns:
            RedemptionResult with an empty redirect_url.
        """
        normalized = normalize_email(email)
        result = RedemptionResult(redirect_url="", role=role, email=normalized)
        result.identity_id = await self._reconcile_identity(
            normalized, role, result.warnings
        )
        await self._reconcile_profile(
            normalized, role, result.identity_id, result.warnings
        )
        return result

    # =========================================================================
    # Identity Directory
    # =========================================================================

    async def _reconcile_identity(
        self,
        email: str,
        role: str,
        warnings: list[ReconciliationWarning],
    ) -> uuid.UUID | None:
        """Ensure an identity exists for the email and carries the role.

        Returns:
            The identity id, or None when it could not be determined.
        """
        try:
            identity = await self._directory.find_by_email(email)
        except IdentityDirectoryError as exc:
            self._warn(warnings, ReconciliationStep.IDENTITY_LOOKUP, email, exc)
            return None

        if identity is not None:
            await self._apply_identity_role(identity.id, email, role, warnings)
            return identity.id

        try:
            created = await self._directory.create(email, role)
        except DirectoryConflictError as exc:
            # Another request created it between our lookup and create
            self._warn(warnings, ReconciliationStep.IDENTITY_CREATE, email, exc)
            try:
                winner = await self._directory.find_by_email(email)
            except IdentityDirectoryError as lookup_exc:
                self._warn(
                    warnings, ReconciliationStep.IDENTITY_LOOKUP, email, lookup_exc
                )
                return None
            if winner is None:
                return None
            # The winner wrote its own role; ours may differ
            await self._apply_identity_role(winner.id, email, role, warnings)
            return winner.id
        except IdentityDirectoryError as exc:
            self._warn(warnings, ReconciliationStep.IDENTITY_CREATE, email, exc)
            return None

        logger.info(
            "Identity created",
            extra={"email": email, "identity_id": str(created.id), "role": role},
        )
        return created.id

    async def _apply_identity_role(
        self,
        identity_id: uuid.UUID,
        email: str,
        role: str,
        warnings: list[ReconciliationWarning],
    ) -> None:
        try:
            await self._directory.update_role_metadata(identity_id, role)
        except IdentityDirectoryError as exc:
            self._warn(warnings, ReconciliationStep.IDENTITY_ROLE_UPDATE, email, exc)

    # =========================================================================
    # Profile Store
    # =========================================================================

    async def _reconcile_profile(
        self,
        email: str,
        role: str,
        identity_id: uuid.UUID | None,
        warnings: list[ReconciliationWarning],
    ) -> None:
        """Bring the profile row in line with the identity.

        Without an identity id, the profile is still upserted by email (a
        fresh id on insert); the id is repaired on a later login.
        """
        try:
            profile = await self._profiles.get_by_email(self._db, email)
        except SQLAlchemyError as exc:
            await self._db.rollback()
            self._warn(warnings, ReconciliationStep.PROFILE_LOOKUP, email, exc)
            return

        if profile is None:
            new_id = identity_id or uuid.uuid4()
            await self._commit_write(
                ReconciliationStep.PROFILE_CREATE,
                email,
                lambda: self._profiles.create(
                    self._db, profile_id=new_id, email=email, role=role
                ),
                warnings,
            )
            return

        profile_id = profile.id
        if identity_id is None or profile_id == identity_id:
            await self._commit_write(
                ReconciliationStep.PROFILE_ROLE_UPDATE,
                email,
                lambda: self._profiles.update_role(self._db, profile_id, role),
                warnings,
            )
            return

        repaired = await self._commit_write(
            ReconciliationStep.PROFILE_ID_REPAIR,
            email,
            lambda: self._profiles.reassign_id(self._db, profile_id, identity_id, role),
            warnings,
        )
        if repaired:
            logger.info(
                "Profile id drift repaired",
                extra={
                    "email": email,
                    "old_profile_id": str(profile_id),
                    "identity_id": str(identity_id),
                },
            )
            return

        # Degraded fallback: keep the mismatched id, still apply the role
        logger.warning(
            "Profile id drift left unresolved",
            extra={
                "email": email,
                "profile_id": str(profile_id),
                "identity_id": str(identity_id),
            },
        )
        await self._commit_write(
            ReconciliationStep.PROFILE_ROLE_UPDATE,
            email,
            lambda: self._profiles.update_role(self._db, profile_id, role),
            warnings,
        )

    async def _commit_write(
        self,
        step: ReconciliationStep,
        email: str,
        write: Callable[[], Awaitable[Any]],
        warnings: list[ReconciliationWarning],
    ) -> bool:
        """Run one profile write in its own commit.

        Returns:
            True if the write committed and reported success (a falsy
            return from the write, e.g. zero rows updated, counts as False).
        """
        try:
            outcome = await write()
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            self._warn(warnings, step, email, exc)
            return False
        return bool(outcome)

    @staticmethod
    def _warn(
        warnings: list[ReconciliationWarning],
        step: ReconciliationStep,
        email: str,
        exc: Exception,
    ) -> None:
        detail = f"{type(exc).__name__}: {exc}"
        warnings.append(ReconciliationWarning(step=step, detail=detail))
        logger.warning(
            "Reconciliation step failed",
            extra={"step": step.value, "email": email, "error": detail},
        )
