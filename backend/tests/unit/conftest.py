"""Shared fixtures for service-level tests.

In-memory Code Store and Profile Store fakes with the same call signatures as
the SQLAlchemy repositories. They let the redeemer run many concurrent
redemptions on one event loop and let tests inject store failures without a
database.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.base import utcnow
from app.providers.identity.mock_adapter import InMemoryIdentityDirectory
from app.services.access_policy import AccessPolicy
from app.services.verification_issuer import VerificationIssuer, generate_token
from app.services.verification_redeemer import VerificationRedeemer


@dataclass
class FakeVerification:
    email: str
    token_hash: str
    code: str
    expires_at: datetime
    used: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeProfile:
    id: uuid.UUID
    email: str
    role: str
    display_name: str | None = None
    phone: str | None = None


class FakeCodeStore:
    """Code Store kept in a list; newest record is the last appended."""

    def __init__(self) -> None:
        self.records: list[FakeVerification] = []
        self.fail_create = False

    def seed(
        self,
        email: str,
        code: str,
        *,
        expires_in: timedelta = timedelta(minutes=15),
    ) -> tuple[FakeVerification, str]:
        """Store an unused record directly. Returns (record, plain_token)."""
        token, token_hash = generate_token()
        record = FakeVerification(
            email=email,
            token_hash=token_hash,
            code=code,
            expires_at=utcnow() + expires_in,
        )
        self.records.append(record)
        return record, token

    async def create(self, db, *, email, token_hash, code, expires_at):  # noqa: ARG002
        if self.fail_create:
            raise OperationalError("INSERT INTO verifications", {}, Exception("down"))
        record = FakeVerification(
            email=email, token_hash=token_hash, code=code, expires_at=expires_at
        )
        self.records.append(record)
        return record

    async def get_latest_unused(
        self, db, *, code, token_hash=None, email=None  # noqa: ARG002
    ):
        # Yield so concurrent redemptions all read before any burns
        await asyncio.sleep(0)
        matches = [
            r
            for r in self.records
            if r.code == code
            and not r.used
            and (
                r.token_hash == token_hash
                if token_hash is not None
                else r.email == email
            )
        ]
        return matches[-1] if matches else None

    async def mark_used(self, db, verification_id):  # noqa: ARG002
        await asyncio.sleep(0)
        for record in self.records:
            if record.id == verification_id and not record.used:
                record.used = True
                return True
        return False


class FakeProfileStore:
    """Profile Store keyed by id with unique id and email, like the table."""

    def __init__(self) -> None:
        self.profiles: dict[uuid.UUID, FakeProfile] = {}
        self.failures: set[str] = set()

    def add(
        self, email: str, profile_id: uuid.UUID | None = None, **fields
    ) -> FakeProfile:
        profile = FakeProfile(
            id=profile_id or uuid.uuid4(),
            email=email,
            role=fields.pop("role", "student"),
            **fields,
        )
        self.profiles[profile.id] = profile
        return profile

    def by_email(self, email: str) -> FakeProfile | None:
        for profile in self.profiles.values():
            if profile.email.lower() == email.lower():
                return profile
        return None

    def _check(self, operation: str) -> None:
        if operation in self.failures:
            raise OperationalError(operation, {}, Exception("simulated failure"))

    async def get_by_email(self, db, email):  # noqa: ARG002
        self._check("get_by_email")
        return self.by_email(email)

    async def create(self, db, *, profile_id, email, role):  # noqa: ARG002
        self._check("create")
        if profile_id in self.profiles or self.by_email(email) is not None:
            raise IntegrityError("INSERT INTO users", {}, Exception("duplicate key"))
        return self.add(email, profile_id, role=role)

    async def update_role(self, db, profile_id, role):  # noqa: ARG002
        self._check("update_role")
        profile = self.profiles.get(profile_id)
        if profile is None:
            return False
        profile.role = role
        return True

    async def reassign_id(self, db, old_id, new_id, role):  # noqa: ARG002
        self._check("reassign_id")
        if new_id in self.profiles:
            raise IntegrityError("UPDATE users", {}, Exception("duplicate key"))
        profile = self.profiles.pop(old_id, None)
        if profile is None:
            return False
        profile.id = new_id
        profile.role = role
        self.profiles[new_id] = profile
        return True


@pytest.fixture
def mock_db() -> AsyncMock:
    """Session stand-in; commit/rollback are awaitable no-ops."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def code_store() -> FakeCodeStore:
    return FakeCodeStore()


@pytest.fixture
def profile_store() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def send_email() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def issuer(mock_db, policy: AccessPolicy, code_store, send_email) -> VerificationIssuer:
    """Issuer over the fake Code Store with a captured email sender."""
    return VerificationIssuer(
        mock_db,
        policy,
        config=settings,
        code_store=code_store,
        send_email=send_email,
    )


@pytest.fixture
def redeemer(
    mock_db,
    directory: InMemoryIdentityDirectory,
    policy: AccessPolicy,
    code_store,
    profile_store,
) -> VerificationRedeemer:
    """Redeemer over the fake stores and the in-memory directory."""
    return VerificationRedeemer(
        mock_db,
        directory,
        policy,
        code_store=code_store,
        profile_store=profile_store,
    )
