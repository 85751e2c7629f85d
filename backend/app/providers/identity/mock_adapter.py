"""In-memory Identity Directory for tests and local runs.

Keeps identities in a dict keyed by id, records every call, and can be told
to fail specific operations so partial-failure paths can be exercised.
"""

import uuid
from typing import Any

from app.providers.errors import DirectoryConflictError, IdentityDirectoryError
from app.providers.identity.base import Identity, IdentityDirectory


class InMemoryIdentityDirectory(IdentityDirectory):
    """Deterministic in-process Identity Directory.

    WHY IN-MEMORY:
    - Unit tests shouldn't hit the hosted directory (speed, flakiness)
    - Identity ids are visible to assertions (Profile.id == Identity.id)
    - Can simulate failures of any single operation

    Attributes:
        identities: Stored identities keyed by id.
        calls: Record of all method invocations for test assertions.
        failures: Operation names that raise IdentityDirectoryError when called.
    """

    def __init__(self, link_base_url: str = "https://identity.test/verify") -> None:
        """Initialize an empty directory.

        Args:
            link_base_url: Prefix for generated sign-in links.
        """
        self.identities: dict[uuid.UUID, Identity] = {}
        self.calls: list[dict[str, Any]] = []
        self.failures: set[str] = set()
        self._link_base_url = link_base_url

    def add(
        self,
        email: str,
        role: str | None = None,
        identity_id: uuid.UUID | None = None,
    ) -> Identity:
        """Seed an identity directly (test setup helper)."""
        identity = Identity(id=identity_id or uuid.uuid4(), email=email, role=role)
        self.identities[identity.id] = identity
        return identity

    def fail_on(self, *operations: str) -> None:
        """Make the named operations raise IdentityDirectoryError."""
        self.failures.update(operations)

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append({"method": method, **kwargs})
        if method in self.failures:
            raise IdentityDirectoryError(f"Simulated {method} failure")

    async def find_by_email(self, email: str) -> Identity | None:
        self._record("find_by_email", email=email)
        target = email.lower()
        for identity in self.identities.values():
            if identity.email.lower() == target:
                return identity
        return None

    async def create(self, email: str, role: str) -> Identity:
        self._record("create", email=email, role=role)
        for identity in self.identities.values():
            if identity.email.lower() == email.lower():
                raise DirectoryConflictError("Email already registered")
        return self.add(email, role)

    async def update_role_metadata(self, identity_id: uuid.UUID, role: str) -> None:
        self._record("update_role_metadata", identity_id=identity_id, role=role)
        identity = self.identities.get(identity_id)
        if identity is None:
            raise IdentityDirectoryError(f"Unknown identity {identity_id}")
        self.identities[identity_id] = Identity(
            id=identity.id, email=identity.email, role=role
        )

    async def generate_one_time_sign_in_link(self, email: str) -> str:
        self._record("generate_one_time_sign_in_link", email=email)
        return f"{self._link_base_url}?token={uuid.uuid4().hex}&type=magiclink"

    def get_by_email(self, email: str) -> Identity | None:
        """Synchronous lookup for test assertions (not recorded)."""
        for identity in self.identities.values():
            if identity.email.lower() == email.lower():
                return identity
        return None
