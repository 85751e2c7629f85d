"""Abstract base class and types for Identity Directory adapters.

The Identity Directory is the external, authoritative registry of user
identities. The verification flow depends only on this interface: lookup by
email, create, role-metadata update, and one-time sign-in link generation.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """An identity as seen by the verification flow.

    Attributes:
        id: Directory-assigned unique id; profiles mirror it.
        email: Email address registered with the directory.
        role: Role stored in the identity's metadata, if any.
    """

    id: uuid.UUID
    email: str
    role: str | None = None


class IdentityDirectory(ABC):
    """Abstract base class for Identity Directory adapters.

    WHY AN INTERFACE:
    - The directory is a hosted service the flow does not own
    - Tests run against an in-memory adapter with injectable failures
    - Swapping the hosted provider touches one adapter, not the flow
    """

    @abstractmethod
    async def find_by_email(self, email: str) -> Identity | None:
        """Look up an identity by email (case-insensitive).

        Args:
            email: Email address to match.

        Returns:
            Identity if found, None otherwise.

        Raises:
            IdentityDirectoryError: On directory failure.
        """
        ...

    @abstractmethod
    async def create(self, email: str, role: str) -> Identity:
        """Create a pre-confirmed identity with role metadata.

        Args:
            email: Email address of the new identity.
            role: Role to store in metadata.

        Returns:
            The created Identity with its directory-assigned id.

        Raises:
            DirectoryConflictError: If the email is already registered.
            IdentityDirectoryError: On other directory failures.
        """
        ...

    @abstractmethod
    async def update_role_metadata(self, identity_id: uuid.UUID, role: str) -> None:
        """Overwrite the role stored in an identity's metadata.

        Args:
            identity_id: Directory id of the identity.
            role: Role to store.

        Raises:
            IdentityDirectoryError: On directory failure.
        """
        ...

    @abstractmethod
    async def generate_one_time_sign_in_link(self, email: str) -> str:
        """Issue a single-use, credential-bearing sign-in URL.

        Visiting the URL establishes an authenticated session for the email.

        Args:
            email: Email address of an existing identity.

        Returns:
            The sign-in URL.

        Raises:
            IdentityDirectoryError: On directory failure.
        """
        ...
