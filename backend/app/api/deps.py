"""Shared dependencies for API endpoints.

WHY DEPENDENCY INJECTION:
- Database session, Identity Directory and access policy are swappable
- Tests override get_db and get_directory on the app
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.providers.factory import get_identity_directory
from app.providers.identity.base import IdentityDirectory
from app.services.access_policy import AccessPolicy


def get_directory() -> IdentityDirectory:
    """Get the configured Identity Directory adapter."""
    return get_identity_directory()


def get_access_policy() -> AccessPolicy:
    """Build the access policy from current settings.

    Built per request so settings overrides in tests take effect.
    """
    return AccessPolicy.from_settings(settings)


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
Directory = Annotated[IdentityDirectory, Depends(get_directory)]
Policy = Annotated[AccessPolicy, Depends(get_access_policy)]
