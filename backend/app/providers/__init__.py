"""Provider abstraction layer.

Exports:
    Error classes for Identity Directory error handling
    Factory functions for provider instances
"""

from app.providers.errors import (
    DirectoryAuthenticationError,
    DirectoryConflictError,
    DirectoryUnavailableError,
    IdentityDirectoryError,
)
from app.providers.factory import get_identity_directory, reset_identity_directory

__all__ = [
    # Errors
    "IdentityDirectoryError",
    "DirectoryAuthenticationError",
    "DirectoryConflictError",
    "DirectoryUnavailableError",
    # Factory
    "get_identity_directory",
    "reset_identity_directory",
]
