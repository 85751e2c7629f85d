"""Identity Directory error taxonomy.

Error classes raised by Identity Directory adapters. Adapters map transport
and API failures onto these so the redeemer can handle them without knowing
which directory is behind the interface.
"""


__all__ = [
    "IdentityDirectoryError",
    "DirectoryAuthenticationError",
    "DirectoryConflictError",
    "DirectoryUnavailableError",
]


class IdentityDirectoryError(Exception):
    """Base class for all Identity Directory errors.

    All adapter-specific exceptions should inherit from this class,
    allowing callers to catch all directory errors with a single handler.
    """

    pass


class DirectoryAuthenticationError(IdentityDirectoryError):
    """Service credentials were rejected (401/403).

    Not retryable: requires a configuration fix.
    """

    pass


class DirectoryConflictError(IdentityDirectoryError):
    """Identity already exists (e.g., create raced with another request).

    The next lookup by email will find the winner's identity.
    """

    pass


class DirectoryUnavailableError(IdentityDirectoryError):
    """Temporary failure (network, timeout, 5xx responses)."""

    pass
