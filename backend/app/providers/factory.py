"""Provider factory functions.

Singleton pattern for the Identity Directory adapter.
"""

from app.core.config import Settings, settings
from app.providers.identity.base import IdentityDirectory
from app.providers.identity.mock_adapter import InMemoryIdentityDirectory
from app.providers.identity.supabase_adapter import SupabaseIdentityDirectory

_identity_directory: IdentityDirectory | None = None


def get_identity_directory(config: Settings | None = None) -> IdentityDirectory:
    """Get or create the Identity Directory singleton.

    WHY SINGLETON:
    - One adapter per process, configured once at startup
    - Tests inject an in-memory adapter by assigning the module global

    Args:
        config: Optional settings. Defaults to the application settings.

    Returns:
        IdentityDirectory instance.

    Raises:
        ValueError: If the configured provider is unknown.
    """
    global _identity_directory

    if _identity_directory is None:
        config = config or settings

        if config.identity_provider == "supabase":
            _identity_directory = SupabaseIdentityDirectory(
                base_url=config.supabase_url,
                service_role_key=config.supabase_service_role_key.get_secret_value(),
                redirect_to=config.magic_link_redirect_url,
            )
        elif config.identity_provider == "memory":
            _identity_directory = InMemoryIdentityDirectory()
        else:
            raise ValueError(f"Unknown identity provider: {config.identity_provider}")

    return _identity_directory


def reset_identity_directory() -> None:
    """Reset the singleton (for testing).

    Call between tests that configure a different directory.
    """
    global _identity_directory
    _identity_directory = None
