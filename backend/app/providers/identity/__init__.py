"""Identity Directory module.

Exports:
    Identity: Identity dataclass
    IdentityDirectory: Abstract base class for directory adapters
    SupabaseIdentityDirectory: Supabase Auth admin API implementation
    InMemoryIdentityDirectory: In-process implementation for tests/local runs
"""

from app.providers.identity.base import Identity, IdentityDirectory
from app.providers.identity.mock_adapter import InMemoryIdentityDirectory
from app.providers.identity.supabase_adapter import SupabaseIdentityDirectory

__all__ = [
    "Identity",
    "IdentityDirectory",
    "InMemoryIdentityDirectory",
    "SupabaseIdentityDirectory",
]
