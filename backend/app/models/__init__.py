"""SQLAlchemy ORM models for the MUC Library backend.

All models are exported from this module for convenient imports:
    from app.models import Profile, Verification

Models:
- verification.py: Verification (Code Store)
- profile.py: Profile (Profile Store, table "users")
"""

from app.models.base import Base, TimestampMixin
from app.models.profile import ROLE_ADMIN, ROLE_STUDENT, Profile
from app.models.verification import Verification

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Models
    "Profile",
    "Verification",
    # Roles
    "ROLE_ADMIN",
    "ROLE_STUDENT",
]
