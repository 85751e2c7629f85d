"""Access policy for the verification flow.

Decides who may request a code (institutional email domain) and which role a
redeemed email receives (admin allow-list, student otherwise). Built from
settings at the API edge; services and tests only see the policy value.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from app.core.config import Settings
from app.core.errors import InvalidDomainError
from app.models.profile import ROLE_ADMIN, ROLE_STUDENT


def normalize_email(email: str) -> str:
    """Strip surrounding whitespace and lowercase an email address."""
    return email.strip().lower()


@dataclass(frozen=True)
class AccessPolicy:
    """Domain gate plus role overrides.

    Attributes:
        allowed_domain: Required suffix including "@", e.g. "@muc.edu.eg".
        role_overrides: Normalized email -> role. Emails not listed get
            the student role.
    """

    allowed_domain: str
    role_overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {
            normalize_email(email): role for email, role in self.role_overrides.items()
        }
        # Frozen dataclass: bypass __setattr__ to store the normalized copy
        object.__setattr__(self, "allowed_domain", self.allowed_domain.lower())
        object.__setattr__(self, "role_overrides", MappingProxyType(normalized))

    @classmethod
    def from_settings(cls, config: Settings) -> "AccessPolicy":
        """Build the policy from application settings.

        Every email in ``admin_emails`` maps to the admin role.
        """
        return cls(
            allowed_domain=config.allowed_email_domain,
            role_overrides=dict.fromkeys(config.admin_emails, ROLE_ADMIN),
        )

    def require_allowed_domain(self, email: str) -> str:
        """Normalize an email and reject it if outside the allowed domain.

        Args:
            email: Email as submitted by the user.

        Returns:
            The normalized email.

        Raises:
            InvalidDomainError: If the email lacks the required suffix.
        """
        normalized = normalize_email(email)
        if not normalized.endswith(self.allowed_domain):
            raise InvalidDomainError(self.allowed_domain)
        return normalized

    def role_for(self, email: str) -> str:
        """Return the role for an email (case-insensitive)."""
        return self.role_overrides.get(normalize_email(email), ROLE_STUDENT)
