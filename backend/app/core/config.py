"""Application configuration loaded from environment variables.

Settings for the database, the email channel, the identity directory and the
verification policy. Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "muc_library_dev_password"  # nosec B105


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database (Code Store + Profile Store)
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "muc_library"
    database_user: str = "muc_library_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_echo: bool = False

    # CORS (Security)
    # Default allows the Vite dev server used by the library UI
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Verification policy
    allowed_email_domain: str = "@muc.edu.eg"
    admin_emails: list[str] = []
    verification_code_ttl_minutes: int = 15
    # The scannable image carries either the numeric code or the verify link
    verification_qr_content: Literal["code", "link"] = "code"

    # Email channel
    email_from: str = "muclibrary@muc.edu.eg"
    email_subject: str = "MUC Library Verification Code"
    resend_api_key: SecretStr = SecretStr("")

    # Public base URL of the library UI (for the emailed /verify link)
    frontend_url: str = "http://localhost:5173"

    # Identity Directory
    identity_provider: Literal["supabase", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: SecretStr = SecretStr("")
    # Where the one-time sign-in link lands after the session is established
    magic_link_redirect_url: str = ""

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "5/minute", "100/hour")
    rate_limit_issue: str = "5/minute"
    rate_limit_redeem: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @field_validator("admin_emails")
    @classmethod
    def normalize_admin_emails(cls, value: list[str]) -> list[str]:
        """Lowercase and strip allow-listed emails, dropping blanks."""
        return [email.strip().lower() for email in value if email.strip()]

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants and production requirements.

        Checks:
        - Verification TTL must be positive (all environments)
        - Allowed domain must be an "@domain" suffix (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - Supabase and Resend credentials must be set in production
        """
        if self.verification_code_ttl_minutes <= 0:
            msg = (
                "VERIFICATION_CODE_TTL_MINUTES must be positive. "
                f"Got: {self.verification_code_ttl_minutes}"
            )
            raise ValueError(msg)

        if not self.allowed_email_domain.startswith("@"):
            msg = (
                "ALLOWED_EMAIL_DOMAIN must start with '@' "
                f"(e.g. '@muc.edu.eg'). Got: {self.allowed_email_domain!r}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "List the library UI origin(s) explicitly."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.identity_provider == "supabase" and (
                not self.supabase_url
                or not self.supabase_service_role_key.get_secret_value()
            ):
                msg = (
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set "
                    "in production."
                )
                raise ValueError(msg)

            if not self.resend_api_key.get_secret_value():
                msg = "RESEND_API_KEY must be set in production."
                raise ValueError(msg)

        return self


settings = Settings()
