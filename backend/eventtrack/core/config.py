"""Application configuration loaded from environment variables.

Settings for database, API, sessions, outbound email and token lifetimes.
Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "eventtrack_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "eventtrack"
    database_user: str = "eventtrack_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # Account storage backend. "memory" keeps accounts in-process (local
    # development without PostgreSQL); "database" uses SQLAlchemy.
    account_store_backend: Literal["database", "memory"] = "database"

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Sessions (JWT in httpOnly cookie)
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "eventtrack"
    auth_cookie_name: str = "eventtrack.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    auth_cookie_domain: str = ""
    auth_session_hours: int = 1

    # bcrypt cost factor for password hashing
    bcrypt_rounds: int = 12

    # Email
    # "resend" posts to the Resend API; "console" records messages in-process
    # and logs them (local development, tests).
    email_backend: Literal["resend", "console"] = "console"
    email_from: str = "noreply@eventtrack.app"
    resend_api_key: SecretStr = SecretStr("")
    email_timeout_seconds: float = 10.0
    support_email: str = "support@eventtrack.app"

    # Token lifetimes
    verification_token_ttl_hours: int = 24
    reset_token_ttl_minutes: int = 60

    # Frontend URL (redirect target after a verification link is followed)
    frontend_url: str = "http://localhost:3000"

    # Rate Limiting (Security)
    rate_limit_enabled: bool = True

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
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Token lifetimes must be positive (all environments)
        - SameSite=None requires Secure flag (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        - Resend backend needs an API key in production
        """
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if self.verification_token_ttl_hours <= 0:
            msg = (
                "VERIFICATION_TOKEN_TTL_HOURS must be positive. "
                f"Got: {self.verification_token_ttl_hours}"
            )
            raise ValueError(msg)
        if self.reset_token_ttl_minutes <= 0:
            msg = (
                "RESET_TOKEN_TTL_MINUTES must be positive. "
                f"Got: {self.reset_token_ttl_minutes}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production. Generate with: "
                    'python -c "import secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            if (
                self.email_backend == "resend"
                and not self.resend_api_key.get_secret_value()
            ):
                msg = "RESEND_API_KEY must be set when EMAIL_BACKEND=resend in production."
                raise ValueError(msg)

        return self


settings = Settings()
