"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Keep JWT secrets separated per token purpose (access / refresh / 2FA-pending)

Collaborators:
  - api/main.py: reads settings for CORS, pool and startup validation
  - container.py: picks adapters (in-memory vs Postgres, fake vs SMTP mail)
  - identity/*: token TTLs, secrets, Argon2 cost, TOTP issuer

Constraints:
  - Lives in API/infrastructure layer, NOT in domain/application
  - No business logic — pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache for performance
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRETS = {
    "dev-secret",
    "dev-refresh-secret",
    "dev-verification-secret",
    "changeme",
    "change-me",
    "password",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string
        app_env: Application environment (development/test/production)
        app_name: Issuer shown in authenticator apps (TOTP provisioning label)
        frontend_url: Base URL used in verification / reset links
        allowed_origins: Comma-separated CORS origins
        jwt_secret: Secret for signing access tokens
        jwt_refresh_secret: Secret for signing refresh tokens (distinct)
        jwt_verification_secret: Secret for the short-lived 2FA-pending token
        jwt_access_ttl_minutes: Access token TTL in minutes (default: 60)
        jwt_refresh_ttl_days: Refresh token TTL in days (default: 7)
        two_factor_token_ttl_minutes: 2FA-pending token TTL (default: 5)
        email_verification_ttl_hours: Email verification token TTL (default: 24)
        password_reset_ttl_hours: Password reset token TTL (default: 1)
        password_hash_time_cost: Argon2 time cost
        password_hash_memory_cost: Argon2 memory cost (KiB)
        redis_url: Redis connection string for the profile cache (optional)
        profile_cache_ttl_seconds: TTL for cached profile views
        mail_*: SMTP settings; fake_mail keeps mails in an in-memory outbox
    """

    # Required (no defaults)
    database_url: str

    # Environment
    app_env: str = "development"
    app_name: str = "StoreRating"
    frontend_url: str = "http://localhost:3000"

    # CORS configuration
    allowed_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Security - JWT Auth
    jwt_secret: str = "dev-secret"
    jwt_refresh_secret: str = "dev-refresh-secret"
    jwt_verification_secret: str = "dev-verification-secret"
    jwt_access_ttl_minutes: int = 60
    jwt_refresh_ttl_days: int = 7
    two_factor_token_ttl_minutes: int = 5
    jwt_cookie_name: str = "access_token"
    jwt_cookie_secure: bool = False

    # Verification tokens
    email_verification_ttl_hours: int = 24
    password_reset_ttl_hours: int = 1

    # Password hashing (Argon2id)
    password_hash_time_cost: int = 3
    password_hash_memory_cost: int = 65536

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # Redis / cache
    redis_url: str = ""
    profile_cache_ttl_seconds: int = 300

    # Mail (SMTP)
    mail_host: str = "localhost"
    mail_port: int = 587
    mail_user: str = ""
    mail_password: str = ""
    mail_use_tls: bool = True
    mail_from: str = "no-reply@storerating.local"
    mail_from_name: str = "StoreRating"
    fake_mail: bool = False

    @field_validator(
        "jwt_access_ttl_minutes",
        "jwt_refresh_ttl_days",
        "two_factor_token_ttl_minutes",
        "email_verification_ttl_hours",
        "password_reset_ttl_hours",
    )
    @classmethod
    def ttl_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("token TTLs must be greater than 0")
        return v

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    def get_allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    @model_validator(mode="after")
    def validate_distinct_secrets(self):
        secrets = [
            (self.jwt_secret or "").strip(),
            (self.jwt_refresh_secret or "").strip(),
            (self.jwt_verification_secret or "").strip(),
        ]
        if len(set(secrets)) != len(secrets):
            raise ValueError(
                "JWT_SECRET, JWT_REFRESH_SECRET and JWT_VERIFICATION_SECRET must differ"
            )
        return self

    @model_validator(mode="after")
    def validate_security_requirements(self):
        if not self.is_production():
            return self

        for name in ("jwt_secret", "jwt_refresh_secret", "jwt_verification_secret"):
            value = (getattr(self, name) or "").strip()
            if not value or value in _INSECURE_SECRETS:
                raise ValueError(
                    f"{name.upper()} must be set to a strong, non-default value in production"
                )
            if len(value) < 32:
                raise ValueError(
                    f"{name.upper()} must be at least 32 characters in production"
                )
        if not self.jwt_cookie_secure:
            raise ValueError("JWT_COOKIE_SECURE must be true in production")
        if self.fake_mail:
            raise ValueError("FAKE_MAIL cannot be enabled in production")

        return self

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()
