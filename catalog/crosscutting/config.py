"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults that match the auth/session contract (15m / 7d)

Collaborators:
  - api/main.py: reads settings for CORS, pool and startup validation
  - container.py: builds TokenCodec / repositories from settings
  - identity/sessions.py: cookie names, TTLs and Secure flag

Constraints:
  - No business logic — pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache
  - Empty DATABASE_URL selects the in-memory user store (tests / local dev)
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRETS = {"dev-secret", "changeme", "change-me", "password", "secret"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_env: Application environment (development/local/test/production)
        database_url: PostgreSQL connection string ("" => in-memory store)
        allowed_origins: Comma-separated CORS origins
        cors_allow_credentials: Allow cookies cross-origin (default: False)
        log_level: Root log level for the "catalog-api" logger
        log_json: Emit JSON log lines (default: True)
        jwt_secret: Secret for signing access and refresh tokens
        jwt_access_ttl_minutes: Access token TTL in minutes (default: 15)
        jwt_refresh_ttl_days: Refresh token TTL in days (default: 7)
        jwt_leeway_seconds: Clock-skew tolerance on verification (default: 0)
        access_token_cookie: Cookie name for the access token
        refresh_token_cookie: Cookie name for the refresh token
        jwt_cookie_secure: Set Secure on auth cookies (forced in production)
        phone_pattern: Regex a login phone must match
        password_min_length / password_max_length: Password length policy
    """

    # Environment
    app_env: str = "development"

    # Database ("" => in-memory user store)
    database_url: str = ""
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000

    # CORS configuration
    allowed_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Security - JWT Auth
    jwt_secret: str = "dev-secret"
    jwt_access_ttl_minutes: int = 15
    jwt_refresh_ttl_days: int = 7
    jwt_leeway_seconds: int = 0
    access_token_cookie: str = "access_token"
    refresh_token_cookie: str = "refresh_token"
    jwt_cookie_secure: bool = False

    # Input policy
    phone_pattern: str = r"^\+53\d{8}$"
    password_min_length: int = 8
    password_max_length: int = 50

    # Dev Tools (Backend Safe)
    dev_seed_admin: bool = False
    dev_seed_admin_phone: str = "+5350000000"
    dev_seed_admin_password: str = "Adm1n!Pass"
    dev_seed_admin_roles: str = "SUPERUSER,ADMIN"
    dev_seed_admin_force_reset: bool = False

    @field_validator("jwt_access_ttl_minutes", "jwt_refresh_ttl_days")
    @classmethod
    def ttl_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("token TTLs must be greater than 0")
        return v

    @field_validator("jwt_leeway_seconds")
    @classmethod
    def leeway_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("jwt_leeway_seconds must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_password_policy(self):
        if self.password_min_length < 1:
            raise ValueError("password_min_length must be >= 1")
        if self.password_max_length < self.password_min_length:
            raise ValueError(
                f"password_max_length ({self.password_max_length}) must be >= "
                f"password_min_length ({self.password_min_length})"
            )
        return self

    @model_validator(mode="after")
    def validate_security_requirements(self):
        if not self.is_production():
            return self

        jwt_secret = (self.jwt_secret or "").strip()
        if not jwt_secret or jwt_secret in _INSECURE_SECRETS:
            raise ValueError(
                "JWT_SECRET must be set to a strong, non-default value in production"
            )
        if len(jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters in production")
        if not self.jwt_cookie_secure:
            raise ValueError("JWT_COOKIE_SECURE must be true in production")
        if not self.database_url.strip():
            raise ValueError("DATABASE_URL is required in production")
        return self

    def get_allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    def uses_database(self) -> bool:
        return bool(self.database_url.strip())

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
        ValidationError: If env vars are missing or invalid
    """
    return Settings()
