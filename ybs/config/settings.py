"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ybs.config.business_constants import (
    ACTIVATION_FEE,
    MIN_WITHDRAWAL_AMOUNT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./ybs.db"
    database_echo: bool = False

    # Redis (activation correlation registry)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    activation_attempt_ttl_seconds: int = Field(
        default=86400,
        gt=0,
        description="How long an activation correlation id stays resolvable",
    )

    # M-Pesa (Daraja) payment collection
    mpesa_base_url: str = "https://sandbox.safaricom.co.ke"
    mpesa_business_short_code: str = "174379"
    mpesa_passkey: str | None = None
    mpesa_consumer_key: str | None = None
    mpesa_consumer_secret: str | None = None
    mpesa_callback_url: str = "http://localhost:8080"
    mpesa_timeout_url: str | None = None
    mpesa_request_timeout: float = Field(
        default=30.0, gt=0, description="STK push HTTP timeout in seconds"
    )

    # Business rules
    activation_fee: Decimal = Field(
        default=ACTIVATION_FEE, gt=0, description="Account activation fee (KSH)"
    )
    min_withdrawal_amount: Decimal = Field(
        default=MIN_WITHDRAWAL_AMOUNT,
        gt=0,
        description="Minimum withdrawal request amount (KSH)",
    )

    # Password hashing cost
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # Admin action surface
    admin_api_token: str | None = None

    # Application
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/ybs.log"
    web_host: str = "0.0.0.0"
    web_port: int = Field(
        default=8080, ge=1, le=65535, description="Webhook/admin HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "or sqlite+aiosqlite://"
            )
        return v

    @field_validator("mpesa_business_short_code")
    @classmethod
    def validate_short_code(cls, v: str) -> str:
        """Validate M-Pesa business short code."""
        if not v.isdigit():
            raise ValueError(f"Invalid M-Pesa short code: {v}")
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )

            missing = [
                name
                for name in (
                    "mpesa_passkey",
                    "mpesa_consumer_key",
                    "mpesa_consumer_secret",
                )
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    "Missing required M-Pesa settings in production: "
                    + ", ".join(name.upper() for name in missing)
                )

            if not self.admin_api_token or len(self.admin_api_token) < 32:
                raise ValueError(
                    "ADMIN_API_TOKEN must be at least 32 characters in "
                    "production. Generate one with: openssl rand -hex 32"
                )

            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Row locks are not enforced; use PostgreSQL."
                )

        return self

    @property
    def mpesa_activation_callback_url(self) -> str:
        """Full URL the provider posts activation results to."""
        return f"{self.mpesa_callback_url.rstrip('/')}/api/mpesa/activation-callback"


# Global settings instance
settings = Settings()
