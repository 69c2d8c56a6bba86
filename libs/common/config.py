from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderMode = Literal["mock", "real"]


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    DEFAULT_CURRENCY: str = "USD"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./commerce.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Provider families, resolved once at process start
    PAYMENTS_PROVIDER: ProviderMode = "mock"
    SHIPPING_PROVIDER: ProviderMode = "mock"
    TAX_PROVIDER: ProviderMode = "mock"
    NOTIFICATIONS_PROVIDER: ProviderMode = "mock"
    WEBHOOKS_PROVIDER: ProviderMode = "mock"

    PROVIDER_HTTP_TIMEOUT_SECONDS: float = 30.0

    # Payments (Stripe)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com"

    # Shipping carrier API
    SHIPPING_API_URL: str = ""
    SHIPPING_API_KEY: str = ""
    SHIPPING_WEBHOOK_SECRET: str = ""

    # Tax
    TAX_API_URL: str = ""
    TAX_API_KEY: str = ""
    INTERNAL_TAX_RATE: float = 0.0825

    # Notifications
    EMAIL_FROM: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    SMS_FROM: str = ""

    # Outbound webhooks
    WEBHOOKS_HTTP_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator(
        "PAYMENTS_PROVIDER",
        "SHIPPING_PROVIDER",
        "TAX_PROVIDER",
        "NOTIFICATIONS_PROVIDER",
        "WEBHOOKS_PROVIDER",
        mode="before",
    )
    @classmethod
    def normalize_provider_mode(cls, v: Optional[str]) -> str:
        # Anything other than "real" falls back to the mock adapter.
        return "real" if str(v or "").strip().lower() == "real" else "mock"


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
