from __future__ import annotations

import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "JobPay Checkout"
    ENV: str = "dev"

    # Payments backend (promo validation, initiation, status)
    PAYMENTS_API_BASE_URL: str = "http://localhost:3000/api"
    PAYMENTS_API_TOKEN: str | None = None
    PAYMENTS_HTTP_TIMEOUT: float = 10.0
    PAYMENTS_DEFAULT_GATEWAY: str | None = None  # e.g. "CM_MTN"

    # Confirmation polling: 60 attempts x 5s = 5 minutes
    PAYMENT_POLL_INTERVAL_SECONDS: float = 5.0
    PAYMENT_POLL_MAX_ATTEMPTS: int = 60

    CHECKOUT_MAX_OPEN_SESSIONS: int = 1000
    # Idle sessions nobody closed are evicted after this long without a request
    CHECKOUT_SESSION_TTL_SECONDS: float = 1800.0

    RATE_LIMIT_PROMO_APPLY: str = "30/minute"
    RATE_LIMIT_PAY: str = "10/minute"

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    @field_validator("PAYMENTS_API_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        """httpx joins relative paths onto the base URL; keep it slash-free."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("PAYMENTS_DEFAULT_GATEWAY", "PAYMENTS_API_TOKEN", "SENTRY_DSN", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.PAYMENT_POLL_INTERVAL_SECONDS < 0:
            raise ValueError("PAYMENT_POLL_INTERVAL_SECONDS must not be negative")
        if self.CHECKOUT_SESSION_TTL_SECONDS <= 0:
            raise ValueError("CHECKOUT_SESSION_TTL_SECONDS must be positive")
        if self.PAYMENT_POLL_MAX_ATTEMPTS < 1:
            raise ValueError("PAYMENT_POLL_MAX_ATTEMPTS must be at least 1")
        if self.ENV.lower() == "prod":
            if self.PAYMENT_POLL_INTERVAL_SECONDS == 0:
                raise ValueError("PAYMENT_POLL_INTERVAL_SECONDS must be positive in production")
            if not self.PAYMENTS_API_BASE_URL.startswith("https://"):
                raise ValueError("PAYMENTS_API_BASE_URL must use https in production")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    PAYMENTS_API_BASE_URL: str = "http://payments.test/api"
    PAYMENT_POLL_INTERVAL_SECONDS: float = 0.0
    RATE_LIMIT_PROMO_APPLY: str = "1000/minute"
    RATE_LIMIT_PAY: str = "1000/minute"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    CORS_ALLOW_ORIGINS: list[str] = []
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
