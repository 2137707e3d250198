"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("PAYGATE_ENV", "dev").lower()
DEV_ENVS = {"dev", "local", "test"}


class GatewayConfig(BaseModel):
    """Settings shared by every gateway adapter."""

    name: str = ""
    enabled: bool = False
    webhook_secret: str | None = None

    @field_validator("webhook_secret")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty webhook secrets to ``None`` so the check is skipped."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class ToyyibpayConfig(GatewayConfig):
    name: str = "ToyyibPay"
    secret_key: str | None = None
    category_code: str | None = None
    sandbox: bool = True


class ChipInConfig(GatewayConfig):
    name: str = "CHIP"
    brand_id: str | None = None
    secret_key: str | None = None
    sandbox: bool = True


class ManualConfig(GatewayConfig):
    name: str = "Manual Payment"
    enabled: bool = True
    upload_path: str = "payment-proofs"
    storage_root: str = "storage"
    # Maximum proof size in kilobytes.
    max_file_size: int = Field(default=5120, gt=0)
    allowed_extensions: list[str] = ["jpg", "jpeg", "png", "pdf"]

    @field_validator("allowed_extensions")
    @classmethod
    def _normalise_extensions(cls, value: list[str]) -> list[str]:
        return [ext.strip().lower().lstrip(".") for ext in value if ext.strip()]


class GatewaysConfig(BaseModel):
    toyyibpay: ToyyibpayConfig = ToyyibpayConfig()
    chipin: ChipInConfig = ChipInConfig()
    manual: ManualConfig = ManualConfig()
    paypal: GatewayConfig = GatewayConfig(name="PayPal")
    stripe: GatewayConfig = GatewayConfig(name="Stripe")


class Settings(BaseSettings):
    """Environment configuration for the payment gateway service."""

    app_env: str = ENV
    database_url: str = "sqlite:///paygate.db"
    log_level: str = "INFO"
    ALLOW_DB_CREATE_ALL: bool = False

    currency: str = Field(default="MYR", min_length=3, max_length=3)
    default_gateway: str = "manual"
    base_url: str = "http://localhost:8000"
    success_path: str = "/payments/success"
    failed_path: str = "/payments/failed"
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    admin_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ADMIN_API_KEY", "admin_api_key"),
    )
    CORS_ALLOW_ORIGINS: list[str] = ["http://localhost:3000"]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = False

    gateways: GatewaysConfig = GatewaysConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppInfo(BaseModel):
    name: str = "paygate"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "DEV_ENVS",
    "GatewayConfig",
    "ToyyibpayConfig",
    "ChipInConfig",
    "ManualConfig",
    "GatewaysConfig",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
