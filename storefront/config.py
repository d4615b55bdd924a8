"""
Application settings read from environment variables.
"""

import logging
import os
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field, field_validator

from storefront.money import to_fraction
from storefront.pricing import PromoPolicy

logger = logging.getLogger(__name__)


class StockReservationPolicy(str, Enum):
    """When stock is taken out of the catalog for an order."""

    PLACEMENT = "placement"
    CONFIRMATION = "confirmation"


class Settings(BaseModel):
    tax_rate: str = "0.20"
    promo_policy: PromoPolicy = PromoPolicy.LENIENT
    reserve_stock_on: StockReservationPolicy = (
        StockReservationPolicy.PLACEMENT
    )
    lock_timeout_seconds: float = Field(default=2.0, gt=0)
    retry_attempts: int = Field(default=3, ge=0)
    retry_base_delay_seconds: float = Field(default=0.05, ge=0)
    retry_max_delay_seconds: float = Field(default=1.0, ge=0)
    order_expiry_hours: int = Field(default=72, gt=0)
    order_sweep_interval_seconds: float = Field(default=300.0, ge=0)
    session_cookie_name: str = "SESSION"
    cookie_secure: bool = False
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173"]
    )
    admin_username: str = "admin"
    admin_password: str = "admin"
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    @field_validator("tax_rate")
    @classmethod
    def tax_rate_must_be_exact(cls, v: str) -> str:
        rate = to_fraction(v)
        if rate < 0 or rate > 1:
            raise ValueError("Tax rate must be between 0 and 1")
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from STOREFRONT_* environment variables, keeping
        defaults for anything unset."""
        env = os.environ
        values = {}
        mapping = {
            "STOREFRONT_TAX_RATE": "tax_rate",
            "STOREFRONT_PROMO_POLICY": "promo_policy",
            "STOREFRONT_RESERVE_STOCK_ON": "reserve_stock_on",
            "STOREFRONT_LOCK_TIMEOUT": "lock_timeout_seconds",
            "STOREFRONT_RETRY_ATTEMPTS": "retry_attempts",
            "STOREFRONT_RETRY_BASE_DELAY": "retry_base_delay_seconds",
            "STOREFRONT_RETRY_MAX_DELAY": "retry_max_delay_seconds",
            "STOREFRONT_ORDER_EXPIRY_HOURS": "order_expiry_hours",
            "STOREFRONT_ORDER_SWEEP_INTERVAL": "order_sweep_interval_seconds",
            "STOREFRONT_SESSION_COOKIE": "session_cookie_name",
            "STOREFRONT_ADMIN_USERNAME": "admin_username",
            "STOREFRONT_ADMIN_PASSWORD": "admin_password",
            "STOREFRONT_BCRYPT_ROUNDS": "bcrypt_rounds",
        }
        for env_name, field_name in mapping.items():
            if env_name in env:
                values[field_name] = env[env_name].strip()

        if "STOREFRONT_COOKIE_SECURE" in env:
            values["cookie_secure"] = (
                env["STOREFRONT_COOKIE_SECURE"].strip().lower() == "true"
            )
        if "STOREFRONT_CORS_ORIGINS" in env:
            values["cors_origins"] = [
                origin.strip()
                for origin in env["STOREFRONT_CORS_ORIGINS"].split(",")
                if origin.strip()
            ]

        settings = cls(**values)
        logger.debug(
            "Loaded settings from environment",
            extra={
                "tax_rate": settings.tax_rate,
                "promo_policy": settings.promo_policy.value,
                "reserve_stock_on": settings.reserve_stock_on.value,
                "retry_attempts": settings.retry_attempts,
            },
        )
        return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
