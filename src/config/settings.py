"""
Application settings - pydantic-settings configuration.

This module defines application configuration using pydantic-settings
for environment variable loading with validation and defaults.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend configuration
    backend_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 30.0  # No extra timeout beyond the transport's

    # Return-trip routing
    frontend_origin: str = "http://localhost:5173"
    registration_path: str = "/auth/register"

    # Registration rules
    min_password_length: int = 8
    min_organization_seats: int = 4

    # Billing
    seat_price_per_month: Decimal = Decimal("50.00")  # Flat per seat, no proration

    log_level: str = "INFO"

    @property
    def return_url(self) -> str:
        """Absolute URL the checkout provider sends the browser back to."""
        return f"{self.frontend_origin.rstrip('/')}{self.registration_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
