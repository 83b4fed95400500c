"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Mercado Pago Configuration
    mp_access_token: str = Field(
        default="", description="Mercado Pago access token (empty = not configured)"
    )
    mp_api_base_url: str = Field(
        default="https://api.mercadopago.com", description="Mercado Pago REST base URL"
    )
    mp_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Timeout for every Mercado Pago call (seconds)"
    )
    mp_notification_url: str = Field(
        default="", description="Webhook URL sent with each preference (optional)"
    )

    # Storefront return URLs
    front_success_url: str = Field(default="", description="Return URL after approval")
    front_failure_url: str = Field(default="", description="Return URL after failure")
    front_pending_url: str = Field(default="", description="Return URL while pending")

    # Shipping (server-side, client values are never trusted)
    delivery_cost: float = Field(default=4990, ge=0, description="Delivery fee in CLP")

    # Admin
    admin_token: str = Field(
        default="", description="Shared secret for admin endpoints (empty = gate disabled)"
    )

    # Application Configuration
    app_name: str = Field(default="checkout-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8080, description="API port")
    cors_origins: str = Field(
        default="", description="CORS allowed origins (comma-separated, empty = allow all)"
    )

    # Rate Limiting
    checkout_rate_limit_per_minute: int = Field(
        default=30, gt=0, description="Order creation requests per client per minute"
    )
    webhook_rate_limit_per_minute: int = Field(
        default=120, gt=0, description="Webhook requests per client per minute"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_cors_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def allow_all_origins(self) -> bool:
        """CORS is open when no origin list is configured."""
        return not self.get_cors_origins_list()

    @property
    def has_provider_credential(self) -> bool:
        """Check if a Mercado Pago access token is configured."""
        return bool(self.mp_access_token)

    @property
    def admin_gate_enabled(self) -> bool:
        """Check if admin endpoints require a bearer token."""
        return bool(self.admin_token)

    def get_back_urls(self) -> Dict[str, Optional[str]]:
        """Return URLs for the hosted payment page, None where unset."""
        return {
            "success": self.front_success_url or None,
            "failure": self.front_failure_url or None,
            "pending": self.front_pending_url or None,
        }

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
