"""Armory-Engine configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "api_key": "insecure-service-key-change-me",
    "audit_hmac_key": "insecure-audit-key-change-me",
}


class ArmorySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ARMORY_")

    environment: str = "development"

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/armory.db"
    db_echo: bool = False

    # API
    api_title: str = "Armory-Engine"
    api_version: str = "0.1.0"
    api_key: str = "insecure-service-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000"]

    # Audit chain signing
    audit_hmac_key: str = "insecure-audit-key-change-me"

    # Logging
    log_level: str = "INFO"

    # Purchases: when true, quantity must equal the number of asset specs
    strict_purchase_quantity: bool = False

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"ARMORY_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys; set ARMORY_API_KEY and "
                "ARMORY_AUDIT_HMAC_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> ArmorySettings:
    settings = ArmorySettings()
    settings.validate_for_production()
    return settings
