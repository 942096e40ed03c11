"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the inventory consistency and audit core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./ledgerlink.db"

    # Security (token verification only; tokens are issued by the auth service)
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 240

    # Application
    app_name: str = "LedgerLink Core"
    api_v1_prefix: str = "/api/v1"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    rate_limit_enabled: bool = True

    # ==========================================================================
    # Audit trail
    # ==========================================================================
    audit_enabled: bool = True
    # Level stamped on entries when the caller does not supply one
    # (1 = application level, 2 = organization level)
    audit_default_level: Optional[int] = 2

    # ==========================================================================
    # Receipts
    # ==========================================================================
    # When a received recipe ingredient has no inventory row in the destination
    # store, also link the recipe to the template ingredient.
    receipt_links_recipe_ingredients: bool = True

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == "change-me-in-production" or len(v) < 32:
            import warnings
            warnings.warn(
                "SECRET_KEY should be set and at least 32 characters long.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to start in production mode with an insecure secret."""
        if not self.debug and self.secret_key == "change-me-in-production":
            raise ValueError(
                "FATAL: Cannot start in production mode with default SECRET_KEY. "
                "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
