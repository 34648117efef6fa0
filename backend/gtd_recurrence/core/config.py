"""
Application configuration using Pydantic Settings.

Values are read from environment variables (and an optional .env file).
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./recurrence.db"

    # ===========================================
    # Field encryption (task text / comment)
    # ===========================================
    # Passphrase and salt feed PBKDF2; the derived key encrypts free-text fields.
    ENCRYPTION_PASSPHRASE: str = "change-me-in-production"
    ENCRYPTION_SALT: str = "gtd-recurrence"
    ENCRYPTION_ITERATIONS: int = 100_000

    # ===========================================
    # User context
    # ===========================================
    # Authentication is handled upstream; requests without an X-User-Id
    # header act on behalf of this user.
    DEFAULT_USER_ID: str = "local-user"

    # ===========================================
    # Catch-up generation
    # ===========================================
    CATCH_UP_ENABLED: bool = True
    CATCH_UP_INTERVAL_MINUTES: int = 60

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"

    @property
    def is_test(self) -> bool:
        """Check if running under the test suite."""
        return self.ENVIRONMENT == "test"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
