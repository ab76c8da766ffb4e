"""
Application configuration using Pydantic Settings.
"""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings
from pydantic import field_validator


# List of known insecure default secrets that should never be used
INSECURE_DEFAULTS = {
    "your-super-secret-key-change-in-production",
    "secret",
    "changeme",
    "test",
    "dev",
    "development",
    "password",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Synlitics API"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./synlitics.db"

    # JWT Configuration
    JWT_SECRET_KEY: str = "your-super-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    MIN_PASSWORD_LENGTH: int = 6

    # Blob storage for raw exports
    STORAGE_ROOT: str = "./storage"
    RAW_UPLOADS_BUCKET: str = "raw-uploads"
    ALLOWED_UPLOAD_EXTENSIONS: List[str] = [".csv", ".xlsx"]

    # Daily upload lifecycle
    UPLOAD_TIMEZONE: str = "UTC"
    PROCESSING_DELAY_SECONDS: float = 8.0

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """
        Validate JWT secret key is secure.

        Requirements:
        - At least 32 characters
        - Not a known insecure default
        """
        if v.lower() in INSECURE_DEFAULTS:
            raise ValueError(
                "JWT_SECRET_KEY is set to an insecure default value. "
                "Please set a strong secret key via environment variable. "
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )

        if len(v) < 32:
            raise ValueError(
                f"JWT_SECRET_KEY must be at least 32 characters long (got {len(v)}). "
                "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )

        return v

    @field_validator("PROCESSING_DELAY_SECONDS")
    @classmethod
    def validate_processing_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("PROCESSING_DELAY_SECONDS cannot be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
