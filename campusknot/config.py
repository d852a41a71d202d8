"""Configuration management for CampusKnot."""

from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    APP_NAME: str = "CampusKnot"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = Field(default=None, validate_default=True)

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "*"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./campusknot.db"

    # Redis Configuration
    REDIS_URL: str | None = None

    # Sentry Configuration
    SENTRY_DSN: str | None = None

    # Identity Configuration
    JWT_SECRET: str = "campusknot_dev_secret_change_in_production"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRY_DAYS: int = 30
    ALLOWED_EMAIL_DOMAIN: str = "@nitk.edu.in"
    OTP_EXPIRY_SECONDS: int = 600
    OTP_PURGE_INTERVAL_SECONDS: int = 300
    MIN_PASSWORD_LENGTH: int = 4
    MIN_AGE: int = 18
    MAX_AGE: int = 35

    # Email Configuration
    SENDGRID_API_KEY: str | None = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_EMAIL: str | None = None
    SMTP_PASSWORD: str | None = None

    # Media Configuration
    STORAGE_PATH: str = "uploads"
    MAX_UPLOAD_SIZE_MB: int = 10

    # Product Configuration
    MESSAGE_MAX_LENGTH: int = 2000
    DISCOVER_LIMIT: int = 20

    @property
    def is_production(self) -> bool:
        """Whether the service runs in a production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def default_bio(self) -> str:
        """Bio given to newly registered users who leave it empty."""
        return f"Hey there! I'm on {self.APP_NAME} 💕"

    @field_validator("DEBUG", mode="before")
    @classmethod
    def set_debug(cls, v: Any, info: ValidationInfo) -> bool:
        """Enable debug mode if ENVIRONMENT is development."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip():
            return v.strip().lower() in {"1", "true", "yes", "on"}
        return bool(info.data.get("ENVIRONMENT", "").lower() == "development")

    @field_validator("ALLOWED_EMAIL_DOMAIN")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        """Store the institutional domain as a lowercase '@domain' suffix."""
        v = v.strip().lower()
        return v if v.startswith("@") else f"@{v}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")


# Create a global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the settings instance."""
    return settings
