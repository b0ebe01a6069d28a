"""Configuration settings for TaskFlow."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./taskflow.db")

    # Tokens (access and refresh secrets must differ)
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    REFRESH_SECRET: str = os.getenv("REFRESH_SECRET", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    REMEMBER_ME_EXPIRE_DAYS: int = int(os.getenv("REMEMBER_ME_EXPIRE_DAYS", "30"))

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    RESET_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "15"))

    # Mail (reset links are logged when SMTP_HOST is unset)
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    EMAIL_USER: str = os.getenv("EMAIL_USER", "")
    EMAIL_PASS: str = os.getenv("EMAIL_PASS", "")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "TaskFlow Support <no-reply@taskflow.local>")

    # Rate limits
    GLOBAL_RATE_LIMIT: str = os.getenv("GLOBAL_RATE_LIMIT", "100/15minutes")
    AUTH_RATE_LIMIT: str = os.getenv("AUTH_RATE_LIMIT", "10/hour")

    # Application
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:5173")
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self) -> None:
        self._generated_secrets = not (self.JWT_SECRET and self.REFRESH_SECRET)
        if not self.JWT_SECRET:
            self.JWT_SECRET = secrets.token_urlsafe(32)
        if not self.REFRESH_SECRET:
            self.REFRESH_SECRET = secrets.token_urlsafe(32)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def cookie_secure(self) -> bool:
        return not self.is_development

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self._generated_secrets:
            errors.append("JWT_SECRET/REFRESH_SECRET not set - using auto-generated keys (sessions end on restart)")
        if self.JWT_SECRET == self.REFRESH_SECRET:
            errors.append("JWT_SECRET and REFRESH_SECRET must differ")
        if self.SMTP_HOST and not (self.EMAIL_USER and self.EMAIL_PASS):
            errors.append("SMTP_HOST is set but EMAIL_USER/EMAIL_PASS are missing")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
