"""Application settings loaded from the environment (or a local .env file)."""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field("development", description="development, testing or production")
    log_level: str = Field("INFO", description="Root logging level")

    # Admin panel: one shared password, no user accounts
    admin_password: str = Field("admin123", description="Password for the admin panel")
    session_secret: str = Field("valencia-soares-secret-key", description="Signs the session cookie")
    session_max_age: int = Field(24 * 60 * 60, description="Session cookie lifetime in seconds")

    seed_sample_data: bool = Field(True, description="Load the sample blog posts at start-up")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = {"development", "testing", "production"}
        if v not in valid:
            raise ValueError(f"Environment must be one of: {sorted(valid)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def override_settings(**kwargs) -> Settings:
    """Build a settings instance with explicit values (used by tests)."""
    return Settings(**kwargs)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
