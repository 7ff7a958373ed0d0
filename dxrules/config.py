"""
dxrules Configuration Management
Handles rule source and runtime settings using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Optional


class Settings(BaseSettings):
    """Library settings with validation"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )

    # Environment
    environment: str = Field(default="development", pattern="^(development|production|test)$")
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Rule selection
    rules_namespace: str = Field(default="core", pattern=r"^[A-Za-z0-9_-]+$")
    rules_force_reload: bool = Field(default=False)

    # Rule source
    rules_source: str = Field(default="file", pattern="^(file|http|redis)$")
    rules_dir: str = Field(default="rules")
    rules_base_url: Optional[str] = Field(default=None)
    rules_fetch_timeout: float = Field(default=10.0, gt=0, le=300)
    rules_fetch_max_retries: int = Field(default=3, ge=1, le=10)

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="rules")

    @field_validator("rules_base_url")
    @classmethod
    def strip_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Drop trailing slashes so artifact URLs join cleanly"""
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    @model_validator(mode="after")
    def validate_source_config(self) -> "Settings":
        """The HTTP source cannot work without a base URL"""
        if self.rules_source == "http" and not self.rules_base_url:
            raise ValueError("rules_base_url is required when rules_source is 'http'")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test"""
        return self.environment == "test"


# Global settings instance
settings = Settings()
