"""
Configuration management.

Uses pydantic-settings for process-wide settings read from the environment,
and a frozen pydantic model for the options of a single store. A store's
configuration is built once and never mutated afterwards.
"""

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MongoLogLevel = Literal["debug", "info", "warn", "warning", "error", "fatal", "critical"]


class Settings(BaseSettings):
    """
    Process settings with validation and type coercion.

    Values are loaded from environment variables or .env file.
    The MongoDB values are only defaults; each store may override them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Backend Selection
    # Options: "mongo", "memory"
    storage_backend: Literal["mongo", "memory"] = "mongo"

    # MongoDB connection defaults
    mongodb_host: str = "localhost"
    mongodb_port: int = 27017
    mongodb_database: Optional[str] = None
    mongodb_collection: str = "unspecified"
    mongodb_user: Optional[str] = None
    mongodb_password: Optional[SecretStr] = None

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    @field_validator("storage_backend", "log_level", "environment", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_mongo(self) -> bool:
        """Check if using MongoDB backend."""
        return self.storage_backend == "mongo"


class StoreConfiguration(BaseModel):
    """
    Validated options of one storage instance.

    `path` addresses the stored document. When it is not set the host's
    usage label is used instead; resolving the two happens at configure time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Optional[str] = None
    usage: Optional[str] = None

    collection: str = "unspecified"
    database: str
    host: str = "localhost"
    port: int = Field(default=27017, ge=1, le=65535)
    user: Optional[str] = None
    password: Optional[SecretStr] = None

    # Write durability
    write_concern: Optional[int] = None
    journaled: bool = False

    # Key sanitization
    replace_dot_in_key_with: Optional[str] = None
    replace_dollar_in_key_with: Optional[str] = None

    # TLS connection
    ssl: bool = False
    ssl_cert: Optional[str] = None
    ssl_key: Optional[str] = None
    ssl_key_pass_phrase: Optional[SecretStr] = None
    ssl_verify: bool = False
    ssl_ca_cert: Optional[str] = None

    # Collection creation
    capped: bool = False
    capped_size: Optional[int] = Field(default=None, gt=0)

    mongo_log_level: Optional[MongoLogLevel] = None

    @model_validator(mode="after")
    def _check_capped_size(self) -> "StoreConfiguration":
        if self.capped and self.capped_size is None:
            raise ValueError("capped_size is required when capped is enabled")
        return self

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "StoreConfiguration":
        """
        Build a store configuration using settings as connection defaults.

        Args:
            settings: Process settings
            **overrides: Store options; None values fall back to defaults
        """
        values: dict[str, Any] = {
            "collection": settings.mongodb_collection,
            "database": settings.mongodb_database,
            "host": settings.mongodb_host,
            "port": settings.mongodb_port,
            "user": settings.mongodb_user,
            "password": settings.mongodb_password,
        }
        values.update(overrides)
        return cls(**{key: value for key, value in values.items() if value is not None})


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings singleton.

    The @lru_cache ensures we only parse environment once.
    """
    return Settings()

