"""
Configuration module for the gallery bot.

This module provides a centralized configuration system with validation
and support for different environments (development, testing, production).
Values are read from environment variables, optionally through a ``.env``
file, and sensitive values are masked whenever the configuration is shown.
"""

import functools
import logging
import os
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, Field, field_validator, model_validator


# Define environment types
class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


# Define log format types
class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


MASK = "********"


class BotConfig(BaseModel):
    """
    Base configuration model with validation.

    The database is given either as a full ``database_url`` or as separate
    PostgreSQL connection parts; one of the two must be complete.
    """

    # Bot settings
    bot_token: str = Field(..., description="Discord bot token", json_schema_extra={"sensitive": True})
    guild_id: Optional[int] = Field(
        None, description="Register commands for this guild only; global when unset"
    )
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")

    # Logging settings
    logging_level: int = Field(logging.INFO, description="Logging level")
    logfile: str = Field("gallery", description="Log file name")
    log_format: LogFormat = Field(
        LogFormat.CONSOLE, description="Log output format (json or console)"
    )

    # Database settings
    database_url: Optional[str] = Field(
        None, description="SQLAlchemy database URL", json_schema_extra={"sensitive": True}
    )
    host: Optional[str] = Field(None, description="Database host")
    db_user: Optional[str] = Field(None, description="Database user")
    db_password: Optional[str] = Field(
        None, description="Database password", json_schema_extra={"sensitive": True}
    )
    database: Optional[str] = Field(None, description="Database name")
    port: int = Field(5432, description="Database port")
    database_ssl: bool = Field(False, description="Connect to the database over SSL")

    # Gallery store settings
    write_retry_limit: int = Field(
        5, ge=1, le=20, description="Attempts per image write before giving up on conflicts"
    )

    database_part_fields: ClassVar[tuple[str, ...]] = ("host", "db_user", "db_password", "database")

    @field_validator("bot_token")
    @classmethod
    def bot_token_must_not_be_empty(cls, v):
        """Validate that the bot token is not empty."""
        if not v:
            raise ValueError("Bot token must not be empty")
        return v

    @model_validator(mode="before")
    @classmethod
    def check_database_settings(cls, values):
        """Require either a database URL or every PostgreSQL connection part."""
        if isinstance(values, dict) and not values.get("database_url"):
            missing = [key for key in cls.database_part_fields if not values.get(key)]
            if missing:
                raise ValueError(
                    "Either database_url or all database settings must be provided; "
                    f"missing: {', '.join(missing)}"
                )
        return values

    @property
    def resolved_database_url(self) -> str:
        """The async SQLAlchemy URL to connect with."""
        if self.database_url:
            url = self.database_url
            # Hosting providers hand out plain postgres:// URLs
            for prefix in ("postgres://", "postgresql://"):
                if url.startswith(prefix):
                    return "postgresql+asyncpg://" + url[len(prefix) :]
            return url
        return (
            f"postgresql+asyncpg://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @classmethod
    def get_sensitive_fields(cls) -> FrozenSet[str]:
        """Get the set of sensitive field names that should be handled securely."""
        return frozenset(
            name
            for name, field in cls.model_fields.items()
            if isinstance(field.json_schema_extra, dict)
            and field.json_schema_extra.get("sensitive")
        )

    def safe_dump(self) -> Dict[str, Any]:
        """Dump the configuration with sensitive values masked."""
        sensitive = self.get_sensitive_fields()
        return {
            key: (MASK if key in sensitive and value else value)
            for key, value in self.model_dump(mode="json").items()
        }


def _parse_logging_level(value: str) -> int:
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid LOGGING_LEVEL value: {value}")
    return level


def load_from_env() -> BotConfig:
    """
    Load configuration from environment variables.

    Environment overrides are applied after validation: ``testing`` logs at DEBUG
    to the ``test`` log file, ``production`` logs at WARNING.

    Returns:
        BotConfig: A validated configuration object

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    from dotenv import load_dotenv

    # Load environment variables from .env file
    load_dotenv()

    # Track missing required variables
    missing_vars = []

    # Helper function to get environment variables with validation
    def get_env(name, default=None, required=False):
        value = os.getenv(name, default)
        if required and (value is None or value == ""):
            missing_vars.append(name)
        return value

    bot_token = get_env("BOT_TOKEN", "", required=True)
    database_url = get_env("DATABASE_URL") or None
    database_parts = {
        "host": get_env("HOST", "", required=not database_url),
        "db_user": get_env("DB_USER", "", required=not database_url),
        "db_password": get_env("DB_PASSWORD", "", required=not database_url),
        "database": get_env("DATABASE", "", required=not database_url),
    }

    if missing_vars:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )

    environment = get_env("ENVIRONMENT", Environment.DEVELOPMENT.value)
    try:
        environment = Environment(environment)
    except ValueError:
        raise ValueError(f"Unknown environment: {environment}")

    guild_id = get_env("GUILD_ID")
    port = get_env("PORT", "5432")
    write_retry_limit = get_env("WRITE_RETRY_LIMIT", "5")

    # Parse numeric values with error handling
    try:
        guild_id_int = int(guild_id) if guild_id else None
    except ValueError:
        raise ValueError(f"Invalid GUILD_ID value: {guild_id}. Must be an integer.")

    try:
        port_int = int(port)
    except ValueError:
        raise ValueError(f"Invalid PORT value: {port}. Must be an integer.")

    try:
        write_retry_limit_int = int(write_retry_limit)
    except ValueError:
        raise ValueError(
            f"Invalid WRITE_RETRY_LIMIT value: {write_retry_limit}. Must be an integer."
        )

    try:
        config = BotConfig(
            bot_token=bot_token,
            guild_id=guild_id_int,
            environment=environment,
            logging_level=_parse_logging_level(get_env("LOGGING_LEVEL", "INFO")),
            logfile=get_env("LOGFILE", "gallery"),
            log_format=LogFormat(get_env("LOG_FORMAT", LogFormat.CONSOLE.value)),
            database_url=database_url,
            port=port_int,
            database_ssl=get_env("DATABASE_SSL", "false").lower() in ("1", "true", "yes"),
            write_retry_limit=write_retry_limit_int,
            **{key: value or None for key, value in database_parts.items()},
        )
    except ValueError as e:
        # Add more context to validation errors
        raise ValueError(f"Configuration validation error: {e}")

    # Override settings for the environment
    if environment == Environment.TESTING:
        config.logfile = "test"
        config.logging_level = logging.DEBUG
    elif environment == Environment.PRODUCTION:
        config.logging_level = logging.WARNING

    return config


@functools.lru_cache(maxsize=1)
def get_config() -> BotConfig:
    """Load the configuration once and reuse it."""
    return load_from_env()
