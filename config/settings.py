"""
Configuration management for the session cache.

This module provides centralized configuration loading and validation using
Pydantic settings. Values are loaded from environment variables or .env files,
with environment-specific overrides (.env.development, .env.staging,
.env.production).

The session cache itself never reads settings; build_session_cache() turns
a Settings instance into an explicit list of backends.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional, List, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEVELOPMENT_REDIS_URL = "redis://localhost:6379/0"


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _detect_environment() -> Environment:
    """
    Detect the current environment from the ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    Files are loaded in order, with later files overriding earlier ones.
    The base .env file is loaded first, then the environment-specific file.
    """
    env_file_map = {
        Environment.DEVELOPMENT: ".env.development",
        Environment.STAGING: ".env.staging",
        Environment.PRODUCTION: ".env.production",
    }
    env_specific_file = env_file_map.get(environment, ".env.development")
    return (".env", env_specific_file)


class Settings(BaseSettings):
    """
    Session cache settings loaded from environment variables.

    Backend flags keep their historical names (USE_SESSION_DB, USE_REDIS,
    REDIS_NAMESPACE) so existing deployments keep working.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # Relational backend
    use_session_db: bool = Field(
        default=False,
        description="Mirror sessions to the SQLite database"
    )
    session_db_path: str = Field(
        default="sessions.db",
        description="Path to the SQLite session database"
    )

    # Key/value backend
    use_redis: bool = Field(
        default=False,
        description="Mirror sessions to Redis"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL"
    )
    redis_namespace: str = Field(
        default="app",
        description="Prefix for every Redis session key"
    )

    # Persistence policy
    persist_debounce_ms: int = Field(
        default=1000,
        ge=0,
        le=600000,
        description="Quiet period before a session is written to backends"
    )
    sweep_interval_ms: int = Field(
        default=60000,
        ge=100,
        description="Interval between expired-session sweeps"
    )
    backend_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound on a single backend call; unbounded if unset"
    )

    # Observability
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("redis_namespace")
    @classmethod
    def validate_redis_namespace(cls, v: str) -> str:
        """Namespace must be non-empty and safe to embed in a SCAN pattern."""
        v = v.strip()
        if not v:
            raise ValueError("redis_namespace cannot be empty")
        if "*" in v or any(ch.isspace() for ch in v):
            raise ValueError("redis_namespace cannot contain whitespace or '*'")
        return v

    @field_validator("session_db_path")
    @classmethod
    def validate_session_db_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("session_db_path cannot be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @model_validator(mode="after")
    def validate_redis_config(self) -> "Settings":
        """Require redis_url when Redis is enabled outside development."""
        if self.use_redis and not self.redis_url:
            if self.environment != Environment.DEVELOPMENT:
                raise ValueError(
                    "redis_url is required when use_redis is enabled "
                    "in non-development environments"
                )
            self.redis_url = DEVELOPMENT_REDIS_URL
        return self

    @property
    def enabled_backends(self) -> List[str]:
        """Names of enabled backends, in restore order."""
        names = []
        if self.use_session_db:
            names.append("sqlite")
        if self.use_redis:
            names.append("redis")
        return names


class ConfigurationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Factory function to create Settings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected from
                    ENVIRONMENT variable.

    Returns:
        Settings: Validated settings for the specified environment.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = _get_env_files(environment)
    existing_env_files = [f for f in env_files if Path(f).exists()] or list(env_files)

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=tuple(existing_env_files),
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings()
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        # Extract field-level errors from Pydantic ValidationError
        if hasattr(e, 'errors'):
            for error in e.errors():
                field_name = '.'.join(str(loc) for loc in error.get('loc', []))
                error_type = error.get('type', '')
                error_msg = error.get('msg', str(error))

                if error_type == 'missing':
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name or "settings"] = error_msg

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None


def validate_startup(settings: Optional[Settings] = None) -> None:
    """
    Validate settings that depend on the host at startup.

    Raises:
        ConfigurationError: If any settings are unusable on this host.
    """
    from session.sqlite_store import resolve_db_path

    settings = settings or get_settings()
    validation_errors = {}

    if settings.use_session_db:
        parent = resolve_db_path(settings.session_db_path).parent
        if not parent.is_dir():
            validation_errors["session_db_path"] = (
                f"Directory does not exist: {parent}"
            )

    if validation_errors:
        raise ConfigurationError(
            "Configuration validation failed during startup",
            invalid_fields=validation_errors
        )
