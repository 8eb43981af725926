# Configuration module for the session cache
from .settings import (
    Settings,
    Environment,
    ConfigurationError,
    get_settings,
    clear_settings_cache,
    validate_startup,
)

__all__ = [
    "Settings",
    "Environment",
    "ConfigurationError",
    "get_settings",
    "clear_settings_cache",
    "validate_startup",
]
