"""Configuration loading for docstore.

Application settings are loaded from TOML files with environment variable
overrides. Connection parameters are resolved separately, per connector,
from explicit arguments and DB* variables.

Usage:
    from docstore.config import get_settings

    settings = get_settings()
    level = settings.logging.level
"""

from functools import lru_cache

from docstore.config.loader import load_config
from docstore.config.models.connection import ConnectionConfig, resolve_connection_config
from docstore.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    The result is cached for the lifetime of the process.
    Call `get_settings.cache_clear()` to reload configuration.
    """
    config_dict = load_config()
    set_toml_config(config_dict)

    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "ConnectionConfig",
    "Settings",
    "get_settings",
    "reload_settings",
    "resolve_connection_config",
]
