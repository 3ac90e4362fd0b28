"""Configuration models for docstore."""

from docstore.config.models.connection import (
    DEFAULT_CLIENT_OPTIONS,
    DEFAULT_DATABASE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    ENV_KEYS,
    ConnectionConfig,
    resolve_connection_config,
)
from docstore.config.models.observability import LoggingConfig

__all__ = [
    "DEFAULT_CLIENT_OPTIONS",
    "DEFAULT_DATABASE",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "ENV_KEYS",
    "ConnectionConfig",
    "LoggingConfig",
    "resolve_connection_config",
]
