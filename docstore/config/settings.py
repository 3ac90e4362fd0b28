"""Root settings model for docstore configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from docstore.config.models.connection import DEFAULT_CLIENT_OPTIONS
from docstore.config.models.observability import LoggingConfig

# Module-level variable to store TOML config for settings source
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that reads from TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Application-level settings.

    Connection parameters are not part of this model; they follow the
    DB* variables handled by ``resolve_connection_config``. Only the driver
    options shared by every connector live here.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml
    3. config/{DOCSTORE_ENV}.toml
    4. DOCSTORE_* environment variables
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSTORE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="docstore", description="Application name for logging")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    default_client_options: dict[str, Any] = Field(
        default_factory=lambda: dict(DEFAULT_CLIENT_OPTIONS),
        description="Driver options every connector starts from, under its own options",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority order: init kwargs, DOCSTORE_* env vars, TOML files."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
