"""Connection configuration and its resolution from layered sources."""

import json
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from docstore.errors import ConfigurationError
from docstore.url import build_connection_url

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 27017
DEFAULT_DATABASE = "admin"

# Default for Settings.default_client_options; connector options are merged over it
DEFAULT_CLIENT_OPTIONS: dict[str, Any] = {"uuidRepresentation": "standard"}

# ConnectionConfig field -> environment variable
ENV_KEYS: dict[str, str] = {
    "username": "DBUSER",
    "password": "DBPASS",
    "host": "DBHOST",
    "port": "DBPORT",
    "database": "DBNAME",
    "options": "DBOPTS",
    "url": "DBURL",
}


class ConnectionConfig(BaseModel):
    """Fully resolved connection configuration."""

    model_config = ConfigDict(frozen=True)

    username: str | None = Field(default=None, description="User to authenticate as")
    password: str = Field(default="", description="Password for username")
    host: str = Field(default=DEFAULT_HOST, description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")
    database: str = Field(default=DEFAULT_DATABASE, description="Authentication database")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Driver client options, merged over the package defaults",
    )
    url: str = Field(description="Connection string handed to the driver")

    @model_validator(mode="before")
    @classmethod
    def derive_url(cls, data: Any) -> Any:
        """Build the url from the other fields when none is given.

        Only a database present in the input adds a path segment.
        """
        if not isinstance(data, dict) or data.get("url"):
            return data
        return {
            **data,
            "url": build_connection_url(
                host=data.get("host") or DEFAULT_HOST,
                port=data.get("port") or DEFAULT_PORT,
                username=data.get("username"),
                password=data.get("password") or "",
                database=data.get("database"),
            ),
        }


def _parse_options(raw: str) -> dict[str, Any]:
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"DBOPTS is not valid JSON: {e}", cause=e) from e
    if not isinstance(options, dict):
        raise ConfigurationError("DBOPTS must be a JSON object")
    return options


def _values_from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, key in ENV_KEYS.items():
        raw = environ.get(key)
        if not raw:
            continue
        values[field] = _parse_options(raw) if field == "options" else raw
    return values


def resolve_connection_config(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionConfig:
    """Resolve a connection configuration from layered sources.

    Precedence per field, highest first:
    1. ``overrides`` (keys set to ``None`` count as absent)
    2. ``environ`` (DBUSER, DBPASS, DBHOST, DBPORT, DBNAME, DBOPTS, DBURL)
    3. Hard defaults (localhost:27017, database admin, no options)

    When no url is given it is built from the other fields. Only an
    explicitly supplied database adds a path segment; the ``admin`` default
    does not.

    Args:
        overrides: Explicit values, typically constructor arguments
        environ: Environment lookup, defaults to ``os.environ``

    Raises:
        ConfigurationError: On unknown override keys or invalid values
    """
    environ = os.environ if environ is None else environ
    overrides = dict(overrides or {})

    unknown = set(overrides) - set(ENV_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Unknown connection settings: {', '.join(sorted(unknown))}"
        )

    values = _values_from_environ(environ)
    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return ConnectionConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid connection configuration: {e}", cause=e) from e
