"""Shared test fixtures for the docstore test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from docstore.connection import Connector
from docstore.crud import CRUD
from tests.factories.mongo import FakeMongoServer


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "[logging]\\nlevel = 'DEBUG'",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"DBHOST": "127.0.0.1"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clean_db_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep DB* variables from the host shell out of every test."""
    for key in ("DBUSER", "DBPASS", "DBHOST", "DBPORT", "DBNAME", "DBOPTS", "DBURL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point settings at an empty config directory unless a test picks its own."""
    config_dir = tmp_path / "isolated-config"
    config_dir.mkdir()
    monkeypatch.setenv("DOCSTORE_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("DOCSTORE_DEFAULT_CLIENT_OPTIONS", raising=False)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    from docstore.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def server() -> FakeMongoServer:
    return FakeMongoServer()


@pytest.fixture
def connector(server: FakeMongoServer) -> Connector:
    """Connector wired to the fake server, isolated from the environment."""
    return Connector(environ={}, client_factory=server.client_factory)


@pytest.fixture
def crud(connector: Connector) -> CRUD:
    return CRUD(database="test", collection="test", connector=connector)
