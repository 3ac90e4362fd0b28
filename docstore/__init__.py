"""docstore: a small asynchronous data-access layer over MongoDB.

    from docstore import Connector, create_crud

    setup_logging_from_settings()
    connector = Connector()
    users = create_crud(database="app", collection="users", connector=connector)
    user_id = await users.create({"name": "ada"})
    await users.update(user_id, {"active": True})
"""

from docstore.config.models.connection import ConnectionConfig, resolve_connection_config
from docstore.connection import (
    ConnectionState,
    Connector,
    MongoConnection,
    create_connector,
)
from docstore.crud import (
    CRUD,
    ByIdentifier,
    ByQuery,
    FullDocument,
    ReadOptions,
    as_target,
    create_crud,
)
from docstore.errors import ConfigurationError, DocstoreError, InvalidTargetError
from docstore.observability.logging import setup_logging_from_settings
from docstore.url import build_connection_url

__version__ = "0.1.0"

__all__ = [
    "CRUD",
    "ByIdentifier",
    "ByQuery",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionState",
    "Connector",
    "DocstoreError",
    "FullDocument",
    "InvalidTargetError",
    "MongoConnection",
    "ReadOptions",
    "as_target",
    "build_connection_url",
    "create_connector",
    "create_crud",
    "resolve_connection_config",
    "setup_logging_from_settings",
]
