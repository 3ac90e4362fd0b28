"""MongoDB connection management.

Provides a connector that lazily establishes one connection and hands the
same instance to every caller for as long as it stays open.

Usage:
    connector = Connector(host="db.internal")
    connection = await connector()
    try:
        users = connection.collection("app", "users")
        await users.find_one({"name": "ada"})
    finally:
        await connector.close()
"""

import asyncio
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError

from docstore.config import get_settings
from docstore.config.models.connection import (
    DEFAULT_CLIENT_OPTIONS,
    ConnectionConfig,
    resolve_connection_config,
)
from docstore.config.settings import Settings
from docstore.errors import ConfigurationError
from docstore.observability.logging import get_logger, mask_url
from docstore.url import build_connection_url, build_seed_list_url

logger = get_logger(__name__)

ClientFactory = Callable[[str, dict[str, Any]], AsyncIOMotorClient]


def default_client_factory(url: str, options: dict[str, Any]) -> AsyncIOMotorClient:
    """Build a motor client for url with the given driver options."""
    return AsyncIOMotorClient(url, **options)


def client_seed_url(client: AsyncIOMotorClient, config: ConnectionConfig) -> str:
    """Connection string for the servers a pre-built client was seeded with.

    Credentials come from config, the driver does not expose the client's own.
    """
    seeds = sorted(client.topology_description.server_descriptions())
    if not seeds:
        raise ConfigurationError("Pre-built client has no seed servers")
    return build_seed_list_url(seeds, config.username, config.password)


def _consume_exception(future: asyncio.Future[Any]) -> None:
    # a failure nobody awaits any more must not be reported as never retrieved
    if not future.cancelled():
        future.exception()


class ConnectionState(str, Enum):
    """Lifecycle of the connection owned by a Connector."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class MongoConnection:
    """A live handle on the store.

    Wraps the driver client together with the url it was built for. The
    handle stays connected until ``close()`` is called on it, after which a
    connector will replace it on the next request.
    """

    def __init__(self, client: AsyncIOMotorClient, url: str) -> None:
        self._client = client
        self._url = url
        self._closed = False

    @property
    def client(self) -> AsyncIOMotorClient:
        return self._client

    @property
    def url(self) -> str:
        """Connection string the client was built for."""
        return self._url

    @property
    def is_connected(self) -> bool:
        return not self._closed

    def database(self, name: str) -> AsyncIOMotorDatabase:
        return self._client[name]

    def collection(self, database: str, collection: str) -> AsyncIOMotorCollection:
        return self._client[database][collection]

    async def ping(self) -> None:
        """Round-trip to the server, raising the driver error on failure."""
        await self._client.admin.command("ping")

    def close(self) -> None:
        """Close the driver client. Closing twice is a no-op."""
        if self._closed:
            return
        self._client.close()
        self._closed = True
        logger.info("mongo_connection_closed", url=mask_url(self._url))

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "closed"
        return f"<MongoConnection url={mask_url(self._url)!r} {state}>"


class Connector:
    """Memoized, single-flight access to one MongoConnection.

    Repeated calls while the connection is open return the same instance
    without network activity. When the cached connection has been closed
    the next call establishes a replacement. Concurrent first callers share
    a single connect attempt, including its failure.

    Connection failures (DNS, auth, network) propagate unchanged; there is
    no retry.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        client: AsyncIOMotorClient | None = None,
        client_factory: ClientFactory | None = None,
        environ: Mapping[str, str] | None = None,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> None:
        """Resolve configuration and prepare the client.

        Args:
            config: Fully resolved configuration, skips resolution
            client: Pre-built driver client used for the first connection.
                Replacements target the same servers.
            client_factory: Builds clients from (url, options)
            environ: Environment lookup for DB* variables
            settings: Source of the default client options,
                ``get_settings()`` when omitted
            **overrides: username, password, host, port, database, options, url

        Raises:
            ConfigurationError: If both config and overrides are given,
                or the resolved configuration is invalid
        """
        if config is not None and overrides:
            raise ConfigurationError("Pass either a ConnectionConfig or overrides, not both")

        self._config = config or resolve_connection_config(overrides, environ)
        settings = settings if settings is not None else get_settings()
        self._client_options = {**settings.default_client_options, **self._config.options}
        self._client_factory = client_factory or default_client_factory
        self._pending_client = client
        # a closed client cannot be reopened, replacements target its servers
        if client is not None:
            self._url = client_seed_url(client, self._config)
        else:
            self._url = self._config.url
        self._connection: MongoConnection | None = None
        self._connecting: asyncio.Future[MongoConnection] | None = None

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def url(self) -> str:
        """Connection string every connection of this connector targets."""
        return self._url

    @property
    def client_options(self) -> dict[str, Any]:
        return dict(self._client_options)

    @property
    def state(self) -> ConnectionState:
        if self._connecting is not None and not self._connecting.done():
            return ConnectionState.CONNECTING
        if self._connection is None:
            return ConnectionState.UNCONNECTED
        if self._connection.is_connected:
            return ConnectionState.CONNECTED
        return ConnectionState.CLOSED

    async def __call__(self) -> MongoConnection:
        return await self.get_connection()

    async def get_connection(self) -> MongoConnection:
        """Return the live connection, establishing it if needed."""
        connection = self._connection
        if connection is not None and connection.is_connected:
            return connection

        if self._connecting is None or self._connecting.done():
            self._connecting = asyncio.ensure_future(self._connect())
            self._connecting.add_done_callback(_consume_exception)
        pending = self._connecting

        try:
            # shield: one cancelled caller must not abort the shared attempt
            return await asyncio.shield(pending)
        finally:
            if self._connecting is pending and pending.done():
                self._connecting = None

    async def _connect(self) -> MongoConnection:
        stale = self._connection
        self._connection = None

        url = self._url
        if self._pending_client is not None:
            client = self._pending_client
            self._pending_client = None
        else:
            client = self._client_factory(url, dict(self._client_options))

        log = logger.bind(url=mask_url(url), replacing=stale is not None)
        log.info("mongo_connecting")

        try:
            # motor connects lazily; ping forces the handshake
            await client.admin.command("ping")
        except Exception as e:
            log.error("mongo_connection_failed", error=str(e))
            client.close()
            raise

        connection = MongoConnection(client, url)
        self._connection = connection
        log.info("mongo_connected")
        return connection

    async def close(self) -> None:
        """Close the cached connection if there is one."""
        if self._connection is not None:
            self._connection.close()

    async def health_check(self) -> bool:
        """Check if the cached connection is open and responsive."""
        connection = self._connection
        if connection is None or not connection.is_connected:
            return False

        try:
            await connection.ping()
            return True
        except PyMongoError as e:
            logger.warning("mongo_health_check_failed", error=str(e))
            return False

    async def __aenter__(self) -> "Connector":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_connector(
    *,
    client: AsyncIOMotorClient | None = None,
    client_factory: ClientFactory | None = None,
    **overrides: Any,
) -> Connector:
    """Build a Connector from explicit overrides, DB* variables and defaults."""
    return Connector(client=client, client_factory=client_factory, **overrides)


__all__ = [
    "DEFAULT_CLIENT_OPTIONS",
    "ClientFactory",
    "ConnectionState",
    "Connector",
    "MongoConnection",
    "build_connection_url",
    "client_seed_url",
    "create_connector",
    "default_client_factory",
]
