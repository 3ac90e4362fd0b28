"""Connection string construction."""

from collections.abc import Iterable
from urllib.parse import quote_plus

DEFAULT_SCHEME = "mongodb"


def build_connection_url(
    host: str,
    port: int | str,
    username: str | None = None,
    password: str = "",
    database: str | None = None,
    scheme: str = DEFAULT_SCHEME,
) -> str:
    """Build a connection string from its parts.

    Credentials gate the path segment: without a username the result is
    exactly ``scheme://host:port`` whatever ``database`` holds. Username and
    password are percent-encoded independently.

    Examples:
        >>> build_connection_url("localhost", 27017)
        'mongodb://localhost:27017'
        >>> build_connection_url("db", 27017, "admin", "p@ss w/rd", "app")
        'mongodb://admin:p%40ss+w%2Frd@db:27017/app'
    """
    if not username:
        return f"{scheme}://{host}:{port}"

    url = f"{scheme}://{quote_plus(username)}:{quote_plus(password or '')}@{host}:{port}"
    if database:
        url = f"{url}/{database}"
    return url


def build_seed_list_url(
    seeds: Iterable[tuple[str, int]],
    username: str | None = None,
    password: str = "",
    scheme: str = DEFAULT_SCHEME,
) -> str:
    """Build a connection string naming every (host, port) seed.

    IPv6 hosts are bracketed. Credentials are encoded as in
    ``build_connection_url``.

    Examples:
        >>> build_seed_list_url([("a", 27017), ("b", 27018)])
        'mongodb://a:27017,b:27018'
    """
    hosts = ",".join(
        f"[{host}]:{port}" if ":" in host else f"{host}:{port}" for host, port in seeds
    )
    if not username:
        return f"{scheme}://{hosts}"
    return f"{scheme}://{quote_plus(username)}:{quote_plus(password or '')}@{hosts}"
