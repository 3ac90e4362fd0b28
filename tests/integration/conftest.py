"""Pytest fixtures for integration tests against a real MongoDB.

Tests skip gracefully when no server answers at TEST_MONGODB_URL.
"""

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from docstore.connection import Connector
from docstore.crud import CRUD


def mongodb_available(url: str) -> bool:
    """Check if a MongoDB server answers a ping at url."""
    client: MongoClient = MongoClient(url, serverSelectionTimeoutMS=500)
    try:
        client.admin.command("ping")
        return True
    except PyMongoError:
        return False
    finally:
        client.close()


@pytest.fixture(scope="session")
def mongodb_url() -> str:
    url = os.environ.get("TEST_MONGODB_URL", "mongodb://localhost:27017")
    if not mongodb_available(url):
        pytest.skip(f"MongoDB not available at {url}")
    return url


@pytest_asyncio.fixture
async def live_connector(mongodb_url: str) -> AsyncIterator[Connector]:
    connector = Connector(environ={}, url=mongodb_url)
    yield connector
    await connector.close()


@pytest_asyncio.fixture
async def live_crud(live_connector: Connector) -> AsyncIterator[CRUD]:
    crud = CRUD(database="docstore_test", collection="documents", connector=live_connector)
    yield crud
    connection = await live_connector()
    await connection.database("docstore_test").drop_collection("documents")
