"""In-process stand-in for the slice of the motor API docstore uses.

One FakeMongoServer holds the data; every client built by its factory
talks to it, so documents survive a reconnect the way they would on a
real server. Only equality filters are supported.
"""

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from bson import ObjectId
from pymongo.errors import InvalidOperation
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult


def _matches(document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    return all(key in document and document[key] == value for key, value in query.items())


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        if length is None:
            return list(self._documents)
        return self._documents[:length]


class FakeCollection:
    def __init__(
        self,
        server: "FakeMongoServer",
        client: "FakeMotorClient",
        documents: list[dict[str, Any]],
    ) -> None:
        self._server = server
        self._client = client
        self.documents = documents

    def _record(self, name: str, *args: Any) -> None:
        self._client.check_open()
        self._server.calls.append((name, *args))

    def _find(self, query: Mapping[str, Any]) -> list[dict[str, Any]]:
        return [doc for doc in self.documents if _matches(doc, query)]

    async def insert_one(self, document: dict[str, Any]) -> InsertOneResult:
        self._record("insert_one", document)
        if "_id" not in document:
            document["_id"] = ObjectId()
        self.documents.append(copy.deepcopy(document))
        return InsertOneResult(document["_id"], True)

    async def find_one(self, query: Mapping[str, Any]) -> dict[str, Any] | None:
        self._record("find_one", query)
        found = self._find(query)
        return copy.deepcopy(found[0]) if found else None

    def find(
        self,
        query: Mapping[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple[str, int]] | None = None,
    ) -> FakeCursor:
        self._record("find", query, skip, limit, sort)
        found = self._find(query)
        for key, direction in reversed(sort or []):
            found = sorted(found, key=lambda doc: doc.get(key), reverse=direction == -1)
        found = found[skip:]
        if limit:
            found = found[:limit]
        return FakeCursor(copy.deepcopy(found))

    async def replace_one(self, query: Mapping[str, Any], replacement: Mapping[str, Any]) -> UpdateResult:
        self._record("replace_one", query, replacement)
        found = self._find(query)[:1]
        modified = 0
        for doc in found:
            new_doc = {"_id": doc["_id"], **copy.deepcopy(dict(replacement))}
            if new_doc != doc:
                index = self.documents.index(doc)
                self.documents[index] = new_doc
                modified += 1
        return UpdateResult({"n": len(found), "nModified": modified}, True)

    def _set(self, found: list[dict[str, Any]], update: Mapping[str, Any]) -> UpdateResult:
        modified = 0
        for doc in found:
            before = copy.deepcopy(doc)
            doc.update(copy.deepcopy(update["$set"]))
            if doc != before:
                modified += 1
        return UpdateResult({"n": len(found), "nModified": modified}, True)

    async def update_one(self, query: Mapping[str, Any], update: Mapping[str, Any]) -> UpdateResult:
        self._record("update_one", query, update)
        return self._set(self._find(query)[:1], update)

    async def update_many(self, query: Mapping[str, Any], update: Mapping[str, Any]) -> UpdateResult:
        self._record("update_many", query, update)
        return self._set(self._find(query), update)

    async def delete_one(self, query: Mapping[str, Any]) -> DeleteResult:
        self._record("delete_one", query)
        found = self._find(query)[:1]
        for doc in found:
            self.documents.remove(doc)
        return DeleteResult({"n": len(found)}, True)

    async def delete_many(self, query: Mapping[str, Any]) -> DeleteResult:
        self._record("delete_many", query)
        found = self._find(query)
        for doc in found:
            self.documents.remove(doc)
        return DeleteResult({"n": len(found)}, True)


class FakeDatabase:
    def __init__(self, server: "FakeMongoServer", client: "FakeMotorClient", name: str) -> None:
        self._server = server
        self._client = client
        self.name = name

    def __getitem__(self, name: str) -> FakeCollection:
        documents = self._server.data.setdefault(self.name, {}).setdefault(name, [])
        return FakeCollection(self._server, self._client, documents)

    async def command(self, name: str) -> dict[str, Any]:
        self._client.check_open()
        self._server.commands.append(name)
        if self._server.ping_delay:
            await asyncio.sleep(self._server.ping_delay)
        if self._server.ping_error is not None:
            raise self._server.ping_error
        return {"ok": 1.0}


class FakeTopologyDescription:
    """Seed servers parsed from a connection string, keyed like the driver's."""

    def __init__(self, url: str) -> None:
        hosts = url.split("://", 1)[1].rsplit("@", 1)[-1]
        hosts = hosts.split("/", 1)[0].split("?", 1)[0]
        self._seeds: dict[tuple[str, int], None] = {}
        for entry in hosts.split(","):
            host, _, port = entry.rpartition(":")
            self._seeds[(host.strip("[]"), int(port))] = None

    def server_descriptions(self) -> dict[tuple[str, int], None]:
        return dict(self._seeds)


class FakeMotorClient:
    def __init__(self, server: "FakeMongoServer", url: str, options: dict[str, Any]) -> None:
        self._server = server
        self.url = url
        self.options = options
        self.closed = False
        self.topology_description = FakeTopologyDescription(url)

    def check_open(self) -> None:
        if self.closed:
            raise InvalidOperation("Cannot use MongoClient after close")

    def __getitem__(self, name: str) -> FakeDatabase:
        return FakeDatabase(self._server, self, name)

    @property
    def admin(self) -> FakeDatabase:
        return self["admin"]

    def close(self) -> None:
        self.closed = True


class FakeMongoServer:
    """Shared state plus a client factory compatible with Connector."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.clients: list[FakeMotorClient] = []
        self.calls: list[tuple[Any, ...]] = []
        self.commands: list[str] = []
        self.ping_delay: float = 0.0
        self.ping_error: Exception | None = None

    def client_factory(self, url: str, options: dict[str, Any]) -> FakeMotorClient:
        client = FakeMotorClient(self, url, options)
        self.clients.append(client)
        return client

    def new_client(self, url: str = "mongodb://localhost:27017") -> FakeMotorClient:
        """Build a client outside any connector, like a pre-built driver client."""
        return FakeMotorClient(self, url, {})

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]
