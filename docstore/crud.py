"""Generic create/read/update/delete facade over one collection.

Which store call a facade method issues depends on the shape of its target:

- ``ByIdentifier`` (or a str, an ObjectId, or a mapping carrying ``_id``)
  addresses exactly one document;
- ``ByQuery`` (or any other mapping) addresses every matching document;
- ``FullDocument`` is a whole document to be replaced, keyed by its ``_id``.

Raw arguments are mapped to these variants by ``as_target``; callers that
want to avoid shape probing (e.g. a query that filters on ``_id`` with an
operator) construct the variant themselves.
"""

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Literal

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, ConfigDict, Field

from docstore.connection import Connector
from docstore.errors import ConfigurationError, InvalidTargetError
from docstore.observability.logging import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]
Query = Mapping[str, Any]


def coerce_identifier(value: Any) -> Any:
    """Turn the textual form of an ObjectId back into an ObjectId.

    Other values, including strings that are not ObjectIds, are returned
    unchanged so collections keyed by custom ``_id`` values keep working.
    """
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


@dataclass(frozen=True)
class ByIdentifier:
    """Addresses the single document whose ``_id`` equals identifier."""

    identifier: Any

    def filter(self) -> Document:
        return {"_id": coerce_identifier(self.identifier)}


@dataclass(frozen=True)
class ByQuery:
    """Addresses every document matching query."""

    query: Query = field(default_factory=dict)


@dataclass(frozen=True)
class FullDocument:
    """A complete document, replaced as a whole and keyed by its ``_id``."""

    document: Mapping[str, Any]

    def filter(self) -> Document:
        if "_id" not in self.document:
            raise InvalidTargetError("A full-document replace needs a document carrying _id")
        return {"_id": coerce_identifier(self.document["_id"])}


Target = ByIdentifier | ByQuery | FullDocument


def as_target(value: Any) -> Target:
    """Map a raw argument to a target by its shape.

    Raises:
        InvalidTargetError: If value is neither an identifier nor a mapping
    """
    if isinstance(value, ByIdentifier | ByQuery | FullDocument):
        return value
    if isinstance(value, str | ObjectId):
        return ByIdentifier(value)
    if isinstance(value, Mapping):
        if "_id" in value:
            return ByIdentifier(value["_id"])
        return ByQuery(value)
    raise InvalidTargetError(
        f"Cannot use {type(value).__name__} as a target, "
        "expected an identifier or a mapping"
    )


class ReadOptions(BaseModel):
    """Paging and ordering for query reads."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    skip: int = Field(default=0, ge=0, description="Matches to skip")
    limit: int = Field(default=100, gt=0, description="Maximum documents returned")
    sort: dict[str, Literal[1, -1]] | None = Field(
        default=None,
        description="Ordered field -> direction (1 ascending, -1 descending)",
    )

    def sort_spec(self) -> list[tuple[str, int]] | None:
        if not self.sort:
            return None
        return list(self.sort.items())


def _require_name(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{field_name} name is missing or blank")
    return value.strip()


def _write_body(fragment: Any) -> Document:
    # identifiers are immutable, never part of a write
    if not isinstance(fragment, Mapping):
        raise InvalidTargetError(
            f"Cannot write {type(fragment).__name__}, expected a mapping"
        )
    return {key: value for key, value in fragment.items() if key != "_id"}


def _read_options(
    options: ReadOptions | Mapping[str, Any] | None,
    option_kwargs: Mapping[str, Any],
) -> ReadOptions:
    if isinstance(options, ReadOptions):
        if option_kwargs:
            # keyword values go through the same validation as the model
            return ReadOptions.model_validate({**options.model_dump(), **option_kwargs})
        return options
    return ReadOptions(**{**dict(options or {}), **option_kwargs})


class CRUD:
    """Create/read/update/delete operations bound to one collection.

    Database and collection names are validated once, here. Every operation
    resolves the live connection through the connector and takes a fresh
    collection handle, so reconnects are picked up transparently.

    Store errors are not caught: each operation either returns its
    contracted result or raises the driver's exception.
    """

    def __init__(
        self,
        *,
        collection: str,
        database: str,
        connector: Connector | None = None,
    ) -> None:
        """Bind the facade to a (database, collection) pair.

        Raises:
            ConfigurationError: If database or collection is blank or not a string
        """
        self._database = _require_name("database", database)
        self._collection = _require_name("collection", collection)
        self._connector = connector if connector is not None else Connector()

    @property
    def database(self) -> str:
        return self._database

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def connector(self) -> Connector:
        return self._connector

    async def _handle(self) -> AsyncIOMotorCollection:
        connection = await self._connector()
        return connection.collection(self._database, self._collection)

    async def create(self, document: MutableMapping[str, Any]) -> Any:
        """Insert document and return its new identifier.

        The identifier is also written into ``document["_id"]``; callers
        that need their input untouched should pass a copy.
        """
        collection = await self._handle()
        result = await collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.debug(
            "document_created",
            database=self._database,
            collection=self._collection,
            document_id=str(result.inserted_id),
        )
        return result.inserted_id

    async def read(
        self,
        target: Any = None,
        options: ReadOptions | Mapping[str, Any] | None = None,
        **option_kwargs: Any,
    ) -> Document | None | list[Document]:
        """Read one document by identifier, or a page of query matches.

        Args:
            target: Identifier-like value, query, or target variant.
                Defaults to the empty query.
            options: skip/limit/sort for query reads, ignored for
                identifier lookups
            **option_kwargs: Same as options, taking precedence

        Returns:
            The document or None for identifier lookups, otherwise the
            list of matching documents
        """
        resolved = as_target({} if target is None else target)

        if isinstance(resolved, ByQuery):
            read_options = _read_options(options, option_kwargs)
            collection = await self._handle()
            cursor = collection.find(
                dict(resolved.query),
                skip=read_options.skip,
                limit=read_options.limit,
                sort=read_options.sort_spec(),
            )
            documents = await cursor.to_list(length=None)
            logger.debug(
                "documents_read",
                database=self._database,
                collection=self._collection,
                count=len(documents),
            )
            return documents

        collection = await self._handle()
        return await collection.find_one(resolved.filter())

    async def update(self, target: Any, fragment: Mapping[str, Any] | None = None) -> int:
        """Update documents and return how many were actually modified.

        Dispatch, in order:
        1. No fragment, the fragment is the target itself, or a
           ``FullDocument`` target: replace the whole document keyed by
           its ``_id``.
        2. Identifier-like target: merge fragment into that document.
        3. Query target: merge fragment into every match.

        ``_id`` is left out of every write body. A fragment with nothing
        left to write modifies nothing and issues no store call.

        Raises:
            InvalidTargetError: On a replace without ``_id`` or a
                non-mapping fragment
        """
        if isinstance(target, FullDocument):
            if fragment is not None:
                raise InvalidTargetError("A full-document replace takes no separate fragment")
            return await self._replace(target)
        if fragment is None or fragment is target:
            if not isinstance(target, Mapping):
                raise InvalidTargetError("A full-document replace needs a document carrying _id")
            return await self._replace(FullDocument(target))

        resolved = as_target(target)
        body = _write_body(fragment)
        if not body:
            logger.debug(
                "update_skipped_empty_fragment",
                database=self._database,
                collection=self._collection,
            )
            return 0

        collection = await self._handle()
        if isinstance(resolved, ByQuery):
            result = await collection.update_many(dict(resolved.query), {"$set": body})
        else:
            result = await collection.update_one(resolved.filter(), {"$set": body})

        logger.debug(
            "documents_updated",
            database=self._database,
            collection=self._collection,
            matched=result.matched_count,
            modified=result.modified_count,
        )
        return result.modified_count

    async def _replace(self, target: FullDocument) -> int:
        key = target.filter()
        body = _write_body(target.document)
        collection = await self._handle()
        result = await collection.replace_one(key, body)
        logger.debug(
            "document_replaced",
            database=self._database,
            collection=self._collection,
            modified=result.modified_count,
        )
        return result.modified_count

    async def delete(self, target: Any) -> int:
        """Delete one document by identifier or every query match.

        Returns:
            Number of documents removed
        """
        resolved = as_target(target)
        collection = await self._handle()

        if isinstance(resolved, ByQuery):
            result = await collection.delete_many(dict(resolved.query))
        else:
            result = await collection.delete_one(resolved.filter())

        logger.debug(
            "documents_deleted",
            database=self._database,
            collection=self._collection,
            count=result.deleted_count,
        )
        return result.deleted_count

    def __repr__(self) -> str:
        return f"<CRUD {self._database}.{self._collection}>"


def create_crud(
    *,
    collection: str,
    database: str,
    connector: Connector | None = None,
) -> CRUD:
    """Build a CRUD facade, with a default connector when none is given."""
    return CRUD(collection=collection, database=database, connector=connector)
