"""
Docstore test suite: shared fixtures and an in-memory document container.

Run:  pytest tests/ -v
"""

import asyncio
import logging
import re
import time
import uuid
from typing import Any

import pytest
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.clients.store.models.Batch import BatchOperation, BatchResponse, PatchOperation
from docstore.helper.HelperConfig import HelperConfig
from docstore.models.document import FeedOptions, PartitionKeyValue, QuerySpec, RequestOptions

_CONDITION = re.compile(r"m\.(\w+)\s*(=|<|>)\s*(@\w+)")
_ORDER = re.compile(r"m\.(\w+)\s+(ASC|DESC)", re.IGNORECASE)
_TOP = re.compile(r"SELECT\s+TOP\s+(\d+)", re.IGNORECASE)


class InMemoryContainer(ContainerInterface):
    """
    A container keeping documents in a dict, keyed by (partition key, id).

    Understands the query subset used by the models: ``TOP n``, conjunctions of
    ``m.field = / < / > @param`` and ``ORDER BY m.field ASC|DESC`` lists.
    Every call yields to the event loop once before touching the data, so
    concurrent callers interleave like they would against a remote store.
    """

    def __init__(self, name: str = "test", partition_key_path: str = "/id"):
        self.name = name
        self.partition_key_path = partition_key_path
        self.documents: dict[tuple[Any, str], dict] = {}
        # exceptions raised by the next calls of an operation, e.g. {"query": [CosmosHttpResponseError(...)]}
        self.failures: dict[str, list[Exception]] = {}
        # status codes forced on the next batch calls, None lets a batch run normally
        self.batch_statuses: list[int | None] = []
        self.calls: list[str] = []

    ################ HELPERS ##################
    def get_container_name(self) -> str:
        return self.name

    def get_partition_key_path(self) -> str:
        return self.partition_key_path

    def partition_key_of(self, body: dict) -> Any:
        return body.get(self.partition_key_path.strip("/"))

    def fail_next(self, operation: str, error: Exception) -> None:
        self.failures.setdefault(operation, []).append(error)

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        await asyncio.sleep(0)
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _store(self, body: dict) -> dict:
        stored = {
            **body,
            "_etag": f'"{uuid.uuid4()}"',
            "_rid": uuid.uuid4().hex[:12],
            "_self": f"dbs/test/colls/{self.name}/docs/{body['id']}",
            "_ts": int(time.time()),
        }
        self.documents[(self.partition_key_of(body), body["id"])] = stored
        return dict(stored)

    def insert_raw(self, body: dict) -> dict:
        """Stores a document as is, bypassing any model validation."""
        return self._store(body)

    ################ DOCUMENTS ##################
    async def create_item(
        self,
        body: dict,
        options: RequestOptions | None = None,
        disable_automatic_id_generation: bool = True,
    ) -> dict | None:
        await self._enter("create")
        if not body.get("id"):
            if disable_automatic_id_generation:
                raise ValueError("missing id")
            body = {**body, "id": str(uuid.uuid4())}
        if (self.partition_key_of(body), body["id"]) in self.documents:
            raise CosmosResourceExistsError(status_code=409, message="Entity with the specified id already exists")
        return self._store(body)

    async def upsert_item(self, body: dict, options: RequestOptions | None = None) -> dict | None:
        await self._enter("upsert")
        return self._store(body)

    async def read_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        options: RequestOptions | None = None,
    ) -> dict | None:
        await self._enter("read")
        stored = self.documents.get((partition_key, document_id))
        return dict(stored) if stored is not None else None

    async def patch_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        operations: list[PatchOperation],
        condition: str | None = None,
        options: RequestOptions | None = None,
    ) -> dict | None:
        await self._enter("patch")
        stored = self.documents.get((partition_key, document_id))
        if stored is None:
            raise CosmosResourceNotFoundError(status_code=404, message="Resource Not Found")
        patched = {k: v for k, v in stored.items() if not k.startswith("_")}
        self._apply(patched, operations)
        return self._store(patched)

    def _apply(self, document: dict, operations: list[PatchOperation]) -> None:
        for operation in operations:
            key = operation.path.lstrip("/")
            if operation.op == "remove":
                document.pop(key, None)
            elif operation.op == "incr":
                document[key] = document.get(key, 0) + operation.value
            else:
                document[key] = operation.value

    def query_items(self, query: QuerySpec, feed_options: FeedOptions | None = None):
        return self._pages("query", lambda: self._run_query(query, feed_options or FeedOptions()), feed_options)

    def read_all_items(self, feed_options: FeedOptions | None = None):
        feed_options = feed_options or FeedOptions()
        return self._pages("feed", lambda: self._in_partition(feed_options.partition_key), feed_options)

    async def _pages(self, operation: str, select, feed_options: FeedOptions | None):
        page_size = (feed_options.max_item_count if feed_options else None) or 100
        await self._enter(operation)
        rows = select()
        if not rows:
            yield []
            return
        for start in range(0, len(rows), page_size):
            if start:
                await self._enter(operation)
            yield [dict(r) for r in rows[start:start + page_size]]

    def _in_partition(self, partition_key: Any) -> list[dict]:
        return [d for (pk, _), d in self.documents.items() if partition_key is None or pk == partition_key]

    def _run_query(self, query: QuerySpec, feed_options: FeedOptions) -> list[dict]:
        parameters = {p.name: p.value for p in query.parameters}
        text = query.query
        where = re.split(r"\bORDER BY\b", text, flags=re.IGNORECASE)[0]
        where = where.split("WHERE", 1)[1] if "WHERE" in where else ""
        rows = self._in_partition(feed_options.partition_key)
        for field, operator, name in _CONDITION.findall(where):
            value = parameters[name]
            if operator == "=":
                rows = [r for r in rows if r.get(field) == value]
            elif operator == "<":
                rows = [r for r in rows if field in r and r[field] < value]
            else:
                rows = [r for r in rows if field in r and r[field] > value]
        if "ORDER BY" in text.upper():
            order = text[text.upper().index("ORDER BY"):]
            for field, direction in reversed(_ORDER.findall(order)):
                rows = sorted(rows, key=lambda r: r.get(field), reverse=direction.upper() == "DESC")
        top = _TOP.search(text)
        if top:
            rows = rows[:int(top.group(1))]
        return rows

    async def batch(self, operations: list[BatchOperation], partition_key: PartitionKeyValue) -> BatchResponse:
        await self._enter("batch")
        forced = self.batch_statuses.pop(0) if self.batch_statuses else None
        if forced is not None and forced != 200:
            return BatchResponse(code=forced, result=[{"statusCode": 424} for _ in operations])
        missing = [o for o in operations if (partition_key, o.id) not in self.documents]
        if missing:
            return BatchResponse(
                code=404,
                result=[{"statusCode": 404 if o in missing else 424} for o in operations],
            )
        for operation in operations:
            stored = self.documents[(partition_key, operation.id)]
            patched = {k: v for k, v in stored.items() if not k.startswith("_")}
            self._apply(patched, operation.patch_operations)
            self._store(patched)
        return BatchResponse(code=200, result=[{"statusCode": 200} for _ in operations])


@pytest.fixture
def helper_config():
    return HelperConfig(logger=logging.getLogger("docstore.tests"))


@pytest.fixture
def container():
    return InMemoryContainer(name="documents", partition_key_path="/id")


@pytest.fixture
def status_container():
    return InMemoryContainer(name="message-status", partition_key_path="/messageId")
