import logging
import uuid
from typing import Any, AsyncIterator

from azure.core import MatchConditions
from azure.cosmos.aio import ContainerProxy
from azure.cosmos.exceptions import CosmosBatchOperationError, CosmosResourceNotFoundError

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.clients.store.models.Batch import BatchOperation, BatchResponse, PatchOperation
from docstore.models.document import FeedOptions, PartitionKeyValue, QuerySpec, RequestOptions


def to_sdk_patch(operations: list[PatchOperation]) -> list[dict]:
    """JSON-patch steps as the SDK takes them. ``remove`` carries no value."""
    return [
        {"op": o.op, "path": o.path} if o.op == "remove" else {"op": o.op, "path": o.path, "value": o.value}
        for o in operations
    ]


class StoreContainerCosmos(ContainerInterface):
    """
    Container handle over an azure-cosmos ``ContainerProxy``.

    SDK exceptions pass through unchanged, except a missing document on a point
    read which becomes None.
    """

    def __init__(
        self,
        proxy: ContainerProxy,
        container_name: str,
        partition_key_path: str = "/id",
        logger: logging.Logger | None = None,
    ):
        self._proxy = proxy
        self._container_name = container_name
        self._partition_key_path = partition_key_path
        self.logging = logger or logging.getLogger(__name__)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_container_name(self) -> str:
        return self._container_name

    def get_partition_key_path(self) -> str:
        return self._partition_key_path

    ############ REQUEST OPTIONS ##############
    def _get_write_kwargs(self, options: RequestOptions | None) -> dict[str, Any]:
        kwargs = self._get_read_kwargs(options)
        if options is not None and options.if_match:
            kwargs["etag"] = options.if_match
            kwargs["match_condition"] = MatchConditions.IfNotModified
        return kwargs

    def _get_read_kwargs(self, options: RequestOptions | None) -> dict[str, Any]:
        if options is not None and options.session_token:
            return {"session_token": options.session_token}
        return {}

    def _get_feed_kwargs(self, feed_options: FeedOptions) -> dict[str, Any]:
        # no partition key makes the SDK fan out over every partition
        kwargs: dict[str, Any] = {}
        if feed_options.partition_key is not None:
            kwargs["partition_key"] = feed_options.partition_key
        if feed_options.max_item_count is not None:
            kwargs["max_item_count"] = feed_options.max_item_count
        return kwargs

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def create_item(
        self,
        body: dict,
        options: RequestOptions | None = None,
        disable_automatic_id_generation: bool = True,
    ) -> dict | None:
        if not body.get("id"):
            if disable_automatic_id_generation:
                raise ValueError(f"Cannot create a document without id in container '{self._container_name}'.")
            body = {**body, "id": str(uuid.uuid4())}
        return await self._proxy.create_item(body=body, **self._get_write_kwargs(options))

    async def upsert_item(self, body: dict, options: RequestOptions | None = None) -> dict | None:
        if not body.get("id"):
            raise ValueError(f"Cannot upsert a document without id in container '{self._container_name}'.")
        return await self._proxy.upsert_item(body=body, **self._get_write_kwargs(options))

    async def read_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        options: RequestOptions | None = None,
    ) -> dict | None:
        try:
            return await self._proxy.read_item(
                item=document_id, partition_key=partition_key, **self._get_read_kwargs(options)
            )
        except CosmosResourceNotFoundError:
            return None

    async def patch_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        operations: list[PatchOperation],
        condition: str | None = None,
        options: RequestOptions | None = None,
    ) -> dict | None:
        kwargs = self._get_write_kwargs(options)
        if condition:
            kwargs["filter_predicate"] = condition
        return await self._proxy.patch_item(
            item=document_id, partition_key=partition_key, patch_operations=to_sdk_patch(operations), **kwargs
        )

    ##########################################
    ################# FEEDS ##################
    ##########################################

    def query_items(self, query: QuerySpec, feed_options: FeedOptions | None = None) -> AsyncIterator[list[dict]]:
        feed_options = feed_options or FeedOptions()
        items = self._proxy.query_items(
            query=query.query,
            parameters=[p.model_dump(mode="json") for p in query.parameters],
            **self._get_feed_kwargs(feed_options),
        )
        return self._pages(items, feed_options.continuation)

    def read_all_items(self, feed_options: FeedOptions | None = None) -> AsyncIterator[list[dict]]:
        feed_options = feed_options or FeedOptions()
        if feed_options.partition_key is not None:
            # the feed of a single partition is only reachable as a query
            return self.query_items(QuerySpec(query="SELECT * FROM c"), feed_options)
        items = self._proxy.read_all_items(**self._get_feed_kwargs(feed_options))
        return self._pages(items, feed_options.continuation)

    async def _pages(self, items: Any, continuation: str | None) -> AsyncIterator[list[dict]]:
        """Yields the SDK pages as lists. Nothing is fetched before the first pull."""
        async for page in items.by_page(continuation):
            yield [item async for item in page]

    ##########################################
    ################# BATCH ##################
    ##########################################

    async def batch(self, operations: list[BatchOperation], partition_key: PartitionKeyValue) -> BatchResponse:
        sdk_operations = [(o.operation_type, (o.id, to_sdk_patch(o.patch_operations))) for o in operations]
        try:
            results = await self._proxy.execute_item_batch(batch_operations=sdk_operations, partition_key=partition_key)
        except CosmosBatchOperationError as e:
            self.logging.debug(
                "Batch on partition %r of %s failed at operation %s with %s",
                partition_key, self._container_name, e.error_index, e.status_code,
            )
            return BatchResponse(code=e.status_code, result=[dict(r) for r in e.operation_responses or []])
        return BatchResponse(code=200, result=[dict(r) for r in results])
