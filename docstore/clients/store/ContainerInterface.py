from abc import ABC, abstractmethod
from typing import AsyncIterator

from docstore.clients.store.models.Batch import BatchOperation, BatchResponse, PatchOperation
from docstore.models.document import FeedOptions, PartitionKeyValue, QuerySpec, RequestOptions


class ContainerInterface(ABC):
    """
    Handle on one container of the document store.

    Document models receive an instance explicitly and never look one up themselves.
    Every method raises the store SDK failures (``AzureError`` subclasses);
    converting them is up to the models.
    """

    @abstractmethod
    def get_container_name(self) -> str:
        pass

    @abstractmethod
    def get_partition_key_path(self) -> str:
        """Returns the JSON path of the partition key field, e.g. "/messageId"."""
        pass

    @abstractmethod
    async def create_item(
        self,
        body: dict,
        options: RequestOptions | None = None,
        disable_automatic_id_generation: bool = True,
    ) -> dict | None:
        """
        Inserts a new document.

        Returns:
            dict | None: The stored document, None when the store returned no body.

        Raises:
            ValueError: If the body has no id and automatic id generation is disabled.
            CosmosResourceExistsError: When the id already exists.
        """
        pass

    @abstractmethod
    async def upsert_item(self, body: dict, options: RequestOptions | None = None) -> dict | None:
        pass

    @abstractmethod
    async def read_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        options: RequestOptions | None = None,
    ) -> dict | None:
        """
        Point read. Returns None when the document does not exist.
        """
        pass

    @abstractmethod
    async def patch_item(
        self,
        document_id: str,
        partition_key: PartitionKeyValue,
        operations: list[PatchOperation],
        condition: str | None = None,
        options: RequestOptions | None = None,
    ) -> dict | None:
        pass

    @abstractmethod
    def query_items(self, query: QuerySpec, feed_options: FeedOptions | None = None) -> AsyncIterator[list[dict]]:
        """
        Returns an async iterator over the result pages of a query. Pages are fetched lazily.
        """
        pass

    @abstractmethod
    def read_all_items(self, feed_options: FeedOptions | None = None) -> AsyncIterator[list[dict]]:
        pass

    @abstractmethod
    async def batch(self, operations: list[BatchOperation], partition_key: PartitionKeyValue) -> BatchResponse:
        """
        Executes the operations as one atomic batch on a single partition.
        """
        pass
