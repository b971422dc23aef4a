from typing import Any, AsyncIterator, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.clients.store.models.Batch import BatchOperation, BatchResult, PatchOperation
from docstore.helper.HelperConfig import HelperConfig
from docstore.helper.async_iterators import flatten_async_iterator, map_async_iterator, to_array_result
from docstore.models.document import (
    DocumentSearchKey,
    FeedOptions,
    PartitionKeyValue,
    QuerySpec,
    RequestOptions,
    split_search_key,
)
from docstore.models.errors import STORE_FAILURES, DecodingError, EmptyResponse, to_error_response
from docstore.models.result import Err, Invalid, Ok, Result, Valid, Validation

TN = TypeVar("TN", bound=BaseModel)
TR = TypeVar("TR", bound=BaseModel)


class DocumentModel(Generic[TN, TR]):
    """
    Typed access to the documents of one container.

    New documents are encoded from ``new_item_model`` instances, every document returned
    by the store is decoded into ``retrieved_item_model``. No operation raises for store
    failures: they come back as ``Err`` with one of the store error kinds.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        container: ContainerInterface,
        new_item_model: type[TN],
        retrieved_item_model: type[TR],
    ):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.container = container
        self.new_item_model = new_item_model
        self.retrieved_item_model = retrieved_item_model

    ##########################################
    ################ CODECS ##################
    ##########################################

    def encode(self, document: BaseModel | dict) -> dict:
        """Returns the JSON shape of a document as stored, using the field aliases."""
        if isinstance(document, dict):
            return document
        return document.model_dump(mode="json", by_alias=True, exclude_none=True)

    def validate_item(self, raw: Any) -> Validation[TR]:
        """Decodes one raw document. Never raises, a schema mismatch becomes ``Invalid``."""
        try:
            return Valid(self.retrieved_item_model.model_validate(raw))
        except ValidationError as e:
            return Invalid(errors=e.errors(include_url=False, include_context=False), raw=raw)

    def _decode(self, raw: dict | None) -> Result[TR]:
        if raw is None:
            return Err(EmptyResponse())
        validation = self.validate_item(raw)
        if isinstance(validation, Invalid):
            self.logging.warning(
                "Document '%s' of %s does not match %s",
                raw.get("id") if isinstance(raw, dict) else None,
                self.container.get_container_name(),
                self.retrieved_item_model.__name__,
            )
            return Err(DecodingError(errors=validation.errors))
        return Ok(validation.value)

    def _failure(self, operation: str, error: Exception) -> Err:
        response = to_error_response(error)
        self.logging.warning(
            "%s on %s failed: %s (code %s)",
            operation,
            self.container.get_container_name(),
            response.message,
            response.code,
        )
        return Err(response)

    ##########################################
    ################# WRITE ##################
    ##########################################

    async def create(self, document: TN, options: RequestOptions | None = None) -> Result[TR]:
        """
        Inserts a new document. The id must be part of the document, the store never generates one.

        Returns:
            Result[TR]: The stored document, ``ErrorResponse`` with code 409 if the id already exists.
        """
        try:
            raw = await self.container.create_item(
                self.encode(document), options=options, disable_automatic_id_generation=True
            )
        except STORE_FAILURES as e:
            return self._failure("Create", e)
        self.logging.debug("Created document in %s", self.container.get_container_name())
        return self._decode(raw)

    async def upsert(self, document: TN, options: RequestOptions | None = None) -> Result[TR]:
        """Inserts the document or replaces the stored one with the same id."""
        try:
            raw = await self.container.upsert_item(self.encode(document), options=options)
        except STORE_FAILURES as e:
            return self._failure("Upsert", e)
        self.logging.debug("Upserted document in %s", self.container.get_container_name())
        return self._decode(raw)

    async def patch(
        self,
        search_key: DocumentSearchKey,
        partial: BaseModel | dict,
        condition: str | None = None,
        options: RequestOptions | None = None,
    ) -> Result[TR]:
        """
        Sets the given fields on a stored document, leaving the other fields untouched.

        Args:
            search_key (DocumentSearchKey): (id,) or (id, partition key) of the document.
            partial (BaseModel | dict): The fields to set. For models only the explicitly set fields are sent.
            condition (str | None): Store side filter, e.g. "FROM m WHERE m.version = 3".

        Returns:
            Result[TR]: The patched document, ``ErrorResponse`` with code 404 when it does not exist.

        Raises:
            ValueError: If the search key is malformed.
        """
        document_id, partition_key = split_search_key(search_key)
        if isinstance(partial, BaseModel):
            partial = partial.model_dump(mode="json", by_alias=True, exclude_unset=True)
        operations = [PatchOperation(op="add", path=f"/{key}", value=value) for key, value in partial.items()]
        try:
            raw = await self.container.patch_item(
                document_id, partition_key, operations, condition=condition, options=options
            )
        except STORE_FAILURES as e:
            return self._failure("Patch", e)
        return self._decode(raw)

    async def batch(self, operations: list[BatchOperation], partition_key: PartitionKeyValue) -> Result[BatchResult]:
        """
        Runs the operations as one atomic batch on a single partition.

        A batch the store rejected is still ``Ok``: check ``code`` and the per-operation
        ``status_code`` of the result. Only transport failures and malformed responses are ``Err``.
        """
        try:
            response = await self.container.batch(operations, partition_key)
        except STORE_FAILURES as e:
            return self._failure("Batch", e)
        try:
            return Ok(BatchResult.model_validate(response.model_dump()))
        except ValidationError as e:
            return Err(DecodingError(errors=e.errors(include_url=False, include_context=False)))

    ##########################################
    ################# READ ###################
    ##########################################

    async def find(self, search_key: DocumentSearchKey, options: RequestOptions | None = None) -> Result[TR | None]:
        """
        Point read by (id,) or (id, partition key).

        Returns:
            Result[TR | None]: ``Ok(None)`` when the document does not exist.

        Raises:
            ValueError: If the search key is malformed.
        """
        document_id, partition_key = split_search_key(search_key)
        try:
            raw = await self.container.read_item(document_id, partition_key, options=options)
        except STORE_FAILURES as e:
            return self._failure("Find", e)
        if raw is None:
            return Ok(None)
        return self._decode(raw)

    def get_collection_iterator(self, feed_options: FeedOptions | None = None) -> AsyncIterator[list[Validation[TR]]]:
        """Iterates over the pages of the whole container, each item decoded on its own."""
        return map_async_iterator(self.container.read_all_items(feed_options), self._validate_page)

    def get_query_iterator(
        self,
        query: QuerySpec | str,
        feed_options: FeedOptions | None = None,
    ) -> AsyncIterator[list[Validation[TR]]]:
        """Iterates over the result pages of a query, each item decoded on its own."""
        if isinstance(query, str):
            query = QuerySpec(query=query)
        return map_async_iterator(self.container.query_items(query, feed_options), self._validate_page)

    def _validate_page(self, page: list[dict]) -> list[Validation[TR]]:
        return [self.validate_item(raw) for raw in page]

    async def get_collection(self, feed_options: FeedOptions | None = None) -> Result[list[Validation[TR]]]:
        """
        Reads the whole container in memory. Only use it on bounded collections.
        """
        return await to_array_result(flatten_async_iterator(self.get_collection_iterator(feed_options)))

    async def find_one_by_query(
        self,
        query: QuerySpec | str,
        feed_options: FeedOptions | None = None,
    ) -> Result[TR | None]:
        """
        Returns the first item of the first non empty result page, ``Ok(None)`` without results.
        """
        try:
            async for page in self.get_query_iterator(query, feed_options):
                if not page:
                    continue
                first = page[0]
                if isinstance(first, Invalid):
                    return Err(DecodingError(errors=first.errors))
                return Ok(first.value)
        except STORE_FAILURES as e:
            return self._failure("Query", e)
        return Ok(None)
