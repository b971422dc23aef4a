from typing import AsyncIterator, Generic

from pydantic import TypeAdapter

from docstore.clients.store.models.Batch import MAX_BATCH_OPERATIONS, BatchOperation, PatchOperation
from docstore.documents.VersionedDocumentModel import TN, TR, VersionedDocumentModel
from docstore.helper.async_iterators import flatten_async_iterator, to_array_result
from docstore.models.document import (
    DocumentSearchKey,
    FeedOptions,
    QueryParameter,
    QuerySpec,
    RequestOptions,
    Ttl,
)
from docstore.models.errors import ErrorResponse
from docstore.models.result import Err, Ok, Result, Valid, Validation, invalid_items, valid_values

_ttl_adapter = TypeAdapter(Ttl)


class VersionedTTLDocumentModel(Generic[TN, TR]):
    """
    Adds listing and expiring whole version chains to a versioned model.

    Every version of one entity shares a partition, so a ttl change is applied with
    atomic batches of at most 100 patches. Batches run one after the other and a
    failing batch cannot roll back the batches before it: any partial outcome is
    returned as ``ErrorResponse``, never as a success count.
    """

    def __init__(self, versioned_model: VersionedDocumentModel[TN, TR]):
        self.versioned_model = versioned_model
        self.document_model = versioned_model.document_model
        self.logging = versioned_model.logging

    ##########################################
    ################# READ ###################
    ##########################################

    async def find_all_versions_by_search_key(self, search_key: DocumentSearchKey) -> Result[list[Validation[TR]]]:
        """
        Reads every version of an entity, sorted by ascending version.

        Versions that fail validation are kept as ``Invalid`` and sorted first.

        Raises:
            ValueError: If the search key is malformed.
        """
        model_id, partition_key = self.versioned_model.resolve_search_key(search_key)
        query = QuerySpec(
            query=f"SELECT * FROM m WHERE m.{self.versioned_model.model_id_key} = @modelId",
            parameters=[QueryParameter(name="@modelId", value=model_id)],
        )
        iterator = self.document_model.get_query_iterator(query, FeedOptions(partition_key=partition_key))
        result = await to_array_result(flatten_async_iterator(iterator))
        if isinstance(result, Err):
            return result
        return Ok(sorted(result.value, key=lambda v: v.value.version if isinstance(v, Valid) else -1))

    ##########################################
    ################# WRITE ##################
    ##########################################

    async def update_ttl_for_all_versions(self, search_key: DocumentSearchKey, ttl: int) -> Result[int]:
        """
        Sets ``ttl`` on every valid version of an entity.

        Args:
            search_key (DocumentSearchKey): (logical id,) or (logical id, partition key).
            ttl (int): Seconds until expiry, or -1 to never expire.

        Returns:
            Result[int]: The number of updated versions. ``ErrorResponse`` if any batch failed
                or fewer versions than found were updated.

        Raises:
            ValueError: If the search key or the ttl is invalid.
        """
        model_id, partition_key = self.versioned_model.resolve_search_key(search_key)
        ttl = _ttl_adapter.validate_python(ttl, strict=True)

        versions = await self.find_all_versions_by_search_key(search_key)
        if isinstance(versions, Err):
            return versions
        documents = valid_values(versions.value)
        skipped = invalid_items(versions.value)
        if skipped:
            self.logging.warning("Skipping %d invalid versions of %s", len(skipped), model_id)
        if not documents:
            return Ok(0)
        if partition_key is None:
            partition_key = self.versioned_model.get_partition_key(documents[0])

        operations = [
            BatchOperation.patch(document.id, [PatchOperation(op="add", path="/ttl", value=ttl)])
            for document in documents
        ]
        updated = 0
        for start in range(0, len(operations), MAX_BATCH_OPERATIONS):
            chunk = operations[start:start + MAX_BATCH_OPERATIONS]
            end = start + len(chunk)
            result = await self.document_model.batch(chunk, partition_key)
            if isinstance(result, Err):
                return result
            batch = result.value
            if batch.code != 200 or any(r.status_code != 200 for r in batch.result):
                self.logging.error(
                    "Error updating ttl for %s - chunk from %d to %d returned %d", model_id, start, end, batch.code
                )
                return Err(ErrorResponse(
                    code=batch.code,
                    name="BatchError",
                    message=f"Error updating ttl for {model_id} - chunk from {start} to {end}",
                ))
            updated += len(batch.result)

        if updated != len(documents):
            self.logging.error("Updated ttl of %d out of %d versions of %s", updated, len(documents), model_id)
            return Err(ErrorResponse(
                name="BatchError",
                message=f"Error updating ttl for {model_id} - updated {updated} of {len(documents)} versions",
            ))
        self.logging.debug("Updated ttl of %d versions of %s to %d", updated, model_id, ttl)
        return Ok(updated)

    ##########################################
    ############### DELEGATES ################
    ##########################################

    async def create(self, document: TN) -> Result[TR]:
        return await self.versioned_model.create(document)

    async def upsert(self, document: TN) -> Result[TR]:
        return await self.versioned_model.upsert(document)

    async def update(self, retrieved: TR) -> Result[TR]:
        return await self.versioned_model.update(retrieved)

    async def find_last_version_by_model_id(self, search_key: DocumentSearchKey) -> Result[TR | None]:
        return await self.versioned_model.find_last_version_by_model_id(search_key)

    async def find(self, search_key: DocumentSearchKey, options: RequestOptions | None = None) -> Result[TR | None]:
        return await self.versioned_model.find(search_key, options)

    def get_query_iterator(
        self,
        query: QuerySpec | str,
        feed_options: FeedOptions | None = None,
    ) -> AsyncIterator[list[Validation[TR]]]:
        return self.versioned_model.get_query_iterator(query, feed_options)

    def get_search_key(self, document) -> DocumentSearchKey:
        return self.versioned_model.get_search_key(document)
