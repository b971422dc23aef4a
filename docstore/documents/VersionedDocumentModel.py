from typing import AsyncIterator, Generic, TypeVar

from pydantic import BaseModel, create_model

from docstore.clients.store.ContainerInterface import ContainerInterface
from docstore.documents.DocumentModel import DocumentModel
from docstore.helper.HelperConfig import HelperConfig
from docstore.models.document import (
    MAX_VERSION,
    SYSTEM_FIELDS,
    VERSION_PADDING_LENGTH,
    DocumentSearchKey,
    FeedOptions,
    PartitionKeyValue,
    QueryParameter,
    QuerySpec,
    RequestOptions,
    RetrievedVersionedModel,
    VersionedModel,
)
from docstore.models.result import Err, Ok, Result, Validation

TN = TypeVar("TN", bound=BaseModel)
TR = TypeVar("TR", bound=RetrievedVersionedModel)


def generate_versioned_model_id(model_id: str, version: int) -> str:
    """
    Returns the document id of one version of a logical entity, e.g. "A-0000000000000002".

    The version is zero padded so that ids of one entity sort by version.

    Raises:
        ValueError: If the version is negative or greater than MAX_VERSION.
    """
    if version < 0 or version > MAX_VERSION:
        raise ValueError(f"Version must be between 0 and {MAX_VERSION}, got {version}")
    return f"{model_id}-{version:0{VERSION_PADDING_LENGTH}d}"


def inc_version(version: int) -> int:
    if version >= MAX_VERSION:
        raise ValueError(f"Version {version} cannot be incremented any further")
    return version + 1


class VersionedDocumentModel(Generic[TN, TR]):
    """
    Stores every change of a logical entity as a new immutable document.

    The logical id lives in the ``model_id_key`` field of the documents, each version
    document gets the id ``<logical id>-<padded version>``. Creating a version is a store
    level create, so two writers deriving the same next version make one of them fail
    with a conflict (409). Callers needing linearizable updates have to serialize
    themselves or use :meth:`update`.

    Args:
        helper_config (HelperConfig): Configuration and logger.
        container (ContainerInterface): The container holding the version documents.
        new_item_model (type[TN]): Payload of a new version, without id and version.
        retrieved_item_model (type[TR]): Shape of a stored version document.
        model_id_key (str): JSON name of the logical id field, e.g. "messageId".
        partition_key_field (str | None): JSON name of the partition key field when it
            differs from the logical id field.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        container: ContainerInterface,
        new_item_model: type[TN],
        retrieved_item_model: type[TR],
        model_id_key: str,
        partition_key_field: str | None = None,
    ):
        self.logging = helper_config.get_logger()
        self.model_id_key = model_id_key
        self.partition_key_field = partition_key_field
        self.new_item_model = new_item_model
        self.versioned_item_model = create_model(
            f"{new_item_model.__name__}Versioned",
            __base__=(new_item_model, VersionedModel),
        )
        self.document_model: DocumentModel[BaseModel, TR] = DocumentModel(
            helper_config=helper_config,
            container=container,
            new_item_model=self.versioned_item_model,
            retrieved_item_model=retrieved_item_model,
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_model_id(self, document: BaseModel | dict) -> str:
        """Returns the logical id of a new or stored document."""
        model_id = self.document_model.encode(document).get(self.model_id_key)
        if not isinstance(model_id, str) or not model_id:
            raise ValueError(f"Document has no valid '{self.model_id_key}' field")
        return model_id

    def get_partition_key(self, document: BaseModel | dict) -> PartitionKeyValue:
        if self.partition_key_field is None:
            return self.get_model_id(document)
        return self.document_model.encode(document)[self.partition_key_field]

    def get_search_key(self, document: BaseModel | dict) -> DocumentSearchKey:
        """Returns the (logical id, partition key) pair of a document."""
        return (self.get_model_id(document), self.get_partition_key(document))

    def resolve_search_key(self, search_key: DocumentSearchKey) -> tuple[str, PartitionKeyValue | None]:
        """
        Returns (logical id, partition key) of a search key.

        Without an explicit partition key the logical id is used when it is the partition key
        field, otherwise None, which makes queries cross-partition.

        Raises:
            ValueError: If the search key is malformed.
        """
        if not isinstance(search_key, (tuple, list)) or len(search_key) not in (1, 2):
            raise ValueError(f"A search key must be (id,) or (id, partition_key), got {search_key!r}")
        model_id = search_key[0]
        if not isinstance(model_id, str) or not model_id:
            raise ValueError(f"The id of a search key must be a non empty string, got {model_id!r}")
        if len(search_key) == 2 and search_key[1] is not None:
            return model_id, search_key[1]
        return model_id, model_id if self.partition_key_field is None else None

    def derive_id(self, document: dict, version: int) -> str:
        """Returns the document id of ``version`` for the encoded document."""
        return generate_versioned_model_id(self.get_model_id(document), version)

    ##########################################
    ################# WRITE ##################
    ##########################################

    def before_save(self, document: BaseModel) -> BaseModel:
        """Hook applied to every version document right before it is written."""
        return document

    async def create_new_version(self, document: TN, version: int) -> Result[TR]:
        """Writes ``document`` as the given version of its entity. Fails with 409 if that version exists."""
        encoded = self.document_model.encode(document)
        versioned = self.versioned_item_model.model_validate(
            {**encoded, "id": self.derive_id(encoded, version), "version": version}
        )
        result = await self.document_model.create(self.before_save(versioned))
        if isinstance(result, Ok):
            self.logging.debug("Stored version %d of '%s'", version, self.get_model_id(encoded))
        return result

    async def create(self, document: TN) -> Result[TR]:
        """Writes the first version (0) of an entity."""
        return await self.create_new_version(document, 0)

    async def upsert(self, document: TN) -> Result[TR]:
        """
        Appends a new version after the latest stored one, version 0 for unknown entities.

        The latest version is read first, so concurrent upserts of one entity race:
        the loser gets ``ErrorResponse`` with the conflict code of the store.
        """
        last = await self.find_last_version_by_model_id(self.get_search_key(document))
        if isinstance(last, Err):
            return last
        version = 0 if last.value is None else inc_version(last.value.version)
        return await self.create_new_version(document, version)

    async def update(self, retrieved: TR) -> Result[TR]:
        """
        Stores ``retrieved`` (usually a modified copy of a read version) as the version after it.

        Unlike :meth:`upsert` nothing is read: if another writer appended a version since
        ``retrieved`` was read, the create conflicts and ``ErrorResponse`` 409 is returned.
        """
        payload = retrieved.model_dump(mode="json", by_alias=True, exclude=set(SYSTEM_FIELDS), exclude_none=True)
        document = self.new_item_model.model_validate(payload)
        return await self.create_new_version(document, inc_version(retrieved.version))

    ##########################################
    ################# READ ###################
    ##########################################

    async def find_last_version_by_model_id(self, search_key: DocumentSearchKey) -> Result[TR | None]:
        """
        Returns the version with the highest number, ``Ok(None)`` for unknown entities.

        An invalid latest version is a ``DecodingError``, older versions are never returned instead.
        """
        model_id, partition_key = self.resolve_search_key(search_key)
        query = QuerySpec(
            query=f"SELECT TOP 1 * FROM m WHERE m.{self.model_id_key} = @modelId ORDER BY m.version DESC",
            parameters=[QueryParameter(name="@modelId", value=model_id)],
        )
        return await self.document_model.find_one_by_query(
            query, FeedOptions(max_item_count=1, partition_key=partition_key)
        )

    async def find(self, search_key: DocumentSearchKey, options: RequestOptions | None = None) -> Result[TR | None]:
        """Point read of one version document by its derived id."""
        return await self.document_model.find(search_key, options)

    def get_query_iterator(
        self,
        query: QuerySpec | str,
        feed_options: FeedOptions | None = None,
    ) -> AsyncIterator[list[Validation[TR]]]:
        return self.document_model.get_query_iterator(query, feed_options)

    def get_collection_iterator(self, feed_options: FeedOptions | None = None) -> AsyncIterator[list[Validation[TR]]]:
        return self.document_model.get_collection_iterator(feed_options)

    async def get_collection(self, feed_options: FeedOptions | None = None) -> Result[list[Validation[TR]]]:
        return await self.document_model.get_collection(feed_options)

    async def find_one_by_query(
        self,
        query: QuerySpec | str,
        feed_options: FeedOptions | None = None,
    ) -> Result[TR | None]:
        return await self.document_model.find_one_by_query(query, feed_options)
