"""Generic document shapes shared by every model stored in the document store.

Domain models combine one of these bases with their own payload fields, e.g.::

    class RetrievedMessageStatus(MessageStatus, RetrievedVersionedModelTTL): ...
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, StringConstraints

NonEmptyString = Annotated[str, StringConstraints(min_length=1)]

# cosmos keeps an item forever when ttl is -1
TTL_NEVER_EXPIRE = -1
Ttl = Union[NonNegativeInt, Literal[-1]]

# length of the largest safe integer 9007199254740991
VERSION_PADDING_LENGTH = 16
MAX_VERSION = 9007199254740991

PartitionKeyValue = Union[str, int]
# (id,) or (id, partition key)
DocumentSearchKey = Union[tuple[str], tuple[str, PartitionKeyValue]]


class BaseDocument(BaseModel):
    """Every stored document carries a non empty string id."""

    model_config = ConfigDict(populate_by_name=True)

    id: NonEmptyString


class CosmosResource(BaseDocument):
    """System fields assigned by the store to every persisted document."""

    etag: str = Field(alias="_etag")
    rid: str = Field(alias="_rid")
    self_link: str = Field(alias="_self")
    ts: int | float = Field(alias="_ts")


class VersionedModel(BaseDocument):
    version: NonNegativeInt


class RetrievedVersionedModel(CosmosResource):
    version: NonNegativeInt


class BaseDocumentTTL(BaseDocument):
    ttl: Ttl | None = None


class CosmosResourceTTL(CosmosResource):
    ttl: Ttl | None = None


class RetrievedVersionedModelTTL(RetrievedVersionedModel):
    """A version document that may carry a ttl. A missing ttl means not set."""

    ttl: Ttl | None = None


# store fields stripped when a retrieved document is turned back into a new one
SYSTEM_FIELDS = frozenset({"id", "etag", "rid", "self_link", "ts", "version", "ttl"})


class QueryParameter(BaseModel):
    name: str
    value: Any


class QuerySpec(BaseModel):
    """A parameterized query, e.g. ``SELECT * FROM m WHERE m.id = @id``."""

    query: str
    parameters: list[QueryParameter] = []


class FeedOptions(BaseModel):
    """Options for multi-result reads.

    Attributes:
        max_item_count: Page size requested to the store, None lets the store decide.
        partition_key: Scope the read to a single partition. None means cross-partition.
        continuation: Resume a previous read from this continuation token.
    """

    max_item_count: int | None = None
    partition_key: PartitionKeyValue | None = None
    continuation: str | None = None


class RequestOptions(BaseModel):
    """Options for single document writes and reads.

    Attributes:
        if_match: Only apply a write if the stored etag matches.
        session_token: Session token for session consistency reads.
    """

    if_match: str | None = None
    session_token: str | None = None


def split_search_key(search_key: DocumentSearchKey) -> tuple[str, PartitionKeyValue]:
    """Returns (document id, partition key) for a search key.

    The partition key defaults to the document id when the key is a 1-tuple.

    Raises:
        ValueError: If the search key is not a 1-tuple or 2-tuple with a non empty string id.
    """
    if not isinstance(search_key, (tuple, list)) or len(search_key) not in (1, 2):
        raise ValueError(f"A search key must be (id,) or (id, partition_key), got {search_key!r}")
    document_id = search_key[0]
    if not isinstance(document_id, str) or not document_id:
        raise ValueError(f"The id of a search key must be a non empty string, got {document_id!r}")
    partition_key = search_key[1] if len(search_key) == 2 else None
    return document_id, partition_key if partition_key is not None else document_id
