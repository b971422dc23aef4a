"""Cursor pagination over id-bearing async sequences."""

from typing import Any, AsyncIterator, Protocol, TypeVar

from docstore.models.document import QueryParameter, QuerySpec
from docstore.models.paging import PageResults


class HasId(Protocol):
    id: str


I = TypeVar("I", bound=HasId)


def _id_of(item: Any) -> str:
    return item["id"] if isinstance(item, dict) else item.id


async def fill_page(iterator: AsyncIterator[I], page_size: int) -> PageResults:
    """Pulls items until the page holds ``page_size`` of them or the sequence ends.

    ``next`` and ``prev`` are the ids of the last and first accumulated items.
    Items are pulled one by one, so pass a flattened iterator when the store
    yields whole result pages.

    Raises:
        ValueError: If page_size is negative.
    """
    if page_size < 0:
        raise ValueError(f"page_size must be a non negative integer, got {page_size}")
    items: list[I] = []
    done = False
    while len(items) < page_size:
        try:
            items.append(await iterator.__anext__())
        except StopAsyncIteration:
            done = True
            break
    return PageResults(
        items=items,
        next=_id_of(items[-1]) if items else None,
        prev=_id_of(items[0]) if items else None,
        has_more=not done,
    )


def to_page_results(items: list[I], has_more_results: bool) -> PageResults:
    """Builds the response page of an already materialized slice.

    ``next`` is only set when more results exist, ``prev`` whenever the page is not empty.
    """
    return PageResults(
        items=items,
        next=_id_of(items[-1]) if items and has_more_results else None,
        prev=_id_of(items[0]) if items else None,
        has_more=has_more_results,
    )


def build_cursor_query(
    base: QuerySpec,
    partition_field: str,
    maximum_id: str | None = None,
    minimum_id: str | None = None,
) -> QuerySpec:
    """Appends the cursor conditions to a query and orders it for keyset paging.

    Args:
        base (QuerySpec): A query with a WHERE clause on the ``m`` alias,
            e.g. ``SELECT * FROM m WHERE m.messageId = @messageId``.
        partition_field (str): The partition field, first ordering key.
        maximum_id (str | None): Only return items with an id lower than this one (next page).
        minimum_id (str | None): Only return items with an id greater than this one (previous page).

    Returns:
        QuerySpec: The composed query ordered by partition field then id, both descending.
    """
    query = base.query
    parameters = list(base.parameters)
    if maximum_id is not None:
        query += " AND m.id < @maxId"
        parameters.append(QueryParameter(name="@maxId", value=maximum_id))
    if minimum_id is not None:
        query += " AND m.id > @minId"
        parameters.append(QueryParameter(name="@minId", value=minimum_id))
    query += f" ORDER BY m.{partition_field} DESC, m.id DESC"
    return QuerySpec(query=query, parameters=parameters)
