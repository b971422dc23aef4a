"""Lazy combinators over async iterators.

All helpers work on the standard ``__anext__`` protocol: a value is pulled on
each call and ``StopAsyncIteration`` marks the end of the sequence. Iterators are
single-consumer, every logical read should own its own instance.
"""

import inspect
from collections import deque
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    TypeGuard,
    TypeVar,
    Union,
    overload,
)

from pydantic import BaseModel

from docstore.models.errors import STORE_FAILURES, ErrorResponse, to_error_response
from docstore.models.result import Err, Ok, Result

T = TypeVar("T")
V = TypeVar("V")
K = TypeVar("K")
A = TypeVar("A")

AsyncSource = Union[AsyncIterator[T], AsyncIterable[T]]


def to_async_iterator(source: "AsyncSource[T]") -> AsyncIterator[T]:
    """Returns the iterator behind an async iterable (iterators return themselves)."""
    return source.__aiter__()


async def _resolve(value: Union[V, Awaitable[V]]) -> V:
    if inspect.isawaitable(value):
        return await value
    return value


class Page(BaseModel, Generic[T]):
    """A bounded slice of an async sequence.

    Attributes:
        results: At most page size items, in iteration order.
        has_more_results: False only when the sequence was found exhausted.
    """

    results: list[T]
    has_more_results: bool


##########################################
############## ITERATORS #################
##########################################

class MappedAsyncIterator(AsyncIterator[V], Generic[T, V]):
    """Applies ``f`` to every value pulled from ``source``. ``f`` may be a coroutine function."""

    def __init__(self, source: "AsyncSource[T]", f: Callable[[T], Union[V, Awaitable[V]]]):
        self._source = to_async_iterator(source)
        self._f = f

    def __aiter__(self) -> "MappedAsyncIterator[T, V]":
        return self

    async def __anext__(self) -> V:
        value = await self._source.__anext__()
        return await _resolve(self._f(value))


class FilteredAsyncIterator(AsyncIterator[T]):
    """Yields only the values matching ``predicate``; one pull may consume several upstream values."""

    def __init__(self, source: "AsyncSource[T]", predicate: Callable[[T], bool]):
        self._source = to_async_iterator(source)
        self._predicate = predicate

    def __aiter__(self) -> "FilteredAsyncIterator[T]":
        return self

    async def __anext__(self) -> T:
        while True:
            value = await self._source.__anext__()
            if self._predicate(value):
                return value


class FlattenedAsyncIterator(AsyncIterator[T]):
    """Yields the elements of the arrays produced by ``source`` one at a time.

    A new array is only pulled once the current one is drained, empty arrays are skipped.
    """

    def __init__(self, source: "AsyncSource[list[T]]"):
        self._source = to_async_iterator(source)
        self._buffer: deque[T] = deque()

    def __aiter__(self) -> "FlattenedAsyncIterator[T]":
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            self._buffer = deque(await self._source.__anext__())
        return self._buffer.popleft()


class PeekableAsyncIterator(AsyncIterator[T]):
    """Wraps an iterator so the next value can be inspected without being consumed."""

    def __init__(self, source: "AsyncSource[T]"):
        self._source = to_async_iterator(source)
        self._pending: deque[T] = deque()
        self._exhausted = False

    def __aiter__(self) -> "PeekableAsyncIterator[T]":
        return self

    async def __anext__(self) -> T:
        if self._pending:
            return self._pending.popleft()
        if self._exhausted:
            raise StopAsyncIteration
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            raise

    async def has_next(self) -> bool:
        """Pulls one value ahead if needed and reports whether the sequence continues."""
        if self._pending:
            return True
        if self._exhausted:
            return False
        try:
            self._pending.append(await self._source.__anext__())
        except StopAsyncIteration:
            self._exhausted = True
            return False
        return True


@overload
def filter_async_iterator(source: "AsyncSource[T]", predicate: Callable[[T], TypeGuard[K]]) -> AsyncIterator[K]: ...
@overload
def filter_async_iterator(source: "AsyncSource[T]", predicate: Callable[[T], bool]) -> AsyncIterator[T]: ...
def filter_async_iterator(source, predicate):
    return FilteredAsyncIterator(source, predicate)


def map_async_iterator(source: "AsyncSource[T]", f: Callable[[T], Union[V, Awaitable[V]]]) -> AsyncIterator[V]:
    return MappedAsyncIterator(source, f)


def flatten_async_iterator(source: "AsyncSource[list[T]]") -> AsyncIterator[T]:
    return FlattenedAsyncIterator(source)


##########################################
############### CONSUMERS ################
##########################################

async def reduce_async_iterator(
    source: "AsyncSource[T]",
    f: Callable[[A, T], Union[A, Awaitable[A]]],
    initial: A,
) -> A:
    """Left fold over the whole sequence. Drains the iterator, use pages for user-facing reads."""
    acc = initial
    async for value in to_async_iterator(source):
        acc = await _resolve(f(acc, value))
    return acc


async def async_iterator_to_array(source: "AsyncSource[T]") -> list[T]:
    """Collects every value of the sequence in memory."""
    values: list[T] = []
    async for value in to_async_iterator(source):
        values.append(value)
    return values


async def run(source: "AsyncSource[Any]") -> None:
    """Drains the sequence for its side effects only."""
    async for _ in to_async_iterator(source):
        pass


async def async_iterator_to_page(iterator: "PeekableAsyncIterator[Union[T, Awaitable[T]]]", page_size: int) -> Page[T]:
    """Pulls at most ``page_size`` values from the iterator.

    When the page fills up, the next value is peeked to tell whether more results exist.
    The peeked value stays in the iterator, so calling it again continues with the next page.
    With ``page_size`` 0 nothing is pulled and ``has_more_results`` is True.

    Raises:
        TypeError: If the iterator is not a :class:`PeekableAsyncIterator`.
        ValueError: If page_size is negative.
    """
    if not isinstance(iterator, PeekableAsyncIterator):
        raise TypeError(f"Pages are read from a PeekableAsyncIterator, got {type(iterator).__name__}")
    if page_size < 0:
        raise ValueError(f"page_size must be a non negative integer, got {page_size}")
    results: list[T] = []
    if page_size == 0:
        return Page(results=results, has_more_results=True)
    while len(results) < page_size:
        try:
            value = await iterator.__anext__()
        except StopAsyncIteration:
            return Page(results=results, has_more_results=False)
        results.append(await _resolve(value))
    return Page(results=results, has_more_results=await iterator.has_next())


##########################################
########### RESULT CONSUMERS #############
##########################################

OnError = Callable[[Exception], ErrorResponse]


async def to_array_result(source: "AsyncSource[T]", on_error: OnError = to_error_response) -> "Result[list[T]]":
    """Like :func:`async_iterator_to_array`, store failures while pulling become ``Err``."""
    try:
        return Ok(await async_iterator_to_array(source))
    except STORE_FAILURES as e:
        return Err(on_error(e))


async def reduce_result(
    source: "AsyncSource[T]",
    f: Callable[[A, T], Union[A, Awaitable[A]]],
    initial: A,
    on_error: OnError = to_error_response,
) -> "Result[A]":
    try:
        return Ok(await reduce_async_iterator(source, f, initial))
    except STORE_FAILURES as e:
        return Err(on_error(e))


async def to_page_result(
    iterator: "PeekableAsyncIterator[T]",
    page_size: int,
    on_error: OnError = to_error_response,
) -> "Result[Page[T]]":
    try:
        return Ok(await async_iterator_to_page(iterator, page_size))
    except STORE_FAILURES as e:
        return Err(on_error(e))
