"""Success-or-error values returned by every document model operation.

``Ok`` / ``Err`` carry the outcome of a whole operation, ``Valid`` / ``Invalid``
the outcome of decoding a single document, so one malformed item never aborts
a page.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, TypeVar, Union

from docstore.models.errors import StoreError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: StoreError


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    errors: list[dict[str, Any]] = field(default_factory=list)
    raw: Any = None


Validation = Union[Valid[T], Invalid]


def is_valid(validation: "Validation[T]") -> bool:
    """Type-agnostic predicate usable with filter helpers."""
    return isinstance(validation, Valid)


def valid_values(validations: Iterable["Validation[T]"]) -> list[T]:
    """Keep the successfully decoded documents and drop the invalid ones."""
    return [v.value for v in validations if isinstance(v, Valid)]


def invalid_items(validations: Iterable["Validation[T]"]) -> list[Invalid]:
    return [v for v in validations if isinstance(v, Invalid)]
