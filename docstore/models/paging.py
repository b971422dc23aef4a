"""Page shapes produced for id based (cursor) pagination."""

from typing import Any

from pydantic import BaseModel, computed_field


class PageResults(BaseModel):
    """A page of id-bearing items plus the cursors to move around it.

    Attributes:
        items: The items of the page.
        next: Id of the last item, to continue after it. None on empty pages.
        prev: Id of the first item, to go back before it. None on empty pages.
        has_more: False when the underlying sequence is known to be exhausted.
    """

    items: list[Any] = []
    next: str | None = None
    prev: str | None = None
    has_more: bool = False

    @computed_field
    @property
    def items_size(self) -> int:
        return len(self.items)

    def to_response(self) -> dict:
        """Serializes the page as ``{items, items_size, next?, prev?}``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"has_more"})
