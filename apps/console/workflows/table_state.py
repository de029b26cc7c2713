"""Search/pagination state shared by the admin management tables."""
from __future__ import annotations

from typing import Callable, Generic, Iterable, Optional, TypeVar

from apps.console.services.listing import DEFAULT_PAGE_SIZE, PAGE_SIZES, Page, clamp_page, paginate

T = TypeVar("T")


class TableState(Generic[T]):
    """Rows held by a table plus the admin's search term, page size and page.

    Changing the term or the page size goes back to page 1; the page is kept
    inside ``[1, total_pages]`` whenever the filtered rows change.
    """

    def __init__(self, search: Callable[[Iterable[T], Optional[str]], list[T]], page_size: int = DEFAULT_PAGE_SIZE):
        self._search = search
        self.items: list[T] = []
        self.search_term = ""
        self.page_size = self._checked_size(page_size)
        self.page = 1

    @staticmethod
    def _checked_size(size: int) -> int:
        if size not in PAGE_SIZES:
            raise ValueError(f"page_size must be one of {PAGE_SIZES}")
        return size

    def replace(self, items: Iterable[T]) -> None:
        self.items = list(items)
        self._clamp()

    def set_search(self, term: str) -> None:
        self.search_term = term or ""
        self.page = 1

    def set_page_size(self, size: int) -> None:
        self.page_size = self._checked_size(size)
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = clamp_page(page, len(self.filtered()), self.page_size)

    def filtered(self) -> list[T]:
        return self._search(self.items, self.search_term)

    def visible_page(self) -> Page[T]:
        return paginate(self.filtered(), self.page, self.page_size)

    def _clamp(self) -> None:
        self.page = clamp_page(self.page, len(self.filtered()), self.page_size)
