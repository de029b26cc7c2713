"""Search and pagination for the admin management tables."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Iterator, Sequence, TypeVar

T = TypeVar("T")

PAGE_SIZES = (10, 20, 50)
DEFAULT_PAGE_SIZE = 10


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0
    total_pages: int = 1


def normalize_term(term: str | None) -> str:
    return (term or "").strip().casefold()


def matches(term: str | None, values: Iterable[str | None]) -> bool:
    """True when the case-folded term occurs in at least one of the values."""
    needle = normalize_term(term)
    if not needle:
        return True
    return any(needle in (value or "").casefold() for value in values)


def filter_by_term(
    items: Iterable[T],
    term: str | None,
    fields: Callable[[T], Iterable[str | None]],
) -> list[T]:
    return [item for item in items if matches(term, fields(item))]


def count_pages(total: int, page_size: int) -> int:
    """Pages shown in the table; an empty table still has one (empty) page."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return max(1, math.ceil(total / page_size))


def clamp_page(page: int, total: int, page_size: int) -> int:
    return min(max(1, page), count_pages(total, page_size))


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    pages = count_pages(len(items), page_size)
    current = clamp_page(page, len(items), page_size)
    start = (current - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=current,
        page_size=page_size,
        total=len(items),
        total_pages=pages,
    )


def iter_pages(items: Sequence[T], page_size: int) -> Iterator[list[T]]:
    """Every non-empty page in order: exactly ceil(len(items) / page_size) slices."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    for start in range(0, len(items), page_size):
        yield list(items[start:start + page_size])
