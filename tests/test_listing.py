"""Search filtering and pagination of the management tables."""
import math

import pytest

from apps.console.services.listing import clamp_page, count_pages, iter_pages, matches, paginate
from apps.console.workflows.table_state import TableState


def _search(items, term):
    return [i for i in items if matches(term, [i])]


@pytest.mark.parametrize("page_size", [1, 3, 10, 20, 50])
@pytest.mark.parametrize("n", [0, 1, 9, 10, 11, 49, 50, 51, 123])
def test_pages_cover_filtered_list_exactly(n, page_size):
    items = [f"item-{i}" for i in range(n)]
    pages = list(iter_pages(items, page_size))
    assert len(pages) == math.ceil(n / page_size)
    assert [x for page in pages for x in page] == items
    for index, page in enumerate(pages, start=1):
        assert paginate(items, index, page_size).items == page


def test_paginate_reports_totals_and_clamps():
    items = list(range(25))
    page = paginate(items, 9, 10)
    assert page.page == 3
    assert page.items == [20, 21, 22, 23, 24]
    assert page.total == 25
    assert page.total_pages == 3
    assert paginate([], 4, 10).page == 1
    assert paginate(items, 0, 10).page == 1


def test_count_and_clamp():
    assert count_pages(0, 10) == 1
    assert count_pages(21, 10) == 3
    assert clamp_page(5, 11, 10) == 2
    with pytest.raises(ValueError):
        count_pages(3, 0)
    with pytest.raises(ValueError):
        list(iter_pages([1], -1))


def test_matches_ignores_case_and_blank_term():
    assert matches("AbC", ["xxabcxx"])
    assert matches("  ", ["anything"])
    assert matches(None, [None])
    assert not matches("abc", [None, "ab"])


def test_table_state_clamps_when_rows_shrink():
    state = TableState(_search, page_size=10)
    state.replace(f"r{i}" for i in range(35))
    state.set_page(4)
    assert state.visible_page().items == ["r30", "r31", "r32", "r33", "r34"]
    state.replace(f"r{i}" for i in range(12))
    assert state.page == 2
    assert state.visible_page().items == ["r10", "r11"]


def test_table_state_search_and_page_size_reset_page():
    state = TableState(_search, page_size=10)
    state.replace(f"row{i}" for i in range(60))
    state.set_page(3)
    state.set_search("ROW1")
    assert state.page == 1
    assert state.visible_page().total == 11
    state.set_page(2)
    state.set_page_size(20)
    assert state.page == 1
    assert state.visible_page().total_pages == 1


def test_table_state_rejects_unknown_page_size():
    with pytest.raises(ValueError):
        TableState(_search, page_size=15)
    state = TableState(_search)
    with pytest.raises(ValueError):
        state.set_page_size(0)
