"""Tests for result paging."""

from __future__ import annotations

import pytest

from fakes import make_enriched
from marketdesk.screener.pagination import paginate, total_pages


@pytest.mark.parametrize(
    "count, size, expected",
    [(0, 50, 0), (1, 50, 1), (50, 50, 1), (51, 50, 2), (120, 50, 3), (7, 3, 3)],
)
def test_total_pages_rounds_up(count, size, expected):
    assert total_pages(count, size) == expected


@pytest.mark.parametrize("count", [0, 1, 49, 50, 51, 137])
def test_pages_concatenate_to_full_list(count):
    items = [make_enriched(f"S{index:03d}") for index in range(count)]
    pages = total_pages(count, 50)
    rebuilt = []
    for index in range(1, pages + 1):
        page = paginate(items, index, 50)
        assert page.total_pages == pages
        assert page.total_results == count
        rebuilt.extend(page.items)
    assert rebuilt == items


def test_page_past_end_is_empty():
    items = [make_enriched("ONE")]
    page = paginate(items, 3, 50)
    assert page.items == []
    assert page.index == 3


def test_invalid_arguments():
    with pytest.raises(ValueError):
        paginate([], 0)
    with pytest.raises(ValueError):
        paginate([], 1, 0)
    with pytest.raises(ValueError):
        total_pages(10, 0)
