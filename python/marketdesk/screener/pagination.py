"""Fixed-size paging over the sorted, filtered result set."""

from __future__ import annotations

import math
from typing import Sequence

from .constants import PAGE_SIZE
from .schemas import EnrichedCandidate, Page


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return math.ceil(count / page_size)


def paginate(
    items: Sequence[EnrichedCandidate],
    page_index: int,
    page_size: int = PAGE_SIZE,
) -> Page:
    """Slice page ``page_index`` (1-based); past the end yields no items."""
    if page_index < 1:
        raise ValueError("page_index must be at least 1")
    pages = total_pages(len(items), page_size)
    start = (page_index - 1) * page_size
    return Page(
        index=page_index,
        size=page_size,
        total_pages=pages,
        total_results=len(items),
        items=list(items[start : start + page_size]),
    )
