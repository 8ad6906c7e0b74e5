"""Sort engine for screener results."""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional

from .schemas import EnrichedCandidate, SortDirection, SortField, SortSpec

STRING_SORT_FIELDS: frozenset[str] = frozenset(
    {"symbol", "company_name", "sector", "industry"}
)
NUMERIC_SORT_FIELDS: frozenset[str] = frozenset(
    {"price", "changes_percentage", "market_cap", "pe", "volume"}
)
SORT_FIELDS: frozenset[str] = STRING_SORT_FIELDS | NUMERIC_SORT_FIELDS


def _sort_value(candidate: EnrichedCandidate, field: str) -> Optional[Any]:
    value = getattr(candidate, field)
    if value is None:
        return None
    if field in STRING_SORT_FIELDS:
        return str(value).casefold()
    value = float(value)
    if math.isnan(value):
        return None
    return value


def sort_candidates(
    candidates: Iterable[EnrichedCandidate],
    field: SortField,
    direction: SortDirection,
) -> list[EnrichedCandidate]:
    """Return a new list sorted by ``field``.

    Ties break on symbol, so descending is the exact reverse of ascending.
    Candidates missing the value always follow those that have it, in their
    input order, whichever direction is requested.
    """
    if field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field: {field}")
    present: list[tuple[tuple[Any, str], EnrichedCandidate]] = []
    missing: list[EnrichedCandidate] = []
    for candidate in candidates:
        value = _sort_value(candidate, field)
        if value is None:
            missing.append(candidate)
        else:
            present.append(((value, candidate.symbol.casefold()), candidate))
    present.sort(key=lambda item: item[0], reverse=direction == "desc")
    return [candidate for _, candidate in present] + missing


def toggle_sort(spec: SortSpec, field: SortField) -> SortSpec:
    """Same field flips direction; a new field starts descending."""
    if spec.field == field:
        return SortSpec(field=field, direction="asc" if spec.direction == "desc" else "desc")
    return SortSpec(field=field, direction="desc")
