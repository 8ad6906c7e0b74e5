"""Tests for the sort engine and the sort toggle."""

from __future__ import annotations

import math

import pytest

from fakes import make_enriched
from marketdesk.screener.schemas import SortSpec
from marketdesk.screener.sorting import (
    NUMERIC_SORT_FIELDS,
    sort_candidates,
    toggle_sort,
)


def _symbols(candidates) -> list[str]:
    return [candidate.symbol for candidate in candidates]


@pytest.fixture
def mixed():
    return [
        make_enriched("A", pe=None, market_cap=5.0, changes_percentage=1.0, volume=None),
        make_enriched("B", pe=12.0, market_cap=9.0, changes_percentage=None, volume=3.0),
        make_enriched("C", pe=math.nan, market_cap=1.0, changes_percentage=-2.0, volume=1.0),
        make_enriched("D", pe=30.0, market_cap=7.0, changes_percentage=0.5, volume=2.0),
        make_enriched("E", pe=None, market_cap=3.0, changes_percentage=4.0, volume=None),
    ]


@pytest.mark.parametrize("field", sorted(NUMERIC_SORT_FIELDS))
@pytest.mark.parametrize("direction", ["asc", "desc"])
def test_missing_values_always_sort_last(mixed, field, direction):
    ordered = sort_candidates(mixed, field, direction)
    flags = [
        getattr(candidate, field) is None or math.isnan(getattr(candidate, field))
        for candidate in ordered
    ]
    assert flags == sorted(flags)
    assert sorted(_symbols(ordered)) == sorted(_symbols(mixed))


def test_missing_values_keep_input_order(mixed):
    assert _symbols(sort_candidates(mixed, "pe", "asc")) == ["B", "D", "A", "C", "E"]
    assert _symbols(sort_candidates(mixed, "pe", "desc")) == ["D", "B", "A", "C", "E"]


def test_numeric_desc_by_market_cap(mixed):
    assert _symbols(sort_candidates(mixed, "market_cap", "desc")) == ["B", "D", "A", "E", "C"]


def test_strings_compare_case_insensitively():
    candidates = [
        make_enriched("b", company_name="beta"),
        make_enriched("A", company_name="Alpha"),
        make_enriched("C", company_name="charlie"),
    ]
    assert _symbols(sort_candidates(candidates, "symbol", "asc")) == ["A", "b", "C"]
    assert _symbols(sort_candidates(candidates, "company_name", "desc")) == ["C", "b", "A"]


def test_sort_twice_reverses_order(mixed):
    present = [candidate for candidate in mixed if candidate.volume is not None]
    spec = toggle_sort(SortSpec(field="pe", direction="asc"), "volume")
    once = sort_candidates(present, spec.field, spec.direction)
    spec = toggle_sort(spec, "volume")
    twice = sort_candidates(present, spec.field, spec.direction)
    assert twice == list(reversed(once))


def test_toggle_law():
    spec = SortSpec()
    assert (spec.field, spec.direction) == ("market_cap", "desc")
    flipped = toggle_sort(spec, "market_cap")
    assert flipped.direction == "asc"
    assert toggle_sort(flipped, "market_cap").direction == "desc"
    switched = toggle_sort(flipped, "pe")
    assert (switched.field, switched.direction) == ("pe", "desc")


def test_sort_does_not_mutate_input(mixed):
    before = list(mixed)
    sort_candidates(mixed, "price", "asc")
    assert mixed == before


def test_unknown_field_rejected(mixed):
    with pytest.raises(ValueError):
        sort_candidates(mixed, "beta", "asc")


def test_ties_break_on_symbol_so_toggle_reverses():
    candidates = [
        make_enriched("B", sector="Tech"),
        make_enriched("A", sector="Tech"),
        make_enriched("C", sector="Energy"),
    ]
    spec = toggle_sort(SortSpec(), "sector")
    once = sort_candidates(candidates, spec.field, spec.direction)
    spec = toggle_sort(spec, "sector")
    twice = sort_candidates(candidates, spec.field, spec.direction)
    assert _symbols(once) == ["B", "A", "C"]
    assert _symbols(twice) == ["C", "A", "B"]
    assert twice == list(reversed(once))
