"""Tests for immutable criteria updates and the active filter list."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from marketdesk.screener.filter_state import (
    DEFAULT_CRITERIA,
    clear_filters,
    list_active_filters,
    remove_filter,
    update_coarse,
    update_fine,
)
from marketdesk.screener.schemas import ScreenCriteria


def test_defaults():
    assert DEFAULT_CRITERIA.coarse.is_actively_trading is True
    assert DEFAULT_CRITERIA.coarse.limit == 500
    assert DEFAULT_CRITERIA.fine.is_empty()
    assert list_active_filters(DEFAULT_CRITERIA) == []


def test_updates_return_new_criteria():
    criteria = update_coarse(DEFAULT_CRITERIA, sector="Technology", market_cap_more_than=1e10)
    criteria = update_fine(criteria, pe_min=20, price_vs_sma50="above", sma50_percent=5)
    assert DEFAULT_CRITERIA.coarse.sector is None
    assert DEFAULT_CRITERIA.fine.pe_min is None
    assert criteria.coarse.sector == "Technology"
    assert criteria.coarse.limit == 500
    assert criteria.fine.sma50_percent == 5


def test_criteria_are_frozen():
    with pytest.raises(ValidationError):
        DEFAULT_CRITERIA.fine.pe_min = 3


def test_unknown_keys_rejected():
    with pytest.raises(KeyError):
        update_fine(DEFAULT_CRITERIA, pe_minimum=3)
    with pytest.raises(KeyError):
        update_coarse(DEFAULT_CRITERIA, ticker="AAPL")


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        update_fine(DEFAULT_CRITERIA, price_vs_sma50="sideways")


def test_active_filters_grouped_by_tab():
    criteria = update_coarse(
        DEFAULT_CRITERIA, sector="Energy", beta_lower_than=1.2, price_more_than=5
    )
    criteria = update_fine(
        criteria,
        roe_min=15,
        debt_equity_max=1,
        price_vs_sma200="below",
        near_year_low_pct=10,
    )
    active = list_active_filters(criteria)
    assert [(item.id, item.category) for item in active] == [
        ("sector", "descriptive"),
        ("price", "descriptive"),
        ("roe", "profitability"),
        ("debt_equity", "financial"),
        ("beta", "technical"),
        ("sma200", "technical"),
        ("near_year_low", "technical"),
    ]
    assert active[1].values == {"price_more_than": 5}
    assert active[5].values == {"price_vs_sma200": "below"}


def test_remove_filter_clears_whole_family():
    criteria = update_fine(DEFAULT_CRITERIA, pe_min=10, pe_max=30, roa_min=5)
    criteria = update_coarse(criteria, market_cap_more_than=1e9, market_cap_lower_than=1e11)
    criteria = remove_filter(criteria, "pe")
    criteria = remove_filter(criteria, "market_cap")
    assert (criteria.fine.pe_min, criteria.fine.pe_max) == (None, None)
    assert criteria.fine.roa_min == 5
    assert criteria.coarse.market_cap_more_than is None
    assert criteria.coarse.market_cap_lower_than is None
    assert [item.id for item in list_active_filters(criteria)] == ["roa"]


def test_remove_directional_filter_clears_tolerance():
    criteria = update_fine(DEFAULT_CRITERIA, price_vs_sma50="above", sma50_percent=3)
    criteria = remove_filter(criteria, "sma50")
    assert criteria.fine.is_empty()


def test_remove_unknown_filter():
    with pytest.raises(KeyError):
        remove_filter(DEFAULT_CRITERIA, "rsi")


def test_clear_filters_restores_defaults():
    assert clear_filters() == DEFAULT_CRITERIA


def test_criteria_accept_server_client_keys():
    criteria = ScreenCriteria.model_validate(
        {"server": {"sector": "Utilities", "isActivelyTrading": True}, "client": {"peMax": 15}}
    )
    assert criteria.coarse.sector == "Utilities"
    assert criteria.fine.pe_max == 15
