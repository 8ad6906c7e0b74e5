"""Immutable screen criteria and the pure functions that update them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .constants import DEFAULT_RESULT_LIMIT
from .filters import FILTER_RULES, Category, FilterRule
from .schemas import ActiveFilter, CoarseFilter, FineFilter, ScreenCriteria

DEFAULT_CRITERIA = ScreenCriteria(
    coarse=CoarseFilter(is_actively_trading=True, limit=DEFAULT_RESULT_LIMIT),
    fine=FineFilter(),
)


@dataclass(frozen=True)
class CoarseFamily:
    """A group of coarse keys shown and removed together."""

    id: str
    category: Category
    label: str
    keys: tuple[str, ...]


COARSE_FAMILIES: tuple[CoarseFamily, ...] = (
    CoarseFamily("sector", "descriptive", "Sector", ("sector",)),
    CoarseFamily("industry", "descriptive", "Industry", ("industry",)),
    CoarseFamily("country", "descriptive", "Country", ("country",)),
    CoarseFamily("exchange", "descriptive", "Exchange", ("exchange",)),
    CoarseFamily(
        "market_cap",
        "descriptive",
        "Mkt Cap",
        ("market_cap_more_than", "market_cap_lower_than"),
    ),
    CoarseFamily("price", "descriptive", "Price", ("price_more_than", "price_lower_than")),
    CoarseFamily("volume", "descriptive", "Volume", ("volume_more_than", "volume_lower_than")),
    CoarseFamily(
        "dividend", "descriptive", "Dividend", ("dividend_more_than", "dividend_lower_than")
    ),
    CoarseFamily("is_etf", "descriptive", "ETF", ("is_etf",)),
    CoarseFamily("is_fund", "descriptive", "Fund", ("is_fund",)),
    CoarseFamily("beta", "technical", "Beta", ("beta_more_than", "beta_lower_than")),
)

Family = Union[CoarseFamily, FilterRule]

# Display order: descriptive, fine non-technical, then technical (beta first).
FILTER_FAMILIES: tuple[Family, ...] = (
    tuple(family for family in COARSE_FAMILIES if family.category != "technical")
    + tuple(rule for rule in FILTER_RULES if rule.category != "technical")
    + tuple(family for family in COARSE_FAMILIES if family.category == "technical")
    + tuple(rule for rule in FILTER_RULES if rule.category == "technical")
)


def _replace(model: Any, changes: dict[str, Any]) -> Any:
    unknown = set(changes) - set(type(model).model_fields)
    if unknown:
        raise KeyError(f"Unknown filter keys: {sorted(unknown)}")
    return type(model).model_validate({**model.model_dump(), **changes})


def update_coarse(criteria: ScreenCriteria, **changes: Any) -> ScreenCriteria:
    """Return new criteria with coarse keys replaced (``None`` clears)."""
    return criteria.model_copy(update={"coarse": _replace(criteria.coarse, changes)})


def update_fine(criteria: ScreenCriteria, **changes: Any) -> ScreenCriteria:
    """Return new criteria with fine keys replaced (``None`` clears)."""
    return criteria.model_copy(update={"fine": _replace(criteria.fine, changes)})


def remove_filter(criteria: ScreenCriteria, filter_id: str) -> ScreenCriteria:
    """Clear every key belonging to one filter family."""
    for family in FILTER_FAMILIES:
        if family.id != filter_id:
            continue
        cleared = {key: None for key in family.keys}
        if isinstance(family, CoarseFamily):
            return update_coarse(criteria, **cleared)
        return update_fine(criteria, **cleared)
    raise KeyError(f"Unknown filter id: {filter_id}")


def clear_filters() -> ScreenCriteria:
    return DEFAULT_CRITERIA


def list_active_filters(criteria: ScreenCriteria) -> list[ActiveFilter]:
    """Filter families that currently constrain the screen."""
    active: list[ActiveFilter] = []
    for family in FILTER_FAMILIES:
        source = criteria.coarse if isinstance(family, CoarseFamily) else criteria.fine
        values = {
            key: getattr(source, key)
            for key in family.keys
            if getattr(source, key) not in (None, "")
        }
        if isinstance(family, CoarseFamily):
            is_active = bool(values)
        else:
            is_active = family.is_active(criteria.fine)
        if not is_active:
            continue
        active.append(
            ActiveFilter(
                id=family.id,
                category=family.category,
                label=family.label,
                values=values,
            )
        )
    return active
