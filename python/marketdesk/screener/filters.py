"""Client-side filter engine.

Each filter family is one rule in ``FILTER_RULES``. A rule knows which
``FineFilter`` keys switch it on, which candidate attribute it reads, and
whether that attribute only exists after fundamental enrichment. Rules fail
closed: a candidate without the attribute never passes an active rule.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Union

from .schemas import EnrichedCandidate, FineFilter

Category = Literal["descriptive", "valuation", "profitability", "financial", "technical"]


def _present(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


@dataclass(frozen=True)
class RangeRule:
    """``min <= value <= max`` with either bound optional."""

    id: str
    category: Category
    label: str
    attribute: str
    min_key: str
    max_key: str
    fundamental: bool = True
    positive_only: bool = False

    @property
    def keys(self) -> tuple[str, ...]:
        return (self.min_key, self.max_key)

    def is_active(self, fine: FineFilter) -> bool:
        return (
            getattr(fine, self.min_key) is not None
            or getattr(fine, self.max_key) is not None
        )

    def matches(self, candidate: EnrichedCandidate, fine: FineFilter) -> bool:
        value = _present(getattr(candidate, self.attribute))
        if value is None:
            return False
        if self.positive_only and value <= 0:
            return False
        minimum = getattr(fine, self.min_key)
        maximum = getattr(fine, self.max_key)
        if minimum is not None and value < minimum:
            return False
        if maximum is not None and value > maximum:
            return False
        return True


@dataclass(frozen=True)
class DirectionalRule:
    """Price above or below a moving average by at least a tolerance."""

    id: str
    label: str
    attribute: str
    direction_key: str
    percent_key: str
    category: Category = "technical"
    fundamental: bool = False

    @property
    def keys(self) -> tuple[str, ...]:
        return (self.direction_key, self.percent_key)

    def is_active(self, fine: FineFilter) -> bool:
        return getattr(fine, self.direction_key) is not None

    def matches(self, candidate: EnrichedCandidate, fine: FineFilter) -> bool:
        ratio = _present(getattr(candidate, self.attribute))
        if ratio is None:
            return False
        threshold = 1 + (getattr(fine, self.percent_key) or 0) / 100
        if getattr(fine, self.direction_key) == "above":
            return ratio >= threshold
        return ratio <= 1 / threshold


@dataclass(frozen=True)
class ProximityRule:
    """Price within X% of the 52-week high or low."""

    id: str
    label: str
    attribute: str
    percent_key: str
    side: Literal["high", "low"]
    category: Category = "technical"
    fundamental: bool = False

    @property
    def keys(self) -> tuple[str, ...]:
        return (self.percent_key,)

    def is_active(self, fine: FineFilter) -> bool:
        return getattr(fine, self.percent_key) is not None

    def matches(self, candidate: EnrichedCandidate, fine: FineFilter) -> bool:
        ratio = _present(getattr(candidate, self.attribute))
        if ratio is None:
            return False
        percent = getattr(fine, self.percent_key)
        if self.side == "high":
            return ratio >= 1 - percent / 100
        return ratio <= 1 + percent / 100


FilterRule = Union[RangeRule, DirectionalRule, ProximityRule]


def _range(
    rule_id: str,
    category: Category,
    label: str,
    attribute: str,
    key: str,
    fundamental: bool = True,
    positive_only: bool = False,
) -> RangeRule:
    return RangeRule(
        id=rule_id,
        category=category,
        label=label,
        attribute=attribute,
        min_key=f"{key}_min",
        max_key=f"{key}_max",
        fundamental=fundamental,
        positive_only=positive_only,
    )


FILTER_RULES: tuple[FilterRule, ...] = (
    # Valuation
    _range("pe", "valuation", "P/E", "pe", "pe", positive_only=True),
    _range("price_to_book", "valuation", "P/B", "price_to_book_ratio", "price_to_book"),
    _range("price_to_sales", "valuation", "P/S", "price_to_sales_ratio", "price_to_sales"),
    _range("price_to_fcf", "valuation", "P/FCF", "price_to_free_cash_flows_ratio", "price_to_fcf"),
    _range("peg", "valuation", "PEG", "price_earnings_to_growth_ratio", "peg"),
    _range("ev_ebitda", "valuation", "EV/EBITDA", "enterprise_value_multiple", "ev_ebitda"),
    _range("eps", "valuation", "EPS", "eps", "eps"),
    _range("dividend_yield", "valuation", "Div Yield", "dividend_yield", "dividend_yield"),
    # Profitability
    _range("gross_margin", "profitability", "Gross Margin", "gross_profit_margin", "gross_margin"),
    _range("operating_margin", "profitability", "Op Margin", "operating_profit_margin", "operating_margin"),
    _range("net_margin", "profitability", "Net Margin", "net_profit_margin", "net_margin"),
    _range("roa", "profitability", "ROA", "return_on_assets", "roa"),
    _range("roe", "profitability", "ROE", "return_on_equity", "roe"),
    _range("roce", "profitability", "ROCE", "return_on_capital_employed", "roce"),
    # Financial health
    _range("current_ratio", "financial", "Current Ratio", "current_ratio", "current_ratio"),
    _range("quick_ratio", "financial", "Quick Ratio", "quick_ratio", "quick_ratio"),
    _range("cash_ratio", "financial", "Cash Ratio", "cash_ratio", "cash_ratio"),
    _range("debt_ratio", "financial", "Debt Ratio", "debt_ratio", "debt_ratio"),
    _range("debt_equity", "financial", "D/E", "debt_equity_ratio", "debt_equity"),
    _range("interest_coverage", "financial", "Int Coverage", "interest_coverage", "interest_coverage"),
    _range("asset_turnover", "financial", "Asset Turn", "asset_turnover", "asset_turnover"),
    _range("inventory_turnover", "financial", "Inv Turn", "inventory_turnover", "inventory_turnover"),
    _range("fcf_per_share", "financial", "FCF/Share", "free_cash_flow_per_share", "fcf_per_share"),
    _range("payout_ratio", "financial", "Payout", "payout_ratio", "payout_ratio"),
    # Technical
    DirectionalRule("sma50", "SMA50", "price_vs_sma50", "price_vs_sma50", "sma50_percent"),
    DirectionalRule("sma200", "SMA200", "price_vs_sma200", "price_vs_sma200", "sma200_percent"),
    ProximityRule("near_year_high", "52W High", "near_year_high", "near_year_high_pct", "high"),
    ProximityRule("near_year_low", "52W Low", "near_year_low", "near_year_low_pct", "low"),
    _range("day_change", "technical", "Day Chg", "changes_percentage", "day_change_pct", fundamental=False),
    _range("avg_volume", "technical", "Avg Vol", "avg_volume", "avg_volume", fundamental=False),
)

_RULES_BY_ID: dict[str, FilterRule] = {rule.id: rule for rule in FILTER_RULES}


def get_rule(rule_id: str) -> Optional[FilterRule]:
    return _RULES_BY_ID.get(rule_id)


def active_rules(fine: FineFilter) -> list[FilterRule]:
    """Rules switched on by ``fine``, in catalog order."""
    return [rule for rule in FILTER_RULES if rule.is_active(fine)]


def needs_fundamentals(fine: FineFilter) -> bool:
    """True when an active rule reads a tier-2 (ratio) attribute."""
    return any(rule.fundamental for rule in active_rules(fine))


def matches_all(
    candidate: EnrichedCandidate, fine: FineFilter, rules: Iterable[FilterRule]
) -> bool:
    verdicts = [rule.matches(candidate, fine) for rule in rules]
    return all(verdicts)


def apply_filters(
    candidates: Iterable[EnrichedCandidate], fine: FineFilter
) -> list[EnrichedCandidate]:
    """Keep candidates passing every active rule, preserving order."""
    rules = active_rules(fine)
    if not rules:
        return list(candidates)
    return [candidate for candidate in candidates if matches_all(candidate, fine, rules)]
