"""Pydantic schemas for the equity screener pipeline."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_SORT_DIRECTION, DEFAULT_SORT_FIELD, PAGE_SIZE

SortField = Literal[
    "symbol",
    "company_name",
    "price",
    "changes_percentage",
    "market_cap",
    "pe",
    "volume",
    "sector",
    "industry",
]
SortDirection = Literal["asc", "desc"]
Direction = Literal["above", "below"]

_PROVIDER_CONFIG = ConfigDict(
    alias_generator=to_camel, populate_by_name=True, frozen=True
)


class CoarseFilter(BaseModel):
    """Criteria the provider's company screener can answer server-side."""

    model_config = _PROVIDER_CONFIG

    sector: Optional[str] = Field(default=None, description="Sector name")
    industry: Optional[str] = Field(default=None, description="Industry name")
    country: Optional[str] = Field(default=None, description="ISO country code")
    exchange: Optional[str] = Field(default=None, description="Exchange code")
    market_cap_more_than: Optional[float] = Field(default=None, description="Min market cap")
    market_cap_lower_than: Optional[float] = Field(default=None, description="Max market cap")
    price_more_than: Optional[float] = Field(default=None, description="Min price")
    price_lower_than: Optional[float] = Field(default=None, description="Max price")
    volume_more_than: Optional[float] = Field(default=None, description="Min volume")
    volume_lower_than: Optional[float] = Field(default=None, description="Max volume")
    beta_more_than: Optional[float] = Field(default=None, description="Min beta")
    beta_lower_than: Optional[float] = Field(default=None, description="Max beta")
    dividend_more_than: Optional[float] = Field(default=None, description="Min dividend")
    dividend_lower_than: Optional[float] = Field(default=None, description="Max dividend")
    is_etf: Optional[bool] = Field(default=None, description="ETF flag")
    is_fund: Optional[bool] = Field(default=None, description="Fund flag")
    is_actively_trading: Optional[bool] = Field(
        default=None, description="Only actively trading securities"
    )
    limit: Optional[int] = Field(default=None, ge=1, description="Result cap")

    def to_query_params(self) -> dict[str, str]:
        """Render set fields as provider query parameters."""
        params: dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            elif isinstance(value, float) and value.is_integer():
                params[key] = str(int(value))
            else:
                params[key] = str(value)
        return params


class FineFilter(BaseModel):
    """Client-side criteria that need enrichment data to evaluate."""

    model_config = _PROVIDER_CONFIG

    # Quote-based
    pe_min: Optional[float] = None
    pe_max: Optional[float] = None
    eps_min: Optional[float] = None
    eps_max: Optional[float] = None
    price_vs_sma50: Optional[Direction] = None
    price_vs_sma200: Optional[Direction] = None
    sma50_percent: Optional[float] = Field(default=None, ge=0)
    sma200_percent: Optional[float] = Field(default=None, ge=0)
    near_year_high_pct: Optional[float] = Field(default=None, ge=0)
    near_year_low_pct: Optional[float] = Field(default=None, ge=0)
    day_change_pct_min: Optional[float] = None
    day_change_pct_max: Optional[float] = None
    avg_volume_min: Optional[float] = None
    avg_volume_max: Optional[float] = None

    # Valuation
    price_to_book_min: Optional[float] = None
    price_to_book_max: Optional[float] = None
    price_to_sales_min: Optional[float] = None
    price_to_sales_max: Optional[float] = None
    price_to_fcf_min: Optional[float] = None
    price_to_fcf_max: Optional[float] = None
    peg_min: Optional[float] = None
    peg_max: Optional[float] = None
    ev_ebitda_min: Optional[float] = None
    ev_ebitda_max: Optional[float] = None
    dividend_yield_min: Optional[float] = None
    dividend_yield_max: Optional[float] = None

    # Profitability (percent)
    gross_margin_min: Optional[float] = None
    gross_margin_max: Optional[float] = None
    operating_margin_min: Optional[float] = None
    operating_margin_max: Optional[float] = None
    net_margin_min: Optional[float] = None
    net_margin_max: Optional[float] = None
    roa_min: Optional[float] = None
    roa_max: Optional[float] = None
    roe_min: Optional[float] = None
    roe_max: Optional[float] = None
    roce_min: Optional[float] = None
    roce_max: Optional[float] = None

    # Liquidity
    current_ratio_min: Optional[float] = None
    current_ratio_max: Optional[float] = None
    quick_ratio_min: Optional[float] = None
    quick_ratio_max: Optional[float] = None
    cash_ratio_min: Optional[float] = None
    cash_ratio_max: Optional[float] = None

    # Debt / leverage
    debt_ratio_min: Optional[float] = None
    debt_ratio_max: Optional[float] = None
    debt_equity_min: Optional[float] = None
    debt_equity_max: Optional[float] = None
    interest_coverage_min: Optional[float] = None
    interest_coverage_max: Optional[float] = None

    # Efficiency
    asset_turnover_min: Optional[float] = None
    asset_turnover_max: Optional[float] = None
    inventory_turnover_min: Optional[float] = None
    inventory_turnover_max: Optional[float] = None

    # Per share
    fcf_per_share_min: Optional[float] = None
    fcf_per_share_max: Optional[float] = None
    payout_ratio_min: Optional[float] = None
    payout_ratio_max: Optional[float] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ScreenCriteria(BaseModel):
    """Coarse (server) and fine (client) criteria for one screen."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    coarse: CoarseFilter = Field(
        default_factory=CoarseFilter,
        validation_alias=AliasChoices("coarse", "server"),
        description="Server-side criteria",
    )
    fine: FineFilter = Field(
        default_factory=FineFilter,
        validation_alias=AliasChoices("fine", "client"),
        description="Client-side criteria",
    )


class Candidate(BaseModel):
    """Security returned by the coarse screener query."""

    model_config = _PROVIDER_CONFIG

    symbol: str = Field(..., description="Ticker symbol")
    company_name: Optional[str] = Field(default=None, description="Company name")
    market_cap: Optional[float] = Field(default=None, description="Market cap")
    sector: Optional[str] = Field(default=None, description="Sector")
    industry: Optional[str] = Field(default=None, description="Industry")
    beta: Optional[float] = Field(default=None, description="Beta")
    price: Optional[float] = Field(default=None, description="Last price")
    last_annual_dividend: Optional[float] = Field(default=None, description="Last dividend")
    volume: Optional[float] = Field(default=None, description="Volume")
    exchange: Optional[str] = Field(default=None, description="Exchange")
    exchange_short_name: Optional[str] = Field(default=None, description="Exchange code")
    country: Optional[str] = Field(default=None, description="Country")
    is_etf: Optional[bool] = Field(default=None, description="ETF flag")
    is_fund: Optional[bool] = Field(default=None, description="Fund flag")
    is_actively_trading: Optional[bool] = Field(default=None, description="Trading flag")


class QuoteRecord(BaseModel):
    """Row from the batch quote endpoint."""

    model_config = _PROVIDER_CONFIG

    symbol: str
    name: Optional[str] = None
    price: Optional[float] = None
    changes_percentage: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices(
            "changesPercentage", "changePercentage", "changes_percentage"
        ),
    )
    change: Optional[float] = None
    day_low: Optional[float] = None
    day_high: Optional[float] = None
    year_high: Optional[float] = None
    year_low: Optional[float] = None
    market_cap: Optional[float] = None
    price_avg50: Optional[float] = None
    price_avg200: Optional[float] = None
    exchange: Optional[str] = None
    volume: Optional[float] = None
    avg_volume: Optional[float] = None
    open: Optional[float] = None
    previous_close: Optional[float] = None
    timestamp: Optional[int] = None


class RatioRecord(BaseModel):
    """Most recent snapshot from the financial ratios endpoint.

    Margins, returns and payout ratio are fractions here (0.25 == 25%).
    """

    model_config = _PROVIDER_CONFIG

    symbol: Optional[str] = None
    date: Optional[str] = None

    price_to_earnings_ratio: Optional[float] = None
    price_to_book_ratio: Optional[float] = None
    price_to_sales_ratio: Optional[float] = None
    price_to_free_cash_flows_ratio: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices(
            "priceToFreeCashFlowsRatio",
            "priceToFreeCashFlowRatio",
            "price_to_free_cash_flows_ratio",
        ),
    )
    price_earnings_to_growth_ratio: Optional[float] = None
    enterprise_value_multiple: Optional[float] = None
    dividend_yield: Optional[float] = None
    price_fair_value: Optional[float] = None

    gross_profit_margin: Optional[float] = None
    operating_profit_margin: Optional[float] = None
    net_profit_margin: Optional[float] = None
    return_on_assets: Optional[float] = None
    return_on_equity: Optional[float] = None
    return_on_capital_employed: Optional[float] = None

    current_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    cash_ratio: Optional[float] = None

    debt_ratio: Optional[float] = None
    debt_equity_ratio: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices(
            "debtEquityRatio", "debtToEquityRatio", "debt_equity_ratio"
        ),
    )
    interest_coverage: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices(
            "interestCoverage", "interestCoverageRatio", "interest_coverage"
        ),
    )
    cash_flow_to_debt_ratio: Optional[float] = None

    asset_turnover: Optional[float] = None
    inventory_turnover: Optional[float] = None
    receivables_turnover: Optional[float] = None
    days_of_sales_outstanding: Optional[float] = None
    cash_conversion_cycle: Optional[float] = None

    free_cash_flow_per_share: Optional[float] = None
    cash_per_share: Optional[float] = None
    payout_ratio: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices(
            "payoutRatio", "dividendPayoutRatio", "payout_ratio"
        ),
    )


class EnrichedCandidate(Candidate):
    """Candidate with optional quote, derived and fundamental fields.

    ``None`` on any enrichment field means the value was not fetched for this
    candidate. It never stands for zero.
    """

    # Tier 1: quote
    change: Optional[float] = None
    changes_percentage: Optional[float] = None
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    open: Optional[float] = None
    previous_close: Optional[float] = None
    year_high: Optional[float] = None
    year_low: Optional[float] = None
    price_avg50: Optional[float] = None
    price_avg200: Optional[float] = None
    avg_volume: Optional[float] = None

    # Tier 1: derived
    price_vs_sma50: Optional[float] = None
    price_vs_sma200: Optional[float] = None
    near_year_high: Optional[float] = None
    near_year_low: Optional[float] = None

    # Tier 2: valuation
    pe: Optional[float] = None
    eps: Optional[float] = None
    price_to_book_ratio: Optional[float] = None
    price_to_sales_ratio: Optional[float] = None
    price_to_free_cash_flows_ratio: Optional[float] = None
    price_earnings_to_growth_ratio: Optional[float] = None
    enterprise_value_multiple: Optional[float] = None
    dividend_yield: Optional[float] = None
    price_fair_value: Optional[float] = None

    # Tier 2: profitability (percent)
    gross_profit_margin: Optional[float] = None
    operating_profit_margin: Optional[float] = None
    net_profit_margin: Optional[float] = None
    return_on_assets: Optional[float] = None
    return_on_equity: Optional[float] = None
    return_on_capital_employed: Optional[float] = None

    # Tier 2: liquidity
    current_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    cash_ratio: Optional[float] = None

    # Tier 2: leverage
    debt_ratio: Optional[float] = None
    debt_equity_ratio: Optional[float] = None
    interest_coverage: Optional[float] = None
    cash_flow_to_debt_ratio: Optional[float] = None

    # Tier 2: efficiency
    asset_turnover: Optional[float] = None
    inventory_turnover: Optional[float] = None
    receivables_turnover: Optional[float] = None
    days_of_sales_outstanding: Optional[float] = None
    cash_conversion_cycle: Optional[float] = None

    # Tier 2: per share
    free_cash_flow_per_share: Optional[float] = None
    cash_per_share: Optional[float] = None
    payout_ratio: Optional[float] = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "EnrichedCandidate":
        return cls.model_validate(candidate.model_dump())


class SortSpec(BaseModel):
    """Sort field and direction."""

    model_config = ConfigDict(frozen=True)

    field: SortField = Field(default=DEFAULT_SORT_FIELD, description="Sort field")
    direction: SortDirection = Field(
        default=DEFAULT_SORT_DIRECTION, description="Sort direction"
    )


class Page(BaseModel):
    """One page of the sorted, filtered result set."""

    index: int = Field(..., description="1-based page index")
    size: int = Field(default=PAGE_SIZE, description="Page size")
    total_pages: int = Field(..., description="Total pages")
    total_results: int = Field(..., description="Total results")
    items: list[EnrichedCandidate] = Field(default_factory=list, description="Page rows")


class ScreenerState(BaseModel):
    """Published state of the screener orchestrator."""

    results: list[EnrichedCandidate] = Field(default_factory=list, description="Sorted results")
    total_results: int = Field(default=0, description="Result count")
    loading: bool = Field(default=False, description="Coarse query in flight")
    enriching: bool = Field(default=False, description="Enrichment in flight")
    error: Optional[str] = Field(default=None, description="Pipeline-fatal error message")
    current_page: int = Field(default=1, description="Current page index")
    total_pages: int = Field(default=0, description="Total pages")
    page_size: int = Field(default=PAGE_SIZE, description="Page size")
    sort_field: SortField = Field(default=DEFAULT_SORT_FIELD, description="Sort field")
    sort_direction: SortDirection = Field(
        default=DEFAULT_SORT_DIRECTION, description="Sort direction"
    )
    quote_batches: int = Field(default=0, description="Quote batches requested")
    quote_batches_failed: int = Field(
        default=0, description="Quote batches skipped after a provider failure"
    )
    fundamentals_requested: int = Field(
        default=0, description="Candidates eligible for fundamental enrichment"
    )
    fundamentals_enriched: int = Field(
        default=0, description="Candidates that received fundamental data"
    )
    fundamentals_truncated: int = Field(
        default=0, description="Candidates skipped by the fundamental cap"
    )


class ActiveFilter(BaseModel):
    """Filter family currently set in a ScreenCriteria."""

    id: str = Field(..., description="Filter family identifier")
    category: Literal[
        "descriptive", "valuation", "profitability", "financial", "technical"
    ] = Field(..., description="Filter tab")
    label: str = Field(..., description="Short label")
    values: dict[str, Any] = Field(default_factory=dict, description="Set bounds")
