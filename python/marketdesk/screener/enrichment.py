"""Tiered enrichment of coarse screener candidates.

Tier 1 merges batched quotes into every candidate and derives the moving
average and 52-week proximity ratios. Tier 2 fetches one ratio snapshot per
symbol for the first ``fundamental_limit`` candidates, and only runs when a
fine filter needs fundamental data. Both tiers are best-effort: a failed call
is logged and the affected candidates keep empty fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from loguru import logger

from . import constants
from .filters import needs_fundamentals
from .market_data import MarketDataGateway
from .schemas import (
    Candidate,
    EnrichedCandidate,
    FineFilter,
    QuoteRecord,
    RatioRecord,
)
from .tokens import OperationToken

_RATIO_PASSTHROUGH_FIELDS: tuple[str, ...] = (
    "price_to_book_ratio",
    "price_to_sales_ratio",
    "price_to_free_cash_flows_ratio",
    "price_earnings_to_growth_ratio",
    "enterprise_value_multiple",
    "dividend_yield",
    "price_fair_value",
    "current_ratio",
    "quick_ratio",
    "cash_ratio",
    "debt_ratio",
    "debt_equity_ratio",
    "interest_coverage",
    "cash_flow_to_debt_ratio",
    "asset_turnover",
    "inventory_turnover",
    "receivables_turnover",
    "days_of_sales_outstanding",
    "cash_conversion_cycle",
    "free_cash_flow_per_share",
    "cash_per_share",
)

# Provider reports these as fractions; candidates carry percentages.
_RATIO_PERCENT_FIELDS: tuple[str, ...] = (
    "gross_profit_margin",
    "operating_profit_margin",
    "net_profit_margin",
    "return_on_assets",
    "return_on_equity",
    "return_on_capital_employed",
    "payout_ratio",
)


@dataclass(frozen=True)
class EnrichmentResult:
    """Enriched candidates plus counters describing how complete they are."""

    candidates: list[EnrichedCandidate]
    quote_batches: int = 0
    quote_batches_failed: int = 0
    fundamentals_requested: int = 0
    fundamentals_enriched: int = 0
    fundamentals_truncated: int = 0
    completed: bool = True


def chunked(items: list[str], size: int) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(start, chunk)`` pairs of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be at least 1")
    for start in range(0, len(items), size):
        yield start, items[start : start + size]


def _ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    if numerator is None or denominator is None or denominator <= 0:
        return None
    return numerator / denominator


def _percent(value: Optional[float]) -> Optional[float]:
    return None if value is None else value * 100


def merge_quote(candidate: EnrichedCandidate, quote: QuoteRecord) -> EnrichedCandidate:
    """Attach quote fields and the ratios derived from them."""
    price = quote.price if quote.price is not None else candidate.price
    volume = quote.volume if quote.volume is not None else candidate.volume
    return candidate.model_copy(
        update={
            "price": price,
            "volume": volume,
            "change": quote.change,
            "changes_percentage": quote.changes_percentage,
            "day_high": quote.day_high,
            "day_low": quote.day_low,
            "open": quote.open,
            "previous_close": quote.previous_close,
            "year_high": quote.year_high,
            "year_low": quote.year_low,
            "price_avg50": quote.price_avg50,
            "price_avg200": quote.price_avg200,
            "avg_volume": quote.avg_volume,
            "price_vs_sma50": _ratio(price, quote.price_avg50),
            "price_vs_sma200": _ratio(price, quote.price_avg200),
            "near_year_high": _ratio(price, quote.year_high),
            "near_year_low": _ratio(price, quote.year_low),
        }
    )


def merge_ratios(candidate: EnrichedCandidate, ratio: RatioRecord) -> EnrichedCandidate:
    """Attach one fundamental ratio snapshot."""
    update: dict[str, Optional[float]] = {
        field: getattr(ratio, field) for field in _RATIO_PASSTHROUGH_FIELDS
    }
    update.update(
        {field: _percent(getattr(ratio, field)) for field in _RATIO_PERCENT_FIELDS}
    )
    pe = ratio.price_to_earnings_ratio
    update["pe"] = pe
    if candidate.price is not None and pe is not None and pe > 0:
        update["eps"] = candidate.price / pe
    return candidate.model_copy(update=update)


def _is_stale(token: Optional[OperationToken], stage: str) -> bool:
    if token is None or token.is_current():
        return False
    logger.debug(
        "Stopping {stage} for superseded run {token}", stage=stage, token=token.value
    )
    return True


async def enrich_quotes(
    gateway: MarketDataGateway,
    candidates: list[EnrichedCandidate],
    token: Optional[OperationToken] = None,
    batch_size: int = constants.QUOTE_BATCH_SIZE,
) -> tuple[list[EnrichedCandidate], int, int, bool]:
    """Tier 1. Returns ``(candidates, batches, failed_batches, completed)``."""
    enriched = list(candidates)
    symbols = [candidate.symbol for candidate in enriched]
    batches = 0
    failed = 0
    for start, batch in chunked(symbols, batch_size):
        if _is_stale(token, "quote enrichment"):
            return enriched, batches, failed, False
        batches += 1
        try:
            quotes = await gateway.batch_quotes(batch)
        except Exception as exc:
            failed += 1
            logger.warning(
                "Failed to fetch quotes for batch {start}-{end}: {error}",
                start=start,
                end=start + len(batch),
                error=exc,
            )
            continue
        quote_map = {quote.symbol: quote for quote in quotes}
        for index in range(start, start + len(batch)):
            quote = quote_map.get(enriched[index].symbol)
            if quote is not None:
                enriched[index] = merge_quote(enriched[index], quote)
        logger.info(
            "Fetched quotes for batch {start}-{end} ({count}/{total} symbols)",
            start=start,
            end=start + len(batch),
            count=len(quote_map),
            total=len(batch),
        )
    return enriched, batches, failed, True


async def enrich_fundamentals(
    gateway: MarketDataGateway,
    candidates: list[EnrichedCandidate],
    token: Optional[OperationToken] = None,
    limit: int = constants.FUNDAMENTAL_LIMIT,
) -> tuple[list[EnrichedCandidate], int, bool]:
    """Tier 2. Returns ``(candidates, enriched_count, completed)``."""
    enriched = list(candidates)
    enriched_count = 0
    for index in range(min(limit, len(enriched))):
        if _is_stale(token, "fundamental enrichment"):
            return enriched, enriched_count, False
        symbol = enriched[index].symbol
        try:
            ratios = await gateway.fundamental_ratios(symbol, 1)
        except Exception as exc:
            logger.warning(
                "Failed to fetch ratios for {symbol}: {error}", symbol=symbol, error=exc
            )
            continue
        if not ratios:
            logger.debug("No ratio data for {symbol}", symbol=symbol)
            continue
        enriched[index] = merge_ratios(enriched[index], ratios[0])
        enriched_count += 1
    return enriched, enriched_count, True


async def enrich_candidates(
    gateway: MarketDataGateway,
    candidates: Iterable[Candidate],
    fine: FineFilter,
    token: Optional[OperationToken] = None,
    batch_size: int = constants.QUOTE_BATCH_SIZE,
    fundamental_limit: int = constants.FUNDAMENTAL_LIMIT,
) -> EnrichmentResult:
    """Run tier 1 and, when ``fine`` needs it, tier 2."""
    enriched = [EnrichedCandidate.from_candidate(candidate) for candidate in candidates]
    enriched, batches, failed, completed = await enrich_quotes(
        gateway, enriched, token=token, batch_size=batch_size
    )
    if not completed or not needs_fundamentals(fine):
        return EnrichmentResult(
            candidates=enriched,
            quote_batches=batches,
            quote_batches_failed=failed,
            completed=completed,
        )

    requested = min(fundamental_limit, len(enriched))
    truncated = len(enriched) - requested
    logger.info(
        "Fetching ratios for {requested} of {total} candidates",
        requested=requested,
        total=len(enriched),
    )
    enriched, enriched_count, completed = await enrich_fundamentals(
        gateway, enriched, token=token, limit=fundamental_limit
    )
    logger.info(
        "Enriched {count}/{requested} candidates with fundamental data",
        count=enriched_count,
        requested=requested,
    )
    return EnrichmentResult(
        candidates=enriched,
        quote_batches=batches,
        quote_batches_failed=failed,
        fundamentals_requested=requested,
        fundamentals_enriched=enriched_count,
        fundamentals_truncated=truncated,
        completed=completed,
    )
