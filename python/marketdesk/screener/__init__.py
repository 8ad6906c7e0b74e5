"""Equity screener: coarse provider query, tiered enrichment, filters, sort, paging."""

from .pipeline import ScreenerOrchestrator

__all__ = ["ScreenerOrchestrator"]
