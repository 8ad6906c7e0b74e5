"""Screener orchestrator: coarse query, enrichment, filter, sort, publish."""

from __future__ import annotations

import time
from typing import Any, Optional

from loguru import logger

from .config import ScreenerSettings, load_screener_settings
from .enrichment import enrich_candidates
from .filters import apply_filters
from .market_data import MarketDataGateway
from .pagination import paginate, total_pages
from .schemas import (
    CoarseFilter,
    FineFilter,
    Page,
    ScreenCriteria,
    ScreenerState,
    SortField,
    SortSpec,
)
from .sorting import SORT_FIELDS, sort_candidates, toggle_sort
from .tokens import OperationCounter, OperationToken


class ScreenerOrchestrator:
    """Runs screens against a gateway and publishes the latest result state.

    Each ``run_screen`` call takes a fresh operation token. Every state commit
    checks that token first, so a run that has been superseded by a newer run
    or by ``reset`` finishes without touching the published state.
    """

    def __init__(
        self,
        gateway: MarketDataGateway,
        settings: Optional[ScreenerSettings] = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings or load_screener_settings()
        self._counter = OperationCounter()
        self._sort = SortSpec()
        self._criteria = ScreenCriteria()
        self._state = self._initial_state()

    @property
    def state(self) -> ScreenerState:
        return self._state.model_copy(update={"results": list(self._state.results)})

    @property
    def criteria(self) -> ScreenCriteria:
        """Criteria of the most recently started run."""
        return self._criteria

    async def aclose(self) -> None:
        await self._gateway.aclose()

    def _initial_state(self) -> ScreenerState:
        return ScreenerState(
            page_size=self._settings.page_size,
            sort_field=self._sort.field,
            sort_direction=self._sort.direction,
        )

    def _with_defaults(self, coarse: CoarseFilter) -> CoarseFilter:
        update: dict[str, Any] = {}
        if coarse.is_actively_trading is None:
            update["is_actively_trading"] = True
        if coarse.limit is None:
            update["limit"] = self._settings.default_result_limit
        return coarse.model_copy(update=update) if update else coarse

    def _set(self, **changes: Any) -> None:
        state = self._state.model_copy(update=changes)
        state.total_results = len(state.results)
        state.total_pages = total_pages(len(state.results), state.page_size)
        self._state = state

    def _commit(self, token: OperationToken, stage: str, **changes: Any) -> bool:
        if not token.is_current():
            logger.debug(
                "Discarding {stage} of superseded run {token}",
                stage=stage,
                token=token.value,
            )
            return False
        self._set(**changes)
        return True

    async def run_screen(
        self,
        coarse: Optional[CoarseFilter] = None,
        fine: Optional[FineFilter] = None,
    ) -> None:
        """Run one screen; a newer call or ``reset`` supersedes this one."""
        coarse = self._with_defaults(coarse or CoarseFilter())
        fine = fine or FineFilter()
        token = self._counter.advance()
        self._criteria = ScreenCriteria(coarse=coarse, fine=fine)
        started = time.perf_counter()
        self._commit(
            token, "start", loading=True, enriching=False, error=None, current_page=1
        )

        try:
            candidates = await self._gateway.screen_candidates(coarse)
        except Exception as exc:
            if self._commit(
                token, "coarse error", loading=False, enriching=False, error=str(exc)
            ):
                logger.error(
                    "Screener run {token} failed during coarse query: {error}",
                    token=token.value,
                    error=exc,
                )
            return

        logger.info(
            "Screener run {token} fetched {count} coarse candidates",
            token=token.value,
            count=len(candidates),
        )
        if not self._commit(token, "coarse results", loading=False, enriching=True):
            return

        try:
            enrichment = await enrich_candidates(
                self._gateway,
                candidates,
                fine,
                token=token,
                batch_size=self._settings.quote_batch_size,
                fundamental_limit=self._settings.fundamental_limit,
            )
            if not enrichment.completed or not token.is_current():
                logger.debug("Screener run {token} superseded", token=token.value)
                return
            filtered = apply_filters(enrichment.candidates, fine)
            results = sort_candidates(filtered, self._sort.field, self._sort.direction)
        except Exception as exc:
            if self._commit(
                token, "stage error", loading=False, enriching=False, error=str(exc)
            ):
                logger.error(
                    "Screener run {token} failed after coarse query: {error}",
                    token=token.value,
                    error=exc,
                )
            return

        committed = self._commit(
            token,
            "results",
            results=results,
            current_page=1,
            loading=False,
            enriching=False,
            quote_batches=enrichment.quote_batches,
            quote_batches_failed=enrichment.quote_batches_failed,
            fundamentals_requested=enrichment.fundamentals_requested,
            fundamentals_enriched=enrichment.fundamentals_enriched,
            fundamentals_truncated=enrichment.fundamentals_truncated,
        )
        if committed:
            logger.info(
                "Screener run {token} published {count}/{total} candidates in {elapsed_ms}ms",
                token=token.value,
                count=len(results),
                total=len(candidates),
                elapsed_ms=int((time.perf_counter() - started) * 1000),
            )

    def reset(self) -> None:
        """Supersede any in-flight run and restore the initial state."""
        self._counter.advance()
        self._sort = SortSpec()
        self._criteria = ScreenCriteria()
        self._state = self._initial_state()
        logger.info("Screener state reset")

    def set_sort(self, field: SortField) -> SortSpec:
        """Toggle the sort spec and re-sort the published results."""
        if field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {field}")
        self._sort = toggle_sort(self._sort, field)
        self._set(
            results=sort_candidates(
                self._state.results, self._sort.field, self._sort.direction
            ),
            sort_field=self._sort.field,
            sort_direction=self._sort.direction,
            current_page=1,
        )
        return self._sort

    def set_page(self, index: int) -> int:
        """Move to ``index`` clamped to the available pages."""
        last = max(self._state.total_pages, 1)
        page_index = min(max(index, 1), last)
        self._set(current_page=page_index)
        return page_index

    def page(self) -> Page:
        return paginate(
            self._state.results, self._state.current_page, self._state.page_size
        )
