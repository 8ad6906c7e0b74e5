"""Service layer for the equity screener API."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from marketdesk.screener.filter_state import (
    DEFAULT_CRITERIA,
    clear_filters,
    list_active_filters,
    remove_filter,
)
from marketdesk.screener.market_data import FMPGateway
from marketdesk.screener.pipeline import ScreenerOrchestrator
from marketdesk.screener.schemas import ActiveFilter, ScreenCriteria, SortSpec
from marketdesk.server.api.schemas.screener import ScreenerViewData


class ScreenerService:
    """Holds one orchestrator and the draft criteria edited between runs."""

    def __init__(self, orchestrator: ScreenerOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.criteria: ScreenCriteria = DEFAULT_CRITERIA

    def view(self) -> ScreenerViewData:
        return ScreenerViewData.from_state(
            self.orchestrator.state, self.orchestrator.page()
        )

    async def run(self, criteria: ScreenCriteria) -> ScreenerViewData:
        self.criteria = criteria
        logger.info(
            "Starting screen with {count} active filters",
            count=len(list_active_filters(criteria)),
        )
        await self.orchestrator.run_screen(criteria.coarse, criteria.fine)
        return self.view()

    def reset(self) -> ScreenerViewData:
        self.criteria = clear_filters()
        self.orchestrator.reset()
        return self.view()

    def show_page(self, page: Optional[int] = None) -> ScreenerViewData:
        if page is not None:
            self.orchestrator.set_page(page)
        return self.view()

    def sort(self, field: str) -> SortSpec:
        return self.orchestrator.set_sort(field)

    def active_filters(self) -> list[ActiveFilter]:
        return list_active_filters(self.criteria)

    def remove_filter(self, filter_id: str) -> ScreenCriteria:
        self.criteria = remove_filter(self.criteria, filter_id)
        return self.criteria

    def clear_filters(self) -> ScreenCriteria:
        self.criteria = clear_filters()
        return self.criteria


_service: Optional[ScreenerService] = None


def get_screener_service() -> ScreenerService:
    """Process-wide service backed by the FMP gateway."""
    global _service
    if _service is None:
        _service = ScreenerService(ScreenerOrchestrator(FMPGateway()))
    return _service


async def close_screener_service() -> None:
    """Close the process-wide service's provider client, if one was created."""
    global _service
    if _service is None:
        return
    await _service.orchestrator.aclose()
    _service = None
    logger.info("Screener service closed")
