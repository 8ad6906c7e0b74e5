"""Equity screener API router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from marketdesk.screener.schemas import ScreenCriteria
from marketdesk.server.api.schemas.base import SuccessResponse
from marketdesk.server.api.schemas.screener import (
    ActiveFilterListData,
    RemoveFilterRequest,
    ScreenerViewData,
    SortData,
    SortRequest,
)
from marketdesk.server.services.screener_service import (
    ScreenerService,
    get_screener_service,
)


def create_screener_router() -> APIRouter:
    """Create screener router."""
    router = APIRouter(
        prefix="/screener",
        tags=["screener"],
        responses={400: {"description": "Bad request"}},
    )

    @router.post(
        "/run",
        response_model=SuccessResponse[ScreenerViewData],
        summary="Run the equity screener",
        description="Query candidates, enrich, filter and sort them.",
    )
    async def run_screener(
        criteria: ScreenCriteria,
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ScreenerViewData]:
        view = await service.run(criteria)
        if view.error:
            return SuccessResponse.create(data=view, msg="Screener run failed")
        return SuccessResponse.create(data=view, msg="Screener run completed")

    @router.post(
        "/reset",
        response_model=SuccessResponse[ScreenerViewData],
        summary="Reset the screener",
        description="Cancel any running screen and restore defaults.",
    )
    async def reset_screener(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ScreenerViewData]:
        return SuccessResponse.create(data=service.reset())

    @router.get(
        "/state",
        response_model=SuccessResponse[ScreenerViewData],
        summary="Get screener state",
        description="Get the published state and one page of results.",
    )
    async def get_screener_state(
        page: Optional[int] = Query(default=None, description="1-based page index"),
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ScreenerViewData]:
        return SuccessResponse.create(data=service.show_page(page))

    @router.post(
        "/sort",
        response_model=SuccessResponse[SortData],
        summary="Toggle result sort",
        description="Flip direction on the same field or sort a new field descending.",
    )
    async def sort_results(
        request: SortRequest,
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[SortData]:
        try:
            spec = service.sort(request.field)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return SuccessResponse.create(data=SortData(sort=spec, view=service.view()))

    @router.get(
        "/filters/active",
        response_model=SuccessResponse[ActiveFilterListData],
        summary="List active filters",
        description="Get the filter families set in the draft criteria.",
    )
    async def get_active_filters(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ActiveFilterListData]:
        return SuccessResponse.create(
            data=ActiveFilterListData(
                criteria=service.criteria, filters=service.active_filters()
            )
        )

    @router.post(
        "/filters/remove",
        response_model=SuccessResponse[ActiveFilterListData],
        summary="Remove a filter",
        description="Clear one filter family from the draft criteria.",
    )
    async def remove_active_filter(
        request: RemoveFilterRequest,
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ActiveFilterListData]:
        try:
            criteria = service.remove_filter(request.filter_id)
        except KeyError as exc:
            raise HTTPException(
                status_code=400, detail=f"Unknown filter id: {request.filter_id}"
            ) from exc
        return SuccessResponse.create(
            data=ActiveFilterListData(
                criteria=criteria, filters=service.active_filters()
            )
        )

    @router.post(
        "/filters/clear",
        response_model=SuccessResponse[ActiveFilterListData],
        summary="Clear filters",
        description="Restore the default draft criteria without re-running.",
    )
    async def clear_active_filters(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ActiveFilterListData]:
        return SuccessResponse.create(
            data=ActiveFilterListData(criteria=service.clear_filters(), filters=[])
        )

    return router
