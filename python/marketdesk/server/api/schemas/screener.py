"""API schemas for equity screener endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

import marketdesk.screener.schemas as screener_schemas


class SortRequest(BaseModel):
    """Request payload for toggling the result sort."""

    field: str = Field(..., description="Sort field, e.g. market_cap or pe")


class RemoveFilterRequest(BaseModel):
    """Request payload for removing one filter family."""

    filter_id: str = Field(..., description="Filter family identifier")


class ScreenerViewData(BaseModel):
    """Screener status plus the rows of the current page."""

    total_results: int = Field(..., description="Result count")
    loading: bool = Field(..., description="Coarse query in flight")
    enriching: bool = Field(..., description="Enrichment in flight")
    error: Optional[str] = Field(default=None, description="Last run error")
    current_page: int = Field(..., description="Current page index")
    total_pages: int = Field(..., description="Total pages")
    sort_field: screener_schemas.SortField = Field(..., description="Sort field")
    sort_direction: screener_schemas.SortDirection = Field(
        ..., description="Sort direction"
    )
    quote_batches: int = Field(default=0, description="Quote batches requested")
    quote_batches_failed: int = Field(default=0, description="Quote batches that failed")
    fundamentals_requested: int = Field(
        default=0, description="Candidates eligible for fundamental data"
    )
    fundamentals_enriched: int = Field(
        default=0, description="Candidates that received fundamental data"
    )
    fundamentals_truncated: int = Field(
        default=0, description="Candidates past the fundamental cap"
    )
    page: screener_schemas.Page = Field(..., description="Current page")

    @classmethod
    def from_state(
        cls, state: screener_schemas.ScreenerState, page: screener_schemas.Page
    ) -> "ScreenerViewData":
        return cls(
            **state.model_dump(exclude={"results", "page_size"}),
            page=page,
        )


class SortData(BaseModel):
    """Response payload for a sort toggle."""

    sort: screener_schemas.SortSpec = Field(..., description="New sort spec")
    view: ScreenerViewData = Field(..., description="Re-sorted first page")


class ActiveFilterListData(BaseModel):
    """Response payload listing the filters that constrain the screen."""

    criteria: screener_schemas.ScreenCriteria = Field(..., description="Draft criteria")
    filters: list[screener_schemas.ActiveFilter] = Field(
        default_factory=list, description="Active filter families"
    )
