"""FastAPI application exposing the equity screener."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from marketdesk.server.api.routers.screener import create_screener_router
from marketdesk.server.services.screener_service import close_screener_service


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_screener_service()


def create_app() -> FastAPI:
    app = FastAPI(
        title="MarketDesk API",
        version="0.1.0",
        description="Equity screener over Financial Modeling Prep data.",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(create_screener_router())
    return app


app = create_app()
