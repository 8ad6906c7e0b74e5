"""Tests for the screener HTTP API."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import FakeGateway, make_candidate, make_quote, make_ratio
from marketdesk.screener.config import ScreenerSettings
from marketdesk.screener.pipeline import ScreenerOrchestrator
from marketdesk.server.main import create_app
from marketdesk.server.services import screener_service
from marketdesk.server.services.screener_service import (
    ScreenerService,
    get_screener_service,
)


@pytest.fixture
def gateway():
    candidates = [
        make_candidate(f"S{index:02d}", market_cap=float(index), price=10.0 + index)
        for index in range(60)
    ]
    return FakeGateway(
        candidates=candidates,
        quotes={c.symbol: make_quote(c.symbol, price=10.0 + i) for i, c in enumerate(candidates)},
        ratios={"S59": [make_ratio("S59", price_to_earnings_ratio=12.0)]},
    )


@pytest.fixture
def client(gateway):
    service = ScreenerService(ScreenerOrchestrator(gateway, settings=ScreenerSettings()))
    app = create_app()
    app.dependency_overrides[get_screener_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


def _run(client, payload=None):
    response = client.post("/screener/run", json=payload or {})
    assert response.status_code == 200
    return response.json()


def test_run_returns_first_page(client):
    body = _run(client, {"coarse": {"sector": "Technology"}})
    assert body["code"] == 0
    data = body["data"]
    assert data["total_results"] == 60
    assert data["total_pages"] == 2
    assert data["current_page"] == 1
    assert len(data["page"]["items"]) == 50
    assert data["page"]["items"][0]["symbol"] == "S59"


def test_run_with_fine_filter(client, gateway):
    data = _run(client, {"fine": {"peMax": 20}})["data"]
    assert [item["symbol"] for item in data["page"]["items"]] == ["S59"]
    assert data["fundamentals_requested"] == 60
    assert data["fundamentals_enriched"] == 1
    assert len(gateway.ratio_calls) == 60


def test_run_error_is_reported(client, gateway):
    gateway.screen_responses.append(RuntimeError("FMP API error: 401"))
    body = _run(client)
    assert body["msg"] == "Screener run failed"
    assert body["data"]["error"] == "FMP API error: 401"


def test_state_page_and_clamp(client):
    _run(client)
    second = client.get("/screener/state", params={"page": 2}).json()["data"]
    assert second["current_page"] == 2
    assert len(second["page"]["items"]) == 10
    clamped = client.get("/screener/state", params={"page": 7}).json()["data"]
    assert clamped["current_page"] == 2


def test_sort_toggle(client):
    _run(client)
    response = client.post("/screener/sort", json={"field": "market_cap"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["sort"] == {"field": "market_cap", "direction": "asc"}
    assert data["view"]["page"]["items"][0]["symbol"] == "S00"


def test_sort_rejects_unknown_field(client):
    response = client.post("/screener/sort", json={"field": "rsi"})
    assert response.status_code == 400


def test_reset(client):
    _run(client)
    data = client.post("/screener/reset").json()["data"]
    assert data["total_results"] == 0
    assert data["page"]["items"] == []
    active = client.get("/screener/filters/active").json()["data"]
    assert active["filters"] == []


def test_active_filters_and_remove(client):
    _run(
        client,
        {
            "server": {"sector": "Energy", "isActivelyTrading": True},
            "client": {"roeMin": 10, "priceVsSma50": "above", "sma50Percent": 2},
        },
    )
    active = client.get("/screener/filters/active").json()["data"]
    assert [item["id"] for item in active["filters"]] == ["sector", "roe", "sma50"]

    removed = client.post("/screener/filters/remove", json={"filter_id": "roe"})
    assert removed.status_code == 200
    data = removed.json()["data"]
    assert [item["id"] for item in data["filters"]] == ["sector", "sma50"]
    assert data["criteria"]["fine"]["roeMin"] is None


def test_remove_unknown_filter(client):
    response = client.post("/screener/filters/remove", json={"filter_id": "rsi"})
    assert response.status_code == 400


def test_clear_filters(client):
    _run(client, {"coarse": {"sector": "Energy"}})
    data = client.post("/screener/filters/clear").json()["data"]
    assert data["filters"] == []
    assert data["criteria"]["coarse"]["isActivelyTrading"] is True


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_shutdown_closes_shared_service(monkeypatch, gateway):
    service = ScreenerService(ScreenerOrchestrator(gateway, settings=ScreenerSettings()))
    monkeypatch.setattr(screener_service, "_service", service)

    with TestClient(create_app()) as test_client:
        assert test_client.get("/screener/state").status_code == 200
        assert not gateway.closed

    assert gateway.closed
    assert screener_service._service is None


def test_run_reports_quote_batches(client, gateway):
    gateway.failing_quote_batches.add(1)
    data = _run(client)["data"]
    assert (data["quote_batches"], data["quote_batches_failed"]) == (2, 1)
