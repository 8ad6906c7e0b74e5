"""Tests for screener configuration loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from marketdesk.screener import constants
from marketdesk.screener.config import (
    FMPSettings,
    ScreenerSettings,
    get_screener_config_dir,
    load_screener_config,
    load_screener_settings,
)


def test_pipeline_yaml_is_found():
    assert (get_screener_config_dir() / "pipeline.yaml").exists()
    payload = load_screener_config("pipeline")
    assert payload["quote_batch_size"] == 50
    assert payload["gateway"]["max_concurrency"] == 1


def test_missing_config_is_empty():
    assert load_screener_config("does-not-exist") == {}


def test_settings_from_yaml():
    settings = load_screener_settings()
    assert settings.fundamental_limit == 100
    assert settings.page_size == 50
    assert settings.min_interval_s == 0.15
    assert settings.base_url == constants.FMP_BASE_URL


def test_settings_fall_back_to_constants():
    settings = ScreenerSettings.from_mapping({"fundamental_limit": "25", "gateway": None})
    assert settings.fundamental_limit == 25
    assert settings.quote_batch_size == constants.QUOTE_BATCH_SIZE
    assert settings.timeout_s == constants.GATEWAY_TIMEOUT_S


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("FMP_API_KEY", "from-env")
    assert FMPSettings().fmp_api_key == "from-env"


@pytest.mark.parametrize(
    "payload",
    [
        {"quote_batch_size": 0},
        {"quote_batch_size": 51},
        {"page_size": 0},
        {"fundamental_limit": -1},
        {"gateway": {"max_concurrency": 0}},
        {"gateway": {"min_interval_s": -0.5}},
    ],
)
def test_invalid_settings_rejected(payload):
    with pytest.raises(ValidationError):
        ScreenerSettings.from_mapping(payload)


def test_settings_are_frozen():
    with pytest.raises(ValidationError):
        ScreenerSettings().page_size = 10
