"""Load screener configuration files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from marketdesk.utils.path import get_python_root_path

from . import constants


def get_screener_config_dir() -> Path:
    """Return the directory containing screener configs."""
    return Path(get_python_root_path()) / "configs" / "screener"


def load_screener_config(name: str) -> dict[str, Any]:
    """Load a screener configuration YAML file by name."""
    config_path = get_screener_config_dir() / f"{name}.yaml"
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


class FMPSettings(BaseSettings):
    """Credentials for the market data provider, read from env or ``.env``."""

    fmp_api_key: Optional[str] = None
    fmp_base_url: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


class ScreenerSettings(BaseModel):
    """Typed view over ``pipeline.yaml`` with constant fallbacks."""

    model_config = ConfigDict(frozen=True)

    quote_batch_size: int = Field(
        default=constants.QUOTE_BATCH_SIZE,
        ge=1,
        le=constants.QUOTE_BATCH_SIZE,
        description="Symbols per batch quote call",
    )
    fundamental_limit: int = Field(
        default=constants.FUNDAMENTAL_LIMIT,
        ge=0,
        description="Candidates eligible for ratio enrichment",
    )
    page_size: int = Field(default=constants.PAGE_SIZE, ge=1, description="Rows per page")
    default_result_limit: int = Field(
        default=constants.DEFAULT_RESULT_LIMIT,
        ge=1,
        description="Coarse result cap when the request sets none",
    )
    base_url: str = Field(default=constants.FMP_BASE_URL, description="Provider base URL")
    timeout_s: float = Field(
        default=constants.GATEWAY_TIMEOUT_S, gt=0, description="HTTP timeout"
    )
    max_concurrency: int = Field(
        default=constants.GATEWAY_MAX_CONCURRENCY,
        ge=1,
        description="Concurrent provider calls",
    )
    min_interval_s: float = Field(
        default=constants.GATEWAY_MIN_INTERVAL_S,
        ge=0,
        description="Minimum spacing between provider calls",
    )

    @classmethod
    def from_mapping(cls, payload: dict[str, Any]) -> "ScreenerSettings":
        gateway = payload.get("gateway") or {}
        values = {
            key: payload[key]
            for key in (
                "quote_batch_size",
                "fundamental_limit",
                "page_size",
                "default_result_limit",
            )
            if payload.get(key) is not None
        }
        values.update(
            {
                key: gateway[key]
                for key in ("base_url", "timeout_s", "max_concurrency", "min_interval_s")
                if gateway.get(key) is not None
            }
        )
        return cls.model_validate(values)


def load_screener_settings() -> ScreenerSettings:
    """Build pipeline settings from ``pipeline.yaml``."""
    return ScreenerSettings.from_mapping(
        load_screener_config(constants.PIPELINE_CONFIG_NAME)
    )
