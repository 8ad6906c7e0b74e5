"""Market data gateway used by the equity screener."""

from __future__ import annotations

import abc
import asyncio
import time
from typing import Any, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from . import constants
from .config import FMPSettings, ScreenerSettings, load_screener_settings
from .schemas import Candidate, CoarseFilter, QuoteRecord, RatioRecord


class GatewayError(RuntimeError):
    """Raised when the market data provider cannot serve a request."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class AsyncRateLimiter:
    """Ensure a minimum interval between external requests."""

    def __init__(self, min_interval_s: float) -> None:
        self._min_interval_s = min_interval_s
        self._lock = asyncio.Lock()
        self._last_call = 0.0

    async def wait(self) -> None:
        if self._min_interval_s <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait_for = self._min_interval_s - (now - self._last_call)
            if wait_for > 0:
                await asyncio.sleep(wait_for)
            self._last_call = time.monotonic()


class RequestThrottle:
    """Bound concurrent provider calls and space them by a fixed interval.

    Usage::

        async with throttle:
            response = await client.get(...)
    """

    def __init__(
        self,
        max_concurrency: int = constants.GATEWAY_MAX_CONCURRENCY,
        min_interval_s: float = constants.GATEWAY_MIN_INTERVAL_S,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.min_interval_s = min_interval_s
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._limiter = AsyncRateLimiter(min_interval_s)

    async def __aenter__(self) -> "RequestThrottle":
        await self._semaphore.acquire()
        try:
            await self._limiter.wait()
        except BaseException:
            self._semaphore.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._semaphore.release()


class MarketDataGateway(abc.ABC):
    """Provider operations the screening pipeline depends on."""

    @abc.abstractmethod
    async def screen_candidates(self, coarse: CoarseFilter) -> list[Candidate]:
        """Server-side filtered securities, bounded by ``coarse.limit``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def batch_quotes(self, symbols: list[str]) -> list[QuoteRecord]:
        """Quotes for up to 50 symbols; unknown symbols are omitted."""
        raise NotImplementedError

    @abc.abstractmethod
    async def fundamental_ratios(self, symbol: str, limit: int = 1) -> list[RatioRecord]:
        """Most recent ratio snapshots for one symbol; empty if unavailable."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release provider resources; a no-op unless overridden."""


class FMPGateway(MarketDataGateway):
    """Financial Modeling Prep implementation over ``httpx.AsyncClient``."""

    MAX_BATCH_SYMBOLS = constants.QUOTE_BATCH_SIZE

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[ScreenerSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self._settings = settings or load_screener_settings()
        env = FMPSettings()
        self._api_key = api_key or env.fmp_api_key
        base_url = env.fmp_base_url or self._settings.base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=self._settings.timeout_s
        )
        self._throttle = throttle or RequestThrottle(
            max_concurrency=self._settings.max_concurrency,
            min_interval_s=self._settings.min_interval_s,
        )

    async def __aenter__(self) -> "FMPGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def screen_candidates(self, coarse: CoarseFilter) -> list[Candidate]:
        params = coarse.to_query_params()
        params.setdefault("limit", str(self._settings.default_result_limit))
        rows = await self._get_list("/company-screener", params, label="screener")
        return self._parse_rows(rows, Candidate, "/company-screener")

    async def batch_quotes(self, symbols: list[str]) -> list[QuoteRecord]:
        if not symbols:
            return []
        if len(symbols) > self.MAX_BATCH_SYMBOLS:
            raise ValueError(
                f"batch_quotes accepts at most {self.MAX_BATCH_SYMBOLS} symbols"
            )
        params = {"symbols": ",".join(symbol.upper() for symbol in symbols)}
        rows = await self._get_list("/batch-quote", params, label="batch-quote")
        return self._parse_rows(rows, QuoteRecord, "/batch-quote")

    async def fundamental_ratios(self, symbol: str, limit: int = 1) -> list[RatioRecord]:
        params = {"symbol": symbol.upper(), "limit": str(limit)}
        rows = await self._get_list("/ratios", params, label=symbol)
        return self._parse_rows(rows, RatioRecord, "/ratios")

    async def _get_list(
        self, endpoint: str, params: dict[str, str], label: str
    ) -> list[Any]:
        if not self._api_key:
            raise GatewayError("FMP API key missing", endpoint=endpoint)
        query = {**params, "apikey": self._api_key}
        logger.debug("Fetching {endpoint} for {label}", endpoint=endpoint, label=label)
        async with self._throttle:
            started = time.monotonic()
            try:
                response = await self._client.get(endpoint, params=query)
            except httpx.HTTPError as exc:
                logger.error(
                    "Failed to fetch {endpoint} for {label}: {error}",
                    endpoint=endpoint,
                    label=label,
                    error=exc,
                )
                raise GatewayError(
                    f"FMP request failed: {exc}", endpoint=endpoint
                ) from exc
        elapsed_ms = round((time.monotonic() - started) * 1000)
        if response.is_error:
            logger.error(
                "FMP API error {status} on {endpoint} for {label}",
                status=response.status_code,
                endpoint=endpoint,
                label=label,
            )
            raise GatewayError(
                f"FMP API error: {response.status_code} {response.reason_phrase}",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        payload = response.json()
        if not isinstance(payload, list):
            raise GatewayError(
                f"Unexpected payload type {type(payload).__name__}",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        logger.info(
            "Fetched {endpoint} for {label} ({count} records, {elapsed_ms}ms)",
            endpoint=endpoint,
            label=label,
            count=len(payload),
            elapsed_ms=elapsed_ms,
        )
        return payload

    @staticmethod
    def _parse_rows(rows: list[Any], model: type, endpoint: str) -> list:
        parsed = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed {endpoint} row {symbol}: {error}",
                    endpoint=endpoint,
                    symbol=row.get("symbol"),
                    error=exc,
                )
        return parsed
