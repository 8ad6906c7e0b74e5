"""Constants for the equity screener pipeline."""

QUOTE_BATCH_SIZE: int = 50
FUNDAMENTAL_LIMIT: int = 100
PAGE_SIZE: int = 50
DEFAULT_RESULT_LIMIT: int = 500

FMP_BASE_URL: str = "https://financialmodelingprep.com/stable"
GATEWAY_TIMEOUT_S: float = 20.0
GATEWAY_MAX_CONCURRENCY: int = 1
GATEWAY_MIN_INTERVAL_S: float = 0.15

DEFAULT_SORT_FIELD: str = "market_cap"
DEFAULT_SORT_DIRECTION: str = "desc"

PIPELINE_CONFIG_NAME: str = "pipeline"
