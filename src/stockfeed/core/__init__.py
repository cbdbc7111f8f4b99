"""stockfeed.core: foundation types, config, and exceptions."""

from stockfeed.core.config import (
    AlphaVantageConfig,
    IngestConfig,
    StockfeedConfig,
    StorageConfig,
    YahooConfig,
    load_config,
)
from stockfeed.core.exceptions import (
    ConfigError,
    IngestionInProgressError,
    ProviderError,
    ProviderExhaustedError,
    ProviderUnavailableError,
    StockfeedError,
    StorageError,
    StoreEmptyError,
    StoreUnavailableError,
    SymbolNotFoundError,
)
from stockfeed.core.models import (
    DEFAULT_UNIVERSE,
    IngestMetadata,
    IngestReport,
    Period,
    PriceRow,
    StockSummary,
    StorageBackend,
    Symbol,
    SymbolSpec,
    percent_change,
    period_row_limit,
    resolve_universe,
)

__all__ = [
    # Type aliases
    "Symbol",
    # Enums
    "Period",
    "StorageBackend",
    # Models
    "SymbolSpec",
    "PriceRow",
    "IngestMetadata",
    "IngestReport",
    "StockSummary",
    "DEFAULT_UNIVERSE",
    "percent_change",
    "period_row_limit",
    "resolve_universe",
    # Config
    "StockfeedConfig",
    "AlphaVantageConfig",
    "YahooConfig",
    "IngestConfig",
    "StorageConfig",
    "load_config",
    # Exceptions
    "StockfeedError",
    "ConfigError",
    "ProviderError",
    "ProviderExhaustedError",
    "ProviderUnavailableError",
    "IngestionInProgressError",
    "StorageError",
    "StoreUnavailableError",
    "StoreEmptyError",
    "SymbolNotFoundError",
]
