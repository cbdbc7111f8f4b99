"""Custom exception hierarchy for stockfeed."""

from typing import Any


class StockfeedError(Exception):
    """Base exception for all stockfeed errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(StockfeedError):
    """Invalid or missing configuration.

    Raised by load_config() during startup and by the ingestor when the
    primary provider's API key is absent. Should be treated as fatal.

    Context keys:
        field: str — the config field that failed validation
        value: Any — the invalid value (redacted for secrets)
    """


class ProviderError(StockfeedError):
    """A single price provider failed to deliver data.

    Policy: the provider chain logs it and moves on to the next provider.

    Context keys:
        provider: str — "alpha_vantage", "yahoo_finance", ...
        symbol: str — the symbol being fetched
        url: str — the URL that was being fetched
    """


class ProviderExhaustedError(ProviderError):
    """Provider kept signalling rate limiting past the retry budget.

    Policy: fall back to the next provider in the chain.

    Context keys:
        attempts: int — number of requests made
        message: str — the provider's Note / Error Message text
    """


class ProviderUnavailableError(ProviderError):
    """Every provider in the chain failed for a symbol.

    Policy: count as a per-symbol ingestion failure; the run continues.

    Context keys:
        symbol: str — the symbol that could not be fetched
        providers: list[str] — providers tried, in order
    """


class IngestionInProgressError(StockfeedError):
    """A bulk ingest run is already active on this ingestor.

    Policy: reject the second trigger; the active run completes normally.
    """


class StorageError(StockfeedError):
    """Price store operation failed.

    Policy: raise immediately. Data integrity is critical.

    Context keys:
        operation: str — "append", "read", "metadata", etc.
        path: str — the file involved
    """


class StoreUnavailableError(StorageError):
    """The price table does not exist yet. Run an ingest first."""


class StoreEmptyError(StorageError):
    """The price table exists but holds no data rows."""


class SymbolNotFoundError(StockfeedError):
    """No stored rows match the requested symbol.

    Context keys:
        symbol: str — the (uppercased) symbol that was requested
    """
