"""Alpha Vantage price source, the primary provider.

Uses the ``TIME_SERIES_DAILY_ADJUSTED`` function of the ``/query`` endpoint.
The free tier allows a handful of requests per minute; when exceeded the
API still answers HTTP 200 but swaps the payload for a ``Note`` (or
``Information``) message. ``AlphaVantageFetcher`` detects those and backs
off linearly before retrying.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Any, Awaitable, Callable

import httpx

from stockfeed.core.config import AlphaVantageConfig
from stockfeed.core.exceptions import ConfigError, ProviderError, ProviderExhaustedError
from stockfeed.core.models import PriceRow, SymbolSpec

logger = logging.getLogger(__name__)

_QUERY_PATH = "/query"
_TIME_SERIES_KEY = "Time Series (Daily)"
_SOFT_FAILURE_KEYS = ("Note", "Error Message", "Information")

# Linear backoff: 60s, 120s, 180s, 180s, ...
_BACKOFF_STEP_SECONDS = 60
_BACKOFF_CAP_SECONDS = 180

Sleep = Callable[[float], Awaitable[None]]


def backoff_seconds(attempt: int) -> int:
    """Wait before retrying after soft failure number ``attempt``."""
    return min(_BACKOFF_STEP_SECONDS * attempt, _BACKOFF_CAP_SECONDS)


def _soft_failure_message(data: dict[str, Any]) -> str | None:
    for key in _SOFT_FAILURE_KEYS:
        if data.get(key):
            return str(data[key])
    return None


class AlphaVantageFetcher:
    """Issues Alpha Vantage requests and retries on rate-limit responses.

    Retry policy:
        - Payload with Note / Error Message / Information: sleep
          ``min(60 * attempt, 180)`` seconds and retry, up to
          ``max_retry_attempts`` requests in total, then raise
          ``ProviderExhaustedError``.
        - Transport errors, timeouts, non-2xx, invalid JSON: raise
          ``ProviderError`` immediately (no retry).

    Backoff state is local to each ``fetch`` call; nothing is shared
    between symbols.
    """

    def __init__(
        self,
        config: AlphaVantageConfig,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.request_timeout),
        )
        self._sleep = sleep

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def max_attempts(self) -> int:
        return self._config.max_retry_attempts

    async def fetch(
        self,
        params: dict[str, str],
        attempt: int = 1,
        expected_key: str = _TIME_SERIES_KEY,
    ) -> dict[str, Any]:
        """Fetch one Alpha Vantage payload.

        Args:
            params: Query parameters without the API key.
            attempt: Attempt number to start counting from.
            expected_key: Top-level key a successful payload carries.

        Returns:
            The decoded JSON object. Payloads that carry neither a failure
            marker nor ``expected_key`` are returned as-is.

        Raises:
            ConfigError: No API key configured.
            ProviderExhaustedError: Still rate-limited after the last attempt.
            ProviderError: Transport or HTTP failure.
        """
        if not self._config.api_key:
            raise ConfigError(
                "Alpha Vantage API key not configured",
                context={"field": "alpha_vantage.api_key"},
            )

        query = {**params, "apikey": self._config.api_key}
        symbol = params.get("symbol", "")

        while True:
            logger.info(
                "Alpha Vantage request %s for %s (attempt %d/%d)",
                params.get("function"), symbol, attempt, self.max_attempts,
            )
            data = await self._get(query, symbol)

            message = _soft_failure_message(data)
            if message is None:
                if expected_key not in data:
                    logger.warning(
                        "Unexpected Alpha Vantage payload for %s, top-level keys: %s",
                        symbol, sorted(data)[:5],
                    )
                return data

            if attempt >= self.max_attempts:
                raise ProviderExhaustedError(
                    f"Alpha Vantage still rate-limited after {attempt} attempts: {message}",
                    context={
                        "provider": "alpha_vantage",
                        "symbol": symbol,
                        "attempts": attempt,
                        "message": message,
                    },
                )

            wait = backoff_seconds(attempt)
            logger.warning(
                "Alpha Vantage rate-limited for %s, waiting %ds before retry %d/%d: %s",
                symbol, wait, attempt + 1, self.max_attempts, message,
            )
            await self._sleep(wait)
            attempt += 1

    async def _get(self, query: dict[str, str], symbol: str) -> dict[str, Any]:
        try:
            response = await self._client.get(_QUERY_PATH, params=query)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Alpha Vantage HTTP {e.response.status_code} for {symbol}",
                context={
                    "provider": "alpha_vantage",
                    "symbol": symbol,
                    "status_code": e.response.status_code,
                },
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(
                f"Alpha Vantage request failed for {symbol}: {e}",
                context={"provider": "alpha_vantage", "symbol": symbol},
            ) from e
        except ValueError as e:
            raise ProviderError(
                f"Alpha Vantage returned invalid JSON for {symbol}",
                context={"provider": "alpha_vantage", "symbol": symbol},
            ) from e

        if not isinstance(data, dict):
            raise ProviderError(
                f"Alpha Vantage returned {type(data).__name__} for {symbol}",
                context={"provider": "alpha_vantage", "symbol": symbol},
            )
        return data


class AlphaVantageAdapter:
    """Transforms a ``TIME_SERIES_DAILY_ADJUSTED`` payload into PriceRows.

    Keeps only the trailing ``history_days`` dates of the (compact, ~100
    point) series.
    """

    def __init__(self, history_days: int = 30) -> None:
        self._history_days = history_days

    def adapt(self, raw_data: Any, spec: SymbolSpec) -> list[PriceRow]:
        series: dict[str, dict[str, str]] = raw_data.get(_TIME_SERIES_KEY) or {}
        if not series:
            return []

        days = sorted(series)[-self._history_days :]
        rows: list[PriceRow] = []
        for day in days:
            point = series[day]
            close = float(point["4. close"])
            rows.append(
                PriceRow.from_ohlcv(
                    spec,
                    date.fromisoformat(day),
                    open=float(point["1. open"]),
                    high=float(point["2. high"]),
                    low=float(point["3. low"]),
                    close=close,
                    volume=int(float(point.get("6. volume") or point.get("5. volume") or 0)),
                    adjusted_close=_parse_optional(point.get("5. adjusted close")),
                )
            )
        return rows


def _parse_optional(value: Any) -> float | None:
    """Parse a float, mapping missing/garbage/NaN to None."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(parsed) else parsed


class AlphaVantagePriceSource:
    """Primary price source backed by Alpha Vantage daily adjusted series."""

    name = "alpha_vantage"

    def __init__(
        self,
        config: AlphaVantageConfig,
        history_days: int = 30,
        fetcher: AlphaVantageFetcher | None = None,
        adapter: AlphaVantageAdapter | None = None,
    ) -> None:
        self._fetcher = fetcher or AlphaVantageFetcher(config)
        self._adapter = adapter or AlphaVantageAdapter(history_days)

    async def close(self) -> None:
        await self._fetcher.close()

    async def fetch_symbol(self, spec: SymbolSpec) -> list[PriceRow] | None:
        """Fetch the trailing daily series, or None when the payload has none."""
        data = await self._fetcher.fetch(
            {
                "function": "TIME_SERIES_DAILY_ADJUSTED",
                "symbol": spec.symbol,
                "outputsize": "compact",
            }
        )
        if not data.get(_TIME_SERIES_KEY):
            return None

        try:
            return self._adapter.adapt(data, spec)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed Alpha Vantage series for {spec.symbol}: {e}",
                context={"provider": self.name, "symbol": spec.symbol},
            ) from e
