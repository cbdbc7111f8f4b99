"""Yahoo Finance price source, used as the fallback provider.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx. The
chart endpoint takes a range bucket (``5d``, ``1mo``, ``3mo``) rather than
explicit dates, so the adapter clamps the result to the trailing window.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from stockfeed.core.config import YahooConfig
from stockfeed.core.exceptions import ProviderError
from stockfeed.core.models import PriceRow, SymbolSpec

logger = logging.getLogger(__name__)

_CHART_PATH = "/v8/finance/chart"
_USER_AGENT = "Mozilla/5.0 (compatible; stockfeed/0.1)"


def chart_range(history_days: int) -> str:
    """Pick the smallest chart range bucket covering ``history_days``."""
    if history_days <= 5:
        return "5d"
    if history_days <= 30:
        return "1mo"
    return "3mo"


def _first_mapping(values: Any) -> dict | None:
    """First element of a Yahoo indicator list, or None when it is not an object."""
    if not isinstance(values, list) or not values:
        return None
    first = values[0]
    return first if isinstance(first, dict) else None


class YahooChartAdapter:
    """Transforms a Yahoo Finance ``chart.result[0]`` object into PriceRows.

    Rows are rebuilt from the parallel ``timestamp`` / ``indicators.quote``
    arrays. Indices whose open or close is null are skipped; a null high
    or low falls back to the close, a null volume to 0.
    """

    def __init__(self, history_days: int = 30) -> None:
        self._history_days = history_days

    def adapt(self, raw_data: Any, spec: SymbolSpec) -> list[PriceRow]:
        if not isinstance(raw_data, dict):
            return []
        timestamps: list[int | None] = raw_data.get("timestamp") or []
        if not timestamps:
            return []

        indicators = raw_data.get("indicators")
        quotes = _first_mapping(indicators.get("quote")) if isinstance(indicators, dict) else None
        if quotes is None:
            return []
        adjclose_data = _first_mapping(indicators.get("adjclose")) or {}
        adj_closes: list[float | None] = adjclose_data.get("adjclose") or []

        opens = quotes.get("open") or []
        highs = quotes.get("high") or []
        lows = quotes.get("low") or []
        closes = quotes.get("close") or []
        volumes = quotes.get("volume") or []

        def at(values: list, i: int) -> Any:
            return values[i] if i < len(values) else None

        rows: list[PriceRow] = []
        for i, ts in enumerate(timestamps):
            o, c = at(opens, i), at(closes, i)
            if ts is None or o is None or c is None:
                continue

            h, lo, v, ac = at(highs, i), at(lows, i), at(volumes, i), at(adj_closes, i)
            close = float(c)
            rows.append(
                PriceRow.from_ohlcv(
                    spec,
                    datetime.fromtimestamp(ts, tz=timezone.utc).date(),
                    open=float(o),
                    high=float(h) if h is not None else close,
                    low=float(lo) if lo is not None else close,
                    close=close,
                    volume=int(v) if v is not None else 0,
                    adjusted_close=float(ac) if ac is not None else None,
                )
            )

        rows.sort(key=lambda r: r.date)
        return rows[-self._history_days :]


class YahooFinancePriceSource:
    """Fallback price source backed by the Yahoo Finance chart API.

    Parameters
    ----------
    config : YahooConfig
        Base URL and timeout.
    history_days : int
        Trailing window; also selects the chart range bucket.
    client : httpx.AsyncClient | None
        Injected client (tests). One is created and owned if None.
    """

    name = "yahoo_finance"

    def __init__(
        self,
        config: YahooConfig,
        history_days: int = 30,
        client: httpx.AsyncClient | None = None,
        adapter: YahooChartAdapter | None = None,
    ) -> None:
        self._history_days = history_days
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.request_timeout),
            headers={"User-Agent": _USER_AGENT},
        )
        self._adapter = adapter or YahooChartAdapter(history_days)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _fetch_chart(self, symbol: str) -> dict | None:
        """Fetch raw chart data for a single symbol.

        Returns the ``chart.result[0]`` object, or None on error.
        """
        url = f"{_CHART_PATH}/{quote(symbol, safe='')}"
        params = {
            "range": chart_range(self._history_days),
            "interval": "1d",
            "includePrePost": "false",
        }

        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Yahoo Finance HTTP error for %s: %s %s",
                symbol,
                e.response.status_code,
                e.response.text[:200],
            )
            return None
        except httpx.RequestError as e:
            logger.error("Yahoo Finance request error for %s: %s", symbol, e)
            return None
        except ValueError:
            logger.error("Yahoo Finance returned invalid JSON for %s", symbol)
            return None

        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            logger.warning("Unexpected Yahoo Finance payload for %s, no chart object", symbol)
            return None

        err = chart.get("error")
        if err:
            if isinstance(err, dict):
                logger.error(
                    "Yahoo Finance API error for %s: %s: %s",
                    symbol,
                    err.get("code"),
                    err.get("description"),
                )
            else:
                logger.error("Yahoo Finance API error for %s: %s", symbol, err)
            return None

        results = chart.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            logger.warning("Unexpected Yahoo Finance payload for %s, no chart result", symbol)
            return None

        return results[0]

    async def fetch_symbol(self, spec: SymbolSpec) -> list[PriceRow] | None:
        raw = await self._fetch_chart(spec.symbol)
        if raw is None:
            return None

        try:
            rows = self._adapter.adapt(raw, spec)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed Yahoo Finance chart for {spec.symbol}: {e}",
                context={"provider": self.name, "symbol": spec.symbol},
            ) from e

        logger.info("Yahoo Finance provided %d rows for %s", len(rows), spec.symbol)
        return rows
