"""Provider-agnostic daily price fetching.

Architecture
------------
Uses the adapter pattern to decouple price providers from the ingestor:

    Provider API → PriceAdapter → list[PriceRow] → PriceSource → ProviderChain

Built-in implementations:

- ``AlphaVantagePriceSource``: primary, daily adjusted series with
  rate-limit backoff (``AlphaVantageFetcher``).
- ``YahooFinancePriceSource``: fallback, chart API range buckets.

Adding a new provider:
1. Write an adapter that implements ``PriceAdapter.adapt(raw_data, spec)``.
2. Write a source that implements ``PriceSource.fetch_symbol(spec)``.
3. Append it to the ``ProviderChain``; the ingestor is unchanged.
"""

from stockfeed.prices.alpha_vantage import (
    AlphaVantageAdapter,
    AlphaVantageFetcher,
    AlphaVantagePriceSource,
    backoff_seconds,
)
from stockfeed.prices.provider import PriceAdapter, PriceSource, ProviderChain
from stockfeed.prices.yahoo import YahooChartAdapter, YahooFinancePriceSource, chart_range

__all__ = [
    # Protocols
    "PriceAdapter",
    "PriceSource",
    "ProviderChain",
    # Alpha Vantage
    "AlphaVantageAdapter",
    "AlphaVantageFetcher",
    "AlphaVantagePriceSource",
    "backoff_seconds",
    # Yahoo Finance
    "YahooChartAdapter",
    "YahooFinancePriceSource",
    "chart_range",
]
