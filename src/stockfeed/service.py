"""Composition root: one StockDataService per process.

The service is built once at startup and handed to whatever drives it
(the CLI, a scheduler loop, or a web layer). It owns the store, the
provider chain, the ingestor, the freshness policy, and the query engine.
"""

from __future__ import annotations

import asyncio
import logging

from stockfeed.core.config import StockfeedConfig
from stockfeed.core.exceptions import IngestionInProgressError, ProviderError, StorageError
from stockfeed.core.models import IngestMetadata, IngestReport, Period, StockSummary
from stockfeed.ingestion.freshness import FreshnessPolicy
from stockfeed.ingestion.ingestor import BulkIngestor
from stockfeed.prices.alpha_vantage import AlphaVantagePriceSource
from stockfeed.prices.provider import ProviderChain
from stockfeed.prices.yahoo import YahooFinancePriceSource
from stockfeed.query.engine import QueryEngine
from stockfeed.storage.base import PriceStore, create_store

logger = logging.getLogger(__name__)


class StockDataService:
    """Wires the ingest and query paths around a single price store.

    Use via ``async with await StockDataService.from_config(config) as svc:``
    or call ``close()`` explicitly.
    """

    def __init__(
        self,
        store: PriceStore,
        chain: ProviderChain,
        ingestor: BulkIngestor,
        freshness: FreshnessPolicy,
        query: QueryEngine,
    ) -> None:
        self.store = store
        self.chain = chain
        self.ingestor = ingestor
        self.freshness = freshness
        self.query = query

    @classmethod
    async def from_config(cls, config: StockfeedConfig) -> StockDataService:
        """Build every component from configuration and initialize the store."""
        store = await create_store(config.storage)
        history_days = config.ingest.history_days
        chain = ProviderChain(
            [
                AlphaVantagePriceSource(config.alpha_vantage, history_days=history_days),
                YahooFinancePriceSource(config.yahoo, history_days=history_days),
            ]
        )
        ingestor = BulkIngestor(
            chain,
            store,
            config.ingest.universe(),
            api_key=config.alpha_vantage.api_key,
            inter_request_delay_ms=config.ingest.inter_request_delay_ms,
        )
        freshness = FreshnessPolicy(store, max_age_hours=config.ingest.freshness_hours)
        return cls(store, chain, ingestor, freshness, QueryEngine(store))

    async def __aenter__(self) -> StockDataService:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close provider HTTP clients."""
        await self.chain.close()

    async def initialize(self) -> None:
        await self.store.ensure_initialized()

    async def needs_update(self) -> bool:
        return await self.freshness.needs_update()

    async def ingest_all(self) -> IngestReport:
        return await self.ingestor.ingest_all()

    async def refresh(self, force: bool = False) -> IngestReport | None:
        """Ingest if the data is stale (or ``force``); None when skipped."""
        if not force and not await self.needs_update():
            logger.info("Stock data is up to date")
            return None
        logger.info("Stock data is outdated, fetching fresh data")
        return await self.ingest_all()

    async def get_symbol_history(
        self, symbol: str, period: str = Period.ONE_MONTH
    ) -> StockSummary:
        return await self.query.get_symbol_history(symbol, period)

    async def last_update(self) -> IngestMetadata | None:
        return await self.store.read_metadata()

    async def run_forever(self, interval_seconds: float) -> None:
        """Call ``refresh()`` every ``interval_seconds`` until cancelled.

        A tick that overlaps an active run, or whose run fails on storage
        or provider errors, is logged and the loop keeps going.
        """
        while True:
            try:
                await self.refresh()
            except IngestionInProgressError:
                logger.warning("Skipping scheduled refresh: ingest already running")
            except (StorageError, ProviderError) as e:
                logger.error("Scheduled refresh failed: %s", e)
            await asyncio.sleep(interval_seconds)
