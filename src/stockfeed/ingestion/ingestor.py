"""Bulk ingest: walk the symbol universe, fetch, append, record metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from stockfeed.core.exceptions import ConfigError, IngestionInProgressError, ProviderError
from stockfeed.core.models import IngestMetadata, IngestReport, SymbolSpec
from stockfeed.ingestion.freshness import Clock, utc_now
from stockfeed.prices.provider import ProviderChain
from stockfeed.storage.base import PriceStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BulkIngestor:
    """Sequential, throttled ingest of every configured symbol.

    Symbols are fetched one at a time in configured order, with a fixed
    delay between symbols (not after the last) to stay under provider
    rate limits. Rows for a symbol are appended as soon as they arrive.
    A symbol that no provider can serve is counted and skipped; it never
    aborts the run.

    After the loop the metadata record is rewritten unconditionally, even
    when every symbol failed.

    Parameters
    ----------
    chain : ProviderChain
        Providers to ask for each symbol, in priority order.
    store : PriceStore
        Destination table; this ingestor is its only writer.
    symbols : Sequence[SymbolSpec]
        The universe, in ingest order.
    api_key : str | None
        Primary provider key. A run without it fails with ConfigError
        before any request is made.
    inter_request_delay_ms : int
        Pause between consecutive symbols. Default: 15000.
    """

    def __init__(
        self,
        chain: ProviderChain,
        store: PriceStore,
        symbols: Sequence[SymbolSpec],
        api_key: str | None,
        inter_request_delay_ms: int = 15000,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utc_now,
    ) -> None:
        self._chain = chain
        self._store = store
        self._symbols = list(symbols)
        self._api_key = api_key
        self._delay = inter_request_delay_ms / 1000
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def symbols(self) -> list[SymbolSpec]:
        return list(self._symbols)

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def ingest_all(self) -> IngestReport:
        """Run one bulk ingest over the whole universe.

        Raises:
            ConfigError: The primary provider API key is missing.
            IngestionInProgressError: Another run is active on this ingestor.
        """
        if not self._api_key:
            raise ConfigError(
                "Alpha Vantage API key not configured",
                context={"field": "alpha_vantage.api_key"},
            )
        if self._lock.locked():
            raise IngestionInProgressError("An ingest run is already in progress")

        async with self._lock:
            return await self._run()

    async def _run(self) -> IngestReport:
        total = len(self._symbols)
        success_count = 0
        total_rows = 0
        failed: list[str] = []

        logger.info("Starting bulk fetch of %d symbols", total)
        for i, spec in enumerate(self._symbols):
            logger.info("(%d/%d) Fetching %s", i + 1, total, spec.symbol)
            try:
                rows = await self._chain.fetch_symbol(spec)
            except ProviderError as e:
                logger.error("Error fetching %s: %s", spec.symbol, e)
                failed.append(spec.symbol)
            else:
                written = await self._store.append(rows)
                total_rows += written
                success_count += 1
                logger.info(
                    "Appended %d rows for %s (%d this run)", written, spec.symbol, total_rows
                )

            if i < total - 1 and self._delay > 0:
                await self._sleep(self._delay)

        meta = IngestMetadata(
            last_ingest=self._clock(),
            symbol_count=total,
            row_count=await self._store.count_rows(),
        )
        await self._store.write_metadata(meta)

        logger.info(
            "Bulk fetch completed: %d ok, %d failed, %d rows appended",
            success_count, len(failed), total_rows,
        )
        return IngestReport(
            success_count=success_count,
            error_count=len(failed),
            total_rows=total_rows,
            failed_symbols=failed,
        )
