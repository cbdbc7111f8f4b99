"""Read path: per-symbol history summaries from the price table."""

from __future__ import annotations

import logging

from stockfeed.core.exceptions import SymbolNotFoundError
from stockfeed.core.models import Period, PriceRow, StockSummary, period_row_limit
from stockfeed.storage.base import PriceStore

logger = logging.getLogger(__name__)


class QueryEngine:
    """Answers history queries by scanning the whole price table.

    There is no index: every call loads the store, filters by symbol and
    sorts. Results are never cached between calls.
    """

    def __init__(self, store: PriceStore) -> None:
        self._store = store

    async def get_symbol_history(
        self, symbol: str, period: str = Period.ONE_MONTH
    ) -> StockSummary:
        """Summarize a symbol's most recent rows.

        The period keeps the first N rows after sorting newest-first
        (1d=1, 5d=5, 1mo=30, 3mo=90, 6mo=180, 1y=365, anything else = all).
        This is a row count, not a calendar span: gaps in the data mean
        fewer calendar days are covered than the label suggests.

        Args:
            symbol: Ticker, matched case-insensitively.
            period: Trailing-window label.

        Returns:
            StockSummary with ``price_history`` newest first.

        Raises:
            SymbolNotFoundError: No stored rows for the symbol.
            StoreUnavailableError / StoreEmptyError: Nothing ingested yet.
        """
        wanted = symbol.strip().upper()
        rows = [r for r in await self._store.read_all() if r.symbol == wanted]
        if not rows:
            raise SymbolNotFoundError(
                f"No data found for symbol: {symbol}",
                context={"symbol": wanted},
            )

        rows.sort(key=lambda r: r.date, reverse=True)
        limit = period_row_limit(period)
        history = rows if limit is None else rows[:limit]

        latest = rows[0]
        previous = rows[1] if len(rows) > 1 else rows[0]
        logger.debug("%s: %d rows stored, returning %d for %s", wanted, len(rows), len(history), period)

        return StockSummary(
            symbol=wanted,
            name=latest.name,
            sector=latest.sector,
            period=str(period),
            current_price=latest.close,
            previous_close=previous.close,
            price_history=history,
        )

    async def available_symbols(self) -> list[str]:
        """Distinct symbols present in the table, sorted."""
        rows: list[PriceRow] = await self._store.read_all()
        return sorted({r.symbol for r in rows})
