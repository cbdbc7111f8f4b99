"""SQLite-backed price store keyed by (symbol, date).

Alternative to the flat CSV table: re-ingesting a covered day replaces
the existing row instead of duplicating it, and the metadata record is
written in the same database. Uses aiosqlite for async access.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

import aiosqlite

from stockfeed.core.exceptions import StorageError, StoreEmptyError, StoreUnavailableError
from stockfeed.core.models import IngestMetadata, PriceRow
from stockfeed.storage.base import row_values

logger = logging.getLogger(__name__)

_SCHEMA = [
    """CREATE TABLE IF NOT EXISTS prices (
        date TEXT NOT NULL,
        symbol TEXT NOT NULL,
        name TEXT NOT NULL,
        sector TEXT NOT NULL,
        open REAL NOT NULL,
        high REAL NOT NULL,
        low REAL NOT NULL,
        close REAL NOT NULL,
        volume INTEGER NOT NULL,
        adjusted_close REAL NOT NULL,
        price_change REAL NOT NULL,
        price_change_percent REAL NOT NULL,
        PRIMARY KEY (symbol, date)
    )""",
    "CREATE INDEX IF NOT EXISTS idx_prices_symbol ON prices (symbol)",
    """CREATE TABLE IF NOT EXISTS ingest_metadata (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        last_update TEXT NOT NULL,
        total_companies INTEGER NOT NULL,
        data_points INTEGER NOT NULL
    )""",
]

_SELECT_ROWS = """SELECT date, symbol, name, sector, open, high, low, close, volume,
                         adjusted_close, price_change, price_change_percent
                  FROM prices ORDER BY rowid"""


class SqlitePriceStore:
    """SQLite implementation of PriceStore.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file. Created on initialize.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def ensure_initialized(self) -> None:
        try:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self._db_path) as db:
                for statement in _SCHEMA:
                    await db.execute(statement)
                await db.commit()
        except (OSError, aiosqlite.Error) as e:
            raise StorageError(
                f"Cannot initialize price database: {e}",
                context={"operation": "initialize", "path": self._db_path},
            ) from e

    async def append(self, rows: list[PriceRow]) -> int:
        """Store rows, replacing any existing row for the same (symbol, date)."""
        if not rows:
            return 0

        await self.ensure_initialized()
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.executemany(
                    """INSERT OR REPLACE INTO prices
                       (date, symbol, name, sector, open, high, low, close, volume,
                        adjusted_close, price_change, price_change_percent)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    [row_values(row) for row in rows],
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Cannot store price rows: {e}",
                context={"operation": "append", "path": self._db_path},
            ) from e

        logger.info("Stored %d price rows", len(rows))
        return len(rows)

    async def read_all(self) -> list[PriceRow]:
        if not Path(self._db_path).exists():
            raise StoreUnavailableError(
                "Price database not found. Run an ingest first.",
                context={"operation": "read", "path": self._db_path},
            )

        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(_SELECT_ROWS)
                records = await cursor.fetchall()
        except aiosqlite.OperationalError as e:
            raise StoreUnavailableError(
                f"Price table unavailable: {e}",
                context={"operation": "read", "path": self._db_path},
            ) from e

        if not records:
            raise StoreEmptyError(
                "Price table contains no rows",
                context={"operation": "read", "path": self._db_path},
            )

        return [
            PriceRow(
                date=date.fromisoformat(r[0]),
                symbol=r[1],
                name=r[2],
                sector=r[3],
                open=r[4],
                high=r[5],
                low=r[6],
                close=r[7],
                volume=r[8],
                adjusted_close=r[9],
                price_change=r[10],
                price_change_percent=r[11],
            )
            for r in records
        ]

    async def count_rows(self) -> int:
        if not Path(self._db_path).exists():
            return 0
        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute("SELECT COUNT(*) FROM prices")
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Cannot count price rows: {e}",
                context={"operation": "count", "path": self._db_path},
            ) from e
        return row[0] if row else 0

    async def read_metadata(self) -> IngestMetadata | None:
        if not Path(self._db_path).exists():
            return None
        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    "SELECT last_update, total_companies, data_points FROM ingest_metadata WHERE id = 1"
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Cannot read ingest metadata: {e}",
                context={"operation": "metadata", "path": self._db_path},
            ) from e
        if row is None:
            return None
        return IngestMetadata(
            last_ingest=datetime.fromisoformat(row[0]),
            symbol_count=row[1],
            row_count=row[2],
        )

    async def write_metadata(self, meta: IngestMetadata) -> None:
        await self.ensure_initialized()
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    """INSERT OR REPLACE INTO ingest_metadata
                       (id, last_update, total_companies, data_points)
                       VALUES (1, ?, ?, ?)""",
                    (meta.last_ingest.isoformat(), meta.symbol_count, meta.row_count),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Cannot write ingest metadata: {e}",
                context={"operation": "metadata", "path": self._db_path},
            ) from e
