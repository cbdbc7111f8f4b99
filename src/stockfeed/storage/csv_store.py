"""Flat-file price store: one CSV table plus a JSON metadata sidecar.

Layout under ``data_dir``::

    stock_data.csv      Date,Symbol,Name,Sector,Open,...,PriceChangePercent
    last_update.json    {"lastUpdate": ..., "totalCompanies": ..., "dataPoints": ...}

Appends are blind: re-ingesting a date already on file adds a second row
for it. There is no locking; a single ingest run at a time is assumed.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from stockfeed.core.exceptions import StorageError, StoreEmptyError, StoreUnavailableError
from stockfeed.core.models import IngestMetadata, PriceRow
from stockfeed.storage.base import COLUMNS, row_values

logger = logging.getLogger(__name__)

TABLE_FILENAME = "stock_data.csv"
METADATA_FILENAME = "last_update.json"


def _row_from_record(record: dict[str, str]) -> PriceRow:
    return PriceRow(
        date=date.fromisoformat(record["Date"]),
        symbol=record["Symbol"],
        name=record["Name"],
        sector=record["Sector"],
        open=float(record["Open"]),
        high=float(record["High"]),
        low=float(record["Low"]),
        close=float(record["Close"]),
        volume=int(float(record["Volume"])),
        adjusted_close=float(record["AdjustedClose"]),
        price_change=float(record["PriceChange"]),
        price_change_percent=float(record["PriceChangePercent"]),
    )


class CsvPriceStore:
    """CSV-backed implementation of PriceStore.

    Parameters
    ----------
    data_dir : str
        Directory holding the table and sidecar. Created on initialize.
    """

    def __init__(self, data_dir: str) -> None:
        self._dir = Path(data_dir)
        self.table_path = self._dir / TABLE_FILENAME
        self.metadata_path = self._dir / METADATA_FILENAME

    async def ensure_initialized(self) -> None:
        """Create the directory and a header-only table if absent."""
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            if not self.table_path.exists():
                with open(self.table_path, "w", newline="", encoding="utf-8") as f:
                    csv.writer(f, lineterminator="\n").writerow(COLUMNS)
                logger.info("Created price table at %s", self.table_path)
        except OSError as e:
            raise StorageError(
                f"Cannot initialize price store: {e}",
                context={"operation": "initialize", "path": str(self.table_path)},
            ) from e

    async def append(self, rows: list[PriceRow]) -> int:
        """Append rows to the end of the table, without uniqueness checks."""
        if not rows:
            return 0

        if not self.table_path.exists():
            await self.ensure_initialized()

        try:
            with open(self.table_path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f, lineterminator="\n")
                writer.writerows(row_values(row) for row in rows)
        except OSError as e:
            raise StorageError(
                f"Cannot append to price table: {e}",
                context={"operation": "append", "path": str(self.table_path)},
            ) from e

        logger.info("Appended %d rows to %s", len(rows), self.table_path.name)
        return len(rows)

    async def read_all(self) -> list[PriceRow]:
        if not self.table_path.exists():
            raise StoreUnavailableError(
                "Stock data file not found. Run an ingest first.",
                context={"operation": "read", "path": str(self.table_path)},
            )

        try:
            with open(self.table_path, newline="", encoding="utf-8") as f:
                records = [r for r in csv.DictReader(f) if any(v for v in r.values() if v)]
        except OSError as e:
            raise StorageError(
                f"Cannot read price table: {e}",
                context={"operation": "read", "path": str(self.table_path)},
            ) from e

        if not records:
            raise StoreEmptyError(
                "Stock data file is empty or only contains headers",
                context={"operation": "read", "path": str(self.table_path)},
            )

        rows: list[PriceRow] = []
        for record in records:
            try:
                rows.append(_row_from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unparseable price row %s: %s", record, e)

        if not rows:
            raise StoreEmptyError(
                f"Stock data file has no readable rows ({len(records)} unparseable)",
                context={"operation": "read", "path": str(self.table_path)},
            )
        return rows

    async def count_rows(self) -> int:
        if not self.table_path.exists():
            return 0
        try:
            with open(self.table_path, encoding="utf-8") as f:
                lines = sum(1 for line in f if line.strip())
        except OSError as e:
            raise StorageError(
                f"Cannot count price rows: {e}",
                context={"operation": "count", "path": str(self.table_path)},
            ) from e
        return max(0, lines - 1)

    async def read_metadata(self) -> IngestMetadata | None:
        if not self.metadata_path.exists():
            return None
        try:
            return IngestMetadata.model_validate_json(
                self.metadata_path.read_text(encoding="utf-8")
            )
        except ValidationError as e:
            logger.warning("Ignoring unreadable ingest metadata %s: %s", self.metadata_path, e)
            return None
        except OSError as e:
            raise StorageError(
                f"Cannot read ingest metadata: {e}",
                context={"operation": "metadata", "path": str(self.metadata_path)},
            ) from e

    async def write_metadata(self, meta: IngestMetadata) -> None:
        payload = meta.model_dump(mode="json", by_alias=True)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self.metadata_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Cannot write ingest metadata: {e}",
                context={"operation": "metadata", "path": str(self.metadata_path)},
            ) from e
