"""Price store protocol, shared column layout, and backend factory."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from stockfeed.core.config import StorageConfig
from stockfeed.core.exceptions import StorageError
from stockfeed.core.models import IngestMetadata, PriceRow, StorageBackend

# On-disk column order; matches PriceRow field order.
COLUMNS: tuple[str, ...] = (
    "Date",
    "Symbol",
    "Name",
    "Sector",
    "Open",
    "High",
    "Low",
    "Close",
    "Volume",
    "AdjustedClose",
    "PriceChange",
    "PriceChangePercent",
)


@runtime_checkable
class PriceStore(Protocol):
    """Persistence for price rows and the ingest metadata sidecar.

    The ingestor is the only writer; queries only read.
    """

    async def ensure_initialized(self) -> None:
        """Create storage with an empty price table if absent. Idempotent."""
        ...

    async def append(self, rows: list[PriceRow]) -> int:
        """Write rows to the table. Returns the number of rows written."""
        ...

    async def read_all(self) -> list[PriceRow]:
        """Load every stored row.

        Raises:
            StoreUnavailableError: the table does not exist.
            StoreEmptyError: the table has no data rows.
        """
        ...

    async def count_rows(self) -> int:
        """Number of data rows currently stored (0 when absent)."""
        ...

    async def read_metadata(self) -> IngestMetadata | None:
        """Return the last ingest record, or None if never written."""
        ...

    async def write_metadata(self, meta: IngestMetadata) -> None:
        """Overwrite the ingest record."""
        ...


def row_values(row: PriceRow) -> tuple:
    """Flatten a PriceRow into COLUMNS order."""
    return (
        row.date.isoformat(),
        row.symbol,
        row.name,
        row.sector,
        row.open,
        row.high,
        row.low,
        row.close,
        row.volume,
        row.adjusted_close,
        row.price_change,
        row.price_change_percent,
    )


async def create_store(config: StorageConfig) -> PriceStore:
    """Create and initialize a price store based on configuration."""
    if config.backend == StorageBackend.CSV:
        from stockfeed.storage.csv_store import CsvPriceStore

        store: PriceStore = CsvPriceStore(config.data_dir)
    elif config.backend == StorageBackend.SQLITE:
        from stockfeed.storage.sqlite_store import SqlitePriceStore

        store = SqlitePriceStore(config.sqlite_path)
    else:
        raise StorageError(
            f"Unsupported storage backend: {config.backend}",
            context={"operation": "create_store", "backend": str(config.backend)},
        )

    await store.ensure_initialized()
    return store
