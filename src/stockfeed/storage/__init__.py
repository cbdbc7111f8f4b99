"""Price persistence: CSV flat table (default) and SQLite backends."""

from stockfeed.storage.base import COLUMNS, PriceStore, create_store
from stockfeed.storage.csv_store import CsvPriceStore
from stockfeed.storage.sqlite_store import SqlitePriceStore

__all__ = [
    "COLUMNS",
    "PriceStore",
    "CsvPriceStore",
    "SqlitePriceStore",
    "create_store",
]
