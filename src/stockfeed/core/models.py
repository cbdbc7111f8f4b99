"""Pydantic data models shared by every stockfeed layer."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

Symbol = str

# --- Enumerations ---


class Period(StrEnum):
    """Trailing-window labels accepted by history queries."""

    ONE_DAY = "1d"
    FIVE_DAYS = "5d"
    ONE_MONTH = "1mo"
    THREE_MONTHS = "3mo"
    SIX_MONTHS = "6mo"
    ONE_YEAR = "1y"
    MAX = "max"


_PERIOD_ROWS: dict[str, int] = {
    Period.ONE_DAY.value: 1,
    Period.FIVE_DAYS.value: 5,
    Period.ONE_MONTH.value: 30,
    Period.THREE_MONTHS.value: 90,
    Period.SIX_MONTHS.value: 180,
    Period.ONE_YEAR.value: 365,
}


def period_row_limit(period: str) -> int | None:
    """Number of most-recent rows a period label keeps.

    Returns None for unrecognised labels, meaning "all rows".
    """
    return _PERIOD_ROWS.get(str(period))


class StorageBackend(StrEnum):
    """Supported price store backends."""

    CSV = "csv"
    SQLITE = "sqlite"


# --- Symbol universe ---


class SymbolSpec(BaseModel):
    """A configured instrument: ticker plus display metadata."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    name: str
    sector: str = "Unknown"

    @field_validator("symbol")
    @classmethod
    def symbol_uppercase(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("symbol must not be empty")
        return v


DEFAULT_UNIVERSE: tuple[SymbolSpec, ...] = (
    SymbolSpec(symbol="AAPL", name="Apple Inc.", sector="Technology"),
    SymbolSpec(symbol="MSFT", name="Microsoft Corporation", sector="Technology"),
    SymbolSpec(symbol="GOOGL", name="Alphabet Inc.", sector="Technology"),
    SymbolSpec(symbol="AMZN", name="Amazon.com Inc.", sector="Consumer Cyclical"),
    SymbolSpec(symbol="TSLA", name="Tesla Inc.", sector="Consumer Cyclical"),
    SymbolSpec(symbol="NVDA", name="NVIDIA Corporation", sector="Technology"),
    SymbolSpec(symbol="META", name="Meta Platforms Inc.", sector="Technology"),
    SymbolSpec(symbol="JNJ", name="Johnson & Johnson", sector="Healthcare"),
    SymbolSpec(symbol="JPM", name="JPMorgan Chase & Co.", sector="Financial Services"),
    SymbolSpec(symbol="V", name="Visa Inc.", sector="Financial Services"),
    SymbolSpec(symbol="ADANIENT.NS", name="Adani Enterprises Ltd", sector="Industrials"),
    SymbolSpec(symbol="RELIANCE.NS", name="Reliance Industries Ltd", sector="Energy"),
    SymbolSpec(symbol="TCS.NS", name="Tata Consultancy Services Ltd", sector="Technology"),
    SymbolSpec(symbol="INFY.NS", name="Infosys Ltd", sector="Technology"),
    SymbolSpec(symbol="HDFCBANK.NS", name="HDFC Bank Ltd", sector="Financial Services"),
)


def resolve_universe(symbols: list[str] | None) -> list[SymbolSpec]:
    """Build the symbol list from an override, or return the default universe.

    Override symbols that appear in the default universe keep their display
    name and sector; unknown ones use the symbol as name and "Unknown" sector.
    """
    if not symbols:
        return list(DEFAULT_UNIVERSE)

    known = {spec.symbol: spec for spec in DEFAULT_UNIVERSE}
    result: list[SymbolSpec] = []
    for raw in symbols:
        sym = raw.strip().upper()
        if not sym:
            continue
        result.append(known.get(sym) or SymbolSpec(symbol=sym, name=sym))
    return result


# --- Price rows ---


def percent_change(open_price: float, close: float) -> float:
    """(close - open) / open * 100, or 0 when open is zero."""
    if not open_price:
        return 0.0
    return (close - open_price) / open_price * 100


class PriceRow(BaseModel):
    """One trading day for one symbol, as persisted in the price table."""

    model_config = ConfigDict(frozen=True)

    date: date
    symbol: Symbol
    name: str
    sector: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    adjusted_close: float
    price_change: float
    price_change_percent: float

    @field_validator("symbol")
    @classmethod
    def symbol_uppercase(cls, v: str) -> str:
        return v.upper()

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v

    @classmethod
    def from_ohlcv(
        cls,
        spec: SymbolSpec,
        day: date,
        open: float,
        high: float,
        low: float,
        close: float,
        volume: int,
        adjusted_close: float | None = None,
    ) -> PriceRow:
        """Build a row for ``spec``, deriving the change fields from open/close."""
        return cls(
            date=day,
            symbol=spec.symbol,
            name=spec.name,
            sector=spec.sector,
            open=open,
            high=high,
            low=low,
            close=close,
            volume=volume,
            adjusted_close=close if adjusted_close is None else adjusted_close,
            price_change=close - open,
            price_change_percent=percent_change(open, close),
        )


# --- Ingest bookkeeping ---


class IngestMetadata(BaseModel):
    """Sidecar record describing the most recent ingest run.

    Serialized with the camelCase keys of the on-disk JSON file.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    last_ingest: datetime = Field(alias="lastUpdate")
    symbol_count: int = Field(alias="totalCompanies", ge=0)
    row_count: int = Field(alias="dataPoints", ge=0)


class IngestReport(BaseModel):
    """Outcome of one bulk ingest run."""

    model_config = ConfigDict(frozen=True)

    success_count: int = 0
    error_count: int = 0
    total_rows: int = 0
    failed_symbols: list[Symbol] = Field(default_factory=list)


# --- Query results ---


class StockSummary(BaseModel):
    """Per-symbol view computed from the price table on each query."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    name: str
    sector: str
    period: str
    current_price: float
    previous_close: float
    price_history: list[PriceRow]

    @property
    def price_change(self) -> float:
        return self.current_price - self.previous_close

    @property
    def price_change_percent(self) -> float:
        return percent_change(self.previous_close, self.current_price)
