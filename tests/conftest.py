"""Shared pytest fixtures for stockfeed."""

from datetime import date, datetime, timedelta, timezone

import pytest

from stockfeed.core.models import PriceRow, SymbolSpec
from stockfeed.storage.csv_store import CsvPriceStore

# 2024-01-16 14:30 UTC, a US market open
FIRST_TIMESTAMP = 1705415400
DAY_SECONDS = 86400


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested waits."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


class FakeClock:
    """Mutable clock for freshness tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 20, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def apple() -> SymbolSpec:
    return SymbolSpec(symbol="AAPL", name="Apple Inc.", sector="Technology")


@pytest.fixture
def microsoft() -> SymbolSpec:
    return SymbolSpec(symbol="MSFT", name="Microsoft Corporation", sector="Technology")


@pytest.fixture
def make_row():
    """Factory for PriceRow with overridable defaults."""

    def _make(symbol: str = "AAPL", day: date = date(2024, 1, 16), close: float = 185.0, **overrides):
        spec = SymbolSpec(
            symbol=symbol,
            name=overrides.pop("name", f"{symbol} Corp"),
            sector=overrides.pop("sector", "Technology"),
        )
        values = dict(open=180.0, high=188.0, low=179.0, close=close, volume=1_000_000)
        values.update(overrides)
        return PriceRow.from_ohlcv(spec, day, **values)

    return _make


@pytest.fixture
def consecutive_rows(make_row):
    """Ten consecutive daily AAPL rows, 2024-01-01 .. 2024-01-10, close = 100 + day."""
    return [
        make_row("AAPL", date(2024, 1, d), close=100.0 + d)
        for d in range(1, 11)
    ]


@pytest.fixture
async def csv_store(tmp_path) -> CsvPriceStore:
    store = CsvPriceStore(str(tmp_path / "stocks"))
    await store.ensure_initialized()
    return store


def make_alpha_payload(days: list[str], base: float = 180.0) -> dict:
    """Build a TIME_SERIES_DAILY_ADJUSTED payload for the given ISO dates."""
    series = {}
    for i, day in enumerate(days):
        open_ = base + i
        series[day] = {
            "1. open": f"{open_:.4f}",
            "2. high": f"{open_ + 3:.4f}",
            "3. low": f"{open_ - 2:.4f}",
            "4. close": f"{open_ + 1:.4f}",
            "5. adjusted close": f"{open_ + 0.5:.4f}",
            "6. volume": str(1_000_000 + i),
            "7. dividend amount": "0.0000",
            "8. split coefficient": "1.0",
        }
    return {
        "Meta Data": {"1. Information": "Daily Time Series with Splits and Dividend Events"},
        "Time Series (Daily)": series,
    }


def make_yahoo_result(count: int, base: float = 400.0) -> dict:
    """Build a chart.result[0] object with ``count`` consecutive days."""
    timestamps = [FIRST_TIMESTAMP + i * DAY_SECONDS for i in range(count)]
    opens = [base + i for i in range(count)]
    return {
        "meta": {"currency": "USD", "symbol": "MSFT", "exchangeName": "NMS"},
        "timestamp": timestamps,
        "indicators": {
            "quote": [
                {
                    "open": opens,
                    "high": [o + 4 for o in opens],
                    "low": [o - 3 for o in opens],
                    "close": [o + 2 for o in opens],
                    "volume": [20_000_000 + i for i in range(count)],
                }
            ],
            "adjclose": [{"adjclose": [o + 1.5 for o in opens]}],
        },
    }


@pytest.fixture
def alpha_payload():
    """Factory: ISO dates -> Alpha Vantage daily adjusted payload."""
    return make_alpha_payload


@pytest.fixture
def yahoo_result():
    """Factory: day count -> Yahoo chart.result[0] object."""
    return make_yahoo_result
