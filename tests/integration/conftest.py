"""Integration test fixtures: real file I/O, HTTP mocked with respx."""

from __future__ import annotations

from pathlib import Path

import pytest

from stockfeed.core.config import StockfeedConfig


@pytest.fixture
def pipeline_config(tmp_path: Path) -> StockfeedConfig:
    """Two-symbol CSV configuration with throttling disabled."""
    return StockfeedConfig(
        alpha_vantage={"api_key": "integration-key", "max_retry_attempts": 1},
        ingest={
            "symbols": ["AAPL", "MSFT"],
            "history_days": 30,
            "inter_request_delay_ms": 0,
        },
        storage={"data_dir": str(tmp_path / "stocks")},
    )


@pytest.fixture
def sqlite_pipeline_config(pipeline_config: StockfeedConfig, tmp_path: Path) -> StockfeedConfig:
    """Same pipeline on the SQLite backend."""
    settings = pipeline_config.model_dump()
    settings["storage"] = {"backend": "sqlite", "sqlite_path": str(tmp_path / "stocks.db")}
    return StockfeedConfig(**settings)
