"""Tests for the CLI module."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from stockfeed.cli import cli
from stockfeed.core.config import StockfeedConfig
from stockfeed.core.exceptions import (
    ConfigError,
    IngestionInProgressError,
    StoreUnavailableError,
    SymbolNotFoundError,
)
from stockfeed.core.models import IngestMetadata, IngestReport, StockSummary


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config(tmp_path):
    return StockfeedConfig(
        alpha_vantage={"api_key": "testkey"},
        ingest={"symbols": ["AAPL", "MSFT"]},
        storage={"data_dir": str(tmp_path / "stocks")},
    )


@pytest.fixture
def service():
    svc = AsyncMock()
    svc.close = AsyncMock()
    return svc


@pytest.fixture
def summary(consecutive_rows):
    history = sorted(consecutive_rows, key=lambda r: r.date, reverse=True)[:5]
    return StockSummary(
        symbol="AAPL",
        name="AAPL Corp",
        sector="Technology",
        period="5d",
        current_price=110.0,
        previous_close=109.0,
        price_history=history,
    )


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "daily stock price ingestion" in result.output
        for command in ("ingest", "history", "status", "symbols", "watch"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_unknown_command(self, runner):
        result = runner.invoke(cli, ["nonexistent"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------


class TestIngestCommand:
    def test_ingest_help(self, runner):
        result = runner.invoke(cli, ["ingest", "--help"])
        assert result.exit_code == 0
        assert "Fetch daily prices" in result.output
        assert "--force" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_ingest_runs(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.refresh = AsyncMock(
            return_value=IngestReport(
                success_count=2, error_count=0, total_rows=60, failed_symbols=[]
            )
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["ingest"])
        assert result.exit_code == 0
        assert "Ingested 60 rows for 2 symbols" in result.output
        service.refresh.assert_awaited_once_with(force=False)

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_ingest_reports_failures(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.refresh = AsyncMock(
            return_value=IngestReport(
                success_count=1, error_count=1, total_rows=30, failed_symbols=["MSFT"]
            )
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["ingest", "--force"])
        assert result.exit_code == 0
        assert "1 failed" in result.output
        assert "MSFT" in result.output
        service.refresh.assert_awaited_once_with(force=True)

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_ingest_up_to_date(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.refresh = AsyncMock(return_value=None)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["ingest"])
        assert result.exit_code == 0
        assert "up to date" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_ingest_missing_key(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.refresh = AsyncMock(side_effect=ConfigError("Alpha Vantage API key not configured"))
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["ingest"])
        assert result.exit_code == 1
        assert "API key not configured" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_ingest_already_running(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.refresh = AsyncMock(
            side_effect=IngestionInProgressError("An ingest run is already in progress")
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["ingest"])
        assert result.exit_code == 1
        assert "already in progress" in result.output

    @patch("stockfeed.core.load_config")
    def test_bad_config_exits(self, mock_load, runner):
        mock_load.side_effect = ConfigError("Config file not found: nope.yml")
        result = runner.invoke(cli, ["ingest"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


class TestHistoryCommand:
    def test_history_help(self, runner):
        result = runner.invoke(cli, ["history", "--help"])
        assert result.exit_code == 0
        assert "--period" in result.output
        assert "--format" in result.output

    def test_history_requires_symbol(self, runner):
        result = runner.invoke(cli, ["history"])
        assert result.exit_code != 0

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_history_json(self, mock_service_fn, mock_load, runner, config, service, summary):
        mock_load.return_value = config
        service.get_symbol_history = AsyncMock(return_value=summary)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["history", "aapl", "--period", "5d", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["symbol"] == "AAPL"
        assert data["current_price"] == 110.0
        assert data["previous_close"] == 109.0
        assert len(data["price_history"]) == 5
        assert data["price_history"][0]["date"] == "2024-01-10"
        service.get_symbol_history.assert_awaited_once_with("aapl", "5d")

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_history_table(self, mock_service_fn, mock_load, runner, config, service, summary):
        mock_load.return_value = config
        service.get_symbol_history = AsyncMock(return_value=summary)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["history", "AAPL"])
        assert result.exit_code == 0
        assert "AAPL" in result.output
        assert "2024-01-10" in result.output
        service.get_symbol_history.assert_awaited_once_with("AAPL", "1mo")

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_history_unknown_symbol(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.get_symbol_history = AsyncMock(
            side_effect=SymbolNotFoundError("No data found for symbol: XYZ")
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["history", "XYZ"])
        assert result.exit_code == 1
        assert "No data found for symbol: XYZ" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_history_before_ingest(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.get_symbol_history = AsyncMock(
            side_effect=StoreUnavailableError("Stock data file not found. Run an ingest first.")
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["history", "AAPL"])
        assert result.exit_code == 1
        assert "Run an ingest first" in result.output


# ---------------------------------------------------------------------------
# status / symbols / watch
# ---------------------------------------------------------------------------


class TestStatusCommand:
    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_status_after_ingest(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.last_update = AsyncMock(
            return_value=IngestMetadata(
                last_ingest=datetime(2024, 1, 20, 12, tzinfo=timezone.utc),
                symbol_count=2,
                row_count=60,
            )
        )
        service.needs_update = AsyncMock(return_value=False)
        service.store.count_rows = AsyncMock(return_value=60)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "2024-01-20" in result.output
        assert "60" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_status_never_ingested(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.last_update = AsyncMock(return_value=None)
        service.needs_update = AsyncMock(return_value=True)
        service.store.count_rows = AsyncMock(return_value=0)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "never" in result.output


class TestSymbolsCommand:
    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_symbols_lists_universe(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.query.available_symbols = AsyncMock(return_value=["AAPL"])
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["symbols"])
        assert result.exit_code == 0
        assert "AAPL" in result.output
        assert "MSFT" in result.output

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_symbols_without_store(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.query.available_symbols = AsyncMock(
            side_effect=StoreUnavailableError("Stock data file not found.")
        )
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["symbols"])
        assert result.exit_code == 0
        assert "MSFT" in result.output


class TestWatchCommand:
    def test_watch_rejects_zero_interval(self, runner):
        result = runner.invoke(cli, ["watch", "--interval", "0"])
        assert result.exit_code != 0

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_watch_uses_interval(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.run_forever = AsyncMock(return_value=None)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["watch", "--interval", "5"])
        assert result.exit_code == 0
        service.run_forever.assert_awaited_once_with(300)

    @patch("stockfeed.core.load_config")
    @patch("stockfeed.cli._create_service_async")
    def test_watch_defaults_to_config(self, mock_service_fn, mock_load, runner, config, service):
        mock_load.return_value = config
        service.run_forever = AsyncMock(return_value=None)
        mock_service_fn.return_value = service

        result = runner.invoke(cli, ["watch"])
        assert result.exit_code == 0
        service.run_forever.assert_awaited_once_with(15 * 60)
