"""Click-based CLI for stockfeed.

Thin wrapper around StockDataService. No business logic here: every
command builds the service from config and delegates.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from stockfeed.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


async def _create_service_async(config):
    """Build the service and initialize its store."""
    from stockfeed.service import StockDataService

    return await StockDataService.from_config(config)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error: {escape(str(exc))}[/red]")
    raise SystemExit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="STOCKFEED_CONFIG",
    default=None,
    help="Path to stockfeed.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="stockfeed")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """stockfeed: daily stock price ingestion and history queries."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# ingest
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    default=False,
    help="Ingest even if the data is still fresh.",
)
@click.pass_context
def ingest(ctx: click.Context, force: bool) -> None:
    """Fetch daily prices for every configured symbol."""
    from stockfeed.core import StockfeedError

    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        async with service:
            report = await service.refresh(force=force)

        if report is None:
            console.print("[green]✓[/green] Stock data is up to date, nothing to fetch")
            return

        console.print(
            f"[green]✓[/green] Ingested {report.total_rows} rows "
            f"for {report.success_count} symbols"
            + (f" ({report.error_count} failed)" if report.error_count else "")
        )
        if report.failed_symbols:
            console.print(f"[yellow]Failed: {', '.join(report.failed_symbols)}[/yellow]")

    try:
        _run_async(_run())
    except StockfeedError as exc:
        _fail(exc)


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option(
    "--period",
    "-p",
    type=str,
    default="1mo",
    show_default=True,
    help="Trailing window: 1d, 5d, 1mo, 3mo, 6mo, 1y, or max.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def history(ctx: click.Context, symbol: str, period: str, output_format: str) -> None:
    """Show stored price history for SYMBOL, newest first."""
    from stockfeed.core import StockfeedError

    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        async with service:
            return await service.get_symbol_history(symbol, period)

    try:
        summary = _run_async(_run())
    except StockfeedError as exc:
        _fail(exc)

    if output_format == "json":
        click.echo(json.dumps(summary.model_dump(mode="json"), indent=2))
    else:
        _output_history_table(summary)


def _output_history_table(summary) -> None:
    """Render a StockSummary as a Rich table."""
    change = summary.price_change
    color = "green" if change >= 0 else "red"
    console.print(
        f"[bold]{summary.symbol}[/bold] {summary.name} ({summary.sector})  "
        f"{summary.current_price:.2f} [{color}]{change:+.2f} "
        f"({summary.price_change_percent:+.2f}%)[/{color}]"
    )

    table = Table(title=f"{summary.symbol} ({summary.period})")
    table.add_column("Date")
    table.add_column("Open", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Close", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Change %", justify="right")

    for row in summary.price_history:
        table.add_row(
            row.date.isoformat(),
            f"{row.open:.2f}",
            f"{row.high:.2f}",
            f"{row.low:.2f}",
            f"{row.close:.2f}",
            f"{row.volume:,}",
            f"{row.price_change_percent:+.2f}",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show last ingest, freshness, and store size."""
    from stockfeed.core import StockfeedError

    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        async with service:
            return (
                config,
                await service.last_update(),
                await service.needs_update(),
                await service.store.count_rows(),
            )

    try:
        config, meta, stale, rows = _run_async(_run())
    except StockfeedError as exc:
        _fail(exc)

    table = Table(title="stockfeed Status")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Storage backend", config.storage.backend.value)
    table.add_row("Data directory", config.storage.data_dir)
    table.add_row("API key configured", "yes" if config.alpha_vantage.api_key else "no")
    table.add_section()
    table.add_row("Last ingest", meta.last_ingest.isoformat() if meta else "never")
    table.add_row("Symbols at last ingest", str(meta.symbol_count) if meta else "N/A")
    table.add_row("Rows stored", str(rows))
    table.add_row("Needs update", "yes" if stale else "no")

    console.print(table)


# ---------------------------------------------------------------------------
# symbols
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def symbols(ctx: click.Context) -> None:
    """List the configured universe and which symbols have stored data."""
    from stockfeed.core import StoreEmptyError, StoreUnavailableError, StockfeedError

    async def _run():
        config = _load_config(ctx)
        service = await _create_service_async(config)
        async with service:
            try:
                stored = set(await service.query.available_symbols())
            except (StoreUnavailableError, StoreEmptyError):
                stored = set()
            return config.ingest.universe(), stored

    try:
        universe, stored = _run_async(_run())
    except StockfeedError as exc:
        _fail(exc)

    table = Table(title="Symbol Universe")
    table.add_column("Symbol", style="bold")
    table.add_column("Name")
    table.add_column("Sector")
    table.add_column("Stored", justify="center")

    for spec in universe:
        table.add_row(
            spec.symbol,
            spec.name,
            spec.sector,
            "[green]✓[/green]" if spec.symbol in stored else "",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# watch
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--interval",
    "-i",
    type=click.IntRange(min=1),
    default=None,
    help="Minutes between freshness checks. Default: from config.",
)
@click.pass_context
def watch(ctx: click.Context, interval: int | None) -> None:
    """Refresh prices on a schedule until interrupted."""
    from stockfeed.core import StockfeedError

    async def _run():
        config = _load_config(ctx)
        minutes = interval or config.ingest.refresh_interval_minutes
        console.print(f"Checking stock data every [bold]{minutes}[/bold] minutes (Ctrl+C to stop)")
        service = await _create_service_async(config)
        async with service:
            await service.run_forever(minutes * 60)

    try:
        _run_async(_run())
    except KeyboardInterrupt:
        console.print("Stopped.")
    except StockfeedError as exc:
        _fail(exc)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
