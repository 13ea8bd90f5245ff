"""Typer CLI application for MetaExchange."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import MetaExchangeConfig, get_config
from metaexchange.core.models import InvalidInputError
from metaexchange.data.loader import SnapshotFormatError
from metaexchange.logging_config import configure_from_settings
from metaexchange.service.quote import NoLiquidityError, QuoteService
from metaexchange.service.snapshot import load_snapshot

app = typer.Typer(
    name="metaexchange",
    help="Best execution across multiple BTC/EUR order books",
    add_completion=False,
)

console = Console()


def _resolve_config(
    data: Optional[Path],
    balances: Optional[Path],
    verbose: bool,
) -> MetaExchangeConfig:
    """Apply command-line overrides on top of the environment config."""
    update = {}
    if data is not None:
        update["data_path"] = data
    if balances is not None:
        update["balances_path"] = balances
    if verbose:
        update["log_level"] = "DEBUG"

    config = get_config().model_copy(update=update)
    configure_from_settings(config)
    return config


def _load_service(config: MetaExchangeConfig, seed: Optional[int]) -> QuoteService:
    try:
        snapshot = load_snapshot(config, seed=seed)
    except FileNotFoundError as e:
        console.print(f"[red]Snapshot file not found: {e.filename}[/red]")
        raise typer.Exit(1)
    except (SnapshotFormatError, InvalidInputError) as e:
        console.print(f"[red]Error loading snapshot: {e}[/red]")
        raise typer.Exit(1)
    return QuoteService(snapshot=snapshot, display=config.display)


@app.command()
def quote(
    amount: float = typer.Argument(..., help="Amount of BTC to buy or sell"),
    side: str = typer.Option("buy", "--side", "-s", help="Trade side: buy or sell"),
    data: Optional[Path] = typer.Option(None, "--data", "-d", help="Order book snapshot file"),
    balances: Optional[Path] = typer.Option(None, "--balances", "-b", help="Venue balances JSON file"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for random balances"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Find the best execution path for an amount."""
    config = _resolve_config(data, balances, verbose)
    service = _load_service(config, seed)

    try:
        plan = service.quote(amount, side)
    except InvalidInputError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2)
    except NoLiquidityError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(service.to_display_dict(plan)))
        return

    d = config.display.decimals
    base = config.display.base_asset
    quote_asset = config.display.quote_asset

    summary = (
        f"Side:            {plan.side.value}\n"
        f"Total Filled:    {round(plan.total_filled, d)} {base}\n"
        f"Total Price:     {round(plan.total_cost, d)} {quote_asset}\n"
        f"Average Price:   {round(plan.average_price, d)} {quote_asset}"
    )
    if plan.is_partial:
        summary += f"\n[yellow]Partial fill: {round(plan.total_filled, d)} of {amount} {base}[/yellow]"
    console.print(Panel(summary, title="Path found"))

    if amount > config.display.path_display_limit:
        console.print("[dim]Path is hidden due to large amount.[/dim]")
        return

    table = Table(title="Venue Fills")
    table.add_column("Exchange", style="cyan")
    table.add_column(f"Filled ({base})", justify="right")
    table.add_column(f"Avg Price ({quote_asset})", justify="right")
    table.add_column(f"Remaining {base}", justify="right")
    table.add_column(f"Remaining {quote_asset}", justify="right")

    for fill in plan.venue_fills:
        table.add_row(
            fill.venue_id,
            f"{fill.filled_amount:.{d}f}",
            f"{fill.average_price:,.{d}f}",
            f"{fill.remaining_base:.{d}f}",
            f"{fill.remaining_quote:,.{d}f}",
        )

    console.print(table)


@app.command()
def snapshot(
    data: Optional[Path] = typer.Option(None, "--data", "-d", help="Order book snapshot file"),
    balances: Optional[Path] = typer.Option(None, "--balances", "-b", help="Venue balances JSON file"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for random balances"),
):
    """Summarize the loaded order books and balances."""
    config = _resolve_config(data, balances, verbose=False)
    service = _load_service(config, seed)
    summary = service.snapshot.to_dict()

    console.print(Panel(
        f"Venues:        {summary['venues']}\n"
        f"Ask levels:    {summary['ask_levels']}\n"
        f"Bid levels:    {summary['bid_levels']}\n"
        f"Ask liquidity: {summary['ask_liquidity']:,.4f} {config.display.base_asset}\n"
        f"Bid liquidity: {summary['bid_liquidity']:,.4f} {config.display.base_asset}",
        title="Snapshot",
    ))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    data: Optional[Path] = typer.Option(None, "--data", "-d", help="Order book snapshot file"),
    balances: Optional[Path] = typer.Option(None, "--balances", "-b", help="Venue balances JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Serve the HTTP quote endpoint."""
    from metaexchange.api.server import run_server

    config = _resolve_config(data, balances, verbose)
    server_update = {}
    if host is not None:
        server_update["host"] = host
    if port is not None:
        server_update["port"] = port
    if server_update:
        config = config.model_copy(update={"server": config.server.model_copy(update=server_update)})

    console.print(f"[green]Serving on http://{config.server.host}:{config.server.port}[/green]")
    run_server(config)


@app.command()
def version():
    """Show version information."""
    from metaexchange import __version__

    console.print(f"MetaExchange v{__version__}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
