"""
ArbGuard CLI entry point.

Usage:
    # Run one detection cycle
    arbguard --once

    # Run N cycles back to back
    arbguard --cycles 20

    # Run with scheduler
    arbguard --scheduled

    # Show status / recent opportunities
    arbguard --status
    arbguard --recent 10
"""

import signal
import sys
import time
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from arbguard.arb.engine import ArbEngine, CycleResult
from arbguard.arb.evaluator import ConditionEvaluator
from arbguard.arb.ledger import OpportunityLedger
from arbguard.core.config import get_settings, load_detection_config, load_yaml_config
from arbguard.core.errors import ArbGuardError
from arbguard.core.fixedpoint import format_wad
from arbguard.core.logging import setup_logging, get_logger
from arbguard.domain.models import OpportunityRecord
from arbguard.providers.mock import MockPriceSource
from arbguard.services.persistence import create_ledger_store
from arbguard.services.scheduler import create_scheduler_service

console = Console()
logger = get_logger("cli")


def build_engine() -> ArbEngine:
    """Wire source, evaluator and (persisted) ledger from configuration."""
    settings = get_settings()
    config = load_yaml_config()

    store = create_ledger_store(settings)
    ledger = OpportunityLedger.load(store) if store is not None else OpportunityLedger()

    # Continue after the stored ledger instead of colliding with it
    start_height = (ledger.last_recorded_height or 0) + 1
    source = MockPriceSource.from_config(
        config.get("mock_source"),
        seed=settings.mock_seed,
        start_height=start_height,
    )

    evaluator = ConditionEvaluator(load_detection_config(config))
    return ArbEngine(source, evaluator, ledger, settings=settings)


def display_cycles(results: list[CycleResult]) -> None:
    """Display cycle outcomes in terminal."""
    table = Table(title="Detection Cycles")
    table.add_column("Height", justify="right", style="cyan")
    table.add_column("Result")
    table.add_column("Gap (bps)", justify="right")
    table.add_column("Opportunity", justify="right")
    table.add_column("Reason", style="dim")

    for result in results:
        evaluation = result.evaluation
        outcome = "[green]ACCEPTED[/green]" if result.accepted else "[red]rejected[/red]"
        table.add_row(
            str(result.height),
            outcome,
            "" if evaluation.price_gap_bps is None else str(evaluation.price_gap_bps),
            f"#{result.opportunity_id}" if result.recorded else "",
            "; ".join(evaluation.flags + result.errors),
        )

    console.print(table)


def display_opportunities(records: list[OpportunityRecord]) -> None:
    """Display ledger records in terminal."""
    if not records:
        console.print("[yellow]No opportunities recorded yet[/yellow]")
        return

    table = Table(title="Recent Opportunities")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Height", justify="right")
    table.add_column("Buy → Sell")
    table.add_column("Token")
    table.add_column("Gap (bps)", justify="right")
    table.add_column("Profit", justify="right", style="green")
    table.add_column("Executed")

    for record in records:
        table.add_row(
            str(record.id),
            str(record.detected_height),
            f"{record.buy_source} → {record.sell_source}",
            record.token,
            str(record.price_difference_bps),
            format_wad(record.profit_potential),
            "✓" if record.executed else "",
        )

    console.print(table)


def display_metrics(engine: ArbEngine) -> None:
    """Display engine status and ledger metrics."""
    status = engine.get_status()
    metrics = status["metrics"]

    table = Table(title="Performance")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Source", f"{status['source']} ({status['source_status']})")
    table.add_row("Tracked pairs", str(status["tracked_pairs"]))
    table.add_row("Opportunities", str(metrics["count"]))
    table.add_row("Total profit potential", format_wad(metrics["total_profit_potential"]))
    table.add_row("Average profit potential", format_wad(metrics["average_profit_potential"]))
    last_height = metrics["last_recorded_height"]
    table.add_row("Last recorded height", "-" if last_height is None else str(last_height))
    table.add_row("Last detector", metrics["last_detector"] or "-")

    console.print(table)


@click.command()
@click.option("--once", is_flag=True, help="Run one detection cycle and exit")
@click.option("--cycles", type=int, default=None, help="Run N cycles and exit")
@click.option("--scheduled", is_flag=True, help="Run cycles with scheduler")
@click.option("--status", is_flag=True, help="Show ledger metrics")
@click.option("--recent", type=int, default=None, help="Show the N most recent opportunities")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(
    once: bool,
    cycles: Optional[int],
    scheduled: bool,
    status: bool,
    recent: Optional[int],
    verbose: bool,
) -> None:
    """ArbGuard - Cross-source arbitrage opportunity validation"""

    log_level = "DEBUG" if verbose else None
    setup_logging(log_level=log_level)

    try:
        engine = build_engine()

        if status:
            display_metrics(engine)
            return

        if recent is not None:
            display_opportunities(engine.ledger.get_recent_opportunities(recent))
            return

        if once or cycles:
            results = engine.run_cycles(cycles or 1)
            display_cycles(results)
            display_metrics(engine)
            return

        if scheduled:
            run_scheduled(engine)
            return

    except ArbGuardError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}")
        logger.error(f"CLI aborted: {e.to_dict()}")
        sys.exit(1)

    ctx = click.get_current_context()
    click.echo(ctx.get_help())


def run_scheduled(engine: ArbEngine) -> None:
    """Run detection cycles with scheduler."""
    console.print("[bold]Starting ArbGuard scheduler...[/bold]")
    console.print("Press Ctrl+C to stop\n")

    scheduler = create_scheduler_service()
    scheduler.setup_engine(engine)
    scheduler.start()

    table = Table(title="Scheduled Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Next Run")
    for job in scheduler.get_jobs():
        table.add_row(job["name"], job["next_run"] or "N/A")
    console.print(table)

    def shutdown(signum, frame):
        console.print("\n[yellow]Shutting down...[/yellow]")
        scheduler.stop()
        display_metrics(engine)
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        while True:
            signal.pause()
    except AttributeError:
        # Windows doesn't have signal.pause
        while True:
            time.sleep(1)


if __name__ == "__main__":
    main()
