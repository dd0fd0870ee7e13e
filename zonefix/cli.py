"""Command-line entry points for zone geometry reconciliation.

Usage:
    zonefix fix-zones [--dry-run] [--report PATH] [--workers N]
    zonefix verify-zones [--report PATH]
    zonefix fix-zone <id> ['[[[lng, lat], ...]]'] [--dry-run]

Every command ends with a printed report. Exit status is 0 when the pass
completes, even if some zones still need a manual fix, and 1 when the zone
store cannot be reached or the configuration is invalid.
"""

import logging
import signal
import threading
from pathlib import Path

import typer
from pydantic import ValidationError
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from zonefix.common.log_utils import configure_logging
from zonefix.config import DatabaseSettings, RepairConfig
from zonefix.errors import RecordNotFoundError, StoreConnectionError
from zonefix.models.domain import RecordOutcome
from zonefix.models.enums import DiagnosticStatus, RunMode
from zonefix.outputs.base import ReportWriter
from zonefix.outputs.csv import CSVReportWriter
from zonefix.outputs.report import ReportFormatter
from zonefix.repositories.engine import create_db_engine
from zonefix.repositories.repository import ZoneRepository
from zonefix.runner.reconciliation import ReconciliationRunner

logger = logging.getLogger(__name__)

app = typer.Typer(help="Validate and repair delivery zone geometry", no_args_is_help=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Validate and repair delivery zone geometry."""
    configure_logging()
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _open_store() -> ZoneRepository:
    """Connect to the zone store, exiting with status 1 if that is impossible."""
    try:
        settings = DatabaseSettings()
        repository = ZoneRepository(create_db_engine(settings))
    except (ValidationError, ArgumentError, NoSuchModuleError) as e:
        logger.error(f"Invalid database configuration: {e}")
        raise typer.Exit(1)

    try:
        repository.ping()
    except StoreConnectionError as e:
        logger.error(f"Cannot connect to zone store: {e}")
        repository.close()
        raise typer.Exit(1)

    return repository


def _repair_config(workers: int | None = None) -> RepairConfig:
    try:
        if workers is None:
            return RepairConfig()
        return RepairConfig(max_workers=workers)
    except ValidationError as e:
        logger.error(f"Invalid repair configuration: {e}")
        raise typer.Exit(1)


def _install_stop_handlers(stop_event: threading.Event) -> dict:
    """Set stop_event on SIGINT/SIGTERM so the pass finishes the current zone and stops."""

    def _handle_stop(signum, _frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping after the current zone")
        stop_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handle_stop)
    return previous


def _restore_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def _echo_outcome(formatter: ReportFormatter, outcome: RecordOutcome, mode: RunMode) -> None:
    for line in formatter.record_lines(outcome, mode):
        typer.echo(line)


def _write_report(
    outcomes: list[RecordOutcome],
    report: Path | None,
    writer: ReportWriter | None = None,
) -> None:
    if report is None:
        return
    writer = writer or CSVReportWriter()
    try:
        path = writer.write(outcomes, report)
    except OSError as e:
        logger.error(f"Failed to write report to {report}: {e}")
        return
    typer.echo(f"Report written to {path}")


def _run_pass(mode: RunMode, config: RepairConfig, report: Path | None) -> None:
    store = _open_store()
    stop_event = threading.Event()
    previous = _install_stop_handlers(stop_event)
    try:
        result = ReconciliationRunner(store, config=config).run(mode, stop_event)
    except StoreConnectionError as e:
        logger.error(f"Cannot read zones: {e}")
        raise typer.Exit(1)
    finally:
        _restore_handlers(previous)
        store.close()

    formatter = ReportFormatter()
    for outcome in result.outcomes:
        _echo_outcome(formatter, outcome, mode)
    typer.echo("")
    for line in formatter.summary_lines(result.summary, mode):
        typer.echo(line)

    _write_report(result.outcomes, report)


@app.command("fix-zones")
def fix_zones(
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        help="Report what would be fixed without writing anything",
    ),
    report: Path | None = typer.Option(
        None,
        "--report",
        "-r",
        help="Also write per-zone results to this CSV file",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of worker threads (overrides ZONEFIX_MAX_WORKERS)",
        min=1,
        max=32,
    ),
):
    """Check every zone and repair what can be repaired automatically."""
    mode = RunMode.DRY_RUN if dry_run else RunMode.APPLY
    _run_pass(mode, _repair_config(workers), report)


@app.command("verify-zones")
def verify_zones(
    report: Path | None = typer.Option(
        None,
        "--report",
        "-r",
        help="Also write per-zone results to this CSV file",
    ),
):
    """Report the validity of every zone without changing anything."""
    _run_pass(RunMode.VERIFY, _repair_config(), report)


@app.command("fix-zone")
def fix_zone(
    zone_id: str = typer.Argument(..., help="Id of the zone to fix"),
    coordinates: str | None = typer.Argument(
        None,
        help="Replacement polygon coordinates as JSON, e.g. '[[[0,0],[1,0],[1,1],[0,1],[0,0]]]'",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        help="Validate without writing anything",
    ),
    report: Path | None = typer.Option(
        None,
        "--report",
        "-r",
        help="Also write the result to this CSV file",
    ),
):
    """Fix one zone, or replace its coordinates with the ones supplied."""
    config = _repair_config()
    store = _open_store()
    try:
        outcome = ReconciliationRunner(store, config=config).fix_zone(
            zone_id, coordinates, dry_run=dry_run
        )
    except RecordNotFoundError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except ValueError as e:
        logger.error(f"Invalid coordinates: {e}")
        raise typer.Exit(1)
    except StoreConnectionError as e:
        logger.error(f"Cannot read zone {zone_id}: {e}")
        raise typer.Exit(1)
    finally:
        store.close()

    mode = RunMode.DRY_RUN if dry_run else RunMode.APPLY
    _echo_outcome(ReportFormatter(), outcome, mode)
    _write_report([outcome], report)

    if outcome.failed or outcome.diagnostic.status is DiagnosticStatus.INVALID:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
