#!/usr/bin/env python3
"""Command-line interface for cross-device swing reconciliation."""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))


def load_config(config_path: str = "config/config.yaml") -> dict:
    """Load configuration from YAML file."""
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            return yaml.safe_load(f) or {}
    return {}


def _setup_logging(ctx: click.Context) -> None:
    from hitsync.utils.logging_config import setup_logging_from_config

    setup_logging_from_config(ctx.obj["config"], ctx.obj["verbose"])


def _pipeline_config(ctx: click.Context, window: Optional[float] = None):
    """Build a PipelineConfig from the loaded YAML, reporting bad values."""
    from hitsync.pipeline.orchestrator import PipelineConfig

    cfg = dict(ctx.obj["config"])
    if window is not None:
        cfg["reconciliation"] = {**(cfg.get("reconciliation") or {}), "window_seconds": window}

    try:
        return PipelineConfig.from_config(cfg)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        ctx.exit(1)


def _format_value(value, suffix: str = "", digits: int = 1) -> str:
    if value is None:
        return "-"
    return f"{value:.{digits}f}{suffix}"


def _echo_result(result, limit: Optional[int], as_json: bool) -> None:
    """Print a ReconciliationResult as a session table or JSON."""
    if as_json:
        click.echo(json.dumps(result.to_dict(limit=limit), indent=2))
        return

    sessions = result.sessions if limit is None else result.sessions[:limit]
    click.echo(
        f"{len(result.sessions)} sessions, {result.paired_count} paired swings, "
        f"{len(result.unmatchable)} swings without a usable timestamp"
    )
    for session in sessions:
        metrics = session.metrics
        click.echo(
            f"  {session.date.isoformat()}  {session.session_type.value:<9}  "
            f"swings={session.total_swings} paired={session.paired_count}"
        )
        if metrics is None:
            continue
        click.echo(
            f"      EV avg/max: {_format_value(metrics.avg_exit_velocity)}/"
            f"{_format_value(metrics.max_exit_velocity)} mph  "
            f"bat avg: {_format_value(metrics.avg_bat_speed)} mph  "
            f"hard hit: {_format_value(metrics.hard_hit_pct, '%')}  "
            f"squared up: {_format_value(metrics.squared_up_pct, '%')}"
        )
        if metrics.whiff_by_pitch_speed:
            buckets = ", ".join(
                f"{b.label}: {b.whiff_pct:.0f}%" for b in metrics.whiff_by_pitch_speed
            )
            click.echo(f"      whiff by pitch speed: {buckets}")
    if limit is not None and len(result.sessions) > limit:
        click.echo(f"  ... {len(result.sessions) - limit} older sessions not shown")


@click.group()
@click.option(
    "--config",
    "-c",
    default="config/config.yaml",
    help="Path to configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool) -> None:
    """Hitting Sync.

    Reconcile swings recorded by a bat sensor, a batted-ball tracker and a
    combined unit into calendar-day training sessions.
    """
    ctx.ensure_object(dict)

    # Load config
    cfg = load_config(config)
    ctx.obj["config"] = cfg
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option(
    "--blast",
    "blast_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Bat-sensor CSV export",
)
@click.option(
    "--hittrax",
    "hittrax_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Ball-tracker CSV export",
)
@click.option(
    "--fullswing",
    "fullswing_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Combined-unit CSV export",
)
@click.option(
    "--window",
    "-w",
    type=float,
    default=None,
    help="Match window in seconds (overrides config)",
)
@click.option(
    "--limit",
    "-n",
    type=int,
    default=None,
    help="Show only the most recent N sessions",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def reconcile(
    ctx: click.Context,
    blast_path: str,
    hittrax_path: str,
    fullswing_path: Optional[str],
    window: Optional[float],
    limit: Optional[int],
    as_json: bool,
) -> None:
    """Reconcile device CSV exports into sessions."""
    from hitsync.pipeline.orchestrator import ReconciliationPipeline

    _setup_logging(ctx)
    pipeline_config = _pipeline_config(ctx, window)

    with ReconciliationPipeline(pipeline_config) as pipeline:
        result = pipeline.reconcile_csv(blast_path, hittrax_path, fullswing_path)

    _echo_result(result, limit, as_json)


@cli.command()
@click.option(
    "--athlete-id",
    "-a",
    required=True,
    help="Athlete ID",
)
@click.option(
    "--limit",
    "-n",
    type=int,
    default=None,
    help="Show only the most recent N sessions",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def sessions(ctx: click.Context, athlete_id: str, limit: Optional[int], as_json: bool) -> None:
    """Reconcile an athlete's swings from the local database."""
    from hitsync.pipeline.orchestrator import ReconciliationPipeline

    _setup_logging(ctx)
    pipeline_config = _pipeline_config(ctx)

    with ReconciliationPipeline(pipeline_config) as pipeline:
        result = pipeline.reconcile_athlete(athlete_id)

    _echo_result(result, limit, as_json)


@cli.command()
@click.option(
    "--athlete-id",
    "-a",
    required=True,
    help="Athlete ID in the remote data service",
)
@click.option(
    "--store/--no-store",
    default=True,
    help="Save fetched rows to the local database",
)
@click.option(
    "--limit",
    "-n",
    type=int,
    default=None,
    help="Show only the most recent N sessions",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def fetch(
    ctx: click.Context,
    athlete_id: str,
    store: bool,
    limit: Optional[int],
    as_json: bool,
) -> None:
    """Fetch an athlete's swings from the remote data service and reconcile them."""
    import requests

    from hitsync.pipeline.orchestrator import ReconciliationPipeline

    _setup_logging(ctx)
    pipeline_config = _pipeline_config(ctx)

    if not pipeline_config.service_url:
        click.echo("No service URL configured (service.url)", err=True)
        ctx.exit(1)

    with ReconciliationPipeline(pipeline_config) as pipeline:
        try:
            result = pipeline.fetch_athlete(athlete_id, store=store)
        except (requests.RequestException, ValueError) as e:
            click.echo(f"Fetch failed: {e}", err=True)
            ctx.exit(1)

    _echo_result(result, limit, as_json)


@cli.group()
def db() -> None:
    """Database management commands."""
    pass


@db.command("init")
@click.pass_context
def db_init(ctx: click.Context) -> None:
    """Initialize the database (create tables)."""
    from hitsync.database.schema import DEFAULT_DATABASE_URL, init_db

    cfg = ctx.obj["config"]
    db_url = (cfg.get("database") or {}).get("url", DEFAULT_DATABASE_URL)

    click.echo(f"Initializing database: {db_url}")
    init_db(db_url)
    click.echo("Database initialized successfully!")


@db.command("stats")
@click.pass_context
def db_stats(ctx: click.Context) -> None:
    """Show database statistics."""
    from hitsync.database.operations import SwingRepository
    from hitsync.database.schema import DEFAULT_DATABASE_URL, get_session, init_db

    cfg = ctx.obj["config"]
    db_url = (cfg.get("database") or {}).get("url", DEFAULT_DATABASE_URL)

    init_db(db_url)
    with get_session() as session:
        stats = SwingRepository(session).get_database_stats()

    click.echo("Database Statistics:")
    click.echo(f"  Athletes: {stats['athletes']}")
    click.echo(f"  Blast swings: {stats['blast_swings']}")
    click.echo(f"  HitTrax sessions: {stats['hittrax_sessions']}")
    click.echo(f"  HitTrax swings: {stats['hittrax_swings']}")
    click.echo(f"  Full Swing sessions: {stats['fullswing_sessions']}")
    click.echo(f"  Full Swing swings: {stats['fullswing_swings']}")


@db.command("import")
@click.option(
    "--athlete-id",
    "-a",
    required=True,
    help="Athlete the rows belong to",
)
@click.option(
    "--device",
    "-d",
    required=True,
    type=click.Choice(["blast", "hittrax", "fullswing"]),
    help="Device that produced the export",
)
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def db_import(ctx: click.Context, athlete_id: str, device: str, path: str) -> None:
    """Import a device CSV export into the local database."""
    from hitsync.database.operations import SwingRepository
    from hitsync.database.schema import DEFAULT_DATABASE_URL, get_session, init_db
    from hitsync.sources.csv_loader import load_device_csv

    _setup_logging(ctx)
    cfg = ctx.obj["config"]
    db_url = (cfg.get("database") or {}).get("url", DEFAULT_DATABASE_URL)

    rows = load_device_csv(path)

    init_db(db_url)
    with get_session() as session:
        inserted = SwingRepository(session).import_rows(
            athlete_id, device, rows, show_progress=not ctx.obj["verbose"]
        )

    click.echo(f"Imported {inserted} of {len(rows)} {device} rows for athlete {athlete_id}")


@cli.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show version information."""
    from hitsync import __version__

    click.echo("Hitting Sync")
    click.echo(f"Version: {__version__}")


if __name__ == "__main__":
    cli()
