"""
Command-line interface for Health Export Tasks.

This module provides CLI commands for starting workers and beat, checking
worker status, and running or previewing an export by hand.
"""

import click
import json
import sys
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from healthexport import LoggingNotifier, NullNotifier, PayloadTransport, StaticDestination, run_export
from healthexport.exceptions import ConfigurationError, StoreError
from healthexport.window import format_instant, parse_instant, resolve_window

from healthexport_tasks.celery_app import celery_app, configure_logging
from healthexport_tasks.config import get_export_settings, get_store_settings
from healthexport_tasks.tasks.export import build_context, close_context


class EchoTransport(PayloadTransport):
    """Prints the payload instead of sending it"""

    def deliver(self, destination: str, body: str) -> None:
        click.echo(body)


def _parse_now(now: Optional[str]) -> datetime:
    if not now:
        return datetime.now(timezone.utc)
    try:
        return parse_instant(now)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 instant: {now}", param_hint="--now")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Health Export command-line interface."""
    if debug:
        configure_logging(debug=True)


@cli.command()
@click.option("--concurrency", "-c", default=1, help="Number of worker processes")
@click.option("--loglevel", "-l", default="info", help="Logging level")
@click.option("--queues", "-Q", default="export", help="Comma-separated list of queues to consume")
@click.option("--hostname", "-n", help="Worker hostname")
def worker(concurrency: int, loglevel: str, queues: str, hostname: Optional[str]) -> None:
    """Start Celery worker."""
    args = ["worker"]

    args.extend(["--concurrency", str(concurrency)])
    args.extend(["--loglevel", loglevel])
    args.extend(["--queues", queues])

    if hostname:
        args.extend(["--hostname", hostname])

    args.append("--events")

    click.echo(f"Starting Celery worker with args: {' '.join(args)}")
    celery_app.worker_main(args)


@cli.command()
@click.option("--loglevel", "-l", default="info", help="Logging level")
@click.option("--schedule", "-s", help="Path to schedule file")
def beat(loglevel: str, schedule: Optional[str]) -> None:
    """Start Celery beat scheduler."""
    args = ["beat"]

    args.extend(["--loglevel", loglevel])

    if schedule:
        args.extend(["--schedule", schedule])

    click.echo(f"Starting Celery beat with args: {' '.join(args)}")
    celery_app.start(args)


@cli.command()
def status() -> None:
    """Check status of Celery workers."""
    try:
        stats = celery_app.control.inspect().stats()

        if not stats:
            click.echo("❌ No active workers found")
            sys.exit(1)

        click.echo("✅ Active workers:")
        for name, info in stats.items():
            click.echo(f"  • {name}: {info.get('total', 'unknown')} tasks processed")

        active_queues = celery_app.control.inspect().active_queues()
        if active_queues:
            click.echo("\n📋 Active queues:")
            for name, queues in active_queues.items():
                queue_names = [q['name'] for q in queues]
                click.echo(f"  • {name}: {', '.join(queue_names)}")

    except Exception as e:
        click.echo(f"❌ Error checking status: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--now", help="Reference instant (ISO-8601); defaults to the current time")
@click.option("--dry-run", is_flag=True, help="Print the payload instead of sending it")
def export(now: Optional[str], dry_run: bool) -> None:
    """Run one export of last week's records."""
    reference = _parse_now(now)
    export_settings = get_export_settings()

    # Dry runs keep stdout to the payload alone
    if dry_run:
        overrides = {
            "transport": EchoTransport(),
            "destination": StaticDestination(export_settings.get_destination() or "stdout"),
            "notifier": NullNotifier(),
        }
    else:
        overrides = {"notifier": LoggingNotifier()}

    try:
        context = build_context(export_settings, get_store_settings(), **overrides)
    except (ConfigurationError, StoreError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    try:
        result = run_export(context, reference)
    finally:
        close_context(context)

    summary = result.to_dict()
    if not result.succeeded:
        click.echo(f"❌ Export failed ({summary['error_type']}): {summary['error']}", err=True)
        sys.exit(1)

    click.echo(
        f"✅ Exported {summary['total_records']} records "
        f"({len(summary['record_types'])} types) for "
        f"{summary['time_range_start']} to {summary['time_range_end']}",
        err=dry_run,
    )
    if summary['skipped_kinds']:
        click.echo(f"⚠️ Skipped: {', '.join(summary['skipped_kinds'])}", err=True)


@cli.command()
@click.option("--now", help="Reference instant (ISO-8601); defaults to the current time")
@click.option("--timezone", "tz_name", help="IANA timezone; defaults to EXPORT_TIMEZONE or the host zone")
def window(now: Optional[str], tz_name: Optional[str]) -> None:
    """Print the window the next export would cover."""
    reference = _parse_now(now)

    try:
        tz = ZoneInfo(tz_name) if tz_name else get_export_settings().get_timezone()
    except (ZoneInfoNotFoundError, ValueError):
        raise click.BadParameter(f"unknown timezone: {tz_name}", param_hint="--timezone")
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    resolved = resolve_window(reference, tz)
    click.echo(json.dumps({
        "now": format_instant(reference),
        "timeRangeStart": format_instant(resolved.start),
        "timeRangeEnd": format_instant(resolved.end),
    }, indent=2))


if __name__ == "__main__":
    cli()
