"""CLI entry point: ecograph.

Subcommands:
    ecograph run [--dry-run]       # discover, diff, resolve, sort, publish
    ecograph order                 # print the published build order
    ecograph show NAME             # print one stored module record
    ecograph scan [PREFIX]         # list stored record names (ignores the index)
    ecograph scrub [--dry-run]     # remove records of packages gone upstream
"""

from __future__ import annotations

import json
import sys

import click
from dotenv import load_dotenv

from ecograph.config import Settings
from ecograph.core.logging import setup_logging
from ecograph.discovery.listing import RepositoryLister, discover
from ecograph.engines.cleanup import scrub
from ecograph.exceptions import ConfigError, EcographError
from ecograph.pipeline import RunReport, create_pipeline, create_store


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option("--database-url", default=None, help="SQLAlchemy URL of the state store")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log renderer",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=".env",
    show_default=True,
    help="Load ECOGRAPH_* variables from this file (existing env wins)",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    database_url: str | None,
    log_format: str | None,
    env_file: str,
) -> None:
    """ecograph: package catalog and deterministic build order."""
    load_dotenv(env_file)
    try:
        settings = Settings.from_env().with_overrides(
            database_url=database_url, log_format=log_format
        )
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    setup_logging(level="DEBUG" if verbose else settings.log_level, log_format=settings.log_format)
    ctx.obj = settings


@main.command("run")
@click.option("--dry-run", is_flag=True, help="Resolve and sort without writing to the store")
@click.option(
    "-r",
    "--repository",
    "repositories",
    multiple=True,
    help="Repository to list, in priority order (repeatable)",
)
@click.option("--shallow", is_flag=True, help="Only runtime dependencies (no build/test)")
@click.pass_obj
def run(settings: Settings, dry_run: bool, repositories: tuple[str, ...], shallow: bool) -> None:
    """Run the full pipeline once and publish the build order."""
    settings = settings.with_overrides(
        repositories=repositories or None,
        deep_scan=False if shallow else None,
    )
    pipeline = create_pipeline(settings)
    try:
        report = pipeline.run(dry_run=dry_run)
    except EcographError as e:
        _fail(str(e))
        return
    finally:
        pipeline.store.close()

    _print_report(report, dry_run)
    if report.publish_error:
        sys.exit(1)


def _print_report(report: RunReport, dry_run: bool) -> None:
    click.echo(f"Run {'(dry run) ' if dry_run else ''}{report.state.value}:")
    click.echo(f"  Discovered: {report.discovered}")
    click.echo(f"  Reused: {report.reused}")
    click.echo(f"  New: {report.new}  Stale: {report.stale}  Retried: {report.retried_unresolved}")
    click.echo(f"  Dropped (gone upstream): {len(report.dropped)}")
    click.echo(f"  Order entries: {len(report.order)}  Published: {report.published}")

    for warning in report.warnings:
        click.echo(f"  [!] {warning}")
    if report.unresolved:
        click.echo("  Unresolved: " + ", ".join(report.unresolved))
    if report.cyclic:
        click.echo("  Cyclic: " + ", ".join(report.cyclic))

    click.echo(f"\nPipeline summary (total: {report.progress.get('total_duration', 0)}s):")
    for p in report.progress.get("phases", []):
        status_icon = {
            "completed": "+",
            "failed": "!",
            "skipped": "-",
            "running": "~",
            "pending": ".",
        }.get(p["status"], "?")
        duration = f" ({p['duration']}s)" if p["duration"] else ""
        items = f" [{p['done']}/{p['total']}]" if p["total"] else ""
        detail = f" - {p['detail']}" if p["detail"] else ""
        click.echo(f"  [{status_icon}] {p['phase']}{items}{duration}{detail}")


@main.command("order")
@click.pass_obj
def order(settings: Settings) -> None:
    """Print the published build order, one identity per line."""
    store = create_store(settings)
    try:
        entries = store.ordered_list()
    except EcographError as e:
        _fail(str(e))
        return
    finally:
        store.close()
    for identity in entries:
        click.echo(identity)


@main.command("show")
@click.argument("name")
@click.pass_obj
def show(settings: Settings, name: str) -> None:
    """Print the stored record for NAME as JSON."""
    store = create_store(settings)
    try:
        record = store.get(name)
    except EcographError as e:
        _fail(str(e))
        return
    finally:
        store.close()
    if record is None:
        _fail(f"no valid record stored for {name}")
        return
    click.echo(json.dumps(record.to_dict(), indent=2))


@main.command("scan")
@click.argument("prefix", default="")
@click.pass_obj
def scan_cmd(settings: Settings, prefix: str) -> None:
    """List stored record names starting with PREFIX."""
    store = create_store(settings)
    try:
        names = store.scan(prefix)
    except EcographError as e:
        _fail(str(e))
        return
    finally:
        store.close()
    for name in names:
        click.echo(name)


@main.command("scrub")
@click.option("--dry-run", is_flag=True, help="Report what would be removed")
@click.pass_obj
def scrub_cmd(settings: Settings, dry_run: bool) -> None:
    """Remove records of packages no repository lists any more."""
    store = create_store(settings)
    try:
        winners = discover(
            RepositoryLister(settings.list_command), settings.repositories, strict=True
        )
        report = scrub(store, winners.keys(), dry_run=dry_run)
    except EcographError as e:
        _fail(str(e))
        return
    finally:
        store.close()

    verb = "Would remove" if dry_run else "Removed"
    click.echo(f"{verb} {len(report.orphaned_records)} orphaned record(s)")
    for name in report.orphaned_records:
        click.echo(f"  - {name}")
    click.echo(f"Index entries without a record: {len(report.dangling_index)}")
    click.echo(f"Records re-added to the index: {len(report.reindexed)}")


if __name__ == "__main__":
    main()
