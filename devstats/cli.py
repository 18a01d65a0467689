from __future__ import annotations

import json
import sys
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Dict, Optional, Type

import typer

from devstats.anon import AggregationConfig, AggregationService, previous_window
from devstats.config import get_settings
from devstats.domain import (
    FileChangeAnonymousStats,
    FileChangeData,
    KeypressAnonymousStats,
    KeypressData,
    TelemetryRecord,
)
from devstats.errors import StoreError
from devstats.storage import open_store
from devstats.utils.logging import configure_logging, get_logger

app = typer.Typer(help="devstats maintenance CLI.")
log = get_logger(__name__)

# (raw type, aggregate type) per pipeline.
PIPELINES = (
    (KeypressData, KeypressAnonymousStats),
    (FileChangeData, FileChangeAnonymousStats),
)

AGGREGATE_TYPES = {target for _, target in PIPELINES}


def _record_types() -> Dict[str, Type[TelemetryRecord]]:
    types = {}
    for source, target in PIPELINES:
        types[source.resource_name()] = source
        types[target.resource_name()] = target
    return types


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"backend={settings.store_backend} data_dir={settings.data_dir} | "
        f"db={settings.db_path} anon_db={settings.anon_db_path} | "
        f"interval={settings.interval_minutes}m strict_reads={settings.strict_reads}"
    )


@app.command()
def aggregate(
    start: Optional[datetime] = typer.Option(
        None, "--start", help="Interval start (UTC). Defaults to the last elapsed window."
    ),
    end: Optional[datetime] = typer.Option(
        None, "--end", help="Interval end (UTC, inclusive). Required with --start."
    ),
) -> None:
    """
    Anonymize one interval for every pipeline.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    if (start is None) != (end is None):
        raise typer.BadParameter("--start and --end must be given together")
    if start is None or end is None:
        start, end = previous_window(datetime.now(timezone.utc), settings.interval_size)

    config = AggregationConfig(interval_size=settings.interval_size)
    failures = 0
    with ExitStack() as stack:
        for source_type, target_type in PIPELINES:
            try:
                source_store = stack.enter_context(open_store(source_type, settings=settings))
                target_store = stack.enter_context(open_store(target_type, settings=settings, anon=True))
                service = AggregationService(source_store, target_store, config)
                written = service.process_interval(start, end)
            except Exception:  # noqa: BLE001
                log.exception(
                    f"Error processing {source_type.resource_name()} interval",
                    extra={"source": source_type.__name__},
                )
                failures += 1
                continue
            typer.echo(f"{source_type.resource_name()}: {written} aggregate(s) written")

    if failures:
        raise typer.Exit(code=1)


@app.command()
def dump(
    table: str = typer.Argument(..., help="Record table, e.g. keypresses or filechanges_anonymous."),
    since: Optional[datetime] = typer.Option(None, "--since", help="Only records at or after (UTC)."),
    until: Optional[datetime] = typer.Option(None, "--until", help="Only records at or before (UTC)."),
) -> None:
    """
    Print stored records as JSON.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    record_types = _record_types()
    if table not in record_types:
        raise typer.BadParameter(f"Unknown table '{table}'. Available: {', '.join(sorted(record_types))}")
    record_type = record_types[table]

    try:
        with open_store(record_type, settings=settings, anon=record_type in AGGREGATE_TYPES) as store:
            if since is None and until is None:
                records = store.get_all()
            else:
                records = store.find_between(since or datetime.min, until or datetime.max)
    except StoreError as exc:
        typer.echo(f"Failed to read {table}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(json.dumps([record.model_dump(mode="json") for record in records], indent=2))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
