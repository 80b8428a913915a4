from __future__ import annotations

import sys
from datetime import datetime
from typing import List, Optional

import psycopg
import typer

from pdbsync.config import get_settings
from pdbsync.domain.models import record_type_for
from pdbsync.errors import SyncError
from pdbsync.infrastructure.db_factory import get_sync_connection, init_schema
from pdbsync.infrastructure.http_client import build_http_client
from pdbsync.reporter import print_report
from pdbsync.sync.applier import ConflictPolicy
from pdbsync.sync.driver import SyncDriver
from pdbsync.sync.fetcher import CollectionFetcher
from pdbsync.sync.state import ensure_state_table, load_last_sync, store_last_sync
from pdbsync.utils.logging import configure_logging

app = typer.Typer(help="Mirror PeeringDB records into a local PostgreSQL store.")


def _connect() -> psycopg.Connection:
    try:
        return get_sync_connection()
    except psycopg.OperationalError as exc:
        typer.echo(f"Cannot connect to db: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    store = settings.database_url or (
        f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )
    typer.echo(
        f"remote={settings.pdb_base_url} | store={store} | "
        f"objects={','.join(settings.pdb_objects)} | "
        f"conflict_policy={settings.sync_conflict_policy} | "
        f"verify_tls={settings.http_verify_tls} timeout={settings.http_timeout_seconds}s"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the mirror tables in the configured store.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    with _connect() as conn:
        init_schema(conn)
    typer.echo("Schema ready.")


@app.command()
def sync(
    since: Optional[int] = typer.Option(
        None,
        "--since",
        help="Only fetch records changed since this unix timestamp (seconds).",
    ),
    incremental: bool = typer.Option(
        False,
        "--incremental",
        "-i",
        help="Fetch changes since the last recorded run (stored in sync_state).",
    ),
    objects: Optional[List[str]] = typer.Option(
        None,
        "--object",
        "-o",
        help="Object type to synchronize (ix, net, netixlan). Repeatable; defaults to PDB_OBJECTS.",
    ),
    conflict_policy: Optional[ConflictPolicy] = typer.Option(
        None,
        "--conflict-policy",
        help="How inserts of already-present ids are handled (default from settings).",
    ),
) -> None:
    """
    Run one synchronization pass and commit it as a single transaction.
    """
    if since is not None and incremental:
        raise typer.BadParameter("--since and --incremental are mutually exclusive")

    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    names = objects or settings.pdb_objects
    try:
        record_types = [record_type_for(name) for name in names]
    except SyncError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    policy = conflict_policy or ConflictPolicy(settings.sync_conflict_policy)

    with _connect() as conn, build_http_client(settings) as client:
        last_sync: Optional[datetime] = None
        if incremental:
            with conn.transaction():
                ensure_state_table(conn)
                last_sync = load_last_sync(conn)

        driver = SyncDriver(
            CollectionFetcher(client, settings.pdb_base_url),
            conn,
            record_types=record_types,
            conflict_policy=policy,
        )
        try:
            report = driver.run(last_sync if incremental else since)
        except SyncError as exc:
            typer.echo(f"Sync failed: {exc}", err=True)
            raise typer.Exit(code=1)

        # A partial object list must not advance the watermark for the others.
        if not objects and report.earliest_generated is not None:
            try:
                store_last_sync(conn, report.earliest_generated)
            except psycopg.Error as exc:
                typer.echo(
                    f"Warning: sync committed but the last sync time was not stored: {exc}",
                    err=True,
                )

    print_report(report)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
