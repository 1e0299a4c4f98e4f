"""CLI for focus-annotator (service, MCP server, proposals, saved specs)."""

import json
import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from focus_annotator.client.api import AnnotatorApi
from focus_annotator.client.session import propose_focus_order
from focus_annotator.config import DEFAULT_PORT, ClientSettings, resolve_data_directory
from focus_annotator.core.database.schema import migrate_schema
from focus_annotator.core.database.specs import SqliteSpecStore, TagSpecStore
from focus_annotator.core.selection import SelectionContext
from focus_annotator.core.tree.host import DictHostNode
from focus_annotator.errors import AnnotatorServiceError
from focus_annotator.logging_config import configure_logging
from focus_annotator.models.focus import FocusSequence
from focus_annotator.protocols import SpecStoreProtocol

app = typer.Typer(help="Focus annotator: propose and curate keyboard focus order for UI frames.")

_DB_NAME = "specs.db"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _open_db(data_dir: Path | None, *, create: bool = False) -> sqlite3.Connection:
    """Open the spec archive, raising if it doesn't exist and ``create`` is False."""
    dst = data_dir or resolve_data_directory()
    db_path = dst / _DB_NAME
    if not db_path.exists() and not create:
        logger.error("Spec archive not found: {}. Run 'propose' first.", db_path)
        raise typer.Exit(1)
    dst.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    migrate_schema(conn)
    return conn


def _echo_sequence(sequence: FocusSequence) -> None:
    typer.echo(f"{sequence.frame_name} [{sequence.platform}] - {len(sequence.items)} stops")
    if sequence.notes:
        typer.echo(f"  notes: {sequence.notes}")
    for item in sequence.items:
        marker = "*" if item.source == "manual" else " "
        typer.echo(f" {marker}{item.order:3d}. {item.label}  ({item.role})  id={item.id}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(DEFAULT_PORT, "--port", "-p", help="Port to listen on"),
) -> None:
    """Start the annotation HTTP service."""
    from focus_annotator.service.app import run_server

    run_server(host=host, port=port)


@app.command()
def mcp() -> None:
    """Start the MCP server (stdio transport)."""
    from focus_annotator.mcp.server import run_mcp_server

    run_mcp_server()


@app.command()
def propose(
    tree_file: Path = typer.Argument(..., help="Design-document JSON export"),
    platform: str = typer.Option("web", "--platform", "-P", help="web or native"),
    frame_id: Annotated[
        str | None,
        typer.Option("--frame", "-f", help="Frame id inside the export (default: the root)"),
    ] = None,
    prompt: Annotated[
        str | None,
        typer.Option("--prompt", help="Free-text hint for the model"),
    ] = None,
    service_url: Annotated[
        str | None,
        typer.Option("--service-url", "-s", help="Annotation service URL"),
    ] = None,
    local: bool = typer.Option(False, "--local", "-l", help="Heuristics only, no service"),
    in_place: bool = typer.Option(
        False, "--in-place", "-i", help="Save the spec into the export file instead of the archive"
    ),
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", "-d", help="Spec archive directory"),
    ] = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Propose a focus order for a frame and save it."""
    if not tree_file.exists():
        logger.error("File not found: {}", tree_file)
        raise typer.Exit(1)
    try:
        document = json.loads(tree_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error("Not a valid JSON export: {} ({})", tree_file, e)
        raise typer.Exit(1) from None
    if not isinstance(document, dict):
        logger.error("Export must be a JSON object: {}", tree_file)
        raise typer.Exit(1)
    root = DictHostNode(document)
    frame = root.find(frame_id) if frame_id else root
    if frame is None:
        typer.echo(f"Frame '{frame_id}' not found.")
        raise typer.Exit(1)

    api: AnnotatorApi | None = None
    if not local:
        settings = ClientSettings.from_env()
        if service_url:
            settings = ClientSettings(service_url=service_url, timeout=settings.timeout)
        api = AnnotatorApi(settings)

    conn: sqlite3.Connection | None = None
    store: SpecStoreProtocol
    if in_place:
        store = TagSpecStore(frame)
    else:
        conn = _open_db(data_dir, create=True)
        store = SqliteSpecStore(conn)

    context = SelectionContext()
    context.select(frame.id)
    try:
        try:
            result = propose_focus_order(
                frame, platform, api, store=store, context=context, prompt=prompt
            )
        except ValueError as e:
            typer.echo(str(e))
            raise typer.Exit(1) from None
    finally:
        if conn is not None:
            conn.close()

    if in_place:
        tree_file.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")

    if output_json:
        typer.echo(json.dumps(result.sequence.to_dict(), indent=2, ensure_ascii=False))
        return
    for notice in result.notices:
        typer.echo(f"! {notice}")
    _echo_sequence(result.sequence)
    for issue in result.report.issues:
        typer.echo(f"  check: {issue}")


@app.command()
def show(
    frame_id: Annotated[
        str | None,
        typer.Argument(help="Frame id (default: the most recently saved)"),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", "-d", help="Spec archive directory"),
    ] = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a saved focus order spec."""
    conn = _open_db(data_dir)
    try:
        store = SqliteSpecStore(conn)
        target = frame_id or store.last_frame_id()
        if target is None:
            typer.echo("No saved specs.")
            raise typer.Exit(1)
        sequence = store.load(target)
        if sequence is None:
            typer.echo(f"No saved spec for frame '{target}'.")
            raise typer.Exit(1)
    finally:
        conn.close()

    if output_json:
        typer.echo(json.dumps(sequence.to_dict(), indent=2, ensure_ascii=False))
    else:
        _echo_sequence(sequence)


@app.command()
def specs(
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", "-d", help="Spec archive directory"),
    ] = None,
) -> None:
    """List saved focus order specs, newest first."""
    conn = _open_db(data_dir)
    try:
        rows = SqliteSpecStore(conn).list_specs()
    finally:
        conn.close()
    typer.echo(f"{len(rows)} specs:\n")
    for frame_id, frame_name, platform, _updated_at in rows:
        typer.echo(f"  {frame_name} [{platform}]  id={frame_id}")


@app.command()
def health(
    service_url: Annotated[
        str | None,
        typer.Option("--service-url", "-s", help="Annotation service URL"),
    ] = None,
) -> None:
    """Check that the annotation service is up."""
    settings = ClientSettings.from_env()
    if service_url:
        settings = ClientSettings(service_url=service_url, timeout=settings.timeout)
    try:
        info = AnnotatorApi(settings).health()
    except AnnotatorServiceError as e:
        typer.echo(f"Service unavailable: {e}")
        raise typer.Exit(1) from None
    key = "configured" if info.get("hasKey") else "missing"
    typer.echo(
        f"{info.get('status')} - model {info.get('model')} (key {key}), v{info.get('version')}"
    )
