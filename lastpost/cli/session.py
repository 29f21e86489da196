"""Session commands: inspect, export and clear saved checkpoints."""

from pathlib import Path
from typing import Optional

import typer

from lastpost.cli.utils import (
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_settings,
)
from lastpost.services.checkpoint_service import create_checkpoint_store
from lastpost.services.export_service import default_export_name, export_results

session_app = typer.Typer(help="Manage saved sessions")


@session_app.command(name="status")
@handle_errors
def status_command(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
    session_key: Optional[str] = typer.Option(None, "--session-key"),
):
    """Show progress of a saved session."""
    settings = load_settings(config_path)
    key = session_key or settings.run.session_key
    store = create_checkpoint_store(settings.checkpoint)

    checkpoint = store.load_checkpoint(key)
    if checkpoint is None:
        display_warning(f"No saved session '{key}'.")
        return

    progress = checkpoint.progress
    failed = sum(1 for r in checkpoint.results if r.error)
    typer.echo(f"Session '{key}':")
    typer.echo(f"  Processed: {progress.current}/{progress.total} ({progress.percentage}%)")
    typer.echo(f"  Failed lookups: {failed}")
    if progress.estimated_time:
        typer.echo(f"  Estimated time remaining: {progress.estimated_time}")
    if checkpoint.last_updated:
        typer.echo(f"  Last saved: {checkpoint.last_updated.isoformat(timespec='seconds')}")


@session_app.command(name="export")
@handle_errors
def export_command(
    output: Optional[Path] = typer.Argument(None, help="CSV file to write"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
    session_key: Optional[str] = typer.Option(None, "--session-key"),
):
    """Export the results of a saved session to CSV."""
    settings = load_settings(config_path)
    key = session_key or settings.run.session_key
    store = create_checkpoint_store(settings.checkpoint)

    session = store.load(key)
    if session is None or not session.results:
        display_warning("No results to export.")
        raise typer.Exit(code=1)

    path = export_results(session.results, output or Path(default_export_name()))
    display_success(f"Exported {len(session.results)} results to {path}")


@session_app.command(name="clear")
@handle_errors
def clear_command(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
    session_key: Optional[str] = typer.Option(None, "--session-key"),
):
    """Delete a saved session."""
    settings = load_settings(config_path)
    key = session_key or settings.run.session_key
    store = create_checkpoint_store(settings.checkpoint)

    if store.clear(key):
        display_info(f"Session '{key}' cleared.")
    else:
        display_warning(f"Could not clear session '{key}'.")
        raise typer.Exit(code=1)
