"""Validate command for configuration files."""

from pathlib import Path

import typer

from lastpost.cli.utils import display_error, display_success, handle_errors
from lastpost.services.config_manager import ConfigManager


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path), required=True)
        settings = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    run = settings.run
    if run.min_delay_seconds > run.max_delay_seconds:
        display_error("Validation failed: min delay cannot be greater than max delay")
        raise typer.Exit(code=1)

    display_success("Configuration is valid!")
