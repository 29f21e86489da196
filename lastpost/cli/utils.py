"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer

from lastpost.models.config import AppSettings
from lastpost.observability.logging import (
    configure_from_settings,
    configure_logging,
    get_logger,
)
from lastpost.services.config_manager import ConfigManager, ConfigValidationError
from lastpost.utils.exceptions import LastPostError

# Configure structured logging
configure_logging(json_output=False)
logger = get_logger("cli")

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def load_settings(config_path: Optional[Path]) -> AppSettings:
    """Load and validate settings.

    An explicitly given path must exist; without one the default location
    is tried and built-in defaults are used if it is missing.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    if config_path is None:
        config_manager = ConfigManager()
    else:
        config_manager = ConfigManager(config_path=str(config_path), required=True)

    try:
        settings = config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    configure_from_settings(settings.logging)
    return settings


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Engine errors are shown as-is; anything else is logged with a traceback.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except LastPostError as e:
            logger.error("command_failed", error_type=type(e).__name__, error=str(e))
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)
