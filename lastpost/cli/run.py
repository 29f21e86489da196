"""Run command: check every identifier in a file.

Handles session execution, progress display, graceful Ctrl-C and export.
"""

import asyncio
import signal
from contextlib import suppress
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from lastpost.cli.utils import (
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_settings,
    logger,
)
from lastpost.models.config import RunConfig
from lastpost.models.session import Session
from lastpost.observability.context import run_id_context
from lastpost.observability.metrics import write_metrics_file
from lastpost.orchestration import (
    Completed,
    EngineContext,
    ItemCompleted,
    ItemStarted,
    SessionController,
    Stopped,
)
from lastpost.services.export_service import default_export_name, export_results
from lastpost.services.input_loader import load_identifiers
from lastpost.utils.cancellation import CancelToken
from lastpost.utils.exceptions import ConfigError


@handle_errors
def run_command(
    identifiers_file: Path = typer.Argument(
        ..., help="CSV or TXT file with one username per line"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to lastpost YAML config"
    ),
    min_delay: Optional[float] = typer.Option(
        None, "--min-delay", help="Minimum pause between lookups (seconds, 1-120)"
    ),
    max_delay: Optional[float] = typer.Option(
        None, "--max-delay", help="Maximum pause between lookups (seconds, 1-120)"
    ),
    resume: Optional[bool] = typer.Option(
        None, "--resume/--fresh", help="Continue a saved session or start over"
    ),
    session_key: Optional[str] = typer.Option(
        None, "--session-key", help="Checkpoint name for this session"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write results to this CSV when done"
    ),
    export: bool = typer.Option(
        False, "--export", help="Write results to instagram_results_<date>.csv"
    ),
    metrics_file: Optional[Path] = typer.Option(
        None, "--metrics-file", help="Write Prometheus metrics here after the run"
    ),
):
    """Check the latest post date of every username in a file."""
    settings = load_settings(config_path)
    identifiers = load_identifiers(identifiers_file)
    display_info(f"Loaded {len(identifiers)} usernames.")

    run_config = _build_run_config(
        settings.run,
        min_delay=min_delay,
        max_delay=max_delay,
        resume=resume,
        session_key=session_key,
    )

    controller = EngineContext(settings).build_controller()

    notice = controller.describe_checkpoint(run_config.session_key)
    if notice and run_config.resume:
        display_info(notice)

    with run_id_context():
        session = asyncio.run(_drive(controller, identifiers, run_config))

    if output is None and export:
        output = Path(default_export_name())

    if output is not None and session is not None and session.results:
        path = export_results(session.results, output)
        display_success(f"Results written to {path}")

    if metrics_file is not None:
        write_metrics_file(str(metrics_file))
        logger.info("metrics_written", path=str(metrics_file))


def _build_run_config(base: RunConfig, **overrides) -> RunConfig:
    values = base.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return RunConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid run options: {e}")


async def _drive(
    controller: SessionController,
    identifiers: List[str],
    run_config: RunConfig,
) -> Optional[Session]:
    """Consume the event stream, printing one line per transition."""
    token = CancelToken()
    loop = asyncio.get_running_loop()

    def _on_interrupt() -> None:
        display_warning("Stopping...")
        controller.stop("keyboard_interrupt")

    installed = False
    with suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
        installed = True

    try:
        async for event in controller.run(identifiers, run_config, token):
            if isinstance(event, ItemStarted):
                typer.echo(event.status)
            elif isinstance(event, ItemCompleted):
                eta = f", ETA {event.eta_text}" if event.eta_text else ""
                typer.echo(
                    f"  {event.result.identifier}: {event.result.value} "
                    f"[{event.percentage}%{eta}]"
                )
            elif isinstance(event, Stopped):
                display_warning(event.status)
                if not event.checkpoint_saved:
                    display_warning("Checkpoint could not be saved.")
                else:
                    display_info("Run again with --resume to continue.")
            elif isinstance(event, Completed):
                display_success(event.status)
                if event.failed:
                    display_warning(f"{event.failed} lookups failed.")
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)

    logger.info("run_command_finished", status=controller.status)
    return controller.session
