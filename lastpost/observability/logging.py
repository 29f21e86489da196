"""Structured logging setup.

All modules log through structlog with snake_case event names and keyword
context. Output goes to stderr so that progress lines printed by the CLI on
stdout stay clean.

Usage:
    from lastpost.observability.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_output=False)

    logger = get_logger("session_controller")
    logger.info("session_started", total=42)
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from lastpost.models.config import LoggingConfig
from lastpost.observability.context import get_run_id


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honored
    return structlog.PrintLogger(file=sys.stderr)


def add_run_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Stamp the current run ID on the entry ("none" outside a run)."""
    event_dict.setdefault("run_id", get_run_id() or "none")
    return event_dict


def _build_processors(json_output: bool, add_timestamp: bool) -> List[Processor]:
    chain: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_run_id_processor,
        structlog.processors.add_log_level,
    ]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        chain.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: One JSON object per line instead of console format
        add_timestamp: Add a UTC ISO timestamp to each entry

    Example:
        # Unattended runs feeding a log shipper
        configure_logging(level="INFO", json_output=True)
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    structlog.configure(
        processors=_build_processors(json_output, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def configure_from_settings(config: LoggingConfig) -> None:
    """Apply the ``logging`` section of the settings file."""
    configure_logging(level=config.level, json_output=config.json_output)


def get_logger(component: Optional[str] = None, **initial_context: Any) -> Any:
    """Logger pre-bound with a component name and any extra context."""
    logger = structlog.get_logger()
    if component:
        initial_context["component"] = component
    return logger.bind(**initial_context) if initial_context else logger


def bind_context(**context: Any) -> None:
    """Bind keys to every entry logged from the current context."""
    structlog.contextvars.bind_contextvars(**context)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
