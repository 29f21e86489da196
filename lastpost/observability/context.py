"""Run ID tracking.

Each CLI invocation gets a short run ID that is stamped on every log line
it produces, so the lines of one run can be pulled out of a shared log.
The ID lives in a ContextVar and therefore follows the run across awaits.

Usage:
    from lastpost.observability.context import run_id_context

    with run_id_context() as run_id:
        asyncio.run(drive(controller, identifiers, config))
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_run_id: ContextVar[Optional[str]] = ContextVar("lastpost_run_id", default=None)


def new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:12]}"


def get_run_id() -> Optional[str]:
    """Run ID of the current context, or None outside a run."""
    return _run_id.get()


def set_run_id(run_id: Optional[str] = None) -> str:
    """Set the run ID for the current context, generating one if omitted."""
    run_id = run_id or new_run_id()
    _run_id.set(run_id)
    return run_id


def clear_run_id() -> None:
    _run_id.set(None)


@contextmanager
def run_id_context(run_id: Optional[str] = None) -> Iterator[str]:
    """Scope a run ID; whatever was set before is restored on exit."""
    token = _run_id.set(run_id or new_run_id())
    try:
        yield _run_id.get()
    finally:
        _run_id.reset(token)
