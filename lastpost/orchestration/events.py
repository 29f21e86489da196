"""Session event stream types.

The controller yields these in order; consumers (CLI, UI glue) react to
them instead of subscribing to callbacks.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from lastpost.models.session import ItemResult


@dataclass(frozen=True)
class ItemStarted:
    """An identifier is about to be looked up."""

    identifier: str
    index: int
    total: int

    @property
    def status(self) -> str:
        return f"Processing: {self.identifier} ({self.index + 1}/{self.total})"


@dataclass(frozen=True)
class ItemCompleted:
    """An identifier finished; its result is now part of the session."""

    result: ItemResult
    cursor: int
    total: int
    progress_fraction: float
    percentage: int
    eta_seconds: Optional[float] = None
    eta_text: str = ""

    @property
    def status(self) -> str:
        if self.eta_text:
            return f"Completed {self.cursor}/{self.total} (ETA {self.eta_text})"
        return f"Completed {self.cursor}/{self.total}"


@dataclass(frozen=True)
class Stopped:
    """The run was cancelled; the session was persisted for resume."""

    cursor: int
    total: int
    checkpoint_saved: bool = True
    reason: Optional[str] = None

    @property
    def status(self) -> str:
        return f"Stopped: {self.cursor}/{self.total} processed."


@dataclass(frozen=True)
class Completed:
    """Every identifier has a result; the checkpoint was cleared."""

    total: int
    failed: int = 0
    results: tuple = field(default_factory=tuple)

    @property
    def status(self) -> str:
        return f"Completed: {self.total} profiles checked."


SessionEvent = Union[ItemStarted, ItemCompleted, Stopped, Completed]
