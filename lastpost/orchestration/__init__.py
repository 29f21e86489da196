"""Orchestration module for checking sessions."""

from lastpost.orchestration.context import EngineContext
from lastpost.orchestration.events import (
    Completed,
    ItemCompleted,
    ItemStarted,
    SessionEvent,
    Stopped,
)
from lastpost.orchestration.session_controller import SessionController, format_eta

__all__ = [
    "EngineContext",
    "SessionController",
    "format_eta",
    # Events
    "SessionEvent",
    "ItemStarted",
    "ItemCompleted",
    "Stopped",
    "Completed",
]
