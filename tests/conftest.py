"""Shared fakes for engine tests."""

from typing import Any, Dict, List, Optional

import pytest

from lastpost.models.config import RetryConfig
from lastpost.models.session import Session
from lastpost.orchestration.session_controller import SessionController
from lastpost.services.checkpoint_service import InMemoryCheckpointStore
from lastpost.services.lookup_service import LookupService
from lastpost.services.providers.instagram import InstagramProvider
from lastpost.utils.rate_limiter import DelayRateLimiter
from lastpost.utils.retry import RetryPolicy

# 2024-01-05T01:00:00Z
ALICE_TS = 1704412800 + 3600


def make_payload(*timestamps: Any) -> Dict[str, Any]:
    """Profile payload with one timeline post per timestamp"""
    return {
        "data": {
            "user": {
                "edge_owner_to_timeline_media": {
                    "edges": [{"node": {"taken_at_timestamp": ts}} for ts in timestamps]
                }
            }
        }
    }


class ScriptedProvider(InstagramProvider):
    """Instagram provider whose network call replays scripted outcomes.

    Each identifier maps to a list of outcomes consumed one per call; an
    outcome is either a payload dict or an exception instance to raise.
    Identifiers without (remaining) script get ``default_payload``.
    """

    def __init__(
        self,
        script: Optional[Dict[str, List[Any]]] = None,
        default_payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default_payload = default_payload or make_payload(ALICE_TS)
        self.calls: List[str] = []

    async def fetch_profile(self, identifier: str) -> Dict[str, Any]:
        self.calls.append(identifier)
        outcomes = self.script.get(identifier)
        outcome = outcomes.pop(0) if outcomes else self.default_payload
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class InstantRateLimiter(DelayRateLimiter):
    """Rate limiter that records delays instead of sleeping"""

    def __init__(self) -> None:
        super().__init__()
        self.delays: List[float] = []

    async def wait(self, min_seconds, max_seconds, cancel_token=None) -> float:
        delay = self.delay_for(min_seconds, max_seconds)
        self.delays.append(delay)
        return delay


class RecordingStore(InMemoryCheckpointStore):
    """In-memory store that remembers the cursor of every save"""

    def __init__(self) -> None:
        super().__init__()
        self.saved_cursors: List[int] = []
        self.cleared: List[str] = []

    def save(
        self, session_key: str, session: Session, estimated_time: Optional[str] = None
    ) -> bool:
        self.saved_cursors.append(session.cursor)
        return super().save(session_key, session, estimated_time)

    def clear(self, session_key: str) -> bool:
        self.cleared.append(session_key)
        return super().clear(session_key)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays"""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_config():
    """Deterministic backoff: 1s, 2s, 4s ... with no jitter"""
    return RetryConfig(
        max_attempts=3,
        base_delay_seconds=1.0,
        max_delay_seconds=60.0,
        jitter_seconds=0.0,
    )


@pytest.fixture
def make_controller(retry_config, recording_sleep):
    """Build a controller wired to fakes; returns (controller, provider, store, limiter)"""

    def _make(script=None, checkpoint_interval=10, store=None, rate_limiter=None):
        provider = ScriptedProvider(script)
        policy = RetryPolicy(retry_config, sleep=recording_sleep)
        store = store if store is not None else RecordingStore()
        limiter = rate_limiter if rate_limiter is not None else InstantRateLimiter()
        controller = SessionController(
            lookup_service=LookupService(provider, policy),
            checkpoint_store=store,
            rate_limiter=limiter,
            checkpoint_interval=checkpoint_interval,
        )
        return controller, provider, store, limiter

    return _make


@pytest.fixture
def payload_factory():
    return make_payload


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances"""
    return ScriptedProvider


@pytest.fixture
def instant_limiter():
    return InstantRateLimiter()


@pytest.fixture
def recording_store():
    return RecordingStore()
