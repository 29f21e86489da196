"""Session controller.

Drives a checking session over an ordered identifier list:
- Resumes from a matching checkpoint or starts fresh
- Looks up one identifier at a time, strictly in input order
- Inserts a randomized politeness delay between identifiers
- Commits a checkpoint every N completed items and on stop
- Honors cooperative cancellation at loop top and during delays
"""

import asyncio
import time
from typing import AsyncIterator, Callable, List, Optional, Sequence

import structlog

from lastpost.models.config import RunConfig
from lastpost.models.session import Session
from lastpost.observability.logging import bind_context, unbind_context
from lastpost.observability.metrics import (
    INTER_ITEM_DELAY,
    ITEMS_PROCESSED,
    SESSION_EVENTS,
)
from lastpost.orchestration.events import (
    Completed,
    ItemCompleted,
    ItemStarted,
    SessionEvent,
    Stopped,
)
from lastpost.services.checkpoint_service import CheckpointStore
from lastpost.services.lookup_service import LookupService
from lastpost.utils.cancellation import CancelToken
from lastpost.utils.exceptions import ConfigError, InputError, LookupCancelled
from lastpost.utils.rate_limiter import DelayRateLimiter

logger = structlog.get_logger()

DEFAULT_CHECKPOINT_INTERVAL = 10


def format_eta(seconds: Optional[float]) -> str:
    """Render seconds as "1h 2m 3s", "2m 3s" or "3s"."""
    if seconds is None:
        return ""
    seconds = max(0.0, seconds)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class SessionController:
    """Orchestrates one resumable run at a time.

    The controller owns the active Session while a run is in progress and is
    the only writer to the checkpoint store for that session key.
    """

    def __init__(
        self,
        lookup_service: LookupService,
        checkpoint_store: CheckpointStore,
        rate_limiter: Optional[DelayRateLimiter] = None,
        checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize session controller.

        Args:
            lookup_service: Remote lookup client with retry policy
            checkpoint_store: Where session snapshots are persisted
            rate_limiter: Inter-item delay source
            checkpoint_interval: Commit a checkpoint every N completed items
            clock: Monotonic clock used for ETA estimates
        """
        if checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be at least 1")

        self.lookup_service = lookup_service
        self.checkpoint_store = checkpoint_store
        self.rate_limiter = rate_limiter or DelayRateLimiter()
        self.checkpoint_interval = checkpoint_interval
        self._clock = clock

        self.session: Optional[Session] = None
        self.status = "Ready to start."
        self._cancel_token: Optional[CancelToken] = None

    def describe_checkpoint(self, session_key: str) -> Optional[str]:
        """Status line for a resumable session stored under ``session_key``."""
        checkpoint = self.checkpoint_store.load_checkpoint(session_key)
        if checkpoint is None:
            return None

        progress = checkpoint.progress
        if progress.total > 0 and progress.current > 0:
            return (
                f"Previous session found: {progress.current}/{progress.total} "
                f"processed. Run the same list again to resume."
            )
        return None

    def stop(self, reason: str = "user_requested") -> None:
        """Request a graceful stop of the current run."""
        if self._cancel_token is None:
            return
        self.status = "Stopping..."
        self._cancel_token.cancel(reason)

    def run(
        self,
        identifiers: Sequence[str],
        config: Optional[RunConfig] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> AsyncIterator[SessionEvent]:
        """Start a run and return its event stream.

        Validation happens here, before anything is persisted.

        Raises:
            InputError: Identifier list is empty or contains a blank entry
            ConfigError: min_delay_seconds > max_delay_seconds
        """
        config = config or RunConfig()
        identifiers = self._validate(identifiers, config)

        token = cancel_token or CancelToken()
        self._cancel_token = token
        return self._run(identifiers, config, token)

    def _validate(self, identifiers: Sequence[str], config: RunConfig) -> List[str]:
        if not identifiers:
            self.status = "No usernames to check."
            raise InputError("Identifier list is empty")

        cleaned = list(identifiers)
        for position, identifier in enumerate(cleaned):
            if not isinstance(identifier, str) or not identifier.strip():
                self.status = "No usernames to check."
                raise InputError(f"Identifier at position {position} is blank")

        if config.min_delay_seconds > config.max_delay_seconds:
            self.status = "Min delay cannot be greater than max delay."
            raise ConfigError(
                f"min_delay_seconds ({config.min_delay_seconds}) is greater than "
                f"max_delay_seconds ({config.max_delay_seconds})"
            )

        return cleaned

    def _start_session(self, total: int, config: RunConfig) -> Session:
        key = config.session_key

        if config.resume:
            stored = self.checkpoint_store.load(key)
            if stored is not None and stored.total == total:
                logger.info(
                    "session_resumed", cursor=stored.cursor, total=stored.total
                )
                return stored
            if stored is not None:
                logger.warning(
                    "checkpoint_total_mismatch",
                    stored_total=stored.total,
                    total=total,
                )

        self.checkpoint_store.clear(key)
        return Session(total=total)

    def _commit(
        self, session: Session, key: str, eta_text: Optional[str] = None
    ) -> bool:
        saved = self.checkpoint_store.save(key, session, eta_text)
        if not saved:
            logger.warning("checkpoint_commit_failed", cursor=session.cursor)
        return saved

    def _stopped(
        self,
        session: Session,
        key: str,
        token: CancelToken,
        eta_text: Optional[str],
    ) -> Stopped:
        saved = self._commit(session, key, eta_text)
        event = Stopped(
            cursor=session.cursor,
            total=session.total,
            checkpoint_saved=saved,
            reason=token.reason,
        )
        self.status = event.status
        SESSION_EVENTS.labels(event="stopped").inc()
        logger.info(
            "session_stopped",
            cursor=session.cursor,
            total=session.total,
            checkpoint_saved=saved,
        )
        return event

    async def _run(
        self, identifiers: List[str], config: RunConfig, token: CancelToken
    ) -> AsyncIterator[SessionEvent]:
        key = config.session_key
        total = len(identifiers)

        session = self._start_session(total, config)
        self.session = session

        bind_context(session_key=key)
        logger.info(
            "session_started",
            total=total,
            start_index=session.cursor,
            min_delay=config.min_delay_seconds,
            max_delay=config.max_delay_seconds,
        )

        started = self._clock()
        completed_this_run = 0
        eta_text: Optional[str] = None
        finished = False

        try:
            for i in range(session.cursor, total):
                if token.cancelled:
                    finished = True
                    yield self._stopped(session, key, token, eta_text)
                    return

                identifier = identifiers[i]
                started_event = ItemStarted(identifier=identifier, index=i, total=total)
                self.status = started_event.status
                yield started_event

                try:
                    result = await self.lookup_service.lookup(
                        identifier,
                        cancel_token=token,
                        abort_in_flight=config.abort_in_flight,
                    )
                except LookupCancelled:
                    finished = True
                    yield self._stopped(session, key, token, eta_text)
                    return

                session.record(result)
                completed_this_run += 1
                ITEMS_PROCESSED.labels(
                    status="failed" if result.failed else "success"
                ).inc()

                elapsed = self._clock() - started
                eta_seconds = elapsed / completed_this_run * session.remaining
                eta_text = format_eta(eta_seconds)

                completed_event = ItemCompleted(
                    result=result,
                    cursor=session.cursor,
                    total=total,
                    progress_fraction=session.progress_fraction,
                    percentage=session.percentage,
                    eta_seconds=eta_seconds,
                    eta_text=eta_text,
                )
                self.status = completed_event.status
                yield completed_event

                if session.cursor % self.checkpoint_interval == 0:
                    self._commit(session, key, eta_text)

                if i < total - 1 and not token.cancelled:
                    slept = await self.rate_limiter.wait(
                        config.min_delay_seconds, config.max_delay_seconds, token
                    )
                    INTER_ITEM_DELAY.observe(slept)

            if token.cancelled:
                # Cancelled with no items left to start
                finished = True
                yield self._stopped(session, key, token, eta_text)
                return

            finished = True
            self.checkpoint_store.clear(key)
            done = Completed(
                total=total,
                failed=session.failed_count,
                results=tuple(session.results),
            )
            self.status = done.status
            SESSION_EVENTS.labels(event="completed").inc()
            stats = self.lookup_service.retry_stats
            logger.info(
                "session_completed",
                total=total,
                failed=session.failed_count,
                lookup_attempts=stats.attempts,
                retries=stats.retries,
                backoff_seconds=round(stats.backoff_seconds, 3),
            )
            yield done

        except (GeneratorExit, asyncio.CancelledError):
            # Consumer walked away or the task was cancelled mid-run
            if not finished:
                self._commit(session, key, eta_text)
                logger.info("session_interrupted", cursor=session.cursor, total=total)
            raise
        finally:
            self._cancel_token = None
            unbind_context("session_key")
