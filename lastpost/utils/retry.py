"""Retry policy for remote lookups.

One logical lookup may take several attempts. Rate-limited and transient
failures are retried after base * 2^attempt seconds plus random jitter
(or the server's Retry-After hint), capped at max_delay_seconds. Anything
else is final on the first attempt.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

import structlog

from lastpost.models.config import RetryConfig
from lastpost.models.session import Classification, RetryAttempt
from lastpost.utils.cancellation import CancelToken
from lastpost.utils.exceptions import (
    LookupCancelled,
    RateLimitError,
    RetryableError,
)

logger = structlog.get_logger(__name__)


T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


def classify_exception(error: BaseException) -> Classification:
    """Map an attempt's exception onto the retry classification"""
    if isinstance(error, RateLimitError):
        return Classification.RATE_LIMITED
    if isinstance(error, RetryableError):
        return Classification.TRANSIENT_FAILURE
    return Classification.PERMANENT_FAILURE


class RetryPolicy:
    """Async retry policy with exponential backoff and jitter.

    Provides automatic retry logic for rate-limited and transient failures:
    - Exponential backoff: delay = base * 2^attempt
    - Jitter: uniform [0, jitter_seconds] added on top
    - Max delay cap: prevents excessive wait times
    - Retry-after support: respects rate limit hints
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        """Initialize retry policy with configuration.

        Args:
            config: Retry configuration with max_attempts, delays, and jitter
            rng: Random source for jitter (seedable in tests)
            sleep: Coroutine used for uninterruptible backoff waits
        """
        self.config = config or RetryConfig()
        self.rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def calculate_delay(
        self, attempt: int, retry_after: Optional[float] = None
    ) -> float:
        """Calculate delay before the retry that follows ``attempt``.

        Args:
            attempt: Number of the failed attempt (0-indexed)
            retry_after: Optional retry-after value from the error

        Returns:
            Delay in seconds to wait before next attempt
        """
        if retry_after is not None and retry_after > 0:
            base_delay = retry_after
        else:
            base_delay = self.config.base_delay_seconds * (2**attempt)

        jitter = self.rng.uniform(0.0, self.config.jitter_seconds)

        return min(base_delay + jitter, self.config.max_delay_seconds)

    def should_retry(self, classification: Classification, attempt_number: int) -> bool:
        """Whether a failure on 1-indexed ``attempt_number`` earns another try"""
        return classification.retryable and attempt_number < self.config.max_attempts

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        cancel_token: Optional[CancelToken] = None,
        interruptible: bool = False,
        on_retry: Optional[Callable[[int, Exception, float], None]] = None,
        attempts: Optional[List[RetryAttempt]] = None,
    ) -> T:
        """Execute function with retry logic.

        Retryable errors (rate limits, transient failures) are retried with
        backoff until the attempt cap; anything else propagates at once.

        Args:
            func: Async function performing one attempt
            cancel_token: Token checked during backoff waits
            interruptible: If True, cancellation during a backoff wait raises
                LookupCancelled; otherwise the wait runs to completion
            on_retry: Optional callback called before each retry with
                (attempt_number, exception, delay_seconds)
            attempts: Optional list that receives one RetryAttempt per try

        Returns:
            Result of successful function execution

        Raises:
            RetryableError: The last error once all attempts are exhausted
            LookupCancelled: Cancellation during an interruptible wait
        """
        for attempt in range(self.config.max_attempts):
            try:
                result = await func()
            except RetryableError as e:
                classification = classify_exception(e)

                if not self.should_retry(classification, attempt + 1):
                    if attempts is not None:
                        attempts.append(
                            RetryAttempt(
                                attempt_number=attempt + 1,
                                classification=classification,
                            )
                        )
                    logger.warning(
                        "retries_exhausted",
                        attempts=attempt + 1,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                    raise

                retry_after = e.retry_after if isinstance(e, RateLimitError) else None
                delay = self.calculate_delay(attempt, retry_after)

                if attempts is not None:
                    attempts.append(
                        RetryAttempt(
                            attempt_number=attempt + 1,
                            classification=classification,
                            backoff_seconds=delay,
                        )
                    )

                # Log retry attempt for observability
                logger.warning(
                    "retry_attempt",
                    attempt=attempt + 1,
                    max_attempts=self.config.max_attempts,
                    classification=classification.value,
                    error_message=str(e),
                    delay_seconds=round(delay, 3),
                    retry_after=retry_after,
                )

                if on_retry is not None:
                    on_retry(attempt + 1, e, delay)

                await self._backoff(delay, cancel_token, interruptible)
                continue

            if attempts is not None:
                attempts.append(
                    RetryAttempt(
                        attempt_number=attempt + 1,
                        classification=Classification.SUCCESS,
                    )
                )
            return result

        raise RuntimeError(  # pragma: no cover
            "Retry loop completed without result or exception"
        )

    async def _backoff(
        self,
        delay: float,
        cancel_token: Optional[CancelToken],
        interruptible: bool,
    ) -> None:
        if interruptible and cancel_token is not None:
            if not await cancel_token.sleep(delay):
                raise LookupCancelled("Cancelled during retry backoff")
            return
        await self._sleep(delay)


@dataclass
class RetryStats:
    """Running totals of retry activity across the lookups of one run."""

    attempts: int = 0
    retries: int = 0
    rate_limited_retries: int = 0
    backoff_seconds: float = 0.0
    last_error: Optional[Exception] = None

    def record_attempt(self) -> None:
        self.attempts += 1

    def record_retry(self, delay: float, error: Exception) -> None:
        self.retries += 1
        self.backoff_seconds += delay
        if isinstance(error, RateLimitError):
            self.rate_limited_retries += 1
        self.last_error = error
