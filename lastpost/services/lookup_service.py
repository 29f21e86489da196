"""Remote lookup client.

Wraps a ProfileProvider with the retry policy and turns every ordinary
outcome into an ItemResult. Only a cancellation (when in-flight aborts are
enabled) escapes as an exception.
"""

import asyncio
import time
from contextlib import suppress
from typing import Any, Awaitable, Dict, List, Optional

import structlog

from lastpost.models.session import Classification, ItemResult, RetryAttempt
from lastpost.observability.metrics import (
    LOOKUP_ATTEMPTS,
    LOOKUP_DURATION,
    LOOKUP_RETRIES,
)
from lastpost.services.providers.base import ProfileProvider
from lastpost.utils.cancellation import CancelToken
from lastpost.utils.exceptions import (
    APIError,
    InvalidResponseError,
    LookupCancelled,
    NotFoundError,
    RateLimitError,
    TransientLookupError,
)
from lastpost.utils.retry import RetryPolicy, RetryStats, classify_exception

logger = structlog.get_logger()

NOT_FOUND_MESSAGE = "Error: User not found"
INVALID_RESPONSE_MESSAGE = "Error: Invalid response format"
RATE_LIMIT_EXHAUSTED_MESSAGE = "Error: Rate limited, retries exhausted"


class LookupService:
    """Performs one logical lookup per identifier.

    Each lookup makes up to ``retry_policy.max_attempts`` provider calls.
    Results are never cached; duplicate identifiers are looked up again.
    """

    def __init__(
        self,
        provider: ProfileProvider,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.provider = provider
        self.retry_policy = retry_policy or RetryPolicy()
        self.retry_stats = RetryStats()
        self.last_attempts: List[RetryAttempt] = []

    async def lookup(
        self,
        identifier: str,
        cancel_token: Optional[CancelToken] = None,
        abort_in_flight: bool = False,
    ) -> ItemResult:
        """Look up one identifier.

        Args:
            identifier: Username to check
            cancel_token: Cancellation signal for the current run
            abort_in_flight: Abandon the outstanding call and any backoff
                wait when cancellation arrives

        Returns:
            ItemResult carrying the date, the no-posts sentinel or an error

        Raises:
            LookupCancelled: Only when abort_in_flight is set and the token
                fires before the lookup finishes
        """
        attempts: List[RetryAttempt] = []
        self.last_attempts = attempts
        started = time.monotonic()

        async def attempt() -> str:
            self.retry_stats.record_attempt()
            fetch = self.provider.fetch_profile(identifier)
            if abort_in_flight and cancel_token is not None:
                payload = await self._abortable(fetch, cancel_token)
            else:
                payload = await fetch
            return self.provider.latest_post_date(payload)

        def on_retry(attempt_number: int, error: Exception, delay: float) -> None:
            self.retry_stats.record_retry(delay, error)
            LOOKUP_RETRIES.labels(classification=classify_exception(error).value).inc()

        try:
            value = await self.retry_policy.execute(
                attempt,
                cancel_token=cancel_token,
                interruptible=abort_in_flight,
                on_retry=on_retry,
                attempts=attempts,
            )
            result = ItemResult(identifier=identifier, value=value, failed=False)

        except LookupCancelled:
            logger.info("lookup_cancelled", identifier=identifier, attempts=len(attempts))
            raise

        except NotFoundError:
            attempts.append(_permanent(len(attempts) + 1))
            result = _failed(identifier, NOT_FOUND_MESSAGE)

        except InvalidResponseError as e:
            attempts.append(_permanent(len(attempts) + 1))
            logger.warning("invalid_response", identifier=identifier, error=str(e))
            result = _failed(identifier, INVALID_RESPONSE_MESSAGE)

        except APIError as e:
            attempts.append(_permanent(len(attempts) + 1))
            result = _failed(identifier, f"Error: {e}")

        except RateLimitError:
            result = _failed(identifier, RATE_LIMIT_EXHAUSTED_MESSAGE)

        except TransientLookupError as e:
            result = _failed(
                identifier, f"Error: Network error, retries exhausted ({e})"
            )

        except Exception as e:
            attempts.append(_permanent(len(attempts) + 1))
            logger.exception("lookup_unexpected_error", identifier=identifier)
            result = _failed(identifier, f"Error: {e}")

        duration = time.monotonic() - started
        LOOKUP_DURATION.observe(duration)
        for a in attempts:
            LOOKUP_ATTEMPTS.labels(classification=a.classification.value).inc()

        logger.info(
            "lookup_finished",
            identifier=identifier,
            value=result.value,
            failed=result.failed,
            attempts=len(attempts),
            duration_seconds=round(duration, 3),
        )

        return result

    @staticmethod
    async def _abortable(
        fetch: Awaitable[Dict[str, Any]], cancel_token: CancelToken
    ) -> Dict[str, Any]:
        """Await ``fetch`` unless the token fires first"""
        task = asyncio.ensure_future(fetch)
        waiter = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        raise LookupCancelled("Cancelled while the request was outstanding")


def _failed(identifier: str, message: str) -> ItemResult:
    return ItemResult(identifier=identifier, value=message, failed=True)


def _permanent(attempt_number: int) -> RetryAttempt:
    return RetryAttempt(
        attempt_number=attempt_number,
        classification=Classification.PERMANENT_FAILURE,
    )
