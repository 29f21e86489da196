import random
import time
from typing import Optional

import structlog

from lastpost.utils.cancellation import CancelToken

logger = structlog.get_logger()


class DelayRateLimiter:
    """Randomized inter-item pause for politeness towards the remote service"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.total_waited = 0.0
        self.waits = 0

    def delay_for(self, min_seconds: float, max_seconds: float) -> float:
        """Uniform delay in [min_seconds, max_seconds], inclusive.

        Whole-second bounds produce whole-second delays, each value in the
        range equally likely, so both bounds are reachable.
        """
        if min_seconds > max_seconds:
            raise ValueError(
                f"min_seconds ({min_seconds}) exceeds max_seconds ({max_seconds})"
            )
        if float(min_seconds).is_integer() and float(max_seconds).is_integer():
            return float(self.rng.randint(int(min_seconds), int(max_seconds)))
        return self.rng.uniform(min_seconds, max_seconds)

    async def wait(
        self,
        min_seconds: float,
        max_seconds: float,
        cancel_token: Optional[CancelToken] = None,
    ) -> float:
        """Sleep for a fresh random delay, returning early on cancellation.

        Returns the time actually slept, which is less than the drawn delay
        when cancellation cut the wait short.
        """
        delay = self.delay_for(min_seconds, max_seconds)
        token = cancel_token or CancelToken()

        logger.debug("rate_limit_wait", delay_seconds=round(delay, 3))
        started = time.monotonic()
        completed = await token.sleep(delay)
        slept = delay if completed else min(delay, time.monotonic() - started)

        self.waits += 1
        self.total_waited += slept
        if not completed:
            logger.info(
                "rate_limit_wait_interrupted",
                delay_seconds=round(delay, 3),
                slept_seconds=round(slept, 3),
            )

        return slept
