"""Engine context: wires the services a session needs from settings."""

from dataclasses import dataclass
from typing import Optional, cast

import structlog

from lastpost.models.config import AppSettings
from lastpost.orchestration.session_controller import SessionController
from lastpost.services.checkpoint_service import (
    CheckpointStore,
    create_checkpoint_store,
)
from lastpost.services.lookup_service import LookupService
from lastpost.services.providers.base import ProfileProvider
from lastpost.services.providers.instagram import InstagramProvider
from lastpost.utils.rate_limiter import DelayRateLimiter
from lastpost.utils.retry import RetryPolicy

logger = structlog.get_logger()


@dataclass
class EngineContext:
    """Shared services for one process.

    Anything not supplied is built from ``settings`` on construction.
    """

    settings: AppSettings
    provider: Optional[ProfileProvider] = None
    checkpoint_store: Optional[CheckpointStore] = None
    rate_limiter: Optional[DelayRateLimiter] = None
    retry_policy: Optional[RetryPolicy] = None

    def __post_init__(self) -> None:
        if self.provider is None:
            self.provider = InstagramProvider(self.settings.lookup)
        if self.checkpoint_store is None:
            self.checkpoint_store = create_checkpoint_store(self.settings.checkpoint)
        if self.rate_limiter is None:
            self.rate_limiter = DelayRateLimiter()
        if self.retry_policy is None:
            self.retry_policy = RetryPolicy(self.settings.retry)

    def build_controller(self) -> SessionController:
        provider = cast(ProfileProvider, self.provider)
        checkpoint_store = cast(CheckpointStore, self.checkpoint_store)

        lookup_service = LookupService(provider, self.retry_policy)
        logger.debug(
            "controller_built",
            provider=provider.name,
            max_attempts=self.settings.retry.max_attempts,
        )
        return SessionController(
            lookup_service=lookup_service,
            checkpoint_store=checkpoint_store,
            rate_limiter=self.rate_limiter,
            checkpoint_interval=self.settings.checkpoint.checkpoint_interval,
        )
