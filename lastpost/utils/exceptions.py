"""Custom exceptions for the lookup engine

This module defines the exception hierarchy for a checking session:
- Pre-flight validation errors that stop a run before it starts
- Per-item lookup errors that are recorded as failed results
- Storage errors that degrade resumability but never abort a run
- The cancellation signal, which is not an error result at all

All exceptions inherit from LastPostError to allow catching every
engine error in a single except block when needed.
"""


class LastPostError(Exception):
    """Base exception for all engine errors

    Use this to catch any error raised by the engine:
    ```python
    try:
        async for event in controller.run(identifiers, config, token):
            ...
    except LastPostError as e:
        logger.error("session_failed", error=str(e))
    ```
    """

    pass


class InputError(LastPostError):
    """Identifier input is unusable

    Raised when:
    - The identifier list is empty or absent
    - An identifier file has an unsupported extension or cannot be read

    Nothing is persisted when this is raised.
    """

    pass


class ConfigError(LastPostError):
    """Run configuration is inconsistent

    Raised when:
    - min_delay_seconds is greater than max_delay_seconds
    """

    pass


class StorageError(LastPostError):
    """Checkpoint read, write or delete failed

    Checkpoint stores catch this internally and report failure through
    their return value; losing a checkpoint only degrades resumability.
    """

    pass


class LookupCancelled(LastPostError):
    """Lookup interrupted by a cancellation request.

    Raised only when in-flight aborts are enabled. The controller never
    records a result for an item that raised this.
    """

    pass


# Per-item lookup errors


class LookupFailure(LastPostError):
    """Base for errors produced by a single remote lookup attempt."""

    status: int | None = None

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        if status is not None:
            self.status = status


class APIError(LookupFailure):
    """Remote service answered with a non-success status that is not retried."""

    pass


class NotFoundError(APIError):
    """Identifier does not exist on the remote service (404)."""

    status = 404


class InvalidResponseError(APIError):
    """Success status, but the payload could not be interpreted."""

    pass


class RetryableError(LookupFailure):
    """Base for retryable errors (timeouts, 5xx, connection errors).

    Errors that inherit from this class indicate transient failures
    that may succeed on retry.
    """

    pass


class TransientLookupError(RetryableError):
    """Network or transport failure, including per-call timeouts."""

    pass


class RateLimitError(RetryableError):
    """Rate limit exceeded with optional retry-after metadata.

    Raised when:
    - API returns 429 status
    """

    status = 429

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after
