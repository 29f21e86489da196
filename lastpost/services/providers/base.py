from abc import ABC, abstractmethod
from typing import Any, Dict


class ProfileProvider(ABC):
    """Abstract base class for remote profile lookup providers

    A provider performs exactly one network attempt per call. It classifies
    failures by raising the engine's lookup exceptions; retrying is the
    caller's concern.
    """

    @abstractmethod
    async def fetch_profile(self, identifier: str) -> Dict[str, Any]:
        """Fetch the raw profile payload for one identifier

        Args:
            identifier: Username to look up

        Returns:
            Decoded JSON payload

        Raises:
            NotFoundError: If the identifier does not exist
            RateLimitError: If the service is throttling us
            TransientLookupError: On timeouts, 5xx and transport failures
            InvalidResponseError: If the body is not a JSON object
            APIError: For any other non-success status
        """
        pass

    @abstractmethod
    def latest_post_date(self, payload: Dict[str, Any]) -> str:
        """Reduce a payload to a date string or the no-posts sentinel

        Raises:
            InvalidResponseError: If the payload structure is unusable
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and identification"""
        pass
