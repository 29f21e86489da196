"""Instagram web profile provider.

Looks up a public profile through the endpoint the Instagram web client
uses and reports the date of the newest timeline post.

API Details:
- Endpoint: https://www.instagram.com/api/v1/users/web_profile_info/
- Method: GET
- Parameters: username
- Posts: data.user.edge_owner_to_timeline_media.edges[].node
"""

import asyncio
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from lastpost.models.config import LookupConfig
from lastpost.services.providers.base import ProfileProvider
from lastpost.utils.exceptions import (
    APIError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    TransientLookupError,
)

logger = structlog.get_logger()

NO_POSTS = "No posts found"


class InstagramProvider(ProfileProvider):
    """Fetch profile info from Instagram's web API"""

    def __init__(
        self,
        config: Optional[LookupConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or LookupConfig()
        self.rng = rng or random.Random()

    @property
    def name(self) -> str:
        """Provider name"""
        return "instagram"

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json, text/plain, */*",
            "X-IG-App-ID": self.config.app_id,
            "Referer": self.config.referer,
            "User-Agent": self.rng.choice(self.config.user_agents),
        }

    async def fetch_profile(self, identifier: str) -> Dict[str, Any]:
        """Single GET against the profile endpoint"""
        username = identifier.strip()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.config.base_url,
                    params={"username": username},
                    headers=self._build_headers(),
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                ) as response:

                    if response.status == 404:
                        raise NotFoundError("User not found")

                    if response.status == 429:
                        raise RateLimitError(
                            "Instagram rate limit exceeded",
                            retry_after=_parse_retry_after(response.headers),
                        )

                    if response.status >= 500:
                        raise TransientLookupError(
                            f"Server error: {response.status}", status=response.status
                        )

                    if response.status != 200:
                        logger.error(
                            "api_error", username=username, status=response.status
                        )
                        raise APIError(
                            f"HTTP Error {response.status}", status=response.status
                        )

                    try:
                        data = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        raise InvalidResponseError(f"Body is not JSON: {e}")

        except asyncio.TimeoutError:
            logger.warning("api_timeout", username=username)
            raise TransientLookupError("Request timed out")
        except aiohttp.ClientError as e:
            logger.warning("api_transport_error", username=username, error=str(e))
            raise TransientLookupError(str(e) or type(e).__name__)

        if not isinstance(data, dict):
            raise InvalidResponseError("Payload is not a JSON object")

        return data

    def latest_post_date(self, payload: Dict[str, Any]) -> str:
        """Date (UTC, YYYY-MM-DD) of the post with the greatest timestamp"""
        edges = _timeline_edges(payload)

        timestamps: List[float] = []
        for edge in edges:
            node = edge.get("node") if isinstance(edge, dict) else None
            if not isinstance(node, dict):
                continue
            ts = node.get("taken_at_timestamp")
            # bool is an int subclass; zero means "unset" upstream
            if isinstance(ts, bool) or not isinstance(ts, (int, float)) or not ts:
                continue
            timestamps.append(ts)

        if not timestamps:
            return NO_POSTS

        try:
            latest = datetime.fromtimestamp(max(timestamps), tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidResponseError(f"Unusable timestamp: {e}")

        return latest.strftime("%Y-%m-%d")


def _timeline_edges(payload: Dict[str, Any]) -> List[Any]:
    """Walk data.user.edge_owner_to_timeline_media.edges; absent links mean no posts"""
    node: Any = payload
    for key in ("data", "user", "edge_owner_to_timeline_media", "edges"):
        if node is None:
            return []
        if not isinstance(node, dict):
            raise InvalidResponseError(f"Expected an object before '{key}'")
        node = node.get(key)

    if node is None:
        return []
    if not isinstance(node, list):
        raise InvalidResponseError("Timeline edges is not a list")
    return node


def _parse_retry_after(headers: Any) -> Optional[float]:
    value = headers.get("Retry-After") if headers is not None else None
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
