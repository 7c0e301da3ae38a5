"""
HTTP client for the upstream image-by-status-code service (http.cat).
"""

import logging
from typing import Optional

import httpx

from catcache.exceptions import FetchError

logger = logging.getLogger(__name__)


class UpstreamClient:
    """
    Fetches images from the upstream service.

    One GET per call, no retry. Every kind of failure is reported the same
    way, as FetchError.
    """

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize upstream client.

        Args:
            base_url: Base URL the key is appended to, e.g. https://http.cat/
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"Accept": "image/*,*/*;q=0.8"},
            transport=transport,
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    def url_for(self, key: str) -> str:
        return f"{self.base_url}{key}"

    async def fetch(self, key: str) -> bytes:
        """
        Fetch the image for a key.

        Args:
            key: Status code (or any other key) to request

        Returns:
            Non-empty image bytes

        Raises:
            FetchError: On transport errors, non-2xx responses or empty bodies
        """
        url = self.url_for(key)
        try:
            response = await self.client.get(url)
            response.raise_for_status()

            data = response.content
            if not data:
                raise FetchError(f"Empty response from {url}")

            return data

        except FetchError as e:
            logger.error(f"[Upstream] {e}")
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"[Upstream] HTTP error {e.response.status_code}: {url}")
            raise FetchError(f"Image not found upstream: {url}")
        except Exception as e:
            logger.error(f"[Upstream] Fetch error for {url}: {e}")
            raise FetchError(f"Image not found upstream: {url}")
