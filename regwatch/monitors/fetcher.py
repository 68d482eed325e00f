import asyncio
import logging
from typing import Optional

import aiohttp

from .results import FetchOutcome, FetchSuccess, HttpFailure, TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Cosmetics-Regulatory-Monitor/1.0 (Educational/Research Purpose)"


class PageFetcher:
    """
    Retrieves the current content of a monitored page.

    A single attempt is made per call; recovery relies on the next scheduled
    run. Network conditions are reported through the returned outcome rather
    than raised.
    """

    def __init__(self, user_agent: Optional[str] = None, timeout: float = 30):
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": self.user_agent}
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> FetchOutcome:
        """
        Fetch a page and classify the result.

        Args:
            url: URL to fetch

        Returns:
            FetchSuccess for 2xx responses, HttpFailure for any other status,
            TransportFailure when no response was obtained
        """
        if not self.session:
            raise RuntimeError("aiohttp session not initialized")

        try:
            async with self.session.get(url) as response:
                if not 200 <= response.status < 300:
                    logger.warning(f"Fetch of {url} returned HTTP {response.status}")
                    return HttpFailure(http_status=response.status)

                content = await response.read()
                logger.debug(f"Fetched {len(content)} bytes from {url} (HTTP {response.status})")
                return FetchSuccess(content=content, http_status=response.status)

        except asyncio.TimeoutError:
            logger.warning(f"Fetch of {url} timed out after {self.timeout}s")
            return TransportFailure(error_message=f"Timeout after {self.timeout}s")
        except (aiohttp.ClientError, OSError, ValueError) as e:
            logger.warning(f"Fetch of {url} failed: {e}")
            return TransportFailure(error_message=str(e) or e.__class__.__name__)
