"""HTTP transport for clearpage.

Every request runs on its own short-lived client so no cookie or credential
state can leak from one fetch into the next.
"""

from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from clearpage.utils.logging import get_logger

logger = get_logger(__name__)


class TransportError(Exception):
    """Raised when a GET cannot be completed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class TransportTimeout(TransportError):
    """Raised when a GET exceeds its timeout."""


@dataclass
class HttpResponse:
    """Status and decoded body of a completed GET."""

    status: int
    body: str


class HttpTransport:
    """Issues credential-free GET requests."""

    async def get(
        self,
        url: str,
        headers: Mapping[str, str],
        timeout: float,
        max_redirects: int = 5,
    ) -> HttpResponse:
        """Fetch a URL with the given headers.

        4xx responses are returned so their body can be classified; only
        5xx responses count as transport failures.

        Raises:
            TransportTimeout: If the request times out.
            TransportError: On any other transport failure or a 5xx status.
        """
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                max_redirects=max_redirects,
                headers=dict(headers),
                cookies=None,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.warning("Timeout fetching URL", url=url, timeout=timeout)
            raise TransportTimeout("timeout") from e
        except httpx.TooManyRedirects as e:
            logger.warning("Too many redirects", url=url, max_redirects=max_redirects)
            raise TransportError("too many redirects") from e
        except httpx.HTTPError as e:
            logger.warning("Request error fetching URL", url=url, error=str(e))
            raise TransportError(f"request error: {e}") from e

        if response.status_code >= 500:
            logger.warning("HTTP error fetching URL", url=url, status=response.status_code)
            raise TransportError(f"HTTP {response.status_code}")

        return HttpResponse(status=response.status_code, body=response.text)
