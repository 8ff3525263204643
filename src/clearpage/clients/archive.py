"""Wayback Machine CDX index client."""

import httpx

from clearpage import __version__
from clearpage.utils.logging import get_logger

logger = get_logger(__name__)


class ArchiveIndexError(Exception):
    """Raised when the archive index cannot be queried."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ArchiveIndexClient:
    """Looks up the snapshot timestamps the archive holds for a URL."""

    def __init__(self, index_url: str, timeout: float = 10.0) -> None:
        self._index_url = index_url
        self._timeout = timeout

    async def list_timestamps(self, url: str, limit: int = 10) -> list[str]:
        """List snapshot timestamps for a URL.

        The CDX JSON response is a list of rows whose first row is a header;
        the timestamp is the second column.

        Args:
            url: The original (live) URL.
            limit: Maximum number of timestamps to return.

        Returns:
            Up to ``limit`` 14-digit timestamps in the order the index lists
            them (chronological). Empty if nothing is archived.

        Raises:
            ArchiveIndexError: If the index request or its response is invalid.
        """
        params = {
            "url": url,
            "output": "json",
            "limit": str(limit),
            "collapse": "timestamp:8",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": f"clearpage/{__version__}"},
            ) as client:
                response = await client.get(self._index_url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Archive index HTTP error", url=url, status=e.response.status_code)
            raise ArchiveIndexError(f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            logger.warning("Archive index timeout", url=url)
            raise ArchiveIndexError("timeout") from e
        except httpx.HTTPError as e:
            logger.warning("Archive index request error", url=url, error=str(e))
            raise ArchiveIndexError(f"request error: {e}") from e
        except ValueError as e:
            logger.warning("Archive index returned invalid JSON", url=url)
            raise ArchiveIndexError("invalid JSON from archive index") from e

        if not isinstance(data, list) or len(data) <= 1:
            return []

        timestamps: list[str] = []
        for row in data[1:]:
            if len(timestamps) >= limit:
                break
            if isinstance(row, list) and len(row) > 1 and row[1]:
                timestamps.append(str(row[1]))

        logger.debug("Archive index queried", url=url, count=len(timestamps))
        return timestamps
