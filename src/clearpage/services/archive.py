"""Archive locator: find snapshots of a URL and decide the order to visit them."""

import re
from datetime import UTC, datetime

from clearpage.clients.archive import ArchiveIndexClient
from clearpage.models import ArchiveSnapshot
from clearpage.profiles import ArchivePolicy
from clearpage.utils.logging import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
TIMESTAMP_PATTERN = re.compile(r"^\d{14}$")


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as a 14-digit archive timestamp (UTC)."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime(TIMESTAMP_FORMAT)


class ArchiveLocator:
    """Queries the archive index and orders snapshots by an age policy.

    The locator never fetches snapshot pages; it only hands the
    archived-snapshot strategy a visit order.
    """

    def __init__(self, index: ArchiveIndexClient, archive_base_url: str) -> None:
        self._index = index
        self._archive_base_url = archive_base_url.rstrip("/")

    def snapshot_url(self, timestamp: str, url: str) -> str:
        return f"{self._archive_base_url}/{timestamp}/{url}"

    async def list_snapshots(self, url: str, limit: int = 10) -> list[ArchiveSnapshot]:
        """List archived snapshots of ``url`` in chronological order.

        Raises:
            ArchiveIndexError: If the index cannot be queried.
        """
        timestamps = await self._index.list_timestamps(url, limit)
        valid = sorted(ts for ts in timestamps if TIMESTAMP_PATTERN.match(ts))
        if len(valid) != len(timestamps):
            logger.debug("Dropped malformed archive timestamps", url=url, dropped=len(timestamps) - len(valid))
        return [ArchiveSnapshot(timestamp=ts, url=self.snapshot_url(ts, url)) for ts in valid]

    @staticmethod
    def select_order(
        snapshots: list[ArchiveSnapshot],
        policy: ArchivePolicy,
        now: datetime | None = None,
    ) -> list[ArchiveSnapshot]:
        """Reduce a snapshot list to the order in which to visit it.

        Older-first keeps snapshots strictly older than ``now - policy.cutoff``,
        most recent of those first; when none qualify it falls back to the
        whole list, newest first. Newer-first is plain reverse chronological
        order.
        """
        newest_first = sorted(snapshots, key=lambda s: s.timestamp, reverse=True)
        if policy.prefer == "newer":
            return newest_first

        now = now or datetime.now(UTC)
        cutoff = format_timestamp(now - policy.cutoff)
        older = [s for s in newest_first if s.timestamp < cutoff]
        if not older:
            logger.debug("No snapshot older than cutoff, using all snapshots", cutoff=cutoff)
            return newest_first
        return older
