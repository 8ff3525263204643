"""Unit tests for the archive index client and archive locator."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx
from httpx import Response

from clearpage.clients.archive import ArchiveIndexClient, ArchiveIndexError
from clearpage.models import ArchiveSnapshot
from clearpage.profiles import ArchivePolicy
from clearpage.services.archive import ArchiveLocator, format_timestamp

CDX_URL = "https://web.archive.org/cdx/search/cdx"
BASE_URL = "https://web.archive.org/web"
ARTICLE = "https://www.wsj.com/articles/story"
NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)


def _snapshot(age: timedelta) -> ArchiveSnapshot:
    ts = format_timestamp(NOW - age)
    return ArchiveSnapshot(timestamp=ts, url=f"{BASE_URL}/{ts}/{ARTICLE}")


class TestArchiveIndexClient:
    """Tests for ArchiveIndexClient."""

    @pytest.fixture
    def client(self) -> ArchiveIndexClient:
        """Create a test client."""
        return ArchiveIndexClient(CDX_URL, timeout=5.0)

    @respx.mock
    async def test_parses_rows_after_header(self, client: ArchiveIndexClient) -> None:
        """Timestamps come from the second column of every row after the header."""
        route = respx.get(CDX_URL).mock(
            return_value=Response(
                200,
                json=[
                    ["urlkey", "timestamp", "original"],
                    ["com,wsj)/articles/story", "20230101120000", ARTICLE],
                    ["com,wsj)/articles/story", "20240101120000", ARTICLE],
                ],
            )
        )

        timestamps = await client.list_timestamps(ARTICLE, limit=10)

        assert timestamps == ["20230101120000", "20240101120000"]
        params = route.calls.last.request.url.params
        assert params["url"] == ARTICLE
        assert params["output"] == "json"
        assert params["collapse"] == "timestamp:8"
        assert params["limit"] == "10"

    @respx.mock
    async def test_respects_limit(self, client: ArchiveIndexClient) -> None:
        """No more than limit timestamps are returned."""
        rows = [["urlkey", "timestamp"]] + [["k", f"2024010{i}000000"] for i in range(1, 6)]
        respx.get(CDX_URL).mock(return_value=Response(200, json=rows))

        assert len(await client.list_timestamps(ARTICLE, limit=2)) == 2

    @respx.mock
    async def test_header_only_means_no_snapshots(self, client: ArchiveIndexClient) -> None:
        """A header row alone means nothing is archived."""
        respx.get(CDX_URL).mock(return_value=Response(200, json=[["urlkey", "timestamp"]]))

        assert await client.list_timestamps(ARTICLE) == []

    @respx.mock
    async def test_http_error_raises(self, client: ArchiveIndexClient) -> None:
        """HTTP errors surface as ArchiveIndexError."""
        respx.get(CDX_URL).mock(return_value=Response(503))

        with pytest.raises(ArchiveIndexError, match="HTTP 503"):
            await client.list_timestamps(ARTICLE)

    @respx.mock
    async def test_timeout_raises(self, client: ArchiveIndexClient) -> None:
        """Timeouts surface as ArchiveIndexError."""
        respx.get(CDX_URL).mock(side_effect=httpx.ConnectTimeout("timeout"))

        with pytest.raises(ArchiveIndexError, match="timeout"):
            await client.list_timestamps(ARTICLE)

    @respx.mock
    async def test_invalid_json_raises(self, client: ArchiveIndexClient) -> None:
        """A non-JSON body surfaces as ArchiveIndexError."""
        respx.get(CDX_URL).mock(return_value=Response(200, text="<html>oops</html>"))

        with pytest.raises(ArchiveIndexError, match="invalid JSON"):
            await client.list_timestamps(ARTICLE)


class TestListSnapshots:
    """Tests for ArchiveLocator.list_snapshots."""

    async def test_builds_snapshot_urls_in_chronological_order(self) -> None:
        """Snapshots are sorted oldest first and point at the archive base URL."""
        index = MagicMock(spec=ArchiveIndexClient)
        index.list_timestamps = AsyncMock(return_value=["20240101000000", "20230101000000"])
        locator = ArchiveLocator(index, BASE_URL + "/")

        snapshots = await locator.list_snapshots(ARTICLE, limit=5)

        index.list_timestamps.assert_awaited_once_with(ARTICLE, 5)
        assert [s.timestamp for s in snapshots] == ["20230101000000", "20240101000000"]
        assert snapshots[0].url == f"{BASE_URL}/20230101000000/{ARTICLE}"

    async def test_drops_malformed_timestamps(self) -> None:
        """Only 14-digit timestamps become snapshots."""
        index = MagicMock(spec=ArchiveIndexClient)
        index.list_timestamps = AsyncMock(return_value=["2024", "20240101000000", "abcdefghijklmn"])
        locator = ArchiveLocator(index, BASE_URL)

        snapshots = await locator.list_snapshots(ARTICLE)

        assert [s.timestamp for s in snapshots] == ["20240101000000"]


class TestSelectOrder:
    """Tests for ArchiveLocator.select_order."""

    def test_older_first_excludes_recent_snapshots(self) -> None:
        """Snapshots younger than the cutoff are skipped; the rest go newest first."""
        two = _snapshot(timedelta(days=61))
        eight = _snapshot(timedelta(days=243))
        thirteen = _snapshot(timedelta(days=395))
        policy = ArchivePolicy(prefer="older", cutoff=timedelta(days=183))

        ordered = ArchiveLocator.select_order([two, eight, thirteen], policy, now=NOW)

        assert ordered == [eight, thirteen]

    def test_older_first_falls_back_to_full_list(self) -> None:
        """When every snapshot is newer than the cutoff, all are used, newest first."""
        one = _snapshot(timedelta(days=30))
        two = _snapshot(timedelta(days=61))
        three = _snapshot(timedelta(days=92))
        policy = ArchivePolicy(prefer="older", cutoff=timedelta(days=183))

        ordered = ArchiveLocator.select_order([three, one, two], policy, now=NOW)

        assert ordered == [one, two, three]

    def test_cutoff_is_strict(self) -> None:
        """A snapshot exactly at the cutoff is not older than it."""
        policy = ArchivePolicy(prefer="older", cutoff=timedelta(days=183))
        at_cutoff = _snapshot(timedelta(days=183))
        older = _snapshot(timedelta(days=184))

        assert ArchiveLocator.select_order([at_cutoff, older], policy, now=NOW) == [older]

    def test_newer_first_is_reverse_chronological(self) -> None:
        """Newer-first keeps everything, newest first."""
        snaps = [_snapshot(timedelta(days=d)) for d in (400, 10, 200)]
        ordered = ArchiveLocator.select_order(snaps, ArchivePolicy(prefer="newer"), now=NOW)

        assert [s.timestamp for s in ordered] == sorted((s.timestamp for s in snaps), reverse=True)

    def test_empty_list(self) -> None:
        """Nothing in, nothing out."""
        assert ArchiveLocator.select_order([], ArchivePolicy(prefer="older"), now=NOW) == []
