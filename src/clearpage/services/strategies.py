"""Strategy executors: one retrieval technique each, no internal retries."""

from dataclasses import dataclass, field
from typing import Protocol

from clearpage.clients.archive import ArchiveIndexError
from clearpage.clients.renderer import PlaywrightRenderer, RenderError, RenderTimeout
from clearpage.clients.transport import HttpTransport, TransportError, TransportTimeout
from clearpage.models import FailureKind, FetchOutcome
from clearpage.profiles import ArchivePolicy, StrategyId
from clearpage.services.archive import ArchiveLocator
from clearpage.services.classifier import classify
from clearpage.utils.logging import get_logger
from clearpage.utils.urls import get_domain

logger = get_logger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
GOOGLEBOT_USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
ARCHIVE_BOT_USER_AGENT = (
    "Mozilla/5.0 (compatible; archive.org_bot +http://www.archive.org/details/archive.org_bot)"
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}

ARCHIVE_MISSING_NOTICE = "wayback machine doesn't have that page archived"
MIN_SNAPSHOT_LENGTH = 1000


@dataclass
class FetchOptions:
    """Per-call knobs the orchestrator derives from settings and the site profile."""

    timeout: float = 10.0
    max_redirects: int = 5
    user_agent: str | None = None
    archive_policy: ArchivePolicy = field(default_factory=ArchivePolicy)
    site_key: str | None = None


class StrategyExecutor(Protocol):
    """Obtains raw HTML for a URL with one technique."""

    strategy: StrategyId

    async def execute(self, url: str, options: FetchOptions) -> FetchOutcome: ...


async def _get(
    transport: HttpTransport,
    strategy: StrategyId,
    url: str,
    headers: dict[str, str],
    options: FetchOptions,
) -> FetchOutcome:
    try:
        response = await transport.get(url, headers, options.timeout, options.max_redirects)
    except TransportTimeout as e:
        return FetchOutcome.failed(strategy, FailureKind.TIMEOUT, e.reason)
    except TransportError as e:
        return FetchOutcome.failed(strategy, FailureKind.NETWORK_ERROR, e.reason)
    logger.debug("Fetched", strategy=strategy, url=url, status=response.status, size=len(response.body))
    return FetchOutcome.success(strategy, response.body)


class DirectFetchExecutor:
    """Plain GET with browser-like headers and no cookies or credentials."""

    strategy = StrategyId.DIRECT

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport

    async def execute(self, url: str, options: FetchOptions) -> FetchOutcome:
        headers = {"User-Agent": options.user_agent or BROWSER_USER_AGENT, **BROWSER_HEADERS}
        return await _get(self._transport, self.strategy, url, headers, options)


class SearchReferrerExecutor:
    """GET disguised as a search-engine crawler arriving from a site: query."""

    strategy = StrategyId.SEARCH_REFERRER

    def __init__(self, transport: HttpTransport) -> None:
        self._transport = transport

    async def execute(self, url: str, options: FetchOptions) -> FetchOutcome:
        domain = get_domain(url)
        if not domain:
            return FetchOutcome.failed(
                self.strategy, FailureKind.NETWORK_ERROR, "invalid URL: cannot extract domain"
            )
        headers = {
            **BROWSER_HEADERS,
            "User-Agent": GOOGLEBOT_USER_AGENT,
            "Referer": f"https://www.google.com/search?q=site:{domain}",
            "Sec-Fetch-Site": "cross-site",
        }
        return await _get(self._transport, self.strategy, url, headers, options)


class ArchiveSnapshotExecutor:
    """Fetches the first usable archived snapshot, in the order the policy picks."""

    strategy = StrategyId.ARCHIVE

    def __init__(
        self,
        transport: HttpTransport,
        locator: ArchiveLocator,
        snapshot_limit: int = 10,
        snapshot_timeout: float = 15.0,
    ) -> None:
        self._transport = transport
        self._locator = locator
        self._snapshot_limit = snapshot_limit
        self._snapshot_timeout = snapshot_timeout

    async def execute(self, url: str, options: FetchOptions) -> FetchOutcome:
        try:
            snapshots = await self._locator.list_snapshots(url, self._snapshot_limit)
        except ArchiveIndexError as e:
            return FetchOutcome.failed(
                self.strategy, FailureKind.ARCHIVE_UNAVAILABLE, f"archive index failed: {e.reason}"
            )

        if not snapshots:
            return FetchOutcome.failed(self.strategy, FailureKind.ARCHIVE_UNAVAILABLE, "no snapshots archived")

        ordered = self._locator.select_order(snapshots, options.archive_policy)
        headers = {"User-Agent": ARCHIVE_BOT_USER_AGENT, "Accept": "text/html,application/xhtml+xml"}

        for snapshot in ordered:
            try:
                response = await self._transport.get(
                    snapshot.url, headers, self._snapshot_timeout, options.max_redirects
                )
            except TransportError as e:
                logger.debug("Snapshot fetch failed", snapshot=snapshot.timestamp, reason=e.reason)
                continue

            body = response.body
            if len(body) > MIN_SNAPSHOT_LENGTH and ARCHIVE_MISSING_NOTICE not in body.lower():
                logger.info("Using archived snapshot", url=url, snapshot=snapshot.timestamp)
                return FetchOutcome.success(self.strategy, body)
            logger.debug("Snapshot unusable", snapshot=snapshot.timestamp, size=len(body))

        return FetchOutcome.failed(
            self.strategy,
            FailureKind.ARCHIVE_UNAVAILABLE,
            f"none of {len(ordered)} snapshots could be fetched",
        )


class RenderedFetchExecutor:
    """Renders the page in a headless browser and returns the final DOM."""

    strategy = StrategyId.RENDERED

    def __init__(
        self,
        renderer: PlaywrightRenderer,
        settle_seconds: float = 5.0,
        challenge_wait_seconds: float = 15.0,
    ) -> None:
        self._renderer = renderer
        self._settle_seconds = settle_seconds
        self._challenge_wait_seconds = challenge_wait_seconds

    async def execute(self, url: str, options: FetchOptions) -> FetchOutcome:
        try:
            async with self._renderer.session(url, options.user_agent, options.timeout) as page:
                html = await page.content()
                if classify(html).bot_blocked:
                    # One wait only; whatever the page shows next is handed on.
                    logger.info("Bot challenge while rendering, waiting once", url=url)
                    await page.wait(self._challenge_wait_seconds)
                    html = await page.content()
                    if classify(html).bot_blocked:
                        logger.info("Bot challenge still present, continuing", url=url)

                await page.unlock()
                await page.wait(self._settle_seconds)
                html = await page.content()
        except RenderTimeout as e:
            return FetchOutcome.failed(self.strategy, FailureKind.TIMEOUT, e.reason)
        except RenderError as e:
            return FetchOutcome.failed(self.strategy, FailureKind.NETWORK_ERROR, e.reason)

        return FetchOutcome.success(self.strategy, html)
