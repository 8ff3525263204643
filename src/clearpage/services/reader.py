"""Top-level article retrieval: orchestrator plus extraction under one deadline."""

import asyncio
from dataclasses import replace

from clearpage.clients.archive import ArchiveIndexClient
from clearpage.clients.renderer import PlaywrightRenderer
from clearpage.clients.transport import HttpTransport
from clearpage.config import Settings
from clearpage.models import ArticleRecord, Failure, FailureKind
from clearpage.profiles import SiteProfile, StrategyId, get_profile
from clearpage.services.archive import ArchiveLocator
from clearpage.services.extraction import ExtractionPipeline
from clearpage.services.orchestrator import RetrievalOrchestrator
from clearpage.services.strategies import (
    ArchiveSnapshotExecutor,
    DirectFetchExecutor,
    RenderedFetchExecutor,
    SearchReferrerExecutor,
)
from clearpage.utils.debug import HtmlDumper
from clearpage.utils.logging import get_logger, request_context

logger = get_logger(__name__)


class ArticleReader:
    """Retrieves and extracts one article per call; holds no per-request state."""

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        pipeline: ExtractionPipeline,
        request_timeout: float = 60.0,
    ) -> None:
        self._orchestrator = orchestrator
        self._pipeline = pipeline
        self._request_timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArticleReader":
        """Wire the default executors, locator and pipeline from settings."""
        transport = HttpTransport()
        locator = ArchiveLocator(
            ArchiveIndexClient(settings.archive_index_url, timeout=settings.archive_index_timeout),
            settings.archive_base_url,
        )
        executors = {
            StrategyId.DIRECT: DirectFetchExecutor(transport),
            StrategyId.SEARCH_REFERRER: SearchReferrerExecutor(transport),
            StrategyId.ARCHIVE: ArchiveSnapshotExecutor(
                transport,
                locator,
                snapshot_limit=settings.archive_snapshot_limit,
                snapshot_timeout=settings.archive_fetch_timeout,
            ),
            StrategyId.RENDERED: RenderedFetchExecutor(
                PlaywrightRenderer(),
                settle_seconds=settings.render_settle_seconds,
                challenge_wait_seconds=settings.challenge_wait_seconds,
            ),
        }
        dumper = HtmlDumper(settings.debug_dump_dir) if settings.debug_dump_dir else None
        return cls(
            orchestrator=RetrievalOrchestrator(executors, settings, dumper=dumper),
            pipeline=ExtractionPipeline(
                min_structured_length=settings.min_structured_length,
                min_content_length=settings.min_content_length,
            ),
            request_timeout=settings.request_timeout,
        )

    async def retrieve_article(
        self, url: str, profile: SiteProfile | None = None
    ) -> ArticleRecord | Failure:
        """Retrieve the readable article at ``url``.

        When the deadline passes, in-flight work (including a headless
        browser session) is cancelled and released before returning.

        Args:
            url: The article URL.
            profile: Site profile to use; looked up from the URL when omitted.

        Returns:
            The extracted ArticleRecord, or the single terminal Failure.
        """
        profile = profile or get_profile(url)
        with request_context(url=url, profile=profile.name):
            logger.info("Retrieving article", strategies=[str(s) for s in profile.strategies])
            try:
                async with asyncio.timeout(self._request_timeout):
                    return await self._retrieve(url, profile)
            except TimeoutError:
                logger.warning("Retrieval timed out", timeout=self._request_timeout)
                return Failure(
                    FailureKind.TIMEOUT, "reader", f"retrieval exceeded {self._request_timeout:g}s"
                )

    async def _retrieve(self, url: str, profile: SiteProfile) -> ArticleRecord | Failure:
        outcome = await self._orchestrator.retrieve(url, profile)
        if outcome.failure is not None:
            logger.warning("All strategies failed", last_failure=str(outcome.failure))
            return outcome.failure

        # Parsing is CPU-bound; keep it off the event loop. A thread cannot be
        # cancelled, so on deadline expiry the bounded parse finishes unobserved.
        extracted = await asyncio.to_thread(self._pipeline.extract, outcome.html, url)
        if extracted.record is not None:
            return replace(extracted.record, strategy=outcome.strategy)

        failure = extracted.failure or Failure(
            FailureKind.EXTRACTION_FAILED, "extraction", "no extraction result"
        )
        logger.warning("Extraction failed", strategy=outcome.strategy, reason=failure.message)
        return failure
