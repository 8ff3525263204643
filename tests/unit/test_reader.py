"""Unit tests for ArticleReader.retrieve_article."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from clearpage.config import Settings
from clearpage.models import (
    ArticleRecord,
    ExtractionTier,
    Failure,
    FailureKind,
    FetchOutcome,
    TierOutcome,
)
from clearpage.profiles import DEFAULT_PROFILE, SiteProfile, StrategyId, get_profile
from clearpage.services.extraction import ExtractionPipeline
from clearpage.services.orchestrator import RetrievalOrchestrator
from clearpage.services.reader import ArticleReader
from clearpage.services.strategies import RenderedFetchExecutor

URL = "https://example.com/2024/story"

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua. Ut enim ad minim veniam, quis nostrud "
    "exercitation ullamco laboris nisi ut aliquip ex ea commodo consequat. "
) * 3
LOREM = LOREM[:600].strip()

PARAGRAPHS = [
    "Archived copy of the story: the harbour authority approved the new ferry terminal plans.",
    "Construction is due to begin in spring and will close the north quay for eighteen months.",
    "Local businesses asked for compensation during the works, which the authority will consider.",
]


def _executor(strategy: StrategyId, html: str) -> MagicMock:
    executor = MagicMock()
    executor.strategy = strategy
    executor.execute = AsyncMock(return_value=FetchOutcome.success(strategy, html))
    return executor


def _reader(*executors: MagicMock, timeout: float = 60.0) -> ArticleReader:
    orchestrator = RetrievalOrchestrator({e.strategy: e for e in executors}, Settings())
    return ArticleReader(orchestrator, ExtractionPipeline(), request_timeout=timeout)


class TestRetrieveArticle:
    """End-to-end behaviour of retrieve_article with stubbed executors."""

    async def test_plain_article(self) -> None:
        """A clean article from the first strategy is extracted with the structured tier."""
        html = f"<html><body><article><p>{LOREM}</p></article></body></html>"
        direct = _executor(StrategyId.DIRECT, html)
        reader = _reader(direct)

        result = await reader.retrieve_article(URL, SiteProfile(name="t", strategies=(StrategyId.DIRECT,)))

        assert isinstance(result, ArticleRecord)
        assert result.extraction_tier is ExtractionTier.STRUCTURED
        assert abs(result.length - 600) <= 20
        assert result.strategy == StrategyId.DIRECT

    async def test_paywalled_archive_copy(self) -> None:
        """Paywall chrome in an archived copy does not stop retrieval."""
        html = (
            '<html><body><div class="paywall">Subscribe now</div><article>'
            + "".join(f"<p>{p}</p>" for p in PARAGRAPHS)
            + "</article></body></html>"
        )
        archive = _executor(StrategyId.ARCHIVE, html)
        profile = SiteProfile(name="archive-only", strategies=(StrategyId.ARCHIVE,))

        result = await _reader(archive).retrieve_article(URL, profile)

        assert isinstance(result, ArticleRecord)
        assert result.extraction_tier in (ExtractionTier.STRUCTURED, ExtractionTier.SELECTOR)
        assert result.strategy == StrategyId.ARCHIVE
        assert PARAGRAPHS[1] in result.text

    async def test_every_strategy_empty(self) -> None:
        """Empty HTML everywhere ends in an EMPTY_RESPONSE failure."""
        executors = [_executor(s, "") for s in DEFAULT_PROFILE.strategies]

        result = await _reader(*executors).retrieve_article(URL, DEFAULT_PROFILE)

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.EMPTY_RESPONSE

    async def test_extraction_failure_surfaces(self) -> None:
        """Accepted HTML with no text ends in EXTRACTION_FAILED."""
        direct = _executor(StrategyId.DIRECT, "<html><head><title>x</title></head><body></body></html>")

        result = await _reader(direct).retrieve_article(
            URL, SiteProfile(name="t", strategies=(StrategyId.DIRECT,))
        )

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.EXTRACTION_FAILED

    async def test_pipeline_failure_returned_as_is(self) -> None:
        """An extraction failure from the pipeline is handed back unchanged."""
        failure = Failure(FailureKind.EXTRACTION_FAILED, "extraction", "no tier produced text")
        pipeline = MagicMock(spec=ExtractionPipeline)
        pipeline.extract.return_value = TierOutcome(tier=ExtractionTier.PARAGRAPHS, failure=failure)
        orchestrator = RetrievalOrchestrator(
            {StrategyId.DIRECT: _executor(StrategyId.DIRECT, "<html><body></body></html>")}, Settings()
        )
        reader = ArticleReader(orchestrator, pipeline)

        result = await reader.retrieve_article(URL, SiteProfile(name="t", strategies=(StrategyId.DIRECT,)))

        assert result is failure

    async def test_profile_looked_up_from_url(self) -> None:
        """Without an explicit profile the URL's profile is used."""
        direct = _executor(StrategyId.DIRECT, "")
        referrer = _executor(StrategyId.SEARCH_REFERRER, "")
        rendered = _executor(StrategyId.RENDERED, "")
        reader = _reader(direct, referrer, rendered)

        await reader.retrieve_article("https://www.nytimes.com/2024/01/01/story.html")

        assert get_profile("https://www.nytimes.com/").strategies == (
            StrategyId.DIRECT,
            StrategyId.SEARCH_REFERRER,
            StrategyId.RENDERED,
        )
        for executor in (direct, referrer, rendered):
            executor.execute.assert_awaited_once()

    async def test_deadline_cancels_in_flight_strategy(self) -> None:
        """When the request deadline passes, the running strategy is cancelled."""
        cancelled = asyncio.Event()

        async def hang(url: str, options: object) -> FetchOutcome:
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            raise AssertionError("unreachable")

        slow = MagicMock()
        slow.strategy = StrategyId.RENDERED
        slow.execute = hang
        reader = _reader(slow, timeout=0.05)

        result = await reader.retrieve_article(URL, SiteProfile(name="t", strategies=(StrategyId.RENDERED,)))

        assert isinstance(result, Failure)
        assert result.kind is FailureKind.TIMEOUT
        assert result.source == "reader"
        assert cancelled.is_set()


class TestFromSettings:
    """Tests for default wiring."""

    def test_registers_every_strategy(self) -> None:
        """Every strategy named by a built-in profile has an executor."""
        reader = ArticleReader.from_settings(Settings(render_settle_seconds=1.0))

        executors = reader._orchestrator._executors
        assert set(executors) == set(StrategyId)
        assert isinstance(executors[StrategyId.RENDERED], RenderedFetchExecutor)
