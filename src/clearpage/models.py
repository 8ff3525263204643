"""Shared data models for clearpage."""

from dataclasses import dataclass, field
from enum import StrEnum


class FailureKind(StrEnum):
    """Why a strategy, tier or request failed."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    BOT_BLOCKED = "bot_blocked"
    PAYWALL_DETECTED = "paywall_detected"
    EXTRACTION_FAILED = "extraction_failed"
    ARCHIVE_UNAVAILABLE = "archive_unavailable"


@dataclass(frozen=True)
class Failure:
    """A recorded failure, tagged with the strategy, tier or component it came from."""

    kind: FailureKind
    source: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}: {self.message}"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one retrieval strategy: either HTML or a failure, never both."""

    strategy: str
    html: str | None = None
    failure: Failure | None = None

    def __post_init__(self) -> None:
        if (self.html is None) == (self.failure is None):
            raise ValueError("FetchOutcome needs exactly one of html or failure")

    @classmethod
    def success(cls, strategy: str, html: str) -> "FetchOutcome":
        return cls(strategy=strategy, html=html)

    @classmethod
    def failed(cls, strategy: str, kind: FailureKind, message: str) -> "FetchOutcome":
        return cls(strategy=strategy, failure=Failure(kind=kind, source=strategy, message=message))

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class ClassificationVerdict:
    """Empty / bot-blocked / paywalled judgement on a raw HTML payload."""

    empty: bool = False
    bot_blocked: bool = False
    paywalled: bool = False
    matched_indicators: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return not (self.empty or self.bot_blocked or self.paywalled)


@dataclass(frozen=True)
class ArchiveSnapshot:
    """A historical copy of a URL; timestamp is YYYYMMDDHHmmss."""

    timestamp: str
    url: str


class ExtractionTier(StrEnum):
    """Extraction stages, in the order they run."""

    STRUCTURED = "structured"
    SELECTOR = "selector-fallback"
    AGGRESSIVE = "aggressive-salvage"
    PARAGRAPHS = "paragraph-scrape"


@dataclass
class ArticleRecord:
    """Normalized article content.

    ``length`` is always the character count of ``text`` and is the only
    measure used to judge whether content is meaningful.
    """

    title: str
    text: str
    html_fragment: str
    extraction_tier: ExtractionTier
    author: str | None = None
    excerpt: str | None = None
    strategy: str | None = None
    length: int = field(init=False)

    def __post_init__(self) -> None:
        self.length = len(self.text)


@dataclass(frozen=True)
class TierOutcome:
    """Result of the extraction pipeline (or one tier of it)."""

    tier: str
    record: ArticleRecord | None = None
    failure: Failure | None = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.failure is None):
            raise ValueError("TierOutcome needs exactly one of record or failure")

    @property
    def ok(self) -> bool:
        return self.failure is None
