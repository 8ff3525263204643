"""Extraction pipeline: turn accepted HTML into an ArticleRecord.

Four tiers run strictly in order and stop at the first accepted result:

1. structured: trafilatura, with readability-lxml as fallback
2. selector-fallback: paragraphs of the first article-like container
3. aggressive-salvage: every qualifying paragraph, minus nav/footer/paywall
4. paragraph-scrape: every long paragraph, unfiltered

A short but non-empty structured result is returned if nothing later
produces text.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from html import escape

import trafilatura
from bs4 import BeautifulSoup, Tag
from readability import Document

from clearpage.models import ArticleRecord, ExtractionTier, Failure, FailureKind, TierOutcome
from clearpage.utils.logging import get_logger
from clearpage.utils.urls import get_domain

logger = get_logger(__name__)

CONTAINER_SELECTORS = (
    "article",
    '[data-testid="article-body"]',
    'section[name="articleBody"]',
    "#site-content article",
    "main article",
    '[itemprop="articleBody"]',
    '[data-module="ArticleBody"]',
    '[data-module="ArticleBodyContainer"]',
    ".wsj-article-body",
    ".article-body",
    '[class*="ArticleBody"]',
    '[class*="article-body"]',
    'div[class*="article"]',
    'div[class*="story"]',
    'div[class*="content"]',
    ".content-body",
    '[role="article"]',
)

SALVAGE_SELECTORS = (
    "article",
    '[data-module="ArticleBody"]',
    '[data-module="ArticleBodyContainer"]',
    ".wsj-article-body",
    ".article-body",
    '[class*="article-body"]',
    '[class*="ArticleBody"]',
    "main article",
    'main [role="article"]',
    "#article-body",
    ".article-content",
    '[itemprop="articleBody"]',
)

SELECTOR_BLOCKLIST = ("subscribe", "cookie")
SALVAGE_BLOCKLIST = ("subscribe", "cookie", "log in", "sign up")
EXCLUDED_ANCESTORS = ("nav", "footer")

CONTAINER_MIN_PARAGRAPHS = 2
CONTAINER_MIN_TEXT = 200
CONTAINER_PARAGRAPH_MIN = 30
CONTAINER_TEXT_FALLBACK_MIN = 100
SELECTOR_MIN_LENGTH = 50
PARAGRAPH_MIN = 50
SALVAGE_PAGE_SCAN_BELOW = 200

AUTHOR_SELECTORS = ('[rel="author"], [itemprop="author"]', ".byline")
EXCERPT_SELECTOR = 'meta[name="description"], meta[property="og:description"]'

READABILITY_NO_TITLE = "[no-title]"


@dataclass
class Candidate:
    """Text produced by one tier, before acceptance."""

    text: str
    html_fragment: str
    title: str | None = None
    author: str | None = None
    excerpt: str | None = None


@dataclass
class ParsedPage:
    """An HTML payload parsed once and shared by every tier."""

    html: str
    url: str
    soup: BeautifulSoup

    @classmethod
    def parse(cls, html: str, url: str) -> "ParsedPage":
        return cls(html=html, url=url, soup=BeautifulSoup(html, "lxml"))


def clean_text(element: Tag) -> str:
    """Element text with whitespace runs collapsed."""
    return " ".join(element.get_text().split())


def contains_phrase(text: str, phrases: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)


def inside_excluded(element: Tag) -> bool:
    """Whether an element sits inside navigation, a footer or a paywall block."""
    for parent in element.parents:
        if parent.name in EXCLUDED_ANCESTORS:
            return True
        classes = parent.get("class") if isinstance(parent, Tag) else None
        if classes and "paywall" in " ".join(classes):
            return True
    return False


def wrap_fragment(parts: Iterable[str]) -> str:
    return '<div class="page">' + "".join(parts) + "</div>"


def paragraphs_to_fragment(texts: Iterable[str]) -> str:
    return wrap_fragment(f"<p>{escape(text)}</p>" for text in texts)


class ExtractionPipeline:
    """Runs the extraction tiers over accepted HTML."""

    def __init__(self, min_structured_length: int = 20, min_content_length: int = 20) -> None:
        self._min_structured_length = min_structured_length
        self._min_content_length = min_content_length

    def extract(self, html: str, url: str) -> TierOutcome:
        """Extract an article from HTML.

        Args:
            html: Accepted raw HTML.
            url: The requested URL; its domain is the last-resort title.

        Returns:
            A TierOutcome holding the record, or an EXTRACTION_FAILED failure.
        """
        if not isinstance(html, str) or not html:
            return self._failed("invalid HTML input")

        page = ParsedPage.parse(html, url)

        structured = self.structured(page)
        if structured and len(structured.text) >= self._min_structured_length:
            return self._accept(page, ExtractionTier.STRUCTURED, structured)

        logger.debug(
            "Structured extraction below threshold",
            url=url,
            length=len(structured.text) if structured else 0,
        )

        selector = self.selector_fallback(page)
        if selector and len(selector.text) >= SELECTOR_MIN_LENGTH:
            return self._accept(page, ExtractionTier.SELECTOR, selector)

        salvage = self.aggressive_salvage(page)
        if salvage and len(salvage.text) > self._min_content_length:
            return self._accept(page, ExtractionTier.AGGRESSIVE, salvage)

        scrape = self.paragraph_scrape(page)
        if scrape and scrape.text:
            return self._accept(page, ExtractionTier.PARAGRAPHS, scrape)

        if structured and structured.text:
            logger.info("Falling back to short structured result", url=url, length=len(structured.text))
            return self._accept(page, ExtractionTier.STRUCTURED, structured)

        return self._failed("no extraction tier produced text")

    def structured(self, page: ParsedPage) -> Candidate | None:
        """Readable-content extraction with trafilatura, then readability-lxml."""
        text = ""
        title = author = excerpt = None
        try:
            text = (
                trafilatura.extract(page.html, include_comments=False, include_tables=False) or ""
            ).strip()
            metadata = trafilatura.extract_metadata(page.html)
            if metadata:
                title, author, excerpt = metadata.title, metadata.author, metadata.description
        except Exception as e:
            logger.debug("Trafilatura extraction failed", url=page.url, error=str(e))

        fragment = ""
        try:
            doc = Document(page.html)
            fragment = doc.summary(html_partial=True)
            readability_title = doc.short_title()
            if not title and readability_title and readability_title != READABILITY_NO_TITLE:
                title = readability_title
        except Exception as e:
            logger.debug("Readability extraction failed", url=page.url, error=str(e))

        if fragment and len(text) < self._min_structured_length:
            summary = BeautifulSoup(fragment, "lxml")
            paragraphs = [t for t in (clean_text(p) for p in summary.find_all("p")) if t]
            readability_text = "\n\n".join(paragraphs) or clean_text(summary)
            if len(readability_text) > len(text):
                logger.debug("Using readability-lxml text", url=page.url)
                text = readability_text

        if not text:
            return None
        if not fragment:
            fragment = paragraphs_to_fragment(line for line in text.split("\n") if line.strip())
        return Candidate(text=text, html_fragment=fragment, title=title, author=author, excerpt=excerpt)

    def selector_fallback(self, page: ParsedPage) -> Candidate | None:
        """Paragraphs of the first container selector that looks like an article body."""
        container = None
        for selector in CONTAINER_SELECTORS:
            element = page.soup.select_one(selector)
            if element is None:
                continue
            if (
                len(element.find_all("p")) > CONTAINER_MIN_PARAGRAPHS
                or len(clean_text(element)) > CONTAINER_MIN_TEXT
            ):
                container = element
                break

        if container is None:
            return None

        kept = [
            (text, p)
            for text, p in ((clean_text(p), p) for p in container.find_all("p"))
            if len(text) > CONTAINER_PARAGRAPH_MIN and not contains_phrase(text, SELECTOR_BLOCKLIST)
        ]
        if kept:
            return Candidate(
                text="\n\n".join(text for text, _ in kept),
                html_fragment=wrap_fragment(str(p) for _, p in kept),
            )

        container_text = " ".join(container.get_text(" ").split())
        if len(container_text) > CONTAINER_TEXT_FALLBACK_MIN:
            return Candidate(text=container_text, html_fragment=paragraphs_to_fragment([container_text]))
        return None

    def aggressive_salvage(self, page: ParsedPage) -> Candidate | None:
        """Every qualifying paragraph in article-like regions, then in the whole page."""
        seen: set[int] = set()
        texts: list[str] = []
        fragments: list[str] = []

        def take(paragraph: Tag) -> None:
            if id(paragraph) in seen:
                return
            seen.add(id(paragraph))
            text = clean_text(paragraph)
            if (
                len(text) > PARAGRAPH_MIN
                and not contains_phrase(text, SALVAGE_BLOCKLIST)
                and not inside_excluded(paragraph)
            ):
                texts.append(text)
                fragments.append(str(paragraph))

        for selector in SALVAGE_SELECTORS:
            for element in page.soup.select(selector):
                for paragraph in element.find_all("p"):
                    take(paragraph)

        if len("\n\n".join(texts)) < SALVAGE_PAGE_SCAN_BELOW:
            for paragraph in page.soup.find_all("p"):
                take(paragraph)

        if not texts:
            return None
        return Candidate(text="\n\n".join(texts), html_fragment=wrap_fragment(fragments))

    def paragraph_scrape(self, page: ParsedPage) -> Candidate | None:
        """Every paragraph longer than the minimum, unfiltered."""
        texts = [t for t in (clean_text(p) for p in page.soup.find_all("p")) if len(t) > PARAGRAPH_MIN]
        if not texts:
            return None
        return Candidate(text="\n\n".join(texts), html_fragment=paragraphs_to_fragment(texts))

    def _accept(self, page: ParsedPage, tier: ExtractionTier, candidate: Candidate) -> TierOutcome:
        record = ArticleRecord(
            title=self._title(page, candidate.title),
            text=candidate.text,
            html_fragment=candidate.html_fragment,
            extraction_tier=tier,
            author=candidate.author or self._author(page),
            excerpt=candidate.excerpt or self._excerpt(page),
        )
        logger.info("Article extracted", url=page.url, tier=tier, length=record.length, title=record.title)
        return TierOutcome(tier=tier, record=record)

    def _failed(self, message: str) -> TierOutcome:
        return TierOutcome(
            tier="extraction",
            failure=Failure(FailureKind.EXTRACTION_FAILED, "extraction", message),
        )

    @staticmethod
    def _title(page: ParsedPage, structured_title: str | None) -> str:
        if structured_title and structured_title.strip():
            return structured_title.strip()
        for element in (page.soup.find("h1"), page.soup.find("title")):
            if element is not None:
                text = clean_text(element)
                if text:
                    return text
        return get_domain(page.url) or "Untitled"

    @staticmethod
    def _author(page: ParsedPage) -> str | None:
        for selector in AUTHOR_SELECTORS:
            element = page.soup.select_one(selector)
            if element is not None:
                text = clean_text(element)
                if text:
                    return text
        return None

    @staticmethod
    def _excerpt(page: ParsedPage) -> str | None:
        element = page.soup.select_one(EXCERPT_SELECTOR)
        if element is not None and element.get("content"):
            return str(element["content"]).strip() or None
        return None
