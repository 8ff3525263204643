"""Optional raw-HTML dumps for diagnosing extraction problems."""

import re
import time
from pathlib import Path
from typing import Any

from clearpage.indicators import paywall_indicators
from clearpage.utils.logging import get_logger
from clearpage.utils.urls import get_domain

logger = get_logger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>")


def analyze_html(html: str | None) -> dict[str, Any]:
    """Summarize a payload: size, article markup, paywall markers, visible text size."""
    if not html or not isinstance(html, str):
        return {"length": 0, "has_article_tag": False, "paywall_markers": [], "text_length": 0}

    lowered = html.lower()
    return {
        "length": len(html),
        "has_article_tag": "<article" in lowered,
        "paywall_markers": [m for m in paywall_indicators() if m in lowered],
        "text_length": len(TAG_PATTERN.sub("", html).strip()),
    }


class HtmlDumper:
    """Writes payloads to ``<domain>_<stage>_<epoch-ms>.html`` in a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def dump(self, html: str, url: str, stage: str) -> Path | None:
        """Save a payload and log its analysis. Never raises on I/O errors."""
        domain = (get_domain(url) or "unknown").replace(".", "_")
        path = self._directory / f"{domain}_{stage}_{int(time.time() * 1000)}.html"
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_text(html, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write HTML dump", path=str(path), error=str(e))
            return None

        logger.debug("Saved HTML dump", path=str(path), stage=stage, **analyze_html(html))
        return path
