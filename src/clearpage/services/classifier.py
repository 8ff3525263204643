"""Classify raw HTML as empty, bot-blocked, paywalled or clean."""

from clearpage.indicators import BOT, INDICATORS, paywall_indicators
from clearpage.models import ClassificationVerdict


def _matches(haystack: str, indicators: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(indicator for indicator in indicators if indicator.lower() in haystack)


def classify(html: object, site_key: str | None = None) -> ClassificationVerdict:
    """Classify a raw HTML payload.

    Bot-protection markers are checked first and short-circuit: challenge
    pages often carry paywall-like text too, and must not be reported as
    paywalls.

    Args:
        html: The payload. Anything other than a non-empty string is empty.
        site_key: Optional key selecting extra site-specific paywall markers.

    Returns:
        A verdict listing the markers of the category that fired.
    """
    if not isinstance(html, str) or not html:
        return ClassificationVerdict(empty=True)

    lowered = html.lower()

    bot_hits = _matches(lowered, INDICATORS[BOT])
    if bot_hits:
        return ClassificationVerdict(bot_blocked=True, matched_indicators=bot_hits)

    paywall_hits = _matches(lowered, paywall_indicators(site_key))
    if paywall_hits:
        return ClassificationVerdict(paywalled=True, matched_indicators=paywall_hits)

    return ClassificationVerdict()
