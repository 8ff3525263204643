"""Marker strings used to classify raw HTML.

Kept as data, keyed by category and (for paywall markers) by site, so that
tuning detection never touches classifier logic. Bump the version when the
table changes; it is logged with every verdict.
"""

INDICATOR_TABLE_VERSION = "2024.2"

BOT = "bot"
PAYWALL = "paywall"

INDICATORS: dict[str, tuple[str, ...]] = {
    BOT: (
        "please enable js",
        "captcha-delivery.com",
        "cf-browser-verification",
        "checking your browser",
        "just a moment",
        "ddos protection",
        "cloudflare",
        "browser verification",
        "verify you are human",
        "datadome captcha",
    ),
    PAYWALL: (
        "subscribe to continue reading",
        "log in to continue reading",
        "sign in to continue",
        "this article is for subscribers only",
        "continue reading",
        'data-testid="paywall"',
        'class="paywall"',
        'id="paywall"',
        'data-module="paywall"',
        "article limit reached",
        "subscribe now",
        "become a subscriber",
        "subscribe to read",
        "subscription required",
        "premium content",
    ),
}

SITE_PAYWALL_INDICATORS: dict[str, tuple[str, ...]] = {
    "nytimes": (
        "subscribe to the times",
        "you've reached your article limit",
        "log in or create a free account",
    ),
    "wsj": (
        "subscribe to wsj",
        "wall street journal subscription",
        "wsj.com subscription",
    ),
}


def paywall_indicators(site_key: str | None = None) -> tuple[str, ...]:
    """Generic paywall markers followed by any markers specific to ``site_key``."""
    return INDICATORS[PAYWALL] + SITE_PAYWALL_INDICATORS.get(site_key or "", ())
