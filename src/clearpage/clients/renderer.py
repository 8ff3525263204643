"""Headless Chromium renderer for clearpage."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from clearpage.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--window-size=1920,1080",
]

EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "max-age=0",
}

HIDE_WEBDRIVER_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => false});
"""

# Removes overlay elements and clears "locked" styling so hidden paragraphs
# become part of the serialized DOM.
UNLOCK_SCRIPT = """
() => {
    const overlays = [
        '[class*="paywall"]', '[id*="paywall"]', '[data-module="paywall"]',
        '.paywall-overlay', '.subscription-wall', '.article-lock',
    ];
    for (const selector of overlays) {
        document.querySelectorAll(selector).forEach(el => el.remove());
    }
    document.querySelectorAll('[class*="locked"], [class*="premium"], [class*="subscriber"]')
        .forEach(el => {
            el.classList.remove('locked', 'premium', 'subscriber-only');
            el.style.display = '';
        });
}
"""

SCROLL_SCRIPT = """
async () => {
    await new Promise(resolve => {
        let total = 0;
        const step = () => {
            window.scrollBy(0, 500);
            total += 500;
            if (total < document.documentElement.scrollHeight * 1.5) {
                setTimeout(step, 200);
            } else {
                resolve();
            }
        };
        step();
    });
}
"""

ARTICLE_SELECTOR = (
    'article, [data-testid="article-body"], section[name="articleBody"], '
    'main article, .article-body, [class*="article-body"], p'
)


class RenderError(Exception):
    """Raised when the headless browser cannot produce a page."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class RenderTimeout(RenderError):
    """Raised when navigation or a wait exceeds its timeout."""


class RenderedPage:
    """A navigated page inside an open render session."""

    def __init__(self, page: Page, timeout: float) -> None:
        self._page = page
        self._timeout = timeout

    async def content(self) -> str:
        """Serialize the current DOM."""
        try:
            return await self._page.content()
        except PlaywrightError as e:
            raise RenderError(f"could not read page content: {e}") from e

    async def wait(self, seconds: float) -> None:
        """Let scripts on the page run for a while."""
        await asyncio.sleep(seconds)

    async def unlock(self) -> None:
        """Best effort: drop paywall overlays, scroll for lazy content, wait for article markup."""
        for script in (UNLOCK_SCRIPT, SCROLL_SCRIPT):
            try:
                await self._page.evaluate(script)
            except PlaywrightError as e:
                logger.debug("Page script failed", error=str(e))
        try:
            await self._page.wait_for_selector(ARTICLE_SELECTOR, timeout=self._timeout * 1000)
        except PlaywrightError as e:
            logger.debug("Article markup did not appear", error=str(e))


class PlaywrightRenderer:
    """Renders pages in a fresh headless Chromium per call."""

    @asynccontextmanager
    async def session(
        self,
        url: str,
        user_agent: str | None = None,
        timeout: float = 20.0,
    ) -> AsyncIterator[RenderedPage]:
        """Open a browser, navigate to ``url`` and yield the page.

        The browser process is closed on every exit path, including
        cancellation of the calling task.

        Raises:
            RenderTimeout: If navigation exceeds ``timeout`` seconds.
            RenderError: If the browser cannot launch or navigate.
        """
        logger.info("Launching headless browser", url=url)
        async with async_playwright() as playwright:
            try:
                browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            except PlaywrightError as e:
                raise RenderError(f"browser launch failed: {e}") from e
            try:
                page = await browser.new_page(
                    user_agent=user_agent or DEFAULT_USER_AGENT,
                    viewport={"width": 1920, "height": 1080},
                    extra_http_headers=EXTRA_HEADERS,
                )
                await page.add_init_script(HIDE_WEBDRIVER_SCRIPT)
                try:
                    await page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
                except PlaywrightTimeoutError as e:
                    raise RenderTimeout("navigation timeout") from e
                except PlaywrightError as e:
                    raise RenderError(f"navigation failed: {e}") from e
                yield RenderedPage(page, timeout)
            finally:
                await browser.close()
                logger.debug("Headless browser closed", url=url)
