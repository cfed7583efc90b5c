import logging

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright_stealth import Stealth


class BasePlaywrightDriver:
    """Async headless Chromium with anti-bot stealth applied to every page.

    Use as an async context manager; pages are opened per request with new_page() so many
    requests can be in flight within one browser context.
    """

    timeout: int = 30 * 1000

    def __init__(self, headless: bool = True, timeout: int | None = None):
        self.headless = headless
        if timeout is not None:
            self.timeout = timeout
        self._stealth = Stealth()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    def _get_browser_args(self) -> list[str]:
        return [
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-infobars",
            "--window-size=1280,900",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=self._get_browser_args(),
        )
        self._context = await self._browser.new_context(
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/131.0.0.0 Safari/537.36"
            ),
            locale="ru-RU",
            timezone_id="Europe/Moscow",
            viewport={"width": 1280, "height": 900},
            extra_http_headers={"Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7"},
        )
        # Skip loading images to speed up scraping
        await self._context.route(
            "**/*.{png,jpg,jpeg,webp,svg,gif}",
            lambda route: route.abort(),
        )
        logging.debug("Browser context started (headless=%s)", self.headless)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._browser = self._context = self._playwright = None

    async def new_page(self) -> Page:
        if self._context is None:
            raise RuntimeError("Driver is not started, use 'async with' first")
        page = await self._context.new_page()
        await self._stealth.apply_stealth_async(page)
        page.set_default_timeout(self.timeout)
        return page
