from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from autoapply.config import Settings, get_settings
from autoapply.errors import NavigationTimeout

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]

MAX_PRESENCE_CHECKS = 20
VISIBLE_ONLY = " >> visible=true"


class BrowserSession:
    """One Chromium process, one isolated context and a single page, owned by one run."""

    def __init__(self, settings: Settings | None = None, launcher: Callable[[], Any] = sync_playwright):
        self.settings = settings or get_settings()
        self._launcher = launcher
        self._playwright = None
        self._browser = None
        self._context = None
        self._page: Page | None = None

    def __enter__(self) -> "BrowserSession":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("browser session is not open")
        return self._page

    def open(self) -> "BrowserSession":
        if self._page is not None:
            return self
        try:
            self._playwright = self._launcher().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.settings.browser_headless,
                args=CHROMIUM_ARGS,
            )
            self._context = self._browser.new_context(
                viewport={
                    "width": self.settings.browser_viewport_width,
                    "height": self.settings.browser_viewport_height,
                },
                user_agent=self.settings.browser_user_agent,
            )
            page = self._context.new_page()
            page.set_default_timeout(self.settings.browser_selector_timeout_ms)
            page.set_default_navigation_timeout(self.settings.browser_nav_timeout_ms)
            self._page = page
        except Exception:
            self.close()
            raise
        logger.info("Browser session opened headless=%s", self.settings.browser_headless)
        return self

    def close(self) -> None:
        for name in ("_page", "_context", "_browser"):
            handle = getattr(self, name)
            setattr(self, name, None)
            if handle is None:
                continue
            try:
                handle.close()
            except PlaywrightError as exc:
                logger.warning("Failed closing browser %s: %s", name.strip("_"), exc)
        if self._playwright is not None:
            playwright, self._playwright = self._playwright, None
            try:
                playwright.stop()
            except PlaywrightError as exc:
                logger.warning("Failed stopping playwright: %s", exc)
            logger.info("Browser session closed")

    def goto(self, url: str, timeout_ms: int | None = None) -> None:
        timeout = timeout_ms if timeout_ms is not None else self.settings.browser_nav_timeout_ms
        try:
            self.page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(detail=f"{url} did not load within {timeout}ms") from exc
        # networkidle never settles on pages with long-polling widgets.
        try:
            self.page.wait_for_load_state("networkidle", timeout=min(timeout, 5000))
        except PlaywrightTimeoutError:
            logger.debug("networkidle not reached for %s", url)

    def wait_for_any(self, selectors: Sequence[str], timeout_ms: int) -> str | None:
        """Return the first selector with a visible match within ``timeout_ms`` each, trying in order."""
        for selector in selectors:
            try:
                self.page.wait_for_selector(selector + VISIBLE_ONLY, timeout=max(timeout_ms, 1), state="visible")
                return selector
            except PlaywrightTimeoutError:
                logger.debug("selector %s not found within %sms", selector, timeout_ms)
            except PlaywrightError as exc:
                logger.debug("selector %s failed: %s", selector, exc)
        return None

    def is_present(self, selector: str) -> bool:
        """True when at least one match is visible. Hidden templates and empty live regions do not count."""
        try:
            matches = self.page.locator(selector)
            return any(matches.nth(index).is_visible() for index in range(min(matches.count(), MAX_PRESENCE_CHECKS)))
        except PlaywrightError:
            return False

    def content(self) -> str:
        return self.page.content()

    @property
    def url(self) -> str:
        return self.page.url
