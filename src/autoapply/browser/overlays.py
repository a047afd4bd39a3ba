from __future__ import annotations

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from autoapply.browser.fields import COOKIE_ACCEPT, MODAL_BACKDROP

logger = logging.getLogger(__name__)

DISMISS_CLICK_TIMEOUT_MS = 1000
SETTLE_AFTER_DISMISS_MS = 300


def dismiss_overlays(page: Page) -> int:
    """Close cookie banners and modal backdrops. Safe to call repeatedly."""
    dismissed = 0

    for matcher in COOKIE_ACCEPT.matchers:
        button = matcher.try_match(page)
        if button is None:
            continue
        try:
            button.click(timeout=DISMISS_CLICK_TIMEOUT_MS)
            dismissed += 1
            logger.debug("Dismissed cookie banner via %s", matcher)
        except PlaywrightError as exc:
            logger.debug("Cookie banner click failed via %s: %s", matcher, exc)
        break

    for matcher in MODAL_BACKDROP.matchers:
        if matcher.try_match(page) is None:
            continue
        try:
            page.keyboard.press("Escape")
            page.wait_for_timeout(SETTLE_AFTER_DISMISS_MS)
            dismissed += 1
            logger.debug("Pressed Escape on backdrop %s", matcher)
        except PlaywrightError as exc:
            logger.debug("Backdrop dismissal failed: %s", exc)
        break

    return dismissed
