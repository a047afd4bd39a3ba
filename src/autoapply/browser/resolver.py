from __future__ import annotations

import logging
from collections.abc import Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

from autoapply.browser.fields import FieldTarget
from autoapply.browser.overlays import dismiss_overlays
from autoapply.errors import FieldNotFound

logger = logging.getLogger(__name__)

SET_VALUE_JS = """(el, value) => {
    const proto = el.tagName === 'TEXTAREA'
        ? window.HTMLTextAreaElement.prototype
        : window.HTMLInputElement.prototype;
    const setter = Object.getOwnPropertyDescriptor(proto, 'value').set;
    setter.call(el, value);
    el.dispatchEvent(new Event('input', {bubbles: true}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
}"""

SET_CHECKED_JS = """el => {
    el.checked = true;
    el.dispatchEvent(new Event('input', {bubbles: true}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
}"""

CLICK_JS = "el => el.click()"

MATCHING_OPTION_JS = """(el, wanted) => {
    const needle = wanted.toLowerCase();
    const option = Array.from(el.options).find(o => o.textContent.trim().toLowerCase().includes(needle));
    return option ? option.value : null;
}"""


class FieldResolver:
    def __init__(self, dismiss: Callable[[Page], int] = dismiss_overlays):
        self._dismiss = dismiss

    def resolve(self, target: FieldTarget, page: Page) -> Locator | None:
        for matcher in target.matchers:
            element = matcher.try_match(page)
            if element is not None:
                return element
        logger.debug("%s", FieldNotFound(target.name))
        return None

    def fill(self, element: Locator, value: str, page: Page, timeout_ms: int | None = None) -> bool:
        self._dismiss(page)
        try:
            element.fill(value, timeout=timeout_ms)
            return True
        except PlaywrightError as exc:
            logger.debug("fill failed, assigning value directly: %s", exc)
        try:
            element.evaluate(SET_VALUE_JS, value)
            return True
        except PlaywrightError as exc:
            logger.warning("Could not fill field: %s", exc)
            return False

    def fill_target(self, target: FieldTarget, value: str, page: Page) -> bool:
        if not value:
            return False
        element = self.resolve(target, page)
        if element is None:
            return False
        filled = self.fill(element, value, page)
        if filled:
            logger.info("Filled field %s", target.name)
        return filled

    def click(self, element: Locator, page: Page, timeout_ms: int | None = None) -> bool:
        try:
            element.click(timeout=timeout_ms)
            return True
        except PlaywrightError as exc:
            logger.debug("click blocked, dismissing overlays and retrying: %s", exc)
        self._dismiss(page)
        try:
            element.click(timeout=timeout_ms)
            return True
        except PlaywrightError:
            pass
        try:
            element.evaluate(CLICK_JS)
            return True
        except PlaywrightError as exc:
            logger.warning("Could not click element: %s", exc)
            return False

    def select(self, element: Locator, option_label: str, page: Page, timeout_ms: int | None = None) -> bool:
        self._dismiss(page)
        try:
            element.select_option(label=option_label, timeout=timeout_ms)
            return True
        except PlaywrightError:
            pass
        try:
            value = element.evaluate(MATCHING_OPTION_JS, option_label)
            if value is None:
                return False
            element.select_option(value=value, timeout=timeout_ms)
            return True
        except PlaywrightError as exc:
            logger.warning("Could not select option %r: %s", option_label, exc)
            return False

    def check(self, element: Locator, page: Page, timeout_ms: int | None = None) -> bool:
        self._dismiss(page)
        try:
            element.check(timeout=timeout_ms)
            return True
        except PlaywrightError as exc:
            logger.debug("check failed, setting checked directly: %s", exc)
        try:
            element.evaluate(SET_CHECKED_JS)
            return True
        except PlaywrightError as exc:
            logger.warning("Could not check control: %s", exc)
            return False
