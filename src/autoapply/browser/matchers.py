from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 8


def first_usable(locator: Locator, limit: int = MAX_CANDIDATES) -> Locator | None:
    """First candidate that is both visible and enabled."""
    try:
        count = min(locator.count(), limit)
    except PlaywrightError:
        return None
    for index in range(count):
        candidate = locator.nth(index)
        try:
            if candidate.is_visible() and candidate.is_enabled():
                return candidate
        except PlaywrightError:
            continue
    return None


class Matcher:
    def locate(self, page: Page) -> Locator:
        raise NotImplementedError

    def try_match(self, page: Page) -> Locator | None:
        try:
            return first_usable(self.locate(page))
        except PlaywrightError as exc:
            logger.debug("matcher %s failed: %s", self, exc)
            return None


@dataclass(frozen=True, slots=True)
class CssMatcher(Matcher):
    selector: str

    def locate(self, page: Page) -> Locator:
        return page.locator(self.selector)


@dataclass(frozen=True, slots=True)
class LabelMatcher(Matcher):
    pattern: str

    def locate(self, page: Page) -> Locator:
        return page.get_by_label(re.compile(self.pattern, re.IGNORECASE))


@dataclass(frozen=True, slots=True)
class PlaceholderMatcher(Matcher):
    pattern: str

    def locate(self, page: Page) -> Locator:
        return page.get_by_placeholder(re.compile(self.pattern, re.IGNORECASE))


@dataclass(frozen=True, slots=True)
class RoleMatcher(Matcher):
    role: Any
    name: str

    def locate(self, page: Page) -> Locator:
        return page.get_by_role(self.role, name=re.compile(self.name, re.IGNORECASE))
