from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from urllib.parse import quote, urlencode, urljoin

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import Error as PlaywrightError

from autoapply.browser.session import BrowserSession
from autoapply.config import Settings, get_settings
from autoapply.core.heuristics import split_csv
from autoapply.core.job_fetcher import fetch_job_description
from autoapply.errors import AttemptError
from autoapply.types import Posting, SearchParams, UserProfile

logger = logging.getLogger(__name__)

CONTAINER_SELECTORS = (
    '[data-testid="job-card"]',
    ".job-card",
    '[class*="job"]',
    'a[href*="/jobs/"]',
)
TITLE_SELECTORS = ('[data-testid="job-title"]', ".job-title", "h3", "h2")
EMPLOYER_SELECTORS = ('[data-testid="company-name"]', ".company-name", '[class*="company"]')
LOCATION_SELECTORS = ('[data-testid="job-location"]', ".job-location", '[class*="location"]')
LINK_SELECTOR = 'a[href*="/jobs/"]'

DEFAULT_EMPLOYER = "Unknown Company"
DEFAULT_LOCATION = "Remote"


def build_search_url(base_url: str, params: SearchParams) -> str:
    query = urlencode({"q": params.terms, "location": params.location}, quote_via=quote)
    return f"{base_url}?{query}"


def search_params_for(
    profile: UserProfile,
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> SearchParams:
    settings = settings or get_settings()
    terms = profile.search_terms.strip() or settings.default_search_terms
    if profile.randomize_search:
        options = split_csv(terms)
        if options:
            terms = (rng or random).choice(options)
    location = profile.search_location.strip() or settings.default_search_location
    return SearchParams(terms=terms, location=location)


def _first_text(element: Tag, selectors: Iterable[str]) -> str:
    for selector in selectors:
        found = element.select_one(selector)
        if found is not None:
            text = found.get_text(" ", strip=True)
            if text:
                return text
    return ""


def _link_for(element: Tag) -> str:
    link = element.select_one(LINK_SELECTOR)
    if link is None:
        link = element.find_parent("a", href=lambda href: bool(href) and "/jobs/" in href)
    if link is None and element.name == "a":
        link = element
    if link is None:
        link = element.find("a", href=True)
    if link is None:
        return ""
    return str(link.get("href") or "").strip()


def extract_postings(html: str, container_selector: str, base_url: str) -> list[Posting]:
    soup = BeautifulSoup(html, "html.parser")
    postings: list[Posting] = []
    for element in soup.select(container_selector):
        title = _first_text(element, TITLE_SELECTORS)
        href = _link_for(element)
        if not title or not href:
            continue
        postings.append(
            Posting(
                title=title,
                employer=_first_text(element, EMPLOYER_SELECTORS) or DEFAULT_EMPLOYER,
                location=_first_text(element, LOCATION_SELECTORS) or DEFAULT_LOCATION,
                url=urljoin(base_url, href),
            )
        )
    return postings


def normalize_postings(postings: Iterable[Posting], limit: int) -> list[Posting]:
    """Deduplicate by URL keeping first occurrence, then truncate."""
    seen: set[str] = set()
    unique: list[Posting] = []
    for posting in postings:
        if posting.url in seen:
            continue
        seen.add(posting.url)
        unique.append(posting)
    return unique[:limit]


class Discovery:
    def __init__(
        self,
        navigator: BrowserSession,
        settings: Settings | None = None,
        fetch_description: Callable[[str], str] = fetch_job_description,
    ):
        self.navigator = navigator
        self.settings = settings or get_settings()
        self.fetch_description = fetch_description

    def discover(self, params: SearchParams) -> list[Posting]:
        search_url = build_search_url(self.settings.search_base_url, params)
        logger.info("Searching postings: %s", search_url)

        try:
            self.navigator.goto(search_url, self.settings.browser_nav_timeout_ms)
            container = self.navigator.wait_for_any(CONTAINER_SELECTORS, self.settings.browser_selector_timeout_ms)
            if container is None:
                logger.warning("No posting containers found on %s", search_url)
                return []
            html = self.navigator.content()
            page_url = self.navigator.url or search_url
        except (AttemptError, PlaywrightError) as exc:
            logger.warning("Discovery failed for %s: %s", search_url, exc)
            return []

        postings = normalize_postings(
            extract_postings(html, container, page_url),
            self.settings.discovery_max_postings,
        )
        if self.settings.discovery_fetch_descriptions:
            postings = [self._enrich(posting) for posting in postings]
        logger.info("Discovered %s postings via %s", len(postings), container)
        return postings

    def _enrich(self, posting: Posting) -> Posting:
        description = self.fetch_description(posting.url)
        if not description:
            return posting
        return posting.model_copy(update={"description": description})
