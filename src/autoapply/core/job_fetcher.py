from __future__ import annotations

import logging

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DESCRIPTION_SELECTORS = (
    '[data-ui="job-description"]',
    '[data-testid="job-description"]',
    ".job-description",
    "main",
)


def fetch_job_description(url: str, timeout_sec: int = 10, max_chars: int = 8000) -> str:
    try:
        response = requests.get(url, timeout=timeout_sec, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch posting %s: %s", url, exc)
        return ""

    soup = BeautifulSoup(response.text, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()

    root = None
    for selector in DESCRIPTION_SELECTORS:
        root = soup.select_one(selector)
        if root is not None:
            break
    text = (root or soup).get_text("\n")
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return "\n".join(lines)[:max_chars]
