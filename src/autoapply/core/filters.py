from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from autoapply.core.heuristics import split_csv
from autoapply.types import FilterRules, Posting, UserProfile

logger = logging.getLogger(__name__)

CLEARANCE_KEYWORDS = (
    "security clearance",
    "top secret",
    "ts/sci",
    "secret clearance",
    "active clearance",
    "clearance required",
    "polygraph",
)


def rules_for(profile: UserProfile) -> FilterRules:
    return FilterRules(
        blacklisted_employers=split_csv(profile.blacklisted_companies),
        blacklisted_keywords=split_csv(profile.skip_keywords),
        skip_clearance=profile.skip_security_clearance,
    )


def exclusion_reason(posting: Posting, rules: FilterRules) -> str | None:
    employer = posting.employer.lower()
    for name in rules.blacklisted_employers:
        if name in employer:
            return f"blacklisted employer '{name}'"

    text = posting.text.lower()
    for keyword in rules.blacklisted_keywords:
        if keyword in text:
            return f"blacklisted keyword '{keyword}'"

    if rules.skip_clearance:
        for keyword in CLEARANCE_KEYWORDS:
            if keyword in text:
                return f"clearance keyword '{keyword}'"
    return None


def filter_postings(postings: Iterable[Posting], rules: FilterRules) -> list[Posting]:
    eligible: list[Posting] = []
    for posting in postings:
        reason = exclusion_reason(posting, rules)
        if reason:
            logger.info("Skipping %s at %s: %s", posting.title, posting.employer, reason)
            continue
        eligible.append(posting)
    return eligible


def prioritize_postings(
    postings: Sequence[Posting],
    keywords: Iterable[str] = (),
    employers: Iterable[str] = (),
) -> list[Posting]:
    """Stable reorder: postings matching a keyword or whitelisted employer first."""
    wanted_keywords = [item.lower() for item in keywords if item.strip()]
    wanted_employers = [item.lower() for item in employers if item.strip()]
    if not wanted_keywords and not wanted_employers:
        return list(postings)

    def is_preferred(posting: Posting) -> bool:
        text = posting.text.lower()
        employer = posting.employer.lower()
        return any(k in text for k in wanted_keywords) or any(e in employer for e in wanted_employers)

    preferred = [posting for posting in postings if is_preferred(posting)]
    others = [posting for posting in postings if not is_preferred(posting)]
    return preferred + others
