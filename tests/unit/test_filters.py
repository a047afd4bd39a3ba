from __future__ import annotations

from autoapply.core.filters import filter_postings, prioritize_postings, rules_for
from autoapply.types import FilterRules, Posting, UserProfile


def _posting(title: str, employer: str, description: str = "") -> Posting:
    slug = title.lower().replace(" ", "-")
    return Posting(title=title, employer=employer, url=f"https://jobs.example.com/jobs/{slug}", description=description)


def test_blacklisted_employer_is_case_insensitive_substring() -> None:
    postings = [_posting("Backend Engineer", "ACME Corp"), _posting("Data Engineer", "Globex")]
    rules = FilterRules(blacklisted_employers=["acme"])

    eligible = filter_postings(postings, rules)

    assert [p.employer for p in eligible] == ["Globex"]


def test_blacklisted_keyword_checks_title_employer_and_description() -> None:
    postings = [
        _posting("Senior Java Developer", "Initech"),
        _posting("Platform Engineer", "Hooli", description="Heavy PHP maintenance"),
        _posting("Python Engineer", "Pied Piper"),
    ]
    rules = FilterRules(blacklisted_keywords=["Java", "php"])

    eligible = filter_postings(postings, rules)

    assert [p.title for p in eligible] == ["Python Engineer"]


def test_clearance_keywords_only_apply_when_enabled() -> None:
    postings = [_posting("Cloud Engineer", "Gov Systems", description="Active TS/SCI required")]

    assert filter_postings(postings, FilterRules(skip_clearance=False)) == postings
    assert filter_postings(postings, FilterRules(skip_clearance=True)) == []


def test_rules_for_profile_ignores_blank_entries() -> None:
    profile = UserProfile(
        id="u1",
        blacklisted_companies="Acme, ,Globex,",
        skip_keywords=" Intern ,",
        skip_security_clearance=True,
    )

    rules = rules_for(profile)

    assert rules.blacklisted_employers == ["acme", "globex"]
    assert rules.blacklisted_keywords == ["intern"]
    assert rules.skip_clearance is True


def test_filter_keeps_order_and_empty_rules_keep_everything() -> None:
    postings = [_posting("A", "One"), _posting("B", "Two"), _posting("C", "Three")]
    assert filter_postings(postings, FilterRules()) == postings


def test_prioritize_is_stable_and_never_excludes() -> None:
    postings = [
        _posting("Frontend Engineer", "One"),
        _posting("Python Engineer", "Two"),
        _posting("Support Engineer", "Favored Inc"),
        _posting("Python Data Engineer", "Four"),
    ]

    ordered = prioritize_postings(postings, keywords=["python"], employers=["favored"])

    assert [p.employer for p in ordered] == ["Two", "Favored Inc", "Four", "One"]
    assert prioritize_postings(postings) == postings


def test_profile_blacklist_matches_employer_case_insensitively() -> None:
    profile = UserProfile(id="u1", blacklisted_companies="Acme, Globex")

    assert filter_postings([_posting("Engineer", "ACME Corp")], rules_for(profile)) == []
