from __future__ import annotations

import random

import pytest

from autoapply.config import Settings
from autoapply.core.coordinator import RunCoordinator
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal
from autoapply.types import AttemptResult, Posting


def _postings(*slugs: str, employer: str = "Acme") -> list[Posting]:
    return [
        Posting(title=f"{slug.title()} Engineer", employer=employer, url=f"https://jobs.example.com/jobs/{slug}")
        for slug in slugs
    ]


class FakeBrowser:
    instances: list["FakeBrowser"] = []

    def __init__(self, settings: Settings, fail_open: bool = False):
        self.fail_open = fail_open
        self.opened = False
        self.closed = False
        FakeBrowser.instances.append(self)

    def open(self) -> "FakeBrowser":
        if self.fail_open:
            raise RuntimeError("chromium failed to launch")
        self.opened = True
        return self

    def close(self) -> None:
        self.closed = True


class FakeDiscovery:
    def __init__(self, by_terms: dict[str, list[Posting] | Exception]):
        self.by_terms = by_terms
        self.searches: list[str] = []

    def __call__(self, navigator, settings) -> "FakeDiscovery":
        return self

    def discover(self, params) -> list[Posting]:
        self.searches.append(params.terms)
        found = self.by_terms.get(params.terms, [])
        if isinstance(found, Exception):
            raise found
        return found


class FakeStage:
    def __init__(self, outcomes: dict[str, str] | None = None, on_apply=None):
        self.outcomes = outcomes or {}
        self.on_apply = on_apply
        self.applied: list[tuple[str, str]] = []

    def __call__(self, navigator, repo, answers, settings) -> "FakeStage":
        return self

    def apply(self, posting: Posting, profile) -> AttemptResult:
        self.applied.append((profile.id, posting.url))
        if self.on_apply:
            self.on_apply()
        return AttemptResult(
            user_id=profile.id,
            url=posting.url,
            title=posting.title,
            employer=posting.employer,
            outcome=self.outcomes.get(posting.url, "applied"),
        )


@pytest.fixture(autouse=True)
def reset_browsers() -> None:
    FakeBrowser.instances = []


def _settings(**overrides) -> Settings:
    values = {"llm_enabled": False, "pacing_min_sec": 2.0, "pacing_max_sec": 5.0}
    values.update(overrides)
    return Settings(**values)


def _coordinator(
    discovery,
    stage,
    sleeps: list[float],
    settings: Settings | None = None,
    browser_factory=FakeBrowser,
) -> RunCoordinator:
    return RunCoordinator(
        settings=settings or _settings(),
        session_factory=SessionLocal,
        browser_factory=browser_factory,
        discovery_factory=discovery,
        stage_factory=stage,
        sleep=sleeps.append,
        rng=random.Random(1),
    )


def _create_user(email: str, terms: str, **values) -> str:
    with SessionLocal() as db:
        return Repository(db).create_user({"email": email, "search_terms": terms, **values}).id


def test_run_applies_filtered_postings_and_paces_between_attempts() -> None:
    user_id = _create_user("ada@example.com", "python", blacklisted_companies="Initech")
    postings = _postings("api", "data", "ml") + _postings("legacy", employer="Initech")
    discovery = FakeDiscovery({"python": postings})
    stage = FakeStage(outcomes={"https://jobs.example.com/jobs/data": "error"})
    sleeps: list[float] = []

    summary = _coordinator(discovery, stage, sleeps).run_once()

    assert summary is not None and not summary.cancelled
    [user_summary] = summary.users
    assert (user_summary.discovered, user_summary.eligible) == (4, 3)
    assert (user_summary.applied, user_summary.errors) == (2, 1)
    assert [url for _, url in stage.applied] == [p.url for p in postings[:3]]
    assert len(sleeps) == 2
    assert all(2.0 <= delay <= 5.0 for delay in sleeps)

    [browser] = FakeBrowser.instances
    assert browser.opened and browser.closed

    with SessionLocal() as db:
        repo = Repository(db)
        assert repo.get_user(user_id).last_auto_applied_at is not None
        [search] = repo.list_searches(user_id)
        assert (search.jobs_found, search.jobs_eligible, search.jobs_applied) == (4, 3, 2)


def test_duplicates_are_not_paced_and_cap_limits_attempts() -> None:
    _create_user("ada@example.com", "python")
    postings = _postings("a", "b", "c", "d")
    stage = FakeStage(outcomes={p.url: "duplicate" for p in postings})
    sleeps: list[float] = []

    summary = _coordinator(
        FakeDiscovery({"python": postings}), stage, sleeps, settings=_settings(max_applications_per_user=3)
    ).run_once()

    assert summary.users[0].duplicates == 3
    assert len(stage.applied) == 3
    assert sleeps == []


def test_one_failing_user_does_not_stop_the_others() -> None:
    broken = _create_user("broken@example.com", "broken")
    healthy = _create_user("ok@example.com", "python")
    discovery = FakeDiscovery({"broken": RuntimeError("profile data unreadable"), "python": _postings("api")})
    stage = FakeStage()

    summary = _coordinator(discovery, stage, []).run_once()

    by_user = {item.user_id: item for item in summary.users}
    assert len(by_user) == 2
    assert by_user[broken].failed is True
    assert by_user[healthy].failed is False
    assert by_user[healthy].applied == 1
    assert FakeBrowser.instances[0].closed


def test_only_enabled_users_run_and_least_recent_first() -> None:
    _create_user("off@example.com", "disabled", auto_apply_enabled=False)
    first = _create_user("first@example.com", "one")
    second = _create_user("second@example.com", "two")
    with SessionLocal() as db:
        Repository(db).update_last_run_timestamp(first)
    discovery = FakeDiscovery({})

    summary = _coordinator(discovery, FakeStage(), []).run_once()

    assert [item.user_id for item in summary.users] == [second, first]
    assert "disabled" not in discovery.searches


def test_second_trigger_during_a_run_is_rejected() -> None:
    _create_user("ada@example.com", "python")
    nested: list[object] = []
    stage = FakeStage()
    coordinator = _coordinator(FakeDiscovery({"python": _postings("api")}), stage, [])
    stage.on_apply = lambda: nested.append(coordinator.run_once())

    summary = coordinator.run_once()

    assert nested == [None]
    assert coordinator.trigger() is True
    coordinator.wait(timeout=5)
    assert summary is not None
    assert coordinator.is_running is False
    assert len(FakeBrowser.instances) == 2


def test_cancel_stops_after_the_posting_in_flight() -> None:
    _create_user("ada@example.com", "python")
    _create_user("grace@example.com", "python")
    stage = FakeStage()
    coordinator = _coordinator(FakeDiscovery({"python": _postings("a", "b", "c")}), stage, [])
    stage.on_apply = coordinator.cancel

    summary = coordinator.run_once()

    assert summary.cancelled is True
    assert len(stage.applied) == 1
    assert len(summary.users) == 1
    assert FakeBrowser.instances[0].closed


def test_no_users_means_no_browser_and_launch_failure_releases_guard() -> None:
    coordinator = _coordinator(FakeDiscovery({}), FakeStage(), [])
    summary = coordinator.run_once()

    assert summary.users == []
    assert FakeBrowser.instances == []

    _create_user("ada@example.com", "python")
    failing = _coordinator(
        FakeDiscovery({}),
        FakeStage(),
        [],
        browser_factory=lambda settings: FakeBrowser(settings, fail_open=True),
    )
    with pytest.raises(RuntimeError, match="chromium failed to launch"):
        failing.run_once()
    assert failing.is_running is False
    assert FakeBrowser.instances[0].closed
