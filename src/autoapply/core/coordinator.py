from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from autoapply.browser.resolver import FieldResolver
from autoapply.browser.session import BrowserSession
from autoapply.browser.upload import ResumeAttacher
from autoapply.config import Settings, get_settings
from autoapply.core.answers import AnswerSource
from autoapply.core.application import ApplicationStage
from autoapply.core.discovery import Discovery, search_params_for
from autoapply.core.filters import filter_postings, prioritize_postings, rules_for
from autoapply.core.heuristics import split_csv
from autoapply.core.populate import FormPopulator
from autoapply.core.resume import ResumeProvider
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal
from autoapply.llm.service import AnswerService
from autoapply.types import RunSummary, UserProfile, UserRunSummary

logger = logging.getLogger(__name__)


def build_application_stage(
    navigator: BrowserSession,
    repo: Repository,
    answers: AnswerSource,
    settings: Settings,
) -> ApplicationStage:
    resolver = FieldResolver()
    return ApplicationStage(
        navigator=navigator,
        repo=repo,
        resolver=resolver,
        populator=FormPopulator(resolver, answers, settings),
        resume_provider=ResumeProvider(repo, settings),
        attacher=ResumeAttacher(resolver),
        settings=settings,
    )


def build_answer_service(settings: Settings) -> AnswerService | None:
    if not settings.llm_enabled:
        logger.info("LLM answers disabled; free-text questions fall back to profile values")
        return None
    return AnswerService(settings)


class RunCoordinator:
    """Runs discovery, filtering and application for every eligible user. One run at a time."""

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
        browser_factory: Callable[[Settings], Any] = BrowserSession,
        discovery_factory: Callable[[Any, Settings], Any] = Discovery,
        stage_factory: Callable[..., Any] = build_application_stage,
        answer_service: AnswerService | None = None,
        sleep: Callable[[float], Any] | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.browser_factory = browser_factory
        self.discovery_factory = discovery_factory
        self.stage_factory = stage_factory
        if answer_service is None:
            answer_service = build_answer_service(self.settings)
        self.answers = AnswerSource(answer_service)
        self.rng = rng or random.Random()
        self._cancel = threading.Event()
        self._sleep = sleep or self._cancel.wait
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.last_summary: RunSummary | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def cancel(self) -> None:
        """Stop after the posting in flight. The browser still closes normally."""
        self._cancel.set()

    def run_once(self, user_id: str | None = None) -> RunSummary | None:
        if not self._lock.acquire(blocking=False):
            logger.info("Run already in progress; trigger ignored")
            return None
        return self._run_locked(user_id)

    def trigger(self, user_id: str | None = None) -> bool:
        """Start a run in a background thread unless one is already active."""
        if not self._lock.acquire(blocking=False):
            logger.info("Run already in progress; trigger ignored")
            return False
        self._thread = threading.Thread(
            target=self._run_in_background,
            args=(user_id,),
            name="autoapply-run",
            daemon=True,
        )
        self._thread.start()
        return True

    def wait(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run_locked(self, user_id: str | None) -> RunSummary:
        try:
            self._cancel.clear()
            summary = self._run(user_id)
            self.last_summary = summary
            return summary
        finally:
            self._lock.release()

    def _run_in_background(self, user_id: str | None) -> None:
        try:
            self._run_locked(user_id)
        except Exception:
            logger.exception("Background run failed")

    def _run(self, user_id: str | None) -> RunSummary:
        summary = RunSummary(started_at=datetime.now(UTC))
        with self.session_factory() as session:
            repo = Repository(session)
            users = self._users_for_run(repo, user_id)
            logger.info("Starting run for %s users", len(users))
            if not users:
                summary.finished_at = datetime.now(UTC)
                return summary

            navigator = self.browser_factory(self.settings)
            try:
                navigator.open()
                discovery = self.discovery_factory(navigator, self.settings)
                stage = self.stage_factory(navigator, repo, self.answers, self.settings)
                for profile in users:
                    if self._cancel.is_set():
                        summary.cancelled = True
                        logger.info("Run cancelled before user %s", profile.id)
                        break
                    summary.users.append(self._run_user(profile, repo, session, discovery, stage))
            finally:
                navigator.close()

        if self._cancel.is_set():
            summary.cancelled = True
        summary.finished_at = datetime.now(UTC)
        logger.info(
            "Run finished users=%s applied=%s errors=%s cancelled=%s",
            len(summary.users),
            sum(item.applied for item in summary.users),
            sum(item.errors for item in summary.users),
            summary.cancelled,
        )
        return summary

    @staticmethod
    def _users_for_run(repo: Repository, user_id: str | None) -> list[UserProfile]:
        if user_id is None:
            return repo.list_eligible_users()
        profile = repo.get_profile(user_id)
        if profile is None:
            logger.warning("User %s not found", user_id)
            return []
        return [profile]

    def _run_user(
        self,
        profile: UserProfile,
        repo: Repository,
        session: Session,
        discovery: Any,
        stage: Any,
    ) -> UserRunSummary:
        result = UserRunSummary(user_id=profile.id)
        try:
            params = search_params_for(profile, self.settings, self.rng)
            postings = discovery.discover(params)
            eligible = filter_postings(postings, rules_for(profile))
            eligible = prioritize_postings(
                eligible,
                keywords=split_csv(profile.prioritize_keywords),
                employers=split_csv(profile.whitelisted_companies),
            )[: self.settings.max_applications_per_user]
            result.discovered = len(postings)
            result.eligible = len(eligible)
            logger.info(
                "User %s: %s postings discovered, %s eligible", profile.id, len(postings), len(eligible)
            )

            for index, posting in enumerate(eligible):
                if self._cancel.is_set():
                    break
                attempt = stage.apply(posting, profile)
                if attempt.outcome == "applied":
                    result.applied += 1
                elif attempt.outcome == "duplicate":
                    result.duplicates += 1
                    continue
                else:
                    result.errors += 1
                if index < len(eligible) - 1:
                    self._pace()

            repo.update_last_run_timestamp(profile.id)
            repo.record_search(
                profile.id,
                params,
                found=result.discovered,
                eligible=result.eligible,
                applied=result.applied,
            )
        except Exception:
            session.rollback()
            result.failed = True
            logger.exception("Run failed for user %s", profile.id)
        return result

    def _pace(self) -> None:
        delay = self.rng.uniform(self.settings.pacing_min_sec, self.settings.pacing_max_sec)
        logger.debug("Pacing %.1fs before next application", delay)
        self._sleep(delay)
