from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum

from playwright.sync_api import Error as PlaywrightError
from sqlalchemy.exc import IntegrityError

from autoapply.browser import fields
from autoapply.browser.resolver import FieldResolver
from autoapply.browser.session import BrowserSession
from autoapply.browser.upload import ResumeAttacher
from autoapply.config import Settings, get_settings
from autoapply.core.deadline import Deadline
from autoapply.core.populate import FormPopulator
from autoapply.core.resume import ResumeProvider
from autoapply.db.repositories import Repository
from autoapply.errors import (
    AttemptError,
    AttemptTimeout,
    NoApplyControl,
    NoFormFound,
    NoSubmitControl,
    NoSuccessIndicator,
    UploadFailed,
    ValidationRejected,
)
from autoapply.types import AttemptResult, Posting, UserProfile

logger = logging.getLogger(__name__)

APPLIED_NOTE = "Successfully applied"
DUPLICATE_NOTE = "Already applied to this job"


class AttemptState(str, Enum):
    START = "start"
    DUPLICATE_CHECK = "duplicate_check"
    NAVIGATE = "navigate"
    LOCATE_APPLY_CONTROL = "locate_apply_control"
    OPEN_FORM = "open_form"
    FILL_FIELDS = "fill_fields"
    ATTACH_RESUME = "attach_resume"
    SUBMIT = "submit"
    VERIFY_OUTCOME = "verify_outcome"
    APPLIED = "applied"
    ERROR = "error"
    DUPLICATE = "duplicate"


TERMINAL_STATES = frozenset({AttemptState.APPLIED, AttemptState.ERROR, AttemptState.DUPLICATE})


@dataclass(slots=True)
class AttemptContext:
    posting: Posting
    profile: UserProfile
    deadline: Deadline
    resources: ExitStack
    trail: list[str] = field(default_factory=list)
    fields_filled: int = 0
    resume_attached: bool = False
    resume_strategy: str = ""
    error: AttemptError | None = None


class ApplicationStage:
    """Drives one (posting, profile) pair through the apply flow to a terminal outcome."""

    def __init__(
        self,
        navigator: BrowserSession,
        repo: Repository,
        resolver: FieldResolver,
        populator: FormPopulator,
        resume_provider: ResumeProvider,
        attacher: ResumeAttacher,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.navigator = navigator
        self.repo = repo
        self.resolver = resolver
        self.populator = populator
        self.resume_provider = resume_provider
        self.attacher = attacher
        self.settings = settings or get_settings()
        self.clock = clock
        self._handlers: dict[AttemptState, Callable[[AttemptContext], AttemptState]] = {
            AttemptState.START: self._start,
            AttemptState.DUPLICATE_CHECK: self._check_duplicate,
            AttemptState.NAVIGATE: self._navigate,
            AttemptState.LOCATE_APPLY_CONTROL: self._locate_apply_control,
            AttemptState.OPEN_FORM: self._open_form,
            AttemptState.FILL_FIELDS: self._fill_fields,
            AttemptState.ATTACH_RESUME: self._attach_resume,
            AttemptState.SUBMIT: self._submit,
            AttemptState.VERIFY_OUTCOME: self._verify_outcome,
        }

    def apply(self, posting: Posting, profile: UserProfile) -> AttemptResult:
        logger.info("Applying to %s at %s", posting.title, posting.employer)
        deadline = Deadline(self.settings.attempt_timeout_sec, clock=self.clock)
        state = AttemptState.START

        with ExitStack() as resources:
            ctx = AttemptContext(posting=posting, profile=profile, deadline=deadline, resources=resources)
            while state not in TERMINAL_STATES:
                ctx.trail.append(state.value)
                try:
                    state = self._handlers[state](ctx)
                except AttemptError as exc:
                    ctx.error = exc
                    state = AttemptState.ERROR
                except PlaywrightError as exc:
                    ctx.error = AttemptError("unexpected browser error", detail=_first_line(exc))
                    state = AttemptState.ERROR

        if state is AttemptState.ERROR and deadline.expired and not isinstance(ctx.error, AttemptTimeout):
            previous = ctx.error.note if ctx.error else "unknown"
            ctx.error = AttemptTimeout(detail=f"exceeded {deadline.total_sec:g}s during {ctx.trail[-1]} ({previous})")

        result = self._result(ctx, state)
        if state is AttemptState.DUPLICATE:
            logger.info("Already applied to %s; skipping", posting.url)
        else:
            self._record(result, ctx)
            if state is AttemptState.APPLIED:
                logger.info("Applied to %s at %s", posting.title, posting.employer)
            else:
                logger.warning("Attempt failed for %s: %s", posting.url, result.note)
        return result

    # States

    def _start(self, ctx: AttemptContext) -> AttemptState:
        return AttemptState.DUPLICATE_CHECK

    def _check_duplicate(self, ctx: AttemptContext) -> AttemptState:
        if self.repo.has_prior_attempt(ctx.profile.id, ctx.posting.url):
            return AttemptState.DUPLICATE
        return AttemptState.NAVIGATE

    def _navigate(self, ctx: AttemptContext) -> AttemptState:
        self.navigator.goto(ctx.posting.url, ctx.deadline.clamp(self.settings.browser_nav_timeout_ms))
        return AttemptState.LOCATE_APPLY_CONTROL

    def _locate_apply_control(self, ctx: AttemptContext) -> AttemptState:
        timeout = ctx.deadline.clamp(self.settings.browser_apply_timeout_ms)
        self.navigator.wait_for_any([fields.APPLY_CONTROL.css], timeout)
        page = self.navigator.page
        control = self.resolver.resolve(fields.APPLY_CONTROL, page)
        if control is None:
            raise NoApplyControl()
        if not self.resolver.click(control, page, ctx.deadline.clamp(self.settings.browser_selector_timeout_ms)):
            raise NoApplyControl(detail="apply control could not be clicked")
        return AttemptState.OPEN_FORM

    def _open_form(self, ctx: AttemptContext) -> AttemptState:
        timeout = ctx.deadline.clamp(self.settings.browser_form_timeout_ms)
        if self.navigator.wait_for_any([fields.APPLICATION_FORM.css], timeout) is None:
            raise NoFormFound(detail=f"no form within {timeout}ms")
        return AttemptState.FILL_FIELDS

    def _fill_fields(self, ctx: AttemptContext) -> AttemptState:
        ctx.fields_filled = self.populator.populate(self.navigator.page, ctx.profile, ctx.posting, ctx.deadline)
        return AttemptState.ATTACH_RESUME

    def _attach_resume(self, ctx: AttemptContext) -> AttemptState:
        ctx.deadline.check()
        try:
            path = ctx.resources.enter_context(self.resume_provider.materialize(ctx.profile))
            ctx.resume_strategy = self.attacher.attach(self.navigator.page, path)
            ctx.resume_attached = True
        except (UploadFailed, OSError) as exc:
            logger.warning("Resume not attached for %s: %s", ctx.posting.url, exc)
        return AttemptState.SUBMIT

    def _submit(self, ctx: AttemptContext) -> AttemptState:
        ctx.deadline.check()
        page = self.navigator.page
        control = self.resolver.resolve(fields.SUBMIT_CONTROL, page)
        if control is None:
            raise NoSubmitControl()
        if not self.resolver.click(control, page, ctx.deadline.clamp(self.settings.browser_selector_timeout_ms)):
            raise NoSubmitControl(detail="submit control could not be clicked")
        return AttemptState.VERIFY_OUTCOME

    def _verify_outcome(self, ctx: AttemptContext) -> AttemptState:
        timeout = ctx.deadline.clamp(self.settings.browser_settle_timeout_ms)
        indicators = f"{fields.VALIDATION_INDICATOR.css}, {fields.SUCCESS_INDICATOR.css}"
        self.navigator.wait_for_any([indicators], timeout)
        if self.navigator.is_present(fields.VALIDATION_INDICATOR.css):
            raise ValidationRejected()
        if self.navigator.is_present(fields.SUCCESS_INDICATOR.css):
            return AttemptState.APPLIED
        raise NoSuccessIndicator()

    # Outcome

    def _result(self, ctx: AttemptContext, state: AttemptState) -> AttemptResult:
        if state is AttemptState.APPLIED:
            note, detail = APPLIED_NOTE, ""
        elif state is AttemptState.DUPLICATE:
            note, detail = DUPLICATE_NOTE, ""
        else:
            error = ctx.error or AttemptError()
            note, detail = error.note, error.detail or str(error)
        return AttemptResult(
            user_id=ctx.profile.id,
            url=ctx.posting.url,
            title=ctx.posting.title,
            employer=ctx.posting.employer,
            outcome=state.value,
            note=note,
            error_detail=detail,
            final_state=ctx.trail[-1] if ctx.trail else AttemptState.START.value,
            fields_filled=ctx.fields_filled,
            resume_attached=ctx.resume_attached,
            elapsed_sec=round(ctx.deadline.elapsed_sec, 3),
        )

    def _record(self, result: AttemptResult, ctx: AttemptContext) -> None:
        application_data = {
            "states": ctx.trail,
            "fields_filled": ctx.fields_filled,
            "resume_attached": ctx.resume_attached,
            "resume_strategy": ctx.resume_strategy,
            "elapsed_sec": result.elapsed_sec,
            "location": ctx.posting.location,
        }
        try:
            self.repo.append_attempt(result, application_data)
        except IntegrityError:
            logger.warning("Ledger already holds an applied record for %s", result.url)


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else exc.__class__.__name__
