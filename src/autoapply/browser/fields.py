from __future__ import annotations

from dataclasses import dataclass

from autoapply.browser.matchers import CssMatcher, LabelMatcher, Matcher, PlaceholderMatcher, RoleMatcher


@dataclass(frozen=True, slots=True)
class FieldTarget:
    name: str
    matchers: tuple[Matcher, ...]

    @property
    def css(self) -> str:
        """Union of the CSS matchers, for waits that take one selector."""
        return ", ".join(m.selector for m in self.matchers if isinstance(m, CssMatcher))


def _target(name: str, *matchers: Matcher) -> FieldTarget:
    return FieldTarget(name=name, matchers=tuple(matchers))


# Page controls

APPLY_CONTROL = _target(
    "apply_control",
    CssMatcher('[data-testid="apply-button"]'),
    CssMatcher(".apply-button"),
    CssMatcher('button:has-text("Apply")'),
    RoleMatcher("link", r"^\s*apply( now| for this job)?\s*$"),
)

APPLICATION_FORM = _target(
    "application_form",
    CssMatcher('[data-testid="application-form"]'),
    CssMatcher("form"),
)

SUBMIT_CONTROL = _target(
    "submit_control",
    CssMatcher('button[type="submit"]'),
    CssMatcher('input[type="submit"]'),
    CssMatcher('button:has-text("Submit")'),
    RoleMatcher("button", r"submit( application)?"),
)

VALIDATION_INDICATOR = _target(
    "validation_indicator",
    CssMatcher('[data-ui="error"]'),
    CssMatcher(".error-message"),
    CssMatcher(".field-error"),
    CssMatcher(".invalid-feedback"),
    CssMatcher('[role="alert"]:not(:empty)'),
)

SUCCESS_INDICATOR = _target(
    "success_indicator",
    CssMatcher(".success"),
    CssMatcher(".confirmation"),
    CssMatcher('[data-testid="success"]'),
)

COOKIE_ACCEPT = _target(
    "cookie_accept",
    CssMatcher("#onetrust-accept-btn-handler"),
    CssMatcher("#CybotCookiebotDialogBodyButtonAccept"),
    CssMatcher('[data-ui="cookie-consent"] button'),
    CssMatcher("button[aria-label*='Accept']"),
    RoleMatcher("button", r"^\s*(accept( all)?( cookies)?|allow all|i agree|got it)\s*$"),
)

MODAL_BACKDROP = _target(
    "modal_backdrop",
    CssMatcher('[data-ui="backdrop"]'),
    CssMatcher(".backdrop"),
    CssMatcher(".modal-overlay"),
)

FILE_INPUT = _target("file_input", CssMatcher('input[type="file"]'))

RESUME_DROP_ZONE = _target(
    "resume_drop_zone",
    CssMatcher('[data-ui="resume"] button'),
    CssMatcher('[data-testid*="upload"]'),
    CssMatcher('[class*="dropzone"]'),
    RoleMatcher("button", r"upload|attach|choose file|browse"),
)

# Profile fields

FIRST_NAME = _target(
    "first_name",
    CssMatcher('input[name*="first" i]'),
    CssMatcher('input[autocomplete="given-name"]'),
    LabelMatcher(r"first\s*name|given\s*name"),
    PlaceholderMatcher(r"first\s*name"),
)

LAST_NAME = _target(
    "last_name",
    CssMatcher('input[name*="last" i]'),
    CssMatcher('input[autocomplete="family-name"]'),
    LabelMatcher(r"last\s*name|surname|family\s*name"),
    PlaceholderMatcher(r"last\s*name|surname"),
)

FULL_NAME = _target(
    "full_name",
    CssMatcher('[data-testid="name-input"]'),
    CssMatcher('input[name*="full" i]'),
    CssMatcher('input[name="name" i]'),
    LabelMatcher(r"^\s*(full\s*)?name\s*\*?\s*$"),
    PlaceholderMatcher(r"full\s*name|your\s*name"),
)

EMAIL = _target(
    "email",
    CssMatcher('input[type="email"]'),
    CssMatcher('input[name*="email" i]'),
    CssMatcher('[data-testid="email-input"]'),
    LabelMatcher(r"e-?mail"),
)

HEADLINE = _target(
    "headline",
    CssMatcher('input[name*="headline" i]'),
    LabelMatcher(r"headline"),
)

ADDRESS = _target(
    "address",
    CssMatcher('input[name*="address" i]'),
    CssMatcher('input[name*="location" i]'),
    CssMatcher('[data-testid="location-input"]'),
    LabelMatcher(r"address|location|city"),
    PlaceholderMatcher(r"address|location|city"),
)

PHONE_COUNTRY = _target(
    "phone_country",
    CssMatcher('select[name*="country" i]'),
    CssMatcher('select[name*="phone" i]'),
    CssMatcher('[data-ui="phone"] select'),
    LabelMatcher(r"country\s*code"),
)

PHONE = _target(
    "phone",
    CssMatcher('input[type="tel"]'),
    CssMatcher('input[name*="phone" i]'),
    CssMatcher('input[name*="mobile" i]'),
    LabelMatcher(r"phone|mobile"),
)

LINKEDIN = _target(
    "linkedin_url",
    CssMatcher('input[name*="linkedin" i]'),
    LabelMatcher(r"linkedin"),
)

GITHUB = _target(
    "github_url",
    CssMatcher('input[name*="github" i]'),
    LabelMatcher(r"github"),
)

WEBSITE = _target(
    "website",
    CssMatcher('input[name*="website" i]'),
    CssMatcher('input[name*="portfolio" i]'),
    LabelMatcher(r"website|portfolio"),
)

SUMMARY = _target(
    "summary",
    CssMatcher('textarea[name*="summary" i]'),
    LabelMatcher(r"summary|about (you|yourself)"),
)

COVER_LETTER = _target(
    "cover_letter",
    CssMatcher('textarea[name*="cover" i]'),
    LabelMatcher(r"cover\s*letter"),
    PlaceholderMatcher(r"cover\s*letter"),
)

DESIRED_SALARY = _target(
    "desired_salary",
    CssMatcher('input[name*="salary" i]'),
    CssMatcher('input[name*="compensation" i]'),
    LabelMatcher(r"salary|compensation|pay expectation"),
)

EXPERIENCE = _target(
    "years_experience",
    CssMatcher('input[name*="experience" i]'),
    LabelMatcher(r"years of experience"),
)

RELOCATION = _target(
    "relocation",
    CssMatcher('input[name*="relocat" i]'),
    CssMatcher('textarea[name*="relocat" i]'),
    LabelMatcher(r"relocat"),
)

COMMUTE = _target(
    "commute",
    CssMatcher('input[name*="commute" i]'),
    CssMatcher('textarea[name*="commute" i]'),
    LabelMatcher(r"commut"),
)

# Fields filled from a single profile value, in fill order.
PROFILE_TEXT_TARGETS = (EXPERIENCE, LINKEDIN, GITHUB, WEBSITE)
FREE_TEXT_TARGETS = (SUMMARY, DESIRED_SALARY, RELOCATION, COMMUTE)

RESIDUAL_TEXT_SELECTOR = 'input[type="text"], input:not([type]), textarea'
RESIDUAL_SKIP_NAMES = ("name", "email", "phone", "search")
