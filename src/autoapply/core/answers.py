from __future__ import annotations

import hashlib
import logging
import re

from autoapply.core.deadline import Deadline
from autoapply.core.heuristics import is_placeholder_answer, split_full_name
from autoapply.llm.service import FALLBACK_COVER_LETTER, AnswerService, dump_digest
from autoapply.types import Posting, UserProfile

logger = logging.getLogger(__name__)

# Ordered: the first pattern found in a free-form label decides the profile field.
# Word stems ("relocat", "disabilit") only anchor at the start of a word.
LABEL_FIELD_HINTS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), field_name)
    for pattern, field_name in (
        (r"\blinkedin\b", "linkedin_url"),
        (r"\bgithub\b", "github_url"),
        (r"\bportfolio\b", "website"),
        (r"\bwebsite\b", "website"),
        (r"\be-?mail\b", "email"),
        (r"\bphone\b", "phone"),
        (r"\bmobile\b", "phone"),
        (r"\bfirst name\b", "first_name"),
        (r"\blast name\b", "last_name"),
        (r"\bsurname\b", "last_name"),
        (r"\bfull name\b", "full_name"),
        (r"\bheadline\b", "headline"),
        (r"\bcurrent title\b", "current_job_title"),
        (r"\bjob title\b", "current_job_title"),
        (r"\bcurrent (company|employer)\b", "current_company"),
        (r"\byears of experience\b", "years_experience"),
        (r"\bexpected salary\b", "expected_salary"),
        (r"\bcurrent salary\b", "current_salary"),
        (r"\bsalary\b", "desired_salary"),
        (r"\bcompensation\b", "desired_salary"),
        (r"\bnotice period\b", "notice_period"),
        (r"\bstart date\b", "start_date"),
        (r"\bwhen can you start\b", "start_date"),
        (r"\brelocat", "relocation"),
        (r"\bcommut", "commute"),
        (r"\bsponsor", "require_sponsorship"),
        (r"\blegally authori[sz]ed\b", "legally_authorized"),
        (r"\bauthori[sz]ed to work\b", "legally_authorized"),
        (r"\bwork authori[sz]ation\b", "work_auth"),
        (r"\b(zip|postal)( code)?\b", "zip_code"),
        (r"\bfield of study\b", "field_of_study"),
        (r"\bgraduation (year|date)\b", "graduation_year"),
        (r"\bwhy are you interested\b", "interest_reason"),
        (r"\bwhy do you want\b", "interest_reason"),
        (r"\bcover letter\b", "cover_letter"),
        (r"\bsummary\b", "summary"),
        (r"\baddress\b", "address"),
        (r"\bcity\b", "city"),
        (r"\bstate\b", "state"),
        (r"\bcountry\b", "country"),
        (r"\blocation\b", "current_location"),
        (r"\bskills\b", "key_skills"),
    )
)

# Demographic answers are only given to labels that ask for nothing else.
DEMOGRAPHIC_HINTS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), field_name)
    for pattern, field_name in (
        (r"^(what is your )?(gender|sex)( identity)?\??$", "gender"),
        (r"^(what is your )?(race|ethnicity)( ?/ ?(race|ethnicity))?\??$", "race"),
        (r"^((protected )?veteran status|are you a (protected )?veteran)\??$", "veteran"),
        (r"^(disability status|do you have a disability)\??$", "disabilities"),
    )
)

# Below this much attempt time a generative call is not started.
MIN_GENERATION_SEC = 2.0


def resolve_field_name(label: str) -> str | None:
    candidate = label.strip()
    if candidate in UserProfile.model_fields:
        return candidate
    lowered = " ".join(candidate.lower().rstrip("*").split())
    for pattern, field_name in DEMOGRAPHIC_HINTS:
        if pattern.match(lowered):
            return field_name
    for pattern, field_name in LABEL_FIELD_HINTS:
        if pattern.search(lowered):
            return field_name
    return None


def _join(*parts: str) -> str:
    return ", ".join(part for part in parts if part)


def derive_value(field_name: str, profile: UserProfile) -> str:
    first, last = split_full_name(profile.full_name)
    if field_name == "first_name":
        return first
    if field_name == "last_name":
        return last
    if field_name == "full_name":
        return " ".join(part for part in (profile.first_name, profile.last_name) if part).strip()
    if field_name in {"address", "current_location"}:
        composed = _join(profile.city, profile.state, profile.country)
        return composed or profile.value_of("current_location" if field_name == "address" else "address")
    if field_name == "desired_salary":
        return profile.value_of("expected_salary")
    if field_name == "expected_salary":
        return profile.value_of("desired_salary")
    if field_name == "legally_authorized":
        return profile.value_of("work_auth")
    if field_name == "summary":
        return profile.value_of("headline")
    return ""


def profile_digest(profile: UserProfile) -> str:
    payload = {
        "personal": {
            "name": profile.full_name or " ".join(filter(None, (profile.first_name, profile.last_name))),
            "email": profile.email,
            "phone": profile.phone,
            "location": _join(profile.city, profile.state, profile.country) or profile.current_location,
            "currentJob": profile.current_job_title,
            "currentCompany": profile.current_company,
            "desiredSalary": profile.desired_salary or profile.expected_salary,
            "workAuth": profile.work_auth,
            "linkedin": profile.linkedin_url,
            "github": profile.github_url,
            "website": profile.website,
        },
        "experience": {
            "years": profile.years_experience,
            "skills": profile.key_skills or profile.skills,
            "workHistory": profile.work_experience,
            "education": profile.education,
            "fieldOfStudy": profile.field_of_study,
            "graduationYear": profile.graduation_year,
        },
        "preferences": {
            "noticePeriod": profile.notice_period,
            "startDate": profile.start_date,
            "relocation": profile.relocation,
            "commute": profile.commute,
        },
        "additional": {
            "summary": profile.summary,
            "projects": profile.projects,
            "certifications": profile.certifications,
            "interestReason": profile.interest_reason,
        },
    }
    return dump_digest(payload)


class AnswerSource:
    """Value for a semantic field: profile, then derived value, then generated answer, then empty."""

    def __init__(self, service: AnswerService | None = None):
        self.service = service
        # profile id -> (snapshot fingerprint, digest)
        self._digests: dict[str, tuple[str, str]] = {}

    def answer(
        self,
        label: str,
        profile: UserProfile,
        *,
        generate: bool = True,
        deadline: Deadline | None = None,
    ) -> str:
        field_name = resolve_field_name(label)
        if field_name:
            value = profile.value_of(field_name)
            if value:
                return value
            value = derive_value(field_name, profile)
            if value:
                return value

        if not generate or self.service is None:
            return ""
        timeout_sec = _generation_budget(deadline)
        if timeout_sec == 0.0:
            logger.info("Not enough attempt time left to generate an answer for %r", label[:50])
            return ""

        question = label.replace("_", " ") if field_name == label else label
        try:
            generated = self.service.answer(question, self.digest(profile), timeout_sec=timeout_sec)
        except Exception as exc:
            logger.warning("Answer service failed for %r: %s", question[:60], exc)
            return ""
        if not generated.text or is_placeholder_answer(generated.text):
            return ""
        logger.info(
            "Generated answer for %r confidence=%.2f structured=%s",
            question[:50],
            generated.confidence,
            generated.structured,
        )
        return generated.text

    def cover_letter(self, posting: Posting, profile: UserProfile, deadline: Deadline | None = None) -> str:
        if profile.cover_letter.strip():
            return profile.cover_letter.strip()
        if self.service is None:
            return FALLBACK_COVER_LETTER
        timeout_sec = _generation_budget(deadline)
        if timeout_sec == 0.0:
            return FALLBACK_COVER_LETTER
        try:
            return self.service.cover_letter(posting, self.digest(profile), timeout_sec=timeout_sec)
        except Exception as exc:
            logger.warning("Cover letter generation failed: %s", exc)
            return FALLBACK_COVER_LETTER

    def digest(self, profile: UserProfile) -> str:
        fingerprint = hashlib.sha256(profile.model_dump_json().encode("utf-8")).hexdigest()
        cached = self._digests.get(profile.id)
        if cached is None or cached[0] != fingerprint:
            cached = (fingerprint, profile_digest(profile))
            self._digests[profile.id] = cached
        return cached[1]


def _generation_budget(deadline: Deadline | None) -> float | None:
    """Seconds a generative call may take, ``None`` when unbounded and 0.0 when too little is left."""
    if deadline is None:
        return None
    remaining = deadline.remaining_sec
    return remaining if remaining >= MIN_GENERATION_SEC else 0.0
