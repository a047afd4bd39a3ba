from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

AttemptOutcome = Literal["applied", "error", "skipped", "duplicate"]


class UserProfile(BaseModel):
    """Read-only snapshot of one user's profile, taken once per run."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    email: str = ""
    full_name: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    headline: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip_code: str = ""
    current_location: str = ""
    linkedin_url: str = ""
    github_url: str = ""
    website: str = ""

    current_job_title: str = ""
    current_company: str = ""
    years_experience: str = ""
    key_skills: str = ""
    field_of_study: str = ""
    graduation_year: str = ""
    work_experience: Any = None
    education: Any = None
    skills: Any = None
    projects: str = ""
    certifications: str = ""

    summary: str = ""
    cover_letter: str = ""
    desired_salary: str = ""
    expected_salary: str = ""
    current_salary: str = ""
    notice_period: str = ""
    start_date: str = ""
    relocation: str = ""
    commute: str = ""
    interest_reason: str = ""
    work_auth: str = ""
    legally_authorized: str = ""
    require_sponsorship: str = ""

    gender: str = ""
    race: str = ""
    veteran: str = ""
    disabilities: str = ""

    uploaded_resume_path: str = ""
    selected_resume_id: int | None = None

    search_terms: str = ""
    randomize_search: bool = False
    search_location: str = ""
    blacklisted_companies: str = ""
    whitelisted_companies: str = ""
    skip_keywords: str = ""
    prioritize_keywords: str = ""
    skip_security_clearance: bool = False

    auto_apply_enabled: bool = True
    last_auto_applied_at: datetime | None = None

    def value_of(self, field_name: str) -> str:
        value = getattr(self, field_name, None)
        if value is None or isinstance(value, bool):
            return ""
        if isinstance(value, str):
            return value.strip()
        return str(value)


class Posting(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    employer: str = "Unknown Company"
    location: str = "Remote"
    url: str
    description: str = ""
    posted_date: str = ""

    @property
    def text(self) -> str:
        return f"{self.title} {self.employer} {self.description}"


class SearchParams(BaseModel):
    terms: str
    location: str = ""


class FilterRules(BaseModel):
    blacklisted_employers: list[str] = Field(default_factory=list)
    blacklisted_keywords: list[str] = Field(default_factory=list)
    skip_clearance: bool = False

    @field_validator("blacklisted_employers", "blacklisted_keywords")
    @classmethod
    def normalize_terms(cls, values: list[str]) -> list[str]:
        return [item.strip().lower() for item in values if item and item.strip()]


class ResumeData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    location: str = ""
    website: str = ""
    linkedin_url: str = ""
    github_url: str = ""
    target_role: str = ""
    professional_summary: str = ""
    work_experience: Any = None
    education: Any = None
    skills: Any = None
    projects: Any = None
    certifications: Any = None


class GeneratedAnswer(BaseModel):
    text: str = ""
    confidence: float = 0.0
    reasoning: str = ""
    structured: bool = False


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)


class AttemptResult(BaseModel):
    user_id: str
    url: str
    title: str
    employer: str
    outcome: AttemptOutcome
    note: str = ""
    error_detail: str = ""
    final_state: str = ""
    fields_filled: int = 0
    resume_attached: bool = False
    elapsed_sec: float = 0.0


class UserRunSummary(BaseModel):
    user_id: str
    discovered: int = 0
    eligible: int = 0
    applied: int = 0
    errors: int = 0
    duplicates: int = 0
    failed: bool = False


class RunSummary(BaseModel):
    started_at: datetime
    finished_at: datetime | None = None
    users: list[UserRunSummary] = Field(default_factory=list)
    cancelled: bool = False


class UserStats(BaseModel):
    user_id: str
    total_attempts: int = 0
    applied: int = 0
    errors: int = 0
    last_applied_at: datetime | None = None
