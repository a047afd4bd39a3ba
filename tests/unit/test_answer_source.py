from __future__ import annotations

from autoapply.core.answers import AnswerSource, derive_value, resolve_field_name
from autoapply.core.deadline import Deadline
from autoapply.llm.service import FALLBACK_COVER_LETTER
from autoapply.types import GeneratedAnswer, Posting, UserProfile


class FakeAnswerService:
    def __init__(self, text: str = "Generated", error: Exception | None = None):
        self.text = text
        self.error = error
        self.questions: list[str] = []
        self.digests: list[str] = []
        self.timeouts: list[float | None] = []

    def answer(
        self, prompt_text: str, profile_digest: str, context: str = "", timeout_sec: float | None = None
    ) -> GeneratedAnswer:
        self.questions.append(prompt_text)
        self.timeouts.append(timeout_sec)
        self.digests.append(profile_digest)
        if self.error:
            raise self.error
        return GeneratedAnswer(text=self.text, confidence=0.9, structured=True)

    def cover_letter(self, posting: Posting, profile_digest: str, timeout_sec: float | None = None) -> str:
        if self.error:
            raise self.error
        return f"Dear {posting.employer}"


POSTING = Posting(title="Backend Engineer", employer="Acme", url="https://jobs.example.com/jobs/1")


def test_profile_value_wins_over_generation() -> None:
    service = FakeAnswerService()
    source = AnswerSource(service)
    profile = UserProfile(id="u1", email="ada@example.com", linkedin_url="https://linkedin.com/in/ada")

    assert source.answer("email", profile) == "ada@example.com"
    assert source.answer("Your LinkedIn profile", profile) == "https://linkedin.com/in/ada"
    assert service.questions == []


def test_derived_values_fill_gaps() -> None:
    profile = UserProfile(
        id="u1",
        full_name="Ada King Lovelace",
        city="London",
        country="UK",
        expected_salary="90000",
        work_auth="Yes",
    )

    assert derive_value("first_name", profile) == "Ada"
    assert derive_value("last_name", profile) == "King Lovelace"
    assert derive_value("address", profile) == "London, UK"
    assert derive_value("desired_salary", profile) == "90000"
    assert derive_value("legally_authorized", profile) == "Yes"
    assert AnswerSource().answer("First Name", profile) == "Ada"


def test_generation_used_for_unknown_questions_and_digest_cached() -> None:
    service = FakeAnswerService(text="Because I like distributed systems")
    source = AnswerSource(service)
    profile = UserProfile(id="u1", full_name="Ada Lovelace")

    first = source.answer("What excites you about this team?", profile)
    source.answer("Describe a hard bug you fixed", profile)

    assert first == "Because I like distributed systems"
    assert service.questions == ["What excites you about this team?", "Describe a hard bug you fixed"]
    assert service.digests[0] is service.digests[1]
    assert '"name": "Ada Lovelace"' in service.digests[0]


def test_generation_can_be_suppressed_or_absent() -> None:
    profile = UserProfile(id="u1")

    assert AnswerSource(FakeAnswerService()).answer("Tell us about yourself", profile, generate=False) == ""
    assert AnswerSource(None).answer("Tell us about yourself", profile) == ""


def test_placeholder_and_failed_generations_become_empty() -> None:
    profile = UserProfile(id="u1")

    assert AnswerSource(FakeAnswerService(text="Not specified")).answer("Favourite framework?", profile) == ""
    assert AnswerSource(FakeAnswerService(error=RuntimeError("boom"))).answer("Favourite framework?", profile) == ""


def test_cover_letter_chain() -> None:
    with_letter = UserProfile(id="u1", cover_letter="  My own letter  ")
    without_letter = UserProfile(id="u2")

    assert AnswerSource(FakeAnswerService()).cover_letter(POSTING, with_letter) == "My own letter"
    assert AnswerSource(FakeAnswerService()).cover_letter(POSTING, without_letter) == "Dear Acme"
    assert AnswerSource(None).cover_letter(POSTING, without_letter) == FALLBACK_COVER_LETTER
    failing = AnswerSource(FakeAnswerService(error=RuntimeError("down")))
    assert failing.cover_letter(POSTING, without_letter) == FALLBACK_COVER_LETTER


def test_resolve_field_name_from_labels() -> None:
    assert resolve_field_name("phone") == "phone"
    assert resolve_field_name("Mobile number") == "phone"
    assert resolve_field_name("Will you require sponsorship?") == "require_sponsorship"
    assert resolve_field_name("Favourite colour") is None
    assert resolve_field_name("Gender *") == "gender"
    assert resolve_field_name("Race/Ethnicity") == "race"


def test_label_hints_match_whole_words_only() -> None:
    assert resolve_field_name("Please paste your personal statement") is None
    assert resolve_field_name("Describe how you embrace ambiguity at work") is None
    assert resolve_field_name("What is your capacity for travel?") is None
    assert resolve_field_name("Describe your upskilling plans") is None
    assert resolve_field_name("Are you willing to relocate?") == "relocation"
    assert resolve_field_name("State / Province") == "state"
    assert resolve_field_name("ZIP code") == "zip_code"


def test_demographic_fields_only_answer_dedicated_questions() -> None:
    assert resolve_field_name("How do you approach race conditions in Go?") is None
    assert resolve_field_name("Tell us about a gender-diverse team you led") is None

    service = FakeAnswerService(text="I write tests first")
    profile = UserProfile(id="u1", state="CA", race="Asian", city="Austin")
    source = AnswerSource(service)

    assert source.answer("Please paste your personal statement", profile) == "I write tests first"
    assert source.answer("Describe how you embrace ambiguity at work", profile) == "I write tests first"
    assert source.answer("What is your capacity for travel?", profile) == "I write tests first"
    assert len(service.questions) == 3


def test_digest_follows_profile_changes() -> None:
    service = FakeAnswerService()
    source = AnswerSource(service)

    source.answer("Why this team?", UserProfile(id="u1", current_company="OldCo"))
    source.answer("Why this team?", UserProfile(id="u1", current_company="NewCo"))

    assert "OldCo" in service.digests[0]
    assert "NewCo" in service.digests[1]
    assert "OldCo" not in service.digests[1]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_generation_is_bounded_by_the_attempt_deadline() -> None:
    clock = FakeClock()
    deadline = Deadline(60, clock=clock)
    service = FakeAnswerService()
    source = AnswerSource(service)
    profile = UserProfile(id="u1")

    clock.now = 50.0
    assert source.answer("Why this team?", profile, deadline=deadline) == "Generated"
    assert service.timeouts == [10.0]

    clock.now = 59.0
    assert source.answer("Why this team?", profile, deadline=deadline) == ""
    assert source.cover_letter(POSTING, profile, deadline) == FALLBACK_COVER_LETTER
    assert service.timeouts == [10.0]
