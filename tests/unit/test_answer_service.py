from __future__ import annotations

import pytest

from autoapply.config import Settings
from autoapply.errors import ConfigurationError
from autoapply.llm.service import FALLBACK_COVER_LETTER, AnswerService, interpret_answer
from autoapply.types import ModelResponse, Posting


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeProvider:
    def __init__(
        self,
        name: str,
        reply: str = "",
        error: Exception | None = None,
        clock: FakeClock | None = None,
        takes_sec: float = 0.0,
    ):
        self.config = type("Config", (), {"name": name})()
        self.reply = reply
        self.error = error
        self.clock = clock
        self.takes_sec = takes_sec
        self.calls: list[dict] = []

    def complete_text(self, **kwargs) -> ModelResponse:
        self.calls.append(kwargs)
        if self.clock:
            self.clock.now += self.takes_sec
        if self.error:
            raise self.error
        return ModelResponse(content=self.reply)


class FakePool:
    def __init__(self, providers):
        self.providers = providers

    def available(self):
        return list(self.providers)


def _settings(**overrides) -> Settings:
    values = {"llm_enabled": True, "openai_api_key": "sk-test", "openai_model": "gpt-test"}
    values.update(overrides)
    return Settings(**values)


def test_missing_key_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        AnswerService(_settings(openai_api_key="", local_llm_enabled=False))
    with pytest.raises(ConfigurationError):
        AnswerService(_settings(llm_enabled=False))


def test_structured_reply_is_parsed() -> None:
    provider = FakeProvider("openai", reply='{"answer": "Five years", "confidence": 0.92, "reasoning": "profile"}')
    service = AnswerService(_settings(), pool=FakePool([provider]))

    answer = service.answer("How many years of Python?", '{"personal": {}}')

    assert answer.text == "Five years"
    assert answer.confidence == pytest.approx(0.92)
    assert answer.structured is True
    assert provider.calls[0]["model"] == "gpt-test"
    assert "How many years of Python?" in provider.calls[0]["prompt"]
    assert '{"personal": {}}' in provider.calls[0]["system"]


def test_raw_text_and_missing_confidence_defaults() -> None:
    raw = interpret_answer("Sure, I can start next month.")
    assert raw.text == "Sure, I can start next month."
    assert raw.confidence == pytest.approx(0.7)
    assert raw.structured is False

    fenced = interpret_answer('```json\n{"answer": "Yes"}\n```')
    assert fenced.text == "Yes"
    assert fenced.confidence == pytest.approx(0.8)


def test_falls_through_failing_provider() -> None:
    broken = FakeProvider("openai", error=RuntimeError("rate limited"))
    local = FakeProvider("local", reply='{"answer": "Remote", "confidence": 0.6}')
    service = AnswerService(_settings(local_llm_enabled=True, local_llm_model="local-model"), pool=FakePool([broken, local]))

    answer = service.answer("Preferred work setup?", "{}")

    assert answer.text == "Remote"
    assert local.calls[0]["model"] == "local-model"


def test_cover_letter_falls_back_when_no_provider_answers() -> None:
    posting = Posting(title="Engineer", employer="Acme", url="https://jobs.example.com/jobs/1")
    service = AnswerService(_settings(), pool=FakePool([FakeProvider("openai", error=RuntimeError("down"))]))

    assert service.cover_letter(posting, "{}") == FALLBACK_COVER_LETTER
    assert service.answer("Anything?", "{}").text == ""


def test_timeout_budget_is_shared_across_providers() -> None:
    clock = FakeClock()
    slow = FakeProvider("openai", error=RuntimeError("read timeout"), clock=clock, takes_sec=8.5)
    local = FakeProvider("local", reply='{"answer": "Remote"}')
    settings = _settings(local_llm_enabled=True)

    answer = AnswerService(settings, pool=FakePool([slow, local]), clock=clock).answer("Setup?", "{}", timeout_sec=10)

    assert answer.text == "Remote"
    assert slow.calls[0]["timeout_sec"] == pytest.approx(10.0)
    assert local.calls[0]["timeout_sec"] == pytest.approx(1.5)


def test_exhausted_budget_skips_remaining_providers() -> None:
    clock = FakeClock()
    slow = FakeProvider("openai", error=RuntimeError("read timeout"), clock=clock, takes_sec=9.5)
    local = FakeProvider("local", reply='{"answer": "Remote"}')
    service = AnswerService(_settings(local_llm_enabled=True), pool=FakePool([slow, local]), clock=clock)

    assert service.answer("Setup?", "{}", timeout_sec=10).text == ""
    assert local.calls == []


def test_unbounded_call_passes_no_timeout() -> None:
    provider = FakeProvider("openai", reply='{"answer": "Yes"}')

    AnswerService(_settings(), pool=FakePool([provider])).answer("Authorized?", "{}")

    assert provider.calls[0]["timeout_sec"] is None
