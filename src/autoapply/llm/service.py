from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from autoapply.config import Settings, get_settings
from autoapply.errors import ConfigurationError
from autoapply.llm.prompts import (
    ANSWER_PROMPT,
    ANSWER_WITH_CONTEXT_PROMPT,
    APPLICANT_SYSTEM_PROMPT,
    COVER_LETTER_PROMPT,
)
from autoapply.llm.providers import LLMProvider, ProviderPool, parse_json
from autoapply.types import GeneratedAnswer, Posting

logger = logging.getLogger(__name__)

FALLBACK_COVER_LETTER = "Thank you for considering my application."
RAW_TEXT_CONFIDENCE = 0.7
DEFAULT_CONFIDENCE = 0.8
# Smallest slice of a caller budget worth spending on another provider.
MIN_PROVIDER_SEC = 1.0


class AnswerService:
    """Generative answers for free-text questions the profile cannot answer directly."""

    def __init__(
        self,
        settings: Settings | None = None,
        pool: ProviderPool | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        if not self.settings.llm_enabled:
            raise ConfigurationError("AnswerService constructed while LLM_ENABLED is false")
        if not self.settings.openai_api_key and not self.settings.local_llm_enabled:
            raise ConfigurationError(
                "Missing OpenAI API key. Set OPENAI_API_KEY or enable LOCAL_LLM_ENABLED."
            )
        self.pool = pool or ProviderPool(self.settings)

    def answer(
        self,
        prompt_text: str,
        profile_digest: str,
        context: str = "",
        timeout_sec: float | None = None,
    ) -> GeneratedAnswer:
        if context:
            prompt = ANSWER_WITH_CONTEXT_PROMPT.format(context=context, question=prompt_text)
        else:
            prompt = ANSWER_PROMPT.format(question=prompt_text)
        system = APPLICANT_SYSTEM_PROMPT.format(profile_digest=profile_digest)

        text = self._call_text(prompt=prompt, system=system, temperature=0.3, max_tokens=500, timeout_sec=timeout_sec)
        if not text:
            return GeneratedAnswer(text="", confidence=0.0, reasoning="no provider returned an answer")
        return interpret_answer(text)

    def cover_letter(self, posting: Posting, profile_digest: str, timeout_sec: float | None = None) -> str:
        prompt = COVER_LETTER_PROMPT.format(
            title=posting.title,
            employer=posting.employer,
            description=posting.description[:6000] or "Not provided",
        )
        system = APPLICANT_SYSTEM_PROMPT.format(profile_digest=profile_digest)
        text = self._call_text(prompt=prompt, system=system, temperature=0.4, max_tokens=300, timeout_sec=timeout_sec)
        return text.strip() or FALLBACK_COVER_LETTER

    def _providers(self) -> list[LLMProvider]:
        return self.pool.available()

    def _call_text(
        self,
        *,
        prompt: str,
        system: str,
        temperature: float,
        max_tokens: int,
        timeout_sec: float | None = None,
    ) -> str:
        """First non-failing provider reply. ``timeout_sec`` bounds all providers together."""
        started = self.clock()
        for provider in self._providers():
            budget = None
            if timeout_sec is not None:
                budget = timeout_sec - (self.clock() - started)
                if budget < MIN_PROVIDER_SEC:
                    logger.warning("LLM budget exhausted before provider=%s", provider.config.name)
                    break
            model = self.settings.local_llm_model if provider.config.name == "local" else self.settings.openai_model
            try:
                return provider.complete_text(
                    model=model,
                    prompt=prompt,
                    system=system,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout_sec=budget,
                ).content
            except Exception as exc:
                logger.warning("LLM text call failed provider=%s error=%s", provider.config.name, exc)
        return ""


def interpret_answer(text: str) -> GeneratedAnswer:
    data = parse_json(text) if "{" in text else {}
    answer = data.get("answer")
    if isinstance(answer, (str, int, float)) and not isinstance(answer, bool):
        try:
            confidence = float(data.get("confidence", DEFAULT_CONFIDENCE))
        except (TypeError, ValueError):
            confidence = DEFAULT_CONFIDENCE
        return GeneratedAnswer(
            text=str(answer).strip(),
            confidence=max(0.0, min(1.0, confidence)),
            reasoning=str(data.get("reasoning", "")),
            structured=True,
        )

    logger.warning("Model reply was not the expected JSON object; using raw text")
    return GeneratedAnswer(
        text=text.strip(),
        confidence=RAW_TEXT_CONFIDENCE,
        reasoning="raw response used because the reply was not JSON",
    )


def dump_digest(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=True, indent=2, default=str)
