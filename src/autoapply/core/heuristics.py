from __future__ import annotations

import re
import string
from collections.abc import Sequence

AFFIRMATIVE_WORDS = ("yes", "y", "true", "agree", "i agree", "accept", "i accept", "authorized", "i am", "i do", "i have")
NEGATIVE_WORDS = ("no", "n", "false", "decline", "not", "don't", "do not", "never", "none", "disagree", "prefer not")

WORK_AUTH_KEYWORDS = (
    "authorized to work",
    "authorised to work",
    "legally authorized",
    "work authorization",
    "eligible to work",
    "right to work",
    "sponsorship",
    "sponsor",
    "visa",
)

QUESTION_MIN_LENGTH = 10
PLACEHOLDER_ANSWERS = {"not specified", "unknown", "n/a", "none"}


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    text = text.lower().translate(str.maketrans("", "", string.punctuation.replace("/", "").replace("'", "")))
    return " ".join(text.split())


def is_affirmative(text: str | None) -> bool:
    normalized = normalize_text(text)
    if not normalized or is_negative(normalized):
        return False
    return any(normalized == word or normalized.startswith(f"{word} ") for word in AFFIRMATIVE_WORDS)


def is_negative(text: str | None) -> bool:
    normalized = normalize_text(text)
    if not normalized:
        return False
    tokens = set(normalized.split())
    for word in NEGATIVE_WORDS:
        if " " in word:
            if word in normalized:
                return True
        elif word in tokens:
            return True
    return False


def choose_option(options: Sequence[str]) -> int | None:
    """Index of the lexically affirmative option, else the first that does not signal negation."""
    for index, option in enumerate(options):
        if is_affirmative(option):
            return index
    for index, option in enumerate(options):
        if option.strip() and not is_negative(option) and not is_select_prompt(option):
            return index
    return None


def is_select_prompt(option: str) -> bool:
    normalized = normalize_text(option)
    return not normalized or normalized.startswith(("select", "choose", "please select", "pick"))


def is_boolean_choice(options: Sequence[str]) -> bool:
    meaningful = [option for option in options if not is_select_prompt(option)]
    return any(is_affirmative(o) for o in meaningful) and any(is_negative(o) for o in meaningful)


def mentions_work_authorization(text: str | None) -> bool:
    normalized = (text or "").lower()
    return any(keyword in normalized for keyword in WORK_AUTH_KEYWORDS)


def is_question_label(label: str | None) -> bool:
    return bool(label) and len(label.strip()) > QUESTION_MIN_LENGTH


def is_placeholder_answer(text: str | None) -> bool:
    return normalize_text(text) in PLACEHOLDER_ANSWERS


def split_full_name(full_name: str | None) -> tuple[str, str]:
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], " ".join(parts[1:])


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


_WHITESPACE_RE = re.compile(r"\s+")


def clean_label(text: str | None) -> str:
    cleaned = _WHITESPACE_RE.sub(" ", text or "").strip()
    return cleaned.rstrip("*").strip()
