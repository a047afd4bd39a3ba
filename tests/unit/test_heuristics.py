from __future__ import annotations

from autoapply.core.heuristics import (
    choose_option,
    clean_label,
    is_affirmative,
    is_boolean_choice,
    is_negative,
    is_placeholder_answer,
    is_question_label,
    mentions_work_authorization,
    split_csv,
    split_full_name,
)


def test_affirmative_and_negative_words() -> None:
    assert is_affirmative("Yes")
    assert is_affirmative("I agree to the terms")
    assert not is_affirmative("No")
    assert not is_affirmative("I do not require sponsorship")
    assert is_negative("No")
    assert is_negative("I prefer not to say")
    assert not is_negative("Yes, I am")


def test_choose_option_prefers_affirmative() -> None:
    assert choose_option(["No", "Yes"]) == 1
    assert choose_option(["Select...", "Maybe", "No"]) == 1
    assert choose_option(["No", "Never"]) is None


def test_boolean_choice_ignores_prompt_options() -> None:
    assert is_boolean_choice(["Please select", "Yes", "No"])
    assert not is_boolean_choice(["Select", "Red", "Blue"])


def test_question_and_placeholder_detection() -> None:
    assert is_question_label("Why do you want to work here?")
    assert not is_question_label("Name")
    assert is_placeholder_answer("Not specified")
    assert not is_placeholder_answer("Five years")
    assert mentions_work_authorization("Will you now or in the future require visa sponsorship?")


def test_text_helpers() -> None:
    assert split_full_name("Ada King Lovelace") == ("Ada", "King Lovelace")
    assert split_full_name("Ada") == ("Ada", "")
    assert split_full_name("") == ("", "")
    assert split_csv(" Acme, , Globex ,") == ["Acme", "Globex"]
    assert clean_label("  First\n  name * ") == "First name"
