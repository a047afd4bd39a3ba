from __future__ import annotations

import logging
from collections.abc import Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

from autoapply.browser import fields
from autoapply.browser.fields import FieldTarget
from autoapply.browser.resolver import FieldResolver
from autoapply.config import Settings, get_settings
from autoapply.core.answers import AnswerSource
from autoapply.core.deadline import Deadline
from autoapply.core.heuristics import (
    choose_option,
    clean_label,
    is_boolean_choice,
    is_negative,
    is_question_label,
    is_select_prompt,
    mentions_work_authorization,
)
from autoapply.types import Posting, UserProfile

logger = logging.getLogger(__name__)

AFFIRMATIVE_PLACEHOLDER = "Yes"
MAX_SWEEP_ELEMENTS = 40

LABEL_JS = """el => {
    const byFor = el.id ? document.querySelector(`label[for="${CSS.escape(el.id)}"]`) : null;
    const wrapping = el.closest('label');
    const text = (byFor && byFor.textContent) || (wrapping && wrapping.textContent)
        || el.getAttribute('aria-label') || el.getAttribute('placeholder') || '';
    return text.trim();
}"""

GROUP_QUESTION_JS = """el => {
    let current = el.parentElement;
    while (current) {
        if (current.tagName === 'FIELDSET') {
            const legend = current.querySelector('legend');
            if (legend) return legend.textContent.trim();
        }
        if (current.getAttribute && current.getAttribute('role') === 'radiogroup') {
            const label = current.getAttribute('aria-label');
            if (label) return label.trim();
            const labelledBy = current.getAttribute('aria-labelledby');
            const node = labelledBy ? document.getElementById(labelledBy) : null;
            if (node) return node.textContent.trim();
        }
        current = current.parentElement;
    }
    return '';
}"""

SELECT_OPTIONS_JS = "el => Array.from(el.options).map(o => o.textContent.trim())"
SELECTED_INDEX_JS = "el => el.selectedIndex"
CHECKED_INDEX_JS = "els => els.findIndex(e => e.checked)"


class FormPopulator:
    """Fills the open application form from a profile. Single field failures never abort."""

    def __init__(
        self,
        resolver: FieldResolver,
        answers: AnswerSource,
        settings: Settings | None = None,
    ):
        self.resolver = resolver
        self.answers = answers
        self.settings = settings or get_settings()

    def populate(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        filled = 0
        steps: tuple[Callable[..., int], ...] = (
            self.fill_identity,
            self.fill_phone,
            self.fill_free_text,
            self.sweep_text_inputs,
            self.sweep_choices,
        )
        for step in steps:
            deadline.check()
            try:
                filled += step(page, profile, posting, deadline)
            except PlaywrightError as exc:
                logger.warning("Form step %s failed: %s", step.__name__, exc)
        logger.info("Populated %s fields for %s", filled, posting.url)
        return filled

    def _action_timeout(self, deadline: Deadline) -> int:
        return deadline.clamp(self.settings.browser_selector_timeout_ms)

    def _fill(self, target: FieldTarget, value_for: Callable[[], str], page: Page, deadline: Deadline) -> int:
        element = self.resolver.resolve(target, page)
        if element is None:
            return 0
        value = value_for()
        if not value:
            return 0
        if self.resolver.fill(element, value, page, self._action_timeout(deadline)):
            logger.info("Filled field %s", target.name)
            return 1
        return 0

    def _answer(self, field_name: str, profile: UserProfile, deadline: Deadline, generate: bool) -> Callable[[], str]:
        return lambda: self.answers.answer(field_name, profile, generate=generate, deadline=deadline)

    def fill_identity(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        # Names and email are never generated.
        filled = self._fill(fields.FIRST_NAME, self._answer("first_name", profile, deadline, False), page, deadline)
        filled += self._fill(fields.LAST_NAME, self._answer("last_name", profile, deadline, False), page, deadline)
        if filled == 0:
            filled += self._fill(fields.FULL_NAME, self._answer("full_name", profile, deadline, False), page, deadline)
        filled += self._fill(fields.EMAIL, self._answer("email", profile, deadline, False), page, deadline)

        for target in (fields.HEADLINE, fields.ADDRESS):
            deadline.check()
            filled += self._fill(target, self._answer(target.name, profile, deadline, True), page, deadline)
        for target in fields.PROFILE_TEXT_TARGETS:
            deadline.check()
            filled += self._fill(target, self._answer(target.name, profile, deadline, False), page, deadline)
        return filled

    def fill_phone(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        filled = 0
        country = self.resolver.resolve(fields.PHONE_COUNTRY, page)
        if country is not None and self.resolver.select(
            country, self.settings.phone_country, page, self._action_timeout(deadline)
        ):
            filled += 1

        if self.settings.phone_use_profile and profile.phone.strip():
            number = profile.phone.strip()
        else:
            number = self.settings.phone_placeholder
        filled += self._fill(fields.PHONE, lambda: number, page, deadline)
        return filled

    def fill_free_text(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        filled = 0
        for target in fields.FREE_TEXT_TARGETS:
            deadline.check()
            filled += self._fill(target, self._answer(target.name, profile, deadline, True), page, deadline)
        deadline.check()
        filled += self._fill(
            fields.COVER_LETTER,
            lambda: self.answers.cover_letter(posting, profile, deadline),
            page,
            deadline,
        )
        return filled

    def sweep_text_inputs(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        filled = 0
        candidates = page.locator(fields.RESIDUAL_TEXT_SELECTOR)
        for index in range(min(candidates.count(), MAX_SWEEP_ELEMENTS)):
            deadline.check()
            element = candidates.nth(index)
            try:
                if not element.is_visible() or not element.is_editable() or element.input_value():
                    continue
                name = (element.get_attribute("name") or "").lower()
                if any(skip in name for skip in fields.RESIDUAL_SKIP_NAMES):
                    continue
                label = clean_label(element.evaluate(LABEL_JS))
            except PlaywrightError as exc:
                logger.debug("Skipping residual input %s: %s", index, exc)
                continue

            value = ""
            if label:
                value = self.answers.answer(label, profile, generate=is_question_label(label), deadline=deadline)
            if self.resolver.fill(element, value or AFFIRMATIVE_PLACEHOLDER, page, self._action_timeout(deadline)):
                filled += 1
        return filled

    def sweep_choices(self, page: Page, profile: UserProfile, posting: Posting, deadline: Deadline) -> int:
        return (
            self._sweep_radio_groups(page, deadline)
            + self._sweep_checkboxes(page, deadline)
            + self._sweep_selects(page, deadline)
        )

    def _label(self, element: Locator) -> str:
        try:
            return clean_label(element.evaluate(LABEL_JS))
        except PlaywrightError:
            return ""

    def _sweep_radio_groups(self, page: Page, deadline: Deadline) -> int:
        filled = 0
        seen: set[str] = set()
        radios = page.locator('input[type="radio"]')
        for index in range(min(radios.count(), MAX_SWEEP_ELEMENTS * 4)):
            radio = radios.nth(index)
            try:
                name = radio.get_attribute("name")
                if not name or name in seen:
                    continue
                seen.add(name)
                deadline.check()
                group = page.locator(f'input[type="radio"][name="{name}"]')
                checked = group.evaluate_all(CHECKED_INDEX_JS)
                question = clean_label(radio.evaluate(GROUP_QUESTION_JS))
                forced = mentions_work_authorization(question)
                if checked >= 0 and not forced:
                    continue
                options = [self._label(group.nth(i)) for i in range(group.count())]
            except PlaywrightError as exc:
                logger.debug("Skipping radio group: %s", exc)
                continue

            choice = choose_option(options)
            if choice is None or choice == checked:
                continue
            if self.resolver.check(group.nth(choice), page, self._action_timeout(deadline)):
                logger.info("Answered radio group %r with %r", question[:50] or name, options[choice])
                filled += 1
        return filled

    def _sweep_checkboxes(self, page: Page, deadline: Deadline) -> int:
        filled = 0
        boxes = page.locator('input[type="checkbox"]')
        for index in range(min(boxes.count(), MAX_SWEEP_ELEMENTS)):
            deadline.check()
            box = boxes.nth(index)
            try:
                if box.is_checked() or not box.is_enabled():
                    continue
            except PlaywrightError:
                continue
            label = self._label(box)
            if is_negative(label) and not mentions_work_authorization(label):
                continue
            if self.resolver.check(box, page, self._action_timeout(deadline)):
                filled += 1
        return filled

    def _sweep_selects(self, page: Page, deadline: Deadline) -> int:
        filled = 0
        selects = page.locator("select")
        for index in range(min(selects.count(), MAX_SWEEP_ELEMENTS)):
            deadline.check()
            select = selects.nth(index)
            try:
                name = (select.get_attribute("name") or "").lower()
                if "country" in name or "phone" in name or not select.is_enabled():
                    continue
                options = select.evaluate(SELECT_OPTIONS_JS)
                selected = select.evaluate(SELECTED_INDEX_JS)
            except PlaywrightError:
                continue

            question = self._label(select)
            forced = mentions_work_authorization(question)
            answered = 0 <= selected < len(options) and not is_select_prompt(options[selected])
            if answered and not forced:
                continue
            if not forced and not is_boolean_choice(options):
                continue
            choice = choose_option(options)
            if choice is None or choice == selected:
                continue
            if self.resolver.select(select, options[choice], page, self._action_timeout(deadline)):
                logger.info("Answered select %r with %r", question[:50] or name, options[choice])
                filled += 1
        return filled
