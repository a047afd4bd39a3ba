from __future__ import annotations

import base64
import logging
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from autoapply.browser.fields import FILE_INPUT, RESUME_DROP_ZONE
from autoapply.browser.resolver import FieldResolver
from autoapply.errors import UploadFailed

logger = logging.getLogger(__name__)

FILE_CHOOSER_TIMEOUT_MS = 3000

ASSIGN_FILE_JS = """(el, payload) => {
    const bytes = Uint8Array.from(atob(payload.data), c => c.charCodeAt(0));
    const file = new File([bytes], payload.name, {type: payload.type});
    const transfer = new DataTransfer();
    transfer.items.add(file);
    el.files = transfer.files;
    el.dispatchEvent(new Event('input', {bubbles: true}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
    return el.files.length;
}"""


class ResumeAttacher:
    def __init__(self, resolver: FieldResolver):
        self.resolver = resolver

    def attach(self, page: Page, path: Path) -> str:
        """Attach ``path`` to the form, returning the strategy that worked."""
        strategies = (
            ("file_input", self._direct),
            ("drop_zone", self._via_drop_zone),
            ("data_transfer", self._via_data_transfer),
        )
        for name, strategy in strategies:
            try:
                if strategy(page, path):
                    logger.info("Resume attached via %s", name)
                    return name
            except PlaywrightError as exc:
                logger.debug("Resume strategy %s failed: %s", name, exc)
        raise UploadFailed(f"no upload strategy accepted {path.name}")

    @staticmethod
    def _direct(page: Page, path: Path) -> bool:
        inputs = page.locator(FILE_INPUT.css)
        if inputs.count() == 0:
            return False
        inputs.first.set_input_files(str(path))
        return True

    def _via_drop_zone(self, page: Page, path: Path) -> bool:
        zone = self.resolver.resolve(RESUME_DROP_ZONE, page)
        if zone is None:
            return False
        with page.expect_file_chooser(timeout=FILE_CHOOSER_TIMEOUT_MS) as chooser_info:
            zone.click()
        chooser_info.value.set_files(str(path))
        return True

    @staticmethod
    def _via_data_transfer(page: Page, path: Path) -> bool:
        inputs = page.locator(FILE_INPUT.css)
        if inputs.count() == 0:
            return False
        payload = {
            "data": base64.b64encode(path.read_bytes()).decode("ascii"),
            "name": path.name,
            "type": "application/pdf",
        }
        return bool(inputs.first.evaluate(ASSIGN_FILE_JS, payload))
