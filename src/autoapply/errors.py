from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A collaborator was constructed without the settings it needs."""


class AttemptError(Exception):
    """Failure that ends one application attempt with an ``error`` record."""

    default_note = "application attempt failed"

    def __init__(self, note: str | None = None, *, detail: str = ""):
        self.note = note or self.default_note
        self.detail = detail
        super().__init__(self.note if not detail else f"{self.note}: {detail}")


class NavigationTimeout(AttemptError):
    default_note = "navigation timeout"


class NoApplyControl(AttemptError):
    default_note = "apply control not found"


class NoFormFound(AttemptError):
    default_note = "no application form available"


class NoSubmitControl(AttemptError):
    default_note = "submit control not found"


class ValidationRejected(AttemptError):
    default_note = "validation error"


class NoSuccessIndicator(AttemptError):
    default_note = "no success indicator found"


class AttemptTimeout(AttemptError):
    default_note = "application attempt timed out"


class FieldNotFound(LookupError):
    """No matcher for a field target found a usable element. Never ends an attempt."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"field '{field_name}' not found on page")


class UploadFailed(RuntimeError):
    """Every resume attachment strategy failed. The attempt continues without a resume."""
