from __future__ import annotations

import json
import logging
import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fpdf import FPDF

from autoapply.config import Settings, get_settings
from autoapply.db.repositories import Repository
from autoapply.types import ResumeData, UserProfile

logger = logging.getLogger(__name__)

UNICODE_REPLACEMENTS = {
    "•": "-",
    "–": "-",
    "—": "-",
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "…": "...",
    "→": "->",
}

# Fixed so the same input always renders the same bytes.
RENDER_CREATION_DATE = datetime(2000, 1, 1, tzinfo=timezone.utc)


def clean_text(value: Any) -> str:
    text = "" if value is None else str(value)
    for old, new in UNICODE_REPLACEMENTS.items():
        text = text.replace(old, new)
    # Core PDF fonts only cover latin-1.
    return text.encode("latin-1", "replace").decode("latin-1").strip()


def _as_list(value: Any) -> list[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [item.strip() for item in value.split(",") if item.strip()] if "," in value else [value]
    if isinstance(value, list):
        return value
    return [value]


def _pick(entry: dict[str, Any], *keys: str, default: str = "") -> str:
    for key in keys:
        if entry.get(key):
            return str(entry[key])
    return default


class ResumePdf(FPDF):
    def __init__(self):
        super().__init__()
        self.set_creation_date(RENDER_CREATION_DATE)
        self.set_margins(left=20, top=15, right=20)
        self.set_auto_page_break(auto=True, margin=15)

    def header_name(self, name: str) -> None:
        self.set_font("Helvetica", "B", 16)
        self.cell(0, 10, clean_text(name), new_x="LMARGIN", new_y="NEXT", align="C")

    def header_line(self, text: str) -> None:
        if not text:
            return
        self.set_font("Helvetica", "", 9)
        self.cell(0, 5, clean_text(text), new_x="LMARGIN", new_y="NEXT", align="C")

    def section_header(self, title: str) -> None:
        self.ln(4)
        self.set_font("Helvetica", "B", 10)
        self.cell(0, 5, clean_text(title.upper()), new_x="LMARGIN", new_y="NEXT")
        y = self.get_y()
        self.line(20, y, 190, y)
        self.ln(2)

    def entry_title(self, text: str) -> None:
        self.set_font("Helvetica", "B", 9)
        self.multi_cell(0, 4.5, clean_text(text), new_x="LMARGIN", new_y="NEXT")

    def body(self, text: str) -> None:
        if not text:
            return
        self.set_font("Helvetica", "", 9)
        self.multi_cell(0, 4, clean_text(text), new_x="LMARGIN", new_y="NEXT")


def render_resume_pdf(resume: ResumeData) -> bytes:
    pdf = ResumePdf()
    pdf.add_page()

    name = " ".join(part for part in (resume.first_name, resume.last_name) if part) or resume.name or "Resume"
    pdf.header_name(name)
    pdf.header_line(resume.target_role)
    pdf.header_line("  |  ".join(part for part in (resume.email, resume.phone_number, resume.location) if part))
    pdf.header_line("  |  ".join(part for part in (resume.linkedin_url, resume.github_url, resume.website) if part))

    if resume.professional_summary:
        pdf.section_header("Professional Summary")
        pdf.body(resume.professional_summary)

    experience = _as_list(resume.work_experience)
    if experience:
        pdf.section_header("Work Experience")
        for item in experience:
            if not isinstance(item, dict):
                pdf.body(str(item))
                continue
            title = _pick(item, "title", "position", default="Position")
            company = _pick(item, "company", "employer", default="Company")
            dates = f"{_pick(item, 'start_date')} - {_pick(item, 'end_date', default='Present')}".strip(" -")
            pdf.entry_title(f"{title} - {company} | {dates}" if dates else f"{title} - {company}")
            pdf.body(_pick(item, "description", "responsibilities"))

    education = _as_list(resume.education)
    if education:
        pdf.section_header("Education")
        for item in education:
            if not isinstance(item, dict):
                pdf.body(str(item))
                continue
            degree = _pick(item, "degree", "field", default="Degree")
            school = _pick(item, "school", "institution", default="Institution")
            year = _pick(item, "graduation_date", "year")
            pdf.entry_title(f"{degree} - {school}" + (f" | {year}" if year else ""))
            pdf.body(_pick(item, "description"))

    skills = _as_list(resume.skills)
    if skills:
        pdf.section_header("Skills")
        pdf.body(", ".join(str(skill) for skill in skills))

    projects = _as_list(resume.projects)
    if projects:
        pdf.section_header("Projects")
        for item in projects:
            if not isinstance(item, dict):
                pdf.body(str(item))
                continue
            tech = _pick(item, "technologies", "tech")
            pdf.entry_title(_pick(item, "name", "title", default="Project") + (f" ({tech})" if tech else ""))
            pdf.body(_pick(item, "description"))

    certifications = _as_list(resume.certifications)
    if certifications:
        pdf.section_header("Certifications")
        for item in certifications:
            if not isinstance(item, dict):
                pdf.body(str(item))
                continue
            parts = (
                _pick(item, "name", "title", default="Certification"),
                _pick(item, "issuer", "organization"),
                _pick(item, "date", "issued_date"),
            )
            pdf.body(" - ".join(part for part in parts if part))

    return bytes(pdf.output())


def render_placeholder_pdf(name: str = "") -> bytes:
    pdf = ResumePdf()
    pdf.add_page()
    pdf.header_name(name or "Resume")
    pdf.ln(6)
    pdf.body("Resume")
    pdf.body("Auto-generated resume")
    return bytes(pdf.output())


def _safe_file_stem(value: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", value).strip("_")
    return stem or "resume"


@dataclass(slots=True)
class ResumeArtifact:
    content: bytes
    file_name: str
    source: str


class ResumeProvider:
    """Stored binary, else rendered structured resume, else placeholder. Never empty."""

    def __init__(self, repo: Repository, settings: Settings | None = None):
        self.repo = repo
        self.settings = settings or get_settings()

    def obtain(self, profile: UserProfile) -> ResumeArtifact:
        stored = self._from_stored_binary(profile)
        if stored is not None:
            return stored

        rendered = self._from_structured_resume(profile)
        if rendered is not None:
            return rendered

        display_name = profile.full_name or " ".join(filter(None, (profile.first_name, profile.last_name)))
        content = render_placeholder_pdf(display_name)
        file_name = f"{_safe_file_stem(display_name)}_resume.pdf"
        self._store_generated(content, file_name, profile.id, source_key=f"placeholder:{display_name}")
        return ResumeArtifact(content=content, file_name=file_name, source="placeholder")

    @contextmanager
    def materialize(self, profile: UserProfile) -> Iterator[Path]:
        """Write the resume to a temporary file that is removed on exit."""
        artifact = self.obtain(profile)
        temp_dir = Path(self.settings.temp_dir)
        temp_dir.mkdir(parents=True, exist_ok=True)
        path = temp_dir / f"{uuid.uuid4().hex[:8]}_{artifact.file_name}"
        path.write_bytes(artifact.content)
        logger.info("Resume ready source=%s file=%s", artifact.source, artifact.file_name)
        try:
            yield path
        finally:
            path.unlink(missing_ok=True)

    def _from_stored_binary(self, profile: UserProfile) -> ResumeArtifact | None:
        ref = profile.uploaded_resume_path.strip()
        if not ref:
            return None
        try:
            content = self.repo.get_resume_binary(ref)
        except Exception as exc:
            logger.warning("Could not load stored resume %s: %s", ref, exc)
            return None
        if not content:
            logger.warning("Stored resume %s is missing or empty", ref)
            return None
        file_name = Path(ref).name or "resume.pdf"
        return ResumeArtifact(content=content, file_name=file_name, source="stored")

    def _from_structured_resume(self, profile: UserProfile) -> ResumeArtifact | None:
        if profile.selected_resume_id is None:
            return None
        try:
            resume = self.repo.get_structured_resume(profile.selected_resume_id)
            if resume is None:
                logger.warning("Structured resume %s not found", profile.selected_resume_id)
                return None
            content = render_resume_pdf(resume)
        except Exception as exc:
            logger.warning("Could not render structured resume %s: %s", profile.selected_resume_id, exc)
            return None
        file_name = f"{_safe_file_stem(resume.name or 'resume')}_{resume.id}.pdf"
        self._store_generated(content, file_name, profile.id, source_key=resume.model_dump_json())
        return ResumeArtifact(content=content, file_name=file_name, source="structured")

    def _store_generated(self, content: bytes, file_name: str, user_id: str, source_key: str) -> None:
        try:
            ref = self.repo.store_generated_document(content, file_name, user_id=user_id, source_key=source_key)
            logger.debug("Stored generated resume as %s", ref)
        except Exception as exc:
            self.repo.session.rollback()
            logger.warning("Could not store generated resume %s: %s", file_name, exc)
