from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from autoapply.db.base import Base, TimestampMixin

ATTEMPT_STATUSES = ("applied", "error", "skipped", "duplicate")


def _new_user_id() -> str:
    return uuid.uuid4().hex


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_user_id)
    auto_apply_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_auto_applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Personal
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    headline: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    address: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    city: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    state: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    country: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    zip_code: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    current_location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    linkedin_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    github_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    website: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    # Employment
    current_job_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    current_company: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    years_experience: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    key_skills: Mapped[str] = mapped_column(Text, default="", nullable=False)
    field_of_study: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    graduation_year: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    work_experience: Mapped[Any] = mapped_column(JSON, nullable=True)
    education: Mapped[Any] = mapped_column(JSON, nullable=True)
    skills: Mapped[Any] = mapped_column(JSON, nullable=True)
    projects: Mapped[str] = mapped_column(Text, default="", nullable=False)
    certifications: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Application answers
    summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, default="", nullable=False)
    desired_salary: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    expected_salary: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    current_salary: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    notice_period: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    start_date: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    relocation: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    commute: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    interest_reason: Mapped[str] = mapped_column(Text, default="", nullable=False)
    work_auth: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    legally_authorized: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    require_sponsorship: Mapped[str] = mapped_column(String(40), default="", nullable=False)

    # Voluntary self-identification
    gender: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    race: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    veteran: Mapped[str] = mapped_column(String(80), default="", nullable=False)
    disabilities: Mapped[str] = mapped_column(String(80), default="", nullable=False)

    # Resume
    uploaded_resume_path: Mapped[str] = mapped_column(String(600), default="", nullable=False)
    selected_resume_id: Mapped[int | None] = mapped_column(
        ForeignKey("resumes.id", ondelete="SET NULL", use_alter=True), nullable=True
    )

    # Search preferences
    search_terms: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    randomize_search: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    search_location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    blacklisted_companies: Mapped[str] = mapped_column(Text, default="", nullable=False)
    whitelisted_companies: Mapped[str] = mapped_column(Text, default="", nullable=False)
    skip_keywords: Mapped[str] = mapped_column(Text, default="", nullable=False)
    prioritize_keywords: Mapped[str] = mapped_column(Text, default="", nullable=False)
    skip_security_clearance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Resume(TimestampMixin, Base):
    __tablename__ = "resumes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    phone_number: Mapped[str] = mapped_column(String(40), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    website: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    linkedin_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    github_url: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    target_role: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    professional_summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    work_experience: Mapped[Any] = mapped_column(JSON, nullable=True)
    education: Mapped[Any] = mapped_column(JSON, nullable=True)
    skills: Mapped[Any] = mapped_column(JSON, nullable=True)
    projects: Mapped[Any] = mapped_column(JSON, nullable=True)
    certifications: Mapped[Any] = mapped_column(JSON, nullable=True)


class StoredDocument(TimestampMixin, Base):
    __tablename__ = "stored_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ref: Mapped[str] = mapped_column(String(600), unique=True, nullable=False)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(120), default="application/pdf", nullable=False)
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


class AppliedJob(TimestampMixin, Base):
    __tablename__ = "applied_jobs"
    __table_args__ = (
        CheckConstraint(
            "status IN ('applied', 'error', 'skipped', 'duplicate')",
            name="ck_applied_jobs_status",
        ),
        Index(
            "uq_applied_jobs_user_url_applied",
            "user_id",
            "job_url",
            unique=True,
            sqlite_where=text("status = 'applied'"),
            postgresql_where=text("status = 'applied'"),
        ),
        Index("ix_applied_jobs_user_url", "user_id", "job_url"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    job_title: Mapped[str] = mapped_column(String(500), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_url: Mapped[str] = mapped_column(String(800), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    error_message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    application_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class SearchHistory(TimestampMixin, Base):
    __tablename__ = "job_search_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    search_terms: Mapped[str] = mapped_column(String(500), nullable=False)
    search_location: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    jobs_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    jobs_eligible: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    jobs_applied: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    search_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
