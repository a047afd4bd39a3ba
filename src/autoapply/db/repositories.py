from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import func, nulls_first, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autoapply.db.models import AppliedJob, Resume, SearchHistory, StoredDocument, User
from autoapply.types import AttemptResult, ResumeData, SearchParams, UserProfile, UserStats


def hash_bytes(value: bytes) -> str:
    return hashlib.sha256(value).hexdigest()


class Repository:
    def __init__(self, session: Session):
        self.session = session

    # Users

    def create_user(self, values: dict[str, Any]) -> User:
        user = User(**values)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def update_user(self, user_id: str, values: dict[str, Any]) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")
        for key, value in values.items():
            setattr(user, key, value)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_profile(self, user_id: str) -> UserProfile | None:
        user = self.get_user(user_id)
        return UserProfile.model_validate(user) if user else None

    def list_users(self) -> list[User]:
        return list(self.session.scalars(select(User).order_by(User.created_at, User.id)).all())

    def list_eligible_users(self) -> list[UserProfile]:
        statement = (
            select(User)
            .where(User.auto_apply_enabled.is_(True))
            .order_by(nulls_first(User.last_auto_applied_at.asc()), User.id)
        )
        return [UserProfile.model_validate(user) for user in self.session.scalars(statement).all()]

    def update_last_run_timestamp(self, user_id: str, at: datetime | None = None) -> None:
        user = self.get_user(user_id)
        if not user:
            return
        user.last_auto_applied_at = at or datetime.now(UTC)
        self.session.commit()

    # Resumes and documents

    def create_resume(self, user_id: str, values: dict[str, Any]) -> Resume:
        resume = Resume(user_id=user_id, **values)
        self.session.add(resume)
        self.session.commit()
        self.session.refresh(resume)
        return resume

    def get_structured_resume(self, resume_id: int) -> ResumeData | None:
        resume = self.session.get(Resume, resume_id)
        return ResumeData.model_validate(resume) if resume else None

    def get_document(self, ref: str) -> StoredDocument | None:
        return self.session.scalar(select(StoredDocument).where(StoredDocument.ref == ref))

    def get_resume_binary(self, ref: str) -> bytes | None:
        if not ref:
            return None
        document = self.get_document(ref)
        if document is not None:
            return document.content
        # Refs imported from disk keep their original path.
        path = Path(ref)
        if path.is_file():
            return path.read_bytes()
        return None

    def store_document(
        self,
        ref: str,
        content: bytes,
        file_name: str,
        user_id: str | None = None,
        mime_type: str = "application/pdf",
    ) -> StoredDocument:
        document = self.get_document(ref)
        if document:
            document.content = content
            document.file_name = file_name
            document.mime_type = mime_type
        else:
            document = StoredDocument(
                ref=ref,
                content=content,
                file_name=file_name,
                user_id=user_id,
                mime_type=mime_type,
            )
            self.session.add(document)
        self.session.commit()
        self.session.refresh(document)
        return document

    def store_generated_document(
        self,
        content: bytes,
        name: str,
        user_id: str | None = None,
        source_key: str | None = None,
    ) -> str:
        """Store a rendered document. Renders of the same ``source_key`` share one ref."""
        digest = hash_bytes(source_key.encode("utf-8") if source_key else content)
        ref = f"generated/{user_id or 'anonymous'}/{digest[:16]}-{name}"
        self.store_document(ref, content, file_name=name, user_id=user_id)
        return ref

    # Attempt ledger

    def has_prior_attempt(self, user_id: str, url: str) -> bool:
        statement = (
            select(AppliedJob.id)
            .where(
                AppliedJob.user_id == user_id,
                AppliedJob.job_url == url,
                AppliedJob.status == "applied",
            )
            .limit(1)
        )
        return self.session.scalar(statement) is not None

    def append_attempt(
        self,
        result: AttemptResult,
        application_data: dict[str, Any] | None = None,
        applied_at: datetime | None = None,
    ) -> AppliedJob:
        record = AppliedJob(
            user_id=result.user_id,
            job_title=result.title,
            company_name=result.employer,
            job_url=result.url,
            applied_at=applied_at or datetime.now(UTC),
            status=result.outcome,
            notes=result.note,
            error_message=result.error_detail,
            application_data=application_data or {},
        )
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        self.session.refresh(record)
        return record

    def list_attempts(self, user_id: str, limit: int = 50, status: str | None = None) -> list[AppliedJob]:
        statement = select(AppliedJob).where(AppliedJob.user_id == user_id)
        if status:
            statement = statement.where(AppliedJob.status == status)
        statement = statement.order_by(AppliedJob.applied_at.desc(), AppliedJob.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def count_attempts(self, user_id: str | None = None) -> int:
        statement = select(func.count(AppliedJob.id))
        if user_id:
            statement = statement.where(AppliedJob.user_id == user_id)
        return int(self.session.scalar(statement) or 0)

    def get_user_stats(self, user_id: str) -> UserStats:
        rows = self.session.execute(
            select(AppliedJob.status, func.count(AppliedJob.id))
            .where(AppliedJob.user_id == user_id)
            .group_by(AppliedJob.status)
        ).all()
        counts = {status: int(count) for status, count in rows}
        last_applied_at = self.session.scalar(
            select(func.max(AppliedJob.applied_at)).where(
                AppliedJob.user_id == user_id,
                AppliedJob.status == "applied",
            )
        )
        return UserStats(
            user_id=user_id,
            total_attempts=sum(counts.values()),
            applied=counts.get("applied", 0),
            errors=counts.get("error", 0),
            last_applied_at=last_applied_at,
        )

    # Search history

    def record_search(
        self,
        user_id: str,
        params: SearchParams,
        found: int,
        eligible: int,
        applied: int,
    ) -> SearchHistory:
        entry = SearchHistory(
            user_id=user_id,
            search_terms=params.terms,
            search_location=params.location,
            jobs_found=found,
            jobs_eligible=eligible,
            jobs_applied=applied,
            search_date=datetime.now(UTC),
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def list_searches(self, user_id: str, limit: int = 20) -> list[SearchHistory]:
        statement = (
            select(SearchHistory)
            .where(SearchHistory.user_id == user_id)
            .order_by(SearchHistory.search_date.desc(), SearchHistory.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(statement).all())
