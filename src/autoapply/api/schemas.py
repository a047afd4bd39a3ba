from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str
    auto_apply_enabled: bool
    last_auto_applied_at: datetime | None = None


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    company_name: str
    job_url: str
    status: str
    notes: str
    error_message: str
    applied_at: datetime
    application_data: dict[str, Any]


class RunTriggerRequest(BaseModel):
    user_id: str | None = None


class RunTriggerResponse(BaseModel):
    accepted: bool
    running: bool
