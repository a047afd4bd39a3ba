from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from autoapply.api.deps import get_db
from autoapply.api.schemas import AttemptResponse, RunTriggerRequest, RunTriggerResponse, UserResponse
from autoapply.core.runtime import get_coordinator
from autoapply.db.models import ATTEMPT_STATUSES
from autoapply.db.repositories import Repository
from autoapply.errors import ConfigurationError
from autoapply.types import RunSummary, UserStats

router = APIRouter(prefix="/api", tags=["api"])


def _require_user(repo: Repository, user_id: str) -> None:
    if not repo.get_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")


@router.get("/users", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)) -> list[UserResponse]:
    return [UserResponse.model_validate(user) for user in Repository(db).list_users()]


@router.get("/users/{user_id}/stats", response_model=UserStats)
def user_stats(user_id: str, db: Session = Depends(get_db)) -> UserStats:
    repo = Repository(db)
    _require_user(repo, user_id)
    return repo.get_user_stats(user_id)


@router.get("/users/{user_id}/attempts", response_model=list[AttemptResponse])
def user_attempts(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> list[AttemptResponse]:
    repo = Repository(db)
    _require_user(repo, user_id)
    if status_filter and status_filter not in ATTEMPT_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of {list(ATTEMPT_STATUSES)}")
    rows = repo.list_attempts(user_id, limit=limit, status=status_filter)
    return [AttemptResponse.model_validate(row) for row in rows]


@router.post("/runs", response_model=RunTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
def trigger_run(payload: RunTriggerRequest | None = None, db: Session = Depends(get_db)) -> RunTriggerResponse:
    user_id = payload.user_id if payload else None
    if user_id is not None:
        _require_user(Repository(db), user_id)
    try:
        coordinator = get_coordinator()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    accepted = coordinator.trigger(user_id)
    return RunTriggerResponse(accepted=accepted, running=coordinator.is_running)


@router.get("/runs/last", response_model=RunSummary | None)
def last_run() -> RunSummary | None:
    try:
        return get_coordinator().last_summary
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
