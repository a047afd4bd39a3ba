from __future__ import annotations

import json
import logging
import signal
from pathlib import Path
from typing import Any

import typer
import uvicorn

from autoapply.api.app import create_app
from autoapply.config import get_settings
from autoapply.core.coordinator import RunCoordinator
from autoapply.core.runtime import get_coordinator
from autoapply.core.scheduler import IntervalScheduler
from autoapply.db.init import init_database
from autoapply.db.models import Resume, User
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal
from autoapply.errors import ConfigurationError
from autoapply.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="AutoApply CLI")
user_app = typer.Typer(help="Manage applicant profiles")

app.add_typer(user_app, name="user")

_INITIALIZED = False

USER_FIELDS = frozenset(User.__table__.columns.keys()) - {"created_at", "updated_at", "last_auto_applied_at"}
RESUME_FIELDS = frozenset(Resume.__table__.columns.keys()) - {"id", "user_id", "created_at", "updated_at"}


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _coordinator() -> RunCoordinator:
    try:
        return get_coordinator()
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _profile_values(payload: dict[str, Any]) -> dict[str, Any]:
    unknown = set(payload) - USER_FIELDS - {"resume", "resume_file"}
    if unknown:
        raise typer.BadParameter(f"unknown profile fields: {', '.join(sorted(unknown))}")
    return {key: value for key, value in payload.items() if key in USER_FIELDS}


def _import_user(repo: Repository, payload: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    user = repo.create_user(_profile_values(payload))

    resume_payload = payload.get("resume")
    if resume_payload:
        unknown = set(resume_payload) - RESUME_FIELDS
        if unknown:
            raise typer.BadParameter(f"unknown resume fields: {', '.join(sorted(unknown))}")
        resume = repo.create_resume(user.id, resume_payload)
        user = repo.update_user(user.id, {"selected_resume_id": resume.id})

    resume_file = payload.get("resume_file")
    if resume_file:
        path = Path(resume_file)
        if not path.is_absolute():
            path = base_dir / path
        if not path.is_file():
            raise typer.BadParameter(f"resume file {path} not found")
        ref = f"uploads/{user.id}/{path.name}"
        repo.store_document(ref, path.read_bytes(), file_name=path.name, user_id=user.id)
        user = repo.update_user(user.id, {"uploaded_resume_path": ref})

    return _user_row(user)


def _user_row(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name or " ".join(filter(None, (user.first_name, user.last_name))),
        "auto_apply_enabled": user.auto_apply_enabled,
        "last_auto_applied_at": user.last_auto_applied_at.isoformat() if user.last_auto_applied_at else None,
    }


def _install_stop_handlers(on_stop) -> None:
    def _handle(signum, frame) -> None:
        logger.info("Received %s", signal.Signals(signum).name)
        on_stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


@app.command("init")
def init_cmd() -> None:
    """Create data directories and database tables."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("run")
def run_cmd(user: str | None = typer.Option(None, "--user", help="Run for a single user id")) -> None:
    """Run one discovery and application pass, then exit."""
    configure_logging()
    ensure_initialized()
    coordinator = _coordinator()
    _install_stop_handlers(coordinator.cancel)

    summary = coordinator.run_once(user_id=user)
    if summary is None:
        typer.echo(json.dumps({"ok": False, "reason": "run already in progress"}, indent=2))
        return
    typer.echo(summary.model_dump_json(indent=2))


@app.command("schedule")
def schedule_cmd(
    interval_min: int | None = typer.Option(None, "--interval-min", min=1),
    skip_initial: bool = typer.Option(False, "--skip-initial", help="Wait one interval before the first run"),
) -> None:
    """Run a pass every interval until SIGINT or SIGTERM."""
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    scheduler = IntervalScheduler(
        _coordinator(),
        interval_min=interval_min or settings.run_interval_min,
        run_on_start=settings.run_on_start and not skip_initial,
    )
    _install_stop_handlers(scheduler.stop)
    fired = scheduler.run_forever()
    typer.echo(json.dumps({"ok": True, "runs": fired}, indent=2))


@app.command("stats")
def stats_cmd(user: str = typer.Option(..., "--user")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        if not repo.get_user(user):
            raise typer.BadParameter(f"user {user} not found")
        typer.echo(repo.get_user_stats(user).model_dump_json(indent=2))


@app.command("attempts")
def attempts_cmd(
    user: str = typer.Option(..., "--user"),
    limit: int = typer.Option(20, "--limit", min=1),
    status: str | None = typer.Option(None, "--status"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        if not repo.get_user(user):
            raise typer.BadParameter(f"user {user} not found")
        attempts = repo.list_attempts(user, limit=limit, status=status)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": attempt.id,
                        "job_title": attempt.job_title,
                        "company_name": attempt.company_name,
                        "job_url": attempt.job_url,
                        "status": attempt.status,
                        "notes": attempt.notes,
                        "error_message": attempt.error_message,
                        "applied_at": attempt.applied_at.isoformat() if attempt.applied_at else None,
                    }
                    for attempt in attempts
                ],
                indent=2,
            )
        )


@user_app.command("create")
def user_create(
    email: str = typer.Option(..., "--email"),
    full_name: str = typer.Option(..., "--full-name"),
    phone: str = typer.Option("", "--phone"),
    search_terms: str = typer.Option("", "--search-terms"),
    search_location: str = typer.Option("", "--search-location"),
    blacklisted_companies: str = typer.Option("", "--blacklist"),
    skip_keywords: str = typer.Option("", "--skip-keywords"),
    skip_clearance: bool = typer.Option(False, "--skip-clearance"),
    disabled: bool = typer.Option(False, "--disabled"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        user = repo.create_user(
            {
                "email": email,
                "full_name": full_name,
                "phone": phone,
                "search_terms": search_terms,
                "search_location": search_location,
                "blacklisted_companies": blacklisted_companies,
                "skip_keywords": skip_keywords,
                "skip_security_clearance": skip_clearance,
                "auto_apply_enabled": not disabled,
            }
        )
        typer.echo(json.dumps(_user_row(user), indent=2))


@user_app.command("import")
def user_import(file: Path = typer.Option(..., "--file", exists=True, readable=True)) -> None:
    """Import one profile object or a list of them from JSON."""
    configure_logging()
    ensure_initialized()
    payload = json.loads(file.read_text(encoding="utf-8"))
    items = payload if isinstance(payload, list) else [payload]

    with SessionLocal() as db:
        repo = Repository(db)
        imported = [_import_user(repo, item, file.parent) for item in items]
    typer.echo(json.dumps({"imported": imported}, indent=2))


@user_app.command("list")
def user_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        users = Repository(db).list_users()
        typer.echo(json.dumps([_user_row(user) for user in users], indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
