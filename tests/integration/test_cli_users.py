from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from autoapply.cli.app import app
from autoapply.db.repositories import Repository
from autoapply.db.session import SessionLocal

runner = CliRunner()


def test_import_users_with_resume_and_list(tmp_path: Path) -> None:
    (tmp_path / "cv.pdf").write_bytes(b"%PDF-1.4 uploaded")
    payload = [
        {
            "email": "ada@example.com",
            "full_name": "Ada Lovelace",
            "search_terms": "python, data",
            "resume_file": "cv.pdf",
        },
        {
            "email": "grace@example.com",
            "full_name": "Grace Hopper",
            "resume": {"name": "Main", "skills": ["COBOL"]},
        },
    ]
    source = tmp_path / "users.json"
    source.write_text(json.dumps(payload), encoding="utf-8")

    result = runner.invoke(app, ["user", "import", "--file", str(source)])

    assert result.exit_code == 0, result.output
    imported = json.loads(result.stdout)["imported"]
    assert [item["email"] for item in imported] == ["ada@example.com", "grace@example.com"]

    with SessionLocal() as db:
        repo = Repository(db)
        ada = repo.get_profile(imported[0]["id"])
        grace = repo.get_profile(imported[1]["id"])
        assert repo.get_resume_binary(ada.uploaded_resume_path) == b"%PDF-1.4 uploaded"
        assert repo.get_structured_resume(grace.selected_resume_id).skills == ["COBOL"]

    listed = runner.invoke(app, ["user", "list"])
    assert listed.exit_code == 0
    assert len(json.loads(listed.stdout)) == 2


def test_import_rejects_unknown_fields(tmp_path: Path) -> None:
    source = tmp_path / "users.json"
    source.write_text(json.dumps({"email": "ada@example.com", "favourite_colour": "green"}), encoding="utf-8")

    result = runner.invoke(app, ["user", "import", "--file", str(source)])

    assert result.exit_code != 0


def test_stats_for_created_user() -> None:
    created = runner.invoke(app, ["user", "create", "--email", "ada@example.com", "--full-name", "Ada Lovelace"])
    user_id = json.loads(created.stdout)["id"]

    result = runner.invoke(app, ["stats", "--user", user_id])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["total_attempts"] == 0
