"""Tests for the command-line entry point."""

import json
import time

import pytest
from jose import jwt

import main
from yachtcrm.config import reset_config

SECRET = "cli-secret"


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "crm.db"))
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)
    reset_config()
    return tmp_path


def _token(sub: str = "cli-broker") -> str:
    return jwt.encode(
        {"sub": sub, "aud": "authenticated", "exp": int(time.time()) + 600},
        SECRET,
        algorithm="HS256",
    )


@pytest.mark.integration
def test_init_db_creates_database(cli_env):
    assert main.main(["init-db"]) == 0
    assert (cli_env / "crm.db").exists()


@pytest.mark.integration
def test_dashboard_prints_json(cli_env, capsys):
    exit_code = main.main(["dashboard", "--token", _token()])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["success"] is True
    assert output["data"]["stats"]["client_count"] == 0
    assert set(output["data"]["reminders"]) == {
        "overdue", "today", "tomorrow", "this_week", "upcoming",
    }


@pytest.mark.integration
def test_dashboard_with_bad_token_fails(cli_env, capsys):
    exit_code = main.main(["dashboard", "--token", "garbage"])

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert output["error_code"] == "unauthorized"
