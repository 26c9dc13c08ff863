"""Integration tests for the operator CLI against a file-backed SQLite store."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from cleanvee.cli import app
from cleanvee.config import reset_config

runner = CliRunner()


@pytest.fixture
def file_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cleanvee.db'}")
    reset_config()
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def test_init_creates_schema(file_db):
    assert (file_db / "cleanvee.db").exists()


def test_checkpoints_empty(file_db):
    result = runner.invoke(app, ["checkpoints"])

    assert result.exit_code == 0
    assert "No checkpoints found" in result.output


def test_validate_passes(file_db):
    result = runner.invoke(app, ["validate"])

    assert result.exit_code == 0, result.output
    assert "All startup validations passed" in result.output


def test_watchdog_on_empty_store(file_db):
    result = runner.invoke(app, ["watchdog"])

    assert result.exit_code == 0, result.output
    assert "Alerts created" in result.output


def test_process_log_not_found(file_db):
    result = runner.invoke(app, ["process-log", "missing-log"])

    assert result.exit_code == 1
    assert "Cleaning log not found" in result.output


def test_ticket_preview_not_found(file_db):
    result = runner.invoke(app, ["ticket-preview", "missing-alert"])

    assert result.exit_code == 1
    assert "Alert not found" in result.output
