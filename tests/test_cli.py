"""
Tests for the command-line interface in mock mode.
"""

import json

from rich.console import Console
from typer.testing import CliRunner

from calendar_filler import __version__
from calendar_filler.cli import app as cli_app
from calendar_filler.cli.app import app

runner = CliRunner()


def _config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("defaults:\n  timezone: Europe/Berlin\n", encoding="utf-8")
    return path


def test_create_in_mock_mode(tmp_path):
    result = runner.invoke(
        app,
        [
            "create",
            "--config", str(_config(tmp_path)),
            "--mock",
            "--start", "2024-01-01",
            "--end", "2024-01-03",
            "--count", "3",
            "--input", "office work",
            "--seed", "1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "3 created" in result.output
    assert "Standup" in result.output


def test_create_rejects_bad_count(tmp_path):
    result = runner.invoke(
        app,
        ["create", "--config", str(_config(tmp_path)), "--mock", "--count", "40"],
    )

    assert result.exit_code == 1
    assert "Count must be between 1 and 30" in result.output


def test_create_rejects_bad_date(tmp_path):
    result = runner.invoke(
        app,
        ["create", "--config", str(_config(tmp_path)), "--mock", "--start", "01/02/2024"],
    )

    assert result.exit_code == 1


def test_list_and_delete_seeded_mock_calendar(tmp_path):
    seed = tmp_path / "calendar.json"
    now = "2030-01-01T09:00:00+00:00"
    seed.write_text(
        json.dumps([
            {"id": "gen-1", "title": "Gym Workout", "start": now, "end": "2030-01-01T10:00:00+00:00",
             "generated_by": "calendar_filler", "duration": 60},
            {"id": "own-1", "title": "Dentist", "start": now, "end": "2030-01-01T10:00:00+00:00"},
        ]),
        encoding="utf-8",
    )
    config = tmp_path / "config.yaml"
    config.write_text("list_window_days: 10000\ndelete_window_days: 10000\n", encoding="utf-8")

    listed = runner.invoke(app, ["list", "--config", str(config), "--mock", "--mock-data", str(seed)])
    deleted = runner.invoke(
        app, ["delete", "--config", str(config), "--mock", "--mock-data", str(seed), "--yes"]
    )

    assert listed.exit_code == 0, listed.output
    assert "Gym" in listed.output
    assert "Dentist" not in listed.output
    assert deleted.exit_code == 0, deleted.output
    assert "Deleted 1 event(s)" in deleted.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_shows_event_links(tmp_path, monkeypatch):
    monkeypatch.setattr(cli_app, "console", Console(width=200))
    seed = tmp_path / "calendar.json"
    seed.write_text(
        json.dumps([
            {"id": "gen-1", "title": "Gym Workout", "start": "2030-01-01T09:00:00+00:00",
             "end": "2030-01-01T10:00:00+00:00", "generated_by": "calendar_filler",
             "duration": 60, "html_link": "https://calendar.google.com/event?eid=gen-1"},
            {"id": "gen-2", "title": "Reading", "start": "2030-01-01T11:00:00+00:00",
             "end": "2030-01-01T11:30:00+00:00", "generated_by": "calendar_filler", "duration": 30},
        ]),
        encoding="utf-8",
    )
    config = tmp_path / "config.yaml"
    config.write_text("list_window_days: 10000\n", encoding="utf-8")

    result = runner.invoke(app, ["list", "--config", str(config), "--mock", "--mock-data", str(seed)])

    assert result.exit_code == 0, result.output
    assert "Link" in result.output
    assert "Open" in result.output
