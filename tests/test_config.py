"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from calendar_filler.config import AppConfig, OPENROUTER_API_KEY_ENV, TitleGeneratorConfig


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    config = AppConfig()

    assert config.scheduling.working_hours_end == 21
    assert config.scheduling.search_increment_minutes == 15
    assert config.scheduling.max_attempts == 50
    assert config.defaults.count == 5
    assert config.defaults.earliest_start_hour == 8
    assert config.google.calendar_id == "primary"


def test_load_from_yaml(tmp_path):
    path = _write(
        tmp_path,
        """
google:
  client_secrets_file: secrets/client.json
  token_file: ~/tokens/calendar.json
scheduling:
  working_hours_end: 1
  max_attempts: 80
defaults:
  count: 10
  timezone: Europe/Berlin
log_level: info
""",
    )

    config = AppConfig.load_from_yaml(path)

    assert config.google.client_secrets_file == Path("secrets/client.json")
    assert config.google.token_file == Path.home() / "tokens" / "calendar.json"
    assert config.scheduling.working_hours_end == 1
    assert config.scheduling.max_attempts == 80
    assert config.defaults.count == 10
    assert config.defaults.timezone == "Europe/Berlin"
    assert config.log_level == "INFO"


def test_constraints_for_earliest_start():
    config = AppConfig()

    constraints = config.scheduling.constraints_for(9)

    assert constraints.working_hours_start == 9
    assert constraints.working_hours_end == 21
    assert constraints.search_increment_minutes == 15
    assert constraints.max_attempts == 50


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load_from_yaml(tmp_path / "missing.yaml")


def test_non_mapping_root_raises(tmp_path):
    path = _write(tmp_path, "- just\n- a list\n")

    with pytest.raises(ValueError, match="mapping"):
        AppConfig.load_from_yaml(path)


def test_invalid_yaml_raises(tmp_path):
    path = _write(tmp_path, "defaults: [unclosed\n")

    with pytest.raises(ValueError, match="Invalid YAML"):
        AppConfig.load_from_yaml(path)


@pytest.mark.parametrize(
    "text",
    [
        "scheduling:\n  working_hours_end: 24\n",
        "scheduling:\n  search_increment_minutes: 0\n",
        "defaults:\n  count: 31\n",
        "defaults:\n  earliest_start_hour: -1\n",
        "defaults:\n  timezone: Not/AZone\n",
        "log_level: chatty\n",
        "defaults:\n  earliest_start_hour: 21\n",
    ],
)
def test_invalid_values_raise(tmp_path, text):
    path = _write(tmp_path, text)

    with pytest.raises(ValueError):
        AppConfig.load_from_yaml(path)


def test_load_without_default_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "calendar_filler.config.get_default_config_path",
        lambda: tmp_path / "config.yaml",
    )

    assert AppConfig.load() == AppConfig()


def test_load_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        AppConfig.load(tmp_path / "nope.yaml")


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv(OPENROUTER_API_KEY_ENV, "env-key")

    assert TitleGeneratorConfig().resolve_api_key() == "env-key"
    assert TitleGeneratorConfig(api_key="file-key").resolve_api_key() == "file-key"


def test_api_key_missing(monkeypatch):
    monkeypatch.delenv(OPENROUTER_API_KEY_ENV, raising=False)

    assert TitleGeneratorConfig().resolve_api_key() is None
