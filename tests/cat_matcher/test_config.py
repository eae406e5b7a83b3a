import os
from pathlib import Path

import pytest

from meowtion.apps.cat_matcher.core.config import (
    MatcherSettings,
    build_runtime_config,
    load_config,
    load_settings,
)
from meowtion.apps.cat_matcher.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GEMINI_API_KEY", "MEOWTION_ORACLE_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    for name in list(os.environ):
        if name.startswith("MEOWTION_CAT_MATCHER__"):
            monkeypatch.delenv(name, raising=False)


def _write_pyproject(directory: Path, body: str) -> None:
    (directory / "pyproject.toml").write_text(body)


def test_defaults_without_project_file(tmp_path):
    settings = load_settings(tmp_path)

    assert settings == MatcherSettings()


def test_pyproject_and_env_layers(tmp_path, monkeypatch):
    _write_pyproject(
        tmp_path,
        """
[tool.meowtion.cat_matcher]
default_model = "gemini-2.5-pro"
default_match_threshold = 0.8
default_concurrent = false
""",
    )
    monkeypatch.setenv("MEOWTION_CAT_MATCHER__MAX_CONFLICTS", "2")
    monkeypatch.setenv("MEOWTION_CAT_MATCHER__DEFAULT_MODEL", "gemini-2.5-flash-lite")

    settings = load_settings(tmp_path)

    assert settings.default_model == "gemini-2.5-flash-lite"
    assert settings.default_max_conflicts == 2
    assert settings.default_concurrent is False
    assert settings.default_match_threshold == 0.8


def test_api_key_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")

    config = load_config(tmp_path)

    assert config.api_key == "secret"
    assert config.match_threshold == 0.75
    assert config.max_conflicts == 1
    assert config.concurrent is True
    assert config.cache_references is True


def test_missing_api_key_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_local_endpoint_needs_no_api_key():
    config = build_runtime_config(
        settings=MatcherSettings(), base_url="http://localhost:8100/v1"
    )

    assert config.api_key == ""


def test_api_key_can_be_skipped_for_offline_commands():
    config = build_runtime_config(settings=MatcherSettings(), require_api_key=False)

    assert config.base_url.startswith("https://")


def test_overrides_win(tmp_path):
    config = build_runtime_config(
        settings=MatcherSettings(default_api_key="k"),
        model="other-model",
        match_threshold=0.9,
        max_conflicts=0,
        concurrent=False,
        match_timeout=12.5,
        roster_path=tmp_path / "roster.toml",
    )

    assert config.model == "other-model"
    assert config.match_threshold == 0.9
    assert config.max_conflicts == 0
    assert config.concurrent is False
    assert config.match_timeout == 12.5
    assert config.roster_path == tmp_path / "roster.toml"


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_url": "ftp://example.com"},
        {"match_threshold": 1.2},
        {"match_threshold": -0.1},
        {"max_conflicts": -1},
        {"match_timeout": 0},
        {"timeout": -5},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        build_runtime_config(settings=MatcherSettings(default_api_key="k"), **overrides)


def test_load_roster_prefers_roster_file(tmp_path):
    roster_file = tmp_path / "roster.toml"
    roster_file.write_text('[[cats]]\nname = "Twix"\nimages = ["twix.jpg"]\n')

    with_file = build_runtime_config(
        settings=MatcherSettings(), roster_path=roster_file, require_api_key=False
    )
    builtin = build_runtime_config(
        settings=MatcherSettings(), assets_dir=tmp_path, require_api_key=False
    )

    assert with_file.load_roster().names == ("Twix",)
    assert len(builtin.load_roster()) == 5
