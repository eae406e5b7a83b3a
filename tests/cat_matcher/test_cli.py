import json

import pytest
from typer.testing import CliRunner

from matcher_helpers import StubOracle, candidate_payload, make_cat
from meowtion.apps.cat_matcher.cli import main as cli_main
from meowtion.apps.cat_matcher.core.service import CatMatcherService
from meowtion.libs.oracle import OracleResponseError

runner = CliRunner()


@pytest.fixture
def photo(tmp_path, png_bytes):
    path = tmp_path / "sighting.png"
    path.write_bytes(png_bytes())
    return path


@pytest.fixture
def stub_service(monkeypatch):
    """Patch the CLI so every service it builds talks to a stub oracle."""

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    state = {"oracle": StubOracle({}), "configs": []}

    def factory(config):
        state["configs"].append(config)
        return CatMatcherService(
            config,
            oracle=state["oracle"],
            roster=[make_cat("Oreo"), make_cat("Twix")],
        )

    monkeypatch.setattr(cli_main, "CatMatcherService", factory)
    return state


def test_match_prints_summary(photo, stub_service):
    stub_service["oracle"] = StubOracle(
        {
            "Oreo": candidate_payload(0.92, matched=["white mask"], summary="Same mask."),
            "Twix": candidate_payload(0.15, mismatched=["orange tabby"]),
        }
    )

    result = runner.invoke(cli_main.app, ["match", str(photo)])

    assert result.exit_code == 0, result.output
    assert "Match: Oreo (confidence=0.92)" in result.output
    assert "Same mask." in result.output
    assert "+ white mask" in result.output
    assert "- orange tabby" in result.output


def test_match_json_and_overrides(photo, stub_service):
    stub_service["oracle"] = StubOracle(
        {"Oreo": candidate_payload(0.8), "Twix": candidate_payload(0.1)}
    )

    result = runner.invoke(
        cli_main.app,
        ["match", str(photo), "--threshold", "0.9", "--sequential", "--json"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["isMatch"] is False
    assert payload["confidence"] == pytest.approx(0.8)
    config = stub_service["configs"][0]
    assert config.match_threshold == 0.9
    assert config.concurrent is False
    assert [call["name"] for call in stub_service["oracle"].calls] == ["Oreo", "Twix"]


def test_match_failure_exits_non_zero(photo, stub_service):
    stub_service["oracle"] = StubOracle(
        {"Oreo": OracleResponseError("bad reply"), "Twix": candidate_payload(0.1)}
    )

    result = runner.invoke(cli_main.app, ["match", str(photo)])

    assert result.exit_code == 1
    assert "Match failed" in result.output


def test_match_rejects_invalid_threshold(photo, stub_service):
    result = runner.invoke(cli_main.app, ["match", str(photo), "--threshold", "2"])

    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_identify_prints_breed(photo, stub_service):
    stub_service["oracle"] = StubOracle(
        {},
        default={
            "isCat": True,
            "breed": "Bombay",
            "confidence": 0.66,
            "description": "Sleek black coat.",
        },
    )

    result = runner.invoke(cli_main.app, ["identify", str(photo)])

    assert result.exit_code == 0, result.output
    assert "Bombay (confidence=0.66)" in result.output


def test_roster_lists_cats_without_api_key(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("MEOWTION_ORACLE_API_KEY", raising=False)
    roster_file = tmp_path / "roster.toml"
    roster_file.write_text(
        '[[cats]]\nname = "Eggs"\nimages = ["eggs1.png", "https://cats.example/eggs2.png"]\n'
        'location = { lat = 32.7, lng = -97.1, description = "Science building" }\n'
    )

    result = runner.invoke(cli_main.app, ["roster", "--roster", str(roster_file)])

    assert result.exit_code == 0, result.output
    assert "Eggs: 2 reference image(s)" in result.output
    assert "Science building" in result.output
    assert "https://cats.example/eggs2.png" in result.output


def test_roster_reports_missing_file(tmp_path):
    result = runner.invoke(cli_main.app, ["roster", "--roster", str(tmp_path / "none.toml")])

    assert result.exit_code == 2
