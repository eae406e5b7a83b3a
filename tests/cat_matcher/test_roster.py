from pathlib import Path

import pytest

from matcher_helpers import make_cat
from meowtion.apps.cat_matcher.core.errors import ConfigurationError
from meowtion.apps.cat_matcher.core.roster import (
    BUILTIN_CATS,
    ReferenceRoster,
    builtin_roster,
    load_roster,
)

ROSTER_TOML = """
assets_dir = "images"

[[cats]]
name = "Microwave"
images = ["microwave.webp", "https://cats.example/microwave2.jpg"]
location = { lat = 32.73, lng = -97.11, description = "Courtyard" }

[[cats]]
name = "Oreo"
images = "oreo.jpg"
"""


def test_builtin_roster_matches_campus_cats(tmp_path):
    roster = builtin_roster(tmp_path)

    assert roster.names == ("Microwave", "Twix", "Oreo", "Eggs", "Snickers")
    assert len(roster) == len(BUILTIN_CATS)
    for cat in roster:
        assert len(cat.reference_images) == 3
        assert all(source.path.parent == tmp_path for source in cat.reference_images)
    by_name = {cat.name: cat for cat in roster}
    assert by_name["Oreo"].location is None
    assert by_name["Eggs"].location.lat == pytest.approx(32.7298388011233)


def test_roster_rejects_duplicate_names():
    with pytest.raises(ConfigurationError):
        ReferenceRoster([make_cat("Oreo"), make_cat("oreo ")])


def test_roster_rejects_empty():
    with pytest.raises(ConfigurationError):
        ReferenceRoster([])


def test_roster_is_an_ordered_sequence():
    roster = ReferenceRoster([make_cat("Twix"), make_cat("Oreo")])

    assert roster[0].name == "Twix"
    assert [cat.name for cat in roster] == ["Twix", "Oreo"]
    assert "Twix" in repr(roster)


def test_load_roster_from_toml(tmp_path):
    roster_file = tmp_path / "roster.toml"
    roster_file.write_text(ROSTER_TOML)

    roster = load_roster(roster_file)

    microwave, oreo = roster
    assert microwave.reference_images[0].path == tmp_path / "images" / "microwave.webp"
    assert microwave.reference_images[1].url == "https://cats.example/microwave2.jpg"
    assert microwave.location.description == "Courtyard"
    assert oreo.reference_images[0].path == tmp_path / "images" / "oreo.jpg"
    assert oreo.location is None


def test_example_roster_config_loads():
    example = Path(__file__).resolve().parents[2] / "configs" / "roster.example.toml"

    roster = load_roster(example)

    assert roster.names == ("Microwave", "Twix", "Oreo", "Eggs", "Snickers")


@pytest.mark.parametrize(
    "content",
    [
        "",
        "cats = 3",
        "[[cats]]\nimages = ['a.png']\n",
        "[[cats]]\nname = 'Twix'\nimages = []\n",
        "[[cats]]\nname = 'Twix'\nimages = ['a.png']\nlocation = { lat = 'north' }\n",
        "not = [valid toml",
    ],
)
def test_load_roster_rejects_bad_files(tmp_path, content):
    roster_file = tmp_path / "roster.toml"
    roster_file.write_text(content)

    with pytest.raises(ConfigurationError):
        load_roster(roster_file)


def test_load_roster_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_roster(tmp_path / "absent.toml")
