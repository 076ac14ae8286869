import pytest

from frenzy.utils.teams import NFL_TEAMS, canonicalize, full_name, match_key


@pytest.mark.parametrize(
    "raw",
    ["Los Angeles Rams", "LA Rams", "LAR", "Rams", "los angeles rams ", "St. Louis Rams"],
)
def test_rams_spellings_share_a_slug(raw):
    assert canonicalize(raw) == "losangelesrams"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("NY Jets", "newyorkjets"),
        ("NYG", "newyorkgiants"),
        ("KC Chiefs", "kansascitychiefs"),
        ("Washington Football Team", "washingtoncommanders"),
        ("WSH", "washingtoncommanders"),
        ("Niners", "sanfrancisco49ers"),
        ("Oakland Raiders", "lasvegasraiders"),
        ("JAC", "jacksonvillejaguars"),
    ],
)
def test_aliases(raw, expected):
    assert canonicalize(raw) == expected


def test_canonicalize_is_stable():
    spellings = [full for _, full, _ in NFL_TEAMS]
    spellings += [abbr for abbr, _, _ in NFL_TEAMS]
    spellings += [nick for _, _, nick in NFL_TEAMS]
    spellings += ["LA Chargers", "Mystery Team", ""]
    for raw in spellings:
        once = canonicalize(raw)
        assert canonicalize(once) == once


def test_unknown_names_keep_their_slug():
    assert canonicalize("London Monarchs") == "londonmonarchs"
    assert full_name("London Monarchs") is None


def test_full_name():
    assert full_name("KC") == "Kansas City Chiefs"
    assert full_name("49ers") == "San Francisco 49ers"


def test_match_key_keeps_orientation():
    assert match_key("KC", "Buffalo Bills") == match_key("Kansas City Chiefs", "BUF")
    assert match_key("KC", "BUF") != match_key("BUF", "KC")
