"""
Team name canonicalization

Every provider spells teams differently ("LA Rams", "Los Angeles Rams",
"LAR", "Rams"). Games are matched across sources by a canonical slug:
the lowercased alphanumeric full franchise name, e.g. "kansascitychiefs".
"""

import re

# (abbreviation, full name, nickname)
NFL_TEAMS = (
    ("ARI", "Arizona Cardinals", "Cardinals"),
    ("ATL", "Atlanta Falcons", "Falcons"),
    ("BAL", "Baltimore Ravens", "Ravens"),
    ("BUF", "Buffalo Bills", "Bills"),
    ("CAR", "Carolina Panthers", "Panthers"),
    ("CHI", "Chicago Bears", "Bears"),
    ("CIN", "Cincinnati Bengals", "Bengals"),
    ("CLE", "Cleveland Browns", "Browns"),
    ("DAL", "Dallas Cowboys", "Cowboys"),
    ("DEN", "Denver Broncos", "Broncos"),
    ("DET", "Detroit Lions", "Lions"),
    ("GB", "Green Bay Packers", "Packers"),
    ("HOU", "Houston Texans", "Texans"),
    ("IND", "Indianapolis Colts", "Colts"),
    ("JAX", "Jacksonville Jaguars", "Jaguars"),
    ("KC", "Kansas City Chiefs", "Chiefs"),
    ("LV", "Las Vegas Raiders", "Raiders"),
    ("LAC", "Los Angeles Chargers", "Chargers"),
    ("LAR", "Los Angeles Rams", "Rams"),
    ("MIA", "Miami Dolphins", "Dolphins"),
    ("MIN", "Minnesota Vikings", "Vikings"),
    ("NE", "New England Patriots", "Patriots"),
    ("NO", "New Orleans Saints", "Saints"),
    ("NYG", "New York Giants", "Giants"),
    ("NYJ", "New York Jets", "Jets"),
    ("PHI", "Philadelphia Eagles", "Eagles"),
    ("PIT", "Pittsburgh Steelers", "Steelers"),
    ("SF", "San Francisco 49ers", "49ers"),
    ("SEA", "Seattle Seahawks", "Seahawks"),
    ("TB", "Tampa Bay Buccaneers", "Buccaneers"),
    ("TEN", "Tennessee Titans", "Titans"),
    ("WAS", "Washington Commanders", "Commanders"),
)

# Short city codes seen glued to nicknames ("NY Jets", "LA Chargers")
CITY_ABBREVIATIONS = {
    "la": "losangeles",
    "ny": "newyork",
    "kc": "kansascity",
    "ne": "newengland",
    "no": "neworleans",
    "sf": "sanfrancisco",
    "tb": "tampabay",
    "gb": "greenbay",
    "lv": "lasvegas",
    "jax": "jacksonville",
    "was": "washington",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def slugify(raw_name):
    """Lowercase and drop everything but letters and digits"""
    return _NON_ALNUM.sub("", str(raw_name or "").lower())


FULL_NAME_BY_SLUG = {slugify(full): full for _, full, _ in NFL_TEAMS}

NICKNAMES = {slugify(nick): slugify(full) for _, full, nick in NFL_TEAMS}
NICKNAMES.update(
    {
        "niners": "sanfrancisco49ers",
        "bucs": "tampabaybuccaneers",
        "footballteam": "washingtoncommanders",
        "redskins": "washingtoncommanders",
    }
)

ABBREVIATIONS = {abbr.lower(): slugify(full) for abbr, full, _ in NFL_TEAMS}
ABBREVIATIONS.update(
    {
        # Alternate provider codes
        "la": "losangelesrams",
        "wsh": "washingtoncommanders",
        "jac": "jacksonvillejaguars",
        "oak": "lasvegasraiders",
        "sd": "losangeleschargers",
        "stl": "losangelesrams",
    }
)

# Former names of current franchises
LEGACY_NAMES = {
    "washingtonfootballteam": "washingtoncommanders",
    "washingtonredskins": "washingtoncommanders",
    "oaklandraiders": "lasvegasraiders",
    "sandiegochargers": "losangeleschargers",
    "stlouisrams": "losangelesrams",
    "tampabaybucs": "tampabaybuccaneers",
    "sanfrancisconiners": "sanfrancisco49ers",
}


def canonicalize(raw_name):
    """
    Return the canonical slug for any spelling of an NFL team.

    Unknown names are returned as their cleaned slug so callers can still
    compare them; canonicalize(canonicalize(x)) == canonicalize(x).
    """
    slug = slugify(raw_name)
    if not slug or slug in FULL_NAME_BY_SLUG:
        return slug

    if slug in LEGACY_NAMES:
        return LEGACY_NAMES[slug]
    if slug in NICKNAMES:
        return NICKNAMES[slug]
    if slug in ABBREVIATIONS:
        return ABBREVIATIONS[slug]

    # "kcchiefs", "nygiants", "wasfootballteam": city code + nickname, but
    # only when the code really is that team's city
    for prefix, city in CITY_ABBREVIATIONS.items():
        if slug.startswith(prefix):
            team = NICKNAMES.get(slug[len(prefix):])
            if team and team.startswith(city):
                return team

    return slug


def full_name(raw_name):
    """Display name for a team ("Kansas City Chiefs"), or None if unknown"""
    return FULL_NAME_BY_SLUG.get(canonicalize(raw_name))


def match_key(home_team, away_team):
    """Orientation-sensitive key used to line up a matchup across sources"""
    return f"{canonicalize(home_team)}__{canonicalize(away_team)}"

