"""
External schedule, odds and score providers

Each client turns a provider's JSON into ``Fixture`` records with team
names translated to the names stored in ``games``. Kickoff timestamps are
kept raw, tagged with the named strategy they feed and the time-zone
convention they should be read with; the kickoff reconciler decides which
one to trust.
"""

import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Optional

import requests
from flask import current_app

from frenzy.utils.teams import NFL_TEAMS, full_name, match_key
from frenzy.utils.timezone_utils import TzConvention, parse_kickoff

logger = logging.getLogger(__name__)

STRATEGY_ODDS = "odds"
STRATEGY_SPORTSDATA_UTC = "sportsdata_utc"
STRATEGY_SPORTSDATA_LOCAL = "sportsdata_local"
STRATEGY_ESPN = "espn"

TEAM_BY_ABBREVIATION = {abbr: name for abbr, name, _ in NFL_TEAMS}


class ProviderError(Exception):
    """A provider could not be reached or returned unusable data"""

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}")
        self.source = source


class SyncError(Exception):
    """Provider data could not be written to the store; the batch was rolled back"""


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to retry rate-limited (429) and server-error (5xx) requests
    with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)
                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else 0
                    if status != 429 and status < 500:
                        raise
                    if attempt == max_retries - 1:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    if status == 429 and e.response is not None:
                        retry_after = e.response.headers.get("Retry-After", "")
                        if retry_after.isdigit():
                            delay = int(retry_after)
                    logger.warning(
                        f"HTTP {status}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)
                except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                    if attempt == max_retries - 1:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)

            raise requests.exceptions.RetryError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


@dataclass(frozen=True)
class KickoffReading:
    strategy: str
    raw: str
    convention: TzConvention = TzConvention.UTC
    offset_minutes: int = 0

    def resolve(self):
        """UTC instant, or None when the raw string cannot be parsed"""
        return parse_kickoff(self.raw, self.convention, self.offset_minutes)


@dataclass
class Fixture:
    source: str
    home_team: str
    away_team: str
    week: Optional[int] = None
    readings: list = field(default_factory=list)
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    is_final: bool = False
    favorite: Optional[str] = None
    spread: Optional[float] = None
    over_under: Optional[float] = None
    bookmaker: Optional[str] = None

    @property
    def match_key(self):
        return match_key(self.home_team, self.away_team)

    @property
    def reversed_key(self):
        return match_key(self.away_team, self.home_team)

    def readings_for(self, strategy):
        return [r for r in self.readings if r.strategy == strategy]


def _team_name(raw):
    """Stored team name for any provider spelling; unknown names pass through"""
    if raw is None:
        return None
    code = str(raw).strip().upper()
    if code in TEAM_BY_ABBREVIATION:
        return TEAM_BY_ABBREVIATION[code]
    return full_name(raw) or str(raw).strip()


def _int_or_none(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float_or_none(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ProviderClient:
    """Shared HTTP plumbing: one session, a timeout, spacing and retries"""

    source = "provider"

    def __init__(self, base_url=None, api_key=None, timeout=15, session=None):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "NFL-Frenzy/1.0"})
        self.min_request_interval = 0.5
        self.last_request_time = 0

    def _enforce_rate_limit(self):
        """Keep a minimum interval between requests to the same provider"""
        elapsed = time.time() - self.last_request_time
        if elapsed < self.min_request_interval:
            time.sleep(self.min_request_interval - elapsed)
        self.last_request_time = time.time()

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None, headers=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _get_json(self, url, params=None, headers=None):
        try:
            response = self._make_api_request(url, params=params, headers=headers)
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.warning(f"{self.source} request failed: {e}")
            raise ProviderError(self.source, str(e)) from e
        except ValueError as e:
            raise ProviderError(self.source, f"invalid JSON: {e}") from e

    def _require_key(self):
        if not self.api_key:
            raise ProviderError(self.source, "API key is not configured")


class OddsApiClient(ProviderClient):
    """The Odds API: commence times and spread/total lines"""

    source = "odds"

    def __init__(self, bookmakers=("caesars",), **kwargs):
        super().__init__(**kwargs)
        self.bookmakers = tuple(b.strip().lower() for b in bookmakers if b and b.strip())

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.get("ODDS_API_BASE_URL"),
            api_key=config.get("ODDS_API_KEY"),
            timeout=config.get("PROVIDER_TIMEOUT", 15),
            bookmakers=(config.get("ODDS_BOOKMAKERS") or "caesars").split(","),
        )

    def fetch_fixtures(self, weeks=None):
        self._require_key()
        payload = self._get_json(
            f"{self.base_url}/odds",
            params={
                "regions": "us,us2",
                "markets": "spreads,totals",
                "oddsFormat": "american",
                "dateFormat": "iso",
                "apiKey": self.api_key,
            },
        )
        return self.parse_events(payload)

    def pick_bookmaker(self, bookmakers):
        """Preferred bookmaker by configured order, else the first listed"""
        for wanted in self.bookmakers:
            for book in bookmakers:
                key = str(book.get("key", "")).lower()
                title = str(book.get("title") or book.get("name") or "").lower()
                if key == wanted or wanted in title:
                    return book
        return bookmakers[0] if bookmakers else None

    def parse_events(self, payload):
        fixtures = []
        for event in payload if isinstance(payload, list) else []:
            home = _team_name(event.get("home_team"))
            away = _team_name(event.get("away_team"))
            if not home or not away:
                continue

            fixture = Fixture(source=self.source, home_team=home, away_team=away)
            if event.get("commence_time"):
                fixture.readings.append(
                    KickoffReading(STRATEGY_ODDS, event["commence_time"], TzConvention.UTC)
                )

            book = self.pick_bookmaker(event.get("bookmakers") or [])
            if book:
                fixture.bookmaker = book.get("key")
                self._apply_lines(fixture, book)
            fixtures.append(fixture)
        return fixtures

    @staticmethod
    def _apply_lines(fixture, book):
        markets = {m.get("key"): m for m in book.get("markets") or []}

        spreads = markets.get("spreads")
        if spreads:
            outcomes = spreads.get("outcomes") or []
            points = [(o, _float_or_none(o.get("point"))) for o in outcomes]
            points = [(o, p) for o, p in points if p is not None]
            favorite = next(((o, p) for o, p in points if p < 0), None)
            if favorite:
                fixture.favorite = _team_name(favorite[0].get("name"))
                fixture.spread = abs(favorite[1])
            elif points and all(p == 0 for _, p in points):
                # Pick'em line
                fixture.spread = 0.0

        totals = markets.get("totals")
        if totals:
            over = next(
                (o for o in totals.get("outcomes") or [] if str(o.get("name")).lower() == "over"),
                None,
            )
            if over:
                fixture.over_under = _float_or_none(over.get("point"))


class SportsDataClient(ProviderClient):
    """SportsDataIO: season schedule and weekly scores"""

    source = "sportsdata"

    def __init__(self, season="2025REG", **kwargs):
        super().__init__(**kwargs)
        self.season = season

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.get("SPORTSDATA_BASE_URL"),
            api_key=config.get("SPORTSDATA_API_KEY"),
            timeout=config.get("PROVIDER_TIMEOUT", 15),
            season=config.get("SPORTSDATA_SEASON", "2025REG"),
        )

    def _headers(self):
        return {"Ocp-Apim-Subscription-Key": self.api_key}

    def fetch_fixtures(self, weeks=None):
        self._require_key()
        payload = self._get_json(
            f"{self.base_url}/Schedules/{self.season}", headers=self._headers()
        )
        fixtures = self.parse_games(payload)
        if weeks:
            wanted = set(weeks)
            fixtures = [f for f in fixtures if f.week in wanted]
        return fixtures

    def fetch_week_scores(self, week):
        self._require_key()
        payload = self._get_json(
            f"{self.base_url}/ScoresByWeek/{self.season}/{week}", headers=self._headers()
        )
        return self.parse_games(payload, default_week=week)

    def parse_games(self, payload, default_week=None):
        fixtures = []
        for game in payload if isinstance(payload, list) else []:
            home_code = game.get("HomeTeam")
            away_code = game.get("AwayTeam")
            if not home_code or not away_code or "BYE" in (home_code, away_code):
                continue

            fixture = Fixture(
                source=self.source,
                home_team=_team_name(home_code),
                away_team=_team_name(away_code),
                week=_int_or_none(game.get("Week")) or default_week,
            )
            if game.get("DateTimeUTC"):
                fixture.readings.append(
                    KickoffReading(STRATEGY_SPORTSDATA_UTC, game["DateTimeUTC"], TzConvention.UTC)
                )
            if game.get("DateTime"):
                fixture.readings.append(
                    KickoffReading(
                        STRATEGY_SPORTSDATA_LOCAL, game["DateTime"], TzConvention.EASTERN_LOCAL
                    )
                )

            status = str(game.get("Status") or "")
            fixture.is_final = bool(game.get("IsOver")) or status in ("Final", "F/OT")
            fixture.home_score = _int_or_none(game.get("HomeScore"))
            fixture.away_score = _int_or_none(game.get("AwayScore"))
            fixtures.append(fixture)
        return fixtures


class EspnClient(ProviderClient):
    """ESPN public scoreboard: kickoff dates and final scores, no key needed"""

    source = "espn"

    def __init__(self, year=2025, seasontype=2, **kwargs):
        super().__init__(**kwargs)
        self.year = year
        self.seasontype = seasontype

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.get("ESPN_API_BASE_URL"),
            timeout=config.get("PROVIDER_TIMEOUT", 15),
            year=config.get("SEASON_YEAR", 2025),
        )

    def fetch_scoreboard(self, week):
        payload = self._get_json(
            f"{self.base_url}/scoreboard",
            params={"year": self.year, "week": week, "seasontype": self.seasontype},
        )
        return self.parse_scoreboard(payload, week)

    def fetch_fixtures(self, weeks=None):
        fixtures = []
        for week in weeks or ():
            fixtures.extend(self.fetch_scoreboard(week))
        return fixtures

    def fetch_week_scores(self, week):
        return self.fetch_scoreboard(week)

    def parse_scoreboard(self, payload, week):
        fixtures = []
        for event in (payload or {}).get("events", []):
            competitions = event.get("competitions") or []
            if not competitions:
                continue
            competition = competitions[0]
            competitors = competition.get("competitors") or []
            if len(competitors) != 2:
                continue

            home = next((c for c in competitors if c.get("homeAway") == "home"), competitors[0])
            away = next((c for c in competitors if c is not home), competitors[1])

            def name_of(competitor):
                team = competitor.get("team") or {}
                return _team_name(
                    team.get("displayName") or team.get("abbreviation") or team.get("name")
                )

            fixture = Fixture(
                source=self.source,
                home_team=name_of(home),
                away_team=name_of(away),
                week=week,
            )
            date = event.get("date") or competition.get("date")
            if date:
                fixture.readings.append(KickoffReading(STRATEGY_ESPN, date, TzConvention.UTC))

            status = (competition.get("status") or event.get("status") or {}).get("type") or {}
            fixture.is_final = bool(status.get("completed")) or str(
                status.get("state", "")
            ).lower() == "post"
            fixture.home_score = _int_or_none(home.get("score"))
            fixture.away_score = _int_or_none(away.get("score"))
            fixtures.append(fixture)
        return fixtures


def get_score_provider(name=None, config=None):
    """Score provider selected by name (``espn`` or ``sportsdata``)"""
    config = config if config is not None else current_app.config
    name = (name or config.get("SCORES_PROVIDER") or "espn").lower()
    if name == "sportsdata":
        return SportsDataClient.from_config(config)
    if name == "espn":
        return EspnClient.from_config(config)
    raise ValueError(f"Unknown score provider: {name}")


def build_kickoff_sources(config=None):
    """Every kickoff source that is usable with the current configuration"""
    config = config if config is not None else current_app.config
    sources = []
    if config.get("ODDS_API_KEY"):
        sources.append(OddsApiClient.from_config(config))
    if config.get("SPORTSDATA_API_KEY"):
        sources.append(SportsDataClient.from_config(config))
    sources.append(EspnClient.from_config(config))
    return sources

