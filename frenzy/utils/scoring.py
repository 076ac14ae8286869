"""
Scoring Engine for NFL Frenzy

Pure functions over plain values: no database access, no side effects.
The leaderboard service loads rows and feeds them in here, so every
result is re-derived from whatever the store holds right now.

Per week a player earns:
- base points for a winning pick: 1 for the favorite, 2 for the underdog
  (a game without a recorded favorite pays the underdog rate);
- 3/2/1 for the top three ranks of the Game of the Week total-points
  contest, ties sharing a rank with standard competition ranking;
- 3 for an exact Player of the Week yardage guess;
- everything multiplied by 2 in double-points weeks.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from frenzy.utils.teams import canonicalize
from frenzy.utils.timezone_utils import week_lock_time

FAVORITE_POINTS = 1
UNDERDOG_POINTS = 2
UNLINED_POINTS = UNDERDOG_POINTS
GOTW_AWARDS = {1: 3, 2: 2, 3: 1}
POTW_EXACT_POINTS = 3
DOUBLE_WEEK_FACTOR = 2
DEFAULT_DOUBLE_WEEKS = (13, 17)

WEEK_OPEN = "open"
WEEK_LOCKED = "locked"
WEEK_SCORED = "scored"

OUTCOME_WIN = "win"
OUTCOME_LOSS = "loss"
OUTCOME_TIE = "tie"
OUTCOME_PENDING = "pending"
OUTCOME_NO_GAME = "no_game"
OUTCOME_NO_PICK = "no_pick"


@dataclass(frozen=True)
class GameResult:
    home_team: str
    away_team: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    favorite: Optional[str] = None
    kickoff: Optional[datetime] = None

    @property
    def is_final(self):
        return self.home_score is not None and self.away_score is not None

    @property
    def winner(self):
        """Winning team name; None until both scores exist or on a tie"""
        if not self.is_final or self.home_score == self.away_score:
            return None
        return self.home_team if self.home_score > self.away_score else self.away_team

    @property
    def total_points(self):
        if not self.is_final:
            return None
        return self.home_score + self.away_score

    def involves(self, team):
        slug = canonicalize(team)
        return slug in (canonicalize(self.home_team), canonicalize(self.away_team))

    def is_matchup(self, home_team, away_team):
        teams = {canonicalize(self.home_team), canonicalize(self.away_team)}
        return teams == {canonicalize(home_team), canonicalize(away_team)}


@dataclass(frozen=True)
class PickEntry:
    user_id: int
    display_name: str
    team: Optional[str] = None
    gotw_prediction: Optional[int] = None
    potw_prediction: Optional[int] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class GotwMatchup:
    home_team: str
    away_team: str
    total_override: Optional[int] = None


@dataclass
class WeekRow:
    user_id: int
    display_name: str
    email: Optional[str] = None
    team: Optional[str] = None
    gotw_prediction: Optional[int] = None
    potw_prediction: Optional[int] = None
    outcome: str = OUTCOME_NO_PICK
    base_points: int = 0
    gotw_rank: Optional[int] = None
    gotw_diff: Optional[int] = None
    gotw_points: int = 0
    potw_diff: Optional[int] = None
    potw_exact: bool = False
    potw_points: int = 0
    factor: int = 1
    correct_favorites: int = 0
    correct_underdogs: int = 0
    correct_unlined: int = 0

    @property
    def subtotal(self):
        return self.base_points + self.gotw_points + self.potw_points

    @property
    def total_points(self):
        return self.subtotal * self.factor

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "name": self.display_name,
            "email": self.email,
            "team": self.team,
            "outcome": self.outcome,
            "gotw_prediction": self.gotw_prediction,
            "potw_prediction": self.potw_prediction,
            "base_points": self.base_points,
            "gotw_rank": self.gotw_rank,
            "gotw_points": self.gotw_points,
            "potw_exact": self.potw_exact,
            "potw_points": self.potw_points,
            "factor": self.factor,
            "total_points": self.total_points,
            "correct_favorites": self.correct_favorites,
            "correct_underdogs": self.correct_underdogs,
            "correct_unlined": self.correct_unlined,
        }


@dataclass
class WeekTable:
    week: int
    factor: int
    gotw_actual: Optional[int]
    potw_actual: Optional[int]
    rows: list = field(default_factory=list)
    winners: list = field(default_factory=list)

    def row_for(self, user_id):
        for row in self.rows:
            if row.user_id == user_id:
                return row
        return None

    @property
    def podium(self):
        ranked = [r for r in self.rows if r.gotw_rank in GOTW_AWARDS]
        ranked.sort(key=lambda r: (r.gotw_rank, r.display_name.lower(), r.user_id))
        return [
            {
                "user_id": r.user_id,
                "name": r.display_name,
                "rank": r.gotw_rank,
                "prediction": r.gotw_prediction,
                "diff": r.gotw_diff,
                "points": r.gotw_points,
            }
            for r in ranked
        ]

    @property
    def potw_exact(self):
        return [
            {"user_id": r.user_id, "name": r.display_name}
            for r in self.rows
            if r.potw_exact
        ]

    def to_dict(self):
        return {
            "week": self.week,
            "factor": self.factor,
            "gotw_actual": self.gotw_actual,
            "potw_actual": self.potw_actual,
            "podium": self.podium,
            "potw_exact": self.potw_exact,
            "winners": list(self.winners),
            "rows": [r.to_dict() for r in self.rows],
        }


@dataclass
class SeasonStanding:
    user_id: int
    display_name: str
    email: Optional[str] = None
    total_points: int = 0
    weeks_played: int = 0
    weekly_wins: int = 0
    gotw_firsts: int = 0
    potw_exact: int = 0
    correct_favorites: int = 0
    correct_underdogs: int = 0
    correct_unlined: int = 0
    rank: int = 0

    def to_dict(self):
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "name": self.display_name,
            "email": self.email,
            "total_points": self.total_points,
            "weeks_played": self.weeks_played,
            "weekly_wins": self.weekly_wins,
            "gotw_firsts": self.gotw_firsts,
            "potw_exact": self.potw_exact,
            "correct_favorites": self.correct_favorites,
            "correct_underdogs": self.correct_underdogs,
            "correct_unlined": self.correct_unlined,
        }


def week_factor(week, double_weeks=DEFAULT_DOUBLE_WEEKS):
    return DOUBLE_WEEK_FACTOR if week in set(double_weeks or ()) else 1


def week_state(games, now):
    """Open until the lock instant, locked afterwards, scored once every game is final"""
    if games and all(g.is_final for g in games):
        return WEEK_SCORED
    lock = week_lock_time([g.kickoff for g in games])
    if lock is not None and now >= lock:
        return WEEK_LOCKED
    return WEEK_OPEN


def find_game_for_team(games, team):
    if not team:
        return None
    for game in games:
        if game.involves(team):
            return game
    return None


def score_pick(team, games):
    """
    Base points for a single weekly pick.

    Returns (points, outcome, kind) where kind is "favorite", "underdog",
    "unlined" or None when nothing was earned.
    """
    if not team:
        return 0, OUTCOME_NO_PICK, None

    game = find_game_for_team(games, team)
    if game is None:
        return 0, OUTCOME_NO_GAME, None
    if not game.is_final:
        return 0, OUTCOME_PENDING, None
    if game.winner is None:
        return 0, OUTCOME_TIE, None
    if canonicalize(game.winner) != canonicalize(team):
        return 0, OUTCOME_LOSS, None

    if not game.favorite:
        return UNLINED_POINTS, OUTCOME_WIN, "unlined"
    if canonicalize(game.favorite) == canonicalize(team):
        return FAVORITE_POINTS, OUTCOME_WIN, "favorite"
    return UNDERDOG_POINTS, OUTCOME_WIN, "underdog"


def gotw_actual_total(gotw, games):
    """Admin override if present, else the featured game's final combined score"""
    if gotw is None:
        return None
    if gotw.total_override is not None:
        return gotw.total_override
    for game in games:
        if game.is_matchup(gotw.home_team, gotw.away_team):
            return game.total_points
    return None


def rank_gotw(contenders, actual_total, potw_actual=None):
    """
    Standard competition ranking of Game of the Week guesses.

    ``contenders`` is an iterable of (user_id, gotw_prediction,
    potw_prediction). Sorted by distance to the actual total, then by
    distance to the official POTW yards (unknown distances sort last).
    Equal keys share a rank and the next key continues at its position,
    so 0, 5, 5, 15 ranks as 1, 2, 2, 4.

    Returns {user_id: (rank, gotw_diff, potw_diff)}.
    """
    if actual_total is None:
        return {}

    keyed = []
    for user_id, prediction, potw_prediction in contenders:
        if prediction is None:
            continue
        diff = abs(prediction - actual_total)
        if potw_actual is None or potw_prediction is None:
            potw_diff = math.inf
        else:
            potw_diff = abs(potw_prediction - potw_actual)
        keyed.append(((diff, potw_diff), user_id))

    keyed.sort(key=lambda item: (item[0], item[1]))

    ranks = {}
    previous_key = None
    rank = 0
    for position, (key, user_id) in enumerate(keyed, start=1):
        if key != previous_key:
            rank = position
            previous_key = key
        diff, potw_diff = key
        ranks[user_id] = (rank, diff, None if potw_diff == math.inf else potw_diff)
    return ranks


def _weekly_winners(rows):
    best = max((r.total_points for r in rows), default=0)
    if best <= 0:
        return []
    leaders = [r for r in rows if r.total_points == best]
    potw_best = min(
        (r.potw_diff if r.potw_diff is not None else math.inf) for r in leaders
    )
    return [
        r.user_id
        for r in leaders
        if (r.potw_diff if r.potw_diff is not None else math.inf) == potw_best
    ]


def compute_week_table(
    week,
    games,
    picks,
    gotw=None,
    potw_actual=None,
    double_weeks=DEFAULT_DOUBLE_WEEKS,
):
    """
    Build the scored table for one week.

    Missing scores, answers or predictions only withhold the points that
    depend on them; nothing here raises on incomplete data.
    """
    factor = week_factor(week, double_weeks)
    gotw_actual = gotw_actual_total(gotw, games)

    rows = []
    for entry in picks:
        points, outcome, kind = score_pick(entry.team, games)
        row = WeekRow(
            user_id=entry.user_id,
            display_name=entry.display_name,
            email=entry.email,
            team=entry.team,
            gotw_prediction=entry.gotw_prediction,
            potw_prediction=entry.potw_prediction,
            outcome=outcome,
            base_points=points,
            factor=factor,
        )
        if kind == "favorite":
            row.correct_favorites = 1
        elif kind == "underdog":
            row.correct_underdogs = 1
        elif kind == "unlined":
            row.correct_unlined = 1

        if potw_actual is not None and entry.potw_prediction is not None:
            row.potw_diff = abs(entry.potw_prediction - potw_actual)
            if entry.potw_prediction == potw_actual:
                row.potw_exact = True
                row.potw_points = POTW_EXACT_POINTS
        rows.append(row)

    ranks = rank_gotw(
        ((r.user_id, r.gotw_prediction, r.potw_prediction) for r in rows),
        gotw_actual,
        potw_actual,
    )
    for row in rows:
        if row.user_id in ranks:
            rank, diff, _ = ranks[row.user_id]
            row.gotw_rank = rank
            row.gotw_diff = diff
            row.gotw_points = GOTW_AWARDS.get(rank, 0)

    rows.sort(
        key=lambda r: (
            -r.total_points,
            r.gotw_rank if r.gotw_rank is not None else math.inf,
            r.display_name.lower(),
            r.user_id,
        )
    )

    return WeekTable(
        week=week,
        factor=factor,
        gotw_actual=gotw_actual,
        potw_actual=potw_actual,
        rows=rows,
        winners=_weekly_winners(rows),
    )


def compute_season_standings(tables):
    """
    Sum weekly tables into season standings.

    Order: total points, then GOTW first places, then exact POTW hits,
    then display name, then user id. Players level on the first three
    share a rank.
    """
    by_user = {}
    for table in sorted(tables, key=lambda t: t.week):
        for row in table.rows:
            standing = by_user.get(row.user_id)
            if standing is None:
                standing = SeasonStanding(user_id=row.user_id, display_name=row.display_name)
                by_user[row.user_id] = standing
            standing.display_name = row.display_name
            standing.email = row.email
            standing.total_points += row.total_points
            standing.weeks_played += 1
            standing.correct_favorites += row.correct_favorites
            standing.correct_underdogs += row.correct_underdogs
            standing.correct_unlined += row.correct_unlined
            if row.gotw_rank == 1:
                standing.gotw_firsts += 1
            if row.potw_exact:
                standing.potw_exact += 1
            if row.user_id in table.winners:
                standing.weekly_wins += 1

    standings = sorted(
        by_user.values(),
        key=lambda s: (
            -s.total_points,
            -s.gotw_firsts,
            -s.potw_exact,
            s.display_name.lower(),
            s.user_id,
        ),
    )

    previous_key = None
    for position, standing in enumerate(standings, start=1):
        key = (standing.total_points, standing.gotw_firsts, standing.potw_exact)
        if key != previous_key:
            standing.rank = position
            previous_key = key
        else:
            standing.rank = standings[position - 2].rank
    return standings
