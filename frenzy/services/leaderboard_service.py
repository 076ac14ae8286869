"""
Leaderboard service

Loads a week's games, picks, Game of the Week and Player of the Week
answer from the database, hands them to the scoring engine and returns
the resulting tables. Nothing is cached; every call reflects the store.
"""

import logging

from flask import current_app

from frenzy import db
from frenzy.models import Game, GameOfTheWeek, Pick, PlayerOfTheWeek, User
from frenzy.utils.scoring import (
    DEFAULT_DOUBLE_WEEKS,
    PickEntry,
    compute_season_standings,
    compute_week_table,
    week_state,
)
from frenzy.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def double_weeks():
    weeks = current_app.config.get("DOUBLE_WEEKS")
    return tuple(weeks) if weeks is not None else DEFAULT_DOUBLE_WEEKS


def load_pick_entries(week):
    rows = (
        db.session.query(Pick, User)
        .join(User, Pick.user_id == User.id)
        .filter(Pick.week == week)
        .order_by(Pick.user_id.asc())
        .all()
    )
    return [
        PickEntry(
            user_id=user.id,
            display_name=user.display_name,
            team=pick.team,
            gotw_prediction=pick.gotw_prediction,
            potw_prediction=pick.potw_prediction,
            email=user.email,
        )
        for pick, user in rows
    ]


def build_week_table(week):
    """Scored WeekTable for one week"""
    games = [g.to_result() for g in Game.get_games_for_week(week)]
    gotw = GameOfTheWeek.for_week(week)
    table = compute_week_table(
        week,
        games,
        load_pick_entries(week),
        gotw=gotw.to_matchup() if gotw else None,
        potw_actual=PlayerOfTheWeek.official_yards(week),
        double_weeks=double_weeks(),
    )
    logger.debug(f"Week {week} table: {len(table.rows)} rows, winners {table.winners}")
    return table


def week_leaderboard(week, now=None):
    """Week table plus the state of the week (open, locked or scored)"""
    table = build_week_table(week)
    data = table.to_dict()
    data["state"] = week_state(
        [g.to_result() for g in Game.get_games_for_week(week)], now or get_utc_time()
    )
    return data


def pick_weeks():
    return [row[0] for row in db.session.query(Pick.week).distinct().order_by(Pick.week).all()]


def build_season_standings():
    """Season standings over every week that has at least one pick"""
    weeks = pick_weeks()
    tables = [build_week_table(week) for week in weeks]
    return weeks, compute_season_standings(tables)


def season_leaderboard():
    weeks, standings = build_season_standings()
    return {
        "weeks": weeks,
        "standings": [s.to_dict() for s in standings],
    }
