"""
Odds line sync

Copies spread, total and favorite from The Odds API onto the stored games
of one or more weeks. Each game ends up as one of: updated, unmatched (no
odds event for the matchup), missing (event found but no usable line) or
skipped (kickoff already passed). All updates are written in one commit.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from frenzy import db
from frenzy.models import Game
from frenzy.services.kickoff_reconciler import FixtureIndex
from frenzy.services.providers import OddsApiClient, SyncError
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)

STATUS_UPDATED = "updated"
STATUS_UNMATCHED = "unmatched"
STATUS_MISSING = "missing"
STATUS_SKIPPED = "skipped"

DEFAULT_MAX_WEEKS = 3


@dataclass
class LineResult:
    game_id: int
    week: int
    matchup: str
    status: str
    favorite: Optional[str] = None
    spread: Optional[float] = None
    over_under: Optional[float] = None
    bookmaker: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self):
        return {
            "game": self.game_id,
            "week": self.week,
            "matchup": self.matchup,
            "status": self.status,
            "favorite": self.favorite,
            "spread": self.spread,
            "over_under": self.over_under,
            "bookmaker": self.bookmaker,
            "reason": self.reason,
        }


@dataclass
class OddsSyncReport:
    weeks: list = field(default_factory=list)
    applied: bool = False
    results: list = field(default_factory=list)

    def count(self, status):
        return sum(1 for r in self.results if r.status == status)

    def summary(self):
        mode = "applied" if self.applied else "dry-run"
        return (
            f"Odds sync ({mode}) weeks {self.weeks}: "
            f"updated {self.count(STATUS_UPDATED)}, missing {self.count(STATUS_MISSING)}, "
            f"unmatched {self.count(STATUS_UNMATCHED)}, skipped {self.count(STATUS_SKIPPED)}"
        )

    def to_dict(self):
        return {
            "weeks": list(self.weeks),
            "applied": self.applied,
            "updated": self.count(STATUS_UPDATED),
            "missing": self.count(STATUS_MISSING),
            "unmatched": self.count(STATUS_UNMATCHED),
            "skipped": self.count(STATUS_SKIPPED),
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary(),
        }


def target_weeks(week=None, all_weeks=False, max_weeks=DEFAULT_MAX_WEEKS, min_week=1, now=None):
    """
    Weeks to sync: the given week, the current week, or with ``all_weeks``
    up to ``max_weeks`` scheduled weeks starting at the current one.
    Weeks below ``min_week`` are dropped.
    """
    if week is not None:
        weeks = [int(week)]
    else:
        current = Game.schedule_week(now)
        weeks = Game.weeks_from(current, limit=max_weeks) if all_weeks else [current]
    return [w for w in weeks if w >= min_week]


class OddsSync:
    def __init__(self, client, apply=True, allow_past=False, now=None):
        self.client = client
        self.apply = apply
        self.allow_past = allow_past
        self.now = now

    def plan(self, games, fixtures):
        """Decide a LineResult for each game; no writes"""
        now = self.now or get_utc_time()
        index = FixtureIndex(fixtures)
        results = []

        for game in games:
            matchup = f"{game.away_team} @ {game.home_team}"
            if not self.allow_past:
                reason = None
                if game.kickoff is None:
                    reason = "kickoff unknown"
                elif game.has_started(now):
                    reason = "kickoff passed"
                if reason:
                    results.append(
                        LineResult(game.id, game.week, matchup, STATUS_SKIPPED, reason=reason)
                    )
                    continue

            found = index.lookup(game.week, game.home_team, game.away_team)
            if not found:
                results.append(LineResult(game.id, game.week, matchup, STATUS_UNMATCHED))
                continue

            fixture = found[0]
            if fixture.spread is None and fixture.over_under is None:
                results.append(
                    LineResult(
                        game.id, game.week, matchup, STATUS_MISSING, bookmaker=fixture.bookmaker
                    )
                )
                continue

            results.append(
                LineResult(
                    game.id,
                    game.week,
                    matchup,
                    STATUS_UPDATED,
                    favorite=game.team_named(fixture.favorite) if fixture.favorite else None,
                    spread=fixture.spread,
                    over_under=fixture.over_under,
                    bookmaker=fixture.bookmaker,
                )
            )
        return results

    def run(self, weeks):
        report = OddsSyncReport(weeks=list(weeks))
        if not report.weeks:
            logger.info("Odds sync: no target weeks")
            return report

        games = (
            Game.query.filter(Game.week.in_(report.weeks))
            .order_by(Game.week.asc(), Game.kickoff.asc(), Game.id.asc())
            .all()
        )
        fixtures = self.client.fetch_fixtures(report.weeks)
        logger.info(f"Odds sync: {len(fixtures)} odds events for {len(games)} games")
        report.results = self.plan(games, fixtures)

        for result in report.results:
            if result.status == STATUS_UPDATED:
                logger.info(
                    f"Line week={result.week} {result.matchup}: fav={result.favorite} "
                    f"spread={result.spread} total={result.over_under} ({result.bookmaker})"
                )
            else:
                logger.debug(f"Line week={result.week} {result.matchup}: {result.status}")

        if self.apply:
            by_id = {g.id: g for g in games}
            stamp = self.now or get_utc_time()
            try:
                for result in report.results:
                    if result.status != STATUS_UPDATED:
                        continue
                    game = by_id[result.game_id]
                    game.favorite = result.favorite
                    game.spread = result.spread
                    game.over_under = result.over_under
                    game.line_source = result.bookmaker or self.client.source
                    game.line_updated_at = stamp
                if report.count(STATUS_UPDATED):
                    db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Odds sync rolled back: {e}")
                raise SyncError(f"Failed to write odds lines: {e}") from e
            report.applied = True
            logger.info(f"Odds lines stamped {isoformat_utc(stamp)}")

        logger.info(report.summary())
        return report


def sync_odds(
    week=None,
    all_weeks=False,
    max_weeks=DEFAULT_MAX_WEEKS,
    apply=True,
    allow_past=False,
    client=None,
    now=None,
):
    """Run the odds sync with the current app config"""
    config = current_app.config
    weeks = target_weeks(
        week=week,
        all_weeks=all_weeks,
        max_weeks=max_weeks,
        min_week=int(config.get("ODDS_MIN_WEEK", 1)),
        now=now,
    )
    client = client or OddsApiClient.from_config(config)
    return OddsSync(client, apply=apply, allow_past=allow_past, now=now).run(weeks)
