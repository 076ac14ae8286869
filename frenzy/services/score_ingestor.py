"""
Score ingestion

Pulls a week's results from the configured score provider and writes
final scores onto the stored games. Provider fixtures are matched by
canonical matchup in either orientation; scores are always mapped onto
the stored home/away sides. A missing stored kickoff is filled from the
provider's date.
"""

import logging
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from frenzy import db
from frenzy.models import Game
from frenzy.services.kickoff_reconciler import FixtureIndex
from frenzy.services.providers import SyncError, get_score_provider
from frenzy.utils.teams import canonicalize
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)


@dataclass
class ScoreUpdate:
    game_id: int
    matchup: str
    home_score: int
    away_score: int
    kickoff_filled: bool = False

    def to_dict(self):
        return {
            "game": self.game_id,
            "matchup": self.matchup,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "kickoff_filled": self.kickoff_filled,
        }


@dataclass
class ScoreReport:
    week: int
    source: str
    applied: bool = False
    updated: list = field(default_factory=list)
    unchanged: int = 0
    unmatched: list = field(default_factory=list)
    not_final: int = 0

    def summary(self):
        return (
            f"Scores week {self.week} ({self.source}): updated {len(self.updated)}, "
            f"unchanged {self.unchanged}, not final {self.not_final}, "
            f"unmatched {len(self.unmatched)}"
        )

    def to_dict(self):
        return {
            "week": self.week,
            "source": self.source,
            "applied": self.applied,
            "updated": [u.to_dict() for u in self.updated],
            "unchanged": self.unchanged,
            "unmatched": list(self.unmatched),
            "not_final": self.not_final,
            "summary": self.summary(),
        }


def oriented_scores(game, fixture):
    """Fixture scores as (home, away) in the stored orientation"""
    if canonicalize(fixture.home_team) == canonicalize(game.home_team):
        return fixture.home_score, fixture.away_score
    return fixture.away_score, fixture.home_score


def first_kickoff(fixture):
    for reading in fixture.readings:
        instant = reading.resolve()
        if instant is not None:
            return instant
    return None


class ScoreIngestor:
    def __init__(self, provider, apply=True):
        self.provider = provider
        self.apply = apply

    def run(self, week):
        source = getattr(self.provider, "source", self.provider.__class__.__name__)
        report = ScoreReport(week=week, source=source)

        fixtures = self.provider.fetch_week_scores(week)
        games = Game.get_games_for_week(week)
        index = FixtureIndex(fixtures)
        matches = {}
        for game in games:
            found = index.lookup(week, game.home_team, game.away_team)
            if found:
                matches[game.id] = found[0]

        matched = set(id(f) for f in matches.values())
        for fixture in fixtures:
            if id(fixture) not in matched:
                report.unmatched.append(f"{fixture.away_team} @ {fixture.home_team}")

        for game in games:
            fixture = matches.get(game.id)
            if fixture is None:
                continue
            matchup = f"{game.away_team} @ {game.home_team}"
            fill_kickoff = game.kickoff is None and first_kickoff(fixture) is not None

            home, away = oriented_scores(game, fixture)
            if not fixture.is_final or home is None or away is None:
                report.not_final += 1
                if fill_kickoff:
                    report.updated.append(
                        ScoreUpdate(game.id, matchup, game.home_score, game.away_score, True)
                    )
                continue

            if game.home_score == home and game.away_score == away and not fill_kickoff:
                report.unchanged += 1
                continue
            report.updated.append(ScoreUpdate(game.id, matchup, home, away, fill_kickoff))

        if self.apply:
            by_id = {g.id: g for g in games}
            try:
                for update in report.updated:
                    game = by_id[update.game_id]
                    if update.kickoff_filled:
                        game.kickoff = first_kickoff(matches[game.id])
                    game.home_score = update.home_score
                    game.away_score = update.away_score
                    logger.info(
                        f"Score week={week} {update.matchup}: "
                        f"{update.home_score}-{update.away_score}"
                    )
                if report.updated:
                    db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Score ingestion rolled back: {e}")
                raise SyncError(f"Failed to write scores for week {week}: {e}") from e
            report.applied = True

        logger.info(report.summary())
        return report


def ingest_scores(week, provider=None, apply=True):
    """Fetch and store a week's final scores with the configured provider"""
    provider = provider or get_score_provider(config=current_app.config)
    return ScoreIngestor(provider, apply=apply).run(week)


def week_score_status(week):
    """How many of the week's games are final, and when scores last changed"""
    games = Game.get_games_for_week(week)
    final = [g for g in games if g.is_final]
    latest = max((g.updated_at for g in final if g.updated_at), default=None)
    return {
        "week": week,
        "games": len(games),
        "final": len(final),
        "pending": len(games) - len(final),
        "last_update": isoformat_utc(latest),
        "checked_at": isoformat_utc(get_utc_time()),
    }
