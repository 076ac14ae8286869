"""
Kickoff reconciliation

Compares each stored kickoff with what the external schedule sources say
and proposes (or applies) corrections. Sources are fetched independently;
a failing source is reported and the others are still used. Within a
game, kickoff strategies are tried in the configured order and the first
one that yields an instant wins.

A correction is made only when the drift reaches the threshold, the
stored kickoff is still in the future (or missing) and the week is at or
above the configured floor. Applied corrections are written in a single
transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from frenzy import db
from frenzy.models import Game
from frenzy.services.providers import ProviderError, SyncError, build_kickoff_sources
from frenzy.utils.teams import match_key
from frenzy.utils.timezone_utils import ensure_utc, get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_ORDER = ("odds", "sportsdata_utc", "sportsdata_local", "espn")


class ReconcileError(SyncError):
    """Corrections could not be written; nothing was applied"""


@dataclass(frozen=True)
class ReconcilerSettings:
    threshold: timedelta = timedelta(minutes=1)
    min_week: int = 1
    apply: bool = False
    source_order: tuple = DEFAULT_SOURCE_ORDER

    def __post_init__(self):
        if self.threshold <= timedelta(0):
            raise ValueError("Kickoff drift threshold must be greater than zero")
        if not self.source_order:
            raise ValueError("At least one kickoff source strategy is required")

    @classmethod
    def from_config(cls, config, **overrides):
        """Build settings once from app config; keyword overrides win"""
        order = config.get("KICKOFF_SOURCE_ORDER") or ",".join(DEFAULT_SOURCE_ORDER)
        if isinstance(order, str):
            order = tuple(s.strip() for s in order.split(",") if s.strip())
        values = {
            "threshold": timedelta(minutes=float(config.get("KICKOFF_DRIFT_MINUTES", 1))),
            "min_week": int(config.get("KICKOFF_MIN_WEEK", 1)),
            "apply": bool(config.get("KICKOFF_APPLY", False)),
            "source_order": tuple(order),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class KickoffCorrection:
    game_id: int
    week: int
    matchup: str
    old: Optional[object]
    new: object
    delta: Optional[timedelta]
    source: str

    def to_dict(self):
        return {
            "game": self.game_id,
            "week": self.week,
            "matchup": self.matchup,
            "old": isoformat_utc(self.old),
            "new": isoformat_utc(self.new),
            "delta_minutes": (
                round(self.delta.total_seconds() / 60, 2) if self.delta is not None else None
            ),
            "source": self.source,
        }


@dataclass
class SkippedGame:
    game_id: int
    week: int
    matchup: str
    reason: str

    def to_dict(self):
        return {
            "game": self.game_id,
            "week": self.week,
            "matchup": self.matchup,
            "reason": self.reason,
        }


@dataclass
class ReconcileReport:
    applied: bool = False
    checked: int = 0
    unchanged: int = 0
    corrections: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    source_errors: dict = field(default_factory=dict)

    def summary(self):
        mode = "applied" if self.applied else "dry-run"
        return (
            f"Kickoff reconcile ({mode}): checked {self.checked}, "
            f"{len(self.corrections)} corrections, {self.unchanged} unchanged, "
            f"{len(self.skipped)} skipped, {len(self.source_errors)} source errors"
        )

    def to_dict(self):
        return {
            "applied": self.applied,
            "checked": self.checked,
            "unchanged": self.unchanged,
            "corrections": [c.to_dict() for c in self.corrections],
            "skipped": [s.to_dict() for s in self.skipped],
            "source_errors": dict(self.source_errors),
            "summary": self.summary(),
        }


class FixtureIndex:
    """
    Fixtures keyed by canonical matchup.

    Fixtures that carry a week are indexed under (week, key), the rest
    under (None, key). Every fixture is also reachable through its
    reversed key. Within a week both orientations are the same game;
    among fixtures without a week the stored orientation wins, since a
    reversed one is usually the rematch.
    """

    def __init__(self, fixtures=()):
        self._forward = {}
        self._reversed = {}
        for fixture in fixtures:
            self.add(fixture)

    def add(self, fixture):
        self._forward.setdefault((fixture.week, fixture.match_key), []).append(fixture)
        self._reversed.setdefault((fixture.week, fixture.reversed_key), []).append(fixture)

    def lookup(self, week, home_team, away_team):
        """Week-tagged fixtures first, then those without a week"""
        key = match_key(home_team, away_team)
        found = []
        if week is not None:
            found += self._forward.get((week, key), [])
            found += self._reversed.get((week, key), [])
        unscoped = self._forward.get((None, key)) or self._reversed.get((None, key)) or []
        return found + unscoped


def resolve_kickoff(fixtures, source_order, stored=None):
    """
    First instant produced by the ranked strategies.

    When one strategy yields several instants (duplicate fixtures) the one
    nearest the stored kickoff is used. Returns (instant, strategy) or
    (None, None).
    """
    for strategy in source_order:
        instants = []
        for fixture in fixtures:
            for reading in fixture.readings_for(strategy):
                instant = reading.resolve()
                if instant is not None:
                    instants.append(instant)
        if instants:
            if stored is not None:
                instants.sort(key=lambda i: abs(i - stored))
            return instants[0], strategy
    return None, None


class KickoffReconciler:
    def __init__(self, settings, sources, now=None):
        self.settings = settings
        self.sources = list(sources)
        self.now = now

    def _collect_fixtures(self, weeks, report):
        fixtures = []
        for source in self.sources:
            name = getattr(source, "source", source.__class__.__name__)
            try:
                fetched = source.fetch_fixtures(weeks)
            except ProviderError as e:
                logger.warning(f"Kickoff source {name} failed: {e}")
                report.source_errors[name] = str(e)
                continue
            logger.info(f"Kickoff source {name}: {len(fetched)} fixtures")
            fixtures.extend(fetched)
        return fixtures

    def plan(self, games, report):
        """Fill ``report`` with corrections and skips for ``games``; no writes"""
        now = self.now or get_utc_time()
        weeks = sorted(
            {
                g.week
                for g in games
                if g.week >= self.settings.min_week
                and (g.kickoff is None or ensure_utc(g.kickoff) > now)
            }
        )
        index = FixtureIndex(self._collect_fixtures(weeks, report))

        for game in games:
            report.checked += 1
            matchup = f"{game.away_team} @ {game.home_team}"
            stored = ensure_utc(game.kickoff)

            if game.week < self.settings.min_week:
                report.skipped.append(SkippedGame(game.id, game.week, matchup, "below week floor"))
                continue
            if stored is not None and stored <= now:
                report.skipped.append(SkippedGame(game.id, game.week, matchup, "already kicked off"))
                continue

            fixtures = index.lookup(game.week, game.home_team, game.away_team)
            if not fixtures:
                report.skipped.append(SkippedGame(game.id, game.week, matchup, "no matching fixture"))
                continue

            resolved, strategy = resolve_kickoff(fixtures, self.settings.source_order, stored)
            if resolved is None:
                report.skipped.append(
                    SkippedGame(game.id, game.week, matchup, "no resolvable kickoff")
                )
                continue

            delta = abs(resolved - stored) if stored is not None else None
            if delta is not None and delta < self.settings.threshold:
                report.unchanged += 1
                continue

            report.corrections.append(
                KickoffCorrection(
                    game_id=game.id,
                    week=game.week,
                    matchup=matchup,
                    old=stored,
                    new=resolved,
                    delta=delta,
                    source=strategy,
                )
            )
        return report

    def run(self, games=None):
        """
        Reconcile ``games`` (default: every game at or above the week floor).

        Corrections are logged before any write. In apply mode they are
        committed together; on failure the batch is rolled back and
        ReconcileError is raised.
        """
        if games is None:
            games = (
                Game.query.filter(Game.week >= self.settings.min_week)
                .order_by(Game.week.asc(), Game.id.asc())
                .all()
            )

        report = self.plan(games, ReconcileReport())
        for correction in report.corrections:
            logger.info(
                f"Kickoff correction game={correction.game_id} week={correction.week} "
                f"{correction.matchup}: {isoformat_utc(correction.old)} -> "
                f"{isoformat_utc(correction.new)} via {correction.source}"
            )

        if self.settings.apply:
            by_id = {g.id: g for g in games}
            try:
                for correction in report.corrections:
                    by_id[correction.game_id].kickoff = correction.new
                if report.corrections:
                    db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"Kickoff corrections rolled back: {e}")
                raise ReconcileError(f"Failed to write kickoff corrections: {e}") from e
            report.applied = True

        logger.info(report.summary())
        return report


def reconcile_kickoffs(sources=None, now=None, **overrides):
    """Run the reconciler with settings from the current app config"""
    settings = ReconcilerSettings.from_config(current_app.config, **overrides)
    if sources is None:
        sources = build_kickoff_sources(current_app.config)
    return KickoffReconciler(settings, sources, now=now).run()
