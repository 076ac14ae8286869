from datetime import datetime, timezone

from sqlalchemy import func

from frenzy import db
from frenzy.utils.scoring import GameResult
from frenzy.utils.teams import canonicalize
from frenzy.utils.timezone_utils import (
    ensure_utc,
    get_utc_time,
    isoformat_utc,
    week_lock_time,
)


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False)

    # Teams are stored by canonical full name ("Kansas City Chiefs")
    home_team = db.Column(db.String(64), nullable=False)
    away_team = db.Column(db.String(64), nullable=False)

    # Kickoff instant, always UTC
    kickoff = db.Column(db.DateTime(timezone=True), nullable=True)

    # Scores
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Betting line
    favorite = db.Column(db.String(64))
    spread = db.Column(db.Float)  # Always >= 0, applies to the favorite
    over_under = db.Column(db.Float)
    line_source = db.Column(db.String(50))
    line_updated_at = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("week", "home_team", "away_team", name="unique_week_matchup"),
        db.Index("idx_game_week", "week"),
        db.Index("idx_game_kickoff", "kickoff"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Game {self.away_team} @ {self.home_team} Week {self.week}>"

    @property
    def is_final(self):
        return self.home_score is not None and self.away_score is not None

    @property
    def winner(self):
        """Get the winning team name (None if not final or tie)"""
        return self.to_result().winner

    @property
    def total_score(self):
        """Get total combined score"""
        if not self.is_final:
            return None
        return self.home_score + self.away_score

    @property
    def kickoff_utc(self):
        return ensure_utc(self.kickoff)

    def has_started(self, now=None):
        """Check if the game has kicked off"""
        if self.kickoff is None:
            return False
        return (now or get_utc_time()) >= self.kickoff_utc

    def status(self, now=None):
        """scheduled, in_progress or final"""
        if self.is_final:
            return "final"
        if self.has_started(now):
            return "in_progress"
        return "scheduled"

    def involves(self, team):
        return canonicalize(team) in (
            canonicalize(self.home_team),
            canonicalize(self.away_team),
        )

    def team_named(self, team):
        """Stored spelling of ``team`` if it plays in this game"""
        slug = canonicalize(team)
        if slug == canonicalize(self.home_team):
            return self.home_team
        if slug == canonicalize(self.away_team):
            return self.away_team
        return None

    def to_result(self):
        return GameResult(
            home_team=self.home_team,
            away_team=self.away_team,
            home_score=self.home_score,
            away_score=self.away_score,
            favorite=self.favorite,
            kickoff=self.kickoff_utc,
        )

    def to_dict(self, now=None):
        return {
            "id": self.id,
            "week": self.week,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "kickoff": isoformat_utc(self.kickoff),
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status(now),
            "winner": self.winner,
            "favorite": self.favorite,
            "spread": self.spread,
            "over_under": self.over_under,
            "line_source": self.line_source,
            "line_updated_at": isoformat_utc(self.line_updated_at),
        }

    @staticmethod
    def get_games_for_week(week):
        """Get all games for a week in kickoff order"""
        return (
            Game.query.filter_by(week=week)
            .order_by(Game.kickoff.asc(), Game.id.asc())
            .all()
        )

    @staticmethod
    def find_matchup(week, home_team, away_team):
        """Find a week's game between two teams, whichever side each is listed on"""
        wanted = {canonicalize(home_team), canonicalize(away_team)}
        for game in Game.query.filter_by(week=week).all():
            if {canonicalize(game.home_team), canonicalize(game.away_team)} == wanted:
                return game
        return None

    @staticmethod
    def find_team_game(week, team):
        for game in Game.query.filter_by(week=week).all():
            if game.involves(team):
                return game
        return None

    @staticmethod
    def lock_time_for_week(week):
        """First Sunday kickoff of the week (earliest kickoff if none on Sunday)"""
        kickoffs = [
            row[0]
            for row in db.session.query(Game.kickoff)
            .filter(Game.week == week, Game.kickoff.isnot(None))
            .all()
        ]
        return week_lock_time(kickoffs)

    @staticmethod
    def is_week_locked(week, now=None):
        lock = Game.lock_time_for_week(week)
        if lock is None:
            return False
        return (now or get_utc_time()) >= lock

    @staticmethod
    def schedule_week(now=None):
        """
        Latest week with a kickoff already in the past, falling back to the
        first scheduled week, then to week 1 on an empty schedule.
        """
        now = now or get_utc_time()
        latest = (
            db.session.query(func.max(Game.week))
            .filter(Game.kickoff.isnot(None), Game.kickoff <= now)
            .scalar()
        )
        if latest is not None:
            return latest
        first = db.session.query(func.min(Game.week)).scalar()
        return first if first is not None else 1

    @staticmethod
    def weeks_from(week, limit=None):
        """Distinct scheduled weeks >= week, ascending"""
        query = (
            db.session.query(Game.week)
            .filter(Game.week >= week)
            .distinct()
            .order_by(Game.week.asc())
        )
        if limit:
            query = query.limit(limit)
        return [row[0] for row in query.all()]

