from datetime import datetime, timezone

from frenzy import db
from frenzy.utils.scoring import GotwMatchup


class GameOfTheWeek(db.Model):
    """Admin-featured matchup for the weekly total-points contest"""

    __tablename__ = "game_of_the_week"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False, unique=True, index=True)
    home_team = db.Column(db.String(64), nullable=False)
    away_team = db.Column(db.String(64), nullable=False)

    # Optional admin override of the final combined score
    game_total_points = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<GameOfTheWeek week={self.week} {self.away_team} @ {self.home_team}>"

    def to_matchup(self):
        return GotwMatchup(
            home_team=self.home_team,
            away_team=self.away_team,
            total_override=self.game_total_points,
        )

    def to_dict(self):
        return {
            "week": self.week,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "game_total_points": self.game_total_points,
        }

    @staticmethod
    def for_week(week):
        return GameOfTheWeek.query.filter_by(week=week).first()

    @staticmethod
    def latest_week():
        row = GameOfTheWeek.query.order_by(GameOfTheWeek.week.desc()).first()
        return row.week if row else None

    @staticmethod
    def set_for_week(week, home_team, away_team, game_total_points=None):
        """
        Feature a matchup for the week, replacing any previous choice.

        The matchup must exist in that week's games; the stored home/away
        orientation is used. Returns (gotw, message), gotw None if rejected.
        Caller commits.
        """
        from .game import Game

        game = Game.find_matchup(week, home_team, away_team)
        if game is None:
            return None, "No such matchup (home vs away) for this week"

        gotw = GameOfTheWeek.for_week(week)
        if gotw is None:
            gotw = GameOfTheWeek(week=week)
            db.session.add(gotw)

        gotw.home_team = game.home_team
        gotw.away_team = game.away_team
        gotw.game_total_points = game_total_points
        return gotw, "Game of the Week saved"


class PlayerOfTheWeek(db.Model):
    """Official yardage answer for the weekly player contest"""

    __tablename__ = "player_of_the_week"

    id = db.Column(db.Integer, primary_key=True)
    week = db.Column(db.Integer, nullable=False, unique=True, index=True)
    player_name = db.Column(db.String(120))
    team = db.Column(db.String(64))

    # Null until entered by an admin
    player_total_yards = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<PlayerOfTheWeek week={self.week} yards={self.player_total_yards}>"

    def to_dict(self):
        return {
            "week": self.week,
            "player_name": self.player_name,
            "team": self.team,
            "player_total_yards": self.player_total_yards,
        }

    @staticmethod
    def for_week(week):
        return PlayerOfTheWeek.query.filter_by(week=week).first()

    @staticmethod
    def official_yards(week):
        row = PlayerOfTheWeek.for_week(week)
        return row.player_total_yards if row else None

    @staticmethod
    def set_for_week(week, player_total_yards, player_name=None, team=None):
        """Upsert the week's answer; name and team are only replaced when given. Caller commits."""
        potw = PlayerOfTheWeek.for_week(week)
        if potw is None:
            potw = PlayerOfTheWeek(week=week)
            db.session.add(potw)

        potw.player_total_yards = player_total_yards
        if player_name is not None:
            potw.player_name = player_name
        if team is not None:
            potw.team = team
        return potw
