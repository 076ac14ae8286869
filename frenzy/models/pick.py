import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from frenzy import db
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)

    # Stored spelling of the picked team, taken from the games table
    team = db.Column(db.String(64), nullable=False)

    # Weekly side contests
    gotw_prediction = db.Column(db.Integer)  # Game of the Week total points
    potw_prediction = db.Column(db.Integer)  # Player of the Week total yards

    # Timestamps (updated_at is the submission instant)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "week", name="unique_user_week_pick"),
        db.Index("idx_pick_week", "week"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} week={self.week} team={self.team}>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "week": self.week,
            "team": self.team,
            "gotw_prediction": self.gotw_prediction,
            "potw_prediction": self.potw_prediction,
            "created_at": isoformat_utc(self.created_at),
            "updated_at": isoformat_utc(self.updated_at),
        }

    @staticmethod
    def get_for_week(user_id, week):
        return Pick.query.filter_by(user_id=user_id, week=week).first()

    @staticmethod
    def validate_submission(week, team, now=None):
        """
        Check a pick against the week's schedule.

        Returns (game, message); game is None when the pick is rejected.
        """
        from .game import Game

        if Game.is_week_locked(week, now or get_utc_time()):
            return None, f"Picks for week {week} are locked"

        game = Game.find_team_game(week, team)
        if game is None:
            return None, f"{team} is not playing in week {week}"
        if game.has_started(now):
            return None, f"{game.team_named(team)} has already kicked off"

        return game, "Valid pick"

    @staticmethod
    def submit(user_id, week, team, gotw_prediction=None, potw_prediction=None, now=None):
        """
        Create or replace a user's pick for a week.

        One row per (user, week); a later submission overwrites the earlier
        one. Returns (pick, message) with pick None when rejected.
        """
        game, message = Pick.validate_submission(week, team, now)
        if game is None:
            logger.info(f"Rejected pick user={user_id} week={week} team={team}: {message}")
            return None, message

        stored_team = game.team_named(team)

        for attempt in range(2):
            pick = Pick.get_for_week(user_id, week)
            created = pick is None
            if created:
                pick = Pick(user_id=user_id, week=week)
                db.session.add(pick)

            pick.team = stored_team
            pick.gotw_prediction = gotw_prediction
            pick.potw_prediction = potw_prediction
            pick.updated_at = now or get_utc_time()

            try:
                db.session.commit()
            except IntegrityError:
                # Concurrent first submission for the same week; retry as update
                db.session.rollback()
                if attempt:
                    raise
                continue

            logger.info(
                f"{'Saved' if created else 'Updated'} pick user={user_id} "
                f"week={week} team={stored_team}"
            )
            return pick, "Pick saved"

        return None, "Could not save pick"
