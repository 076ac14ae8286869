import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from frenzy.forms.picks import SubmitPickForm
from frenzy.models import Game, Pick
from frenzy.routes.picks import bp
from frenzy.services.leaderboard_service import build_week_table
from frenzy.utils.scoring import OUTCOME_WIN
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)


def requested_user_mismatch():
    """A user_id query argument, when given, must be the caller's own id"""
    requested = request.args.get("user_id")
    if requested is None:
        return False
    return not requested.isdigit() or int(requested) != current_user.id


@bp.route("/submit", methods=["POST"])
@bp.route("/", methods=["POST"])
@login_required
def submit_pick():
    form = SubmitPickForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    week = form.week.data
    team = form.team.data.strip()
    if Game.is_week_locked(week):
        return jsonify({"error": f"Picks for week {week} are locked"}), 403

    # The week locks at the first Sunday kickoff; earlier games lock at their own
    game = Game.find_team_game(week, team)
    if game is not None and game.has_started():
        return jsonify({"error": f"{game.team_named(team)} has already kicked off"}), 403

    pick, message = Pick.submit(
        current_user.id,
        week,
        team,
        gotw_prediction=form.gotw_prediction.data,
        potw_prediction=form.potw_prediction.data,
    )
    if pick is None:
        return jsonify({"error": message}), 400

    return jsonify({"ok": True, "message": message, "pick": pick.to_dict()})


@bp.route("/season/private")
@login_required
def season_picks():
    if requested_user_mismatch():
        return jsonify({"error": "Forbidden: cannot access another user's data"}), 403

    picks = current_user.picks.order_by(Pick.week.asc()).all()
    return jsonify([p.to_dict() for p in picks])


@bp.route("/week/<int:week>/private")
@login_required
def week_pick(week):
    if requested_user_mismatch():
        return jsonify({"error": "Forbidden: cannot access another user's data"}), 403

    pick = Pick.get_for_week(current_user.id, week)
    return jsonify([pick.to_dict()] if pick else [])


@bp.route("/week/<int:week>/public")
def public_picks(week):
    """Everyone's picks with points, hidden until the week locks"""
    now = get_utc_time()
    lock = Game.lock_time_for_week(week)
    if lock is not None and now < lock:
        return jsonify(
            {"week": week, "locked": True, "unlock_at": isoformat_utc(lock), "picks": []}
        )

    table = build_week_table(week)
    games = Game.get_games_for_week(week)
    winners = set(table.winners)

    picks = []
    for row in table.rows:
        data = row.to_dict()
        data.pop("email", None)
        game = next((g for g in games if g.involves(row.team)), None)
        data["is_correct_pick"] = row.outcome == OUTCOME_WIN
        data["is_favorite"] = (
            game.team_named(game.favorite) == game.team_named(row.team)
            if game is not None and game.favorite
            else None
        )
        data["is_weekly_winner"] = row.user_id in winners
        picks.append(data)

    return jsonify(
        {
            "week": week,
            "locked": False,
            "factor": table.factor,
            "gotw_actual": table.gotw_actual,
            "potw_actual": table.potw_actual,
            "winners": table.winners,
            "picks": picks,
        }
    )
