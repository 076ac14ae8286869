from flask import jsonify, request

from frenzy import db
from frenzy.models import Game, GameOfTheWeek, PlayerOfTheWeek
from frenzy.routes.games import bp
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc


@bp.route("/games/week/<int:week>")
def games_for_week(week):
    """Games of a week in kickoff order, as the pick form expects"""
    games = Game.get_games_for_week(week)
    if not games:
        return jsonify({"error": "No games found for this week"}), 404

    now = get_utc_time()
    return jsonify([g.to_dict(now) for g in games])


@bp.route("/games/<int:game_id>")
def game_detail(game_id):
    game = db.get_or_404(Game, game_id)
    return jsonify(game.to_dict())


@bp.route("/games/highlights/<int:week>")
def highlights(week):
    """Featured Game of the Week and Player of the Week for a week"""
    gotw = GameOfTheWeek.for_week(week)
    gotw_data = None
    if gotw:
        gotw_data = gotw.to_dict()
        game = Game.find_matchup(week, gotw.home_team, gotw.away_team)
        gotw_data["game_id"] = game.id if game else None
        gotw_data["kickoff"] = isoformat_utc(game.kickoff) if game else None

    potw = PlayerOfTheWeek.for_week(week)
    return jsonify(
        {
            "week": week,
            "gotw": gotw_data,
            "potw": potw.to_dict() if potw else None,
        }
    )


@bp.route("/public/games")
def public_games():
    """Games with betting lines; defaults to the current schedule week"""
    week = request.args.get("week", type=int)
    if not week or week < 1:
        week = Game.schedule_week()

    now = get_utc_time()
    games = Game.get_games_for_week(week)
    return jsonify({"week": week, "games": [g.to_dict(now) for g in games]})
