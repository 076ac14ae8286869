from flask import jsonify

from frenzy.routes.leaderboard import bp
from frenzy.services.leaderboard_service import season_leaderboard, week_leaderboard


def _public(rows):
    for row in rows:
        row.pop("email", None)
    return rows


@bp.route("/week/<int:week>")
def week(week):
    """Scored weekly table with GOTW podium, exact POTW hits and winners"""
    if week < 1:
        return jsonify({"error": "Invalid week"}), 400

    data = week_leaderboard(week)
    _public(data["rows"])
    return jsonify(data)


@bp.route("/overall")
def overall():
    data = season_leaderboard()
    _public(data["standings"])
    return jsonify(data)
