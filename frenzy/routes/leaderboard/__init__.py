from flask import Blueprint

bp = Blueprint("leaderboard", __name__)

from frenzy.routes.leaderboard import routes  # noqa: F401, E402
