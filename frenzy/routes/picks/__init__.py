from flask import Blueprint

bp = Blueprint("picks", __name__)

from frenzy.routes.picks import routes  # noqa: F401, E402
