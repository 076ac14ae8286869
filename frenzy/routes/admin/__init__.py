from flask import Blueprint

bp = Blueprint("admin", __name__)

from frenzy.routes.admin import routes, users  # noqa: F401, E402
