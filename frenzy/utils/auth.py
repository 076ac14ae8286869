"""
Bearer token authentication

Tokens are signed with the app SECRET_KEY (itsdangerous, shipped with
Flask) and carry only the user id. Flask-Login resolves them through a
request_loader, so ``login_required`` and ``current_user`` work as usual.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from frenzy import db

logger = logging.getLogger(__name__)

TOKEN_SALT = "frenzy-auth"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def generate_auth_token(user):
    return _serializer().dumps({"user_id": user.id})


def verify_auth_token(token):
    """Return the user id carried by a valid, unexpired token, else None"""
    max_age = int(current_app.config.get("TOKEN_TTL_HOURS", 12)) * 3600
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.debug("Expired auth token")
        return None
    except BadSignature:
        return None
    return data.get("user_id") if isinstance(data, dict) else None


def bearer_token():
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip() or None
    return None


def load_user_from_request(req):
    """Flask-Login request_loader: resolve the bearer token to an active user"""
    from frenzy.models import User

    token = bearer_token()
    if not token:
        return None
    user_id = verify_auth_token(token)
    if user_id is None:
        return None

    user = db.session.get(User, user_id)
    if user is None or user.account_status.login_block(user.is_admin):
        return None
    return user


def admin_required(f):
    """Require a logged-in admin; 401 without a user, 403 for non-admins"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_admin:
            return jsonify({"error": "Forbidden: admin only"}), 403
        return f(*args, **kwargs)

    return decorated_function


def is_service_key_request():
    """Whether the request carries the configured SCORES_ADMIN_KEY as bearer token"""
    expected = current_app.config.get("SCORES_ADMIN_KEY")
    token = bearer_token()
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


def admin_or_service_key_required(f):
    """Admin user, or a cron caller presenting SCORES_ADMIN_KEY"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if is_service_key_request():
            return f(*args, **kwargs)
        return admin_required(f)(*args, **kwargs)

    return decorated_function
