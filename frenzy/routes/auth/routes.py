import logging

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from frenzy import db, limiter
from frenzy.forms.auth import LoginForm, PerformResetForm, ResetRequestForm, SignupForm
from frenzy.models import User
from frenzy.routes.auth import bp
from frenzy.utils.auth import generate_auth_token
from frenzy.utils.email_service import EmailService

logger = logging.getLogger(__name__)

RESET_GENERIC_MESSAGE = "If that email exists, a reset link has been created."


@bp.route("/signup", methods=["POST"])
@bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def signup():
    form = SignupForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    email = User.normalize_email(form.email.data)
    if User.get_by_email(email):
        return jsonify({"error": "An account with this email already exists"}), 409

    first_name = form.first_name.data.strip()
    last_name = (form.last_name.data or "").strip() or None
    display_name = " ".join(p for p in (first_name, last_name) if p) or form.name.data

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        name=display_name,
        is_admin=False,
        is_active=True,
        pending_approval=True,
    )
    user.set_password(form.password.data)

    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "An account with this email already exists"}), 409

    logger.info(f"New signup pending approval: {email}")
    return (
        jsonify(
            {
                "ok": True,
                "status": "pending",
                "pending": True,
                "message": "Account created. An admin must approve your access before you can sign in.",
            }
        ),
        201,
    )


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm.from_json()
    if not form.validate():
        return jsonify({"error": "Email and password are required"}), 400

    user = User.get_by_email(form.email.data)
    if user is None or not user.check_password(form.password.data):
        logger.warning(f"Failed login for {User.normalize_email(form.email.data)}")
        return jsonify({"error": "Invalid email or password"}), 401

    block = user.account_status.login_block(user.is_admin)
    if block == "INACTIVE":
        return (
            jsonify({"code": block, "error": "Your account is deactivated. Contact an admin."}),
            403,
        )
    if block == "PENDING_APPROVAL":
        return (
            jsonify({"code": block, "error": "Your account is awaiting admin approval."}),
            403,
        )

    user.update_last_login()
    logger.info(f"User logged in: {user.email}")
    return jsonify({"token": generate_auth_token(user), "user": user.to_dict()})


@bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@bp.route("/request-reset", methods=["POST"])
@limiter.limit("5 per minute")
def request_reset():
    """Always answers the same way so callers cannot probe for accounts"""
    form = ResetRequestForm.from_json()
    generic = {"ok": True, "message": RESET_GENERIC_MESSAGE}

    user = User.get_by_email(form.email.data) if form.email.data else None
    if user is None:
        return jsonify(generic)

    hours = current_app.config.get("RESET_TOKEN_HOURS", 2)
    token = user.generate_reset_token(hours=hours)
    db.session.commit()

    service = EmailService()
    service.send_password_reset_email(user, token)
    logger.info(f"Password reset requested for {user.email}")

    if service.console_mode and current_app.debug:
        generic["dev_reset_url"] = f"{service.app_origin}/reset-password?token={token}"
    return jsonify(generic)


@bp.route("/validate-reset")
def validate_reset():
    token = (request.args.get("token") or "").strip()
    if not token:
        return jsonify({"error": "Missing token"}), 400
    if User.verify_reset_token(token) is None:
        return jsonify({"error": "Reset link is invalid or expired"}), 400
    return jsonify({"ok": True})


@bp.route("/perform-reset", methods=["POST"])
@bp.route("/reset-password", methods=["POST"])
@limiter.limit("10 per minute")
def perform_reset():
    form = PerformResetForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    user = User.verify_reset_token(form.token.data.strip())
    if user is None:
        return jsonify({"error": "Reset link is invalid or expired"}), 400

    user.set_password(form.new_password.data)
    user.clear_reset_token()
    db.session.commit()

    logger.info(f"Password reset completed for {user.email}")
    return jsonify(
        {"ok": True, "message": "Password updated. You can now sign in with your new password."}
    )
