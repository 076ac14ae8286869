"""
Admin user management: list, approve or decline signups, activate or
deactivate accounts, change the admin role, edit profiles and delete.
The last active admin can never be deactivated, demoted or deleted.
"""

import logging

from flask import jsonify, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError

from frenzy import db
from frenzy.forms.admin import AdminRoleForm, UserEditForm
from frenzy.models import User
from frenzy.routes.admin import bp
from frenzy.utils.account_status import STATUS_PENDING
from frenzy.utils.auth import admin_required
from frenzy.utils.email_service import EmailService

logger = logging.getLogger(__name__)


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return None, (jsonify({"error": "User not found"}), 404)
    return user, None


def _user_response(user):
    return jsonify({"ok": True, "user": user.to_dict(include_private=True)})


@bp.route("/users")
@admin_required
def list_users():
    status = request.args.get("status", "all")
    users = User.search(status, request.args.get("q"))
    if users is None:
        return jsonify({"error": "Invalid status filter"}), 400
    return jsonify({"users": [u.to_dict(include_private=True) for u in users]})


@bp.route("/users/pending")
@admin_required
def pending_users():
    users = (
        User.query.filter(*User.status_criteria(STATUS_PENDING))
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    return jsonify({"users": [u.to_dict(include_private=True) for u in users]})


@bp.route("/users/<int:user_id>")
@admin_required
def get_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error
    return jsonify({"user": user.to_dict(include_private=True)})


@bp.route("/users/<int:user_id>/approve", methods=["PUT"])
@admin_required
def approve_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error

    user.approve()
    db.session.commit()
    logger.info(f"Admin {current_user.email} approved {user.email}")

    EmailService().send_account_approved_email(user)
    return _user_response(user)


@bp.route("/users/<int:user_id>/decline", methods=["PUT"])
@admin_required
def decline_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error

    user.decline()
    db.session.commit()
    logger.info(f"Admin {current_user.email} declined {user.email}")
    return _user_response(user)


@bp.route("/users/<int:user_id>/activate", methods=["PUT"])
@admin_required
def activate_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error

    user.activate()
    db.session.commit()
    logger.info(f"Admin {current_user.email} activated {user.email}")
    return _user_response(user)


@bp.route("/users/<int:user_id>/deactivate", methods=["PUT"])
@admin_required
def deactivate_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error

    if user.is_last_active_admin():
        if user.id == current_user.id:
            message = "Cannot deactivate yourself as the last active admin"
        else:
            message = "Cannot deactivate the last active admin"
        return jsonify({"error": message}), 400

    user.deactivate()
    db.session.commit()
    logger.info(f"Admin {current_user.email} deactivated {user.email}")
    return _user_response(user)


@bp.route("/users/<int:user_id>/admin-role", methods=["PUT"])
@admin_required
def set_admin_role(user_id):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload.get("is_admin"), bool):
        return jsonify({"error": "is_admin (boolean) is required"}), 400
    form = AdminRoleForm.from_json(payload)

    user, error = _get_user_or_404(user_id)
    if error:
        return error

    if user.is_admin and not form.is_admin.data and user.is_last_active_admin():
        return jsonify({"error": "Cannot demote the last active admin"}), 400

    user.is_admin = form.is_admin.data
    db.session.commit()
    logger.info(
        f"Admin {current_user.email} set is_admin={user.is_admin} for {user.email}"
    )
    return _user_response(user)


@bp.route("/users/<int:user_id>", methods=["PUT"])
@bp.route("/quick-edit/users/<int:user_id>", methods=["PUT"])
@admin_required
def edit_user(user_id):
    """Partial profile update: email, name, first_name, last_name"""
    form = UserEditForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    changes = form.data_for("email", "name", "first_name", "last_name")
    if not changes:
        return jsonify({"error": "No fields to update"}), 400

    user, error = _get_user_or_404(user_id)
    if error:
        return error

    if "email" in changes:
        changes["email"] = User.normalize_email(changes["email"])
        other = User.get_by_email(changes["email"])
        if other is not None and other.id != user.id:
            return jsonify({"error": "Email already in use by another account"}), 409

    for name, value in changes.items():
        setattr(user, name, value.strip())

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Email already in use by another account"}), 409

    logger.info(f"Admin {current_user.email} edited user {user.id}: {sorted(changes)}")
    return _user_response(user)


@bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    user, error = _get_user_or_404(user_id)
    if error:
        return error

    if user.is_last_active_admin():
        return jsonify({"error": "Cannot delete the last active admin"}), 400

    email = user.email
    db.session.delete(user)
    db.session.commit()
    logger.info(f"Admin {current_user.email} deleted user {email}")
    return jsonify({"ok": True})
