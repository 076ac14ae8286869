import logging
from datetime import timedelta

from flask import jsonify, request

from frenzy import db
from frenzy.forms.admin import (
    BroadcastForm,
    GameOfTheWeekForm,
    PlayerOfTheWeekForm,
    SyncForm,
)
from frenzy.models import Game, GameOfTheWeek, PlayerOfTheWeek, User
from frenzy.routes.admin import bp
from frenzy.services.kickoff_reconciler import reconcile_kickoffs
from frenzy.services.odds_sync import sync_odds
from frenzy.services.providers import ProviderError, SyncError
from frenzy.services.scheduler_service import scheduler_service
from frenzy.services.score_ingestor import ingest_scores, week_score_status
from frenzy.utils.auth import admin_or_service_key_required, admin_required
from frenzy.utils.email_service import EmailService
from frenzy.utils.timezone_utils import get_utc_time, isoformat_utc

logger = logging.getLogger(__name__)

BROADCAST_AUDIENCES = ("all", "active", "pending", "inactive", "admins")


def current_week():
    """Latest week with a Game of the Week, else the schedule's current week"""
    return GameOfTheWeek.latest_week() or Game.schedule_week()


# Week management


@bp.route("/current_week")
def get_current_week():
    week = current_week()
    lock = Game.lock_time_for_week(week)
    return jsonify(
        {
            "current_week": week,
            "is_locked": lock is not None and get_utc_time() >= lock,
            "lock_at": isoformat_utc(lock),
        }
    )


@bp.route("/week/<int:week>/details")
def week_details(week):
    if week < 1:
        return jsonify({"error": "Invalid week"}), 400

    gotw = GameOfTheWeek.for_week(week)
    potw = PlayerOfTheWeek.for_week(week)
    lock = Game.lock_time_for_week(week)
    return jsonify(
        {
            "week": week,
            "gotw": gotw.to_dict() if gotw else None,
            "potw": potw.to_dict() if potw else None,
            "first_sunday_kickoff": isoformat_utc(lock),
            "locked": lock is not None and get_utc_time() >= lock,
        }
    )


@bp.route("/week/<int:week>/gotw", methods=["PUT"])
@admin_required
def set_gotw(week):
    if week < 1:
        return jsonify({"error": "Invalid week"}), 400

    form = GameOfTheWeekForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    gotw, message = GameOfTheWeek.set_for_week(
        week,
        form.home_team.data.strip(),
        form.away_team.data.strip(),
        form.game_total_points.data,
    )
    if gotw is None:
        return jsonify({"error": message}), 400

    db.session.commit()
    logger.info(f"Game of the Week {week} set to {gotw.away_team} @ {gotw.home_team}")
    return jsonify({"ok": True, "gotw": gotw.to_dict()})


@bp.route("/week/<int:week>/potw", methods=["PUT"])
@admin_required
def set_potw(week):
    if week < 1:
        return jsonify({"error": "Invalid week"}), 400

    form = PlayerOfTheWeekForm.from_json()
    if not form.validate():
        return (
            jsonify({"error": "player_total_yards must be a non-negative number or null"}),
            400,
        )

    potw = PlayerOfTheWeek.set_for_week(
        week,
        form.player_total_yards.data,
        player_name=form.player_name.data,
        team=form.team.data,
    )
    db.session.commit()
    logger.info(f"Player of the Week {week} yards set to {potw.player_total_yards}")
    return jsonify({"ok": True, "potw": potw.to_dict()})


# Provider sync


@bp.route("/scores/fetch-now", methods=["POST"])
@admin_or_service_key_required
def fetch_scores_now():
    form = SyncForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    week = form.week.data or Game.schedule_week()
    try:
        report = ingest_scores(week)
    except ProviderError as e:
        return jsonify({"error": str(e)}), 502
    except SyncError as e:
        return jsonify({"error": str(e)}), 500
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"ok": True, **report.to_dict()})


@bp.route("/scores/status")
@admin_or_service_key_required
def scores_status():
    week = request.args.get("week", type=int) or Game.schedule_week()
    data = week_score_status(week)
    data["games"] = [g.to_dict() for g in Game.get_games_for_week(week)]
    data["scheduler"] = scheduler_service.get_status()
    return jsonify(data)


@bp.route("/kickoffs/reconcile", methods=["POST"])
@admin_or_service_key_required
def reconcile():
    """Kickoff reconciliation; a dry run unless apply is true"""
    form = SyncForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    threshold = None
    if form.threshold_minutes.data is not None:
        threshold = timedelta(minutes=form.threshold_minutes.data)

    try:
        report = reconcile_kickoffs(
            apply=bool(form.apply.data),
            min_week=form.min_week.data,
            threshold=threshold,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except SyncError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({"ok": True, **report.to_dict()})


@bp.route("/odds/sync", methods=["POST"])
@admin_or_service_key_required
def odds_sync():
    """Betting line sync; a dry run unless apply is true"""
    form = SyncForm.from_json()
    if not form.validate():
        return jsonify({"error": form.first_error()}), 400

    try:
        report = sync_odds(
            week=form.week.data,
            all_weeks=bool(form.all_weeks.data),
            apply=bool(form.apply.data),
            allow_past=bool(form.allow_past.data),
        )
    except ProviderError as e:
        return jsonify({"error": str(e)}), 502
    except SyncError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({"ok": True, **report.to_dict()})


@bp.route("/scheduler")
@admin_required
def scheduler_status():
    return jsonify(scheduler_service.get_status())


# Email


def broadcast_recipients(audience, q=None):
    """Users in the audience; None for an unknown audience"""
    if audience == "admins":
        return User.query.filter_by(is_admin=True).order_by(User.id.asc()).all()
    return User.search(audience, q)


@bp.route("/email/broadcast", methods=["POST"])
@admin_required
def email_broadcast():
    form = BroadcastForm.from_json()
    if not form.validate():
        return jsonify({"error": "subject and body are required"}), 400

    audience = (form.audience.data or "all").strip().lower()
    if audience not in BROADCAST_AUDIENCES:
        return jsonify({"error": "Invalid audience"}), 400

    recipients = broadcast_recipients(audience, form.q.data)
    if recipients is None:
        return jsonify({"error": "Invalid audience"}), 400

    sample = [u.email for u in recipients[:10]]
    if form.dry_run.data:
        return jsonify(
            {
                "ok": True,
                "dry_run": True,
                "audience": audience,
                "recipients_count": len(recipients),
                "sample": sample,
            }
        )

    sent, failed = EmailService().send_broadcast(recipients, form.subject.data, form.body.data)
    return jsonify(
        {
            "ok": True,
            "audience": audience,
            "recipients_count": len(recipients),
            "sent_count": sent,
            "failed": failed,
        }
    )
