#!/usr/bin/env python3
"""
NFL Frenzy Management CLI

Command-line management for the NFL Frenzy backend: database setup,
accounts, provider sync runs and leaderboard checks.
"""

import csv
import json
import sys
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from frenzy import create_app, db
from frenzy.models import Game, Pick, User
from frenzy.services.kickoff_reconciler import reconcile_kickoffs
from frenzy.services.leaderboard_service import season_leaderboard, week_leaderboard
from frenzy.services.odds_sync import DEFAULT_MAX_WEEKS, sync_odds
from frenzy.services.providers import (
    ProviderError,
    SyncError,
    build_kickoff_sources,
    get_score_provider,
)
from frenzy.services.score_ingestor import ingest_scores
from frenzy.utils.account_status import derive_account_status
from frenzy.utils.timezone_utils import format_game_time, isoformat_utc

app = create_app()


@click.group()
def cli():
    """NFL Frenzy Management CLI"""
    pass


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("email")
@click.argument("password")
@click.option("--first-name", help="First name")
@click.option("--last-name", help="Last name")
@with_appcontext
def create_admin(email, password, first_name=None, last_name=None):
    """Create an approved admin user"""
    email = User.normalize_email(email)
    if User.get_by_email(email):
        click.echo(f"❌ User with email '{email}' already exists!")
        sys.exit(1)

    name = " ".join(p for p in (first_name, last_name) if p) or None
    admin = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        name=name,
        is_admin=True,
        is_active=True,
        pending_approval=False,
    )
    admin.set_password(password)

    try:
        db.session.add(admin)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error creating user: {str(e)}")
        sys.exit(1)

    click.echo(f"✅ Created admin user {email}")


@user.command()
@click.option(
    "--status",
    type=click.Choice(["all", "pending", "active", "inactive"]),
    default="all",
    help="Only users with this account status",
)
@with_appcontext
def list_users(status):
    """List all users"""
    users = User.search(status)

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        label = u.account_status.label
        icon = {"active": "🟢", "pending": "🟡"}.get(label, "🔴")
        admin = " 👑" if u.is_admin else ""
        click.echo(f"  {icon} {u.email} - {u.display_name} ({label}){admin}")


def _read_legacy_rows(path):
    if path.lower().endswith(".csv"):
        with open(path, newline="", encoding="utf-8") as handle:
            return list(csv.DictReader(handle))
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return payload.get("users", []) if isinstance(payload, dict) else payload


@user.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Report what would be imported")
@with_appcontext
def import_legacy(path, dry_run):
    """
    Import users exported from an older schema (JSON list or CSV).

    Rows may carry approved/deactivated or pending_approval/is_active;
    either shape is normalized. Rows without an email or a password hash,
    and emails that already exist, are skipped.
    """
    rows = _read_legacy_rows(path)
    created, skipped = 0, 0

    for row in rows:
        email = User.normalize_email(row.get("email"))
        password_hash = row.get("password_hash")
        if not email or not password_hash:
            click.echo(f"⚠️  Skipping row without email or password hash: {row.get('id')}")
            skipped += 1
            continue
        if User.get_by_email(email):
            click.echo(f"⏭️  {email} already exists")
            skipped += 1
            continue

        status = derive_account_status(row)
        is_admin = str(row.get("is_admin", "")).strip().lower() in ("true", "t", "1", "yes")
        db.session.add(
            User(
                email=email,
                password_hash=password_hash,
                first_name=row.get("first_name") or None,
                last_name=row.get("last_name") or None,
                name=row.get("name") or None,
                is_admin=is_admin,
                is_active=status.is_active,
                pending_approval=status.pending_approval,
            )
        )
        created += 1
        click.echo(f"   ➕ {email} ({status.label})")

    if dry_run:
        db.session.rollback()
        click.echo(f"🔍 Dry run: {created} would be imported, {skipped} skipped")
        return

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Import failed, nothing written: {str(e)}")
        sys.exit(1)

    click.echo(f"✅ Imported {created} users, {skipped} skipped")


# Provider Sync Commands
@cli.group()
def sync():
    """Provider sync commands"""
    pass


def _fail(message):
    click.echo(f"❌ {message}")
    sys.exit(1)


@sync.command()
@click.option("--apply", "apply_changes", is_flag=True, help="Write corrections (default: dry run)")
@click.option("--min-week", type=int, help="Ignore weeks below this one")
@click.option("--threshold-minutes", type=float, help="Minimum drift worth correcting")
@click.option("--season", type=int, help="Season year to fetch schedules for")
@with_appcontext
def kickoffs(apply_changes, min_week, threshold_minutes, season):
    """Reconcile stored kickoffs against the schedule providers"""
    config = dict(current_app.config)
    if season:
        config["SEASON_YEAR"] = season
        config["SPORTSDATA_SEASON"] = f"{season}REG"

    threshold = timedelta(minutes=threshold_minutes) if threshold_minutes is not None else None
    try:
        report = reconcile_kickoffs(
            sources=build_kickoff_sources(config),
            apply=apply_changes,
            min_week=min_week,
            threshold=threshold,
        )
    except ValueError as e:
        _fail(f"Invalid settings: {e}")
    except SyncError as e:
        _fail(str(e))

    for name, error in report.source_errors.items():
        click.echo(f"⚠️  Source {name} failed: {error}")
    for c in report.corrections:
        delta = f"{c.delta.total_seconds() / 60:+.1f} min" if c.delta is not None else "new"
        click.echo(
            f"   🕒 Week {c.week} {c.matchup}: {isoformat_utc(c.old)} -> "
            f"{isoformat_utc(c.new)} ({delta}, {c.source})"
        )
    click.echo(("✅ " if report.applied else "🔍 ") + report.summary())


@sync.command()
@click.option("--week", type=int, help="Sync a single week")
@click.option("--all", "all_weeks", is_flag=True, help="Sync the upcoming weeks")
@click.option("--max-weeks", type=int, default=DEFAULT_MAX_WEEKS, show_default=True)
@click.option("--apply", "apply_changes", is_flag=True, help="Write lines (default: dry run)")
@click.option("--allow-past", is_flag=True, help="Also update games already kicked off")
@with_appcontext
def odds(week, all_weeks, max_weeks, apply_changes, allow_past):
    """Copy spreads, totals and favorites from The Odds API"""
    try:
        report = sync_odds(
            week=week,
            all_weeks=all_weeks,
            max_weeks=max_weeks,
            apply=apply_changes,
            allow_past=allow_past,
        )
    except ProviderError as e:
        _fail(f"Odds provider error: {e}")
    except SyncError as e:
        _fail(str(e))

    for result in report.results:
        if result.status == "updated":
            click.echo(
                f"   📈 Week {result.week} {result.matchup}: {result.favorite} "
                f"-{result.spread} o/u {result.over_under} ({result.bookmaker})"
            )
        else:
            click.echo(f"   ⏭️  Week {result.week} {result.matchup}: {result.status}")
    click.echo(("✅ " if report.applied else "🔍 ") + report.summary())


@sync.command()
@click.option("--week", type=int, required=True, help="Week to fetch scores for")
@click.option(
    "--provider",
    type=click.Choice(["espn", "sportsdata"]),
    help="Score provider (default: SCORES_PROVIDER)",
)
@click.option("--dry-run", is_flag=True, help="Report without writing")
@with_appcontext
def scores(week, provider, dry_run):
    """Fetch a week's final scores"""
    try:
        report = ingest_scores(
            week,
            provider=get_score_provider(provider, config=current_app.config),
            apply=not dry_run,
        )
    except ProviderError as e:
        _fail(f"Score provider error: {e}")
    except SyncError as e:
        _fail(str(e))

    for update in report.updated:
        click.echo(f"   🏈 {update.matchup}: {update.home_score}-{update.away_score}")
    for matchup in report.unmatched:
        click.echo(f"   ⚠️  No stored game for {matchup}")
    click.echo(("✅ " if report.applied else "🔍 ") + report.summary())


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command()
@click.argument("number", type=int)
@with_appcontext
def week(number):
    """Print the scored table for one week"""
    data = week_leaderboard(number)
    click.echo(
        f"🏈 Week {number} ({data['state']}) x{data['factor']} - "
        f"GOTW total: {data['gotw_actual']}, POTW yards: {data['potw_actual']}"
    )
    click.echo("=" * 40)
    if not data["rows"]:
        click.echo("No picks yet.")
        return

    winners = set(data["winners"])
    for row in data["rows"]:
        trophy = " 🏆" if row["user_id"] in winners else ""
        click.echo(
            f"  {row['total_points']:>3}  {row['name']:<24} {row['team'] or '-':<24} "
            f"{row['outcome']}{trophy}"
        )


@leaderboard.command()
@with_appcontext
def overall():
    """Print the season standings"""
    data = season_leaderboard()
    click.echo(f"🏆 Season standings (weeks {data['weeks']})")
    click.echo("=" * 40)
    if not data["standings"]:
        click.echo("No picks yet.")
        return

    for s in data["standings"]:
        click.echo(
            f"  {s['rank']:>3}. {s['name']:<24} {s['total_points']:>4} pts  "
            f"wins {s['weekly_wins']}  GOTW 1st {s['gotw_firsts']}  POTW {s['potw_exact']}"
        )


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        _fail(f"Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        _fail(f"Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 NFL Frenzy Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        sys.exit(1)

    click.echo(f"👥 Active Users: {len(User.search('active'))}")
    click.echo(f"🟡 Pending Approval: {len(User.search('pending'))}")

    current = Game.schedule_week()
    games = Game.get_games_for_week(current)
    final = sum(1 for g in games if g.is_final)
    lock = Game.lock_time_for_week(current)
    click.echo(f"📅 Current Week: {current} (locks {format_game_time(lock)})")
    click.echo(f"🏈 Games: {final}/{len(games)} final")
    click.echo(f"📝 Picks this week: {Pick.query.filter_by(week=current).count()}")


if __name__ == "__main__":
    with app.app_context():
        cli()
