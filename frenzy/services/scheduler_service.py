"""
NFL Frenzy Background Sync Scheduler

Runs the score ingestion, kickoff reconciliation and odds sync jobs with
APScheduler. The jobs hold no state of their own: each one opens an app
context and calls the same service the CLI and admin endpoints use.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from frenzy import db
from frenzy.models import Game
from frenzy.services.kickoff_reconciler import reconcile_kickoffs
from frenzy.services.odds_sync import sync_odds
from frenzy.services.providers import ProviderError, SyncError
from frenzy.services.score_ingestor import ingest_scores
from frenzy.utils.timezone_utils import EASTERN

logger = logging.getLogger(__name__)

# Thursday, Sunday, Monday
GAME_DAYS = (3, 6, 0)


class SchedulerService:
    """Manages background scheduling of the provider sync jobs"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.sync_stats = {
            "last_sync": None,
            "total_syncs": 0,
            "successful_syncs": 0,
            "failed_syncs": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", False):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Scheduler stopped")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        # Final scores for the current week (every 5 minutes on game days)
        self.scheduler.add_job(
            func=self._sync_scores,
            trigger=IntervalTrigger(minutes=5),
            id="sync_scores",
            name="Ingest Final Scores",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        # Kickoff reconciliation (top of every hour)
        self.scheduler.add_job(
            func=self._reconcile_kickoffs,
            trigger=CronTrigger(minute=0),
            id="reconcile_kickoffs",
            name="Reconcile Kickoff Times",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        # Betting lines for the upcoming weeks (daily, 10 AM UTC)
        self.scheduler.add_job(
            func=self._sync_odds,
            trigger=CronTrigger(hour=10, minute=0),
            id="sync_odds",
            name="Sync Odds Lines",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _run_job(self, name, job):
        with self.app.app_context():
            try:
                report = job()
                self._update_stats(True)
                logger.info(f"{name}: {report.summary()}")
            except (ProviderError, SyncError) as e:
                db.session.rollback()
                self._update_stats(False, str(e))
                logger.error(f"{name} failed: {e}")

    def _sync_scores(self):
        if not self._is_game_time():
            return
        self._run_job("Score ingestion", lambda: ingest_scores(Game.schedule_week()))

    def _reconcile_kickoffs(self):
        self._run_job("Kickoff reconcile", reconcile_kickoffs)

    def _sync_odds(self):
        if not self.app.config.get("ODDS_API_KEY"):
            return
        self._run_job("Odds sync", lambda: sync_odds(all_weeks=True))

    def _is_game_time(self, now=None):
        """Check if the current time is during typical NFL game hours"""
        eastern_time = (now or datetime.now(timezone.utc)).astimezone(EASTERN)
        if eastern_time.weekday() in GAME_DAYS and eastern_time.hour >= 12:
            return True
        # Late finishes run past midnight into Friday, Monday and Tuesday
        previous_day = (eastern_time.weekday() - 1) % 7
        return previous_day in GAME_DAYS and eastern_time.hour < 2

    def _update_stats(self, success, error=None):
        self.sync_stats["last_sync"] = datetime.now(timezone.utc)
        self.sync_stats["total_syncs"] += 1

        if success:
            self.sync_stats["successful_syncs"] += 1
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_syncs"] += 1
            self.sync_stats["last_error"] = error

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_sync"] is not None:
            stats["last_sync"] = stats["last_sync"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}


scheduler_service = SchedulerService()
