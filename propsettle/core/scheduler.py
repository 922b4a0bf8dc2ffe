"""
Automated settlement scheduler.

Scheduled background jobs:
- Validation sweep: settle pending predictions (every 30 minutes)
- Parlay settlement: roll settled legs up into parlays (hourly at :45)
- Nightly requeue: send needs_review rows with a final game back to pending (4AM CT)

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import asyncio
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from propsettle.core.config import settings
from propsettle.core.database import SessionLocal
from propsettle.core.logging import get_logger
from propsettle.services.settlement import (
    ParlaySettlementService,
    ReconciliationService,
    ValidationCheckService,
)
from propsettle.services.settlement.reconciliation import ACTION_REQUEUE

logger = get_logger(__name__)


# ============================================================================
# Job bodies (synchronous; run off the event loop)
# ============================================================================

def run_validation_sweep_job() -> Optional[Dict[str, Any]]:
    """Run consecutive settlement batches until done or the batch cap is hit."""
    db = SessionLocal()
    service = ValidationCheckService(db)
    try:
        result = service.run_sweep()
        logger.info(
            f"Validation sweep: {result['updated']} updated, {result['errors']} errors, "
            f"{result['not_final']} not final, {result['skipped']} skipped over {result['batches_run']} batches"
        )
        return result
    except Exception as e:
        logger.error(f"Validation sweep failed: {e}", exc_info=True)
        return None
    finally:
        service.close()
        db.close()


def run_parlay_settlement_job() -> Optional[Dict[str, int]]:
    """Settle pending parlays."""
    db = SessionLocal()
    try:
        result = ParlaySettlementService(db).settle_pending_parlays()
        logger.info(
            f"Parlay settlement: {result['validated']} settled "
            f"({result['won']} won, {result['lost']} lost), {result['pending']} still pending"
        )
        return result
    except Exception as e:
        logger.error(f"Parlay settlement failed: {e}", exc_info=True)
        return None
    finally:
        db.close()


def run_nightly_requeue_job() -> Optional[Dict[str, int]]:
    """Requeue needs_review predictions whose game has since gone final."""
    db = SessionLocal()
    try:
        result = ReconciliationService(db).reconcile(ACTION_REQUEUE)
        logger.info(f"Nightly requeue: {result['updated']}/{result['processed']} requeued")
        return result
    except Exception as e:
        logger.error(f"Nightly requeue failed: {e}", exc_info=True)
        return None
    finally:
        db.close()


class AutomationScheduler:
    """
    Main scheduler for automated settlement tasks.

    All scheduled jobs should be defined here with clear
    schedules and error handling.
    """

    def __init__(self, timezone: Optional[str] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting automation scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': 300  # 5 minutes grace for misfires
            }
        )

        self._schedule_validation_sweep()
        self._schedule_parlay_settlement()
        self._schedule_nightly_requeue()

        self.scheduler.start()
        self.running = True

        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))

        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=True)
        self.running = False
        logger.info("Scheduler stopped")

    def _schedule_validation_sweep(self):
        """
        Schedule: Settle pending predictions.

        Frequency: Every 30 minutes
        Purpose: Pick up games as they go final through the day
        """
        if self.scheduler is None:
            return

        @self.scheduler.scheduled_job(
            trigger=CronTrigger(minute='*/30', timezone=self.timezone),
            id='validation_sweep',
            name='Settle Pending Predictions',
        )
        async def validation_sweep():
            await asyncio.to_thread(run_validation_sweep_job)

        logger.info("Scheduled: Validation sweep (every 30 minutes)")

    def _schedule_parlay_settlement(self):
        """
        Schedule: Settle pending parlays.

        Frequency: Hourly at :45
        Purpose: Runs after the :30 sweep so freshly settled legs roll up
        """
        if self.scheduler is None:
            return

        @self.scheduler.scheduled_job(
            trigger=CronTrigger(minute=45, timezone=self.timezone),
            id='parlay_settlement',
            name='Settle Pending Parlays',
        )
        async def parlay_settlement():
            await asyncio.to_thread(run_parlay_settlement_job)

        logger.info("Scheduled: Parlay settlement (hourly at :45)")

    def _schedule_nightly_requeue(self):
        """
        Schedule: Requeue predictions stuck in review.

        Frequency: Daily at 4AM CT
        Purpose: Retry stat lookups once late box scores have landed
        """
        if self.scheduler is None:
            return

        @self.scheduler.scheduled_job(
            trigger=CronTrigger(hour=4, minute=0, timezone=self.timezone),
            id='nightly_requeue',
            name='Requeue Needs-Review Predictions',
            misfire_grace_time=3600
        )
        async def nightly_requeue():
            await asyncio.to_thread(run_nightly_requeue_job)

        logger.info("Scheduled: Nightly requeue (daily 4AM CT)")

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        jobs = self.scheduler.get_jobs()

        logger.info("=" * 60)
        logger.info("SCHEDULED SETTLEMENT JOBS")
        logger.info("=" * 60)

        for job in jobs:
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %I:%M %p %Z') if next_run else 'Pending'
            logger.info(f"  • {job.name}")
            logger.info(f"    ID: {job.id}")
            logger.info(f"    Next run: {next_run_str}")

        logger.info("=" * 60)
        logger.info(f"Total jobs scheduled: {len(jobs)}")
        logger.info("=" * 60)


# Global scheduler instance
_scheduler: Optional[AutomationScheduler] = None


async def start_scheduler():
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AutomationScheduler()
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[AutomationScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
