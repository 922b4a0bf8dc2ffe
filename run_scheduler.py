#!/usr/bin/env python3
"""
Background runner for the PropSettle settlement scheduler.

This script runs the settlement scheduler as a standalone background service,
separately from the API process. It can be run via systemd, supervisor, or
directly.

Usage:
    python run_scheduler.py                              # Run in foreground
    python run_scheduler.py --trigger validation_sweep   # Run one job now and exit
    python run_scheduler.py --list-jobs                  # List jobs and exit
"""
import asyncio
import argparse
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from propsettle.core.config import settings
from propsettle.core.scheduler import (
    AutomationScheduler,
    run_validation_sweep_job,
    run_parlay_settlement_job,
    run_nightly_requeue_job,
)
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

JOBS = {
    'validation_sweep': run_validation_sweep_job,
    'parlay_settlement': run_parlay_settlement_job,
    'nightly_requeue': run_nightly_requeue_job,
}


class SchedulerRunner:
    """Runner for the settlement scheduler."""

    def __init__(self):
        self.scheduler: AutomationScheduler = None
        self.shutdown = False

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")

        self.scheduler = AutomationScheduler()
        await self.scheduler.start()

        logger.info("Scheduler is now running")
        logger.info("Press Ctrl+C to stop")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        while not self.shutdown:
            await asyncio.sleep(1)

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        """Set shutdown flag."""
        logger.info("Shutdown signal received")
        self.shutdown = True


def run_trigger_job(job_id: str) -> bool:
    """Run a single job body once, in this process."""
    job = JOBS.get(job_id)
    if job is None:
        print(f"Job '{job_id}' not found. Available: {', '.join(JOBS)}")
        return False

    print(f"Triggering job: {job_id}")
    result = job()
    if result is None:
        print(f"Job '{job_id}' failed (see log)")
        return False
    print(f"Job '{job_id}' finished: {result}")
    return True


def list_jobs():
    """Print the job schedule."""
    print("=" * 60)
    print("SCHEDULED SETTLEMENT JOBS")
    print("=" * 60)
    print(f"Timezone: {settings.SCHEDULER_TIMEZONE}")
    print()
    print("  validation_sweep   every 30 minutes")
    print("  parlay_settlement  hourly at :45")
    print("  nightly_requeue    daily at 04:00")
    print("=" * 60)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Run the PropSettle settlement scheduler'
    )
    parser.add_argument(
        '--trigger',
        type=str,
        metavar='JOB_ID',
        help='Run a specific job once by ID and exit'
    )
    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List all scheduled jobs and exit'
    )
    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    if args.trigger:
        return 0 if run_trigger_job(args.trigger) else 1

    runner = SchedulerRunner()
    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
