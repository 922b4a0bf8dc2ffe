#!/usr/bin/env python3
"""
Run Validation Check

Settles pending predictions by running consecutive settlement batches
until none remain or the batch cap is reached.

Usage:
    # Run the full sweep with configured defaults
    python scripts/run_validation_check.py

    # Smaller batches, tighter budget
    python scripts/run_validation_check.py --page-size=20 --time-budget-ms=20000

    # Only print current counts
    python scripts/run_validation_check.py --stats
"""
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from propsettle.core.config import settings
from propsettle.core.database import SessionLocal
from propsettle.services.settlement import ValidationCheckService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Settle pending predictions in time-boxed batches"
    )
    parser.add_argument(
        '--max-batches',
        type=int,
        default=settings.SETTLEMENT_MAX_BATCHES,
        help=f'Safety stop on batches per run (default: {settings.SETTLEMENT_MAX_BATCHES})'
    )
    parser.add_argument(
        '--page-size',
        type=int,
        default=settings.SETTLEMENT_BATCH_SIZE,
        help=f'Predictions per batch (default: {settings.SETTLEMENT_BATCH_SIZE})'
    )
    parser.add_argument(
        '--time-budget-ms',
        type=int,
        default=settings.SETTLEMENT_TIME_BUDGET_MS,
        help=f'Wall-clock budget per batch (default: {settings.SETTLEMENT_TIME_BUDGET_MS})'
    )
    parser.add_argument(
        '--stats',
        action='store_true',
        help='Print current settlement counts and exit'
    )
    return parser.parse_args()


def print_stats(stats: dict):
    logger.info("=" * 60)
    logger.info("Settlement Status")
    logger.info("=" * 60)
    logger.info(f"Pending: {stats['pending']}")
    logger.info(f"Completed: {stats['completed']} (accuracy {stats['accuracy']:.1%})")
    logger.info(f"  Correct: {stats['correct']} | Incorrect: {stats['incorrect']} | Push: {stats['push']}")
    logger.info(f"Needs review: {stats['needs_review']}")
    logger.info(f"Manually closed: {stats['manual_closed']}")
    logger.info("=" * 60)


def main():
    args = parse_args()

    db = SessionLocal()
    service = ValidationCheckService(db)
    try:
        if args.stats:
            print_stats(service.get_stats())
            return 0

        result = service.run_sweep(
            max_batches=args.max_batches,
            page_size=args.page_size,
            time_budget_ms=args.time_budget_ms,
        )
        last = result["last_batch"]

        logger.info("=" * 60)
        logger.info("Validation Check Complete")
        logger.info("=" * 60)
        logger.info(f"Batches run: {result['batches_run']}")
        logger.info(f"Updated: {result['updated']}")
        logger.info(f"Errors: {result['errors']}")
        logger.info(f"Not final: {result['not_final']}")
        logger.info(f"Skipped (time budget): {result['skipped']}")
        logger.info(f"Remaining: {last.get('remaining', 0)}")
        logger.info("=" * 60)

        if result['updated'] == 0 and result['not_final'] > 0:
            logger.info("Remaining validations are for games not yet finished")
        return 0 if result['errors'] == 0 else 1

    except Exception as e:
        logger.error(f"Error running validation check: {e}")
        raise
    finally:
        service.close()
        db.close()


if __name__ == "__main__":
    sys.exit(main())
