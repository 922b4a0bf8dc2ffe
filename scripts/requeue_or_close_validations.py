#!/usr/bin/env python3
"""
Requeue or close predictions stuck in needs_review.

Actions:
    requeue               send rows back to pending if their game is final (default)
    close_missing         close rows whose game record is missing
    close_final_no_stats  close rows whose game is final but stats never appeared

Usage:
    # Preview a requeue for NHL
    python scripts/requeue_or_close_validations.py --sport=nhl --dry-run

    # Close rows with missing games from October
    python scripts/requeue_or_close_validations.py --action=close_missing \\
        --after=2025-10-01 --before=2025-10-31
"""
import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from propsettle.core.database import SessionLocal
from propsettle.models import STATUS_NEEDS_REVIEW
from propsettle.services.settlement import ReconciliationService
from propsettle.services.settlement.reconciliation import ACTIONS, ACTION_REQUEUE, DEFAULT_LIMIT

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Requeue or close stuck prediction validations"
    )
    parser.add_argument(
        '--action',
        choices=ACTIONS,
        default=ACTION_REQUEUE,
        help=f'Reconciliation action (default: {ACTION_REQUEUE})'
    )
    parser.add_argument(
        '--statuses',
        type=lambda s: [part.strip() for part in s.split(',') if part.strip()],
        default=[STATUS_NEEDS_REVIEW],
        help=f'Comma-separated statuses to target (default: {STATUS_NEEDS_REVIEW})'
    )
    parser.add_argument(
        '--sport',
        type=str,
        help='Optional sport filter (nfl, nhl, mlb)'
    )
    parser.add_argument(
        '--after',
        type=datetime.fromisoformat,
        help='Only rows created at or after this ISO date'
    )
    parser.add_argument(
        '--before',
        type=datetime.fromisoformat,
        help='Only rows created at or before this ISO date'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=DEFAULT_LIMIT,
        help=f'Max rows to process (default: {DEFAULT_LIMIT})'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Report what would change without writing'
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger.info(
        f"Action={args.action} statuses={','.join(args.statuses)} sport={args.sport or 'any'} "
        f"after={args.after or '-'} before={args.before or '-'} limit={args.limit} dry_run={args.dry_run}"
    )

    db = SessionLocal()
    try:
        summary = ReconciliationService(db).reconcile(
            action=args.action,
            statuses=args.statuses,
            sport=args.sport,
            after=args.after,
            before=args.before,
            limit=args.limit,
            dry_run=args.dry_run,
        )
        logger.info(f"Summary: {summary}")
        if args.dry_run:
            logger.info("Dry run complete - no changes made")
        return 0
    except Exception as e:
        logger.error(f"Reconciliation failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
