#!/usr/bin/env python3
"""
Settle pending parlays from their legs' completed predictions.

Run after the validation check so freshly settled legs are picked up.

Usage:
    python scripts/validate_parlays.py
    python scripts/validate_parlays.py --stats
"""
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from propsettle.core.database import SessionLocal
from propsettle.services.settlement import ParlaySettlementService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Settle pending parlays")
    parser.add_argument(
        '--stats',
        action='store_true',
        help='Print parlay counts and exit'
    )
    args = parser.parse_args()

    db = SessionLocal()
    try:
        service = ParlaySettlementService(db)
        if args.stats:
            stats = service.get_parlay_stats()
            logger.info(
                f"Parlays: {stats['total']} total, {stats['pending']} pending, "
                f"{stats['won']} won, {stats['lost']} lost"
            )
            return 0

        result = service.settle_pending_parlays()
        logger.info("=" * 60)
        logger.info(f"Settled: {result['validated']} (won {result['won']}, lost {result['lost']})")
        logger.info(f"Still pending: {result['pending']}")
        logger.info("=" * 60)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
