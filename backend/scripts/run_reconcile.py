#!/usr/bin/env python3
"""
Run one escalation pass outside the server process.

Auto-finalizes confirmed nominations and auto-confirms registered adoptions
whose confirmation window has elapsed. Useful from cron when the API runs
with ENABLE_ESCALATION_SCHEDULER=false.

Usage:
    cd backend
    source venv/bin/activate
    python scripts/run_reconcile.py
    python scripts/run_reconcile.py --dry-run
"""

import sys
import os
import argparse
import logging

# Ensure backend is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Suppress SQL logging for clean output
os.environ['FLASK_DEBUG'] = '0'

from adopet.config import config
from adopet.db.postgres import session_scope
from adopet.repositories import AdoptionRepository
from adopet.services.adoption_service import get_adoption_service


def show_candidates(service):
    """Print what a reconcile pass would touch, without changing anything."""
    cutoff = service.lifecycle.cutoff(service.clock.now())
    with session_scope(service.session_factory) as db:
        repo = AdoptionRepository(db)
        stalled = repo.find_stalled_nominations(cutoff)
        unconfirmed = repo.find_unconfirmed_adoptions(cutoff)

    print(f"\nCutoff: {cutoff.isoformat()}")
    print(f"\nStalled nominations (would auto-finalize): {len(stalled)}")
    for pet_id in stalled:
        print(f"  - {pet_id}")
    print(f"\nUnconfirmed adoptions (would auto-confirm): {len(unconfirmed)}")
    for pet_id in unconfirmed:
        print(f"  - {pet_id}")


def main():
    parser = argparse.ArgumentParser(description="Run one adoption escalation pass")
    parser.add_argument("--dry-run", action="store_true",
                        help="List candidates without applying anything")
    parser.add_argument("--verbose", action="store_true",
                        help="Log each skipped pet")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    print("=" * 60)
    print("ADOPET - ADOPTION ESCALATION")
    print("=" * 60)
    print(f"\nDatabase Mode: {config.DATABASE_MODE}")
    print(f"Confirmation window: {config.ADOPTION_CONFIRMATION_WINDOW_HOURS}h")

    service = get_adoption_service()

    if args.dry_run:
        show_candidates(service)
        return 0

    processed = service.reconcile()
    print(f"\n✓ {processed} adoption(s) advanced")
    return 0


if __name__ == "__main__":
    sys.exit(main())
