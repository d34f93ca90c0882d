#!/usr/bin/env python3
"""
Migration: Normalize Legacy Slot Sources
----------------------------------------
- Matches created before slot sources were recorded have NULL
  slot_a_source_type / slot_b_source_type
- A filled slot becomes an explicit "team" source, an empty one a "bye"

Usage: Run from project root directory
    python migrations/001_normalize_slot_sources.py
"""

import sys
import os

# Add parent directory to path so we can import tourney modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlmodel import Session, select
from tourney.database import engine, create_db_and_tables
from tourney.models import Tournament
from tourney.services.normalization import normalize_tournament_slots


def run_migration():
    """Execute migration steps."""

    print("\n" + "="*60)
    print("NORMALIZE SLOT SOURCES MIGRATION")
    print("="*60)

    create_db_and_tables()

    with Session(engine) as db:
        tournament_ids = db.exec(select(Tournament.id)).all()
        print(f"\nFound {len(tournament_ids)} tournament(s)")

        total = 0
        for tournament_id in tournament_ids:
            changed = normalize_tournament_slots(db, tournament_id)
            if changed:
                print(f"  ✓ Tournament {tournament_id}: normalized {changed} match(es)")
            else:
                print(f"  • Tournament {tournament_id}: already explicit")
            total += changed

    print("\n" + "="*60)
    print(f"MIGRATION COMPLETE ({total} match(es) rewritten)")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_migration()
