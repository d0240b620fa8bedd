#!/usr/bin/env python3
"""
Populate the rewards catalog in the database named by DATABASE_URL.

Safe to run repeatedly; rewards already present are skipped.
"""

import os
import sys

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.database import Database
from services.storage import Storage
from services.seed import seed_rewards


def main():
    database = Database()
    database.create_all()
    try:
        inserted = seed_rewards(Storage(database))
    finally:
        database.dispose()

    print(f"Rewards seeded: {inserted} inserted")


if __name__ == "__main__":
    main()
