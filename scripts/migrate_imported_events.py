"""
Migration Script: Back-fill milestones on imported AOG events

Imported events only carry detectedAt / clearedAt. This sets:
- reportedAt = detectedAt
- installationCompleteAt = clearedAt (if resolved)
- upAndRunningAt = clearedAt (if resolved)

and recomputes technical / procurement / ops / total hours and isLegacy.

Run with: python scripts/migrate_imported_events.py [--dry-run]
"""

import argparse
import asyncio
import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from motor.motor_asyncio import AsyncIOMotorClient

from aog_analytics.config import get_settings
from aog_analytics.errors import ConfigurationError
from aog_analytics.migration import migrate_imported_events


async def main(dry_run: bool) -> int:
    """Run migration"""

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(f"[ERROR] {exc}")
        return 2

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("AOG EVENTS - IMPORTED MILESTONE MIGRATION" + (" (dry run)" if dry_run else ""))
    print("=" * 60)

    client = AsyncIOMotorClient(settings.mongo_url)
    collection = client[settings.db_name][settings.events_collection]
    print(f"\nConnected to: {settings.mongo_url}/{settings.db_name}.{settings.events_collection}")

    try:
        report = await migrate_imported_events(collection, dry_run=dry_run)
    finally:
        client.close()

    print(
        f"\nImported events: updated={report.updated}, skipped={report.skipped}, "
        f"errors={report.errors}, total={report.total}"
    )
    return 0 if report.errors == 0 else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Back-fill milestones on imported AOG events.")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing.")
    exit_code = asyncio.run(main(parser.parse_args().dry_run))
    sys.exit(exit_code)
