#!/usr/bin/env python3
"""
Repair reminders whose `scheduled_date` was stored as a string.

Reminders imported from older clients sometimes carry an ISO string instead of
a date. Mongo never matches those against date ranges, so they silently drop
out of the due scan. This script converts parseable strings to datetimes and
deactivates reminders whose date can't be read at all.

Usage:
  python scripts/repair_reminder_dates.py [--dry-run]
"""

import argparse
import asyncio
import os
import sys
from datetime import timezone

import certifi
from dateutil import parser as date_parser
from motor.motor_asyncio import AsyncIOMotorClient

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sprouty.core.config import get_settings


def get_client(uri: str) -> AsyncIOMotorClient:
    client_kwargs = {}
    if "mongodb+srv://" in uri or "ssl=true" in uri.lower():
        client_kwargs["tlsCAFile"] = certifi.where()
    return AsyncIOMotorClient(uri, **client_kwargs)


def parse_stored_date(value: str):
    """Parse a stored date string to naive UTC, or None."""
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


async def repair(dry_run: bool = False):
    settings = get_settings()
    client = get_client(settings.MONGO_URI)
    reminders = client[settings.MONGO_DB_NAME]["reminders"]

    cursor = reminders.find({"scheduled_date": {"$type": "string"}}, {"scheduled_date": 1})

    scanned = 0
    fixed = 0
    disabled = 0

    async for reminder in cursor:
        scanned += 1
        parsed = parse_stored_date(reminder["scheduled_date"])

        if parsed is None:
            print(f"Disabling {reminder['_id']}: unreadable date {reminder['scheduled_date']!r}")
            update = {"$set": {"active": False}}
            disabled += 1
        else:
            update = {"$set": {"scheduled_date": parsed}}
            fixed += 1

        if not dry_run:
            await reminders.update_one({"_id": reminder["_id"]}, update)

    prefix = "[dry run] " if dry_run else ""
    print(f"{prefix}Scanned: {scanned} | Fixed: {fixed} | Disabled: {disabled}")
    client.close()


if __name__ == "__main__":
    arg_parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    arg_parser.add_argument("--dry-run", action="store_true", help="report without writing")
    args = arg_parser.parse_args()
    asyncio.run(repair(dry_run=args.dry_run))
