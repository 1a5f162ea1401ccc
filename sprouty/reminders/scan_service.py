"""
Due-reminder scan.

One tick finds every reminder whose time has come, e-mails the owner where
asked to, and moves recurring reminders on to their next occurrence. Ticks are
serialised through a lease document so two workers never scan at once.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pymongo import ReturnDocument

from sprouty.auth.service import AuthService
from sprouty.core.config import get_settings
from sprouty.core.database import Database
from sprouty.core.email_service import EmailService
from sprouty.plants.service import PlantService
from sprouty.reminders.models import DEFAULT_NOTIFICATION_METHODS, NotificationMethod
from sprouty.reminders.schedule import next_occurrence_after

logger = logging.getLogger(__name__)

# "Unlocked" marker; BSON dates can't go below the epoch comfortably
_UNLOCKED = datetime(1970, 1, 1)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReminderScanService:
    """Runs the periodic due-reminder scan."""

    LOCK_ID = "reminder_scan"

    @staticmethod
    def _get_reminders_collection():
        return Database.get_collection("reminders")

    @staticmethod
    def _get_locks_collection():
        return Database.get_collection("scheduler_locks")

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "found": 0,
            "processed": 0,
            "notified": 0,
            "skipped": 0,
            "delivery_failed": 0,
            "failed": 0,
        }

    @classmethod
    async def run_tick(cls, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run one scan.

        Never raises: problems with single reminders are counted in the
        stats, anything else is logged and returned under ``error``.
        """
        now = now or _now()
        stats = cls._empty_stats()
        owner = uuid4().hex

        try:
            acquired = await cls._acquire_lease(owner, now)
        except Exception as e:
            logger.exception(f"Could not acquire reminder scan lease: {e}")
            return {**stats, "error": str(e)}

        if not acquired:
            logger.info("Previous reminder scan still running, skipping this tick")
            return {**stats, "skipped_tick": True}

        try:
            reminders = await cls._find_due_reminders(now)
            stats["found"] = len(reminders)

            if reminders:
                semaphore = asyncio.Semaphore(max(1, get_settings().REMINDER_SCAN_CONCURRENCY))

                async def guarded(reminder: dict) -> List[str]:
                    async with semaphore:
                        return await cls._process_reminder(reminder, now)

                outcomes = await asyncio.gather(*(guarded(r) for r in reminders))
                for labels in outcomes:
                    for label in labels:
                        stats[label] += 1

            logger.info(
                f"Reminder scan done: found={stats['found']} processed={stats['processed']} "
                f"notified={stats['notified']} skipped={stats['skipped']} "
                f"delivery_failed={stats['delivery_failed']} failed={stats['failed']}"
            )
            return stats

        except Exception as e:
            logger.exception(f"Reminder scan tick failed: {e}")
            return {**stats, "error": str(e)}

        finally:
            await cls._release_lease(owner)

    # ==================== Lease ====================

    @classmethod
    async def _acquire_lease(cls, owner: str, now: datetime) -> bool:
        """Take the scan lease unless someone else holds an unexpired one."""
        locks = cls._get_locks_collection()
        ttl = timedelta(seconds=get_settings().REMINDER_SCAN_LOCK_TTL_SECONDS)

        # Make sure the lease document exists, then claim it atomically
        await locks.update_one(
            {"_id": cls.LOCK_ID},
            {"$setOnInsert": {"locked_until": _UNLOCKED, "owner": None}},
            upsert=True,
        )
        lease = await locks.find_one_and_update(
            {"_id": cls.LOCK_ID, "locked_until": {"$lte": now}},
            {"$set": {"owner": owner, "locked_until": now + ttl, "acquired_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return lease is not None and lease.get("owner") == owner

    @classmethod
    async def _release_lease(cls, owner: str):
        try:
            await cls._get_locks_collection().update_one(
                {"_id": cls.LOCK_ID, "owner": owner},
                {"$set": {"owner": None, "locked_until": _UNLOCKED}},
            )
        except Exception as e:
            # The lease expires on its own after the TTL
            logger.error(f"Failed to release reminder scan lease: {e}")

    # ==================== Scan ====================

    @classmethod
    async def _find_due_reminders(cls, now: datetime) -> List[dict]:
        query = {
            "active": True,
            "completed": False,
            "scheduled_date": {"$lte": now},
            # One-off reminders fire once; recurring ones fire every occurrence
            "$or": [
                {"recurring": True},
                {"last_fired_at": None},
            ],
        }
        cursor = cls._get_reminders_collection().find(query).sort("scheduled_date", 1)
        return await cursor.to_list(length=None)

    @classmethod
    async def _process_reminder(cls, reminder: dict, now: datetime) -> List[str]:
        """Handle one due reminder. Returns the stat labels it contributes to."""
        reminder_id = str(reminder.get("_id"))

        try:
            user = await AuthService.get_user_document(reminder.get("user_id"))
            if not user:
                logger.warning(f"Skipping reminder {reminder_id}: user {reminder.get('user_id')} not found")
                return ["skipped"]

            plant = await PlantService.find_plant_document(reminder.get("plant_id"))
            if not plant:
                logger.warning(f"Skipping reminder {reminder_id}: plant {reminder.get('plant_id')} not found")
                return ["skipped"]

            labels = []
            delivered = await cls._deliver(reminder, user, plant)
            if delivered is True:
                labels.append("notified")
            elif delivered is False:
                labels.append("delivery_failed")

            await cls._advance(reminder, now)
            labels.append("processed")
            return labels

        except Exception as e:
            logger.exception(f"Failed to process reminder {reminder_id}: {e}")
            return ["failed"]

    @classmethod
    async def _deliver(cls, reminder: dict, user: dict, plant: dict) -> Optional[bool]:
        """
        E-mail the owner if the reminder asks for it.

        Returns None when there was nothing to send, otherwise whether the
        e-mail went out.
        """
        methods = reminder.get("notification_methods") or DEFAULT_NOTIFICATION_METHODS
        email = user.get("email")
        if NotificationMethod.EMAIL.value not in methods or not email:
            return None

        timeout = get_settings().REMINDER_DELIVERY_TIMEOUT_SECONDS
        try:
            sent = await asyncio.wait_for(
                EmailService.send_reminder_email(email, reminder, plant),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Reminder e-mail for {reminder.get('_id')} timed out after {timeout}s")
            return False
        except Exception as e:
            logger.error(f"Reminder e-mail for {reminder.get('_id')} failed: {e}")
            return False

        return bool(sent)

    @classmethod
    async def _advance(cls, reminder: dict, now: datetime):
        """
        Move a recurring reminder past ``now``; mark a one-off as fired.

        A recurring occurrence the client already acknowledged is advanced
        without being marked fired, so it stays out of the due feed until
        its next occurrence comes round.
        """
        occurrence = reminder["scheduled_date"]

        if reminder.get("recurring"):
            next_date = next_occurrence_after(reminder.get("frequency"), occurrence, now)
            acknowledged = bool(reminder.get("notification_sent"))
            update = {
                "$set": {
                    "scheduled_date": next_date,
                    "completed": False,
                    "notification_sent": False,
                    "last_fired_at": None if acknowledged else now,
                    "fired_occurrence_at": None if acknowledged else occurrence,
                },
                "$unset": {"completed_date": ""},
            }
            logger.debug(f"Reminder {reminder['_id']} rescheduled to {next_date}")
        else:
            update = {"$set": {"last_fired_at": now, "fired_occurrence_at": occurrence}}

        await cls._get_reminders_collection().update_one({"_id": reminder["_id"]}, update)
