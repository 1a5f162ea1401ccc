"""Reminder service - lifecycle of plant care reminders."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from bson import ObjectId
from pymongo import ReturnDocument

from sprouty.core.config import get_settings
from sprouty.core.database import Database
from sprouty.core.exceptions import NotFoundException, BadRequestException, ForbiddenException
from sprouty.plants.service import PlantService
from sprouty.reminders.content import ReminderContent
from sprouty.reminders.models import (
    DEFAULT_NOTIFICATION_METHODS,
    ReminderCreate,
    ReminderResponse,
    ReminderUpdate,
)
from sprouty.reminders.schedule import Frequency, reschedule_update

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReminderService:
    """Handles reminder-related database operations."""

    @staticmethod
    def _get_collection():
        return Database.get_collection("reminders")

    @staticmethod
    def _validate_object_id(id_str: str) -> ObjectId:
        """Validate and convert string to ObjectId."""
        if not ObjectId.is_valid(id_str):
            raise BadRequestException("Invalid reminder ID")
        return ObjectId(id_str)

    # ==================== Create / Read ====================

    @classmethod
    async def create_reminder(cls, user_id: str, data: ReminderCreate) -> ReminderResponse:
        """Create a reminder on one of the user's plants."""
        plant = await PlantService.get_owned_plant_document(data.plant_id, user_id)
        now = _now()

        reminder_doc = {
            "user_id": user_id,
            "plant_id": data.plant_id,
            "type": data.type.value,
            "title": (data.title or "").strip() or ReminderContent.default_title(data.type.value),
            "description": data.description,
            "notes": data.notes,
            "scheduled_date": data.scheduled_date,
            "completed": False,
            "recurring": data.recurring,
            "frequency": data.frequency,
            "notification_sent": False,
            "last_fired_at": None,
            "fired_occurrence_at": None,
            "active": data.active,
            "notification_methods": [m.value for m in data.notification_methods],
            "created_at": now,
            "updated_at": now,
        }

        result = await cls._get_collection().insert_one(reminder_doc)
        reminder_doc["_id"] = result.inserted_id

        logger.info(f"Created {reminder_doc['type']} reminder {result.inserted_id} for plant {data.plant_id}")
        return cls._doc_to_response(reminder_doc, plant)

    @classmethod
    async def get_user_reminders(cls, user_id: str) -> List[ReminderResponse]:
        """All of a user's reminders, soonest first."""
        cursor = cls._get_collection().find({"user_id": user_id}).sort("scheduled_date", 1)
        reminders = await cursor.to_list(length=1000)
        return await cls._to_responses(reminders)

    @classmethod
    async def get_upcoming_reminders(
        cls,
        user_id: str,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ReminderResponse]:
        """Open reminders scheduled between now and the next ``days`` days."""
        now = now or _now()
        days = days if days is not None else get_settings().REMINDER_UPCOMING_DAYS

        query = {
            "user_id": user_id,
            "active": True,
            "completed": False,
            "scheduled_date": {"$gte": now, "$lte": now + timedelta(days=days)},
        }
        cursor = cls._get_collection().find(query).sort("scheduled_date", 1)
        reminders = await cursor.to_list(length=500)
        return await cls._to_responses(reminders)

    @classmethod
    async def get_due_reminders(cls, user_id: str, now: Optional[datetime] = None) -> List[ReminderResponse]:
        """
        Reminders the client should surface right now.

        A reminder is due when it is active, open and not yet acknowledged,
        and either its date has passed or the scan has fired it. The second
        case covers recurring reminders the scan already moved forward.
        """
        now = now or _now()
        query = {
            "user_id": user_id,
            "active": True,
            "completed": False,
            "notification_sent": {"$ne": True},
            "$or": [
                {"scheduled_date": {"$lte": now}},
                {"last_fired_at": {"$ne": None}},
            ],
        }
        cursor = cls._get_collection().find(query).sort("scheduled_date", 1)
        reminders = await cursor.to_list(length=500)
        return await cls._to_responses(reminders)

    @classmethod
    async def get_reminder(cls, reminder_id: str, user_id: str) -> ReminderResponse:
        """Get one reminder."""
        reminder = await cls._get_owned_document(reminder_id, user_id)
        return (await cls._to_responses([reminder]))[0]

    # ==================== Lifecycle ====================

    @classmethod
    async def update_reminder(cls, reminder_id: str, user_id: str, updates: ReminderUpdate) -> ReminderResponse:
        """Apply a partial edit. Moving the date re-arms notifications."""
        reminder = await cls._get_owned_document(reminder_id, user_id)
        cls._ensure_open(reminder)

        changes = updates.model_dump(exclude_unset=True)
        # Nullable text fields can be cleared; everything else ignores explicit nulls
        changes = {
            k: v for k, v in changes.items()
            if v is not None or k in ("description", "notes")
        }
        if "type" in changes:
            changes["type"] = changes["type"].value
        if "notification_methods" in changes:
            changes["notification_methods"] = [m.value for m in changes["notification_methods"]]
        if "title" in changes:
            changes["title"] = changes["title"].strip() or reminder.get("title")

        if not changes:
            return (await cls._to_responses([reminder]))[0]

        if "scheduled_date" in changes and changes["scheduled_date"] != reminder.get("scheduled_date"):
            changes["notification_sent"] = False
            changes["last_fired_at"] = None
            changes["fired_occurrence_at"] = None

        changes["updated_at"] = _now()
        updated = await cls._get_collection().find_one_and_update(
            {"_id": reminder["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFoundException("Reminder not found")

        return (await cls._to_responses([updated]))[0]

    @classmethod
    async def complete_reminder(cls, reminder_id: str, user_id: str) -> ReminderResponse:
        """
        Mark the current occurrence done.

        Recurring reminders are rescheduled from the completion time and come
        back open. One-off reminders stay completed for good.
        """
        reminder = await cls._get_owned_document(reminder_id, user_id)
        cls._ensure_open(reminder)
        now = _now()

        if reminder.get("recurring"):
            update = reschedule_update({**reminder, "completed_date": now}, now)
            update["$set"]["last_completed_at"] = now
        else:
            update = {"$set": {
                "completed": True,
                "completed_date": now,
                "last_completed_at": now,
            }}

        updated = await cls._get_collection().find_one_and_update(
            {"_id": reminder["_id"]},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFoundException("Reminder not found")

        if reminder.get("recurring"):
            logger.info(f"Completed reminder {reminder_id}; next occurrence {updated['scheduled_date']}")
        else:
            logger.info(f"Completed one-off reminder {reminder_id}")

        return (await cls._to_responses([updated]))[0]

    @classmethod
    async def snooze_reminder(cls, reminder_id: str, user_id: str, minutes: int) -> ReminderResponse:
        """Push the current occurrence ``minutes`` into the future."""
        max_minutes = get_settings().REMINDER_MAX_SNOOZE_MINUTES
        if minutes < 1 or minutes > max_minutes:
            raise BadRequestException(f"Snooze must be between 1 and {max_minutes} minutes")

        reminder = await cls._get_owned_document(reminder_id, user_id)
        cls._ensure_open(reminder)
        now = _now()

        updated = await cls._get_collection().find_one_and_update(
            {"_id": reminder["_id"]},
            {"$set": {
                "scheduled_date": now + timedelta(minutes=minutes),
                "notification_sent": False,
                "last_fired_at": None,
                "fired_occurrence_at": None,
            }},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFoundException("Reminder not found")

        logger.info(f"Snoozed reminder {reminder_id} for {minutes} minutes")
        return (await cls._to_responses([updated]))[0]

    @classmethod
    async def mark_notification_sent(cls, reminder_id: str, user_id: str) -> ReminderResponse:
        """Record that the client has shown this occurrence. Idempotent."""
        reminder = await cls._get_owned_document(reminder_id, user_id)

        updated = await cls._get_collection().find_one_and_update(
            {"_id": reminder["_id"]},
            {"$set": {"notification_sent": True, "last_notified_at": _now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFoundException("Reminder not found")

        return (await cls._to_responses([updated]))[0]

    @classmethod
    async def delete_reminder(cls, reminder_id: str, user_id: str) -> bool:
        """Delete a reminder."""
        reminder = await cls._get_owned_document(reminder_id, user_id)
        await cls._get_collection().delete_one({"_id": reminder["_id"]})
        logger.info(f"Deleted reminder {reminder_id}")
        return True

    # ==================== Helpers ====================

    @classmethod
    async def _get_owned_document(cls, reminder_id: str, user_id: str) -> dict:
        object_id = cls._validate_object_id(reminder_id)
        reminder = await cls._get_collection().find_one({"_id": object_id})

        if not reminder:
            raise NotFoundException("Reminder not found")
        if reminder.get("user_id") != user_id:
            raise ForbiddenException("Not authorized to access this reminder")

        return reminder

    @staticmethod
    def _ensure_open(reminder: dict):
        """A completed one-off reminder is terminal; it can only be deleted."""
        if reminder.get("completed") and not reminder.get("recurring"):
            raise BadRequestException("Reminder is already completed")

    @classmethod
    async def _to_responses(cls, reminders: Iterable[dict]) -> List[ReminderResponse]:
        """Convert documents, filling in plant name and image with a single lookup."""
        reminders = list(reminders)
        plant_ids = {r.get("plant_id") for r in reminders if ObjectId.is_valid(r.get("plant_id") or "")}

        plants: Dict[str, dict] = {}
        if plant_ids:
            cursor = Database.get_collection("plants").find(
                {"_id": {"$in": [ObjectId(pid) for pid in plant_ids]}}
            )
            for plant in await cursor.to_list(length=len(plant_ids)):
                plants[str(plant["_id"])] = plant

        return [cls._doc_to_response(r, plants.get(r.get("plant_id"))) for r in reminders]

    @staticmethod
    def _doc_to_response(doc: dict, plant: Optional[dict] = None) -> ReminderResponse:
        """Convert MongoDB document to ReminderResponse."""
        frequency = doc.get("frequency")
        if frequency is None:
            frequency = get_settings().REMINDER_DEFAULT_FREQUENCY_DAYS
        parsed = Frequency.parse(frequency)

        return ReminderResponse(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            plant_id=doc["plant_id"],
            plant_name=ReminderContent.plant_display_name(plant) if plant else None,
            plant_image=plant.get("main_image") if plant else None,
            type=doc.get("type") or "custom",
            title=doc.get("title") or ReminderContent.default_title(doc.get("type")),
            description=doc.get("description"),
            notes=doc.get("notes"),
            scheduled_date=doc["scheduled_date"],
            completed=doc.get("completed", False),
            completed_date=doc.get("completed_date"),
            last_completed_at=doc.get("last_completed_at"),
            recurring=doc.get("recurring", True),
            frequency=parsed.to_storage(),
            frequency_label=parsed.describe(),
            notification_sent=doc.get("notification_sent", False),
            last_notified_at=doc.get("last_notified_at"),
            last_fired_at=doc.get("last_fired_at"),
            fired_occurrence_at=doc.get("fired_occurrence_at"),
            active=doc.get("active", True),
            notification_methods=doc.get("notification_methods") or list(DEFAULT_NOTIFICATION_METHODS),
            created_at=doc.get("created_at") or doc["_id"].generation_time.replace(tzinfo=None),
            updated_at=doc.get("updated_at"),
        )
