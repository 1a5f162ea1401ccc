"""Plant service - handles plant CRUD and the ownership checks reminders rely on."""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from bson import ObjectId
from pymongo import ReturnDocument

from sprouty.core.database import Database
from sprouty.core.exceptions import NotFoundException, BadRequestException, ForbiddenException
from sprouty.plants.models import PlantCreate, PlantResponse

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlantService:
    """Handles plant-related database operations."""

    @staticmethod
    def _get_plants_collection():
        return Database.get_collection("plants")

    @staticmethod
    def _validate_object_id(id_str: str) -> ObjectId:
        """Validate and convert string to ObjectId."""
        if not ObjectId.is_valid(id_str):
            raise BadRequestException("Invalid plant ID")
        return ObjectId(id_str)

    # ==================== User Plants CRUD ====================

    @classmethod
    async def create_plant(cls, user_id: str, plant_data: PlantCreate) -> PlantResponse:
        """Save a plant to user's collection."""
        collection = cls._get_plants_collection()

        plant_doc = {
            "user_id": user_id,
            "name": plant_data.name.strip(),
            "species": plant_data.species,
            "nickname": plant_data.nickname,
            "location": plant_data.location.value,
            "main_image": plant_data.main_image,
            "notes": plant_data.notes,
            "created_at": _now(),
        }

        result = await collection.insert_one(plant_doc)
        plant_doc["_id"] = result.inserted_id

        return cls._doc_to_response(plant_doc)

    @classmethod
    async def get_user_plants(cls, user_id: str) -> List[PlantResponse]:
        """Get all plants for a user."""
        collection = cls._get_plants_collection()
        cursor = collection.find({"user_id": user_id}).sort("created_at", -1)
        plants = await cursor.to_list(length=500)
        return [cls._doc_to_response(p) for p in plants]

    @classmethod
    async def get_plant_by_id(cls, plant_id: str, user_id: str) -> PlantResponse:
        """Get a specific plant by ID."""
        plant = await cls.get_owned_plant_document(plant_id, user_id)
        return cls._doc_to_response(plant)

    @classmethod
    async def get_owned_plant_document(cls, plant_id: str, user_id: str) -> dict:
        """
        Fetch a plant and verify the caller owns it.

        Raises NotFoundException when the plant doesn't exist and
        ForbiddenException when it belongs to another user.
        """
        object_id = cls._validate_object_id(plant_id)
        plant = await cls._get_plants_collection().find_one({"_id": object_id})

        if not plant:
            raise NotFoundException("Plant not found")
        if plant.get("user_id") != user_id:
            raise ForbiddenException("Not authorized to access this plant")

        return plant

    @classmethod
    async def find_plant_document(cls, plant_id: str) -> Optional[dict]:
        """Read-only lookup by id; None when missing or the id is malformed."""
        if not plant_id or not ObjectId.is_valid(plant_id):
            return None
        return await cls._get_plants_collection().find_one({"_id": ObjectId(plant_id)})

    @classmethod
    async def update_plant(cls, plant_id: str, user_id: str, updates: dict) -> PlantResponse:
        """Update a plant."""
        object_id = cls._validate_object_id(plant_id)
        await cls.get_owned_plant_document(plant_id, user_id)

        # Remove None values
        updates = {k: v for k, v in updates.items() if v is not None}
        if "location" in updates and hasattr(updates["location"], "value"):
            updates["location"] = updates["location"].value

        if updates:
            result = await cls._get_plants_collection().find_one_and_update(
                {"_id": object_id, "user_id": user_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        else:
            result = await cls._get_plants_collection().find_one({"_id": object_id, "user_id": user_id})

        if not result:
            raise NotFoundException("Plant not found")

        return cls._doc_to_response(result)

    @classmethod
    async def delete_plant(cls, plant_id: str, user_id: str) -> bool:
        """Delete a plant together with its reminders."""
        object_id = cls._validate_object_id(plant_id)
        await cls.get_owned_plant_document(plant_id, user_id)

        await cls._get_plants_collection().delete_one({"_id": object_id, "user_id": user_id})

        reminders = Database.get_collection("reminders")
        removed = await reminders.delete_many({"plant_id": plant_id, "user_id": user_id})
        if removed.deleted_count:
            logger.info(f"Deleted {removed.deleted_count} reminders with plant {plant_id}")

        return True

    # ==================== Helpers ====================

    @staticmethod
    def _doc_to_response(doc: dict) -> PlantResponse:
        """Convert MongoDB document to PlantResponse."""
        return PlantResponse(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            name=doc["name"],
            species=doc.get("species"),
            nickname=doc.get("nickname"),
            location=doc.get("location") or "Indoor",
            main_image=doc.get("main_image"),
            notes=doc.get("notes"),
            created_at=doc["created_at"],
        )
