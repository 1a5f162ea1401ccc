"""Plant-related models and schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class PlantLocation(str, Enum):
    """Where a plant lives."""
    INDOOR = "Indoor"
    OUTDOOR = "Outdoor"
    BALCONY = "Balcony"
    GARDEN = "Garden"
    OTHER = "Other"


class PlantCreate(BaseModel):
    """Schema to save a plant to user's collection."""
    name: str = Field(..., min_length=1, max_length=100)
    species: Optional[str] = None
    nickname: Optional[str] = None  # User-given name for the plant
    location: PlantLocation = PlantLocation.INDOOR
    main_image: Optional[str] = None
    notes: Optional[str] = None


class PlantUpdate(BaseModel):
    """Schema to update a plant."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    species: Optional[str] = None
    nickname: Optional[str] = None
    location: Optional[PlantLocation] = None
    main_image: Optional[str] = None
    notes: Optional[str] = None


class PlantResponse(BaseModel):
    """Response schema for a saved plant."""
    id: str
    user_id: str
    name: str
    species: Optional[str] = None
    nickname: Optional[str] = None
    location: str = PlantLocation.INDOOR.value
    main_image: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
