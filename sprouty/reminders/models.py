"""Reminder models and schemas."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator

from sprouty.reminders.schedule import Frequency


class ReminderType(str, Enum):
    """Kinds of plant care a reminder can ask for."""
    WATERING = "watering"
    FERTILIZING = "fertilizing"
    PRUNING = "pruning"
    REPOTTING = "repotting"
    CUSTOM = "custom"


# Labels older clients still post ("Water", "Fertilize", ...).
_TYPE_ALIASES = {
    "water": ReminderType.WATERING,
    "fertilize": ReminderType.FERTILIZING,
    "fertilise": ReminderType.FERTILIZING,
    "prune": ReminderType.PRUNING,
    "repot": ReminderType.REPOTTING,
}


class NotificationMethod(str, Enum):
    """Channels a due reminder is delivered through."""
    EMAIL = "email"
    POPUP = "popup"


DEFAULT_NOTIFICATION_METHODS = [NotificationMethod.EMAIL.value, NotificationMethod.POPUP.value]


def _normalize_type(value):
    if isinstance(value, str):
        key = value.strip().lower()
        return _TYPE_ALIASES.get(key, key)
    return value


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive UTC datetimes; store them that way too."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _canonical_frequency(value):
    if value is None:
        return value
    try:
        return Frequency.parse(value, strict=True).to_storage()
    except ValueError as e:
        raise ValueError(
            "frequency must be a positive number of days or one of "
            "daily, weekly, biweekly, monthly"
        ) from e


class ReminderCreate(BaseModel):
    """Schema for creating a reminder on one of the caller's plants."""
    plant_id: str = Field(..., min_length=1)
    type: ReminderType
    title: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    scheduled_date: datetime
    recurring: bool = True
    frequency: Union[int, str] = 7
    active: bool = True
    notification_methods: List[NotificationMethod] = Field(
        default_factory=lambda: [NotificationMethod.EMAIL, NotificationMethod.POPUP]
    )

    _type = field_validator("type", mode="before")(_normalize_type)
    _scheduled_date = field_validator("scheduled_date")(_to_naive_utc)
    _frequency = field_validator("frequency")(_canonical_frequency)


class ReminderUpdate(BaseModel):
    """Schema to edit a reminder. Only fields that are sent get changed."""
    type: Optional[ReminderType] = None
    title: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=1000)
    scheduled_date: Optional[datetime] = None
    recurring: Optional[bool] = None
    frequency: Optional[Union[int, str]] = None
    active: Optional[bool] = None
    notification_methods: Optional[List[NotificationMethod]] = None

    _type = field_validator("type", mode="before")(_normalize_type)
    _scheduled_date = field_validator("scheduled_date")(_to_naive_utc)
    _frequency = field_validator("frequency")(_canonical_frequency)


class SnoozeRequest(BaseModel):
    """Push the current occurrence back by a number of minutes."""
    minutes: int = Field(default=30, ge=1, le=60 * 24)


class ReminderResponse(BaseModel):
    """Response schema for a reminder."""
    id: str
    user_id: str
    plant_id: str
    plant_name: Optional[str] = None
    plant_image: Optional[str] = None
    type: str
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    scheduled_date: datetime
    completed: bool = False
    completed_date: Optional[datetime] = None
    last_completed_at: Optional[datetime] = None
    recurring: bool = True
    frequency: Union[int, str] = 7
    frequency_label: Optional[str] = None
    notification_sent: bool = False
    last_notified_at: Optional[datetime] = None
    last_fired_at: Optional[datetime] = None
    fired_occurrence_at: Optional[datetime] = None
    active: bool = True
    notification_methods: List[str] = Field(default_factory=lambda: list(DEFAULT_NOTIFICATION_METHODS))
    created_at: datetime
    updated_at: Optional[datetime] = None
