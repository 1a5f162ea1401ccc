"""
Local reminder history.

The client keeps a short activity log of what happened to reminders
(created, completed, snoozed, ...). It is stored as one JSON array in a single
file and reconciled with what the server knows, so entries recorded this
session and entries implied by server state don't show up twice.
"""

import json
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError, field_validator

from sprouty.client.config import ClientSettings
from sprouty.reminders.models import ReminderResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
MAX_ENTRIES_LIMIT = 200
DEFAULT_RETENTION_DAYS = 30

# Two events of the same kind on the same reminder closer than this are one event
DUPLICATE_WINDOW = timedelta(seconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """The API sends naive UTC datetimes."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class HistoryEventType(str, Enum):
    CREATED = "created"
    COMPLETED = "completed"
    DELETED = "deleted"
    NOTIFIED = "notified"
    UPDATED = "updated"
    SNOOZED = "snoozed"


class HistoryEntry(BaseModel):
    """One line of the activity log."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    type: HistoryEventType
    reminder_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    title: Optional[str] = None
    plant_name: Optional[str] = None
    reminder_type: Optional[str] = None
    details: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @classmethod
    def for_reminder(
        cls,
        event_type: HistoryEventType,
        reminder: ReminderResponse,
        timestamp: Optional[datetime] = None,
        details: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> "HistoryEntry":
        fields = {
            "type": event_type,
            "reminder_id": reminder.id,
            "timestamp": timestamp or _utcnow(),
            "title": reminder.title,
            "plant_name": reminder.plant_name,
            "reminder_type": reminder.type,
            "details": details,
        }
        if entry_id:
            fields["id"] = entry_id
        return cls(**fields)


def _sort_newest_first(entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
    return sorted(entries, key=lambda e: e.timestamp, reverse=True)


def dedupe(entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
    """
    Drop duplicate entries, newest first.

    An entry is a duplicate when its id was already kept, or when a kept entry
    has the same type and reminder and lies within DUPLICATE_WINDOW of it.
    """
    kept: List[HistoryEntry] = []
    seen_ids = set()
    # Oldest kept timestamp per (type, reminder); entries arrive newest first
    last_kept: Dict[Tuple[HistoryEventType, str], datetime] = {}

    for entry in _sort_newest_first(entries):
        if entry.id in seen_ids:
            continue
        key = (entry.type, entry.reminder_id)
        previous = last_kept.get(key)
        if previous is not None and previous - entry.timestamp < DUPLICATE_WINDOW:
            continue

        kept.append(entry)
        seen_ids.add(entry.id)
        last_kept[key] = entry.timestamp

    return kept


def prune(
    entries: Iterable[HistoryEntry],
    now: datetime,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> List[HistoryEntry]:
    """Dedupe, drop entries past retention and keep the newest ``max_entries``."""
    cutoff = _as_utc(now) - timedelta(days=retention_days)
    fresh = [e for e in entries if e.timestamp >= cutoff]
    return dedupe(fresh)[:max_entries]


def derive_server_entries(reminders: Iterable[ReminderResponse]) -> List[HistoryEntry]:
    """
    Synthetic history implied by server-side reminder state.

    Ids are derived from the reminder and timestamp so the same state always
    produces the same entries.
    """
    entries: List[HistoryEntry] = []

    for reminder in reminders:
        created_at = _as_utc(reminder.created_at)
        entries.append(HistoryEntry.for_reminder(
            HistoryEventType.CREATED, reminder,
            timestamp=created_at,
            entry_id=f"created-{reminder.id}",
        ))

        completed_at = _as_utc(reminder.completed_date or reminder.last_completed_at)
        if completed_at:
            entries.append(HistoryEntry.for_reminder(
                HistoryEventType.COMPLETED, reminder,
                timestamp=completed_at,
                entry_id=f"completed-{reminder.id}-{int(completed_at.timestamp())}",
            ))

        notified_at = _as_utc(reminder.last_notified_at)
        if notified_at:
            entries.append(HistoryEntry.for_reminder(
                HistoryEventType.NOTIFIED, reminder,
                timestamp=notified_at,
                entry_id=f"notified-{reminder.id}-{int(notified_at.timestamp())}",
            ))

        updated_at = _as_utc(reminder.updated_at)
        if updated_at and updated_at - created_at > DUPLICATE_WINDOW:
            entries.append(HistoryEntry.for_reminder(
                HistoryEventType.UPDATED, reminder,
                timestamp=updated_at,
                entry_id=f"updated-{reminder.id}-{int(updated_at.timestamp())}",
            ))

    return entries


class HistoryStore:
    """
    Persistent activity log in a single JSON file.

    Every write replaces the whole file atomically, under a lock, so a reader
    in this process never sees half a log.
    """

    def __init__(
        self,
        path: Union[str, Path],
        max_entries: int = DEFAULT_MAX_ENTRIES,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not 1 <= max_entries <= MAX_ENTRIES_LIMIT:
            raise ValueError(f"max_entries must be between 1 and {MAX_ENTRIES_LIMIT}")
        if retention_days < 1:
            raise ValueError("retention_days must be at least 1")

        self.path = Path(path).expanduser()
        self.max_entries = max_entries
        self.retention_days = retention_days
        self._clock = clock or _utcnow
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "HistoryStore":
        return cls(
            settings.HISTORY_PATH,
            max_entries=settings.HISTORY_MAX_ENTRIES,
            retention_days=settings.HISTORY_RETENTION_DAYS,
        )

    def load(self) -> List[HistoryEntry]:
        """Current log, newest first."""
        with self._lock:
            return self._normalize(self._read())

    def append(self, entry: HistoryEntry) -> List[HistoryEntry]:
        return self.extend([entry])

    def extend(self, entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
        """Add entries and persist straight away."""
        with self._lock:
            merged = self._normalize([*self._read(), *entries])
            self._write(merged)
            return merged

    def record(
        self,
        event_type: HistoryEventType,
        reminder: ReminderResponse,
        details: Optional[str] = None,
    ) -> HistoryEntry:
        """Build an entry for ``reminder`` and append it."""
        entry = HistoryEntry.for_reminder(event_type, reminder, timestamp=self._clock(), details=details)
        self.append(entry)
        return entry

    def save(self, entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
        """Replace the log."""
        with self._lock:
            normalized = self._normalize(entries)
            self._write(normalized)
            return normalized

    def clear(self):
        with self._lock:
            self._write([])

    def reconcile(
        self,
        server_reminders: Iterable[ReminderResponse],
        session_entries: Iterable[HistoryEntry] = (),
    ) -> List[HistoryEntry]:
        """
        Merge server-derived, persisted and session entries into one log.

        The result is deduplicated, newest first, capped and persisted.
        """
        derived = derive_server_entries(server_reminders)
        with self._lock:
            merged = self._normalize([*derived, *self._read(), *session_entries])
            self._write(merged)
            return merged

    # ==================== Storage ====================

    def _normalize(self, entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
        return prune(entries, self._clock(), self.max_entries, self.retention_days)

    def _read(self) -> List[HistoryEntry]:
        if not self.path.exists():
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"History log at {self.path} is unreadable, starting fresh: {e}")
            return []

        if not isinstance(raw, list):
            logger.warning(f"History log at {self.path} is not a list, starting fresh")
            return []

        entries = []
        for item in raw:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError:
                logger.debug(f"Dropping malformed history entry: {item!r}")
        return entries

    def _write(self, entries: List[HistoryEntry]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        payload = [entry.model_dump(mode="json") for entry in entries]
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
