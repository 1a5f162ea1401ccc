"""
Client-side reminder notifications.

``ReminderPoller`` periodically asks the API for due reminders, turns them
into popup notifications, and makes sure each reminder is shown only once no
matter how often it comes back from the server. It also carries out the
actions a user can take on a notification (complete, snooze, dismiss).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set
from uuid import uuid4

from sprouty.client.api import ReminderAPI, ReminderAPIError
from sprouty.client.config import ClientSettings, get_client_settings
from sprouty.client.history import HistoryEntry, HistoryEventType, HistoryStore
from sprouty.reminders.content import ReminderContent
from sprouty.reminders.models import ReminderResponse

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NotificationKind(str, Enum):
    REMINDER = "reminder"
    SUCCESS = "success"
    ERROR = "error"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationAction(str, Enum):
    COMPLETE = "complete"
    SNOOZE = "snooze"
    DISMISS = "dismiss"


def notification_id_for(reminder_id: str) -> str:
    """Stable notification id, so the same reminder never shows twice."""
    return f"reminder-{reminder_id}"


@dataclass
class ReminderNotification:
    """A notification shown to the user."""
    id: str
    kind: NotificationKind
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    reminder_id: Optional[str] = None
    reminder_type: Optional[str] = None
    plant_name: Optional[str] = None
    plant_image: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    overdue: bool = False
    snooze_minutes: Optional[int] = None
    actions: List[NotificationAction] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_reminder(
        cls,
        reminder: ReminderResponse,
        now: datetime,
        settings: ClientSettings,
    ) -> "ReminderNotification":
        # A fired recurring reminder already points at its next occurrence
        scheduled = _as_utc(reminder.fired_occurrence_at or reminder.scheduled_date)
        overdue = now - scheduled > timedelta(minutes=settings.OVERDUE_THRESHOLD_MINUTES)

        return cls(
            id=notification_id_for(reminder.id),
            kind=NotificationKind.REMINDER,
            title=ReminderContent.notification_title(reminder.type, overdue=overdue),
            message=ReminderContent.notification_message(reminder.type, reminder.plant_name, reminder.title),
            priority=NotificationPriority.HIGH if overdue else NotificationPriority.MEDIUM,
            reminder_id=reminder.id,
            reminder_type=reminder.type,
            plant_name=reminder.plant_name,
            plant_image=reminder.plant_image,
            scheduled_date=scheduled,
            overdue=overdue,
            snooze_minutes=settings.OVERDUE_SNOOZE_MINUTES if overdue else settings.DEFAULT_SNOOZE_MINUTES,
            actions=[NotificationAction.COMPLETE, NotificationAction.SNOOZE],
            created_at=now,
        )

    @classmethod
    def feedback(cls, kind: NotificationKind, title: str, message: str) -> "ReminderNotification":
        """Short-lived success/error message after an action."""
        return cls(
            id=f"{kind.value}-{uuid4().hex}",
            kind=kind,
            title=title,
            message=message,
            priority=NotificationPriority.LOW if kind == NotificationKind.SUCCESS else NotificationPriority.MEDIUM,
        )


class NotificationCenter:
    """Active notifications keyed by id, in the order they arrived."""

    def __init__(self):
        self._items: Dict[str, ReminderNotification] = {}

    def merge(self, notifications: Iterable[ReminderNotification]) -> List[ReminderNotification]:
        """Add notifications whose id isn't active yet. Returns the ones added."""
        added = []
        for notification in notifications:
            if notification.id in self._items:
                continue
            self._items[notification.id] = notification
            added.append(notification)
        return added

    def add(self, notification: ReminderNotification):
        self._items[notification.id] = notification

    def remove(self, notification_id: str) -> Optional[ReminderNotification]:
        """Remove if present. Removing twice is fine."""
        return self._items.pop(notification_id, None)

    def get(self, notification_id: str) -> Optional[ReminderNotification]:
        return self._items.get(notification_id)

    def clear(self):
        self._items.clear()

    @property
    def reminders(self) -> List[ReminderNotification]:
        return [n for n in self._items.values() if n.kind == NotificationKind.REMINDER]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._items

    def __iter__(self) -> Iterator[ReminderNotification]:
        return iter(list(self._items.values()))


class ReminderPoller:
    """
    Polls the due-reminders feed and manages the notifications it produces.

    Only one poll runs at a time. A failed poll schedules a single quick
    retry and slows the regular cadence until a poll succeeds again.
    """

    def __init__(
        self,
        api: ReminderAPI,
        center: Optional[NotificationCenter] = None,
        history: Optional[HistoryStore] = None,
        settings: Optional[ClientSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_client_settings()
        self.api = api
        self.center = center if center is not None else NotificationCenter()
        self.history = history if history is not None else HistoryStore.from_settings(self.settings)
        self.last_error: Optional[Exception] = None

        self._clock = clock or _utcnow
        self._in_flight = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight > 0

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    @property
    def next_interval(self) -> float:
        if self.last_error is not None:
            return self.settings.ERROR_POLL_INTERVAL_SECONDS
        return self.settings.POLL_INTERVAL_SECONDS

    # ==================== Polling ====================

    async def poll(self, force: bool = False) -> Optional[List[ReminderNotification]]:
        """
        Fetch due reminders and surface the ones not shown yet.

        Returns the newly added notifications, or None when the poll was
        skipped or failed.
        """
        if self._in_flight and not force:
            logger.debug("Reminder poll already in flight, skipping")
            return None

        self._in_flight += 1
        try:
            try:
                reminders = await self.api.get_due_reminders()
            except ReminderAPIError as e:
                self.last_error = e
                logger.warning(f"Failed to fetch due reminders: {e}")
                self._schedule_retry()
                return None

            self.last_error = None
            now = self._clock()
            added = self.center.merge(
                ReminderNotification.from_reminder(r, now, self.settings) for r in reminders
            )

            if added:
                by_id = {r.id: r for r in reminders}
                self.history.extend(
                    HistoryEntry.for_reminder(HistoryEventType.NOTIFIED, by_id[n.reminder_id], timestamp=now)
                    for n in added
                )
                for notification in added:
                    self._spawn(self._acknowledge(notification.reminder_id))
                logger.info(f"Surfaced {len(added)} reminder notification(s)")

            return added
        finally:
            self._in_flight -= 1

    def _schedule_retry(self):
        if self.retry_pending:
            return
        self._retry_task = asyncio.create_task(self._retry_later())

    async def _retry_later(self):
        await asyncio.sleep(self.settings.RETRY_DELAY_SECONDS)
        await self.poll(force=True)

    async def _acknowledge(self, reminder_id: str):
        """Tell the server the reminder was shown. Best effort."""
        try:
            await self.api.mark_notification_sent(reminder_id)
        except ReminderAPIError as e:
            logger.warning(f"Failed to mark reminder {reminder_id} as notified: {e}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_for_background(self):
        """Wait for pending acknowledgements to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ==================== Lifecycle ====================

    async def sync_history(self) -> Optional[List[HistoryEntry]]:
        """
        Rebuild the local history from server state plus what is on disk.

        Returns the merged log, or None when the server couldn't be reached
        (the persisted log is left as it was).
        """
        try:
            reminders = await self.api.get_reminders()
        except ReminderAPIError as e:
            logger.warning(f"Failed to load reminders for history: {e}")
            return None

        entries = self.history.reconcile(reminders)
        logger.debug(f"Reconciled reminder history: {len(entries)} entries")
        return entries

    async def run(self):
        """Reconcile history once, then poll forever at the current cadence."""
        await self.sync_history()
        while True:
            try:
                await self.poll()
            except Exception as e:
                logger.exception(f"Unexpected error while polling reminders: {e}")
            await asyncio.sleep(self.next_interval)

    def start(self) -> asyncio.Task:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self.run())
        return self._loop_task

    async def stop(self):
        """Cancel the poll loop and any pending retry."""
        tasks = [t for t in (self._loop_task, self._retry_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._retry_task = None

    # ==================== Actions ====================

    async def handle_action(self, notification_id: str, action: str, minutes: Optional[int] = None) -> bool:
        action = NotificationAction(action)
        if action == NotificationAction.COMPLETE:
            return await self.complete(notification_id)
        if action == NotificationAction.SNOOZE:
            return await self.snooze(notification_id, minutes)
        return self.dismiss(notification_id)

    async def complete(self, notification_id: str) -> bool:
        """Complete the reminder behind a notification."""
        notification = self.center.get(notification_id)
        if notification is None or notification.reminder_id is None:
            logger.debug(f"No reminder notification {notification_id} to complete")
            return False

        try:
            reminder = await self.api.complete_reminder(notification.reminder_id)
        except ReminderAPIError as e:
            logger.error(f"Failed to complete reminder {notification.reminder_id}: {e}")
            self._push_feedback(
                NotificationKind.ERROR,
                "Couldn't complete reminder",
                ReminderContent.action_failed_message("complete", e.message),
            )
            return False

        self.history.record(HistoryEventType.COMPLETED, reminder)
        self._push_feedback(
            NotificationKind.SUCCESS,
            "Reminder completed",
            ReminderContent.completed_message(reminder.title, rescheduled=reminder.recurring),
        )
        self.center.remove(notification_id)
        return True

    async def snooze(self, notification_id: str, minutes: Optional[int] = None) -> bool:
        """Snooze the reminder behind a notification."""
        notification = self.center.get(notification_id)
        if notification is None or notification.reminder_id is None:
            logger.debug(f"No reminder notification {notification_id} to snooze")
            return False

        minutes = minutes or notification.snooze_minutes or self.settings.DEFAULT_SNOOZE_MINUTES
        try:
            reminder = await self.api.snooze_reminder(notification.reminder_id, minutes)
        except ReminderAPIError as e:
            logger.error(f"Failed to snooze reminder {notification.reminder_id}: {e}")
            self._push_feedback(
                NotificationKind.ERROR,
                "Couldn't snooze reminder",
                ReminderContent.action_failed_message("snooze", e.message),
            )
            return False

        self.history.record(HistoryEventType.SNOOZED, reminder, details=f"{minutes} minutes")
        self._push_feedback(
            NotificationKind.SUCCESS,
            "Reminder snoozed",
            ReminderContent.snoozed_message(minutes),
        )
        self.center.remove(notification_id)
        return True

    def dismiss(self, notification_id: str) -> bool:
        """Hide a notification without touching the reminder."""
        return self.center.remove(notification_id) is not None

    async def delete_reminder(self, reminder_id: str) -> bool:
        """Delete a reminder and drop its notification."""
        try:
            reminder = await self.api.get_reminder(reminder_id)
            await self.api.delete_reminder(reminder_id)
        except ReminderAPIError as e:
            logger.error(f"Failed to delete reminder {reminder_id}: {e}")
            self._push_feedback(
                NotificationKind.ERROR,
                "Couldn't delete reminder",
                ReminderContent.action_failed_message("delete", e.message),
            )
            return False

        self.history.record(HistoryEventType.DELETED, reminder)
        self.center.remove(notification_id_for(reminder_id))
        return True

    def _push_feedback(self, kind: NotificationKind, title: str, message: str):
        notification = ReminderNotification.feedback(kind, title, message)
        self.center.add(notification)
        asyncio.get_running_loop().call_later(
            self.settings.FEEDBACK_TTL_SECONDS, self.center.remove, notification.id
        )
