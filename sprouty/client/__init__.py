"""Client-side reminder delivery: API client, notification poller and local history."""

from sprouty.client.api import AuthContext, ReminderAPI, ReminderAPIError
from sprouty.client.config import ClientSettings, get_client_settings
from sprouty.client.history import HistoryEntry, HistoryEventType, HistoryStore
from sprouty.client.notifications import NotificationCenter, ReminderNotification, ReminderPoller

__all__ = [
    "AuthContext",
    "ReminderAPI",
    "ReminderAPIError",
    "ClientSettings",
    "get_client_settings",
    "HistoryEntry",
    "HistoryEventType",
    "HistoryStore",
    "NotificationCenter",
    "ReminderNotification",
    "ReminderPoller",
]
