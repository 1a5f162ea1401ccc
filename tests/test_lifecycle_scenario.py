"""
End-to-end reminder lifecycle: API, scan and client poller working together.

The client talks to the real ASGI app; only e-mail delivery is mocked.
"""

from datetime import timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport

from sprouty.auth.service import AuthService
from sprouty.client.api import AuthContext, ReminderAPI
from sprouty.client.config import ClientSettings
from sprouty.client.history import HistoryEventType, HistoryStore
from sprouty.client.notifications import NotificationKind, NotificationPriority, ReminderPoller
from sprouty.core.email_service import EmailService
from sprouty.main import API_PREFIX, app
from sprouty.reminders.scan_service import ReminderScanService


@pytest.fixture
def send_email(monkeypatch) -> AsyncMock:
    mock = AsyncMock(return_value=True)
    monkeypatch.setattr(EmailService, "send_reminder_email", mock)
    return mock


@pytest_asyncio.fixture
async def api(user):
    token = AuthService.create_access_token(user["id"], user["email"])
    settings = ClientSettings(API_URL=f"http://test{API_PREFIX}")
    async with ReminderAPI(AuthContext(token), settings=settings, transport=ASGITransport(app=app)) as api:
        yield api


@pytest.fixture
def poller(api, clock, tmp_path) -> ReminderPoller:
    settings = ClientSettings(HISTORY_PATH=str(tmp_path / "history.json"), FEEDBACK_TTL_SECONDS=60)
    history = HistoryStore(tmp_path / "history.json", clock=lambda: clock.now.replace(tzinfo=timezone.utc))
    return ReminderPoller(
        api,
        history=history,
        settings=settings,
        clock=lambda: clock.now.replace(tzinfo=timezone.utc),
    )


async def test_weekly_watering_reminder(api, poller, plant, clock, send_email, mock_db):
    day0 = clock.now
    created = await api.create_reminder({
        "plant_id": plant.id,
        "type": "watering",
        "scheduled_date": day0.isoformat(),
        "recurring": True,
        "frequency": "weekly",
    })
    assert created.frequency == 7

    # The hourly scan fires the reminder and moves it to next week
    clock.advance(minutes=20)
    stats = await ReminderScanService.run_tick()
    assert stats["processed"] == 1
    assert stats["notified"] == 1
    send_email.assert_awaited_once()

    reminder = await api.get_reminder(created.id)
    assert reminder.scheduled_date == day0 + timedelta(days=7)
    assert reminder.last_fired_at == clock.now

    # The client still sees the fired occurrence and shows it once
    added = await poller.poll()
    await poller.wait_for_background()
    assert [n.reminder_id for n in added] == [created.id]

    reminder = await api.get_reminder(created.id)
    assert reminder.notification_sent is True
    assert await poller.poll() == []
    assert await api.get_due_reminders() == []

    # Completing counts the next week from now
    clock.advance(minutes=5)
    assert await poller.complete(f"reminder-{created.id}") is True

    reminder = await api.get_reminder(created.id)
    assert reminder.completed is False
    assert reminder.scheduled_date == clock.now + timedelta(days=7)
    assert reminder.last_completed_at == clock.now
    assert [n.kind for n in poller.center] == [NotificationKind.SUCCESS]

    # A tick before next week does nothing
    clock.advance(hours=1)
    stats = await ReminderScanService.run_tick()
    assert stats["found"] == 0

    history_types = {e.type for e in poller.history.load()}
    assert history_types == {HistoryEventType.NOTIFIED, HistoryEventType.COMPLETED}

    # Server state alone tells the same story
    reconciled = poller.history.reconcile(await api.get_reminders())
    assert {e.type for e in reconciled} == {
        HistoryEventType.CREATED,
        HistoryEventType.NOTIFIED,
        HistoryEventType.COMPLETED,
    }


async def test_one_off_repotting_reminder(api, poller, plant, clock, send_email):
    created = await api.create_reminder({
        "plant_id": plant.id,
        "type": "Repot",
        "scheduled_date": (clock.now + timedelta(minutes=30)).isoformat(),
        "recurring": False,
    })

    # Not due yet
    assert await poller.poll() == []

    clock.advance(hours=1, minutes=5)
    stats = await ReminderScanService.run_tick()
    assert stats["processed"] == 1

    # Fired once; a second tick leaves it alone
    clock.advance(minutes=1)
    assert (await ReminderScanService.run_tick())["found"] == 0

    added = await poller.poll()
    await poller.wait_for_background()
    assert len(added) == 1
    assert added[0].overdue is True
    assert added[0].snooze_minutes == 60

    # Snoozing hides it and brings it back once the snooze runs out
    assert await poller.snooze(added[0].id) is True
    assert await api.get_due_reminders() == []

    clock.advance(minutes=61)
    # A snoozed one-off fires again when the snooze runs out
    stats = await ReminderScanService.run_tick()
    assert stats["processed"] == 1
    assert send_email.await_count == 2
    due = await api.get_due_reminders()
    assert [r.id for r in due] == [created.id]

    added = await poller.poll()
    await poller.wait_for_background()
    assert await poller.complete(added[0].id) is True

    reminder = await api.get_reminder(created.id)
    assert reminder.completed is True
    assert await api.get_due_reminders() == []
    assert await poller.complete(added[0].id) is False


async def test_fired_occurrence_seen_late_is_overdue(api, poller, plant, clock, send_email):
    await api.create_reminder({
        "plant_id": plant.id,
        "type": "watering",
        "scheduled_date": clock.now.isoformat(),
        "frequency": 7,
    })

    clock.advance(hours=1)
    assert (await ReminderScanService.run_tick())["processed"] == 1

    # The client was offline until well after the occurrence
    clock.advance(hours=3)
    added = await poller.poll()

    assert len(added) == 1
    assert added[0].overdue is True
    assert added[0].priority == NotificationPriority.HIGH
    assert added[0].snooze_minutes == 60


async def test_acknowledged_occurrence_is_not_shown_again_after_scan(api, poller, plant, clock, send_email):
    day0 = clock.now
    created = await api.create_reminder({
        "plant_id": plant.id,
        "type": "watering",
        "scheduled_date": day0.isoformat(),
        "frequency": 7,
    })

    clock.advance(minutes=1)
    added = await poller.poll()
    await poller.wait_for_background()
    assert len(added) == 1
    assert poller.dismiss(added[0].id) is True

    # The hourly scan runs after the client already showed this occurrence
    clock.advance(minutes=30)
    stats = await ReminderScanService.run_tick()
    assert stats["processed"] == 1
    send_email.assert_awaited_once()

    assert await poller.poll() == []
    assert await api.get_due_reminders() == []
    reminder = await api.get_reminder(created.id)
    assert reminder.scheduled_date == day0 + timedelta(days=7)

    notified = [e for e in poller.history.load() if e.type == HistoryEventType.NOTIFIED]
    assert len(notified) == 1

    # Next week's occurrence still comes through
    clock.advance(days=7)
    await ReminderScanService.run_tick()
    assert [n.reminder_id for n in await poller.poll()] == [created.id]
