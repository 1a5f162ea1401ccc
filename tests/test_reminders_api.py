"""Tests for the reminders API routes."""

from datetime import timedelta

from sprouty.main import API_PREFIX

REMINDERS = f"{API_PREFIX}/reminders"


def _iso(dt) -> str:
    return dt.isoformat()


async def _create(client, headers, plant_id, scheduled, **extra):
    payload = {"plant_id": plant_id, "type": "watering", "scheduled_date": _iso(scheduled), **extra}
    response = await client.post(REMINDERS, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ==================== Create ====================

async def test_create_reminder_with_defaults(client, auth_headers, plant, clock):
    body = await _create(client, auth_headers, plant.id, clock.now + timedelta(days=1))

    assert body["plant_id"] == plant.id
    assert body["plant_name"] == "Monty"
    assert body["title"] == "Watering reminder"
    assert body["recurring"] is True
    assert body["frequency"] == 7
    assert body["frequency_label"] == "every week"
    assert body["completed"] is False
    assert body["notification_sent"] is False
    assert body["notification_methods"] == ["email", "popup"]


async def test_create_accepts_legacy_type_and_symbolic_frequency(client, auth_headers, plant, clock):
    body = await _create(
        client, auth_headers, plant.id, clock.now,
        type="Fertilize", frequency="biweekly", title="Feed Monty",
    )

    assert body["type"] == "fertilizing"
    assert body["frequency"] == 14
    assert body["title"] == "Feed Monty"


async def test_create_keeps_monthly_symbolic(client, auth_headers, plant, clock):
    body = await _create(client, auth_headers, plant.id, clock.now, frequency="monthly")
    assert body["frequency"] == "monthly"


async def test_create_normalizes_timezone_to_utc(client, auth_headers, plant):
    response = await client.post(
        REMINDERS,
        json={"plant_id": plant.id, "type": "watering", "scheduled_date": "2026-03-05T14:30:00+05:30"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["scheduled_date"] == "2026-03-05T09:00:00"


async def test_create_requires_scheduled_date(client, auth_headers, plant):
    response = await client.post(
        REMINDERS, json={"plant_id": plant.id, "type": "watering"}, headers=auth_headers
    )
    assert response.status_code == 422


async def test_create_rejects_invalid_date(client, auth_headers, plant):
    response = await client.post(
        REMINDERS,
        json={"plant_id": plant.id, "type": "watering", "scheduled_date": "next tuesday-ish"},
        headers=auth_headers,
    )
    assert response.status_code == 422


async def test_create_rejects_unknown_frequency(client, auth_headers, plant, clock):
    response = await client.post(
        REMINDERS,
        json={
            "plant_id": plant.id,
            "type": "watering",
            "scheduled_date": _iso(clock.now),
            "frequency": "when it rains",
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


async def test_create_rejects_unknown_type(client, auth_headers, plant, clock):
    response = await client.post(
        REMINDERS,
        json={"plant_id": plant.id, "type": "serenade", "scheduled_date": _iso(clock.now)},
        headers=auth_headers,
    )
    assert response.status_code == 422


async def test_create_on_missing_plant_is_404(client, auth_headers, clock):
    response = await client.post(
        REMINDERS,
        json={"plant_id": "65f000000000000000000000", "type": "watering", "scheduled_date": _iso(clock.now)},
        headers=auth_headers,
    )
    assert response.status_code == 404


async def test_create_on_someone_elses_plant_is_403(client, auth_headers, other_plant, clock):
    response = await client.post(
        REMINDERS,
        json={"plant_id": other_plant.id, "type": "watering", "scheduled_date": _iso(clock.now)},
        headers=auth_headers,
    )
    assert response.status_code == 403


async def test_create_with_malformed_plant_id_is_400(client, auth_headers, clock):
    response = await client.post(
        REMINDERS,
        json={"plant_id": "not-an-id", "type": "watering", "scheduled_date": _iso(clock.now)},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_invalid_token_is_401(client):
    response = await client.get(REMINDERS, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


# ==================== Read ====================

async def test_list_is_sorted_by_scheduled_date(client, auth_headers, plant, clock):
    later = await _create(client, auth_headers, plant.id, clock.now + timedelta(days=3))
    sooner = await _create(client, auth_headers, plant.id, clock.now + timedelta(days=1))

    response = await client.get(REMINDERS, headers=auth_headers)

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [sooner["id"], later["id"]]


async def test_list_only_returns_own_reminders(client, auth_headers, other_auth_headers, plant, clock):
    await _create(client, auth_headers, plant.id, clock.now)

    response = await client.get(REMINDERS, headers=other_auth_headers)

    assert response.json() == []


async def test_get_someone_elses_reminder_is_403(client, auth_headers, other_auth_headers, plant, clock):
    created = await _create(client, auth_headers, plant.id, clock.now)

    response = await client.get(f"{REMINDERS}/{created['id']}", headers=other_auth_headers)

    assert response.status_code == 403


async def test_get_missing_reminder_is_404(client, auth_headers):
    response = await client.get(f"{REMINDERS}/65f000000000000000000000", headers=auth_headers)
    assert response.status_code == 404


async def test_upcoming_window(client, auth_headers, plant, clock):
    past = await _create(client, auth_headers, plant.id, clock.now - timedelta(hours=1))
    soon = await _create(client, auth_headers, plant.id, clock.now + timedelta(days=2))
    far = await _create(client, auth_headers, plant.id, clock.now + timedelta(days=8))

    response = await client.get(f"{REMINDERS}/upcoming", headers=auth_headers)
    ids = [r["id"] for r in response.json()]

    assert soon["id"] in ids
    assert past["id"] not in ids
    assert far["id"] not in ids

    response = await client.get(f"{REMINDERS}/upcoming", params={"days": 10}, headers=auth_headers)
    assert far["id"] in [r["id"] for r in response.json()]


async def test_due_feed(client, auth_headers, insert_reminder, clock):
    overdue = await insert_reminder(scheduled_date=clock.now - timedelta(hours=2))
    future = await insert_reminder(scheduled_date=clock.now + timedelta(days=2))
    acknowledged = await insert_reminder(scheduled_date=clock.now - timedelta(hours=1), notification_sent=True)
    fired = await insert_reminder(
        scheduled_date=clock.now + timedelta(days=6),
        last_fired_at=clock.now - timedelta(minutes=5),
    )
    inactive = await insert_reminder(scheduled_date=clock.now - timedelta(hours=1), active=False)

    response = await client.get(f"{REMINDERS}/due", headers=auth_headers)
    ids = {r["id"] for r in response.json()}

    assert ids == {str(overdue["_id"]), str(fired["_id"])}
    assert str(future["_id"]) not in ids
    assert str(acknowledged["_id"]) not in ids
    assert str(inactive["_id"]) not in ids


# ==================== Lifecycle ====================

async def test_complete_recurring_reschedules(client, auth_headers, plant, clock):
    created = await _create(client, auth_headers, plant.id, clock.now - timedelta(hours=1), frequency=3)
    clock.advance(minutes=10)

    response = await client.put(f"{REMINDERS}/{created['id']}/complete", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["completed"] is False
    assert body["completed_date"] is None
    assert body["notification_sent"] is False
    assert body["scheduled_date"] == _iso(clock.now + timedelta(days=3))
    assert body["last_completed_at"] == _iso(clock.now)


async def test_complete_one_off_is_terminal(client, auth_headers, plant, clock):
    scheduled = clock.now - timedelta(hours=1)
    created = await _create(client, auth_headers, plant.id, scheduled, recurring=False)
    url = f"{REMINDERS}/{created['id']}"

    response = await client.put(f"{url}/complete", headers=auth_headers)
    body = response.json()
    assert body["completed"] is True
    assert body["completed_date"] == _iso(clock.now)
    assert body["scheduled_date"] == _iso(scheduled)

    assert (await client.put(f"{url}/complete", headers=auth_headers)).status_code == 400
    assert (await client.put(f"{url}/snooze", json={"minutes": 10}, headers=auth_headers)).status_code == 400
    assert (await client.put(url, json={"title": "Again"}, headers=auth_headers)).status_code == 400
    assert (await client.delete(url, headers=auth_headers)).status_code == 204


async def test_complete_someone_elses_reminder_is_403(client, auth_headers, other_auth_headers, plant, clock):
    created = await _create(client, auth_headers, plant.id, clock.now)

    response = await client.put(f"{REMINDERS}/{created['id']}/complete", headers=other_auth_headers)

    assert response.status_code == 403


async def test_snooze_defaults_to_thirty_minutes(client, auth_headers, insert_reminder, clock):
    reminder = await insert_reminder(
        scheduled_date=clock.now - timedelta(hours=1),
        notification_sent=True,
        last_fired_at=clock.now - timedelta(hours=1),
    )

    response = await client.put(f"{REMINDERS}/{reminder['_id']}/snooze", headers=auth_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["scheduled_date"] == _iso(clock.now + timedelta(minutes=30))
    assert body["notification_sent"] is False
    assert body["last_fired_at"] is None


async def test_snooze_custom_minutes(client, auth_headers, insert_reminder, clock):
    reminder = await insert_reminder()

    response = await client.put(
        f"{REMINDERS}/{reminder['_id']}/snooze", json={"minutes": 60}, headers=auth_headers
    )

    assert response.json()["scheduled_date"] == _iso(clock.now + timedelta(hours=1))


async def test_snooze_rejects_out_of_range(client, auth_headers, insert_reminder):
    reminder = await insert_reminder()
    url = f"{REMINDERS}/{reminder['_id']}/snooze"

    assert (await client.put(url, json={"minutes": 0}, headers=auth_headers)).status_code == 422
    assert (await client.put(url, json={"minutes": 5000}, headers=auth_headers)).status_code == 422


async def test_mark_notification_sent(client, auth_headers, insert_reminder, clock):
    reminder = await insert_reminder(scheduled_date=clock.now - timedelta(minutes=5))

    response = await client.put(f"{REMINDERS}/{reminder['_id']}/notification-sent", headers=auth_headers)
    body = response.json()
    assert body["notification_sent"] is True
    assert body["last_notified_at"] == _iso(clock.now)

    due = await client.get(f"{REMINDERS}/due", headers=auth_headers)
    assert due.json() == []


async def test_update_moving_date_rearms_notification(client, auth_headers, insert_reminder, clock):
    reminder = await insert_reminder(notification_sent=True, last_fired_at=clock.now)
    new_date = clock.now + timedelta(days=2)

    response = await client.put(
        f"{REMINDERS}/{reminder['_id']}",
        json={"scheduled_date": _iso(new_date), "notes": "Use rain water"},
        headers=auth_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["scheduled_date"] == _iso(new_date)
    assert body["notes"] == "Use rain water"
    assert body["notification_sent"] is False
    assert body["last_fired_at"] is None
    assert body["updated_at"] == _iso(clock.now)


async def test_update_without_date_keeps_ack_state(client, auth_headers, insert_reminder):
    reminder = await insert_reminder(notification_sent=True)

    response = await client.put(
        f"{REMINDERS}/{reminder['_id']}", json={"frequency": "daily"}, headers=auth_headers
    )

    body = response.json()
    assert body["frequency"] == 1
    assert body["notification_sent"] is True


async def test_delete_reminder(client, auth_headers, insert_reminder, mock_db):
    reminder = await insert_reminder()

    response = await client.delete(f"{REMINDERS}/{reminder['_id']}", headers=auth_headers)

    assert response.status_code == 204
    assert await mock_db.reminders.count_documents({}) == 0


async def test_delete_someone_elses_reminder_is_403(client, other_auth_headers, insert_reminder, mock_db):
    reminder = await insert_reminder()

    response = await client.delete(f"{REMINDERS}/{reminder['_id']}", headers=other_auth_headers)

    assert response.status_code == 403
    assert await mock_db.reminders.count_documents({}) == 1
