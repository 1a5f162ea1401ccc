"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from sprouty.auth.service import AuthService
from sprouty.core.database import Database
from sprouty.main import app
from sprouty.plants import service as plant_service
from sprouty.plants.models import PlantCreate
from sprouty.plants.service import PlantService
from sprouty.reminders import scan_service, service as reminder_service
from sprouty.reminders.models import ReminderResponse

# Mongo keeps millisecond precision, so test times stay on whole seconds
START = datetime(2026, 3, 2, 9, 0, 0)


class Clock:
    """Server clock the services read through their module-level ``_now``."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def mock_db(monkeypatch):
    """Swap MongoDB for an in-memory mongomock database."""
    client = AsyncMongoMockClient()
    monkeypatch.setattr(Database, "client", client)
    monkeypatch.setattr(Database, "db", client["sprouty_test"])
    return Database.db


@pytest.fixture(autouse=True)
def clock(monkeypatch) -> Clock:
    clock = Clock(START)
    for module in (plant_service, reminder_service, scan_service):
        monkeypatch.setattr(module, "_now", lambda: clock.now)
    return clock


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async test client against the ASGI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _insert_user(db, email: str, name: str) -> dict:
    result = await db.users.insert_one({"email": email, "name": name, "created_at": START})
    return {"id": str(result.inserted_id), "email": email}


@pytest_asyncio.fixture
async def user(mock_db) -> dict:
    return await _insert_user(mock_db, "fern@example.com", "Fern")


@pytest_asyncio.fixture
async def other_user(mock_db) -> dict:
    return await _insert_user(mock_db, "ivy@example.com", "Ivy")


def _headers(user: dict) -> dict:
    token = AuthService.create_access_token(user["id"], user["email"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(user) -> dict:
    return _headers(user)


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    return _headers(other_user)


@pytest_asyncio.fixture
async def plant(user):
    return await PlantService.create_plant(user["id"], PlantCreate(name="Monstera", nickname="Monty"))


@pytest_asyncio.fixture
async def other_plant(other_user):
    return await PlantService.create_plant(other_user["id"], PlantCreate(name="Fiddle Leaf Fig"))


@pytest.fixture
def insert_reminder(mock_db, user, plant):
    """Insert a raw reminder document, bypassing the API."""

    async def _insert(**overrides) -> dict:
        doc = {
            "user_id": user["id"],
            "plant_id": plant.id,
            "type": "watering",
            "title": "Watering reminder",
            "scheduled_date": START,
            "completed": False,
            "recurring": True,
            "frequency": 7,
            "notification_sent": False,
            "last_fired_at": None,
            "active": True,
            "notification_methods": ["email", "popup"],
            "created_at": START - timedelta(days=1),
            "updated_at": START - timedelta(days=1),
        }
        doc.update(overrides)
        result = await mock_db.reminders.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    return _insert


@pytest.fixture
def reminder_response():
    """Build a ReminderResponse as the client would receive it."""

    def _build(**overrides) -> ReminderResponse:
        fields = {
            "id": str(ObjectId()),
            "user_id": str(ObjectId()),
            "plant_id": str(ObjectId()),
            "plant_name": "Monty",
            "type": "watering",
            "title": "Watering reminder",
            "scheduled_date": START,
            "recurring": True,
            "frequency": 7,
            "created_at": START - timedelta(days=1),
            "updated_at": START - timedelta(days=1),
        }
        fields.update(overrides)
        return ReminderResponse(**fields)

    return _build
