"""HTTP client for the reminders API."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from sprouty.client.config import ClientSettings, get_client_settings
from sprouty.reminders.models import ReminderCreate, ReminderResponse, ReminderUpdate

logger = logging.getLogger(__name__)


class ReminderAPIError(Exception):
    """A reminders API call failed (network error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class AuthContext:
    """Bearer credentials for the signed-in user."""
    token: str
    token_type: str = "Bearer"

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"{self.token_type} {self.token}"}


class ReminderAPI:
    """
    Thin async wrapper around the /reminders endpoints.

    Every call raises ReminderAPIError on failure, so callers only have one
    exception type to handle.
    """

    def __init__(
        self,
        auth: AuthContext,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
    ):
        self.settings = settings or get_client_settings()
        self.auth = auth
        self._client = httpx.AsyncClient(
            base_url=base_url or self.settings.API_URL,
            timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "ReminderAPI":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # ==================== Reminders ====================

    async def get_reminders(self) -> List[ReminderResponse]:
        return self._parse_list(await self._request("GET", "/reminders"))

    async def get_upcoming_reminders(self, days: Optional[int] = None) -> List[ReminderResponse]:
        params = {"days": days} if days else None
        return self._parse_list(await self._request("GET", "/reminders/upcoming", params=params))

    async def get_due_reminders(self) -> List[ReminderResponse]:
        return self._parse_list(await self._request("GET", "/reminders/due"))

    async def get_reminder(self, reminder_id: str) -> ReminderResponse:
        return self._parse(await self._request("GET", f"/reminders/{reminder_id}"))

    async def create_reminder(self, data: Union[ReminderCreate, Dict[str, Any]]) -> ReminderResponse:
        if isinstance(data, ReminderCreate):
            data = data.model_dump(mode="json")
        return self._parse(await self._request("POST", "/reminders", json=data))

    async def update_reminder(
        self,
        reminder_id: str,
        updates: Union[ReminderUpdate, Dict[str, Any]],
    ) -> ReminderResponse:
        if isinstance(updates, ReminderUpdate):
            updates = updates.model_dump(mode="json", exclude_unset=True)
        return self._parse(await self._request("PUT", f"/reminders/{reminder_id}", json=updates))

    async def complete_reminder(self, reminder_id: str) -> ReminderResponse:
        return self._parse(await self._request("PUT", f"/reminders/{reminder_id}/complete"))

    async def snooze_reminder(self, reminder_id: str, minutes: int) -> ReminderResponse:
        return self._parse(
            await self._request("PUT", f"/reminders/{reminder_id}/snooze", json={"minutes": minutes})
        )

    async def mark_notification_sent(self, reminder_id: str) -> ReminderResponse:
        return self._parse(await self._request("PUT", f"/reminders/{reminder_id}/notification-sent"))

    async def delete_reminder(self, reminder_id: str) -> None:
        await self._request("DELETE", f"/reminders/{reminder_id}")

    # ==================== Helpers ====================

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self.auth.headers(), **kwargs)
        except httpx.HTTPError as e:
            raise ReminderAPIError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise ReminderAPIError(self._error_detail(response), status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ReminderAPIError(f"{method} {path} returned invalid JSON", response.status_code) from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            detail = response.json().get("detail")
        except (ValueError, AttributeError):
            detail = None
        if isinstance(detail, str):
            return detail
        return f"Request failed with status {response.status_code}"

    @staticmethod
    def _parse(payload: Any) -> ReminderResponse:
        try:
            return ReminderResponse.model_validate(payload)
        except ValidationError as e:
            raise ReminderAPIError(f"Unexpected reminder payload: {e}") from e

    @classmethod
    def _parse_list(cls, payload: Any) -> List[ReminderResponse]:
        if not isinstance(payload, list):
            raise ReminderAPIError("Expected a list of reminders")
        return [cls._parse(item) for item in payload]
