"""Reminders API routes."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from sprouty.core.dependencies import get_current_user
from sprouty.reminders.models import ReminderCreate, ReminderUpdate, ReminderResponse, SnoozeRequest
from sprouty.reminders.service import ReminderService


router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    reminder_data: ReminderCreate,
    current_user: dict = Depends(get_current_user)
):
    """Create a care reminder for one of your plants."""
    return await ReminderService.create_reminder(current_user["id"], reminder_data)


@router.get("", response_model=List[ReminderResponse])
async def list_reminders(current_user: dict = Depends(get_current_user)):
    """Get all your reminders, soonest first."""
    return await ReminderService.get_user_reminders(current_user["id"])


@router.get("/upcoming", response_model=List[ReminderResponse])
async def list_upcoming_reminders(
    days: Optional[int] = Query(None, ge=1, le=90),
    current_user: dict = Depends(get_current_user)
):
    """Get open reminders coming up in the next few days."""
    return await ReminderService.get_upcoming_reminders(current_user["id"], days=days)


@router.get("/due", response_model=List[ReminderResponse])
async def list_due_reminders(current_user: dict = Depends(get_current_user)):
    """Get reminders that should be shown to you now."""
    return await ReminderService.get_due_reminders(current_user["id"])


@router.get("/{reminder_id}", response_model=ReminderResponse)
async def get_reminder(
    reminder_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Get a specific reminder."""
    return await ReminderService.get_reminder(reminder_id, current_user["id"])


@router.put("/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: str,
    updates: ReminderUpdate,
    current_user: dict = Depends(get_current_user)
):
    """Edit a reminder."""
    return await ReminderService.update_reminder(reminder_id, current_user["id"], updates)


@router.put("/{reminder_id}/complete", response_model=ReminderResponse)
async def complete_reminder(
    reminder_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Mark a reminder done. Recurring reminders roll over to their next date."""
    return await ReminderService.complete_reminder(reminder_id, current_user["id"])


@router.put("/{reminder_id}/snooze", response_model=ReminderResponse)
async def snooze_reminder(
    reminder_id: str,
    snooze: SnoozeRequest = SnoozeRequest(),
    current_user: dict = Depends(get_current_user)
):
    """Snooze a reminder for a number of minutes."""
    return await ReminderService.snooze_reminder(reminder_id, current_user["id"], snooze.minutes)


@router.put("/{reminder_id}/notification-sent", response_model=ReminderResponse)
async def mark_notification_sent(
    reminder_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Acknowledge that a reminder notification was shown."""
    return await ReminderService.mark_notification_sent(reminder_id, current_user["id"])


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Delete a reminder."""
    await ReminderService.delete_reminder(reminder_id, current_user["id"])
