"""Tests for reminder e-mail content."""

from unittest.mock import AsyncMock

from sprouty.core.email_service import EmailService
from sprouty.core.email_templates import get_reminder_email
from sprouty.reminders.content import ReminderContent


async def test_send_reminder_email_builds_subject_and_body(monkeypatch):
    send = AsyncMock(return_value=True)
    monkeypatch.setattr(EmailService, "send_email", send)

    sent = await EmailService.send_reminder_email(
        "fern@example.com",
        {"type": "fertilizing", "title": "Feed", "notes": "Half strength <please>"},
        {"name": "Monstera", "nickname": "Monty", "location": "Balcony"},
    )

    assert sent is True
    kwargs = send.await_args.kwargs
    assert kwargs["to_email"] == "fern@example.com"
    assert kwargs["subject"] == "Reminder: Time to fertilize your Monty"
    assert "Half strength &lt;please&gt;" in kwargs["html_body"]
    assert "Half strength <please>" in kwargs["text_body"]


def test_template_escapes_plant_name():
    html, text = get_reminder_email(action="water", plant_name="<b>Fig</b>")
    assert "&lt;b&gt;Fig&lt;/b&gt;" in html
    assert "<b>Fig</b>" in text


def test_plant_display_name_prefers_nickname():
    assert ReminderContent.plant_display_name({"name": "Ficus", "nickname": "Figgy"}) == "Figgy"
    assert ReminderContent.plant_display_name({"name": "Ficus"}) == "Ficus"
    assert ReminderContent.plant_display_name(None) == "plant"


def test_custom_reminder_subject_falls_back():
    assert ReminderContent.email_subject("custom", "Monty") == "Reminder: Time to take care of your Monty"
    assert ReminderContent.action_phrase("custom", "Rotate pot") == "take care of (Rotate pot)"
