"""Reminder e-mails, delivered through AWS SES."""

import asyncio
import logging
from typing import NamedTuple, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sprouty.core.config import get_settings
from sprouty.core.email_templates import get_reminder_email
from sprouty.reminders.content import ReminderContent

logger = logging.getLogger(__name__)


class SendResult(NamedTuple):
    ok: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _utf8(text: str) -> dict:
    return {"Data": text, "Charset": "UTF-8"}


class EmailService:
    """Sends reminder e-mails. All sends go through ``send_email``."""

    @staticmethod
    def _ses_client():
        settings = get_settings()
        return boto3.client(
            "ses",
            region_name=settings.AWS_SES_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        )

    @staticmethod
    def _sender() -> str:
        settings = get_settings()
        return f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"

    @classmethod
    def _deliver(cls, to_email: str, subject: str, html_body: str, text_body: str) -> SendResult:
        """Blocking SES call; run it off the event loop."""
        try:
            response = cls._ses_client().send_email(
                Source=cls._sender(),
                Destination={"ToAddresses": [to_email]},
                Message={
                    "Subject": _utf8(subject),
                    "Body": {"Text": _utf8(text_body), "Html": _utf8(html_body)},
                },
            )
        except ClientError as e:
            # MessageRejected usually means an unverified address in sandbox mode
            error = e.response.get("Error", {})
            return SendResult(False, error=f"{error.get('Code')} - {error.get('Message')}")
        except BotoCoreError as e:
            return SendResult(False, error=str(e))

        return SendResult(True, message_id=response.get("MessageId"))

    @classmethod
    async def send_email(cls, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send one e-mail. Returns False instead of raising on SES errors."""
        if not get_settings().EMAIL_FROM_ADDRESS:
            logger.warning(f"EMAIL_FROM_ADDRESS not set, not e-mailing {to_email}")
            return False

        result = await asyncio.to_thread(cls._deliver, to_email, subject, html_body, text_body)
        if result.ok:
            logger.info(f"Sent '{subject}' to {to_email} (MessageId: {result.message_id})")
        else:
            logger.error(f"Could not send '{subject}' to {to_email}: {result.error}")
        return result.ok

    @classmethod
    async def send_reminder_email(cls, to_email: str, reminder: dict, plant: dict) -> bool:
        """E-mail the owner that a care task for ``plant`` is due."""
        plant_name = ReminderContent.plant_display_name(plant)
        html_body, text_body = get_reminder_email(
            action=ReminderContent.action_phrase(reminder.get("type"), reminder.get("title")),
            plant_name=plant_name,
            location=plant.get("location"),
            notes=reminder.get("notes"),
            image_url=plant.get("main_image"),
            app_url=get_settings().WEB_APP_URL,
        )

        return await cls.send_email(
            to_email=to_email,
            subject=ReminderContent.email_subject(reminder.get("type"), plant_name),
            html_body=html_body,
            text_body=text_body,
        )
