"""
Reminder Content Templates

Copy for reminder e-mails and client-side notifications lives here so that
wording can change without touching scheduling logic.
"""

from typing import Optional


class ReminderContent:
    """Reminder notification content templates."""

    # Imperative verb per reminder type
    ACTIONS = {
        "watering": "water",
        "fertilizing": "fertilize",
        "pruning": "prune",
        "repotting": "repot",
    }

    LABELS = {
        "watering": "Watering",
        "fertilizing": "Fertilizing",
        "pruning": "Pruning",
        "repotting": "Repotting",
        "custom": "Custom",
    }

    DEFAULT_PLANT_NAME = "plant"

    @staticmethod
    def plant_display_name(plant: Optional[dict]) -> str:
        """Nickname first, then the plant's name."""
        if not plant:
            return ReminderContent.DEFAULT_PLANT_NAME
        return plant.get("nickname") or plant.get("name") or ReminderContent.DEFAULT_PLANT_NAME

    @classmethod
    def type_label(cls, reminder_type: Optional[str]) -> str:
        return cls.LABELS.get((reminder_type or "").lower(), "Care")

    @classmethod
    def default_title(cls, reminder_type: Optional[str]) -> str:
        return f"{cls.type_label(reminder_type)} reminder"

    @classmethod
    def action_phrase(cls, reminder_type: Optional[str], title: Optional[str] = None) -> str:
        """
        Phrase used in "Time to <action> your <plant>".

        Custom reminders have no verb of their own, so their title is used.
        """
        action = cls.ACTIONS.get((reminder_type or "").lower())
        if action:
            return action
        if title:
            return f"take care of ({title})"
        return "take care of"

    @classmethod
    def email_subject(cls, reminder_type: Optional[str], plant_name: str) -> str:
        return f"Reminder: Time to {cls.action_phrase(reminder_type)} your {plant_name}"

    @classmethod
    def notification_title(cls, reminder_type: Optional[str], overdue: bool = False) -> str:
        title = f"{cls.type_label(reminder_type)} Reminder"
        return f"{title} (overdue)" if overdue else title

    @classmethod
    def notification_message(
        cls,
        reminder_type: Optional[str],
        plant_name: Optional[str],
        title: Optional[str] = None,
    ) -> str:
        plant = plant_name or cls.DEFAULT_PLANT_NAME
        return f"Time to {cls.action_phrase(reminder_type, title)} your {plant}!"

    # -------------------------------------------------------------------------
    # Action feedback
    # -------------------------------------------------------------------------

    @staticmethod
    def completed_message(title: str, rescheduled: bool) -> str:
        if rescheduled:
            return f"{title} done. Next one is scheduled."
        return f"{title} done."

    @staticmethod
    def snoozed_message(minutes: int) -> str:
        if minutes % 60 == 0:
            hours = minutes // 60
            return f"Reminder snoozed for {hours} hour{'s' if hours != 1 else ''}"
        return f"Reminder snoozed for {minutes} minutes"

    @staticmethod
    def action_failed_message(action: str, error: str) -> str:
        return f"Couldn't {action} the reminder: {error}. Please try again."
