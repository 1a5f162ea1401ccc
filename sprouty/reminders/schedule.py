"""
Care-frequency parsing and the reminder reschedule rule.

Frequencies reach us in two shapes: an integer day count (what the reminder
form posts and what we store) and a symbolic period such as "weekly". Both are
folded into a single ``Frequency`` value so that every code path computing a
next occurrence goes through ``next_occurrence``.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta

# Used when a stored frequency can't be interpreted at all.
FALLBACK_DAYS = 3


class Period(str, Enum):
    """Symbolic recurrence periods."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


# Periods with a fixed length. Monthly is calendar-based and has no entry.
PERIOD_DAYS = {
    Period.DAILY: 1,
    Period.WEEKLY: 7,
    Period.BIWEEKLY: 14,
}

PERIOD_NAMES = {period.value for period in Period}


def _match_frequency_days(frequency_str: str) -> Optional[int]:
    """
    Parse a free-text frequency like "every 2 days" or "twice a week" to days.

    Returns None when nothing in the text looks like a frequency.

    Examples:
        "every 2 days" -> 2
        "every 3-4 days" -> 3 (use lower bound)
        "twice a week" -> 3
        "once a week" -> 7
        "fortnightly" -> 14
        "every other day" -> 2
    """
    freq = frequency_str.lower().strip()

    # Normalize common separators/variants
    freq = freq.replace("-", "_").replace("  ", " ").strip()

    if not freq:
        return None

    # Direct matches
    if freq in ["every day", "once a day"]:
        return 1
    if freq in ["every other day", "alternate days", "alternate_day", "every_alternate_day"]:
        return 2
    if freq in ["once a week", "once weekly", "once_weekly"]:
        return 7
    if freq in ["twice a week", "twice weekly", "twice_weekly", "2x per week", "2x_per_week"]:
        return 3
    if freq in ["three times a week", "three_times_a_week", "3x per week", "3x_per_week"]:
        return 2
    if freq in ["fortnightly", "once_every_two_weeks", "every_two_weeks"]:
        return 14

    # "every X days" / "every X_Y days" (ranges were normalised to underscores)
    match = re.search(r"every\s+(\d+)(?:\s*_\s*\d+)?\s*days?", freq)
    if match:
        return int(match.group(1))

    match = re.search(r"every\s+(\d+)(?:\s*_\s*\d+)?\s*weeks?", freq)
    if match:
        return int(match.group(1)) * 7

    # "X days" / "X weeks" at start
    match = re.search(r"^(\d+)\s*days?", freq)
    if match:
        return int(match.group(1))

    match = re.search(r"^(\d+)\s*weeks?", freq)
    if match:
        return int(match.group(1)) * 7

    # Just a number
    match = re.fullmatch(r"\d+", freq)
    if match:
        return int(freq)

    return None


def parse_frequency_to_days(frequency_str: Optional[str], default: int = FALLBACK_DAYS) -> int:
    """Free-text frequency to a positive day count, ``default`` when unparseable."""
    if not frequency_str:
        return default
    days = _match_frequency_days(frequency_str)
    if days is None or days < 1:
        return default
    return days


@dataclass(frozen=True)
class Frequency:
    """
    A reminder recurrence: either ``Frequency.days(n)`` or
    ``Frequency.symbolic(Period.X)``. Exactly one of the fields is set.
    """

    day_count: Optional[int] = None
    period: Optional[Period] = None

    @classmethod
    def days(cls, count: int) -> "Frequency":
        if count < 1:
            raise ValueError("Frequency must be at least one day")
        return cls(day_count=int(count))

    @classmethod
    def symbolic(cls, period: Union[Period, str]) -> "Frequency":
        return cls(period=Period(period))

    @classmethod
    def parse(cls, value: Any, strict: bool = False) -> "Frequency":
        """
        Resolve any stored or submitted frequency value.

        Non-strict mode never fails: missing or unparseable values become
        ``Frequency.days(FALLBACK_DAYS)``. Strict mode raises ValueError
        instead, which is what the API uses to reject bad input.
        """
        if isinstance(value, Frequency):
            return value

        days: Optional[int] = None
        if value is None or isinstance(value, bool):
            days = None
        elif isinstance(value, (int, float)):
            days = int(value)
        elif isinstance(value, str):
            text = value.strip().lower()
            if text in PERIOD_NAMES:
                return cls.symbolic(text)
            days = _match_frequency_days(text)

        if days is not None and days >= 1:
            return cls.days(days)
        if strict:
            raise ValueError(f"Unrecognised frequency: {value!r}")
        return cls.days(FALLBACK_DAYS)

    @property
    def is_calendar_based(self) -> bool:
        return self.period is Period.MONTHLY

    def canonical(self) -> "Frequency":
        """Fixed-length periods become day counts; monthly stays symbolic."""
        if self.period is not None and self.period in PERIOD_DAYS:
            return Frequency.days(PERIOD_DAYS[self.period])
        return self

    def to_storage(self) -> Union[int, str]:
        canonical = self.canonical()
        if canonical.period is not None:
            return canonical.period.value
        return canonical.day_count

    def describe(self) -> str:
        canonical = self.canonical()
        if canonical.period is Period.MONTHLY:
            return "every month"
        if canonical.day_count == 1:
            return "every day"
        if canonical.day_count == 7:
            return "every week"
        return f"every {canonical.day_count} days"

    def advance(self, moment: datetime) -> datetime:
        canonical = self.canonical()
        if canonical.period is Period.MONTHLY:
            return moment + relativedelta(months=1)
        return moment + timedelta(days=canonical.day_count)


def next_occurrence(frequency: Any, after: datetime) -> datetime:
    """
    The occurrence following ``after`` for a stored or submitted frequency.

    Always strictly later than ``after``.
    """
    return Frequency.parse(frequency).advance(after)


def next_occurrence_after(frequency: Any, start: datetime, now: datetime) -> datetime:
    """
    Step ``start`` forward by ``frequency`` until it lands after ``now``.

    Keeps a reminder anchored to its original time of day when the scan
    catches up on occurrences it missed.
    """
    canonical = Frequency.parse(frequency).canonical()

    if canonical.day_count is not None:
        step = timedelta(days=canonical.day_count)
        if now < start:
            return start + step
        missed = (now - start) // step
        return start + step * (missed + 1)

    # Calendar months: offset from the anchor so the 31st doesn't drift to the 28th
    months = 1
    nxt = start + relativedelta(months=months)
    while nxt <= now:
        months += 1
        nxt = start + relativedelta(months=months)
    return nxt


def next_scheduled_date(reminder: dict, now: datetime) -> datetime:
    """
    Next ``scheduled_date`` for a reminder that was just completed.

    Counts from ``completed_date`` (or ``now`` when it is missing). Only
    recurring reminders may be rescheduled; anything else is a caller bug.
    """
    if not reminder.get("recurring"):
        raise ValueError("Only recurring reminders can be rescheduled")

    base = reminder.get("completed_date") or now
    return next_occurrence(reminder.get("frequency"), base)


def reschedule_update(reminder: dict, now: datetime) -> dict:
    """Mongo update document that applies ``next_scheduled_date`` and resets state."""
    return {
        "$set": {
            "scheduled_date": next_scheduled_date(reminder, now),
            "completed": False,
            "notification_sent": False,
            "last_fired_at": None,
            "fired_occurrence_at": None,
        },
        "$unset": {"completed_date": ""},
    }
