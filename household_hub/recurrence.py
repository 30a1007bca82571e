"""
Recurrence engine for reminders.

``next_due`` maps a base datetime and a recurrence rule to the next due date.
Day-based rules add whole days. Month-based rules step the calendar month and
keep the day of month; when the target month is too short the surplus days roll
into the following month (Jan 31 + 1 month is Mar 2 or Mar 3, Feb 29 + 1 year
is Mar 1). Time of day is preserved.
"""
from datetime import datetime, timedelta
from typing import Union

from .errors import RecurrenceError
from .models import Recurrence

DAY_STEPS = {
    Recurrence.daily: 1,
    Recurrence.every_other_day: 2,
    Recurrence.weekly: 7,
    Recurrence.biweekly: 14,
}

MONTH_STEPS = {
    Recurrence.monthly: 1,
    Recurrence.quarterly: 3,
    Recurrence.yearly: 12,
}


def parse_recurrence(rule: Union[Recurrence, str]) -> Recurrence:
    try:
        return Recurrence(rule)
    except ValueError:
        raise RecurrenceError(f"Unrecognized recurrence: {rule!r}") from None


def add_months(base: datetime, months: int) -> datetime:
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    first_of_month = base.replace(year=year, month=month, day=1)
    return first_of_month + timedelta(days=base.day - 1)


def next_due(base: datetime, rule: Union[Recurrence, str]) -> datetime:
    """Return the occurrence after ``base`` for ``rule``.

    Raises RecurrenceError for ``none`` and for values outside the enum.
    """
    recurrence = parse_recurrence(rule)
    if recurrence in DAY_STEPS:
        return base + timedelta(days=DAY_STEPS[recurrence])
    if recurrence in MONTH_STEPS:
        return add_months(base, MONTH_STEPS[recurrence])
    raise RecurrenceError("Reminder does not recur")
