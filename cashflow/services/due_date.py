"""
Due date arithmetic for recurring schedules.

Month and year steps land on the schedule's anchor day (the day of month of
its start date) and clamp to the last day of months that are shorter, so a
schedule started on the 31st runs Jan 31 -> Feb 28 -> Mar 31. Without an
anchor the day of ``from_date`` is used. Time of day is always preserved.
"""

import calendar
from datetime import timedelta
from dateutil.relativedelta import relativedelta

from cashflow.utils.enums import TransactionFrequency
from cashflow.utils.exceptions import ScheduleError, CatchUpLimitExceeded


DEFAULT_MAX_ITERATIONS = 10000

_UNITS = {
    TransactionFrequency.DAILY: ("Daily", "days"),
    TransactionFrequency.WEEKLY: ("Weekly", "weeks"),
    TransactionFrequency.MONTHLY: ("Monthly", "months"),
    TransactionFrequency.YEARLY: ("Yearly", "years"),
}


def add_months(value, months, anchor_day=None):
    """Add calendar months, clamping the day to the target month's length"""
    target = value + relativedelta(months=months)

    if anchor_day:
        last_day = calendar.monthrange(target.year, target.month)[1]
        target = target.replace(day=min(anchor_day, last_day))

    return target


def next_due_date(from_date, frequency, frequency_value=1, anchor_day=None):
    """
    Calculate the occurrence that follows ``from_date``.

    Args:
        from_date: datetime of the current occurrence
        frequency: TransactionFrequency
        frequency_value: number of periods between occurrences (>= 1)
        anchor_day: preferred day of month for MONTHLY/YEARLY schedules

    Returns:
        datetime strictly after from_date
    """
    if frequency_value is None or frequency_value < 1:
        raise ValueError(f"frequency_value must be at least 1, got {frequency_value}")

    if frequency == TransactionFrequency.DAILY:
        return from_date + timedelta(days=frequency_value)

    if frequency == TransactionFrequency.WEEKLY:
        return from_date + timedelta(weeks=frequency_value)

    if frequency == TransactionFrequency.MONTHLY:
        return add_months(from_date, frequency_value, anchor_day)

    if frequency == TransactionFrequency.YEARLY:
        return add_months(from_date, 12 * frequency_value, anchor_day)

    raise ValueError(f"Unsupported frequency: {frequency}")


def checked_next_due_date(from_date, frequency, frequency_value=1, anchor_day=None):
    """next_due_date that fails loudly if the schedule would not move forward"""
    result = next_due_date(from_date, frequency, frequency_value, anchor_day)

    if result <= from_date:
        raise ScheduleError(
            f"Next due date {result} does not advance past {from_date} "
            f"for {frequency.value} x{frequency_value}"
        )

    return result


def advance_past(
    from_date,
    limit,
    frequency,
    frequency_value=1,
    anchor_day=None,
    max_iterations=DEFAULT_MAX_ITERATIONS,
    inclusive=False,
):
    """
    Step the schedule forward from ``from_date`` until it is after ``limit``
    (or at/after it when ``inclusive`` is set). Returns ``from_date`` unchanged
    if it already satisfies the bound.
    """
    current = from_date
    iterations = 0

    while current < limit or (current == limit and not inclusive):
        if iterations >= max_iterations:
            raise CatchUpLimitExceeded(
                f"Schedule did not pass {limit} within {max_iterations} steps"
            )
        current = checked_next_due_date(current, frequency, frequency_value, anchor_day)
        iterations += 1

    return current


def describe_frequency(frequency, frequency_value=1):
    """Human readable frequency, e.g. 'Monthly' or 'Every 2 weeks'"""
    single, plural = _UNITS[frequency]
    if frequency_value == 1:
        return single
    return f"Every {frequency_value} {plural}"
