"""
Forward projection of recurring cash flow.

Everything here only reads recurring transactions; schedule positions are
copied into local cursors and never written back.
"""

from decimal import Decimal
from flask import current_app

from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.services.due_date import (
    DEFAULT_MAX_ITERATIONS,
    advance_past,
    checked_next_due_date,
)
from cashflow.utils.enums import TransactionType
from cashflow.utils.exceptions import CatchUpLimitExceeded
from cashflow.utils.logger import logger


# Fifty years of daily occurrences
DEFAULT_MAX_PROJECTION_OCCURRENCES = 20000


def _projection_candidates(end):
    """Active recurring transactions that have started by the window end"""
    return (
        RecurringTransaction.query.filter(
            RecurringTransaction.is_active.is_(True),
            RecurringTransaction.start_date <= end,
        )
        .order_by(RecurringTransaction.next_due_date)
        .all()
    )


def _projection_cap():
    """Per-item occurrence limit for one projection window"""
    return current_app.config.get(
        "RECURRING_MAX_PROJECTION_OCCURRENCES", DEFAULT_MAX_PROJECTION_OCCURRENCES
    )


def occurrence_dates(recurring_transaction, start, end, max_iterations=DEFAULT_MAX_ITERATIONS):
    """
    Dates of the occurrences of one recurring transaction within [start, end].

    The cursor starts at next_due_date, not start_date, so occurrences that
    were already generated are not counted again.
    """
    frequency = recurring_transaction.frequency
    frequency_value = recurring_transaction.frequency_value
    anchor_day = recurring_transaction.anchor_day
    end_date = recurring_transaction.end_date

    cursor = advance_past(
        recurring_transaction.next_due_date,
        start,
        frequency,
        frequency_value,
        anchor_day,
        max_iterations=max_iterations,
        inclusive=True,
    )

    dates = []
    iterations = 0
    while cursor <= end:
        if end_date is not None and cursor > end_date:
            break
        if iterations >= max_iterations:
            raise CatchUpLimitExceeded(
                f"Projection of {recurring_transaction.id} exceeded {max_iterations} occurrences",
                recurring_transaction.id,
            )
        dates.append(cursor)
        cursor = checked_next_due_date(cursor, frequency, frequency_value, anchor_day)
        iterations += 1

    return dates


def project_occurrences(start, end):
    """List every projected occurrence in [start, end], ordered by date"""
    max_iterations = _projection_cap()
    occurrences = []

    for recurring_transaction in _projection_candidates(end):
        for occurrence_date in occurrence_dates(
            recurring_transaction, start, end, max_iterations
        ):
            occurrences.append(
                {
                    "recurring_transaction_id": recurring_transaction.id,
                    "date": occurrence_date,
                    "type": recurring_transaction.type,
                    "amount": recurring_transaction.get_amount,
                    "currency": recurring_transaction.currency,
                    "description": recurring_transaction.description,
                }
            )

    occurrences.sort(key=lambda occurrence: occurrence["date"])
    return occurrences


def calculate_projected_amount(start, end, converter):
    """
    Net recurring cash flow in USD over [start, end].

    Income counts positive and expenses negative; each recurring transaction
    is converted once and multiplied by its occurrence count.
    """
    max_iterations = _projection_cap()
    total = Decimal("0.00")

    for recurring_transaction in _projection_candidates(end):
        count = len(occurrence_dates(recurring_transaction, start, end, max_iterations))
        if count == 0:
            continue

        amount_usd = converter.convert_to_usd(
            recurring_transaction.get_amount, recurring_transaction.currency
        )
        projected = amount_usd * count

        if recurring_transaction.type == TransactionType.INCOME:
            total += projected
        else:
            total -= projected

    logger.debug(f"Projected net recurring amount {total} for {start} - {end}")
    return total
