from datetime import datetime
from decimal import Decimal
from marshmallow import ValidationError

from cashflow.extensions import db
from cashflow.models.occurrence_override import OccurrenceOverride
from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.utils.enums import OccurrenceAction
from cashflow.utils.exceptions import NotFoundError
from cashflow.utils.logger import logger
from cashflow.utils.validators import to_uuid


def to_calendar_date(value):
    """Drop the time of day, overrides are keyed by calendar date only"""
    if isinstance(value, datetime):
        return value.date()
    return value


def _ensure_recurring_exists(recurring_transaction_id):
    key = to_uuid(recurring_transaction_id)
    if key is None or db.session.get(RecurringTransaction, key) is None:
        raise NotFoundError(
            f"Recurring transaction {recurring_transaction_id} not found",
            recurring_transaction_id,
        )


def lookup(recurring_transaction_id, occurrence_date):
    """Return the override for one occurrence, or None"""
    return OccurrenceOverride.query.filter_by(
        recurring_transaction_id=to_uuid(recurring_transaction_id),
        occurrence_date=to_calendar_date(occurrence_date),
    ).first()


def list_overrides(recurring_transaction_id):
    _ensure_recurring_exists(recurring_transaction_id)
    return (
        OccurrenceOverride.query.filter_by(
            recurring_transaction_id=to_uuid(recurring_transaction_id)
        )
        .order_by(OccurrenceOverride.occurrence_date.desc())
        .all()
    )


def _upsert(recurring_transaction_id, occurrence_date, **values):
    """Insert or replace the override for (id, date); last write wins"""
    _ensure_recurring_exists(recurring_transaction_id)
    recurring_transaction_id = to_uuid(recurring_transaction_id)
    occurrence_date = to_calendar_date(occurrence_date)

    override = lookup(recurring_transaction_id, occurrence_date)
    if override is None:
        override = OccurrenceOverride(
            recurring_transaction_id=recurring_transaction_id,
            occurrence_date=occurrence_date,
        )
        db.session.add(override)

    # Clear fields from the previous action before applying the new one
    override.modified_amount = None
    override.modified_description = None
    override.skip_reason = None
    for field, value in values.items():
        setattr(override, field, value)

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"Recorded {override.action.value} override for recurring transaction "
        f"{recurring_transaction_id} on {occurrence_date}"
    )
    return override


def record_skip(recurring_transaction_id, occurrence_date, reason=None):
    return _upsert(
        recurring_transaction_id,
        occurrence_date,
        action=OccurrenceAction.SKIP,
        skip_reason=reason,
    )


def record_modify(recurring_transaction_id, occurrence_date, amount=None, description=None):
    if amount is not None:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", "amount")

    return _upsert(
        recurring_transaction_id,
        occurrence_date,
        action=OccurrenceAction.MODIFY,
        modified_amount=amount,
        modified_description=description,
    )


def delete_override(recurring_transaction_id, occurrence_date):
    """Remove the override for one occurrence, returns True if one existed"""
    override = lookup(recurring_transaction_id, occurrence_date)
    if override is None:
        return False

    db.session.delete(override)
    db.session.commit()
    logger.info(
        f"Removed override for recurring transaction {recurring_transaction_id} "
        f"on {to_calendar_date(occurrence_date)}"
    )
    return True
