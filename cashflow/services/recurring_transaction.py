import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from flask import current_app
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from cashflow.extensions import db
from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.models.transaction import Transaction
from cashflow.services import occurrence_override
from cashflow.services.category import category_exists
from cashflow.services.due_date import (
    DEFAULT_MAX_ITERATIONS,
    advance_past,
    checked_next_due_date,
)
from cashflow.utils.enums import TransactionType, TransactionFrequency, OccurrenceAction
from cashflow.utils.exceptions import (
    NotFoundError,
    ConversionError,
    PersistenceError,
    ScheduleError,
    CatchUpLimitExceeded,
)
from cashflow.utils.logger import logger
from cashflow.utils.validators import to_uuid


CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")

# Fields whose change moves the schedule
SCHEDULE_FIELDS = ("frequency", "frequency_value", "start_date")

UPDATABLE_FIELDS = (
    "type",
    "amount",
    "currency",
    "category_id",
    "description",
    "frequency",
    "frequency_value",
    "start_date",
    "end_date",
)


def _max_iterations():
    return current_app.config.get(
        "RECURRING_MAX_CATCH_UP_ITERATIONS", DEFAULT_MAX_ITERATIONS
    )


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


def apply_defaults(recurring_transaction, now=None):
    """Fill in the defaults a new recurring transaction starts with"""
    if not recurring_transaction.currency:
        recurring_transaction.currency = "USD"
    recurring_transaction.currency = recurring_transaction.currency.upper()

    if recurring_transaction.frequency_value is None:
        recurring_transaction.frequency_value = 1

    if recurring_transaction.start_date is None:
        recurring_transaction.start_date = now or datetime.now()

    if recurring_transaction.next_due_date is None:
        recurring_transaction.next_due_date = recurring_transaction.start_date

    if recurring_transaction.is_active is None:
        recurring_transaction.is_active = True

    return recurring_transaction


def validate_recurring_transaction(candidate, currency_service=None):
    """
    Check a recurring transaction before it is persisted.

    Raises:
        ValidationError: with a dict of field -> messages
    """
    errors = {}

    try:
        amount = Decimal(str(candidate.amount)) if candidate.amount is not None else None
    except InvalidOperation:
        amount = None
    if amount is None or amount <= 0:
        errors["amount"] = ["Amount must be greater than 0"]

    if not isinstance(candidate.type, TransactionType):
        errors["type"] = ["Invalid transaction type"]

    if not isinstance(candidate.frequency, TransactionFrequency):
        errors["frequency"] = [f"Invalid frequency: {candidate.frequency}"]

    frequency_value = candidate.frequency_value
    if (
        not isinstance(frequency_value, int)
        or isinstance(frequency_value, bool)
        or frequency_value < 1
    ):
        errors["frequency_value"] = ["Frequency value must be at least 1"]

    if candidate.category_id is None:
        errors["category_id"] = ["Category is required"]
    elif not category_exists(candidate.category_id):
        errors["category_id"] = ["Category not found"]

    currency = candidate.currency or ""
    if not CURRENCY_CODE.match(currency):
        errors["currency"] = ["Currency must be a 3-letter ISO code"]
    elif currency_service is not None and not currency_service.is_supported(currency):
        errors["currency"] = [f"Currency {currency} is not enabled"]

    if candidate.start_date is None:
        errors["start_date"] = ["Start date is required"]
    else:
        if candidate.end_date is not None and candidate.end_date <= candidate.start_date:
            errors["end_date"] = ["End date must be after start date"]
        if (
            candidate.next_due_date is not None
            and candidate.next_due_date < candidate.start_date
        ):
            errors["next_due_date"] = ["Next due date cannot be before start date"]

    if errors:
        logger.debug(f"Recurring transaction validation failed: {errors}")
        raise ValidationError(errors)

    logger.debug("Recurring transaction validation passed")


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


def get_recurring_transactions(query_params=None):
    """
    Build the recurring transaction query with optional filters.

    Args:
        query_params: Dict with optional filters:
            - type: INCOME/EXPENSE
            - frequency: DAILY/WEEKLY/MONTHLY/YEARLY
            - is_active: true/false
            - category_id
    """
    query_params = query_params or {}
    query = RecurringTransaction.query

    if query_params.get("type"):
        try:
            transaction_type = TransactionType(query_params["type"])
        except ValueError:
            raise ValidationError(f"Invalid transaction type: {query_params['type']}")
        query = query.filter(RecurringTransaction.type == transaction_type)

    if query_params.get("frequency"):
        try:
            frequency = TransactionFrequency(query_params["frequency"])
        except ValueError:
            raise ValidationError(f"Invalid frequency: {query_params['frequency']}")
        query = query.filter(RecurringTransaction.frequency == frequency)

    if query_params.get("is_active"):
        value = str(query_params["is_active"]).lower()
        if value not in ("true", "false"):
            raise ValidationError(f"Invalid is_active value: {query_params['is_active']}")
        query = query.filter(RecurringTransaction.is_active == (value == "true"))

    if query_params.get("category_id"):
        category_id = to_uuid(query_params["category_id"])
        if category_id is None:
            raise ValidationError(f"Invalid category_id: {query_params['category_id']}")
        query = query.filter(RecurringTransaction.category_id == category_id)

    logger.debug("Recurring transaction query built successfully")
    return query.order_by(RecurringTransaction.next_due_date)


def get_recurring_transaction(recurring_transaction_id):
    key = to_uuid(recurring_transaction_id)
    recurring_transaction = db.session.get(RecurringTransaction, key) if key else None
    if recurring_transaction is None:
        raise NotFoundError(
            f"Recurring transaction {recurring_transaction_id} not found",
            recurring_transaction_id,
        )
    return recurring_transaction


def get_all_recurring_transactions():
    return RecurringTransaction.query.order_by(RecurringTransaction.next_due_date).all()


def get_active_recurring_transactions():
    return (
        RecurringTransaction.query.filter(RecurringTransaction.is_active.is_(True))
        .order_by(RecurringTransaction.next_due_date)
        .all()
    )


def get_due_recurring_transactions(as_of):
    """Active recurring transactions whose next occurrence is on or before as_of"""
    return (
        RecurringTransaction.query.filter(
            RecurringTransaction.is_active.is_(True),
            RecurringTransaction.next_due_date <= as_of,
        )
        .order_by(RecurringTransaction.next_due_date)
        .all()
    )


def get_upcoming_recurring_transactions(days, now=None):
    """Active recurring transactions due within [now, now + days]"""
    now = now or datetime.now()
    until = now + timedelta(days=days)
    return (
        RecurringTransaction.query.filter(
            RecurringTransaction.is_active.is_(True),
            RecurringTransaction.next_due_date >= now,
            RecurringTransaction.next_due_date <= until,
        )
        .order_by(RecurringTransaction.next_due_date)
        .all()
    )


def get_expiring_recurring_transactions(days, now=None):
    """Active recurring transactions whose end date falls within [now, now + days]"""
    now = now or datetime.now()
    until = now + timedelta(days=days)
    return (
        RecurringTransaction.query.filter(
            RecurringTransaction.is_active.is_(True),
            RecurringTransaction.end_date.isnot(None),
            RecurringTransaction.end_date >= now,
            RecurringTransaction.end_date <= until,
        )
        .order_by(RecurringTransaction.end_date)
        .all()
    )


def get_generated_transactions(recurring_transaction_id):
    recurring_transaction = get_recurring_transaction(recurring_transaction_id)
    return recurring_transaction.generated_transactions.order_by(
        Transaction.transaction_at.desc()
    ).all()


def count_generated_transactions(recurring_transaction_id):
    return Transaction.query.filter_by(
        recurring_transaction_id=recurring_transaction_id
    ).count()


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


def _commit(action, recurring_transaction_id=None):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error {action} recurring transaction: {str(e)}")
        raise PersistenceError(
            f"Failed {action} recurring transaction: {str(e)}", recurring_transaction_id
        )


def create_recurring_transaction(recurring_transaction, currency_service=None, now=None):
    """
    Validate and store a new recurring transaction.

    next_due_date starts at start_date unless the caller set it.
    """
    apply_defaults(recurring_transaction, now)
    validate_recurring_transaction(recurring_transaction, currency_service)

    db.session.add(recurring_transaction)
    _commit("creating")

    logger.info(f"Created recurring transaction: {recurring_transaction.id}")
    return recurring_transaction


def update_recurring_transaction(recurring_transaction, update_data, currency_service=None):
    """
    Apply a partial update after validating the merged result.

    When a schedule field changes on an item whose schedule never left its
    start date, next_due_date restarts at the new start_date. Once the
    schedule has moved (processed or resumed), next_due_date only moves
    forward (to start_date if that is later).
    """
    changes = {
        field: value for field, value in update_data.items() if field in UPDATABLE_FIELDS
    }
    if "currency" in changes and changes["currency"]:
        changes["currency"] = changes["currency"].upper()

    merged = {
        field: changes.get(field, getattr(recurring_transaction, field))
        for field in UPDATABLE_FIELDS
    }

    next_due_date = recurring_transaction.next_due_date
    schedule_changed = any(
        field in changes and changes[field] != getattr(recurring_transaction, field)
        for field in SCHEDULE_FIELDS
    )
    if schedule_changed:
        never_moved = (
            recurring_transaction.last_processed is None
            and recurring_transaction.next_due_date == recurring_transaction.start_date
        )
        if never_moved:
            next_due_date = merged["start_date"]
        elif merged["start_date"] > next_due_date:
            next_due_date = merged["start_date"]

    # Validate a detached candidate so a rejected update never touches the row
    candidate = RecurringTransaction(next_due_date=next_due_date, **merged)
    validate_recurring_transaction(candidate, currency_service)

    for field, value in changes.items():
        setattr(recurring_transaction, field, value)
    recurring_transaction.next_due_date = next_due_date

    _commit("updating", recurring_transaction.id)

    logger.info(f"Updated recurring transaction: {recurring_transaction.id}")
    return recurring_transaction


def delete_recurring_transaction(recurring_transaction_id):
    """
    Delete a recurring transaction.

    Items with generated history are paused instead so the history keeps its
    back-reference. Returns True when the row was removed.
    """
    recurring_transaction = get_recurring_transaction(recurring_transaction_id)
    generated = count_generated_transactions(recurring_transaction.id)

    if generated > 0:
        recurring_transaction.is_active = False
        _commit("deactivating", recurring_transaction.id)
        logger.info(
            f"Recurring transaction {recurring_transaction.id} has {generated} "
            "generated transactions, deactivated instead of deleted"
        )
        return False

    db.session.delete(recurring_transaction)
    _commit("deleting", recurring_transaction_id)
    logger.info(f"Deleted recurring transaction {recurring_transaction_id}")
    return True


def pause_recurring_transaction(recurring_transaction_id):
    """Stop generating occurrences, keeping the schedule position"""
    recurring_transaction = get_recurring_transaction(recurring_transaction_id)
    recurring_transaction.is_active = False
    _commit("pausing", recurring_transaction.id)

    logger.info(f"Paused recurring transaction {recurring_transaction.id}")
    return recurring_transaction


def resume_recurring_transaction(recurring_transaction_id, now=None):
    """
    Reactivate a recurring transaction.

    Occurrences that fell due while paused are not generated; the schedule
    jumps to its first occurrence after ``now``.
    """
    recurring_transaction = get_recurring_transaction(recurring_transaction_id)
    now = now or datetime.now()

    if recurring_transaction.next_due_date <= now:
        resumed_at = advance_past(
            recurring_transaction.next_due_date,
            now,
            recurring_transaction.frequency,
            recurring_transaction.frequency_value,
            recurring_transaction.anchor_day,
            max_iterations=_max_iterations(),
        )
        logger.info(
            f"Recurring transaction {recurring_transaction.id} resumes at "
            f"{resumed_at}, skipping occurrences since "
            f"{recurring_transaction.next_due_date}"
        )
        recurring_transaction.next_due_date = resumed_at

    recurring_transaction.is_active = True
    _commit("resuming", recurring_transaction.id)

    logger.info(f"Resumed recurring transaction {recurring_transaction.id}")
    return recurring_transaction


def skip_occurrence(recurring_transaction_id, occurrence_date, reason=None):
    return occurrence_override.record_skip(recurring_transaction_id, occurrence_date, reason)


def modify_occurrence(recurring_transaction_id, occurrence_date, amount=None, description=None):
    return occurrence_override.record_modify(
        recurring_transaction_id, occurrence_date, amount, description
    )


# ------------------------------------------------------------------
# Catch-up processing
# ------------------------------------------------------------------


def build_transaction(recurring_transaction, occurrence_date, override=None):
    """Create the (unsaved) transaction for one occurrence"""
    transaction = Transaction(
        type=recurring_transaction.type,
        amount=recurring_transaction.get_amount,
        currency=recurring_transaction.currency,
        category_id=recurring_transaction.category_id,
        description=recurring_transaction.description,
        transaction_at=occurrence_date,
        recurring_transaction_id=recurring_transaction.id,
    )

    if override is not None and override.action == OccurrenceAction.MODIFY:
        if override.modified_amount is not None:
            transaction.amount = Decimal(str(override.modified_amount))
        if override.modified_description is not None:
            transaction.description = override.modified_description

    return transaction


def _process_occurrence(recurring_transaction, occurrence_date, converter, now):
    """Stage one occurrence and the schedule advance in the current session"""
    override = occurrence_override.lookup(recurring_transaction.id, occurrence_date)

    if override is not None and override.action == OccurrenceAction.SKIP:
        logger.info(
            f"Skipping occurrence {occurrence_date} of recurring transaction "
            f"{recurring_transaction.id}: {override.skip_reason}"
        )
    else:
        transaction = build_transaction(recurring_transaction, occurrence_date, override)
        transaction.amount_usd = converter.convert_to_usd(
            transaction.amount, transaction.currency
        )
        db.session.add(transaction)

    recurring_transaction.next_due_date = checked_next_due_date(
        occurrence_date,
        recurring_transaction.frequency,
        recurring_transaction.frequency_value,
        recurring_transaction.anchor_day,
    )
    recurring_transaction.last_processed = now

    if recurring_transaction.has_ended():
        recurring_transaction.is_active = False
        logger.info(
            f"Recurring transaction {recurring_transaction.id} reached its end date"
        )


def _error_entry(recurring_transaction_id, occurrence_date, error):
    logger.error(
        f"Error processing recurring transaction {recurring_transaction_id} "
        f"at {occurrence_date}: {str(error)}"
    )
    return {
        "recurring_transaction_id": str(recurring_transaction_id),
        "occurrence_date": occurrence_date.isoformat() if occurrence_date else None,
        "error_type": type(error).__name__,
        "error": str(error),
    }


def _process_recurring_transaction(recurring_transaction, as_of, converter, now, max_iterations):
    """
    Catch up a single recurring transaction.

    Returns:
        (processed_count, error_entry or None)
    """
    recurring_id = recurring_transaction.id
    processed = 0
    iterations = 0

    while recurring_transaction.is_due(as_of):
        occurrence_date = recurring_transaction.next_due_date

        if iterations >= max_iterations:
            error = CatchUpLimitExceeded(
                f"Stopped after {max_iterations} occurrences without reaching {as_of}",
                recurring_id,
            )
            return processed, _error_entry(recurring_id, occurrence_date, error)
        iterations += 1

        # Nothing left to generate once the schedule is past its end date
        if recurring_transaction.has_ended():
            recurring_transaction.is_active = False
            try:
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                return processed, _error_entry(
                    recurring_id, occurrence_date, PersistenceError(str(e), recurring_id)
                )
            logger.info(f"Recurring transaction {recurring_id} ended, deactivated")
            break

        try:
            _process_occurrence(recurring_transaction, occurrence_date, converter, now)
            db.session.commit()
        except (ConversionError, ScheduleError) as e:
            db.session.rollback()
            return processed, _error_entry(recurring_id, occurrence_date, e)
        except SQLAlchemyError as e:
            db.session.rollback()
            return processed, _error_entry(
                recurring_id, occurrence_date, PersistenceError(str(e), recurring_id)
            )

        processed += 1

    return processed, None


def process_due_transactions(as_of, converter, now=None):
    """
    Generate every due occurrence up to ``as_of``.

    Each occurrence commits together with the schedule update, so a failure
    leaves the failed item due for the next run while other items continue.

    Args:
        as_of: evaluation time; occurrences on or before it are processed
        converter: CurrencyService used to fill amount_usd
        now: timestamp stored in last_processed (defaults to datetime.now())

    Returns:
        (processed_count, errors) where skipped occurrences count as processed
        and errors is a list of per-item error dicts
    """
    now = now or datetime.now()
    max_iterations = _max_iterations()

    due_ids = [item.id for item in get_due_recurring_transactions(as_of)]
    logger.info(f"Found {len(due_ids)} due recurring transactions as of {as_of}")

    processed_count = 0
    errors = []

    for recurring_id in due_ids:
        recurring_transaction = db.session.get(RecurringTransaction, recurring_id)
        if recurring_transaction is None:
            logger.warning(f"Recurring transaction {recurring_id} not found")
            continue

        processed, error = _process_recurring_transaction(
            recurring_transaction, as_of, converter, now, max_iterations
        )
        processed_count += processed
        if error is not None:
            errors.append(error)

    logger.info(
        f"Processed {processed_count} occurrences as of {as_of} with {len(errors)} errors"
    )
    return processed_count, errors
