import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError

from cashflow.models.transaction import Transaction
from cashflow.services.currency import CurrencyService, RateCache
from cashflow.services.recurring_transaction import (
    process_due_transactions,
    skip_occurrence,
    modify_occurrence,
    get_active_recurring_transactions,
    get_due_recurring_transactions,
)
from cashflow.utils.enums import TransactionFrequency, TransactionType, ScheduleState


def generated_for(recurring_transaction):
    return (
        Transaction.query.filter_by(recurring_transaction_id=recurring_transaction.id)
        .order_by(Transaction.transaction_at)
        .all()
    )


class TestProcessDueTransactions:
    def test_single_due_occurrence(self, make_recurring, converter, now):
        item = make_recurring(amount=Decimal("100.00"))

        processed_count, errors = process_due_transactions(now, converter, now=now)

        assert processed_count == 1
        assert errors == []
        transactions = generated_for(item)
        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("100.00")
        assert transactions[0].amount_usd == Decimal("100.00")
        assert transactions[0].transaction_at == now
        assert transactions[0].type == TransactionType.EXPENSE
        assert transactions[0].category_id == item.category_id
        assert transactions[0].description == item.description
        assert item.next_due_date == datetime(2026, 2, 15, 9, 0)
        assert item.last_processed == now

    def test_reprocessing_same_time_is_idempotent(self, make_recurring, converter, now):
        item = make_recurring()

        process_due_transactions(now, converter)
        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 0
        assert errors == []
        assert len(generated_for(item)) == 1

    def test_catches_up_missed_occurrences(self, monthly_rent, converter, now):
        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 4
        assert errors == []
        assert [t.transaction_at for t in generated_for(monthly_rent)] == [
            datetime(2025, 10, 15, 9, 0),
            datetime(2025, 11, 15, 9, 0),
            datetime(2025, 12, 15, 9, 0),
            datetime(2026, 1, 15, 9, 0),
        ]
        assert monthly_rent.next_due_date == datetime(2026, 2, 15, 9, 0)
        assert monthly_rent.schedule_state(now) == ScheduleState.ACTIVE_PENDING

    def test_not_yet_started_item_is_left_alone(self, future_salary, converter, now):
        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 0
        assert generated_for(future_salary) == []
        assert future_salary.next_due_date == datetime(2026, 2, 1, 9, 0)

    def test_paused_item_is_not_processed(self, make_recurring, converter, now):
        item = make_recurring(is_active=False)

        processed_count, _ = process_due_transactions(now, converter)

        assert processed_count == 0
        assert generated_for(item) == []

    def test_foreign_currency_gets_usd_amount(self, make_recurring, converter, now):
        item = make_recurring(amount=Decimal("367.25"), currency="AED")

        process_due_transactions(now, converter)

        transaction = generated_for(item)[0]
        assert transaction.amount == Decimal("367.25")
        assert transaction.currency == "AED"
        assert transaction.amount_usd == Decimal("100.00")


class TestOverridesDuringProcessing:
    def test_skipped_occurrence_counts_but_creates_nothing(
        self, make_recurring, converter, now
    ):
        item = make_recurring()
        skip_occurrence(item.id, now, "vacation")

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 1
        assert errors == []
        assert generated_for(item) == []
        assert item.next_due_date == datetime(2026, 2, 15, 9, 0)

    def test_skip_in_the_middle_of_catch_up(self, monthly_rent, converter, now):
        skip_occurrence(monthly_rent.id, datetime(2025, 11, 15), "holiday")

        processed_count, _ = process_due_transactions(now, converter)

        assert processed_count == 4
        dates = [t.transaction_at.date() for t in generated_for(monthly_rent)]
        assert datetime(2025, 11, 15).date() not in dates
        assert len(dates) == 3

    def test_modified_amount_keeps_other_fields(self, monthly_rent, converter, now):
        modify_occurrence(monthly_rent.id, datetime(2025, 12, 15), amount=Decimal("1200"))

        process_due_transactions(now, converter)

        transactions = {t.transaction_at.date(): t for t in generated_for(monthly_rent)}
        modified = transactions[datetime(2025, 12, 15).date()]
        assert modified.amount == Decimal("1200.00")
        assert modified.amount_usd == Decimal("1200.00")
        assert modified.description == "Rent"
        assert transactions[datetime(2025, 11, 15).date()].amount == Decimal("1000.00")

    def test_modified_description_keeps_amount(self, make_recurring, converter, now):
        item = make_recurring(amount=Decimal("50.00"))
        modify_occurrence(item.id, now.date(), description="Annual price change")

        process_due_transactions(now, converter)

        transaction = generated_for(item)[0]
        assert transaction.description == "Annual price change"
        assert transaction.amount == Decimal("50.00")


class TestEndDate:
    def test_deactivates_after_last_occurrence(self, make_recurring, converter, now):
        item = make_recurring(
            frequency=TransactionFrequency.DAILY,
            start_date=datetime(2026, 1, 10, 9, 0),
            end_date=datetime(2026, 1, 12, 9, 0),
        )

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 3
        assert errors == []
        assert item.is_active is False
        assert item.schedule_state(now) == ScheduleState.ENDED
        assert item not in get_active_recurring_transactions()
        assert item not in get_due_recurring_transactions(now)

    def test_never_generates_after_end_date(self, make_recurring, converter, now):
        item = make_recurring(
            frequency=TransactionFrequency.DAILY,
            start_date=datetime(2026, 1, 10, 9, 0),
            end_date=datetime(2026, 1, 12, 0, 0),
        )

        processed_count, _ = process_due_transactions(now, converter)

        assert processed_count == 2
        assert max(t.transaction_at for t in generated_for(item)) <= item.end_date
        assert item.is_active is False

    def test_item_already_past_end_is_deactivated_without_output(
        self, make_recurring, converter, now
    ):
        item = make_recurring(
            frequency=TransactionFrequency.DAILY,
            start_date=datetime(2026, 1, 1, 9, 0),
            end_date=datetime(2026, 1, 5, 9, 0),
            next_due_date=datetime(2026, 1, 6, 9, 0),
        )

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 0
        assert errors == []
        assert item.is_active is False


class TestFailures:
    def test_conversion_failure_keeps_item_due_and_continues(
        self, make_recurring, monthly_rent, converter, now
    ):
        pounds = make_recurring(currency="GBP", description="UK subscription")

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 4
        assert len(errors) == 1
        assert errors[0]["recurring_transaction_id"] == str(pounds.id)
        assert errors[0]["error_type"] == "ConversionError"
        assert errors[0]["occurrence_date"] == now.isoformat()
        assert generated_for(pounds) == []
        assert pounds.next_due_date == now
        assert pounds.last_processed is None
        assert len(generated_for(monthly_rent)) == 4

    def test_failure_mid_catch_up_keeps_earlier_occurrences(
        self, make_recurring, mocker, now
    ):
        provider = mocker.Mock(side_effect=[Decimal("0.8"), OSError("offline")])
        converter = CurrencyService(
            rate_provider=provider,
            enabled_currencies=["USD", "EUR"],
            cache=RateCache(ttl_seconds=0),
        )
        item = make_recurring(
            amount=Decimal("80.00"),
            currency="EUR",
            start_date=datetime(2025, 10, 15, 9, 0),
        )

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 1
        assert errors[0]["occurrence_date"] == "2025-11-15T09:00:00"
        assert [t.amount_usd for t in generated_for(item)] == [Decimal("100.00")]
        assert item.next_due_date == datetime(2025, 11, 15, 9, 0)

    def test_unexpected_provider_error_is_contained(
        self, make_recurring, monthly_rent, mocker, now
    ):
        converter = CurrencyService(
            rate_provider=mocker.Mock(side_effect=RuntimeError("rate api 503")),
            enabled_currencies=["USD", "EUR"],
        )
        euros = make_recurring(currency="EUR", description="EU subscription")

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 4
        assert len(errors) == 1
        assert errors[0]["recurring_transaction_id"] == str(euros.id)
        assert errors[0]["error_type"] == "ConversionError"
        assert euros.next_due_date == now
        assert len(generated_for(monthly_rent)) == 4

    def test_persistence_failure_is_reported(self, monthly_rent, converter, mocker, now):
        mocker.patch(
            "cashflow.services.recurring_transaction._process_occurrence",
            side_effect=SQLAlchemyError("database is locked"),
        )

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 0
        assert errors[0]["error_type"] == "PersistenceError"
        assert monthly_rent.next_due_date == datetime(2025, 10, 15, 9, 0)

    def test_iteration_cap_stops_runaway_catch_up(self, make_recurring, converter, now):
        item = make_recurring(
            amount=Decimal("1.00"),
            frequency=TransactionFrequency.DAILY,
            start_date=datetime(2024, 1, 1, 9, 0),
        )

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 500
        assert errors[0]["error_type"] == "CatchUpLimitExceeded"
        assert item.next_due_date == datetime(2024, 1, 1, 9, 0) + timedelta(days=500)

        processed_count, errors = process_due_transactions(now, converter)

        assert processed_count == 246
        assert errors == []
        assert item.next_due_date == datetime(2026, 1, 16, 9, 0)
