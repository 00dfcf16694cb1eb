import pytest
from datetime import datetime

from cashflow.services.due_date import (
    add_months,
    next_due_date,
    checked_next_due_date,
    advance_past,
    describe_frequency,
)
from cashflow.utils.enums import TransactionFrequency
from cashflow.utils.exceptions import ScheduleError, CatchUpLimitExceeded


class TestNextDueDate:
    def test_daily_keeps_time_of_day(self):
        result = next_due_date(
            datetime(2026, 1, 15, 9, 30), TransactionFrequency.DAILY, 3
        )
        assert result == datetime(2026, 1, 18, 9, 30)

    def test_every_two_weeks(self):
        result = next_due_date(
            datetime(2026, 1, 15, 9, 0), TransactionFrequency.WEEKLY, 2
        )
        assert result == datetime(2026, 1, 29, 9, 0)

    def test_monthly_rolls_over_year(self):
        result = next_due_date(datetime(2025, 12, 15), TransactionFrequency.MONTHLY)
        assert result == datetime(2026, 1, 15)

    def test_month_end_clamps_and_recovers_anchor(self):
        first = next_due_date(
            datetime(2025, 1, 31), TransactionFrequency.MONTHLY, anchor_day=31
        )
        second = next_due_date(first, TransactionFrequency.MONTHLY, anchor_day=31)

        assert first == datetime(2025, 2, 28)
        assert second == datetime(2025, 3, 31)

    def test_month_end_in_leap_year(self):
        result = next_due_date(
            datetime(2024, 1, 31), TransactionFrequency.MONTHLY, anchor_day=31
        )
        assert result == datetime(2024, 2, 29)

    def test_yearly_from_leap_day(self):
        first = next_due_date(
            datetime(2024, 2, 29), TransactionFrequency.YEARLY, anchor_day=29
        )
        later = next_due_date(first, TransactionFrequency.YEARLY, 3, anchor_day=29)

        assert first == datetime(2025, 2, 28)
        assert later == datetime(2028, 2, 29)

    def test_without_anchor_uses_current_day(self):
        result = add_months(datetime(2025, 2, 28), 1)
        assert result == datetime(2025, 3, 28)

    @pytest.mark.parametrize("frequency_value", [0, -1, None])
    def test_invalid_frequency_value(self, frequency_value):
        with pytest.raises(ValueError):
            next_due_date(datetime(2026, 1, 1), TransactionFrequency.DAILY, frequency_value)

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            next_due_date(datetime(2026, 1, 1), "HOURLY")

    @pytest.mark.parametrize("frequency", list(TransactionFrequency))
    def test_strictly_increasing(self, frequency):
        current = datetime(2024, 1, 31, 23, 59)
        for _ in range(30):
            following = next_due_date(current, frequency, anchor_day=31)
            assert following > current
            current = following


class TestCheckedNextDueDate:
    def test_rejects_non_advancing_result(self, mocker):
        stuck = datetime(2026, 1, 15)
        mocker.patch("cashflow.services.due_date.next_due_date", return_value=stuck)

        with pytest.raises(ScheduleError):
            checked_next_due_date(stuck, TransactionFrequency.DAILY)


class TestAdvancePast:
    def test_exclusive_skips_limit(self):
        result = advance_past(
            datetime(2026, 1, 1), datetime(2026, 3, 1), TransactionFrequency.MONTHLY
        )
        assert result == datetime(2026, 4, 1)

    def test_inclusive_stops_at_limit(self):
        result = advance_past(
            datetime(2026, 1, 1),
            datetime(2026, 3, 1),
            TransactionFrequency.MONTHLY,
            inclusive=True,
        )
        assert result == datetime(2026, 3, 1)

    def test_already_past_limit_is_unchanged(self):
        start = datetime(2026, 5, 1)
        assert advance_past(start, datetime(2026, 3, 1), TransactionFrequency.DAILY) == start

    def test_iteration_cap(self):
        with pytest.raises(CatchUpLimitExceeded):
            advance_past(
                datetime(2000, 1, 1),
                datetime(2026, 1, 1),
                TransactionFrequency.DAILY,
                max_iterations=10,
            )


class TestDescribeFrequency:
    def test_single_period(self):
        assert describe_frequency(TransactionFrequency.MONTHLY) == "Monthly"

    def test_multiple_periods(self):
        assert describe_frequency(TransactionFrequency.WEEKLY, 2) == "Every 2 weeks"
