from datetime import datetime, timedelta

from cashflow.models.category import Category
from cashflow.models.transaction import Transaction


class TestRecurringCommands:
    def test_process(self, runner, monthly_rent):
        result = runner.invoke(args=["recurring", "process", "--as-of", "2026-01-15 09:00:00"])

        assert result.exit_code == 0
        assert "Processed 4 occurrences" in result.output
        assert Transaction.query.count() == 4

    def test_process_with_errors_exits_non_zero(self, runner, make_recurring):
        make_recurring(currency="GBP")

        result = runner.invoke(args=["recurring", "process", "--as-of", "2026-01-15 09:00:00"])

        assert result.exit_code == 1
        assert "ConversionError" in result.output

    def test_upcoming(self, runner, make_recurring):
        make_recurring(
            description="Gym membership",
            start_date=datetime.now() + timedelta(days=2),
        )

        result = runner.invoke(args=["recurring", "upcoming", "--days", "7"])

        assert result.exit_code == 0
        assert "Gym membership" in result.output

    def test_upcoming_nothing_due(self, runner):
        result = runner.invoke(args=["recurring", "upcoming"])

        assert result.exit_code == 0
        assert "Nothing due in the next 30 days" in result.output

    def test_project(self, runner, make_recurring):
        make_recurring(start_date=datetime(2026, 1, 15, 9, 0))

        result = runner.invoke(
            args=["recurring", "project", "--start", "2026-01-01", "--end", "2026-03-31"]
        )

        assert result.exit_code == 0
        assert "-300.00 USD" in result.output

    def test_project_rejects_reversed_window(self, runner):
        result = runner.invoke(
            args=["recurring", "project", "--start", "2026-03-31", "--end", "2026-01-01"]
        )

        assert result.exit_code != 0

    def test_seed_categories_is_idempotent(self, runner, expense_category):
        result = runner.invoke(args=["recurring", "seed-categories"])

        assert result.exit_code == 0
        assert Category.query.filter_by(name="Salary").count() == 1
        # "Rent" already existed
        assert Category.query.filter_by(name="Rent").count() == 1

        result = runner.invoke(args=["recurring", "seed-categories"])
        assert "Created 0 categories" in result.output
