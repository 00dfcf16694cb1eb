import os
import pytest
from datetime import datetime
from decimal import Decimal

# Set environment to testing
os.environ["FLASK_ENV"] = "testing"

from cashflow import create_app
from cashflow.config import TestConfig
from cashflow.extensions import db
from cashflow.models.category import Category
from cashflow.models.recurring_transaction import RecurringTransaction
from cashflow.services.currency import CurrencyService
from cashflow.utils.enums import TransactionType, TransactionFrequency


# Fixed clock used by every engine test
NOW = datetime(2026, 1, 15, 9, 0)


@pytest.fixture
def app():
    """Create a Flask app with a fresh in-memory database for each test."""
    test_app = create_app(TestConfig)

    # A request context makes url_for usable in tests
    with test_app.test_request_context():
        db.create_all()

        yield test_app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def db_session(app):
    return db.session


@pytest.fixture
def client(app):
    """Flask test client for API requests."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Click runner for the flask CLI commands."""
    return app.test_cli_runner()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def converter(app):
    """The app-owned converter: USD base, fixed AED rate, no live provider."""
    return app.extensions["currency_service"]


@pytest.fixture
def eur_converter():
    return CurrencyService(
        fixed_rates={"AED": Decimal("3.6725"), "EUR": Decimal("0.8")},
        enabled_currencies=["USD", "EUR", "AED"],
    )


@pytest.fixture
def income_category(db_session):
    category = Category(name="Salary", type=TransactionType.INCOME)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def expense_category(db_session):
    category = Category(name="Rent", type=TransactionType.EXPENSE)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def make_recurring(db_session, expense_category):
    """Factory storing a recurring transaction with sensible defaults."""

    def _make(**overrides):
        values = {
            "amount": Decimal("100.00"),
            "currency": "USD",
            "description": "Recurring test item",
            "type": TransactionType.EXPENSE,
            "frequency": TransactionFrequency.MONTHLY,
            "frequency_value": 1,
            "start_date": NOW,
            "category_id": expense_category.id,
            "is_active": True,
        }
        values.update(overrides)
        values.setdefault("next_due_date", values["start_date"])

        recurring_transaction = RecurringTransaction(**values)
        db_session.add(recurring_transaction)
        db_session.commit()
        return recurring_transaction

    return _make


@pytest.fixture
def monthly_rent(make_recurring):
    """Monthly 1000 USD expense that started three months before NOW."""
    return make_recurring(
        amount=Decimal("1000.00"),
        description="Rent",
        start_date=datetime(2025, 10, 15, 9, 0),
    )


@pytest.fixture
def future_salary(make_recurring, income_category):
    """Monthly income that starts after NOW, so nothing is due yet."""
    return make_recurring(
        amount=Decimal("5000.00"),
        description="Salary",
        type=TransactionType.INCOME,
        category_id=income_category.id,
        start_date=datetime(2026, 2, 1, 9, 0),
    )
