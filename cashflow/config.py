import os
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _parse_list(value):
    """Split a comma separated env value into upper-cased codes"""
    return [item.strip().upper() for item in value.split(",") if item.strip()]


def _parse_rates(value):
    """Parse 'AED:3.6725,EUR:0.92' into {'AED': Decimal('3.6725'), ...}"""
    rates = {}
    for pair in value.split(","):
        if not pair.strip():
            continue
        code, _, rate = pair.partition(":")
        rates[code.strip().upper()] = Decimal(rate.strip())
    return rates


class Config:
    """Base configuration class."""

    SECRET_KEY = os.getenv("SECRET_KEY", "secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///cashflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False  # Required for Flask-SQLAlchemy
    FLASK_ENV = os.getenv("FLASK_ENV")
    FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False") == "True"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Celery
    CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    CELERY_RESULT_BACKEND = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/0"
    )
    CELERY_TASK_ALWAYS_EAGER = False

    # Currency
    BASE_CURRENCY = "USD"
    ENABLED_CURRENCIES = _parse_list(os.getenv("ENABLED_CURRENCIES", "USD,EUR,AED"))
    FIXED_EXCHANGE_RATES = _parse_rates(
        os.getenv("FIXED_EXCHANGE_RATES", "AED:3.6725")
    )
    EXCHANGE_RATE_TTL_SECONDS = int(os.getenv("EXCHANGE_RATE_TTL_SECONDS", "3600"))

    # Recurring transactions
    RECURRING_MAX_CATCH_UP_ITERATIONS = int(
        os.getenv("RECURRING_MAX_CATCH_UP_ITERATIONS", "10000")
    )
    RECURRING_MAX_PROJECTION_OCCURRENCES = int(
        os.getenv("RECURRING_MAX_PROJECTION_OCCURRENCES", "20000")
    )
    RECURRING_PROCESS_INTERVAL_MINUTES = int(
        os.getenv("RECURRING_PROCESS_INTERVAL_MINUTES", "5")
    )
    UPCOMING_DEFAULT_DAYS = int(os.getenv("UPCOMING_DEFAULT_DAYS", "30"))


class TestConfig(Config):
    """Test configuration."""

    TESTING = True

    # In-memory database, recreated for every test
    SQLALCHEMY_DATABASE_URI = "sqlite://"

    ENABLED_CURRENCIES = ["USD", "EUR", "AED"]
    FIXED_EXCHANGE_RATES = {"AED": Decimal("3.6725")}

    # Small cap so runaway loops surface quickly in tests
    RECURRING_MAX_CATCH_UP_ITERATIONS = 500

    # Run Celery tasks synchronously for testing
    CELERY_TASK_ALWAYS_EAGER = True
