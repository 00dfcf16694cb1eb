import threading
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from flask import current_app

from cashflow.utils.exceptions import ConversionError
from cashflow.utils.constants import AVAILABLE_CURRENCIES
from cashflow.utils.logger import logger


CENTS = Decimal("0.01")


class RateCache:
    """
    Currency -> (rate, fetched_at) map with a freshness window.

    Rates are units of the currency per one unit of the base currency.
    """

    def __init__(self, ttl_seconds=3600, clock=datetime.now):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._rates = {}
        self._lock = threading.Lock()

    def get(self, currency):
        """Return the cached rate if still fresh, otherwise None"""
        with self._lock:
            entry = self._rates.get(currency)
        if entry is None:
            return None
        rate, fetched_at = entry
        if self._clock() - fetched_at >= self.ttl:
            return None
        return rate

    def put(self, currency, rate):
        with self._lock:
            self._rates[currency] = (Decimal(str(rate)), self._clock())

    def invalidate(self, currency=None):
        with self._lock:
            if currency is None:
                self._rates.clear()
            else:
                self._rates.pop(currency, None)


class CurrencyService:
    """
    Converts amounts between the base currency (USD) and other currencies.

    Rate lookup order: base currency, fixed rates from configuration, fresh
    cache entry, then the injected ``rate_provider`` callable
    (``rate_provider(code) -> rate``) whose result is cached.
    """

    def __init__(
        self,
        base_currency="USD",
        fixed_rates=None,
        enabled_currencies=None,
        rate_provider=None,
        cache=None,
    ):
        self.base_currency = base_currency
        self.fixed_rates = {
            code.upper(): Decimal(str(rate)) for code, rate in (fixed_rates or {}).items()
        }
        self.enabled_currencies = list(enabled_currencies or [base_currency])
        self.rate_provider = rate_provider
        self.cache = cache or RateCache()

    def get_exchange_rate(self, currency):
        currency = (currency or "").upper()

        if currency == self.base_currency:
            return Decimal("1")

        if currency in self.fixed_rates:
            return self.fixed_rates[currency]

        cached = self.cache.get(currency)
        if cached is not None:
            return cached

        return self.refresh(currency)

    def refresh(self, currency):
        """Fetch a new rate from the provider and store it in the cache"""
        currency = (currency or "").upper()

        if self.rate_provider is None:
            raise ConversionError(f"No exchange rate available for {currency}")

        try:
            rate = Decimal(str(self.rate_provider(currency)))
        except ConversionError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch exchange rate for {currency}: {str(e)}")
            raise ConversionError(f"Failed to fetch exchange rate for {currency}: {str(e)}")

        if rate <= 0:
            raise ConversionError(f"Invalid exchange rate {rate} for {currency}")

        self.cache.put(currency, rate)
        logger.debug(f"Cached exchange rate {currency}={rate}")
        return rate

    def convert_to_usd(self, amount, currency):
        """Convert ``amount`` in ``currency`` to the base currency"""
        amount = Decimal(str(amount))
        rate = self.get_exchange_rate(currency)
        return (amount / rate).quantize(CENTS, rounding=ROUND_HALF_UP)

    def convert_from_usd(self, amount, currency):
        amount = Decimal(str(amount))
        rate = self.get_exchange_rate(currency)
        return (amount * rate).quantize(CENTS, rounding=ROUND_HALF_UP)

    def get_supported_currencies(self):
        return list(self.enabled_currencies)

    def is_supported(self, currency):
        return (currency or "").upper() in self.enabled_currencies

    @staticmethod
    def get_all_available_currencies():
        return list(AVAILABLE_CURRENCIES)


def currency_service_from_config(config, rate_provider=None):
    """Build the app-owned CurrencyService from Flask config"""
    return CurrencyService(
        base_currency=config.get("BASE_CURRENCY", "USD"),
        fixed_rates=config.get("FIXED_EXCHANGE_RATES"),
        enabled_currencies=config.get("ENABLED_CURRENCIES"),
        rate_provider=rate_provider,
        cache=RateCache(ttl_seconds=config.get("EXCHANGE_RATE_TTL_SECONDS", 3600)),
    )


def get_currency_service():
    """The CurrencyService owned by the running Flask app"""
    return current_app.extensions["currency_service"]
