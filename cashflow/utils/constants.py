from decimal import Decimal

AMOUNT_MIN_VALUE = Decimal("0.01")
AMOUNT_MAX_VALUE = Decimal("99999999.99")

FREQUENCY_VALUE_MAX = 999

MAX_PAGE_SIZE = 100

DATE_FORMAT = "%Y-%m-%d"

# Every currency the converter knows how to name
AVAILABLE_CURRENCIES = [
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "AED", "CNY", "INR", "KRW", "SGD", "HKD", "NOK", "SEK",
    "DKK", "PLN", "CZK", "HUF", "RON", "BGN", "RUB", "TRY",
    "BRL", "MXN", "ARS", "CLP", "COP", "PEN", "UYU", "ZAR",
    "THB", "MYR", "IDR", "PHP", "VND",
]
