"""Supported order currencies and their exchange rates.

Catalog prices are stored in USD; an order placed in another currency
converts each unit price with the rate below (units of currency per USD).
"""

from typing import TypedDict


class CurrencyInfo(TypedDict):
    """Static metadata for a supported currency."""

    name: str
    symbol: str
    exchange_rate: float


FALLBACK_CURRENCY = "USD"

SUPPORTED_CURRENCIES: dict[str, CurrencyInfo] = {
    "USD": {"name": "US Dollar", "symbol": "$", "exchange_rate": 1.0},
    "EUR": {"name": "Euro", "symbol": "€", "exchange_rate": 0.92},
    "GBP": {"name": "British Pound", "symbol": "£", "exchange_rate": 0.79},
    "AED": {"name": "UAE Dirham", "symbol": "د.إ", "exchange_rate": 3.6725},
    "SAR": {"name": "Saudi Riyal", "symbol": "﷼", "exchange_rate": 3.75},
    "QAR": {"name": "Qatari Riyal", "symbol": "ر.ق", "exchange_rate": 3.64},
    "KWD": {"name": "Kuwaiti Dinar", "symbol": "د.ك", "exchange_rate": 0.307},
    "BHD": {"name": "Bahraini Dinar", "symbol": ".د.ب", "exchange_rate": 0.376},
    "OMR": {"name": "Omani Rial", "symbol": "ر.ع.", "exchange_rate": 0.385},
    "JOD": {"name": "Jordanian Dinar", "symbol": "د.ا", "exchange_rate": 0.709},
    "LBP": {"name": "Lebanese Pound", "symbol": "ل.ل", "exchange_rate": 89500.0},
    "EGP": {"name": "Egyptian Pound", "symbol": "E£", "exchange_rate": 48.5},
    "IQD": {"name": "Iraqi Dinar", "symbol": "ع.د", "exchange_rate": 1310.0},
    "ILS": {"name": "Israeli Shekel", "symbol": "₪", "exchange_rate": 3.7},
}


def normalize_code(code: str | None) -> str:
    """Uppercase and strip a currency code."""
    return (code or "").strip().upper()


def is_supported(code: str | None) -> bool:
    """Check whether a currency code can be used for orders."""
    return normalize_code(code) in SUPPORTED_CURRENCIES


def get_exchange_rate(code: str) -> float:
    """Get the USD exchange rate for a supported currency.

    Raises:
        KeyError: If the currency is not supported.
    """
    return SUPPORTED_CURRENCIES[normalize_code(code)]["exchange_rate"]
