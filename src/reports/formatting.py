"""Money formatting for display."""

from decimal import Decimal
from typing import Union


CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
    "BRL": "R$",
}

# Currencies displayed without minor units
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def format_currency(amount: Union[Decimal, float, int], currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. 1234.5 USD -> "$1,234.50".

    Unknown currencies fall back to "XYZ 1234.50".
    """
    code = (currency or "").upper()
    value = float(amount)

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {value:.2f}"

    places = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.{places}f}"
