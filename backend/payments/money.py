"""
Monetary precision helpers for bill calculations.

Key Principles:
1. NEVER use float for money
2. Quantize every computed amount to the currency's minor unit
3. Use ROUND_HALF_EVEN (banker's rounding) to prevent systematic bias
"""

from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import Union

# High precision for intermediate calculations
getcontext().prec = 28

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "INR": 2,  # Indian Rupee (paise)
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "AED": 2,
    "SGD": 2,
    "LKR": 2,
    "NPR": 2,
    "JPY": 0,  # no subunit
    "KWD": 3,  # fils
    "BHD": 3,
    "OMR": 3,
}


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places for a currency; unknown codes get 2.

        >>> currency_exponent("INR")
        2
        >>> currency_exponent("KWD")
        3
    """
    return CURRENCY_EXPONENT.get((currency or "").upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    """Smallest representable unit, e.g. Decimal('0.01') for INR."""
    return Decimal(10) ** -currency_exponent(currency)


def quantize(currency: str, amount: Union[Decimal, str, int, float]) -> Decimal:
    """
    Round to currency decimals using banker's rounding (ROUND_HALF_EVEN).

        >>> quantize("INR", "10.127")
        Decimal('10.13')
        >>> quantize("INR", "10.125")
        Decimal('10.12')
        >>> quantize("JPY", "1234.56")
        Decimal('1235')
    """
    if isinstance(amount, float):
        # Convert float to string first to avoid binary noise
        amount = str(amount)

    amount_decimal = Decimal(amount)
    return amount_decimal.quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)
