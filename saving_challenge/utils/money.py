"""
Unified money formatting for notification texts.

Usage:
    from saving_challenge.utils.money import format_money

    format_money(15000, "EGP")     -> "15 000 EGP"
    format_money(1200.50, "USD")   -> "1 200 USD"
    format_money("12.5", "EGP", 2) -> "12.50 EGP"
"""
from decimal import Decimal


def format_money(amount, currency: str = "EGP", decimals: int = 0) -> str:
    """
    Format an amount with space thousand separators and a currency suffix.

    Args:
        amount: int / float / Decimal / str
        currency: ISO currency code
        decimals: digits after the decimal point
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    formatted = fmt.format(amount).replace(",", " ")
    return f"{formatted} {currency}"


def format_amount(amount, currency: str = "EGP") -> str:
    """Whole amounts without decimals, fractional amounts with two."""
    amount = Decimal(str(amount))
    decimals = 0 if amount == amount.to_integral_value() else 2
    return format_money(amount, currency, decimals=decimals)
