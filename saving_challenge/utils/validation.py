"""
Validation utilities
"""
import re
from decimal import Decimal, InvalidOperation

from saving_challenge.domain.errors import SavingValidationError


def normalize_decimal_input(value: str) -> str:
    """
    Normalize an amount string: comma decimal separator becomes a dot.

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.strip().replace(",", ".")


def parse_saving_amount(value, max_decimal_places: int = 2) -> Decimal:
    """
    Validate a saving amount and return it as a Decimal.

    Accepts Decimal, int, float or a string with dot or comma separator.

    Raises:
        SavingValidationError: not a number, not positive, or too many decimals

    Example:
        >>> parse_saving_amount("100,50")
        Decimal('100.50')
    """
    normalized = normalize_decimal_input(str(value))
    try:
        amount = Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise SavingValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise SavingValidationError(f"Invalid amount: {value!r}")

    pattern = rf"^\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        if amount <= 0:
            raise SavingValidationError("Amount must be positive")
        raise SavingValidationError(f"At most {max_decimal_places} decimal places allowed")
    if amount <= 0:
        raise SavingValidationError("Amount must be positive")
    return amount
