"""
Money primitives

Pure helpers shared by every ledger component. Amounts are Decimal with two
places; floats never reach the arithmetic.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from core.exceptions import InvalidAmount

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

AmountLike = Union[Decimal, int, float, str]


def to_amount(value: Optional[AmountLike]) -> Decimal:
    """
    Coerce a value into a two-place Decimal amount

    Floats go through str() first so 0.1 becomes Decimal("0.10"), not the
    binary approximation.

    Raises:
        InvalidAmount: value is None, not numeric, NaN, infinite or too large
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")

    # quantize fails once the digits exceed the decimal context precision
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount(f"Amount out of range: {value!r}")


def require_positive(value: AmountLike, what: str = "amount") -> Decimal:
    """Amount must be strictly greater than zero (buy-ins, blinds)"""
    amount = to_amount(value)
    if amount <= ZERO:
        raise InvalidAmount(f"{what} must be greater than 0, got {amount}")
    return amount


def require_non_negative(value: AmountLike, what: str = "amount") -> Decimal:
    """Amount may be zero but not negative (cash-outs, chip counts)"""
    amount = to_amount(value)
    if amount < ZERO:
        raise InvalidAmount(f"{what} must not be negative, got {amount}")
    return amount


def sum_amounts(amounts: Iterable[Optional[AmountLike]]) -> Decimal:
    """Sum amounts, treating None as zero"""
    total = ZERO
    for amount in amounts:
        if amount is None:
            continue
        total += to_amount(amount)
    return total


def clamp_at_zero(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO
