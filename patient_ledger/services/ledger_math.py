"""Pure helpers for ledger periods and balance arithmetic.

All amounts are Decimal and quantized to cents. Nothing here touches the
database, so both the ORM models and the services share one definition of
the balance formula.
"""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import NamedTuple

from patient_ledger.services.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MIN_YEAR = 1900
MAX_YEAR = 9999


class Period(NamedTuple):
    """A (month, year) ledger period."""

    month: int
    year: int

    def __str__(self) -> str:
        return f"{self.month:02d}/{self.year}"


def to_money(value) -> Decimal:
    """Convert a number or numeric string to a cent-quantized Decimal.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_balance(total_fees, carry_forward_in, total_paid) -> Decimal:
    """Balance = max(0, total_fees + carry_forward_in - total_paid).

    Overpayment clamps to zero; the surplus is not carried as credit.
    """
    due = to_money(total_fees or 0) + to_money(carry_forward_in or 0) - to_money(total_paid or 0)
    return due if due > ZERO else ZERO


def validate_period(month, year) -> Period:
    """Validate a month/year pair.

    Raises:
        ValidationError: If month is outside 1..12 or year is out of range
    """
    if isinstance(month, bool) or not isinstance(month, int):
        raise ValidationError(f"Month must be an integer, got {month!r}")
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError(f"Year must be an integer, got {year!r}")
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")
    return Period(month, year)


def period_of(day: date) -> Period:
    """Ledger period a calendar date belongs to."""
    return Period(day.month, day.year)


def next_period(month: int, year: int) -> Period:
    """Period following (month, year); December rolls over to January."""
    if month == 12:
        return Period(1, year + 1)
    return Period(month + 1, year)


def previous_period(month: int, year: int) -> Period:
    """Period preceding (month, year); January rolls back to December."""
    if month == 1:
        return Period(12, year - 1)
    return Period(month - 1, year)


def period_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last calendar day of a period."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def payment_status(total_fees, carry_forward_in, total_paid) -> str:
    """Derive a display status for a ledger record.

    Returns:
        'overpaid' when more was paid than was due, 'completed' when the
        balance is settled, 'partial' when something was paid but a balance
        remains, otherwise 'pending'
    """
    due = to_money(total_fees or 0) + to_money(carry_forward_in or 0)
    paid = to_money(total_paid or 0)
    if paid > due:
        return "overpaid"
    if compute_balance(total_fees, carry_forward_in, total_paid) == ZERO:
        return "completed" if due > ZERO else "pending"
    if paid > ZERO:
        return "partial"
    return "pending"


__all__ = [
    "CENT",
    "ZERO",
    "Period",
    "to_money",
    "compute_balance",
    "validate_period",
    "period_of",
    "next_period",
    "previous_period",
    "period_bounds",
    "payment_status",
]
