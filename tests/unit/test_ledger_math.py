"""Unit tests for period helpers and balance arithmetic."""

from datetime import date
from decimal import Decimal

import pytest

from patient_ledger.services.errors import ValidationError
from patient_ledger.services.ledger_math import (
    Period,
    compute_balance,
    next_period,
    payment_status,
    period_bounds,
    period_of,
    previous_period,
    to_money,
    validate_period,
)


class TestToMoney:
    """Tests for to_money conversion."""

    def test_quantizes_to_cents(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(3) == Decimal("3.00")
        assert to_money(Decimal("2.5")) == Decimal("2.50")

    def test_float_goes_through_str(self):
        """0.1 must not pick up binary float noise."""
        assert to_money(0.1) == Decimal("0.10")

    @pytest.mark.parametrize("value", ["abc", None, True, float("nan"), "Infinity"])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError, match="Invalid amount"):
            to_money(value)


class TestComputeBalance:
    """Tests for the balance formula."""

    def test_unpaid_fees_and_carry(self):
        assert compute_balance(Decimal("5000"), Decimal("3000"), Decimal("0")) == Decimal("8000.00")

    def test_partial_payment(self):
        assert compute_balance(Decimal("5000"), Decimal("0"), Decimal("2000")) == Decimal("3000.00")

    def test_overpayment_clamps_to_zero(self):
        assert compute_balance(Decimal("5000"), Decimal("0"), Decimal("7000")) == Decimal("0.00")

    def test_none_counts_as_zero(self):
        assert compute_balance(None, None, None) == Decimal("0.00")


class TestPeriods:
    """Tests for period validation and navigation."""

    def test_validate_period_returns_period(self):
        assert validate_period(1, 2025) == Period(1, 2025)

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_validate_period_rejects_month_out_of_range(self, month):
        with pytest.raises(ValidationError, match="Month must be between 1 and 12"):
            validate_period(month, 2025)

    @pytest.mark.parametrize("month, year", [("1", 2025), (1.0, 2025), (True, 2025), (1, "2025")])
    def test_validate_period_rejects_non_integers(self, month, year):
        with pytest.raises(ValidationError):
            validate_period(month, year)

    def test_validate_period_rejects_year_out_of_range(self):
        with pytest.raises(ValidationError, match="Year must be between"):
            validate_period(1, 1800)

    def test_next_period_rolls_over_december(self):
        assert next_period(12, 2025) == Period(1, 2026)
        assert next_period(1, 2025) == Period(2, 2025)

    def test_previous_period_rolls_back_january(self):
        assert previous_period(1, 2025) == Period(12, 2024)
        assert previous_period(3, 2025) == Period(2, 2025)

    def test_period_of_date(self):
        assert period_of(date(2025, 2, 28)) == Period(2, 2025)

    def test_period_bounds_handles_leap_year(self):
        assert period_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
        assert period_bounds(2, 2025) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_period_str(self):
        assert str(Period(3, 2025)) == "03/2025"


class TestPaymentStatus:
    """Tests for derived payment status."""

    def test_pending_when_nothing_paid(self):
        assert payment_status(Decimal("5000"), Decimal("0"), Decimal("0")) == "pending"

    def test_pending_when_nothing_due(self):
        assert payment_status(Decimal("0"), Decimal("0"), Decimal("0")) == "pending"

    def test_partial(self):
        assert payment_status(Decimal("5000"), Decimal("0"), Decimal("2000")) == "partial"

    def test_completed(self):
        assert payment_status(Decimal("5000"), Decimal("3000"), Decimal("8000")) == "completed"

    def test_overpaid(self):
        assert payment_status(Decimal("5000"), Decimal("0"), Decimal("5000.01")) == "overpaid"
