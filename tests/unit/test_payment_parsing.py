"""Unit tests for payment input parsing."""

from datetime import date, datetime

import pytest

from patient_ledger.models import PaymentMode
from patient_ledger.services.errors import ValidationError
from patient_ledger.services.payment_service import parse_payment_date, parse_payment_mode


class TestParsePaymentDate:
    def test_accepts_date(self):
        assert parse_payment_date(date(2025, 1, 15)) == date(2025, 1, 15)

    def test_accepts_datetime(self):
        assert parse_payment_date(datetime(2025, 1, 15, 10, 30)) == date(2025, 1, 15)

    def test_accepts_iso_string(self):
        assert parse_payment_date(" 2025-01-15 ") == date(2025, 1, 15)

    @pytest.mark.parametrize("value", ["15/01/2025", "2025-02-30", "", 20250115])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValidationError, match="Malformed payment date"):
            parse_payment_date(value)

    def test_rejects_missing(self):
        with pytest.raises(ValidationError, match="required"):
            parse_payment_date(None)


class TestParsePaymentMode:
    @pytest.mark.parametrize(
        "value, expected",
        [("Cash", PaymentMode.CASH), ("upi", PaymentMode.UPI), ("BANK", PaymentMode.BANK), ("cheque", PaymentMode.CHEQUE)],
    )
    def test_case_insensitive(self, value, expected):
        assert parse_payment_mode(value) is expected

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValidationError, match="Must be one of: Cash, Bank, UPI, Cheque"):
            parse_payment_mode("Crypto")
