"""Integration tests for recording payments against ledger records."""

import itertools
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from patient_ledger.models import LedgerRecord, PaymentEvent, PaymentMode
from patient_ledger.services.errors import NotFoundError, StorageError, ValidationError
from patient_ledger.services.ledger_math import compute_balance
from patient_ledger.services.patient_service import PatientService
from patient_ledger.services.payment_service import PaymentService


def get_record(db_session, patient_id, month, year):
    return db_session.execute(
        select(LedgerRecord).where(
            LedgerRecord.patient_id == patient_id,
            LedgerRecord.month == month,
            LedgerRecord.year == year,
        )
    ).scalar_one_or_none()


def count_events(db_session):
    return db_session.execute(select(func.count()).select_from(PaymentEvent)).scalar_one()


class TestRecordPayment:
    """Test applying single payments."""

    def test_first_payment_creates_record(self, db_session, patient):
        """A payment in a period with no record seeds it from the billing basis."""
        event = PaymentService(db_session).record_payment(
            patient.id, Decimal("2000"), date(2025, 1, 15), "Cash"
        )

        assert event.id is not None
        record = get_record(db_session, patient.id, 1, 2025)
        assert record.total_fees == Decimal("5000.00")
        assert record.total_paid == Decimal("2000.00")
        assert record.carry_forward_in == Decimal("0.00")
        assert record.balance == Decimal("3000.00")

    def test_payment_event_fields(self, db_session, patient):
        event = PaymentService(db_session).record_payment(
            patient.id,
            "1500.50",
            "2025-03-02",
            "upi",
            notes="Paid by son",
            type="advance",
        )

        stored = db_session.get(PaymentEvent, event.id)
        assert stored.patient_id == patient.id
        assert stored.payment_date == date(2025, 3, 2)
        assert stored.amount == Decimal("1500.50")
        assert stored.payment_mode == "UPI"
        assert stored.type == "advance"
        assert stored.notes == "Paid by son"

    def test_second_payment_increments_existing_record(self, db_session, patient):
        service = PaymentService(db_session)
        service.record_payment(patient.id, Decimal("2000"), date(2025, 1, 5), "Cash")
        service.record_payment(patient.id, Decimal("1000"), date(2025, 1, 20), "Bank")

        records = db_session.execute(
            select(LedgerRecord).where(LedgerRecord.patient_id == patient.id)
        ).scalars().all()
        assert len(records) == 1
        assert records[0].total_paid == Decimal("3000.00")
        assert records[0].balance == Decimal("2000.00")

    def test_payment_lands_in_period_of_payment_date(self, db_session, patient):
        service = PaymentService(db_session)
        service.record_payment(patient.id, Decimal("100"), date(2025, 1, 31), "Cash")
        service.record_payment(patient.id, Decimal("200"), date(2025, 2, 1), "Cash")

        assert get_record(db_session, patient.id, 1, 2025).total_paid == Decimal("100.00")
        assert get_record(db_session, patient.id, 2, 2025).total_paid == Decimal("200.00")

    def test_payment_never_touches_carry_forward(self, db_session, patient):
        record = LedgerRecord(
            patient_id=patient.id,
            month=2,
            year=2025,
            total_fees=Decimal("5000"),
            total_paid=Decimal("0"),
            carry_forward_in=Decimal("3000"),
            balance=Decimal("8000"),
        )
        db_session.add(record)
        db_session.commit()

        PaymentService(db_session).record_payment(patient.id, Decimal("8000"), date(2025, 2, 10), "Cash")

        record = get_record(db_session, patient.id, 2, 2025)
        assert record.carry_forward_in == Decimal("3000.00")
        assert record.total_paid == Decimal("8000.00")
        assert record.balance == Decimal("0.00")

    def test_overpayment_clamps_balance(self, db_session, patient):
        PaymentService(db_session).record_payment(patient.id, Decimal("6500"), date(2025, 4, 1), "Cheque")

        record = get_record(db_session, patient.id, 4, 2025)
        assert record.total_paid == Decimal("6500.00")
        assert record.balance == Decimal("0.00")

    def test_fee_basis_includes_ancillary_charges(self, db_session, patient):
        patients = PatientService(db_session)
        patients.add_charge(patient.id, "Blood test", Decimal("300"))
        cancelled = patients.add_charge(patient.id, "Pickup", Decimal("200"))
        patients.cancel_charge(cancelled.id)

        PaymentService(db_session).record_payment(patient.id, Decimal("1000"), date(2025, 1, 3), "Cash")

        record = get_record(db_session, patient.id, 1, 2025)
        assert record.total_fees == Decimal("5300.00")
        assert record.balance == Decimal("4300.00")


class TestPaymentAdditivity:
    """totalPaid is the sum of the amounts in any order."""

    @pytest.mark.parametrize(
        "amounts",
        list(itertools.permutations([Decimal("100"), Decimal("250.50"), Decimal("49.50")])),
    )
    def test_total_paid_is_order_independent(self, db_session, patient, amounts):
        service = PaymentService(db_session)
        for day, amount in enumerate(amounts, start=1):
            service.record_payment(patient.id, amount, date(2025, 6, day), "Cash")

        record = get_record(db_session, patient.id, 6, 2025)
        assert record.total_paid == Decimal("400.00")
        assert record.balance == compute_balance(record.total_fees, record.carry_forward_in, record.total_paid)
        assert count_events(db_session) == 3


class TestPaymentRejections:
    """Test validation and failure paths leave no partial state."""

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), "0.001"])
    def test_non_positive_amount_rejected(self, db_session, patient, amount):
        with pytest.raises(ValidationError, match="must be positive"):
            PaymentService(db_session).record_payment(patient.id, amount, date(2025, 1, 15), "Cash")

        assert count_events(db_session) == 0
        assert get_record(db_session, patient.id, 1, 2025) is None

    def test_unknown_patient_rejected_without_event(self, db_session):
        with pytest.raises(NotFoundError, match="Patient 999 not found"):
            PaymentService(db_session).record_payment(999, Decimal("100"), date(2025, 1, 15), "Cash")

        assert count_events(db_session) == 0

    def test_invalid_mode_rejected(self, db_session, patient):
        with pytest.raises(ValidationError, match="Invalid payment mode"):
            PaymentService(db_session).record_payment(patient.id, Decimal("100"), date(2025, 1, 15), "Card")

    def test_missing_amount_rejected(self, db_session, patient):
        with pytest.raises(ValidationError, match="amount is required"):
            PaymentService(db_session).record_payment(patient.id, None, date(2025, 1, 15), "Cash")

    def test_blank_type_rejected(self, db_session, patient):
        with pytest.raises(ValidationError, match="type is required"):
            PaymentService(db_session).record_payment(
                patient.id, Decimal("100"), date(2025, 1, 15), "Cash", type="  "
            )

    def test_storage_failure_rolls_back_event(self, db_session, patient, monkeypatch):
        """A failing ledger update must not leave the payment event behind."""

        def broken_increment(self, *args):
            raise OperationalError("UPDATE ledger_records", {}, Exception("disk I/O error"))

        monkeypatch.setattr(PaymentService, "_increment_paid", broken_increment)

        with pytest.raises(StorageError, match="record_payment failed"):
            PaymentService(db_session).record_payment(patient.id, Decimal("100"), date(2025, 1, 15), "Cash")

        assert count_events(db_session) == 0
        assert get_record(db_session, patient.id, 1, 2025) is None


class TestRecordCreationRace:
    """Test the insert-or-increment path when a record appears concurrently."""

    def test_insert_conflict_retries_as_increment(self, db_session, patient, monkeypatch):
        service = PaymentService(db_session)
        service.record_payment(patient.id, Decimal("1000"), date(2025, 1, 10), "Cash")

        original = PaymentService._increment_paid
        calls = []

        def stale_increment(self, *args):
            # First lookup misses, as if the row was committed after it ran
            calls.append(args)
            if len(calls) == 1:
                return False
            return original(self, *args)

        monkeypatch.setattr(PaymentService, "_increment_paid", stale_increment)

        service.record_payment(patient.id, Decimal("500"), date(2025, 1, 12), "Cash")

        assert len(calls) == 2
        record = get_record(db_session, patient.id, 1, 2025)
        assert record.total_paid == Decimal("1500.00")
        assert record.balance == Decimal("3500.00")
        assert count_events(db_session) == 2


class TestStoredPaymentMode:
    """Payment mode is persisted as its display string."""

    def test_mode_column_is_plain_string(self):
        column = PaymentEvent.__table__.c.payment_mode
        assert column.type.python_type is str
        assert column.type.length == 20

    def test_mode_reads_back_as_str(self, file_session_factory):
        with file_session_factory() as session:
            patient = PatientService(session).create_patient("Mode", Decimal("100"))
            event_id = PaymentService(session).record_payment(
                patient.id, Decimal("50"), date(2025, 1, 2), "cheque"
            ).id

        with file_session_factory() as session:
            stored = session.get(PaymentEvent, event_id)
            assert type(stored.payment_mode) is str
            assert stored.payment_mode == PaymentMode.CHEQUE.value
