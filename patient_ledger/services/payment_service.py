"""Payment recording engine.

Applies a single payment to the ledger record of the payment's calendar
month and appends it to the payment event log, atomically:

- the event insert and the ledger update commit together or not at all;
- an existing record is updated with one ``UPDATE`` that increments
  ``total_paid`` and recomputes ``balance`` in the same statement, so
  concurrent payments for the same patient/period cannot lose updates;
- a missing record is inserted inside a savepoint; if a concurrent payment
  created it first, the insert is rolled back to the savepoint and the
  increment is applied instead.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from patient_ledger.models import LedgerRecord, PaymentEvent, PaymentMode
from patient_ledger.services.errors import ConflictError, ValidationError
from patient_ledger.services.ledger_math import ZERO, compute_balance, period_of, to_money
from patient_ledger.services.patient_service import PatientService
from patient_ledger.services.transaction import ledger_transaction

logger = logging.getLogger(__name__)

MAX_TYPE_LENGTH = 50


def parse_payment_date(value) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string.

    Raises:
        ValidationError: If the value is missing or malformed
    """
    if value is None:
        raise ValidationError("Payment date is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"Malformed payment date: {value!r}") from e
    raise ValidationError(f"Malformed payment date: {value!r}")


def parse_payment_mode(value) -> PaymentMode:
    """Resolve a payment mode case-insensitively.

    Raises:
        ValidationError: If the mode is missing or unknown
    """
    if isinstance(value, PaymentMode):
        return value
    if isinstance(value, str):
        for mode in PaymentMode:
            if mode.value.lower() == value.strip().lower():
                return mode
    allowed = ", ".join(mode.value for mode in PaymentMode)
    raise ValidationError(f"Invalid payment mode {value!r}. Must be one of: {allowed}")


class PaymentService:
    """Record patient payments against monthly ledger records."""

    def __init__(self, db: Session):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.patients = PatientService(db)

    def record_payment(
        self,
        patient_id: int,
        amount,
        payment_date,
        payment_mode,
        notes: str | None = None,
        type: str = "fees",
    ) -> PaymentEvent:
        """Record a payment and apply it to the period it was received in.

        Args:
            patient_id: Paying patient
            amount: Amount received (must be positive)
            payment_date: Date received; selects the ledger period
            payment_mode: Cash, Bank, UPI or Cheque
            notes: Optional free-text notes
            type: Payment category (default "fees")

        Returns:
            The created PaymentEvent

        Raises:
            ValidationError: If any input is invalid (checked before the transaction)
            NotFoundError: If the patient does not exist; nothing is written
            ConflictError: If the ledger record could not be created or updated
            StorageError: If the database failed; nothing is written
        """
        value, paid_on, mode, category = self._validate(patient_id, amount, payment_date, payment_mode, type)
        period = period_of(paid_on)

        with ledger_transaction(self.db, "record_payment"):
            basis = self.patients.get_billing_basis(patient_id)

            event = PaymentEvent(
                patient_id=patient_id,
                payment_date=paid_on,
                amount=value,
                payment_mode=mode.value,
                type=category,
                notes=notes,
            )
            self.db.add(event)
            self.db.flush()

            if not self._increment_paid(patient_id, period.month, period.year, value):
                self._create_record(patient_id, period.month, period.year, basis.total_fees, value)

        logger.info(
            "Recorded payment: event_id=%d patient_id=%d amount=%s mode=%s period=%s",
            event.id,
            patient_id,
            value,
            mode.value,
            period,
        )
        return event

    def _validate(self, patient_id, amount, payment_date, payment_mode, type):
        if isinstance(patient_id, bool) or not isinstance(patient_id, int) or patient_id <= 0:
            raise ValidationError(f"Invalid patient id: {patient_id!r}")
        if amount is None:
            raise ValidationError("Payment amount is required")
        value = to_money(amount)
        if value <= ZERO:
            logger.warning("Rejected payment for patient %s: non-positive amount %s", patient_id, amount)
            raise ValidationError("Payment amount must be positive")
        paid_on = parse_payment_date(payment_date)
        mode = parse_payment_mode(payment_mode)
        category = (type or "").strip()
        if not category:
            raise ValidationError("Payment type is required")
        if len(category) > MAX_TYPE_LENGTH:
            raise ValidationError(f"Payment type must be at most {MAX_TYPE_LENGTH} characters")
        return value, paid_on, mode, category

    def _increment_paid(self, patient_id: int, month: int, year: int, amount: Decimal) -> bool:
        """Add to total_paid and recompute balance in one statement.

        Returns:
            True if a record was updated, False if none exists for the period
        """
        new_paid = LedgerRecord.total_paid + amount
        result = self.db.execute(
            update(LedgerRecord)
            .where(
                LedgerRecord.patient_id == patient_id,
                LedgerRecord.month == month,
                LedgerRecord.year == year,
            )
            .values(
                total_paid=new_paid,
                balance=LedgerRecord.balance_expression(total_paid=new_paid),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
        # Bring any identity-mapped copy in line with the row just written
        self.db.execute(
            select(LedgerRecord)
            .where(
                LedgerRecord.patient_id == patient_id,
                LedgerRecord.month == month,
                LedgerRecord.year == year,
            )
            .execution_options(populate_existing=True)
        ).scalar_one()
        return True

    def _create_record(
        self, patient_id: int, month: int, year: int, total_fees: Decimal, amount: Decimal
    ) -> None:
        record = LedgerRecord(
            patient_id=patient_id,
            month=month,
            year=year,
            total_fees=total_fees,
            total_paid=amount,
            carry_forward_in=ZERO,
            balance=compute_balance(total_fees, ZERO, amount),
        )
        try:
            with self.db.begin_nested():
                self.db.add(record)
        except IntegrityError:
            # Lost the race to create the record; apply the payment to the winner's row
            logger.info(
                "Ledger record for patient %d %02d/%d created concurrently, retrying as update",
                patient_id,
                month,
                year,
            )
            if not self._increment_paid(patient_id, month, year, amount):
                raise ConflictError(
                    f"Ledger record for patient {patient_id} {month:02d}/{year} "
                    "could not be created or updated"
                )
            return
        logger.info(
            "Created ledger record for patient %d %02d/%d (fees=%s, paid=%s)",
            patient_id,
            month,
            year,
            total_fees,
            amount,
        )


__all__ = ["PaymentService", "parse_payment_date", "parse_payment_mode"]
