"""Month-close engine.

Finalizes every billable patient's ledger record for a period and carries
unpaid balance into the following period, as one all-or-nothing batch.

Carry-forward policy: idempotent replace keyed by source period. Closing
period P writes the single ``CarryForwardEntry`` for (patient, P) with P's
current balance, then sets the next record's ``carry_forward_in`` to the sum
of the entries that target it. Closing P again with an unchanged balance
therefore leaves the next period untouched, and closing it again after a late
payment lowers the carried amount instead of stacking a second one.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from patient_ledger.models import CarryForwardEntry, LedgerRecord
from patient_ledger.services.audit_service import AuditService
from patient_ledger.services.errors import DeadlineExceededError, ValidationError
from patient_ledger.services.ledger_math import ZERO, Period, next_period, to_money, validate_period
from patient_ledger.services.patient_service import BillingBasis, PatientService
from patient_ledger.services.transaction import ledger_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloseMonthResult:
    """Outcome of one close-month batch."""

    month: int
    year: int
    records_processed: int
    carry_forward_propagations: int


class MonthCloseService:
    """Close ledger periods and propagate carry-forward balances."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.patients = PatientService(db)

    def close_month(
        self,
        month: int,
        year: int,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CloseMonthResult:
        """Close a ledger period for every billable patient.

        For each patient: refresh ``total_fees`` from the billing basis,
        recompute the balance of the period's record (creating it if absent),
        and carry any unpaid balance into the next period's record (creating
        that one if absent).

        Args:
            month: Period month (1-12)
            year: Period year
            timeout: Optional deadline in seconds for the whole batch
            cancel_event: Optional event; setting it aborts the batch

        Returns:
            CloseMonthResult with the number of records processed and of
            positive balances carried forward

        Raises:
            ValidationError: If month/year/timeout are invalid
            DeadlineExceededError: If the deadline passed or the batch was
                cancelled; nothing is committed
            StorageError: If the database failed; nothing is committed
        """
        period = validate_period(month, year)
        if timeout is not None and timeout <= 0:
            raise ValidationError("Timeout must be positive")
        deadline = time.monotonic() + timeout if timeout is not None else None
        target = next_period(period.month, period.year)

        logger.info("Closing ledger period %s (carry-forward into %s)", period, target)
        processed = 0
        propagations = 0

        with ledger_transaction(self.db, "close_month"):
            patient_ids = self.patients.billable_patient_ids(period.month, period.year)
            closed_at = datetime.now(timezone.utc)

            for patient_id in patient_ids:
                self._check_deadline(period, deadline, cancel_event)

                basis = self.patients.get_billing_basis(patient_id)
                record = self._close_record(patient_id, period, basis, closed_at)
                if self._propagate(patient_id, period, target, record.balance, basis):
                    propagations += 1
                processed += 1

            self._check_deadline(period, deadline, cancel_event)
            AuditService.log(
                self.db,
                "ledger_period",
                period.year * 100 + period.month,
                "close",
                {
                    "records_processed": processed,
                    "carry_forward_propagations": propagations,
                },
            )

        logger.info(
            "Closed ledger period %s: records_processed=%d carry_forward_propagations=%d",
            period,
            processed,
            propagations,
        )
        return CloseMonthResult(
            month=period.month,
            year=period.year,
            records_processed=processed,
            carry_forward_propagations=propagations,
        )

    def _check_deadline(
        self,
        period: Period,
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Close of %s cancelled, rolling back", period)
            raise DeadlineExceededError(f"Close of {period} was cancelled")
        if deadline is not None and time.monotonic() > deadline:
            logger.warning("Close of %s exceeded its deadline, rolling back", period)
            raise DeadlineExceededError(f"Close of {period} exceeded its deadline")

    def _lock_record(self, patient_id: int, period: Period) -> LedgerRecord | None:
        return self.db.execute(
            select(LedgerRecord)
            .where(
                LedgerRecord.patient_id == patient_id,
                LedgerRecord.month == period.month,
                LedgerRecord.year == period.year,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _close_record(
        self,
        patient_id: int,
        period: Period,
        basis: BillingBasis,
        closed_at: datetime,
    ) -> LedgerRecord:
        record = self._lock_record(patient_id, period)
        if record is None:
            record = LedgerRecord(
                patient_id=patient_id,
                month=period.month,
                year=period.year,
                total_paid=ZERO,
                carry_forward_in=ZERO,
            )
            self.db.add(record)

        record.total_fees = basis.total_fees
        record.recompute_balance()
        record.closed_at = closed_at
        self.db.flush()

        logger.debug(
            "Closed record patient_id=%d period=%s fees=%s paid=%s carry_in=%s balance=%s",
            patient_id,
            period,
            record.total_fees,
            record.total_paid,
            record.carry_forward_in,
            record.balance,
        )
        return record

    def _propagate(
        self,
        patient_id: int,
        source: Period,
        target: Period,
        balance: Decimal,
        basis: BillingBasis,
    ) -> bool:
        """Carry ``balance`` of ``source`` into ``target``.

        Returns:
            True if a positive balance was carried forward
        """
        amount = to_money(balance)
        entry = self.db.execute(
            select(CarryForwardEntry)
            .where(
                CarryForwardEntry.patient_id == patient_id,
                CarryForwardEntry.source_month == source.month,
                CarryForwardEntry.source_year == source.year,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if entry is None:
            if amount == ZERO:
                return False
            entry = CarryForwardEntry(
                patient_id=patient_id,
                source_month=source.month,
                source_year=source.year,
                target_month=target.month,
                target_year=target.year,
            )
            self.db.add(entry)
        elif to_money(entry.amount) == amount:
            logger.debug(
                "Carry-forward %s -> %s for patient %d already applied (%s)",
                source,
                target,
                patient_id,
                amount,
            )
        entry.amount = amount
        self.db.flush()

        next_record = self._lock_record(patient_id, target)
        if next_record is None:
            if amount == ZERO:
                return False
            next_record = LedgerRecord(
                patient_id=patient_id,
                month=target.month,
                year=target.year,
                total_fees=basis.total_fees,
                total_paid=ZERO,
            )
            self.db.add(next_record)
        elif next_record.closed_at is not None:
            logger.warning(
                "Period %s for patient %d was already closed; close it again to refresh "
                "its own carry-forward",
                target,
                patient_id,
            )

        next_record.carry_forward_in = self._carried_into(patient_id, target)
        next_record.recompute_balance()
        self.db.flush()
        return amount > ZERO

    def _carried_into(self, patient_id: int, target: Period) -> Decimal:
        total = self.db.execute(
            select(func.coalesce(func.sum(CarryForwardEntry.amount), 0)).where(
                CarryForwardEntry.patient_id == patient_id,
                CarryForwardEntry.target_month == target.month,
                CarryForwardEntry.target_year == target.year,
            )
        ).scalar_one()
        return to_money(total)


__all__ = ["MonthCloseService", "CloseMonthResult"]
