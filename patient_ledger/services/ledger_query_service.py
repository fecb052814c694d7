"""Read-only ledger queries: patient ledgers, payment history and period reports."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from patient_ledger.models import CarryForwardEntry, LedgerRecord, Patient, PaymentEvent
from patient_ledger.services.errors import ValidationError
from patient_ledger.services.ledger_math import (
    ZERO,
    Period,
    payment_status,
    period_bounds,
    to_money,
    validate_period,
)
from patient_ledger.services.patient_service import BillingBasis, PatientService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class LedgerView:
    """A patient's ledger record for one period joined with their billing basis.

    ``exists`` is False when no record has been written for the period yet;
    the amounts are then all zero.
    """

    patient_id: int
    patient_code: str
    patient_name: str
    month: int
    year: int
    exists: bool
    total_fees: Decimal
    total_paid: Decimal
    carry_forward_in: Decimal
    balance: Decimal
    payment_status: str
    closed_at: datetime | None
    updated_at: datetime | None
    billing_basis: BillingBasis


@dataclass(frozen=True)
class PeriodStats:
    """Totals over every billable patient of a period."""

    total_patients: int
    total_fees: Decimal
    total_paid: Decimal
    total_pending: Decimal


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_records: int
    limit: int


@dataclass(frozen=True)
class PeriodLedgerPage:
    """One page of a period overview."""

    month: int
    year: int
    items: list[LedgerView]
    stats: PeriodStats
    pagination: Pagination


@dataclass(frozen=True)
class CarryForwardItem:
    patient_id: int
    patient_code: str
    patient_name: str
    amount: Decimal
    target_month: int
    target_year: int


@dataclass(frozen=True)
class CarryForwardReport:
    """Balances carried out of a source period."""

    month: int
    year: int
    items: list[CarryForwardItem] = field(default_factory=list)
    total_carry_forward: Decimal = ZERO


class LedgerQueryService:
    """Read ledger records and payment history without mutating anything."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.patients = PatientService(db)

    def get_patient_ledger(self, patient_id: int, month: int, year: int) -> LedgerView:
        """Get a patient's ledger for a period.

        Args:
            patient_id: Patient ID
            month: Period month (1-12)
            year: Period year

        Returns:
            LedgerView; a zero-valued view with ``exists=False`` if the period
            has no record yet

        Raises:
            ValidationError: If month/year are invalid
            NotFoundError: If the patient does not exist
        """
        period = validate_period(month, year)
        patient = self.patients.get_patient(patient_id)
        basis = self.patients.get_billing_basis(patient_id)
        record = self._find_record(patient_id, period)
        return self._view(patient, period, record, basis)

    def get_payment_history(self, patient_id: int, month: int, year: int) -> list[PaymentEvent]:
        """Get payments received from a patient during a period.

        Returns:
            PaymentEvents ordered by payment date, newest first

        Raises:
            ValidationError: If month/year are invalid
            NotFoundError: If the patient does not exist
        """
        period = validate_period(month, year)
        self.patients.get_patient(patient_id)
        first_day, last_day = period_bounds(period.month, period.year)
        return list(
            self.db.execute(
                select(PaymentEvent)
                .where(
                    PaymentEvent.patient_id == patient_id,
                    PaymentEvent.payment_date >= first_day,
                    PaymentEvent.payment_date <= last_day,
                )
                .order_by(PaymentEvent.payment_date.desc(), PaymentEvent.id.desc())
            ).scalars()
        )

    def list_period_ledger(
        self, month: int, year: int, page: int = 1, limit: int = 10
    ) -> PeriodLedgerPage:
        """Get one page of every billable patient's ledger for a period.

        Stats cover all billable patients, not only the current page.

        Raises:
            ValidationError: If month/year/page/limit are invalid
        """
        period = validate_period(month, year)
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        patient_ids = self.patients.billable_patient_ids(period.month, period.year)
        records = {
            record.patient_id: record
            for record in self.db.execute(
                select(LedgerRecord).where(
                    LedgerRecord.month == period.month,
                    LedgerRecord.year == period.year,
                )
            ).scalars()
        }

        total_fees = total_paid = total_pending = ZERO
        for patient_id in patient_ids:
            record = records.get(patient_id)
            if record is None:
                continue
            total_fees += to_money(record.total_fees)
            total_paid += to_money(record.total_paid)
            total_pending += to_money(record.balance)

        total_records = len(patient_ids)
        offset = (page - 1) * limit
        page_ids = patient_ids[offset : offset + limit]
        items = []
        for patient_id in page_ids:
            patient = self.patients.get_patient(patient_id)
            basis = self.patients.get_billing_basis(patient_id)
            items.append(self._view(patient, period, records.get(patient_id), basis))

        return PeriodLedgerPage(
            month=period.month,
            year=period.year,
            items=items,
            stats=PeriodStats(
                total_patients=total_records,
                total_fees=total_fees,
                total_paid=total_paid,
                total_pending=total_pending,
            ),
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total_records / limit) if total_records else 0,
                total_records=total_records,
                limit=limit,
            ),
        )

    def get_carry_forwards(self, month: int, year: int) -> CarryForwardReport:
        """List positive balances carried out of a period, by patient name."""
        period = validate_period(month, year)
        rows = self.db.execute(
            select(CarryForwardEntry, Patient)
            .join(Patient, Patient.id == CarryForwardEntry.patient_id)
            .where(
                CarryForwardEntry.source_month == period.month,
                CarryForwardEntry.source_year == period.year,
                CarryForwardEntry.amount > 0,
            )
            .order_by(Patient.name.asc(), Patient.id.asc())
        ).all()

        items = [
            CarryForwardItem(
                patient_id=patient.id,
                patient_code=patient.patient_code,
                patient_name=patient.name,
                amount=to_money(entry.amount),
                target_month=entry.target_month,
                target_year=entry.target_year,
            )
            for entry, patient in rows
        ]
        return CarryForwardReport(
            month=period.month,
            year=period.year,
            items=items,
            total_carry_forward=sum((item.amount for item in items), ZERO),
        )

    def _find_record(self, patient_id: int, period: Period) -> LedgerRecord | None:
        return self.db.execute(
            select(LedgerRecord).where(
                LedgerRecord.patient_id == patient_id,
                LedgerRecord.month == period.month,
                LedgerRecord.year == period.year,
            )
        ).scalar_one_or_none()

    def _view(
        self,
        patient: Patient,
        period: Period,
        record: LedgerRecord | None,
        basis: BillingBasis,
    ) -> LedgerView:
        if record is None:
            return LedgerView(
                patient_id=patient.id,
                patient_code=patient.patient_code,
                patient_name=patient.name,
                month=period.month,
                year=period.year,
                exists=False,
                total_fees=ZERO,
                total_paid=ZERO,
                carry_forward_in=ZERO,
                balance=ZERO,
                payment_status="pending",
                closed_at=None,
                updated_at=None,
                billing_basis=basis,
            )
        return LedgerView(
            patient_id=patient.id,
            patient_code=patient.patient_code,
            patient_name=patient.name,
            month=period.month,
            year=period.year,
            exists=True,
            total_fees=to_money(record.total_fees),
            total_paid=to_money(record.total_paid),
            carry_forward_in=to_money(record.carry_forward_in),
            balance=to_money(record.balance),
            payment_status=payment_status(
                record.total_fees, record.carry_forward_in, record.total_paid
            ),
            closed_at=record.closed_at,
            updated_at=record.updated_at,
            billing_basis=basis,
        )


__all__ = [
    "LedgerQueryService",
    "LedgerView",
    "PeriodLedgerPage",
    "PeriodStats",
    "Pagination",
    "CarryForwardReport",
    "CarryForwardItem",
]
