"""Patient profile store: the billing basis the ledger prices months from."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from patient_ledger.models import LedgerRecord, Patient, PatientCharge, PatientStatus
from patient_ledger.services.errors import NotFoundError, ValidationError
from patient_ledger.services.ledger_math import ZERO, period_bounds, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingBasis:
    """Static fee components of one patient."""

    patient_id: int
    periodic_fee: Decimal
    ancillary_charges: Decimal
    advance_paid: Decimal

    @property
    def total_fees(self) -> Decimal:
        """Fee basis charged for a period."""
        return self.periodic_fee + self.ancillary_charges


class PatientService:
    """Read access to patient billing data, plus the few writes seeding needs.

    Profile management proper belongs to the patient-management system; the
    ledger only reads fees through ``get_billing_basis``.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get_patient(self, patient_id: int) -> Patient:
        """Get patient by ID.

        Raises:
            NotFoundError: If the patient does not exist
        """
        patient = self.db.get(Patient, patient_id)
        if patient is None:
            raise NotFoundError(f"Patient {patient_id} not found")
        return patient

    def get_billing_basis(self, patient_id: int) -> BillingBasis:
        """Get fee components for a patient.

        Ancillary charges are the sum of the patient's itemized add-ons that
        have not been cancelled.

        Args:
            patient_id: Patient ID

        Returns:
            BillingBasis with periodic fee, ancillary charges and advance

        Raises:
            NotFoundError: If the patient does not exist
        """
        patient = self.get_patient(patient_id)
        ancillary = self.db.execute(
            select(func.coalesce(func.sum(PatientCharge.amount), 0)).where(
                PatientCharge.patient_id == patient_id,
                PatientCharge.cancelled.is_(False),
            )
        ).scalar_one()
        return BillingBasis(
            patient_id=patient.id,
            periodic_fee=to_money(patient.periodic_fee or ZERO),
            ancillary_charges=to_money(ancillary),
            advance_paid=to_money(patient.advance_paid or ZERO),
        )

    def billable_patient_ids(self, month: int, year: int) -> list[int]:
        """IDs of patients billed for a period, ascending.

        A patient is billed when active and admitted on or before the last
        day of the period (no admission date counts as admitted), or when a
        ledger record for the period already exists.
        """
        _, period_end = period_bounds(month, year)
        active = select(Patient.id).where(
            Patient.status == PatientStatus.ACTIVE.value,
            or_(Patient.admission_date.is_(None), Patient.admission_date <= period_end),
        )
        with_record = select(LedgerRecord.patient_id).where(
            LedgerRecord.month == month,
            LedgerRecord.year == year,
        )
        ids = set(self.db.execute(active).scalars()) | set(self.db.execute(with_record).scalars())
        return sorted(ids)

    def create_patient(
        self,
        name: str,
        periodic_fee,
        advance_paid=0,
        admission_date: date | None = None,
    ) -> Patient:
        """Create a patient billing profile.

        Raises:
            ValidationError: If name is blank or the fee is negative
        """
        if not name or not name.strip():
            raise ValidationError("Patient name is required")
        fee = to_money(periodic_fee)
        if fee < ZERO:
            raise ValidationError("Periodic fee must not be negative")

        patient = Patient(
            name=name.strip(),
            periodic_fee=fee,
            advance_paid=to_money(advance_paid),
            admission_date=admission_date,
            status=PatientStatus.ACTIVE.value,
        )
        self.db.add(patient)
        self.db.commit()
        self.db.refresh(patient)
        logger.info("Created patient %s (fee=%s)", patient.patient_code, fee)
        return patient

    def add_charge(
        self,
        patient_id: int,
        description: str,
        amount,
        charge_date: date | None = None,
    ) -> PatientCharge:
        """Add an itemized ancillary charge to a patient.

        Raises:
            NotFoundError: If the patient does not exist
            ValidationError: If the amount is negative
        """
        self.get_patient(patient_id)
        value = to_money(amount)
        if value < ZERO:
            raise ValidationError("Charge amount must not be negative")

        charge = PatientCharge(
            patient_id=patient_id,
            description=description,
            amount=value,
            charge_date=charge_date,
        )
        self.db.add(charge)
        self.db.commit()
        self.db.refresh(charge)
        logger.info("Added charge %r (%s) to patient %d", description, value, patient_id)
        return charge

    def cancel_charge(self, charge_id: int) -> PatientCharge:
        """Exclude a charge from the fee basis.

        Raises:
            NotFoundError: If the charge does not exist
        """
        charge = self.db.get(PatientCharge, charge_id)
        if charge is None:
            raise NotFoundError(f"Charge {charge_id} not found")
        charge.cancelled = True
        self.db.commit()
        self.db.refresh(charge)
        return charge

    def discharge(self, patient_id: int) -> Patient:
        """Mark a patient discharged; later periods no longer bill them."""
        patient = self.get_patient(patient_id)
        patient.status = PatientStatus.DISCHARGED.value
        self.db.commit()
        self.db.refresh(patient)
        logger.info("Discharged patient %s", patient.patient_code)
        return patient


__all__ = ["PatientService", "BillingBasis"]
