"""Patient billing profile ORM models.

The full patient profile lives in the facility's patient-management system;
these tables hold only what the ledger needs to price a month: the periodic
fee, itemized add-on charges and the advance already paid.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from patient_ledger.models import Base, BaseModel


class PatientStatus(str, Enum):
    """Admission status of a patient."""

    ACTIVE = "active"
    DISCHARGED = "discharged"


class Patient(Base, BaseModel):
    """Patient billing basis (read-only from the ledger's perspective)."""

    __tablename__ = "patients"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Patient display name",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PatientStatus.ACTIVE.value,
        index=True,
        comment="Admission status: 'active' or 'discharged'",
    )
    admission_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Admission date; patients are billed from this month on",
    )
    periodic_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Monthly fee",
    )
    advance_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Advance collected at admission",
    )

    charges: Mapped[list["PatientCharge"]] = relationship(
        "PatientCharge",
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="PatientCharge.id",
    )

    __table_args__ = (
        CheckConstraint("periodic_fee >= 0", name="ck_patient_periodic_fee_non_negative"),
    )

    @property
    def patient_code(self) -> str:
        """Display identifier, e.g. 'P0007'."""
        return f"P{self.id:04d}"

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name={self.name!r}, status={self.status})>"


class PatientCharge(Base, BaseModel):
    """Itemized add-on charge (blood test, pickup, test report, ...)."""

    __tablename__ = "patient_charges"

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    charge_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cancelled: Mapped[bool] = mapped_column(
        nullable=False,
        default=False,
        comment="Cancelled charges are excluded from the fee basis",
    )

    patient: Mapped["Patient"] = relationship("Patient", back_populates="charges")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_patient_charge_amount_non_negative"),
        Index("idx_patient_charge_patient_cancelled", "patient_id", "cancelled"),
    )

    def __repr__(self) -> str:
        return (
            f"<PatientCharge(id={self.id}, patient_id={self.patient_id}, "
            f"description={self.description!r}, amount={self.amount})>"
        )


__all__ = ["Patient", "PatientCharge", "PatientStatus"]
