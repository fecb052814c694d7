"""Carry-forward entry ORM model.

One row per (patient, source period). Re-closing a period rewrites the row
for that source instead of adding a second amount, which keeps month close
idempotent.
"""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from patient_ledger.models import Base, BaseModel
from patient_ledger.services.ledger_math import Period


class CarryForwardEntry(Base, BaseModel):
    """Unpaid balance propagated from a source period to the period after it."""

    __tablename__ = "carry_forwards"

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"),
        nullable=False,
    )
    source_month: Mapped[int] = mapped_column(nullable=False)
    source_year: Mapped[int] = mapped_column(nullable=False)
    target_month: Mapped[int] = mapped_column(nullable=False)
    target_year: Mapped[int] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Balance of the source period at its last close",
    )

    __table_args__ = (
        UniqueConstraint(
            "patient_id", "source_month", "source_year", name="uq_carry_forward_source"
        ),
        Index("idx_carry_forward_target", "patient_id", "target_year", "target_month"),
        Index("idx_carry_forward_source_period", "source_year", "source_month"),
    )

    @property
    def source_period(self) -> Period:
        return Period(self.source_month, self.source_year)

    @property
    def target_period(self) -> Period:
        return Period(self.target_month, self.target_year)

    def __repr__(self) -> str:
        return (
            f"<CarryForwardEntry(patient_id={self.patient_id}, "
            f"{self.source_month:02d}/{self.source_year} -> "
            f"{self.target_month:02d}/{self.target_year}, amount={self.amount})>"
        )


__all__ = ["CarryForwardEntry"]
