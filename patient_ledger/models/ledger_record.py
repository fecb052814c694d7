"""Ledger record ORM model: one row per patient per calendar month."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, UniqueConstraint, case
from sqlalchemy.orm import Mapped, mapped_column

from patient_ledger.models import Base, BaseModel
from patient_ledger.services.ledger_math import Period, compute_balance


class LedgerRecord(Base, BaseModel):
    """Per-patient, per-period aggregate of fees, payments and balance.

    ``balance`` is derived from the three stored amounts and is rewritten in
    every statement that changes one of them:

        balance = max(0, total_fees + carry_forward_in - total_paid)
    """

    __tablename__ = "ledger_records"

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"),
        nullable=False,
        comment="Patient this record bills",
    )
    month: Mapped[int] = mapped_column(nullable=False, comment="Calendar month (1-12)")
    year: Mapped[int] = mapped_column(nullable=False, comment="Calendar year")

    total_fees: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Fee basis for the period (periodic fee + ancillary charges)",
    )
    total_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Cumulative payments applied to the period",
    )
    carry_forward_in: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Unpaid balance inherited from the previous period",
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="max(0, total_fees + carry_forward_in - total_paid)",
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last month close that finalized this record",
    )

    __table_args__ = (
        UniqueConstraint("patient_id", "month", "year", name="uq_ledger_patient_period"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_ledger_month_range"),
        CheckConstraint("balance >= 0", name="ck_ledger_balance_non_negative"),
        Index("idx_ledger_period", "year", "month"),
    )

    @property
    def period(self) -> Period:
        return Period(self.month, self.year)

    def recompute_balance(self) -> Decimal:
        """Refresh ``balance`` from the stored amounts and return it."""
        self.balance = compute_balance(self.total_fees, self.carry_forward_in, self.total_paid)
        return self.balance

    @classmethod
    def balance_expression(cls, total_paid=None, carry_forward_in=None, total_fees=None):
        """SQL expression for the balance formula, for single-statement updates.

        Any argument left as None uses the column's current value.
        """
        fees = cls.total_fees if total_fees is None else total_fees
        carry = cls.carry_forward_in if carry_forward_in is None else carry_forward_in
        paid = cls.total_paid if total_paid is None else total_paid
        due = fees + carry - paid
        return case((due > 0, due), else_=0)

    def __repr__(self) -> str:
        return (
            f"<LedgerRecord(id={self.id}, patient_id={self.patient_id}, "
            f"period={self.month:02d}/{self.year}, fees={self.total_fees}, "
            f"paid={self.total_paid}, carry_in={self.carry_forward_in}, balance={self.balance})>"
        )


__all__ = ["LedgerRecord"]
