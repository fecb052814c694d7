"""Payment event ORM model: append-only history of money received."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from patient_ledger.models import Base, BaseModel


class PaymentMode(str, Enum):
    """How a payment was received."""

    CASH = "Cash"
    BANK = "Bank"
    UPI = "UPI"
    CHEQUE = "Cheque"


class PaymentEvent(Base, BaseModel):
    """Single immutable payment against a patient.

    Rolls up into the ``total_paid`` of the ledger record for the calendar
    month of ``payment_date`` as of the time the payment was recorded.
    """

    __tablename__ = "payment_events"

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"),
        nullable=False,
        comment="Paying patient",
    )
    payment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Date the money was received",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Amount received",
    )
    payment_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Cash, Bank, UPI or Cheque",
    )
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="fees",
        comment="Free-text category, e.g. 'fees'",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_event_amount_positive"),
        Index("idx_payment_event_patient_date", "patient_id", "payment_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentEvent(id={self.id}, patient_id={self.patient_id}, "
            f"amount={self.amount}, mode={self.payment_mode}, date={self.payment_date})>"
        )


__all__ = ["PaymentEvent", "PaymentMode"]
