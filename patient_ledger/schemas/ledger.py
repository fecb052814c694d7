"""Pydantic schemas for the ledger API."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class RecordPaymentPayload(BaseModel):
    """Request payload for POST /api/ledger/payments."""

    patient_id: int = Field(..., description="Paying patient ID")
    amount: Decimal = Field(..., description="Amount received (must be positive)")
    payment_date: date = Field(..., description="Date received (YYYY-MM-DD)")
    payment_mode: str = Field(..., description="Cash, Bank, UPI or Cheque")
    notes: str | None = Field(None, description="Optional notes")
    type: str = Field("fees", description="Payment category")


class RecordPaymentResponse(BaseModel):
    """Response schema for a recorded payment."""

    payment_event_id: int


class CloseMonthPayload(BaseModel):
    """Request payload for POST /api/ledger/close-month."""

    month: int = Field(..., description="Period month (1-12)")
    year: int = Field(..., description="Period year")


class CloseMonthResponse(BaseModel):
    """Response schema for a closed period."""

    month: int
    year: int
    records_processed: int
    carry_forward_propagations: int

    model_config = ConfigDict(from_attributes=True)


class BillingBasisResponse(BaseModel):
    periodic_fee: Decimal
    ancillary_charges: Decimal
    advance_paid: Decimal
    total_fees: Decimal

    model_config = ConfigDict(from_attributes=True)


class LedgerViewResponse(BaseModel):
    """A patient's ledger for one period plus their billing basis."""

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
    closed_at: datetime | None = None
    updated_at: datetime | None = None
    billing_basis: BillingBasisResponse

    model_config = ConfigDict(from_attributes=True)


class PaymentEventResponse(BaseModel):
    """One entry of a patient's payment history."""

    id: int
    patient_id: int
    payment_date: date
    amount: Decimal
    payment_mode: str
    type: str
    notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PeriodStatsResponse(BaseModel):
    total_patients: int
    total_fees: Decimal
    total_paid: Decimal
    total_pending: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_records: int
    limit: int

    model_config = ConfigDict(from_attributes=True)


class PeriodLedgerResponse(BaseModel):
    """Paginated overview of every billable patient for a period."""

    month: int
    year: int
    items: list[LedgerViewResponse]
    stats: PeriodStatsResponse
    pagination: PaginationResponse

    model_config = ConfigDict(from_attributes=True)


class CarryForwardItemResponse(BaseModel):
    patient_id: int
    patient_code: str
    patient_name: str
    amount: Decimal
    target_month: int
    target_year: int

    model_config = ConfigDict(from_attributes=True)


class CarryForwardReportResponse(BaseModel):
    """Balances carried out of a period."""

    month: int
    year: int
    items: list[CarryForwardItemResponse]
    total_carry_forward: Decimal

    model_config = ConfigDict(from_attributes=True)
