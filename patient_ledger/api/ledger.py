"""Ledger API endpoints.

Handles the patient billing ledger:
- Recording payments against monthly ledger records
- Closing a month and carrying unpaid balances forward
- Patient ledger and payment history lookups
- Period overview and carry-forward reports
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from patient_ledger.config import settings
from patient_ledger.schemas.ledger import (
    CarryForwardReportResponse,
    CloseMonthPayload,
    CloseMonthResponse,
    LedgerViewResponse,
    PaymentEventResponse,
    PeriodLedgerResponse,
    RecordPaymentPayload,
    RecordPaymentResponse,
)
from patient_ledger.services import get_db
from patient_ledger.services.ledger_query_service import LedgerQueryService
from patient_ledger.services.month_close_service import MonthCloseService
from patient_ledger.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


@router.post("/payments", response_model=RecordPaymentResponse, status_code=status.HTTP_201_CREATED)
def record_payment(payload: RecordPaymentPayload, db: Session = Depends(get_db)) -> RecordPaymentResponse:
    """
    Record a payment and apply it to the ledger period of its payment date.

    Returns:
        201: RecordPaymentResponse with the payment event ID
        404: Unknown patient
        422: Invalid amount, date or payment mode
    """
    event = PaymentService(db).record_payment(
        patient_id=payload.patient_id,
        amount=payload.amount,
        payment_date=payload.payment_date,
        payment_mode=payload.payment_mode,
        notes=payload.notes,
        type=payload.type,
    )
    return RecordPaymentResponse(payment_event_id=event.id)


@router.post("/close-month", response_model=CloseMonthResponse)
def close_month(payload: CloseMonthPayload, db: Session = Depends(get_db)) -> CloseMonthResponse:
    """
    Close a ledger period for every billable patient.

    Returns:
        200: CloseMonthResponse with processed and propagated counts
        422: Invalid month/year
        504: Deadline exceeded; nothing was committed
    """
    result = MonthCloseService(db).close_month(
        payload.month,
        payload.year,
        timeout=settings.close_month_timeout_seconds,
    )
    return CloseMonthResponse.model_validate(result)


@router.get("/periods/{year}/{month}", response_model=PeriodLedgerResponse)
def get_period_ledger(
    year: int,
    month: int,
    page: int = Query(1, description="Page number (1-based)"),
    limit: int = Query(10, description="Patients per page"),
    db: Session = Depends(get_db),
) -> PeriodLedgerResponse:
    """Paginated ledger overview of every billable patient for a period."""
    result = LedgerQueryService(db).list_period_ledger(month, year, page=page, limit=limit)
    return PeriodLedgerResponse.model_validate(result)


@router.get("/periods/{year}/{month}/carry-forwards", response_model=CarryForwardReportResponse)
def get_carry_forwards(year: int, month: int, db: Session = Depends(get_db)) -> CarryForwardReportResponse:
    """Balances carried out of a period into the next one."""
    report = LedgerQueryService(db).get_carry_forwards(month, year)
    return CarryForwardReportResponse.model_validate(report)


@router.get("/{patient_id}/payments", response_model=list[PaymentEventResponse])
def get_payment_history(
    patient_id: int,
    month: int = Query(..., description="Period month (1-12)"),
    year: int = Query(..., description="Period year"),
    db: Session = Depends(get_db),
) -> list[PaymentEventResponse]:
    """Payments received from a patient during a period, newest first."""
    events = LedgerQueryService(db).get_payment_history(patient_id, month, year)
    return [PaymentEventResponse.model_validate(event) for event in events]


@router.get("/{patient_id}", response_model=LedgerViewResponse)
def get_patient_ledger(
    patient_id: int,
    month: int = Query(..., description="Period month (1-12)"),
    year: int = Query(..., description="Period year"),
    db: Session = Depends(get_db),
) -> LedgerViewResponse:
    """A patient's ledger record for a period, joined with their billing basis."""
    view = LedgerQueryService(db).get_patient_ledger(patient_id, month, year)
    return LedgerViewResponse.model_validate(view)
