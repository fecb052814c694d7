"""Audit log model for tracking ledger period closes."""

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column

from patient_ledger.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for batch ledger operations.

    Records what (action) happened to which entity (entity_type, entity_id)
    with an optional snapshot of the outcome (changes).
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(index=False)
    """Entity type being audited: "ledger_period"."""

    entity_id: Mapped[int] = mapped_column(index=False)
    """Entity key; for ledger periods year * 100 + month (e.g. 202501)."""

    action: Mapped[str] = mapped_column(index=False)
    """Action performed: "close"."""

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, index=False)
    """Optional JSON snapshot: {"records_processed": 12, "carry_forward_propagations": 3}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
