"""Audit service for logging ledger batch operations."""

from sqlalchemy.orm import Session

from patient_ledger.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations.

    Provides static method to create minimal audit log entries. The entry is
    added to the caller's transaction and commits or rolls back with it.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        changes: dict | None = None,
    ) -> AuditLog:
        """Create audit log entry (one-liner).

        Args:
            db: Database session
            entity_type: Type of entity ("ledger_period")
            entity_id: Key of the entity
            action: Action performed ("close")
            changes: Optional JSON snapshot of the outcome

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changes=changes,
        )
        db.add(audit)
        return audit


__all__ = ["AuditService"]
