"""
Audit Models for SpendWise

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of changes to expenses, budgets and settings
2. Debugging information when the AI advisor misbehaves
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_VALIDATION_FAILED = "expense_validation_failed"

    # Budgets and settings
    BUDGET_UPDATED = "budget_updated"
    SETTINGS_UPDATED = "settings_updated"

    # AI advisor
    ADVICE_REQUESTED = "advice_requested"
    ADVICE_REQUEST_REJECTED = "advice_request_rejected"
    ADVICE_GENERATED = "advice_generated"
    ADVICE_DEGRADED = "advice_degraded"

    # System events
    SAVE_FAILED = "save_failed"
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'advice')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity (UUID for expenses, category name for budgets)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, "Food", "12.50", correlation_id)
        event = AuditEventBuilder.advice_degraded("schema_mismatch", correlation_id)
    """

    @staticmethod
    def expense_added(
        expense_id: UUID,
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense added: {category} - {amount}",
            details={"category": category, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        changes: dict[str, Any],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense updated: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def expense_validation_failed(
        expense_id: UUID,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def budget_updated(
        category: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            entity_type="budget",
            entity_id=category,
            correlation_id=correlation_id,
            description=f"Budget for {category} set to {amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def settings_updated(
        settings: dict[str, Any],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="settings",
            correlation_id=correlation_id,
            description="App settings updated",
            details=settings,
            is_user_action=True,
        )

    @staticmethod
    def advice_requested(
        category_count: int,
        language: str,
        has_context: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_REQUESTED,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"AI suggestions requested for {category_count} categories",
            details={
                "category_count": category_count,
                "language": language,
                "has_financial_context": has_context,
            },
            is_user_action=True,
        )

    @staticmethod
    def advice_request_rejected(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="advice",
            correlation_id=correlation_id,
            description="AI suggestion request rejected before calling the model",
            error_message=reason,
        )

    @staticmethod
    def advice_generated(
        suggestion_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"AI returned {suggestion_count} suggestions",
            details={"suggestion_count": suggestion_count},
        )

    @staticmethod
    def advice_degraded(
        failure: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_DEGRADED,
            severity=AuditSeverity.WARNING,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"AI output unusable ({failure}); returned no suggestions",
            details={"failure": failure},
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
