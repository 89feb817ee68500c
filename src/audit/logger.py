"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of changes to the user's data
2. Visibility into AI advisor degradations
3. Debugging capability

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through stdlib logging as JSON lines."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().app.log_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_added(
        self,
        expense_id: UUID,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(
            expense_id=expense_id,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: UUID,
        changes: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_validation_failed(
        self,
        expense_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_validation_failed(
            expense_id=expense_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_budget_updated(
        self,
        category: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.budget_updated(
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_settings_updated(
        self,
        settings: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.settings_updated(
            settings=settings,
            correlation_id=correlation_id,
        ))

    async def log_advice_requested(
        self,
        category_count: int,
        language: str,
        has_context: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.advice_requested(
            category_count=category_count,
            language=language,
            has_context=has_context,
            correlation_id=correlation_id,
        ))

    async def log_advice_request_rejected(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.advice_request_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_advice_generated(
        self,
        suggestion_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.advice_generated(
            suggestion_count=suggestion_count,
            correlation_id=correlation_id,
        ))

    async def log_advice_degraded(
        self,
        failure: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.advice_degraded(
            failure=failure,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        entity_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
