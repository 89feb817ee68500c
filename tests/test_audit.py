"""Tests for the audit logger."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.audit import AuditLogger, create_correlation_id
from src.models.audit import AuditEventType
from src.services.storage import InMemoryAuditStorage, StorageError


@pytest.mark.asyncio
class TestAuditLogger:
    """Tests for AuditLogger."""

    async def test_local_only_logging(self):
        """Test logging without storage succeeds."""
        logger = AuditLogger()
        await logger.log_advice_generated(suggestion_count=3, correlation_id=uuid4())

    async def test_events_persisted(self):
        """Test events reach storage with their correlation ID."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_advice_requested(
            category_count=10,
            language="en-US",
            has_context=False,
            correlation_id=correlation_id,
        )
        await logger.log_advice_degraded(failure="invalid_json", correlation_id=correlation_id)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.ADVICE_REQUESTED,
            AuditEventType.ADVICE_DEGRADED,
        ]

    async def test_storage_failure_is_absorbed(self):
        """Test a failing audit store never breaks the caller."""
        storage = AsyncMock()
        storage.append_event.side_effect = StorageError("quota exceeded")
        logger = AuditLogger(storage)

        await logger.log_error(error_type="test", error_message="boom")

        storage.append_event.assert_awaited_once()
