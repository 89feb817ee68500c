"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations we need for expenses, budgets and settings.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.budget import Budget, CategoryName, Expense, UserSettings


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense.

        Raises:
            DuplicateError: If an expense with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID, or None if not found."""
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Update an existing expense.

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        category: Optional[CategoryName] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        """
        List expenses with optional filters, newest first.

        Args:
            category: Filter by category
            date_from: Filter expenses on or after this date
            date_to: Filter expenses on or before this date
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def expense_exists(
        self,
        category: CategoryName,
        amount: Decimal,
        expense_date: date,
        description: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        """
        Check if a matching expense already exists (duplicate detection).

        Matches on category, amount, date and (case-insensitive) description.
        """
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for per-category budget goals."""

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        """
        List budgets for every expense category.

        Categories without a stored budget are returned with amount 0.
        """
        pass

    @abstractmethod
    async def set_budget(self, category: CategoryName, amount: Decimal) -> Budget:
        """
        Create or replace the budget for a category.

        Raises:
            StorageError: If the write fails
        """
        pass


class SettingsStorageInterface(ABC):
    """Abstract interface for user app settings."""

    @abstractmethod
    async def get_settings(self) -> UserSettings:
        """
        Get the stored settings.

        When nothing is stored yet, defaults are persisted and returned.
        """
        pass

    @abstractmethod
    async def save_settings(self, settings: UserSettings) -> UserSettings:
        """Persist settings, replacing what was stored."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if logged successfully."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
