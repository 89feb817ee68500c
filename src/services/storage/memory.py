"""
In-Memory Storage Implementation

Used by tests and as the fallback when Google Sheets is not configured.
Data lives only as long as the process.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.budget import (
    Budget,
    CategoryName,
    Expense,
    UserSettings,
    default_budgets,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    SettingsStorageInterface,
)


def _matches(
    expense: Expense,
    category: Optional[CategoryName],
    date_from: Optional[date],
    date_to: Optional[date],
) -> bool:
    if category and expense.category != category:
        return False
    if date_from and expense.expense_date < date_from:
        return False
    if date_to and expense.expense_date > date_to:
        return False
    return True


def _same_description(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses kept in a dict keyed by ID."""

    def __init__(self, expenses: Optional[list[Expense]] = None):
        self._expenses: dict[UUID, Expense] = {}
        for expense in expenses or []:
            self._expenses[expense.id] = expense

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy()
        return True

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy() if expense else None

    async def update_expense(self, expense: Expense) -> bool:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy()
        return True

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(
        self,
        category: Optional[CategoryName] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        expenses = [
            expense.model_copy()
            for expense in self._expenses.values()
            if _matches(expense, category, date_from, date_to)
        ]
        expenses.sort(key=lambda e: (e.expense_date, e.created_at), reverse=True)
        return expenses[offset:offset + limit]

    async def expense_exists(
        self,
        category: CategoryName,
        amount: Decimal,
        expense_date: date,
        description: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        return any(
            expense.id != exclude_id
            and expense.category == category
            and expense.amount == amount
            and expense.expense_date == expense_date
            and _same_description(expense.description, description)
            for expense in self._expenses.values()
        )


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Budgets keyed by category."""

    def __init__(self):
        self._budgets: dict[CategoryName, Budget] = {}

    async def list_budgets(self) -> list[Budget]:
        return [
            self._budgets.get(default.category, default)
            for default in default_budgets()
        ]

    async def set_budget(self, category: CategoryName, amount: Decimal) -> Budget:
        budget = Budget(category=category, amount=amount)
        self._budgets[category] = budget
        return budget


class InMemorySettingsStorage(SettingsStorageInterface):
    """A single settings record."""

    def __init__(self, defaults: Optional[UserSettings] = None):
        self._defaults = defaults or UserSettings()
        self._settings: Optional[UserSettings] = None

    async def get_settings(self) -> UserSettings:
        if self._settings is None:
            self._settings = self._defaults.model_copy()
        return self._settings.model_copy()

    async def save_settings(self, settings: UserSettings) -> UserSettings:
        self._settings = settings.model_copy()
        return settings


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
