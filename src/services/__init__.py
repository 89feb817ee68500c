"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsSettingsStorage,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryExpenseStorage,
    InMemorySettingsStorage,
    NotFoundError,
    SettingsStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsSettingsStorage",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryExpenseStorage",
    "InMemorySettingsStorage",
    "NotFoundError",
    "SettingsStorageInterface",
    "StorageError",
]
