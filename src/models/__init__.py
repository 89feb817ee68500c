"""
Data Models Package

This package contains all Pydantic models used in SpendWise.
All data flowing through the system must conform to these schemas.
"""

from src.models.advisory import AdvisoryRequest, AdvisoryResponse
from src.models.budget import (
    EXPENSE_CATEGORIES,
    Budget,
    CategoryName,
    Expense,
    UserSettings,
    ValidationIssue,
    ValidationResult,
    default_budgets,
)
from src.models.report import BudgetProgress, CategoryTotal, DashboardSummary
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Advisory models
    "AdvisoryRequest",
    "AdvisoryResponse",
    # Budget models
    "EXPENSE_CATEGORIES",
    "Budget",
    "CategoryName",
    "Expense",
    "UserSettings",
    "ValidationIssue",
    "ValidationResult",
    "default_budgets",
    # Report models
    "BudgetProgress",
    "CategoryTotal",
    "DashboardSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
