"""
Core Data Models for SpendWise

These models define the strict schemas for the budgeting data the
application stores and aggregates:
1. Expenses recorded by the user
2. Per-category budget goals
3. User app settings (income, currency, language)
4. Results of expense entry validation

DESIGN DECISION: Money is stored as Decimal with two places.
Aggregations convert to float only at the reporting/AI boundary.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryName(str, Enum):
    """
    Spending categories.

    INCOME is selectable in the data model but is not a spending bucket:
    it has no budget and is excluded from expense aggregation.
    """
    FOOD = "Food"
    TRANSPORT = "Transport"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    SHOPPING = "Shopping"
    EDUCATION = "Education"
    SAVINGS = "Savings"
    INCOME = "Income"
    OTHER = "Other"


EXPENSE_CATEGORIES: list[CategoryName] = [
    category for category in CategoryName if category != CategoryName.INCOME
]


# =============================================================================
# CORE MODELS
# =============================================================================

class Expense(BaseModel):
    """A single recorded expense."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    expense_date: date = Field(
        ...,
        description="Day the money was spent"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount spent"
    )
    category: CategoryName
    description: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Free-text note about the expense"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )


class Budget(BaseModel):
    """
    Monthly budget goal for one category.

    The category doubles as the identifier: there is at most one
    budget per category.
    """

    category: CategoryName
    amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Monthly spending limit"
    )

    @property
    def id(self) -> str:
        return self.category.value


def default_budgets() -> list[Budget]:
    """One zero-amount budget per expense category."""
    return [Budget(category=category) for category in EXPENSE_CATEGORIES]


class UserSettings(BaseModel):
    """Per-user application settings."""
    model_config = ConfigDict(str_strip_whitespace=True)

    monthly_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Monthly income"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )
    language: str = Field(
        default="en-US",
        min_length=2,
        max_length=20,
        description="Locale tag, also used as the AI response language"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'future_date', 'potential_duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage expense validation.

    Stage 1: Schema validation (amount, category, description)
    Stage 2: Semantic validation (dates, amounts, duplicates)
    """

    expense_id: UUID
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
