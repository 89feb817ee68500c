"""
Report Models for SpendWise

Read-only views computed from expenses, budgets and settings.
Nothing here is persisted.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.models.budget import CategoryName, Expense


class CategoryTotal(BaseModel):
    """Amount spent in one category."""

    name: str
    value: float


class BudgetProgress(BaseModel):
    """Budget vs actual spending for one category."""

    category: CategoryName
    budget: Decimal
    spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.budget - self.spent

    @property
    def percent_used(self) -> Optional[float]:
        """Spent as a percentage of the budget; None when no budget is set."""
        if self.budget <= 0:
            return None
        return float(self.spent / self.budget * 100)

    @property
    def is_over_budget(self) -> bool:
        return self.budget > 0 and self.spent > self.budget


class DashboardSummary(BaseModel):
    """Headline numbers for the dashboard page."""

    monthly_income: Decimal
    total_spent: Decimal
    budgets: list[BudgetProgress] = Field(default_factory=list)
    recent_expenses: list[Expense] = Field(default_factory=list)

    @property
    def remaining(self) -> Decimal:
        """Income left after all recorded expenses (may be negative)."""
        return self.monthly_income - self.total_spent
