"""
Report Builder

DESIGN DECISION: Reports are DETERMINISTIC aggregations of stored data.
The same numbers feed the dashboard, the reports page and the AI
advisor, so the advisor only ever sees figures the user can see too.

Pure functions do the arithmetic; ReportService fetches from storage
and calls them.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from src.models.budget import (
    EXPENSE_CATEGORIES,
    Budget,
    CategoryName,
    Expense,
)
from src.models.report import BudgetProgress, CategoryTotal, DashboardSummary
from src.services.storage import (
    BudgetStorageInterface,
    ExpenseStorageInterface,
    SettingsStorageInterface,
)


RECENT_EXPENSE_COUNT = 5


def totals_by_category(expenses: Iterable[Expense]) -> dict[CategoryName, Decimal]:
    """
    Sum expenses per spending category.

    Every spending category is present (0 when nothing was spent).
    Expenses filed under a non-spending category are ignored.
    """
    totals = {category: Decimal("0") for category in EXPENSE_CATEGORIES}
    for expense in expenses:
        if expense.category in totals:
            totals[expense.category] += expense.amount
    return totals


def spending_breakdown(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """Totals for categories with any spending, in category order."""
    return [
        CategoryTotal(name=category.value, value=float(total))
        for category, total in totals_by_category(expenses).items()
        if total > 0
    ]


def budget_vs_actual(
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    include_unset: bool = False,
) -> list[BudgetProgress]:
    """
    Budget vs actual per category.

    Args:
        include_unset: Also return categories whose budget is 0
    """
    totals = totals_by_category(expenses)
    return [
        BudgetProgress(
            category=budget.category,
            budget=budget.amount,
            spent=totals.get(budget.category, Decimal("0")),
        )
        for budget in budgets
        if include_unset or budget.amount > 0
    ]


def monthly_totals(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Total spent per calendar month ("YYYY-MM"), oldest first."""
    groups: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for expense in expenses:
        if expense.category in EXPENSE_CATEGORIES:
            groups[expense.expense_date.strftime("%Y-%m")] += expense.amount
    return dict(sorted(groups.items()))


def recent_expenses(
    expenses: Iterable[Expense],
    count: int = RECENT_EXPENSE_COUNT,
) -> list[Expense]:
    """The most recent expenses, newest first."""
    ordered = sorted(expenses, key=lambda e: (e.expense_date, e.created_at), reverse=True)
    return ordered[:count]


class ReportService:
    """
    Builds reports from storage.

    GUARANTEES:
    - Only returns real data from storage
    - Never estimates or fills gaps
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        budget_storage: BudgetStorageInterface,
        settings_storage: SettingsStorageInterface,
    ):
        self._expenses = expense_storage
        self._budgets = budget_storage
        self._settings = settings_storage

    async def _spending_expenses(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        return await self._expenses.list_expenses(
            date_from=date_from,
            date_to=date_to,
            limit=100000,
        )

    async def category_totals(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> dict[CategoryName, Decimal]:
        return totals_by_category(await self._spending_expenses(date_from, date_to))

    async def spending_breakdown(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[CategoryTotal]:
        return spending_breakdown(await self._spending_expenses(date_from, date_to))

    async def budget_vs_actual(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_unset: bool = False,
    ) -> list[BudgetProgress]:
        budgets = await self._budgets.list_budgets()
        expenses = await self._spending_expenses(date_from, date_to)
        return budget_vs_actual(budgets, expenses, include_unset=include_unset)

    async def monthly_totals(self) -> dict[str, Decimal]:
        return monthly_totals(await self._spending_expenses())

    async def dashboard(self) -> DashboardSummary:
        settings = await self._settings.get_settings()
        budgets = await self._budgets.list_budgets()
        expenses = await self._spending_expenses()

        return DashboardSummary(
            monthly_income=settings.monthly_income,
            total_spent=sum((e.amount for e in expenses), Decimal("0")),
            budgets=budget_vs_actual(budgets, expenses, include_unset=True),
            recent_expenses=recent_expenses(expenses),
        )
