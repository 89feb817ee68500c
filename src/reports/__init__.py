"""Reporting package."""

from src.reports.formatting import format_currency
from src.reports.builder import (
    ReportService,
    budget_vs_actual,
    monthly_totals,
    recent_expenses,
    spending_breakdown,
    totals_by_category,
)

__all__ = [
    "ReportService",
    "budget_vs_actual",
    "format_currency",
    "monthly_totals",
    "recent_expenses",
    "spending_breakdown",
    "totals_by_category",
]
