"""
Two-Stage Expense Validation

STAGE 1 - SCHEMA VALIDATION:
- Category is a spending category (not Income)
- Description is not just symbols
(Amount sign and precision are already enforced by the Expense model.)

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Unusually old dates
- Absurd amount detection
- Duplicate detection (needs storage)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to review.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from src.config import AppSettings, get_settings
from src.models.budget import (
    EXPENSE_CATEGORIES,
    Expense,
    ValidationIssue,
    ValidationResult,
)
from src.services.storage import ExpenseStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class ExpenseValidator:
    """
    Validates expenses through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (uses storage for duplicate checks)
    """

    def __init__(
        self,
        expense_storage: Optional[ExpenseStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            expense_storage: Storage interface for duplicate checking.
                            If None, duplicate checking is skipped.
        """
        self._storage = expense_storage
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        expense: Expense,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if expense.category not in EXPENSE_CATEGORIES:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"{expense.category.value} is not a spending category",
                severity="error",
                suggested_fix="Pick the category this money was spent on",
            ))

        if expense.description is not None and not any(c.isalnum() for c in expense.description):
            issues.append(ValidationIssue(
                field="description",
                issue_type="suspicious_value",
                message="Description has no letters or numbers",
                severity="warning",
                suggested_fix="Describe what the money was spent on, or leave it empty",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        expense: Expense,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if expense.expense_date > max_future_date:
            issues.append(ValidationIssue(
                field="expense_date",
                issue_type="future_date",
                message=f"Expense date ({expense.expense_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        min_reasonable_date = today - timedelta(days=365 * 2)
        if expense.expense_date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="expense_date",
                issue_type="suspicious_date",
                message=f"Expense date ({expense.expense_date}) is more than two years ago",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if expense.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({expense.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    async def _check_duplicates(
        self,
        expense: Expense,
    ) -> list[ValidationIssue]:
        """Check whether the same expense was already recorded."""
        if self._storage is None:
            return []

        try:
            is_duplicate = await self._storage.expense_exists(
                category=expense.category,
                amount=expense.amount,
                expense_date=expense.expense_date,
                description=expense.description,
                exclude_id=expense.id,
            )
        except StorageError as e:
            # Don't fail validation due to storage errors
            logger.warning("duplicate_check_failed", error=str(e))
            return []

        if not is_duplicate:
            return []

        return [ValidationIssue(
            field="duplicate",
            issue_type="potential_duplicate",
            message=(
                f"A {expense.category.value} expense of {expense.amount:,.2f} "
                f"on {expense.expense_date} is already recorded"
            ),
            severity="warning",
            suggested_fix="Please verify this isn't a duplicate entry",
        )]

    async def validate(
        self,
        expense: Expense,
        check_duplicates: bool = True,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            expense: The expense to validate
            check_duplicates: Whether to check for duplicates (requires storage)
            today: Reference date for date checks (defaults to date.today())
        """
        today = today or date.today()
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(expense)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(expense, today)
            all_issues.extend(semantic_issues)

            if check_duplicates:
                all_issues.extend(await self._check_duplicates(expense))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            expense_id=expense.id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a user-friendly summary of validation results."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This expense can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
