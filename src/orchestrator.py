"""
Main Orchestrator for SpendWise

This module ties together all the components and defines the
end-to-end flows for:
1. Expense bookkeeping (validate → save → audit; budgets; settings)
2. AI budget advice (aggregate → request → advisor → audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense is saved without passing validation
- The advisor only sees numbers aggregated from storage
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from gspread.exceptions import GSpreadException
from pydantic import ValidationError

from src.agents import (
    AdvisoryResult,
    BudgetAdvisorAgent,
    GeminiModelClient,
    ModelUnavailableError,
    RequestValidationError,
)
from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.models.advisory import AdvisoryRequest
from src.models.budget import (
    Budget,
    CategoryName,
    Expense,
    UserSettings,
    ValidationResult,
)
from src.reports import ReportService
from src.services.storage import (
    BudgetStorageInterface,
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
from src.validation import ExpenseValidator


logger = structlog.get_logger(__name__)

INCOME_REQUIRED_MESSAGE = (
    "Please set your monthly income in Settings before generating suggestions."
)


class ExpenseFlow:
    """
    Orchestrates expense, budget and settings changes.

    Flow for a new expense:
    1. Build → Expense model (type checks)
    2. Validate → Two-stage validation
    3. Save → Persist to storage (only if no errors)
    4. Audit → Record what happened

    Warnings never block a save; errors always do.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        budget_storage: BudgetStorageInterface,
        settings_storage: SettingsStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expense_storage = expense_storage
        self._budget_storage = budget_storage
        self._settings_storage = settings_storage
        self._validator = validator or ExpenseValidator(expense_storage)
        self._audit_logger = audit_logger

    async def _audit_validation_failure(
        self,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if not self._audit_logger:
            return
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
            if i.severity == "error"
        ]
        await self._audit_logger.log_expense_validation_failed(
            expense_id=result.expense_id,
            issues=issues,
            correlation_id=correlation_id,
        )

    async def _audit_save_failure(
        self,
        entity_type: str,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                entity_type=entity_type,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def add_expense(
        self,
        expense_date: date,
        amount: Decimal,
        category: CategoryName,
        description: Optional[str] = None,
        check_duplicates: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Expense], ValidationResult, str]:
        """
        Validate and save a new expense.

        Returns:
            (saved_expense, validation_result, user_message)

        saved_expense is None when validation found errors.

        Raises:
            pydantic.ValidationError: If the fields don't form an Expense
            StorageError: If the save itself fails
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = Expense(
            expense_date=expense_date,
            amount=amount,
            category=category,
            description=description or None,
        )

        result = await self._validator.validate(expense, check_duplicates=check_duplicates)
        message = self._validator.get_user_friendly_summary(result)

        if not result.is_valid:
            await self._audit_validation_failure(result, correlation_id)
            return None, result, message

        try:
            await self._expense_storage.save_expense(expense)
        except StorageError as e:
            await self._audit_save_failure("expense", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                category=expense.category.value,
                amount=str(expense.amount),
                correlation_id=correlation_id,
            )

        return expense, result, message

    async def update_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Expense], ValidationResult, str]:
        """
        Validate and save changes to an existing expense.

        Returns:
            (updated_expense, validation_result, user_message)

        Raises:
            NotFoundError: If the expense does not exist
            StorageError: If the update itself fails
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._expense_storage.get_expense_by_id(expense.id)
        if existing is None:
            raise NotFoundError(f"Expense not found: {expense.id}")

        result = await self._validator.validate(expense)
        message = self._validator.get_user_friendly_summary(result)

        if not result.is_valid:
            await self._audit_validation_failure(result, correlation_id)
            return None, result, message

        before = existing.model_dump(exclude={"id", "created_at"})
        after = expense.model_dump(exclude={"id", "created_at"})
        changes = {
            key: {"from": str(before[key]), "to": str(value)}
            for key, value in after.items()
            if before[key] != value
        }

        try:
            await self._expense_storage.update_expense(expense)
        except StorageError as e:
            await self._audit_save_failure("expense", e, correlation_id)
            raise

        if self._audit_logger and changes:
            await self._audit_logger.log_expense_updated(
                expense_id=expense.id,
                changes=changes,
                correlation_id=correlation_id,
            )

        return expense, result, message

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense. Returns False if it did not exist."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._expense_storage.delete_expense(expense_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )

        return deleted

    async def list_expenses(
        self,
        category: Optional[CategoryName] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        return await self._expense_storage.list_expenses(
            category=category,
            date_from=date_from,
            date_to=date_to,
        )

    async def list_budgets(self) -> list[Budget]:
        return await self._budget_storage.list_budgets()

    async def set_budget(
        self,
        category: CategoryName,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Set the monthly budget for one category.

        Raises:
            pydantic.ValidationError: If the amount is negative
            StorageError: If the save fails
        """
        correlation_id = correlation_id or create_correlation_id()

        # Validate before touching storage
        budget = Budget(category=category, amount=amount)

        try:
            saved = await self._budget_storage.set_budget(budget.category, budget.amount)
        except StorageError as e:
            await self._audit_save_failure("budget", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_budget_updated(
                category=saved.category.value,
                amount=str(saved.amount),
                correlation_id=correlation_id,
            )

        return saved

    async def get_settings(self) -> UserSettings:
        return await self._settings_storage.get_settings()

    async def update_settings(
        self,
        monthly_income: Optional[Decimal] = None,
        currency: Optional[str] = None,
        language: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UserSettings:
        """
        Merge the given values into the stored settings.

        Fields left as None keep their current value.
        """
        correlation_id = correlation_id or create_correlation_id()

        current = await self._settings_storage.get_settings()
        changes = {
            key: value
            for key, value in {
                "monthly_income": monthly_income,
                "currency": currency,
                "language": language,
            }.items()
            if value is not None
        }
        updated = UserSettings(**{**current.model_dump(), **changes})

        try:
            saved = await self._settings_storage.save_settings(updated)
        except StorageError as e:
            await self._audit_save_failure("settings", e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_settings_updated(
                settings={key: str(value) for key, value in changes.items()},
                correlation_id=correlation_id,
            )

        return saved


class AdvisoryFlow:
    """
    Orchestrates the AI budget advice flow.

    CRITICAL BOUNDARIES:
    1. Storage → deterministic aggregation (ReportService)
    2. Aggregates → AdvisoryRequest
    3. Request → advisor pipeline (one model call)
    4. Outcome → audit (generated or degraded)

    The advisor never sees storage directly.
    """

    def __init__(
        self,
        report_service: ReportService,
        budget_storage: BudgetStorageInterface,
        settings_storage: SettingsStorageInterface,
        advisor: Optional[BudgetAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._reports = report_service
        self._budget_storage = budget_storage
        self._settings_storage = settings_storage
        self._advisor = advisor
        self._audit_logger = audit_logger

    @property
    def advisor(self) -> BudgetAdvisorAgent:
        """The advisor, created on first use so the app starts without Gemini config."""
        if self._advisor is None:
            self._advisor = BudgetAdvisorAgent(GeminiModelClient())
        return self._advisor

    async def build_request(
        self,
        financial_context: Optional[str] = None,
    ) -> AdvisoryRequest:
        """
        Assemble the advisory request from stored data.

        Every expense category is included (0 when nothing was spent),
        as is every budget.

        Raises:
            RequestValidationError: If monthly income is not set
        """
        settings = await self._settings_storage.get_settings()
        if settings.monthly_income <= 0:
            raise RequestValidationError(INCOME_REQUIRED_MESSAGE)

        totals = await self._reports.category_totals()
        budgets = await self._budget_storage.list_budgets()

        return BudgetAdvisorAgent.validate_request({
            "income": float(settings.monthly_income),
            "expenses": {category.value: float(total) for category, total in totals.items()},
            "budgetGoals": {budget.category.value: float(budget.amount) for budget in budgets},
            "language": settings.language,
            "financialContext": financial_context,
        })

    async def get_suggestions(
        self,
        financial_context: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AdvisoryResult:
        """
        Build the request from storage and ask the advisor.

        Returns the advisor result; result.degraded tells the caller
        the model's output was unusable.

        Raises:
            RequestValidationError: Income not set or data malformed
            ModelUnavailableError: Model service could not be reached
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            request = await self.build_request(financial_context)
        except RequestValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_advice_request_rejected(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_advice_requested(
                category_count=len(request.expenses),
                language=request.language,
                has_context=request.financial_context is not None,
                correlation_id=correlation_id,
            )

        try:
            result = await self.advisor.advise(request)
        except ModelUnavailableError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service=e.service,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if result.degraded:
                await self._audit_logger.log_advice_degraded(
                    failure=result.failure.value,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_advice_generated(
                    suggestion_count=len(result.response.suggestions),
                    correlation_id=correlation_id,
                )

        return result


def _default_user_settings() -> UserSettings:
    app = get_settings().app
    return UserSettings(
        monthly_income=Decimal(str(app.default_monthly_income)),
        currency=app.default_currency,
        language=app.default_language,
    )


def create_app_components(
    use_storage: bool = True,
    advisor: Optional[BudgetAdvisorAgent] = None,
) -> tuple[ExpenseFlow, AdvisoryFlow, ReportService]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    Falls back to in-memory storage when False or
                    when Sheets is not configured.
        advisor: Advisor to use; defaults to one backed by Gemini.

    Returns:
        (expense_flow, advisory_flow, report_service)
    """
    defaults = _default_user_settings()
    storages = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            storages = (
                GoogleSheetsExpenseStorage(sheets_client),
                GoogleSheetsBudgetStorage(sheets_client),
                GoogleSheetsSettingsStorage(sheets_client, defaults=defaults),
                GoogleSheetsAuditStorage(sheets_client),
            )
        except (ValidationError, StorageError, GSpreadException) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))

    if storages is None:
        storages = (
            InMemoryExpenseStorage(),
            InMemoryBudgetStorage(),
            InMemorySettingsStorage(defaults=defaults),
            InMemoryAuditStorage(),
        )

    expense_storage, budget_storage, settings_storage, audit_storage = storages
    audit_logger = AuditLogger(audit_storage)

    report_service = ReportService(expense_storage, budget_storage, settings_storage)

    expense_flow = ExpenseFlow(
        expense_storage=expense_storage,
        budget_storage=budget_storage,
        settings_storage=settings_storage,
        audit_logger=audit_logger,
    )

    advisory_flow = AdvisoryFlow(
        report_service=report_service,
        budget_storage=budget_storage,
        settings_storage=settings_storage,
        advisor=advisor,
        audit_logger=audit_logger,
    )

    return expense_flow, advisory_flow, report_service
