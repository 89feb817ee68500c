"""
Integration tests for the expense and advisory flows.

Storage is in memory; the model is a scripted fake.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.agents import (
    BudgetAdvisorAgent,
    ModelReply,
    ModelUnavailableError,
    ParseFailure,
    RequestValidationError,
)
from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.budget import EXPENSE_CATEGORIES, CategoryName, UserSettings
from src.orchestrator import AdvisoryFlow, ExpenseFlow, create_app_components
from src.reports import ReportService
from src.services.storage import (
    InMemoryExpenseStorage,
    InMemorySettingsStorage,
    NotFoundError,
    StorageError,
)
from tests.fakes import FakeModelClient, make_expense


async def event_types(audit_storage) -> list[AuditEventType]:
    events = await audit_storage.get_recent_events()
    return [e.event_type for e in reversed(events)]


@pytest.fixture
def expense_flow(expense_storage, budget_storage, settings_storage, audit_storage):
    return ExpenseFlow(
        expense_storage=expense_storage,
        budget_storage=budget_storage,
        settings_storage=settings_storage,
        audit_logger=AuditLogger(audit_storage),
    )


def make_advisory_flow(
    model: FakeModelClient,
    expense_storage,
    budget_storage,
    settings_storage,
    audit_storage,
) -> AdvisoryFlow:
    return AdvisoryFlow(
        report_service=ReportService(expense_storage, budget_storage, settings_storage),
        budget_storage=budget_storage,
        settings_storage=settings_storage,
        advisor=BudgetAdvisorAgent(model),
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.mark.asyncio
class TestExpenseFlow:
    """Tests for ExpenseFlow."""

    async def test_add_expense_saves_and_audits(self, expense_flow, expense_storage, audit_storage):
        """Test a valid expense is stored and audited."""
        saved, result, message = await expense_flow.add_expense(
            expense_date=date.today(),
            amount=Decimal("18.40"),
            category=CategoryName.TRANSPORT,
            description="Taxi",
        )

        assert saved is not None
        assert result.is_valid
        assert await expense_storage.get_expense_by_id(saved.id) == saved
        assert await event_types(audit_storage) == [AuditEventType.EXPENSE_ADDED]

    async def test_add_income_expense_is_refused(self, expense_flow, expense_storage, audit_storage):
        """Test validation errors stop the save."""
        saved, result, message = await expense_flow.add_expense(
            expense_date=date.today(),
            amount=Decimal("10"),
            category=CategoryName.INCOME,
        )

        assert saved is None
        assert result.has_errors
        assert await expense_storage.list_expenses() == []
        assert await event_types(audit_storage) == [AuditEventType.EXPENSE_VALIDATION_FAILED]

    async def test_add_expense_with_warning_still_saves(self, expense_flow, expense_storage):
        """Test warnings (possible duplicate) don't block the save."""
        for _ in range(2):
            saved, result, message = await expense_flow.add_expense(
                expense_date=date.today(),
                amount=Decimal("3.00"),
                category=CategoryName.FOOD,
                description="Coffee",
            )

        assert saved is not None
        assert result.warnings
        assert len(await expense_storage.list_expenses()) == 2

    async def test_add_expense_rejects_bad_amount(self, expense_flow):
        """Test amounts that can't form an Expense raise."""
        with pytest.raises(ValueError):
            await expense_flow.add_expense(
                expense_date=date.today(),
                amount=Decimal("-1"),
                category=CategoryName.FOOD,
            )

    async def test_save_failure_is_audited_and_raised(self, budget_storage, settings_storage, audit_storage):
        """Test storage errors propagate after being audited."""
        expense_storage = InMemoryExpenseStorage()
        expense_storage.save_expense = AsyncMock(side_effect=StorageError("sheet locked"))
        flow = ExpenseFlow(
            expense_storage=expense_storage,
            budget_storage=budget_storage,
            settings_storage=settings_storage,
            audit_logger=AuditLogger(audit_storage),
        )

        with pytest.raises(StorageError):
            await flow.add_expense(
                expense_date=date.today(),
                amount=Decimal("5"),
                category=CategoryName.FOOD,
            )

        assert await event_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    async def test_update_expense_records_changes(self, expense_flow, expense_storage, audit_storage):
        """Test only changed fields are audited."""
        expense = make_expense("10.00", expense_date=date.today())
        await expense_storage.save_expense(expense)

        changed = expense.model_copy(update={"amount": Decimal("12.00")})
        updated, result, message = await expense_flow.update_expense(changed)

        assert updated.amount == Decimal("12.00")
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.EXPENSE_UPDATED
        assert list(events[0].details["changes"]) == ["amount"]

    async def test_update_unknown_expense(self, expense_flow):
        """Test updating a missing expense raises."""
        with pytest.raises(NotFoundError):
            await expense_flow.update_expense(make_expense())

    async def test_delete_expense(self, expense_flow, expense_storage, audit_storage):
        """Test delete is audited only when something was removed."""
        expense = make_expense()
        await expense_storage.save_expense(expense)

        assert await expense_flow.delete_expense(expense.id) is True
        assert await expense_flow.delete_expense(expense.id) is False
        assert await event_types(audit_storage) == [AuditEventType.EXPENSE_DELETED]

    async def test_set_budget(self, expense_flow, audit_storage):
        """Test budgets are saved and audited."""
        budget = await expense_flow.set_budget(CategoryName.FOOD, Decimal("400"))

        budgets = {b.category: b.amount for b in await expense_flow.list_budgets()}
        assert budget.amount == Decimal("400")
        assert budgets[CategoryName.FOOD] == Decimal("400")
        assert await event_types(audit_storage) == [AuditEventType.BUDGET_UPDATED]

    async def test_update_settings_merges(self, expense_flow):
        """Test fields left as None keep their value."""
        await expense_flow.update_settings(monthly_income=Decimal("3200"))
        settings = await expense_flow.update_settings(currency="EUR")

        assert settings.monthly_income == Decimal("3200")
        assert settings.currency == "EUR"
        assert settings.language == "en-US"


@pytest.mark.asyncio
class TestAdvisoryFlow:
    """Tests for AdvisoryFlow."""

    @pytest.fixture
    def income_settings(self):
        return InMemorySettingsStorage(
            UserSettings(monthly_income=Decimal("4000"), language="de-DE")
        )

    async def test_request_built_from_storage(self, expense_storage, budget_storage, income_settings, audit_storage):
        """Test every category and budget is sent, as floats."""
        await expense_storage.save_expense(make_expense("60.50"))
        await budget_storage.set_budget(CategoryName.FOOD, Decimal("100"))
        flow = make_advisory_flow(FakeModelClient(), expense_storage, budget_storage, income_settings, audit_storage)

        request = await flow.build_request("  Buying a bike  ")

        assert request.income == 4000.0
        assert list(request.expenses) == [c.value for c in EXPENSE_CATEGORIES]
        assert request.expenses["Food"] == 60.5
        assert request.expenses["Health"] == 0.0
        assert request.budget_goals["Food"] == 100.0
        assert request.language == "de-DE"
        assert request.financial_context == "Buying a bike"

    async def test_no_income_refused_before_model(self, expense_storage, budget_storage, settings_storage, audit_storage):
        """Test advice needs a monthly income."""
        model = FakeModelClient()
        flow = make_advisory_flow(model, expense_storage, budget_storage, settings_storage, audit_storage)

        with pytest.raises(RequestValidationError, match="monthly income"):
            await flow.get_suggestions()

        assert model.prompts == []
        assert await event_types(audit_storage) == [AuditEventType.ADVICE_REQUEST_REJECTED]

    async def test_suggestions_generated(self, expense_storage, budget_storage, income_settings, audit_storage):
        """Test a good reply is returned and audited."""
        model = FakeModelClient(ModelReply(json_output={"suggestions": {"Food": "Weniger auswärts essen."}}))
        flow = make_advisory_flow(model, expense_storage, budget_storage, income_settings, audit_storage)

        result = await flow.get_suggestions()

        assert not result.degraded
        assert result.response.suggestions == {"Food": "Weniger auswärts essen."}
        assert "Please provide your response in de-DE." in model.prompts[0]
        assert await event_types(audit_storage) == [
            AuditEventType.ADVICE_REQUESTED,
            AuditEventType.ADVICE_GENERATED,
        ]

    async def test_degraded_reply_audited(self, expense_storage, budget_storage, income_settings, audit_storage):
        """Test unusable output is returned as empty and audited."""
        model = FakeModelClient(ModelReply(text="Sorry, no idea."))
        flow = make_advisory_flow(model, expense_storage, budget_storage, income_settings, audit_storage)

        result = await flow.get_suggestions()

        assert result.failure == ParseFailure.NO_JSON_OBJECT
        assert result.response.suggestions == {}
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.ADVICE_DEGRADED
        assert events[0].details == {"failure": "no_json_object"}

    async def test_model_unavailable_audited_and_raised(self, expense_storage, budget_storage, income_settings, audit_storage):
        """Test transport failures are audited then re-raised."""
        model = FakeModelClient(error=ModelUnavailableError("gemini", "503"))
        flow = make_advisory_flow(model, expense_storage, budget_storage, income_settings, audit_storage)

        with pytest.raises(ModelUnavailableError):
            await flow.get_suggestions()

        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert events[0].details == {"service": "gemini"}


@pytest.mark.asyncio
class TestCreateAppComponents:
    """Tests for the component factory."""

    async def test_in_memory_components_work_together(self):
        """Test flows built without Sheets share the same storage."""
        model = FakeModelClient(ModelReply(json_output={"suggestions": {"Savings": "Save more."}}))
        expense_flow, advisory_flow, report_service = create_app_components(
            use_storage=False,
            advisor=BudgetAdvisorAgent(model),
        )

        await expense_flow.update_settings(monthly_income=Decimal("2000"))
        await expense_flow.add_expense(
            expense_date=date.today(),
            amount=Decimal("75.00"),
            category=CategoryName.SHOPPING,
        )
        summary = await report_service.dashboard()
        result = await advisory_flow.get_suggestions()

        assert summary.total_spent == Decimal("75.00")
        assert summary.remaining == Decimal("1925.00")
        assert result.response.suggestions == {"Savings": "Save more."}
        assert "  - Shopping: 75\n" in model.prompts[0]
