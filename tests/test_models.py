"""
Tests for SpendWise

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

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
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseModels:
    """Tests for expense, budget and settings models."""

    def test_expense_creation(self):
        """Test Expense model creation."""
        expense = Expense(
            expense_date=date(2024, 12, 1),
            amount=Decimal("42.50"),
            category=CategoryName.FOOD,
            description="Groceries",
        )
        assert expense.amount == Decimal("42.50")
        assert expense.category == CategoryName.FOOD
        assert expense.id is not None

    def test_expense_strips_whitespace(self):
        """Test that whitespace is stripped from the description."""
        expense = Expense(
            expense_date=date(2024, 12, 1),
            amount=Decimal("1"),
            category=CategoryName.OTHER,
            description="  Bus ticket  ",
        )
        assert expense.description == "Bus ticket"

    @pytest.mark.parametrize("amount", ["0", "-10", "1.005"])
    def test_expense_rejects_bad_amount(self, amount):
        """Test non-positive and sub-cent amounts are rejected."""
        with pytest.raises(ValueError):
            Expense(
                expense_date=date(2024, 12, 1),
                amount=Decimal(amount),
                category=CategoryName.FOOD,
            )

    def test_expense_rejects_long_description(self):
        """Test description length is capped."""
        with pytest.raises(ValueError):
            Expense(
                expense_date=date(2024, 12, 1),
                amount=Decimal("1"),
                category=CategoryName.FOOD,
                description="x" * 201,
            )

    def test_budget_rejects_negative_amount(self):
        """Test that negative budgets are rejected."""
        with pytest.raises(ValueError):
            Budget(category=CategoryName.FOOD, amount=Decimal("-1"))

    def test_budget_id_is_category(self):
        """Test a budget is identified by its category."""
        assert Budget(category=CategoryName.HEALTH).id == "Health"

    def test_default_budgets(self):
        """Test one zero budget per spending category."""
        budgets = default_budgets()
        assert [b.category for b in budgets] == EXPENSE_CATEGORIES
        assert all(b.amount == 0 for b in budgets)

    def test_user_settings_defaults(self):
        """Test default settings."""
        settings = UserSettings()
        assert settings.monthly_income == Decimal("0")
        assert settings.currency == "USD"
        assert settings.language == "en-US"

    def test_user_settings_rejects_negative_income(self):
        """Test income can't be negative."""
        with pytest.raises(ValueError):
            UserSettings(monthly_income=Decimal("-100"))


class TestAdvisoryModels:
    """Tests for advisory request/response models."""

    def test_request_from_wire_names(self):
        """Test the camelCase names populate the request."""
        request = AdvisoryRequest.model_validate({
            "income": 3000.0,
            "expenses": {"Food": 200.0},
            "budgetGoals": {"Food": 250.0},
            "financialContext": "Paying off a loan",
        })
        assert request.budget_goals == {"Food": 250.0}
        assert request.financial_context == "Paying off a loan"
        assert request.language == "en-US"

    def test_request_rejects_string_amounts(self):
        """Test numeric strings are not coerced."""
        with pytest.raises(ValueError):
            AdvisoryRequest.model_validate({
                "income": "3000",
                "expenses": {},
                "budgetGoals": {},
            })

    def test_request_rejects_long_context(self):
        """Test financial context length is capped."""
        with pytest.raises(ValueError):
            AdvisoryRequest.model_validate({
                "income": 1.0,
                "expenses": {},
                "budgetGoals": {},
                "financialContext": "x" * 2001,
            })

    def test_response_empty(self):
        """Test the empty response."""
        response = AdvisoryResponse.empty()
        assert response.suggestions == {}
        assert response.is_empty is True

    def test_response_accepts_unknown_categories(self):
        """Test suggestion keys are free-form labels."""
        response = AdvisoryResponse(suggestions={"Pets": "Buy food in bulk."})
        assert response.suggestions["Pets"] == "Buy food in bulk."
        assert response.is_empty is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Test expense added",
        )
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            description="Budget updated",
            details={"category": "Food", "amount": "300"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "budget_updated"
        assert log_dict["details"]["category"] == "Food"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            description="Settings updated",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "settings_updated"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_expense_added(self):
        """Test AuditEventBuilder.expense_added."""
        correlation_id = uuid4()
        expense_id = uuid4()

        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            category="Food",
            amount="12.50",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.entity_id == str(expense_id)
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_advice_degraded(self):
        """Test AuditEventBuilder.advice_degraded."""
        event = AuditEventBuilder.advice_degraded(
            failure="schema_mismatch",
            correlation_id=uuid4(),
        )

        assert event.event_type == AuditEventType.ADVICE_DEGRADED
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"failure": "schema_mismatch"}
        assert event.is_user_action is False


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            expense_id=uuid4(),
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="category",
                    issue_type="invalid_value",
                    message="Income is not a spending category",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            expense_id=uuid4(),
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="expense_date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


class TestCategories:
    """Tests for the category enum."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = [
            "Food", "Transport", "Housing", "Utilities", "Entertainment",
            "Health", "Shopping", "Education", "Savings", "Income", "Other",
        ]
        for cat in expected:
            assert CategoryName(cat) is not None

    def test_income_is_not_a_spending_category(self):
        """Test Income is excluded from expense categories."""
        assert CategoryName.INCOME not in EXPENSE_CATEGORIES
        assert len(EXPENSE_CATEGORIES) == len(CategoryName) - 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
