"""Shared fixtures: in-memory storage and a scripted model client."""

import pytest

from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryExpenseStorage,
    InMemorySettingsStorage,
)
from tests.fakes import FakeModelClient


@pytest.fixture
def fake_model():
    return FakeModelClient()


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def budget_storage():
    return InMemoryBudgetStorage()


@pytest.fixture
def settings_storage():
    return InMemorySettingsStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()
