"""Test doubles shared across test modules."""

from datetime import date
from decimal import Decimal
from typing import Optional

from src.agents import LanguageModelClient, ModelReply
from src.models.budget import CategoryName, Expense


class FakeModelClient(LanguageModelClient):
    """Returns a canned reply (or raises) and remembers every prompt."""

    def __init__(
        self,
        reply: Optional[ModelReply] = None,
        error: Optional[Exception] = None,
    ):
        self.reply = reply or ModelReply(json_output={"suggestions": {}})
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> ModelReply:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def make_expense(
    amount: str = "10.00",
    category: CategoryName = CategoryName.FOOD,
    expense_date: date = date(2024, 5, 10),
    description: Optional[str] = None,
) -> Expense:
    return Expense(
        expense_date=expense_date,
        amount=Decimal(amount),
        category=category,
        description=description,
    )
