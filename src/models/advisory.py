"""
Advisory Models for SpendWise

The request/response pair exchanged with the AI budget advisor.

Both models are ephemeral: they are built for one advisory call and
discarded once the caller has displayed the suggestions.

DESIGN DECISION: Numbers are validated in strict mode.
"abc", "12" and True are rejected instead of being coerced, so a
malformed snapshot never reaches the model.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


FiniteNumber = Annotated[float, Field(strict=True, allow_inf_nan=False)]

DEFAULT_LANGUAGE = "en-US"


class AdvisoryRequest(BaseModel):
    """
    A user's financial snapshot, as sent to the advisor.

    Accepts the camelCase wire names (budgetGoals, financialContext)
    as well as the Python field names.
    """
    model_config = ConfigDict(populate_by_name=True)

    income: float = Field(
        ...,
        ge=0,
        strict=True,
        allow_inf_nan=False,
        description="Monthly income"
    )
    expenses: dict[str, FiniteNumber] = Field(
        ...,
        description="Total spent per category"
    )
    budget_goals: dict[str, FiniteNumber] = Field(
        ...,
        alias="budgetGoals",
        description="Budget goal per category"
    )
    language: str = Field(
        default=DEFAULT_LANGUAGE,
        description="Locale tag for the response language (e.g. en-US, fr-FR)"
    )
    financial_context: Optional[str] = Field(
        default=None,
        alias="financialContext",
        max_length=2000,
        description="Optional free-text goals or context from the user"
    )

    @field_validator("language", mode="before")
    @classmethod
    def default_blank_language(cls, v: Any) -> Any:
        """Fall back to the default locale when none is given."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_LANGUAGE
        return v.strip() if isinstance(v, str) else v

    @field_validator("financial_context")
    @classmethod
    def blank_context_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class AdvisoryResponse(BaseModel):
    """
    Suggestions keyed by category.

    Keys are not checked against known categories; callers must
    handle labels they do not recognise.
    """
    model_config = ConfigDict(strict=True)

    suggestions: dict[str, str] = Field(
        ...,
        description="Category -> one actionable suggestion sentence"
    )

    @classmethod
    def empty(cls) -> "AdvisoryResponse":
        """The well-formed 'no suggestions available' response."""
        return cls(suggestions={})

    @property
    def is_empty(self) -> bool:
        return not self.suggestions
