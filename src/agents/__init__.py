"""AI Agents package."""

from src.agents.budget_advisor import (
    AdvisoryResult,
    BudgetAdvisorAgent,
    ParseErr,
    ParseFailure,
    ParseOk,
    parse_model_reply,
    render_prompt,
)
from src.agents.exceptions import (
    AdvisoryError,
    ModelUnavailableError,
    RequestValidationError,
)
from src.agents.model_client import (
    GeminiModelClient,
    LanguageModelClient,
    ModelReply,
)

__all__ = [
    "AdvisoryError",
    "AdvisoryResult",
    "BudgetAdvisorAgent",
    "GeminiModelClient",
    "LanguageModelClient",
    "ModelReply",
    "ModelUnavailableError",
    "ParseErr",
    "ParseFailure",
    "ParseOk",
    "RequestValidationError",
    "parse_model_reply",
    "render_prompt",
]
