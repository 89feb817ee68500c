"""
AI Budget Advisor

Turns a financial snapshot into per-category budget suggestions.

FLOW:
1. Validate the request (strict; nothing malformed reaches the model)
2. Render the prompt (deterministic - same request, same text)
3. Call the model once, asking for JSON
4. Parse the reply into a tagged result: ParseOk | ParseErr
5. ParseErr degrades to an empty suggestion map and is logged

BOUNDARIES:
- Request problems RAISE (RequestValidationError)
- Transport problems RAISE (ModelUnavailableError)
- Model output problems NEVER raise - the UI shows "no suggestions"

The advisor has no state besides its model client and is safe to
call concurrently.
"""

import json
from enum import Enum
from typing import Any, Iterator, Literal, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from src.agents.exceptions import RequestValidationError
from src.agents.model_client import GeminiModelClient, LanguageModelClient, ModelReply
from src.models.advisory import AdvisoryRequest, AdvisoryResponse


logger = structlog.get_logger(__name__)


PROMPT_PREAMBLE = (
    "You are a personal finance advisor specializing in helping people "
    "optimize their budgets.\n"
    "Please provide your response in {language}.\n"
    "\n"
    "Based on the user's income, expenses, budget goals, and financial "
    "context, provide specific and actionable suggestions for adjusting "
    "their budget."
)

PROMPT_OUTPUT_RULES = """You MUST provide your response as a single JSON object.
The JSON object MUST have a top-level key named "suggestions".
The value of the "suggestions" key MUST be an object where each key is a budget category name (string) and its value is the suggestion string for that category.
Each suggestion should be a short, actionable sentence in {language}.

Example JSON output (for en-US):
{{
  "suggestions": {{
    "Food": "Consider reducing restaurant spending by 10% and allocate those funds to savings.",
    "Entertainment": "You could limit entertainment expenses to $50 per month to meet your goals.",
    "Savings": "Based on your goals, try increasing monthly savings contributions by 5%."
  }}
}}
If no specific suggestions can be made for a category based on the input, do not include that category in the "suggestions" object. If no suggestions can be made at all, return an empty "suggestions" object: {{ "suggestions": {{}} }}."""


# =============================================================================
# PROMPT RENDERING
# =============================================================================

def _format_amount(value: float) -> str:
    """1200.0 -> '1200', 12.5 -> '12.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _format_amounts(amounts: Mapping[str, float]) -> list[str]:
    if not amounts:
        return ["  - (none recorded)"]
    return [f"  - {category}: {_format_amount(amount)}" for category, amount in amounts.items()]


def render_prompt(request: AdvisoryRequest) -> str:
    """
    Render the advisor prompt for a validated request.

    Pure function of the request: no timestamps, no randomness.
    Categories are listed in the order the caller supplied them.
    """
    lines = [
        PROMPT_PREAMBLE.format(language=request.language),
        "",
        "User's Financial Profile:",
        f"Income: {_format_amount(request.income)}",
        "Expenses:",
        *_format_amounts(request.expenses),
        "Budget Goals:",
        *_format_amounts(request.budget_goals),
    ]

    if request.financial_context:
        lines.append(f"Financial Context/Goals: {request.financial_context}")

    lines.append("")
    lines.append(PROMPT_OUTPUT_RULES.format(language=request.language))

    return "\n".join(lines) + "\n"


# =============================================================================
# REPLY PARSING
# =============================================================================

class ParseFailure(str, Enum):
    """Why a model reply could not be turned into suggestions."""
    NO_OUTPUT = "no_output"
    NO_JSON_OBJECT = "no_json_object"
    INVALID_JSON = "invalid_json"
    SCHEMA_MISMATCH = "schema_mismatch"


class ParseOk(BaseModel):
    kind: Literal["ok"] = "ok"
    response: AdvisoryResponse


class ParseErr(BaseModel):
    kind: Literal["error"] = "error"
    reason: ParseFailure
    raw_text: Optional[str] = None
    payload: Optional[Any] = None
    detail: Optional[str] = None


ParseOutcome = Union[ParseOk, ParseErr]


def iter_brace_spans(text: str) -> Iterator[str]:
    """
    Yield balanced top-level {...} spans of text, left to right.

    An opening brace that is never closed is skipped, so a stray "{"
    in prose does not hide an object after it. Braces inside JSON
    string literals are ignored. Runs in a single pass.
    """
    open_braces: list[int] = []
    spans: list[tuple[int, int]] = []
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"' and open_braces:
            in_string = True
        elif char == "{":
            open_braces.append(index)
        elif char == "}" and open_braces:
            start = open_braces.pop()
            # Spans closed so far that start after this brace are nested in it
            while spans and spans[-1][0] > start:
                spans.pop()
            spans.append((start, index))

    for start, end in spans:
        yield text[start:end + 1]


def extract_json_object(text: str) -> Union[dict, ParseErr]:
    """
    Pull the first JSON object out of free-form model text.

    Returns the decoded dict, or a ParseErr saying why there was none.
    """
    last_error = None

    for span in iter_brace_spans(text):
        try:
            decoded = json.loads(span)
        except (ValueError, RecursionError) as e:
            # Oversized integers and deep nesting fail here too
            last_error = str(e) or type(e).__name__
            continue
        if isinstance(decoded, dict):
            return decoded

    if last_error is None:
        return ParseErr(reason=ParseFailure.NO_JSON_OBJECT, raw_text=text)

    return ParseErr(
        reason=ParseFailure.INVALID_JSON,
        raw_text=text,
        detail=last_error,
    )


def parse_model_reply(reply: ModelReply) -> ParseOutcome:
    """
    Turn a model reply into validated suggestions or a tagged failure.

    A structured JSON payload, when the backend provides one, wins
    over the text.
    """
    if reply.json_output is not None:
        payload = reply.json_output
    else:
        text = (reply.text or "").strip()
        if not text:
            return ParseErr(reason=ParseFailure.NO_OUTPUT, raw_text=reply.text)

        extracted = extract_json_object(text)
        if isinstance(extracted, ParseErr):
            return extracted
        payload = extracted

    try:
        response = AdvisoryResponse.model_validate(payload)
    except ValidationError as e:
        return ParseErr(
            reason=ParseFailure.SCHEMA_MISMATCH,
            raw_text=reply.text,
            payload=payload,
            detail=str(e),
        )

    return ParseOk(response=response)


# =============================================================================
# ADVISOR
# =============================================================================

class AdvisoryResult(BaseModel):
    """Suggestions plus what went wrong, if anything."""

    response: AdvisoryResponse
    failure: Optional[ParseFailure] = None

    @property
    def degraded(self) -> bool:
        return self.failure is not None


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or "request"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class BudgetAdvisorAgent:
    """
    AI agent that suggests budget adjustments.

    RESPONSIBILITIES:
    - Validate the snapshot before anything leaves the app
    - Build the prompt
    - Coerce whatever the model says into an AdvisoryResponse

    BOUNDARIES:
    - NEVER writes to storage
    - NEVER retries the model call
    - NEVER raises because of the model's output shape
    """

    def __init__(self, model_client: Optional[LanguageModelClient] = None):
        self._model_client = model_client or GeminiModelClient()

    @staticmethod
    def validate_request(
        request: Union[AdvisoryRequest, Mapping[str, Any]],
    ) -> AdvisoryRequest:
        """
        Validate a raw request mapping.

        Raises:
            RequestValidationError: If income is missing, negative or
                non-numeric, or a category map is not numeric
        """
        if isinstance(request, AdvisoryRequest):
            return request

        try:
            return AdvisoryRequest.model_validate(request)
        except ValidationError as e:
            raise RequestValidationError(
                f"Invalid advisory request: {_describe_errors(e)}",
                errors=e.errors(include_url=False),
            ) from e

    async def advise(
        self,
        request: Union[AdvisoryRequest, Mapping[str, Any]],
    ) -> AdvisoryResult:
        """
        Run the full pipeline and report whether the result was degraded.

        Raises:
            RequestValidationError: Malformed request (model not called)
            ModelUnavailableError: Model service could not be reached
        """
        validated = self.validate_request(request)
        prompt = render_prompt(validated)

        reply = await self._model_client.generate(prompt)
        outcome = parse_model_reply(reply)

        if isinstance(outcome, ParseOk):
            return AdvisoryResult(response=outcome.response)

        logger.warning(
            "advisory_output_unusable",
            reason=outcome.reason.value,
            raw_text=outcome.raw_text,
            payload=outcome.payload,
            detail=outcome.detail,
        )
        return AdvisoryResult(
            response=AdvisoryResponse.empty(),
            failure=outcome.reason,
        )

    async def get_suggestions(
        self,
        request: Union[AdvisoryRequest, Mapping[str, Any]],
    ) -> AdvisoryResponse:
        """
        Get budget suggestions for a financial snapshot.

        Returns an empty suggestion map when the model's output is
        unusable.
        """
        result = await self.advise(request)
        return result.response
