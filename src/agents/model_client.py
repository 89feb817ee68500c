"""
Language Model Clients

DESIGN DECISION: The advisor talks to the model through a small
abstract client. The Gemini implementation is the production backend;
tests inject a fake client that returns canned replies.

A client makes exactly one request per call:
- No streaming
- No retries
- No caching
Timeouts are whatever the underlying transport enforces.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, ValidationError

from src.agents.exceptions import ModelUnavailableError
from src.config import GeminiSettings, get_settings


class ModelReply(BaseModel):
    """
    What came back from the model.

    json_output is set only by backends that return an already-parsed
    JSON payload. Otherwise the caller has to dig the JSON out of text.
    """

    text: Optional[str] = None
    json_output: Optional[Any] = None


class LanguageModelClient(ABC):
    """Abstract prompt-completion client."""

    @abstractmethod
    async def generate(self, prompt: str) -> ModelReply:
        """
        Send a rendered prompt and ask for JSON-shaped output.

        Raises:
            ModelUnavailableError: If the service cannot be reached
        """
        pass


class GeminiModelClient(LanguageModelClient):
    """Gemini backend using google-generativeai."""

    SERVICE_NAME = "gemini"

    def __init__(self, settings: Optional[GeminiSettings] = None):
        """
        Raises:
            ModelUnavailableError: If no settings are given and GEMINI_*
                environment configuration is missing
        """
        if settings is None:
            try:
                settings = get_settings().gemini
            except ValidationError as e:
                raise ModelUnavailableError(
                    self.SERVICE_NAME,
                    f"Gemini is not configured: {e}",
                ) from e
        self._settings = settings
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    async def generate(self, prompt: str) -> ModelReply:
        try:
            response = await self._model.generate_content_async(prompt)
        except (google_exceptions.GoogleAPIError, ConnectionError, TimeoutError) as e:
            raise ModelUnavailableError(
                self.SERVICE_NAME,
                f"Gemini request failed: {e}",
            ) from e

        return ModelReply(text=self._response_text(response))

    @staticmethod
    def _response_text(response: Any) -> Optional[str]:
        # .text raises ValueError when the candidate has no parts,
        # e.g. the output was blocked by a safety filter.
        try:
            return response.text
        except ValueError:
            return None
