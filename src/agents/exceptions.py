"""Exceptions raised by the AI budget advisor."""

from typing import Any, Optional


class AdvisoryError(Exception):
    """Base exception for advisory errors."""
    pass


class RequestValidationError(AdvisoryError):
    """
    The advisory request is malformed.

    Raised before the model is called; the request never leaves the app.
    """

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)


class ModelUnavailableError(AdvisoryError):
    """The language model could not be reached or refused the call."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(message)
