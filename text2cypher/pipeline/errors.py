from __future__ import annotations

from enum import Enum
from typing import Optional

from .validators import ValidationResult


class ProviderErrorKind(Enum):
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    AUTHENTICATION = "AUTHENTICATION"
    UNKNOWN = "UNKNOWN"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ProviderErrorKind.MODEL_NOT_FOUND: 404,
    ProviderErrorKind.RATE_LIMITED: 429,
    ProviderErrorKind.AUTHENTICATION: 401,
    ProviderErrorKind.UNKNOWN: 502,
}


def classify_provider_error(message: str) -> ProviderErrorKind:
    """
    Best-effort mapping of a provider error message to a coarse category.

    This is a substring heuristic over free-form SDK text; anything it does not
    recognise falls back to UNKNOWN. It is used for reporting only.
    """
    text = (message or "").lower()
    if "rate limit" in text or "rate_limit" in text or "quota" in text or "too many requests" in text:
        return ProviderErrorKind.RATE_LIMITED
    if "authentication" in text or "api key" in text or "api_key" in text or "unauthorized" in text:
        return ProviderErrorKind.AUTHENTICATION
    if "not found" in text or "not_found" in text or "does not exist" in text:
        return ProviderErrorKind.MODEL_NOT_FOUND
    return ProviderErrorKind.UNKNOWN


class PipelineError(Exception):
    """Base class for every failure the pipeline reports as a terminal Error event."""


class ConnectionFailure(PipelineError):
    pass


class IntrospectionFailure(PipelineError):
    pass


class ProviderFailure(PipelineError):
    def __init__(self, message: str, kind: Optional[ProviderErrorKind] = None) -> None:
        super().__init__(message)
        self.kind = kind or classify_provider_error(message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class EmptyResponse(PipelineError):
    pass


class QueryRejected(PipelineError):
    """A generated query that can be retried once with feedback."""

    def __init__(self, message: str, query: str) -> None:
        super().__init__(message)
        self.query = query


class ValidationFailure(QueryRejected):
    def __init__(self, query: str, validation: ValidationResult) -> None:
        super().__init__("Query validation failed: " + "; ".join(validation.errors), query)
        self.validation = validation


class ExecutionFailure(QueryRejected):
    pass


__all__ = [
    "ProviderErrorKind",
    "classify_provider_error",
    "PipelineError",
    "ConnectionFailure",
    "IntrospectionFailure",
    "ProviderFailure",
    "EmptyResponse",
    "QueryRejected",
    "ValidationFailure",
    "ExecutionFailure",
]
