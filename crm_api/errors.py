"""Error taxonomy shared by the routes, the SQL pipeline and the providers."""

from __future__ import annotations

from typing import Iterable, List


class CRMError(RuntimeError):
    """Base class for failures raised inside the API."""


class InvalidRequest(CRMError, ValueError):
    """Required request input is missing or empty."""


class ConfigurationError(CRMError):
    """A required setting or credential is not available."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        self.missing: List[str] = list(missing)
        if self.missing:
            message = f"{message}: {', '.join(self.missing)}"
        super().__init__(message)


class UpstreamError(CRMError):
    """The chat-completion API failed, timed out or answered unexpectedly."""


class MalformedResponse(CRMError, ValueError):
    """The model output is not a JSON object of shape {sql, paramValues}."""


class QueryExecutionError(CRMError):
    """The database rejected a statement."""


class UnsafeQueryError(QueryExecutionError):
    """A generated statement failed the read-only check and was never sent."""


class DatabaseUnavailable(CRMError):
    """The database could not be reached."""


class ProviderError(CRMError):
    """Azure Communication Services call failed."""


__all__ = [
    "CRMError",
    "ConfigurationError",
    "DatabaseUnavailable",
    "InvalidRequest",
    "MalformedResponse",
    "ProviderError",
    "QueryExecutionError",
    "UnsafeQueryError",
    "UpstreamError",
]
