"""Custom exceptions for design-stream."""

from __future__ import annotations

import asyncio
import re
from enum import StrEnum

import httpx

__all__ = [
    "AnalysisTimeoutError",
    "ApiKeyError",
    "DesignStreamError",
    "EmptyResponseError",
    "ErrorKind",
    "ParseError",
    "ProviderError",
    "RateLimitError",
    "RequestCancelledError",
    "TokenLimitError",
    "TransportError",
    "UnsupportedProviderError",
    "classify_error",
]


class ErrorKind(StrEnum):
    """Coarse category a caller uses to decide how to present a failure."""

    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"
    TOKEN_LIMIT = "TOKEN_LIMIT"
    PARSE_ERROR = "PARSE_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    API_KEY = "API_KEY"
    UNKNOWN = "UNKNOWN"


class DesignStreamError(Exception):
    """Base exception for all design-stream errors."""

    default_message = "An unknown error occurred"
    default_kind = ErrorKind.UNKNOWN

    def __init__(self, message: str | None = None, kind: ErrorKind | None = None) -> None:
        super().__init__(message or self.default_message)
        self.kind = kind or self.default_kind

    @property
    def message(self) -> str:
        return str(self)


class RequestCancelledError(DesignStreamError):
    """Raised when the caller's cancel signal fires. Never retried."""

    default_message = "Request cancelled"
    default_kind = ErrorKind.CANCELLED


class AnalysisTimeoutError(DesignStreamError):
    """Raised when the final attempt exceeds its wall-clock budget."""

    default_message = (
        "The AI took too long to respond. Try reducing the input size "
        "or sending a simpler section."
    )
    default_kind = ErrorKind.TIMEOUT


class TokenLimitError(DesignStreamError):
    """Raised when a length stop left nothing usable."""

    default_message = "Response exceeded token limits. Try a smaller or simpler input."
    default_kind = ErrorKind.TOKEN_LIMIT


class ParseError(DesignStreamError):
    """Raised when the response is not recoverable JSON, even after repair."""

    default_message = "Failed to parse AI response as JSON. Please try again."
    default_kind = ErrorKind.PARSE_ERROR


class RateLimitError(DesignStreamError):
    """Raised when the vendor rejects a request with HTTP 429."""

    default_message = "API rate limit reached. Please wait a moment and try again."
    default_kind = ErrorKind.RATE_LIMIT


class ApiKeyError(DesignStreamError):
    """Raised when no usable credential was supplied."""

    default_message = "Please configure your API key first"
    default_kind = ErrorKind.API_KEY


class ProviderError(DesignStreamError):
    """A non-2xx vendor response, described from the vendor's error envelope."""

    def __init__(self, message: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TransportError(DesignStreamError):
    """Network failure that survived every retry attempt."""


class EmptyResponseError(DesignStreamError):
    """The stream finished without producing any text."""


class UnsupportedProviderError(DesignStreamError, ValueError):
    """Raised for a provider id that has no wire adapter."""


_TOKEN_RE = re.compile(r"token|length", re.IGNORECASE)
_RATE_RE = re.compile(r"429|rate", re.IGNORECASE)
_TIMEOUT_RE = re.compile(r"timed?\s*out", re.IGNORECASE)
_PARSE_RE = re.compile(r"parse|json", re.IGNORECASE)


def classify_error(error: BaseException) -> DesignStreamError:
    """Map an arbitrary exception onto the design-stream error taxonomy.

    Already-classified errors are returned unchanged.  Cancellation and
    timeouts are recognised by type; anything else falls back to matching
    the message, and finally to ``UNKNOWN`` with the message preserved.
    """
    if isinstance(error, DesignStreamError):
        return error
    if isinstance(error, asyncio.CancelledError):
        return RequestCancelledError()
    if isinstance(error, (TimeoutError, httpx.TimeoutException)):
        return AnalysisTimeoutError(str(error) or None)

    message = str(error)
    if _TOKEN_RE.search(message):
        return TokenLimitError(message)
    if _RATE_RE.search(message):
        return RateLimitError(message)
    if _TIMEOUT_RE.search(message):
        return AnalysisTimeoutError(message)
    if _PARSE_RE.search(message):
        return ParseError(message)
    return DesignStreamError(message or None)
