"""
Unified Exception Hierarchy for NASA Images MCP.

Every error raised below the transport boundary is one of these, so the
transport can turn it into a structured JSON-RPC error without guessing.

Exception Hierarchy:
    NasaImagesError (base)
    ├── ProtocolError
    │   ├── SessionNotFoundError
    │   └── StreamStateLostError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   ├── InvalidParameterError
    │   └── UnknownResourceError
    ├── SessionStateError
    │   ├── NoActiveSearchError
    │   └── NoImageAvailableError
    ├── APIError
    │   └── UpstreamUnavailableError
    └── ConfigurationError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR, ErrorData

# Server-defined codes, in the implementation-defined JSON-RPC range.
SESSION_NOT_FOUND = -32001
RESOURCE_NOT_FOUND = -32002
STREAM_STATE_LOST = -32003


class ErrorSeverity(Enum):
    """Severity levels for errors; the value is the level they are logged at."""

    WARNING = logging.INFO  # Client can correct and resend
    ERROR = logging.WARNING  # Failed but can retry
    CRITICAL = logging.ERROR  # Cannot continue


class ErrorCategory(Enum):
    """Categories for error classification."""

    PROTOCOL = "protocol"
    VALIDATION = "validation"
    SESSION = "session"
    API = "api"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context for error messages."""

    tool_name: str | None = None
    session_id: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class NasaImagesError(Exception):
    """
    Base exception for all NASA Images MCP errors.

    Carries the JSON-RPC ``code`` the transport reports for it, plus
    severity/category/retry guidance for logs and clients.
    """

    code: int = INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    @property
    def log_level(self) -> int:
        return self.severity.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.tool_name:
            result["tool"] = self.context.tool_name
        if self.context.session_id:
            result["sessionId"] = self.context.session_id
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.metadata:
            result["details"] = dict(self.context.metadata)
        return result

    def to_error_data(self) -> ErrorData:
        """JSON-RPC error object, with :meth:`to_dict` as its ``data``."""
        return ErrorData(code=self.code, message=self.message, data=self.to_dict())


# =============================================================================
# Protocol Errors
# =============================================================================


class ProtocolError(NasaImagesError):
    """Malformed or out-of-order request; nothing was changed."""

    code = INVALID_REQUEST

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.PROTOCOL,
            retryable=False,
        )


class SessionNotFoundError(ProtocolError):
    """Raised when a session id is unknown, expired or already closed."""

    code = SESSION_NOT_FOUND

    def __init__(self, session_id: str | None = None) -> None:
        super().__init__(
            "Invalid Request: Session not found.",
            context=ErrorContext(
                session_id=session_id,
                suggestion="Send an initialize request without a session id to begin a new session",
            ),
        )


class StreamStateLostError(ProtocolError):
    """Raised when a stream cannot resume from the requested event id."""

    code = STREAM_STATE_LOST

    def __init__(self, last_event_id: int | None, *, oldest_available: int | None = None) -> None:
        super().__init__(
            f"Stream state lost: cannot resume after event {last_event_id}",
            context=ErrorContext(
                input_value=last_event_id,
                suggestion="Start a new session",
                metadata={"oldest_available": oldest_available},
            ),
        )


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(NasaImagesError):
    """Base class for operation argument errors."""

    code = INVALID_PARAMS

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )


class InvalidQueryError(ValidationError):
    """Raised when the search query is missing or blank."""

    def __init__(self, query: Any, reason: str = "Query cannot be empty") -> None:
        super().__init__(
            f"Invalid query: {reason}",
            context=ErrorContext(
                tool_name="search_nasa_images",
                input_value=query,
                suggestion='Provide a search query, e.g. "apollo 11" or "mars rover"',
            ),
        )


class InvalidParameterError(ValidationError):
    """Raised when an operation's arguments do not match its declared shape."""

    def __init__(self, param_name: str, value: Any, expected: str, *, tool_name: str | None = None) -> None:
        super().__init__(
            f"Invalid parameter '{param_name}': {value!r} (expected {expected})",
            context=ErrorContext(tool_name=tool_name, input_value=value, suggestion=f"Expected {expected}"),
        )


class UnknownResourceError(ValidationError):
    """Raised when reading a resource URI the server does not expose."""

    code = RESOURCE_NOT_FOUND

    def __init__(self, uri: Any) -> None:
        super().__init__(f"Resource not found: {uri}", context=ErrorContext(input_value=uri))


# =============================================================================
# Session State Errors
# =============================================================================


class SessionStateError(NasaImagesError):
    """The session has no results to act on; recoverable by searching first."""

    def __init__(self, message: str, *, context: ErrorContext | None = None) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.SESSION,
            retryable=False,
        )


class NoActiveSearchError(SessionStateError):
    """Raised by advance when there is no page, or the page is empty."""

    def __init__(self) -> None:
        super().__init__(
            "No active search session. Please search first.",
            context=ErrorContext(tool_name="get_next_image", suggestion="Call search_nasa_images first"),
        )


class NoImageAvailableError(SessionStateError):
    """Raised when reading the current image of an absent or empty page."""

    code = RESOURCE_NOT_FOUND

    def __init__(self) -> None:
        super().__init__(
            "No image available. Please search first.",
            context=ErrorContext(suggestion="Call search_nasa_images first"),
        )


# =============================================================================
# API Errors
# =============================================================================


class APIError(NasaImagesError):
    """Base class for upstream API errors."""

    def __init__(self, message: str, *, context: ErrorContext | None = None, retryable: bool = True) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.API,
            retryable=retryable,
        )


class UpstreamUnavailableError(APIError):
    """The image catalog could not be reached or answered with garbage."""

    def __init__(self, message: str = "Failed to search NASA images", *, reason: str | None = None) -> None:
        super().__init__(
            message,
            context=ErrorContext(
                tool_name="search_nasa_images",
                suggestion="Retry the search",
                metadata={"reason": reason} if reason else {},
            ),
        )


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(NasaImagesError):
    """Raised for invalid configuration values."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
