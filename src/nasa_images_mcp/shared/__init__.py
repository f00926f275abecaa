"""
Shared module for NASA Images MCP.

Provides:
- Unified exception hierarchy and JSON-RPC error codes
- Environment-driven settings
"""

from .exceptions import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    RESOURCE_NOT_FOUND,
    SESSION_NOT_FOUND,
    STREAM_STATE_LOST,
    APIError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidParameterError,
    InvalidQueryError,
    NasaImagesError,
    NoActiveSearchError,
    NoImageAvailableError,
    ProtocolError,
    SessionNotFoundError,
    SessionStateError,
    StreamStateLostError,
    UnknownResourceError,
    UpstreamUnavailableError,
    ValidationError,
)
from .settings import Settings, load_settings

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "RESOURCE_NOT_FOUND",
    "SESSION_NOT_FOUND",
    "STREAM_STATE_LOST",
    "APIError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidParameterError",
    "InvalidQueryError",
    "NasaImagesError",
    "NoActiveSearchError",
    "NoImageAvailableError",
    "ProtocolError",
    "SessionNotFoundError",
    "SessionStateError",
    "Settings",
    "StreamStateLostError",
    "UnknownResourceError",
    "UpstreamUnavailableError",
    "ValidationError",
    "load_settings",
]
