"""Search-and-browse operations."""

from __future__ import annotations

from .dispatcher import (
    CURRENT_IMAGE_URI,
    ImageSearchClient,
    NotificationPublisher,
    OperationDispatcher,
    OperationResult,
    describe_image,
)
from .operations import (
    CURRENT_TOOL,
    NEXT_TOOL,
    OPERATION_NAMES,
    SEARCH_TOOL,
    CurrentImage,
    NextImage,
    NoArguments,
    SearchArguments,
    SearchImages,
    arguments_schema,
    parse_operation,
)

__all__ = [
    "CURRENT_IMAGE_URI",
    "CURRENT_TOOL",
    "NEXT_TOOL",
    "OPERATION_NAMES",
    "SEARCH_TOOL",
    "CurrentImage",
    "ImageSearchClient",
    "NextImage",
    "NoArguments",
    "NotificationPublisher",
    "OperationDispatcher",
    "OperationResult",
    "SearchArguments",
    "SearchImages",
    "arguments_schema",
    "describe_image",
    "parse_operation",
]
