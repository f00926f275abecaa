"""
MCP request handlers for one session.

Each session gets its own ``mcp.server.lowlevel.Server`` whose handlers
close over that session, so a tool call can only ever touch the Result
Page of the session it arrived on.

Handlers:
- tools/list, tools/call      -> OperationDispatcher
- resources/list, resources/read -> catalog + current image

Tool failures are answered in-band (``isError`` results); resource
failures become JSON-RPC errors carrying ``NasaImagesError.to_dict()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.shared.exceptions import McpError
from mcp.types import Resource, TextContent, Tool

from nasa_images_mcp.application.browse import CURRENT_IMAGE_URI, parse_operation
from nasa_images_mcp.shared.exceptions import NasaImagesError, UnknownResourceError

from .catalog import CURRENT_IMAGE_MIME_TYPE, RESOURCES, TOOLS, VIEWER_HTML, VIEWER_MIME_TYPE, VIEWER_URI
from .instructions import SERVER_INSTRUCTIONS

if TYPE_CHECKING:
    from pydantic import AnyUrl

    from nasa_images_mcp.application.browse import OperationDispatcher
    from nasa_images_mcp.application.session import Session

logger = logging.getLogger(__name__)

SERVER_NAME = "nasa-images-mcp-server"
SERVER_VERSION = "1.0.0"


def build_server(session: Session, dispatcher: OperationDispatcher) -> Server:
    """Create the MCP server that answers requests for ``session``."""
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION, instructions=SERVER_INSTRUCTIONS)
    register_browse_handlers(server, session, dispatcher)
    return server


def register_browse_handlers(server: Server, session: Session, dispatcher: OperationDispatcher) -> None:
    """Register the browse tools and resources on ``server``."""

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return list(TOOLS)

    # Arguments are validated by parse_operation, not by the JSON schema.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> Any:
        session.touch()
        try:
            operation = parse_operation({"name": name, "arguments": arguments})
            result = await dispatcher.dispatch(session, operation, server.request_context.session)
        except NasaImagesError as e:
            logger.log(e.log_level, f"[{session.session_id}] {name} failed: {e.message}")
            raise
        except Exception as e:
            logger.exception(f"[{session.session_id}] {name} crashed")
            raise NasaImagesError("Internal error") from e

        content = [TextContent(type="text", text=result.text)]
        if result.item is None:
            return content
        return content, {"image": result.item.to_dict()}

    @server.list_resources()
    async def list_resources() -> list[Resource]:
        return list(RESOURCES)

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        session.touch()
        target = str(uri)
        try:
            if target == CURRENT_IMAGE_URI:
                item = await dispatcher.current(session)
                return [ReadResourceContents(content=item.image_url, mime_type=CURRENT_IMAGE_MIME_TYPE)]
            if target == VIEWER_URI:
                return [ReadResourceContents(content=VIEWER_HTML, mime_type=VIEWER_MIME_TYPE)]
            raise UnknownResourceError(target)
        except NasaImagesError as e:
            logger.log(e.log_level, f"[{session.session_id}] read {target} failed: {e.message}")
            raise McpError(e.to_error_data()) from e
