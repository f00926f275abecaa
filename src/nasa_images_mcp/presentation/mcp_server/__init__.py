"""
NASA Images MCP Server

Streamable-HTTP MCP server exposing three browse tools over the NASA Image
and Video Library.

Usage as standalone server:
    nasa-images-mcp --port 3000

Or in mcp.json:
    {
        "servers": {
            "nasa-images": {
                "type": "http",
                "url": "http://localhost:3000/mcp"
            }
        }
    }

Usage for integration:
    from nasa_images_mcp.presentation.mcp_server import create_app

    app = create_app()  # any ASGI server
"""

from .app import McpEndpoint, create_app
from .handlers import SERVER_NAME, SERVER_VERSION, build_server
from .server import main
from .transport import StreamingTransport, TransportState

__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "McpEndpoint",
    "StreamingTransport",
    "TransportState",
    "build_server",
    "create_app",
    "main",
]
