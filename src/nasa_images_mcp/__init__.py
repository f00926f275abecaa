"""
NASA Images MCP - browse the NASA Image and Video Library over MCP

A streamable-HTTP Model Context Protocol server. Each client gets an
isolated session holding one page of search results and a cyclic cursor;
server notifications are delivered on a resumable event stream.

Usage:
    from nasa_images_mcp.presentation.mcp_server import create_app

    app = create_app()

Features:
    - search_nasa_images / get_next_image / get_current_image tools
    - nasa-image://current resource and an HTML viewer resource
    - Per-session isolation with idle eviction
    - Event replay after reconnect (Last-Event-ID)
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
