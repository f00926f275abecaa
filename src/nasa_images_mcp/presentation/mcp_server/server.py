"""
NASA Images MCP Server - HTTP entry point.

Usage:
    nasa-images-mcp --port 3000
    python -m nasa_images_mcp --host 127.0.0.1 --log-level DEBUG

Environment variables are documented in :mod:`nasa_images_mcp.shared.settings`;
command-line flags take precedence over them.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

import uvicorn

from nasa_images_mcp.shared.exceptions import ConfigurationError
from nasa_images_mcp.shared.settings import Settings, load_settings

from .app import create_app

logger = logging.getLogger(__name__)

# Paths left out of the uvicorn access log.
QUIET_PATHS = ("/health",)


class HealthCheckFilter(logging.Filter):
    """Drop ``uvicorn.access`` records for health checks."""

    def __init__(self, paths: tuple[str, ...] = QUIET_PATHS) -> None:
        super().__init__()
        self.paths = paths

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn passes (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            return path not in self.paths
        return True


def install_access_log_filter() -> None:
    access_logger = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, HealthCheckFilter) for f in access_logger.filters):
        access_logger.addFilter(HealthCheckFilter())


def _parse_args(argv: list[str] | None, defaults: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the NASA Images MCP server (streamable HTTP)")
    parser.add_argument(
        "--host",
        default=defaults.host,
        help=f"Server host (default: {defaults.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=defaults.port,
        help=f"Server port (default: {defaults.port})",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {defaults.log_level})",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run the MCP server."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    args = _parse_args(argv, settings)
    settings = dataclasses.replace(settings, host=args.host, port=args.port, log_level=args.log_level)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    install_access_log_filter()
    app = create_app(settings)

    logger.info("=" * 60)
    logger.info("NASA Images MCP Server")
    logger.info("=" * 60)
    logger.info(f"MCP endpoint: http://{settings.host}:{settings.port}/mcp")
    logger.info(f"Health check: http://{settings.host}:{settings.port}/health")
    logger.info(f"NASA API:     {settings.nasa_api_base}")
    if settings.allowed_hosts:
        logger.info(f"Allowed hosts: {', '.join(settings.allowed_hosts)}")
    logger.info("=" * 60)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
