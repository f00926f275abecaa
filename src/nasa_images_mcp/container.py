"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management.

Usage::

    from nasa_images_mcp.container import ApplicationContainer
    from nasa_images_mcp.shared.settings import load_settings

    container = ApplicationContainer()
    container.config.from_dict(load_settings().to_dict())

    registry = container.session_registry()

    # In tests, override any provider:
    container.nasa_client.override(providers.Object(fake_client))
"""

from __future__ import annotations

import logging
from functools import partial

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)


def _create_nasa_client(nasa_api_base: str, page_size: int, upstream_timeout: float) -> object:
    """Lazy factory for NasaImagesClient."""
    from nasa_images_mcp.infrastructure.nasa import NasaImagesClient

    return NasaImagesClient(base_url=nasa_api_base, page_size=page_size, timeout=upstream_timeout)


def _create_dispatcher(search_client: object) -> object:
    """Lazy factory for OperationDispatcher."""
    from nasa_images_mcp.application.browse import OperationDispatcher

    return OperationDispatcher(search_client)


def _create_session_registry(dispatcher: object, event_log_max_events: int) -> object:
    """Lazy factory for SessionRegistry; every session gets a StreamingTransport."""
    from nasa_images_mcp.application.session import SessionRegistry
    from nasa_images_mcp.presentation.mcp_server.transport import StreamingTransport

    return SessionRegistry(
        partial(StreamingTransport, dispatcher=dispatcher),
        max_events=event_log_max_events,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the NASA Images MCP application.

    Manages creation and lifecycle of all core services:
    - ``nasa_client``: upstream image search client (owns an httpx client)
    - ``dispatcher``: operation dispatcher bound to the client
    - ``session_registry``: live sessions and their transports
    """

    config = providers.Configuration()

    nasa_client = providers.Singleton(
        _create_nasa_client,
        nasa_api_base=config.nasa_api_base,
        page_size=config.page_size,
        upstream_timeout=config.upstream_timeout,
    )

    dispatcher = providers.Singleton(
        _create_dispatcher,
        search_client=nasa_client,
    )

    session_registry = providers.Singleton(
        _create_session_registry,
        dispatcher=dispatcher,
        event_log_max_events=config.event_log_max_events,
    )


__all__ = ["ApplicationContainer"]
