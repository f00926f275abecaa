"""Tests for StreamingTransport: state machine, server task lifecycle and stream bookkeeping."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from mcp.types import LATEST_PROTOCOL_VERSION

from nasa_images_mcp.application.session import SessionRegistry
from nasa_images_mcp.presentation.mcp_server import SERVER_NAME
from nasa_images_mcp.presentation.mcp_server.transport import StreamingTransport, TransportState
from nasa_images_mcp.shared.exceptions import ProtocolError, SessionNotFoundError, StreamStateLostError


def _scope(method: str, headers: dict[str, str] | None = None) -> dict:
    return {
        "type": "http",
        "method": method,
        "path": "/mcp",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }


async def _never_receive() -> dict:
    raise AssertionError("request body should not be read")


# ============================================================================
# State machine
# ============================================================================


class TestStateMachine:
    async def test_starts_uninitialized(self, registry):
        session = await registry.begin()

        assert session.transport.state is TransportState.UNINITIALIZED
        assert session.transport.http.mcp_session_id == session.session_id
        assert not session.is_streaming

    async def test_initialize(self, app, mcp, initialize_request):
        response = await mcp.http.post("/mcp", json=initialize_request, headers=mcp.headers())

        assert response.status_code == 200
        session = app.state.registry.resolve(response.headers["mcp-session-id"])
        assert session.transport.state is TransportState.ACTIVE
        body = response.json()
        assert body["id"] == 1
        result = body["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == SERVER_NAME
        assert "tools" in result["capabilities"]
        assert "resources" in result["capabilities"]
        assert "search_nasa_images" in result["instructions"]

    async def test_unknown_protocol_version_falls_back(self, mcp, initialize_request):
        initialize_request["params"]["protocolVersion"] = "1999-01-01"

        response = await mcp.http.post("/mcp", json=initialize_request, headers=mcp.headers())

        assert response.json()["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION

    async def test_request_before_initialize(self, registry):
        session = await registry.begin()
        with pytest.raises(ProtocolError, match="Session is not initialized"):
            await session.transport.handle_request(_scope("POST"), _never_receive, AsyncMock())
        assert session.transport.state is TransportState.UNINITIALIZED

    async def test_stream_before_initialize(self, registry):
        session = await registry.begin()
        with pytest.raises(ProtocolError):
            await session.transport.handle_request(_scope("GET"), _never_receive, AsyncMock())

    async def test_second_initialize_rejected(self, active_session):
        with pytest.raises(ProtocolError, match="already initialized"):
            await active_session.transport.initialize(_scope("POST"), _never_receive, AsyncMock())

    async def test_rejected_initialize_stays_uninitialized(self, registry):
        session = await registry.begin()
        sent = []

        async def receive() -> dict:
            return {"type": "http.request", "body": b"{}", "more_body": False}

        async def send(message) -> None:
            sent.append(message)

        # No Accept header: the transport answers 406 without touching the session.
        established = await session.transport.initialize(
            _scope("POST", {"Content-Type": "application/json"}), receive, send
        )

        assert established is False
        assert sent[0]["status"] == 406
        assert session.transport.state is TransportState.UNINITIALIZED


# ============================================================================
# Server task lifecycle
# ============================================================================


class TestLifecycle:
    async def test_close_terminates_transport(self, active_session):
        transport = active_session.transport

        await transport.close()
        await transport.close()

        assert transport.state is TransportState.CLOSED
        assert transport.http.is_terminated
        with pytest.raises(SessionNotFoundError):
            await transport.handle_request(_scope("POST"), _never_receive, AsyncMock())

    async def test_terminated_transport_ends_its_session(self, app, active_session, eventually):
        registry = app.state.registry

        await active_session.transport.http.terminate()

        await eventually(lambda: active_session.session_id not in registry)
        assert active_session.transport.state is TransportState.CLOSED

    async def test_crashed_server_ends_its_session(self, dispatcher, eventually, caplog):
        async def crash(*args, **kwargs):
            await asyncio.sleep(0)
            raise RuntimeError("server loop died")

        def transport_factory(session):
            transport = StreamingTransport(session, dispatcher)
            transport.server.run = crash
            return transport

        registry = SessionRegistry(transport_factory)

        with caplog.at_level(logging.ERROR):
            session = await registry.begin()
            await eventually(lambda: session.session_id not in registry)

        assert session.transport.state is TransportState.CLOSED
        assert "session crashed" in caplog.text
        assert "server loop died" in caplog.text

    async def test_registry_end_stops_server_task(self, app, active_session):
        transport = active_session.transport

        assert await app.state.registry.end(active_session.session_id)

        assert transport.http.is_terminated
        assert transport.state is TransportState.CLOSED


# ============================================================================
# Streams
# ============================================================================


class TestStreams:
    async def test_resume_point_validated_before_streaming(self, active_session):
        send = AsyncMock()
        scope = _scope("GET", {"Accept": "text/event-stream", "Last-Event-ID": "42"})

        with pytest.raises(StreamStateLostError):
            await active_session.transport.handle_request(scope, _never_receive, send)
        send.assert_not_awaited()

    async def test_malformed_resume_point(self, active_session):
        scope = _scope("GET", {"Accept": "text/event-stream", "Last-Event-ID": "abc"})
        with pytest.raises(StreamStateLostError):
            await active_session.transport.handle_request(scope, _never_receive, AsyncMock())

    async def test_open_stream_marks_session_streaming(self, mcp, active_session):
        async with mcp.stream() as stream:
            assert stream.status == 200
            assert active_session.transport.is_streaming
            assert active_session.is_streaming

        assert not active_session.is_streaming

    async def test_second_stream_is_rejected(self, mcp, active_session):
        async with mcp.stream() as first:
            async with mcp.stream() as second:
                await second.ended()

            assert first.status == 200
            assert second.status == 409
            assert active_session.is_streaming
