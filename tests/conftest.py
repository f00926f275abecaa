"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from functools import partial
from unittest.mock import AsyncMock

import httpx
import pytest
from dependency_injector import providers

from nasa_images_mcp.application.browse import OperationDispatcher
from nasa_images_mcp.application.session import EventLog, ResultPageStore, Session, SessionRegistry
from nasa_images_mcp.container import ApplicationContainer
from nasa_images_mcp.domain.entities import ImageItem
from nasa_images_mcp.presentation.mcp_server import create_app
from nasa_images_mcp.presentation.mcp_server.transport import StreamingTransport
from nasa_images_mcp.shared.settings import Settings

# ============================================================
# Sample Data
# ============================================================


def make_items(count: int, prefix: str = "img") -> list[ImageItem]:
    """Build ``count`` distinct items named ``<prefix>-1`` .. ``<prefix>-N``."""
    return [
        ImageItem(
            nasa_id=f"{prefix}-{i}",
            image_url=f"https://images-assets.nasa.gov/image/{prefix}-{i}/{prefix}-{i}~thumb.jpg",
            title=f"{prefix.title()} {i}",
            description=f"Description of {prefix} {i}",
            date_created="1969-07-20T00:00:00Z",
            center="JSC",
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def item_factory():
    return make_items


@pytest.fixture
def apollo_items():
    """Five Apollo 11 images."""
    return make_items(5, prefix="apollo")


@pytest.fixture
def mock_nasa_collection():
    """Mock response body from GET /search."""
    return {
        "collection": {
            "version": "1.0",
            "href": "https://images-api.nasa.gov/search?q=apollo%2011",
            "items": [
                {
                    "href": "https://images-assets.nasa.gov/image/as11-40-5874/collection.json",
                    "data": [
                        {
                            "nasa_id": "as11-40-5874",
                            "title": "Apollo 11 Mission image - Astronaut Edwin Aldrin",
                            "description": "Buzz Aldrin poses for a photograph beside the U.S. flag.",
                            "date_created": "1969-07-20T00:00:00Z",
                            "center": "JSC",
                            "media_type": "image",
                        }
                    ],
                    "links": [
                        {
                            "href": "https://images-assets.nasa.gov/image/as11-40-5874/as11-40-5874~thumb.jpg",
                            "rel": "preview",
                            "render": "image",
                        }
                    ],
                },
                {
                    "href": "https://images-assets.nasa.gov/image/S69-39961/collection.json",
                    "data": [
                        {
                            "nasa_id": "S69-39961",
                            "title": "Apollo 11 launch",
                            "media_type": "image",
                        }
                    ],
                    "links": [
                        {
                            "href": "https://images-assets.nasa.gov/image/S69-39961/S69-39961~thumb.jpg",
                            "rel": "preview",
                        }
                    ],
                },
            ],
            "metadata": {"total_hits": 2},
        }
    }


# ============================================================
# Service Fixtures
# ============================================================


@pytest.fixture
def search_client(apollo_items):
    """Upstream client double returning the Apollo items."""
    client = AsyncMock()
    client.search = AsyncMock(return_value=apollo_items)
    client.close = AsyncMock()
    return client


@pytest.fixture
def dispatcher(search_client):
    return OperationDispatcher(search_client)


@pytest.fixture
def new_session():
    """Factory for bare sessions (no transport) named s-1, s-2, ..."""
    counter = itertools.count(1)

    def factory(max_events: int = 50) -> Session:
        return Session(
            session_id=f"s-{next(counter)}",
            results=ResultPageStore(),
            events=EventLog(max_events=max_events),
        )

    return factory


class RecordingPublisher:
    """NotificationPublisher double keeping what would have been sent, in order."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.sent]

    async def send_resource_updated(self, uri) -> None:
        self.sent.append(("notifications/resources/updated", {"uri": str(uri)}))

    async def send_log_message(self, level, data, logger=None, related_request_id=None) -> None:
        self.sent.append(("notifications/message", {"level": level, "data": data, "logger": logger}))


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
async def registry(dispatcher):
    """Registry whose sessions get real StreamingTransports."""
    registry = SessionRegistry(partial(StreamingTransport, dispatcher=dispatcher), max_events=50)
    yield registry
    await registry.close_all()


# ============================================================
# HTTP Fixtures
# ============================================================

INITIALIZE_REQUEST = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "0.1"},
    },
}

POST_HEADERS = {"Accept": "application/json, text/event-stream", "Content-Type": "application/json"}


def _parse_frame(frame: str) -> dict[str, str]:
    event: dict[str, str] = {}
    for line in frame.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        event[name] = value.removeprefix(" ")
    return event


class SseStream:
    """
    Drives one ``GET /mcp`` through the ASGI app and collects its events.

    httpx's ASGITransport only returns once the app finishes, which an
    open event stream never does on its own; this keeps the request open
    until the test leaves the ``async with`` block (a client disconnect)
    or the server ends the stream.
    """

    def __init__(self, app, headers: dict[str, str]) -> None:
        self._app = app
        self._headers = headers
        self._request_sent = False
        self._disconnected = asyncio.Event()
        self._changed = asyncio.Event()
        self._buffer = ""
        self._task: asyncio.Task | None = None
        self.status: int | None = None
        self.response_headers: dict[str, str] = {}
        self.body = b""
        self.events: list[dict[str, str]] = []
        self.finished = False

    @property
    def ids(self) -> list[str]:
        return [event["id"] for event in self.events if event.get("data")]

    @property
    def messages(self) -> list[dict]:
        return [json.loads(event["data"]) for event in self.events if event.get("data")]

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def json(self) -> dict:
        return json.loads(self.body)

    def _scope(self) -> dict:
        headers = [(b"host", b"testserver")]
        headers += [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in self._headers.items()]
        return {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/mcp",
            "raw_path": b"/mcp",
            "query_string": b"",
            "root_path": "",
            "headers": headers,
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }

    async def _receive(self) -> dict:
        if not self._request_sent:
            self._request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await self._disconnected.wait()
        return {"type": "http.disconnect"}

    async def _send(self, message: dict) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            self.response_headers = {
                name.decode("latin-1").lower(): value.decode("latin-1") for name, value in message.get("headers", [])
            }
        elif message["type"] == "http.response.body":
            chunk = message.get("body", b"")
            self.body += chunk
            self._buffer += chunk.decode().replace("\r\n", "\n")
            while "\n\n" in self._buffer:
                frame, self._buffer = self._buffer.split("\n\n", 1)
                event = _parse_frame(frame)
                if event:
                    self.events.append(event)
            if not message.get("more_body", False):
                self.finished = True
        self._changed.set()

    async def wait_for(self, predicate, timeout: float = 5.0) -> None:
        async def wait() -> None:
            while not predicate():
                self._changed.clear()
                await self._changed.wait()

        await asyncio.wait_for(wait(), timeout)

    async def ended(self, timeout: float = 5.0) -> None:
        """Wait for the server to finish the response without a client disconnect."""
        await asyncio.wait_for(asyncio.shield(self._task), timeout)

    async def __aenter__(self) -> SseStream:
        self._task = asyncio.create_task(self._app(self._scope(), self._receive, self._send))
        self._task.add_done_callback(lambda _: self._changed.set())
        await self.wait_for(lambda: self.status is not None or self.done)
        # Give the stream a moment to attach to the session before anything is published.
        await asyncio.sleep(0.05)
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._disconnected.set()
        await asyncio.wait_for(self._task, timeout=5.0)


class McpClient:
    """Minimal streamable-HTTP MCP client talking to the app in-process."""

    def __init__(self, app, http: httpx.AsyncClient) -> None:
        self.app = app
        self.http = http
        self.session_id: str | None = None
        self._ids = itertools.count(2)

    def headers(self, session_id: str | None = None) -> dict[str, str]:
        headers = dict(POST_HEADERS)
        session_id = session_id or self.session_id
        if session_id:
            headers["Mcp-Session-Id"] = session_id
        return headers

    async def post(self, message, *, session_id: str | None = None) -> httpx.Response:
        return await self.http.post("/mcp", content=json.dumps(message), headers=self.headers(session_id))

    async def initialize(self) -> str:
        response = await self.http.post("/mcp", json=INITIALIZE_REQUEST, headers=POST_HEADERS)
        assert response.status_code == 200, response.text
        self.session_id = response.headers["mcp-session-id"]
        notified = await self.post({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert notified.status_code == 202, notified.text
        return self.session_id

    async def request(self, method: str, params: dict | None = None) -> dict:
        message = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            message["params"] = params
        response = await self.post(message)
        assert response.status_code == 200, response.text
        return response.json()

    async def call_tool(self, name: str, arguments: dict | None = None) -> dict:
        response = await self.request("tools/call", {"name": name, "arguments": arguments or {}})
        return response["result"]

    async def delete(self, session_id: str | None = None) -> httpx.Response:
        return await self.http.delete("/mcp", headers=self.headers(session_id))

    def stream(
        self,
        *,
        last_event_id: int | str | None = None,
        session_id: str | None = None,
        accept: str = "text/event-stream",
    ) -> SseStream:
        headers = {"Accept": accept}
        session_id = session_id or self.session_id
        if session_id:
            headers["Mcp-Session-Id"] = session_id
        if last_event_id is not None:
            headers["Last-Event-ID"] = str(last_event_id)
        return SseStream(self.app, headers)


@pytest.fixture
def initialize_request():
    return json.loads(json.dumps(INITIALIZE_REQUEST))


@pytest.fixture
def app_factory(search_client):
    """Build an app whose upstream client is the shared test double."""

    def factory(**overrides):
        settings = Settings(**overrides)
        container = ApplicationContainer()
        container.config.from_dict(settings.to_dict())
        container.nasa_client.override(providers.Object(search_client))
        return create_app(settings, container)

    return factory


@pytest.fixture
async def app(app_factory):
    app = app_factory(event_log_max_events=50)
    yield app
    await app.state.registry.close_all()


@pytest.fixture
async def mcp(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
        yield McpClient(app, http)


@pytest.fixture
async def active_session(app, mcp):
    """A session that completed the initialize handshake over HTTP."""
    session_id = await mcp.initialize()
    return app.state.registry.resolve(session_id)


@pytest.fixture
def eventually():
    """Wait until ``predicate()`` holds, polling the event loop."""

    async def wait(predicate, timeout: float = 5.0) -> None:
        async def poll() -> None:
            while not predicate():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout)

    return wait
