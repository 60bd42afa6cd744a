"""Shared fixtures for the HTTP security system tests."""
import asyncio
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web

from pyhttp_securitysystem.exceptions import SecuritySystemNetworkError
from pyhttp_securitysystem.session import HttpResponse

# Nothing listens here; connecting fails immediately
UNREACHABLE_URL = "http://127.0.0.1:1/unreachable"

MODES = {"stay": "0", "away": "1", "night": "2", "disarm": "3"}


async def settle(rounds: int = 10) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeSession:
    """
    In-memory stand-in for SecuritySystemSession.

    Each url answers with a scripted sequence of bodies or errors; the last
    entry repeats. A gated url blocks until its event is set.
    """

    def __init__(self):
        self.routes: dict[str, list[Any]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, str, dict]] = []
        self.completed: list[str] = []

    def respond(self, url: str, *bodies: Any, status: int = 200) -> None:
        self.routes[url] = [
            b if isinstance(b, Exception) else HttpResponse(status=status, body=b)
            for b in bodies
        ]

    def fail(self, url: str, message: str = "Connection refused") -> None:
        self.routes[url] = [SecuritySystemNetworkError(message)]

    def gate(self, url: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[url] = event
        return event

    def urls_called(self) -> list[str]:
        return [url for url, _, _ in self.calls]

    async def execute(self, url, body="", headers=None, method=None) -> HttpResponse:
        self.calls.append((url, body, dict(headers or {})))
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()

        script = self.routes[url]
        result = script.pop(0) if len(script) > 1 else script[0]
        self.completed.append(url)
        if isinstance(result, Exception):
            raise result
        return result


class RecordingService:
    """Device object model stand-in that records pushed states."""

    def __init__(self):
        self.current: list[int] = []
        self.target: list[int] = []

    def update_current_state(self, state: int) -> None:
        self.current.append(state)

    def update_target_state(self, state: int) -> None:
        self.target.append(state)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def service():
    return RecordingService()


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest_asyncio.fixture
async def alarm_server(aiohttp_server):
    """
    Fake alarm panel.

    GET /state/{current|target} returns the state code as plain text,
    /set/{mode} changes both states, /broken answers 500.
    """
    state: dict[str, Any] = {
        "current": "3",
        "target": "3",
        "requests": [],
    }

    async def handle_state(request: web.Request) -> web.Response:
        state["requests"].append((request.method, request.path, await request.text()))
        return web.Response(text=state[request.match_info["channel"]])

    async def handle_set(request: web.Request) -> web.Response:
        state["requests"].append((request.method, request.path, await request.text()))
        code = MODES[request.match_info["mode"]]
        state["current"] = state["target"] = code
        return web.Response(text="OK")

    async def handle_broken(request: web.Request) -> web.Response:
        state["requests"].append((request.method, request.path, await request.text()))
        return web.Response(status=500, text="boom")

    app = web.Application()
    app.router.add_route("*", "/state/{channel}", handle_state)
    app.router.add_route("*", "/set/{mode}", handle_set)
    app.router.add_route("*", "/broken", handle_broken)
    server = await aiohttp_server(app)
    state["url"] = lambda path: str(server.make_url(path))
    return state
