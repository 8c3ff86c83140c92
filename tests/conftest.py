"""
Pytest configuration and fixtures for the InfluxDB HTTP client.

Requests are observed through a fake aiohttp session, so no server is needed.
"""

import asyncio
import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import aiohttp
import pytest

from influx_http import Client, ClientSettings

TEST_URI = "http://127.0.0.1:8086,127.0.0.2:8086,127.0.0.3:8086/mydb"


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status: int = 204, body: Any = "", content_type: Optional[str] = None):
        if not isinstance(body, str):
            body = json.dumps(body)
            content_type = content_type or "application/json"
        self.status = status
        self.headers = {"Content-Type": content_type or "text/plain"}
        self._body = body

    async def text(self) -> str:
        return self._body


@dataclass
class Call:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def params(self) -> Dict[str, Any]:
        return self.kwargs.get("params") or {}

    @property
    def data(self) -> Any:
        return self.kwargs.get("data")


class _RequestContext:
    def __init__(self, session: "FakeSession", call: Call):
        self.session = session
        self.call = call

    async def __aenter__(self) -> FakeResponse:
        session = self.session
        if session.gate is not None:
            await session.gate.wait()
        host = self.call.url.split("://", 1)[1].split("/", 1)[0]
        if host in session.down_hosts:
            raise aiohttp.ClientConnectionError(f"Cannot connect to host {host}")
        if session.error is not None:
            raise session.error
        if session.responder is not None:
            return session.responder(self.call)
        if session.responses:
            return session.responses.popleft()
        return FakeResponse()

    async def __aexit__(self, et, ev, tb) -> bool:
        return False


class FakeSession:
    """Records every request and answers with queued or computed responses."""

    def __init__(self):
        self.calls = []
        self.responses = deque()
        self.responder: Optional[Callable[[Call], FakeResponse]] = None
        self.down_hosts = set()
        self.error: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    def add_response(self, status: int = 200, body: Any = "", content_type: Optional[str] = None) -> None:
        self.responses.append(FakeResponse(status, body, content_type))

    def request(self, method: str, url: str, **kwargs) -> _RequestContext:
        call = Call(method, url, kwargs)
        self.calls.append(call)
        return _RequestContext(self, call)

    async def close(self) -> None:
        self.closed = True


def query_response(*statements):
    """Build a /query response body, one list of series per statement."""
    return {
        "results": [
            {"statement_id": index, "series": series}
            for index, series in enumerate(statements)
        ]
    }


@pytest.fixture
def settings():
    """Settings independent from the environment."""
    return ClientSettings(
        timeout=0,
        health_check_interval=0.05,
        health_check_timeout=200,
        failure_threshold=3,
        _env_file=None,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(settings, session):
    return Client(TEST_URI, settings=settings, session=session)
