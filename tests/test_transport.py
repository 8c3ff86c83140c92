"""
Test suite for the HTTP transport.
"""

import asyncio

import pytest

from influx_http.backend import BackendPool, Endpoint, First
from influx_http.exceptions import NoAvailableBackend, ResponseError, TransportError, TransportTimeout
from influx_http.transport import Transport


@pytest.fixture
def pool():
    return BackendPool([Endpoint("http", f"db{i}", 8086) for i in (1, 2, 3)])


@pytest.fixture
def transport(pool, session):
    return Transport(pool, session=session)


def _hosts(session):
    return [call.url.split("://")[1].split("/")[0] for call in session.calls]


@pytest.mark.asyncio
async def test_round_robin_across_endpoints(transport, session):
    for _ in range(4):
        await transport.get("/ping")
    assert _hosts(session) == ["db1:8086", "db2:8086", "db3:8086", "db1:8086"]


@pytest.mark.asyncio
async def test_unavailable_endpoints_skipped(transport, session, pool):
    pool.set_availability({Endpoint("http", "db2", 8086): False})
    for _ in range(4):
        await transport.get("/ping")
    assert "db2:8086" not in _hosts(session)


@pytest.mark.asyncio
async def test_no_available_backend_makes_no_request(transport, session, pool):
    pool.set_availability({e: False for e in pool.endpoints})
    with pytest.raises(NoAvailableBackend):
        await transport.get("/query", {"q": "SELECT 1"})
    assert session.calls == []


@pytest.mark.asyncio
async def test_request_shape(transport, session):
    session.add_response(200, {"results": []})
    response = await transport.get("/query", {"db": "mydb", "q": "SELECT 1"})
    assert response.status == 200
    assert response.data == {"results": []}
    assert response.endpoint.host == "db1"

    call = session.calls[0]
    assert call.method == "GET"
    assert call.url == "http://db1:8086/query"
    assert call.params == {"db": "mydb", "q": "SELECT 1"}
    assert call.kwargs["timeout"].total is None


@pytest.mark.asyncio
async def test_post_sets_form_content_type(transport, session):
    await transport.post("/write", body="cpu a=1i", query={"db": "mydb"})
    call = session.calls[0]
    assert call.method == "POST"
    assert call.data == "cpu a=1i"
    assert call.kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


@pytest.mark.asyncio
async def test_timeout_in_milliseconds(transport, session):
    transport.timeout = 1500
    await transport.get("/ping")
    await transport.get("/ping", timeout=250)
    assert session.calls[0].kwargs["timeout"].total == 1.5
    assert session.calls[1].kwargs["timeout"].total == 0.25


def test_invalid_timeout_ignored(transport):
    transport.timeout = 100
    transport.timeout = "fast"
    transport.timeout = -1
    transport.timeout = True
    assert transport.timeout == 100


@pytest.mark.asyncio
async def test_timeout_raises_transport_timeout(transport, session):
    session.error = asyncio.TimeoutError()
    with pytest.raises(TransportTimeout) as exc_info:
        await transport.get("/ping")
    assert exc_info.value.url == "http://db1:8086/ping"


@pytest.mark.asyncio
async def test_connection_failure_not_retried_by_default(transport, session):
    session.down_hosts.add("db1:8086")
    with pytest.raises(TransportError):
        await transport.get("/ping")
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_retries_route_to_another_endpoint(pool, session):
    transport = Transport(pool, max_retries=2, session=session)
    session.down_hosts.update({"db1:8086", "db2:8086"})
    response = await transport.get("/ping")
    assert response.endpoint.host == "db3"
    assert _hosts(session) == ["db1:8086", "db2:8086", "db3:8086"]


@pytest.mark.asyncio
async def test_retries_exhausted(pool, session):
    transport = Transport(pool, strategy=First(), max_retries=1, session=session)
    session.down_hosts.add("db1:8086")
    with pytest.raises(TransportError):
        await transport.get("/ping")
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_error_response(pool, session):
    transport = Transport(pool, max_retries=3, session=session)
    session.add_response(400, {"error": "unable to parse 'cpu'"})
    with pytest.raises(ResponseError) as exc_info:
        await transport.post("/write", body="cpu")
    assert exc_info.value.status == 400
    assert exc_info.value.body == "unable to parse 'cpu'"
    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_ping(transport, session):
    endpoint = Endpoint("http", "db2", 8086)
    assert await transport.ping(endpoint) is True
    session.add_response(500, "down")
    assert await transport.ping(endpoint) is False
    session.down_hosts.add("db2:8086")
    assert await transport.ping(endpoint) is False
    assert session.calls[0].url == "http://db2:8086/ping"


@pytest.mark.asyncio
async def test_non_json_body_kept_as_text(transport, session):
    session.add_response(200, "pong", "text/plain")
    response = await transport.get("/ping")
    assert response.data == "pong"


@pytest.mark.asyncio
async def test_close_keeps_external_session(transport, session):
    await transport.close()
    assert session.closed is False
