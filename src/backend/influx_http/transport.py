"""
HTTP transport routing requests across the backend pool.

Every request goes to one endpoint chosen by the routing policy among the
currently available endpoints. A failed attempt is not retried unless
``max_retries`` is set explicitly, in which case each retry is routed again
through the policy and may land on a different endpoint.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Mapping, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_none,
)

from influx_http.backend.pool import BackendPool, Endpoint
from influx_http.backend.routing import LoadBalancingStrategy, RoundRobin
from influx_http.exceptions import (
    ResponseError,
    TransportError,
    TransportTimeout,
)

logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """Decoded response of one request."""
    status: int
    data: Any
    endpoint: Endpoint


class Transport:
    """Issues GET/POST requests against endpoints of a pool."""

    def __init__(
        self,
        pool: BackendPool,
        strategy: Optional[LoadBalancingStrategy] = None,
        timeout: int = 0,
        max_retries: int = 0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the transport.

        Args:
            pool: Candidate endpoints
            strategy: Routing policy, round-robin by default
            timeout: Default request timeout in ms, 0 for unbounded
            max_retries: Extra attempts after a network failure, 0 disables
            session: Optional aiohttp.ClientSession, created lazily otherwise
        """
        self.pool = pool
        self.strategy = strategy or RoundRobin()
        self._timeout = 0
        self.timeout = timeout
        self.max_retries = max_retries
        self._session = session
        self._owns_session = session is None

    @property
    def timeout(self) -> int:
        """Default request timeout in ms, 0 when unbounded."""
        return self._timeout

    @timeout.setter
    def timeout(self, value) -> None:
        # Non-numeric values are ignored
        if isinstance(value, Real) and not isinstance(value, bool) and value >= 0:
            self._timeout = value
        else:
            logger.debug(f"Ignoring invalid timeout value: {value!r}")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if the transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def select(self) -> Endpoint:
        """Choose the endpoint for the next request.

        Raises:
            NoAvailableBackend: If no endpoint is currently available
        """
        endpoint = self.strategy.select(self.pool.available())
        logger.debug(f"Routing request to {endpoint} ({self.strategy.name})")
        return endpoint

    async def send(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        endpoint: Optional[Endpoint] = None,
    ) -> HTTPResponse:
        """Send one request through the routing policy.

        Args:
            method: HTTP method
            path: Request path, eg ``/query``
            query: Query string parameters
            body: Request body
            timeout: Timeout in ms overriding the instance default
            headers: Extra request headers
            endpoint: Endpoint for the first attempt, chosen by the policy
                when omitted

        Raises:
            NoAvailableBackend: Without touching the network when no
                endpoint is available
            TransportError: On connection failures, timeouts and non-2xx
                responses
        """
        timeout_ms = self.timeout if timeout is None else timeout

        if not self.max_retries:
            target = endpoint or self.select()
            return await self._request(target, method, path, query, body, headers, timeout_ms)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            retry=retry_if_exception_type(TransportError) & retry_if_not_exception_type(ResponseError),
            wait=wait_none(),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                first = attempt.retry_state.attempt_number == 1
                target = endpoint if first and endpoint else self.select()
                return await self._request(target, method, path, query, body, headers, timeout_ms)
        raise RuntimeError(f"{method} {path} failed with no exception captured")

    async def get(self, path: str, query: Optional[Mapping[str, Any]] = None, **kwargs) -> HTTPResponse:
        return await self.send("GET", path, query=query, **kwargs)

    async def post(
        self,
        path: str,
        body: Any = None,
        query: Optional[Mapping[str, Any]] = None,
        **kwargs,
    ) -> HTTPResponse:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        headers.update(kwargs.pop("headers", None) or {})
        return await self.send("POST", path, query=query, body=body, headers=headers, **kwargs)

    async def ping(self, endpoint: Endpoint, path: str = "/ping", timeout: Optional[int] = None) -> bool:
        """Default liveness probe: 2xx means healthy."""
        try:
            response = await self._request(
                endpoint, "GET", path, None, None, None,
                self.timeout if timeout is None else timeout,
            )
        except TransportError as e:
            logger.debug(f"Ping {endpoint} failed: {e}")
            return False
        return 200 <= response.status < 300

    async def _request(
        self,
        endpoint: Endpoint,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]],
        body: Any,
        headers: Optional[Dict[str, str]],
        timeout_ms: int,
    ) -> HTTPResponse:
        url = f"{endpoint.base_url}{path}"
        logger.debug(f"{method} {url}, query: {dict(query or {})}", extra={"endpoint": str(endpoint)})
        client_timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000 if timeout_ms else None)
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                params=dict(query) if query else None,
                data=body,
                headers=headers,
                timeout=client_timeout,
            ) as response:
                status = response.status
                content_type = response.headers.get("Content-Type", "")
                text = await response.text()
        except asyncio.TimeoutError as e:
            raise TransportTimeout(f"{method} {url} timed out after {timeout_ms}ms", url=url) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        data: Any = text
        if text and "json" in content_type:
            try:
                data = json.loads(text)
            except ValueError:
                logger.warning(f"Invalid JSON body from {url}")

        if not 200 <= status < 300:
            message = data.get("error", data) if isinstance(data, dict) else data
            raise ResponseError(status, message, url=url)

        return HTTPResponse(status=status, data=data, endpoint=endpoint)
