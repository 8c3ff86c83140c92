"""
Health checking for the backend pool.

Every cycle probes all endpoints concurrently and applies the results to the
pool only once the whole cycle has resolved, so routing never sees a
half-updated pool. A cycle still running when the next tick arrives is
abandoned and its results are discarded.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from influx_http.backend.pool import BackendPool, Endpoint

logger = logging.getLogger(__name__)

Probe = Callable[[Endpoint], Union[Any, Awaitable[Any]]]


class HealthChecker:
    """Periodically probes every endpoint and updates its availability."""

    def __init__(
        self,
        pool: BackendPool,
        probe: Probe,
        interval: float = 5.0,
        timeout: int = 2000,
        failure_threshold: int = 3,
    ):
        """
        Initialize the health checker.

        Args:
            pool: The pool whose availability flags are maintained
            probe: Callable receiving an endpoint; returning ``False`` or
                raising marks a failed probe, anything else a success.
                May be a coroutine function.
            interval: Seconds between two cycles
            timeout: Per-probe timeout in ms, 0 for unbounded
            failure_threshold: Consecutive failed probes before an endpoint
                is excluded
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.pool = pool
        self.probe = probe
        self.interval = interval
        self.timeout = timeout
        self.failure_threshold = failure_threshold
        self._failures: Dict[tuple, int] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def failures(self, endpoint: Endpoint) -> int:
        """Current count of consecutive failed probes for ``endpoint``."""
        return self._failures.get(endpoint.key, 0)

    async def _probe_one(self, endpoint: Endpoint) -> bool:
        try:
            result = self.probe(endpoint)
            if inspect.isawaitable(result):
                timeout = self.timeout / 1000 if self.timeout else None
                result = await asyncio.wait_for(result, timeout)
        except Exception as e:
            logger.warning(f"Health probe failed for {endpoint}: {e!r}")
            return False
        if result is False:
            logger.warning(f"Health probe reported {endpoint} unhealthy")
            return False
        return True

    async def check_now(self) -> Dict[Endpoint, bool]:
        """Probe every endpoint once and apply the results together.

        Returns:
            The availability of every endpoint after the cycle
        """
        endpoints = self.pool.endpoints
        results = await asyncio.gather(*(self._probe_one(e) for e in endpoints))

        updates = {}
        for endpoint, healthy in zip(endpoints, results):
            if healthy:
                self._failures[endpoint.key] = 0
                updates[endpoint] = True
                continue
            count = self._failures.get(endpoint.key, 0) + 1
            self._failures[endpoint.key] = count
            if count >= self.failure_threshold:
                updates[endpoint] = False

        for endpoint in self.pool.set_availability(updates):
            state = "available" if endpoint.available else "unavailable"
            logger.info(f"Backend {endpoint} is now {state}")

        return {e: e.available for e in self.pool}

    def start(self) -> None:
        """Start the recurring health check. Requires a running event loop."""
        if self.running:
            self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            f"Health check started: {len(self.pool)} endpoints, interval={self.interval}s"
        )

    def stop(self) -> None:
        """Stop the recurring health check."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Health check stopped")

    @staticmethod
    def _log_cycle_error(cycle: asyncio.Future) -> None:
        if cycle.cancelled():
            return
        error = cycle.exception()
        if error is not None:
            logger.error("Health check cycle failed", exc_info=error)

    async def _run(self) -> None:
        while True:
            cycle = asyncio.ensure_future(self.check_now())
            cycle.add_done_callback(self._log_cycle_error)
            try:
                await asyncio.sleep(self.interval)
            finally:
                if not cycle.done():
                    logger.debug("Abandoning unfinished health check cycle")
                    cycle.cancel()
