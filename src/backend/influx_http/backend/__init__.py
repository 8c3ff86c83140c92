"""Backend endpoints, routing policies and health checking."""

from influx_http.backend.health import HealthChecker
from influx_http.backend.pool import BackendPool, Endpoint
from influx_http.backend.routing import First, LoadBalancingStrategy, RoundRobin, get_strategy

__all__ = [
    "BackendPool",
    "Endpoint",
    "First",
    "HealthChecker",
    "LoadBalancingStrategy",
    "RoundRobin",
    "get_strategy",
]
