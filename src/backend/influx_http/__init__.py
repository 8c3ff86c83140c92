"""
InfluxDB HTTP client

Load-balanced, health-checked access to one or more InfluxDB nodes, with
schema-aware line protocol writes and batched queries.
"""

__version__ = "0.1.0"

from influx_http.backend import BackendPool, Endpoint, First, HealthChecker, RoundRobin
from influx_http.batch import BatchQueue, QueueKind
from influx_http.client import Client
from influx_http.config import ClientSettings, configure_logging
from influx_http.events import EventEmitter, Topic
from influx_http.exceptions import (
    ConfigError,
    InfluxHttpError,
    NoAvailableBackend,
    QueryError,
    ResponseError,
    SchemaViolation,
    TransportError,
    TransportTimeout,
    ValidationError,
)
from influx_http.line_protocol import Point, parse_line, serialize
from influx_http.query import QueryBuilder
from influx_http.reader import Reader
from influx_http.schema import FieldType, SchemaRegistry
from influx_http.transport import Transport
from influx_http.writer import Writer

__all__ = [
    "BackendPool",
    "BatchQueue",
    "Client",
    "ClientSettings",
    "ConfigError",
    "Endpoint",
    "EventEmitter",
    "FieldType",
    "First",
    "HealthChecker",
    "InfluxHttpError",
    "NoAvailableBackend",
    "Point",
    "QueryBuilder",
    "QueryError",
    "QueueKind",
    "Reader",
    "ResponseError",
    "RoundRobin",
    "SchemaRegistry",
    "SchemaViolation",
    "Topic",
    "Transport",
    "TransportError",
    "TransportTimeout",
    "ValidationError",
    "Writer",
    "configure_logging",
    "parse_line",
    "serialize",
]
