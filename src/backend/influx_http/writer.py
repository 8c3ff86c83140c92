"""
Fluent builder for one point of the write path.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from influx_http.influx import InfluxAPI
from influx_http.line_protocol import (
    DEFAULT_PRECISION,
    Point,
    Timestamp,
    check_precision,
    convert_timestamp,
    format_timestamp,
    serialize,
)
from influx_http.schema import SchemaRegistry

logger = logging.getLogger(__name__)


class Writer:
    """Builds a point, then queues it or writes it immediately.

    Example:
        await client.write("http").tag({"spdy": "1"}).field({"use": 300})
        client.write("http").tag("spdy", "2").field("use", 600).queue()
    """

    def __init__(
        self,
        measurement: str,
        api: InfluxAPI,
        schemas: SchemaRegistry,
        on_queue: Callable[[str], Any],
        precision: Optional[str] = None,
    ):
        self.measurement = measurement
        self._api = api
        self._schemas = schemas
        self._on_queue = on_queue
        self._tags: Dict[str, Any] = {}
        self._fields: Dict[str, Any] = {}
        self._time: Optional[Timestamp] = None
        self._precision: Optional[str] = None
        if precision:
            self.precision = precision

    @property
    def precision(self) -> Optional[str]:
        return self._precision

    @precision.setter
    def precision(self, value: str) -> None:
        self._precision = check_precision(value)

    def tag(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> "Writer":
        if isinstance(key, Mapping):
            self._tags.update(key)
        else:
            self._tags[key] = value
        return self

    def field(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> "Writer":
        if isinstance(key, Mapping):
            self._fields.update(key)
        else:
            self._fields[key] = value
        return self

    def time(self, value: Timestamp, precision: Optional[str] = None) -> "Writer":
        """Set the timestamp; integers are read in ``precision`` units."""
        self._time = value
        if precision:
            self.precision = precision
        return self

    def to_point(self) -> Point:
        """The validated and coerced point.

        Raises:
            SchemaViolation: If the point breaks its measurement schema
        """
        fields, tags = self._schemas.validate(self.measurement, self._fields, self._tags)
        return Point(
            measurement=self.measurement,
            tags=tags,
            fields=fields,
            timestamp=self._time,
            precision=self._precision,
        )

    def to_line(self) -> str:
        """Line protocol statement with the timestamp in the writer's precision."""
        return self.to_point().to_line()

    def _queued_line(self) -> str:
        # Queued statements share one request, so their timestamps are
        # normalized to the default precision.
        point = self.to_point()
        timestamp = point.timestamp
        precision = point.precision or DEFAULT_PRECISION
        if timestamp is not None and not isinstance(timestamp, datetime):
            timestamp = convert_timestamp(format_timestamp(timestamp, precision), precision)
        return serialize(point.measurement, point.tags, point.fields, timestamp, DEFAULT_PRECISION)

    def queue(self) -> "Writer":
        """Add the point to the write queue.

        Raises:
            SchemaViolation: The queue is left untouched
            ValidationError: The queue is left untouched
        """
        self._on_queue(self._queued_line())
        return self

    async def send(self) -> None:
        """Write this point now, bypassing the queue."""
        line = self.to_line()
        logger.debug(f"Writing point: {line}", extra={"measurement": self.measurement})
        await self._api.write([line], precision=self._precision)

    def __await__(self):
        return self.send().__await__()
