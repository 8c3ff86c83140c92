"""
Fluent builder for one statement of the read path.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Union

from influx_http.config.settings import EPOCH_PRECISIONS, QUERY_FORMATS
from influx_http.exceptions import ValidationError
from influx_http.influx import InfluxAPI
from influx_http.query import QueryBuilder
from influx_http.results import convert

logger = logging.getLogger(__name__)

# Options settable through Reader.set, mapped to builder methods
_SETTERS = {
    "limit": "limit",
    "offset": "offset",
    "slimit": "slimit",
    "soffset": "soffset",
    "order": "order",
    "fill": "fill",
    "tz": "tz",
    "into": "into",
    "relation": "relation",
    "start": "start",
    "end": "end",
}


class Reader(QueryBuilder):
    """Query builder bound to a client's query queue.

    Example:
        rows = await client.query("http").where("spdy", "1").limit(10)
    """

    def __init__(
        self,
        measurement: str,
        api: InfluxAPI,
        on_queue: Callable[[str], Any],
        format: Optional[str] = None,
        epoch: Optional[str] = None,
    ):
        super().__init__(measurement)
        self._api = api
        self._on_queue = on_queue
        self.format = format
        self.epoch = epoch

    def set(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> "Reader":
        """Set one option, or several from a mapping.

        Supports ``format``, ``epoch``, ``rp`` and the clause options
        (limit, offset, slimit, soffset, order, fill, tz, into, relation,
        start, end).
        """
        if isinstance(key, Mapping):
            for k, v in key.items():
                self.set(k, v)
            return self
        if key == "format":
            if value is not None and value not in QUERY_FORMATS:
                raise ValidationError(f"Invalid format {value!r}")
            self.format = value
        elif key == "epoch":
            if value is not None and value not in EPOCH_PRECISIONS:
                raise ValidationError(f"Invalid epoch {value!r}")
            self.epoch = value
        elif key == "rp":
            self.retention_policy = value
        elif key in _SETTERS:
            getattr(self, _SETTERS[key])(value)
        else:
            raise ValidationError(f"Unknown query option {key!r}")
        return self

    def queue(self) -> "Reader":
        """Add the rendered statement to the query queue."""
        self._on_queue(self.render())
        return self

    async def send(self) -> Any:
        """Run this statement now, bypassing the queue."""
        data = await self._api.query(self.render(), epoch=self.epoch)
        return convert(data, self.format)

    def __await__(self):
        return self.send().__await__()
