"""
InfluxDB HTTP API calls: /write and /query.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from influx_http.backend.pool import Endpoint
from influx_http.exceptions import QueryError
from influx_http.line_protocol import check_precision
from influx_http.transport import Transport
from influx_http.uri import ConnectionOptions

logger = logging.getLogger(__name__)

WRITE_PATH = "/write"
QUERY_PATH = "/query"


def check_query_errors(data: Any) -> Any:
    """Raise ``QueryError`` if the response reports an error."""
    if not isinstance(data, dict):
        return data
    if data.get("error"):
        raise QueryError(data["error"])
    errors = [
        f"statement {result.get('statement_id', index)}: {result['error']}"
        for index, result in enumerate(data.get("results") or [])
        if result.get("error")
    ]
    if errors:
        raise QueryError("; ".join(errors))
    return data


class InfluxAPI:
    """Database-bound wrapper of the HTTP endpoints."""

    def __init__(self, transport: Transport, options: ConnectionOptions):
        self.transport = transport
        self.options = options

    @property
    def database(self) -> str:
        return self.options.database

    def _params(self, db: Optional[str] = None, **extra) -> Dict[str, Any]:
        params = {"db": db or self.database}
        params.update(self.options.credentials)
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    async def write(
        self,
        lines: Sequence[str],
        precision: Optional[str] = None,
        endpoint: Optional[Endpoint] = None,
    ) -> None:
        """Write line protocol statements in one request."""
        precision = check_precision(precision)
        if precision == "ns":
            precision = "n"
        body = "\n".join(lines)
        logger.debug(f"Writing {len(lines)} points to {self.database}")
        await self.transport.post(
            WRITE_PATH,
            body=body,
            query=self._params(precision=precision),
            endpoint=endpoint,
        )

    async def query(
        self,
        q: str,
        db: Optional[str] = None,
        epoch: Optional[str] = None,
        endpoint: Optional[Endpoint] = None,
    ) -> Dict[str, Any]:
        """Run a read statement (GET /query)."""
        response = await self.transport.get(
            QUERY_PATH,
            query=self._params(db, q=q, epoch=epoch),
            endpoint=endpoint,
        )
        return check_query_errors(response.data)

    async def query_post(self, q: str, db: Optional[str] = None) -> Dict[str, Any]:
        """Run a statement that changes server state (POST /query)."""
        response = await self.transport.post(
            QUERY_PATH,
            body={"q": q},
            query=self._params(db),
        )
        return check_query_errors(response.data)
