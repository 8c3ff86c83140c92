"""
Administrative helpers: databases, retention policies and schema listing.

These are thin wrappers issuing one statement each.
"""

import logging
from typing import Any, Dict, List, Optional

from influx_http.influx import InfluxAPI
from influx_http.query import quote_identifier
from influx_http.results import convert_keys, merge_values, series_records

logger = logging.getLogger(__name__)


def _retention_clauses(
    duration: Optional[str],
    replication: Optional[int],
    shard_duration: Optional[str],
    default: bool,
) -> str:
    parts = []
    if duration:
        parts.append(f"DURATION {duration}")
    if replication is not None:
        parts.append(f"REPLICATION {int(replication)}")
    if shard_duration:
        parts.append(f"SHARD DURATION {shard_duration}")
    if default:
        parts.append("DEFAULT")
    return " ".join(parts)


def _from(measurement: Optional[str]) -> str:
    return f" FROM {quote_identifier(measurement)}" if measurement else ""


class AdminMixin:
    """Administrative operations on the client's database."""

    _api: InfluxAPI

    @property
    def database(self) -> str:
        return self._api.database

    async def create_database(self) -> None:
        await self._api.query_post(f"CREATE DATABASE {quote_identifier(self.database)}")
        logger.info(f"Created database {self.database}")

    async def drop_database(self) -> None:
        await self._api.query_post(f"DROP DATABASE {quote_identifier(self.database)}")
        logger.info(f"Dropped database {self.database}")

    async def show_databases(self) -> List[str]:
        return merge_values(await self._api.query("SHOW DATABASES"))

    async def create_retention_policy(
        self,
        name: str,
        duration: str,
        replication: int = 1,
        shard_duration: Optional[str] = None,
        default: bool = False,
    ) -> None:
        q = (
            f"CREATE RETENTION POLICY {quote_identifier(name)} ON {quote_identifier(self.database)} "
            f"{_retention_clauses(duration, replication, shard_duration, default)}"
        )
        await self._api.query_post(q)

    async def update_retention_policy(
        self,
        name: str,
        duration: Optional[str] = None,
        replication: Optional[int] = None,
        shard_duration: Optional[str] = None,
        default: bool = False,
    ) -> None:
        clauses = _retention_clauses(duration, replication, shard_duration, default)
        if not clauses:
            raise ValueError("Nothing to update in the retention policy")
        q = (
            f"ALTER RETENTION POLICY {quote_identifier(name)} ON {quote_identifier(self.database)} "
            f"{clauses}"
        )
        await self._api.query_post(q)

    async def drop_retention_policy(self, name: str) -> None:
        q = f"DROP RETENTION POLICY {quote_identifier(name)} ON {quote_identifier(self.database)}"
        await self._api.query_post(q)

    async def show_retention_policies(self) -> List[Dict[str, Any]]:
        q = f"SHOW RETENTION POLICIES ON {quote_identifier(self.database)}"
        return series_records(await self._api.query(q))

    async def show_measurements(self) -> List[str]:
        return merge_values(await self._api.query("SHOW MEASUREMENTS"))

    async def show_tag_keys(self, measurement: Optional[str] = None) -> List[Dict[str, Any]]:
        return convert_keys(await self._api.query(f"SHOW TAG KEYS{_from(measurement)}"))

    async def show_field_keys(self, measurement: Optional[str] = None) -> List[Dict[str, Any]]:
        return convert_keys(await self._api.query(f"SHOW FIELD KEYS{_from(measurement)}"))

    async def show_series(self, measurement: Optional[str] = None) -> List[str]:
        data = await self._api.query(f"SHOW SERIES{_from(measurement)}")
        return sorted(merge_values(data))
