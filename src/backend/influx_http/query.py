"""
InfluxQL statement builder.

Identifiers are always double quoted and string values single quoted, with
the quote character and backslash escaped, so user input can never close a
literal early.
"""

import logging
import re
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from influx_http.exceptions import ValidationError

logger = logging.getLogger(__name__)

STATEMENT_SEPARATOR = ";"

OPERATORS = ("=", "!=", "<>", "<", "<=", ">", ">=", "=~", "!~")
FILL_OPTIONS = ("null", "none", "previous", "linear")
_RELATIVE_TIME = re.compile(r"^-?\d+(ns|u|µ|ms|s|m|h|d|w)$")
_DURATION = re.compile(r"^\d+(ns|u|µ|ms|s|m|h|d|w)$")


def quote_identifier(name: str) -> str:
    if name == "*":
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def quote_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def format_value(value: Any) -> str:
    """Render a literal for a WHERE clause."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Real):
        return repr(value) if isinstance(value, float) else str(value)
    if isinstance(value, datetime):
        return quote_string(_rfc3339(value))
    if isinstance(value, re.Pattern):
        return "/" + value.pattern.replace("/", "\\/") + "/"
    if isinstance(value, str):
        return quote_string(value)
    raise ValidationError(f"Unsupported value type {type(value).__name__}")


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_time(value: Union[str, int, datetime]) -> str:
    """Render a time bound.

    ``"-1h"`` becomes ``now() - 1h``, expressions starting with ``now()`` are
    kept, integers are nanosecond epochs and datetimes are quoted RFC3339.
    """
    if isinstance(value, datetime):
        return quote_string(_rfc3339(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("now()"):
            return value
        if _RELATIVE_TIME.match(value):
            sign = "-" if value.startswith("-") else "+"
            return f"now() {sign} {value.lstrip('-')}"
        return quote_string(value)
    raise ValidationError(f"Invalid time value {value!r}")


def join_statements(statements: Iterable[str]) -> str:
    return STATEMENT_SEPARATOR.join(statements)


class QueryBuilder:
    """Accumulates query state and renders one SELECT statement."""

    def __init__(self, measurement: Optional[str] = None, retention_policy: Optional[str] = None):
        self.measurement = measurement
        self.retention_policy = retention_policy
        self._fields: List[str] = []
        self._conditions: List[str] = []
        self._time: List[str] = []
        self._relation = "AND"
        self._group_by: List[str] = []
        self._fill: Optional[str] = None
        self._order: Optional[str] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._slimit: Optional[int] = None
        self._soffset: Optional[int] = None
        self._tz: Optional[str] = None
        self._into: Optional[str] = None

    def add_field(self, *names: str) -> "QueryBuilder":
        for name in names:
            self._fields.append(quote_identifier(name))
        return self

    def add_function(self, func: str, field: str = "*", alias: Optional[str] = None) -> "QueryBuilder":
        """Select an aggregate, eg ``add_function("mean", "use", "avg_use")``."""
        if not re.match(r"^[A-Za-z_]+$", func):
            raise ValidationError(f"Invalid function name {func!r}")
        expr = f"{func.lower()}({quote_identifier(field)})"
        if alias:
            expr = f"{expr} AS {quote_identifier(alias)}"
        self._fields.append(expr)
        return self

    def where(
        self,
        key: Union[str, Mapping[str, Any]],
        value: Any = None,
        op: str = "=",
    ) -> "QueryBuilder":
        """Add a predicate.

        A mapping adds one equality per key. A list or tuple value matches
        any of its items.
        """
        if isinstance(key, Mapping):
            for k, v in key.items():
                self.where(k, v, op)
            return self
        if op not in OPERATORS:
            raise ValidationError(f"Invalid operator {op!r}")
        if isinstance(value, (list, tuple, set, frozenset)):
            items = [f"{quote_identifier(key)} {op} {format_value(v)}" for v in value]
            if not items:
                raise ValidationError(f"Empty value list for {key!r}")
            condition = items[0] if len(items) == 1 else f"({' OR '.join(items)})"
        else:
            condition = f"{quote_identifier(key)} {op} {format_value(value)}"
        self._conditions.append(condition)
        return self

    def where_raw(self, condition: str) -> "QueryBuilder":
        self._conditions.append(f"({condition})")
        return self

    def relation(self, relation: str) -> "QueryBuilder":
        """Set how conditions are combined, ``and`` or ``or``."""
        relation = relation.upper()
        if relation not in ("AND", "OR"):
            raise ValidationError(f"Invalid relation {relation!r}")
        self._relation = relation
        return self

    def start(self, value: Union[str, int, datetime]) -> "QueryBuilder":
        self._time.append(f"time >= {format_time(value)}")
        return self

    def end(self, value: Union[str, int, datetime]) -> "QueryBuilder":
        self._time.append(f"time <= {format_time(value)}")
        return self

    def group_by(self, *tags: str) -> "QueryBuilder":
        for tag in tags:
            self._group_by.append(quote_identifier(tag))
        return self

    def group_by_time(self, interval: str, offset: Optional[str] = None) -> "QueryBuilder":
        for duration in filter(None, (interval, offset)):
            if not _DURATION.match(duration):
                raise ValidationError(f"Invalid duration {duration!r}")
        expr = f"time({interval}, {offset})" if offset else f"time({interval})"
        self._group_by.insert(0, expr)
        return self

    def fill(self, value: Any) -> "QueryBuilder":
        if value is None:
            value = "null"
        if isinstance(value, str) and value.lower() in FILL_OPTIONS:
            self._fill = value.lower()
        elif isinstance(value, Real) and not isinstance(value, bool):
            self._fill = str(value)
        else:
            raise ValidationError(f"Invalid fill value {value!r}")
        return self

    def order(self, direction: str = "asc") -> "QueryBuilder":
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            raise ValidationError(f"Invalid order {direction!r}")
        self._order = direction
        return self

    def _count(self, name: str, value: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{name} must be a non-negative integer, got {value!r}")
        return value

    def limit(self, value: int) -> "QueryBuilder":
        self._limit = self._count("limit", value)
        return self

    def offset(self, value: int) -> "QueryBuilder":
        self._offset = self._count("offset", value)
        return self

    def slimit(self, value: int) -> "QueryBuilder":
        self._slimit = self._count("slimit", value)
        return self

    def soffset(self, value: int) -> "QueryBuilder":
        self._soffset = self._count("soffset", value)
        return self

    def tz(self, name: str) -> "QueryBuilder":
        self._tz = name
        return self

    def into(self, measurement: str) -> "QueryBuilder":
        self._into = measurement
        return self

    def _source(self) -> str:
        if not self.measurement:
            raise ValidationError("Query has no measurement")
        names: Sequence[str] = [self.measurement]
        if self.retention_policy:
            names = [self.retention_policy, self.measurement]
        return ".".join(quote_identifier(n) for n in names)

    def render(self) -> str:
        """Render the statement text."""
        parts = [f"SELECT {','.join(self._fields) or '*'}"]
        if self._into:
            parts.append(f"INTO {quote_identifier(self._into)}")
        parts.append(f"FROM {self._source()}")
        where = []
        if self._conditions:
            joined = f" {self._relation} ".join(self._conditions)
            if self._relation == "OR" and len(self._conditions) > 1 and self._time:
                joined = f"({joined})"
            where.append(joined)
        # Time bounds always narrow the whole predicate
        where.extend(self._time)
        if where:
            parts.append(f"WHERE {' AND '.join(where)}")
        if self._group_by:
            parts.append(f"GROUP BY {','.join(self._group_by)}")
        if self._fill is not None:
            parts.append(f"fill({self._fill})")
        if self._order:
            parts.append(f"ORDER BY time {self._order}")
        clauses: Tuple[Tuple[str, Optional[int]], ...] = (
            ("LIMIT", self._limit),
            ("OFFSET", self._offset),
            ("SLIMIT", self._slimit),
            ("SOFFSET", self._soffset),
        )
        for keyword, value in clauses:
            if value is not None:
                parts.append(f"{keyword} {value}")
        if self._tz:
            parts.append(f"tz({quote_string(self._tz)})")
        return " ".join(parts)

    def __str__(self) -> str:
        return self.render()
