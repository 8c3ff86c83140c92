"""
Line protocol serialization.

One statement per point::

    measurement[,tag=value...] field=value[,field=value...][ timestamp]

Tags and fields are emitted sorted by key so identical points always yield
byte-identical statements, whatever the insertion order of their mappings.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Integral, Real
from typing import Any, Dict, List, Mapping, Optional, Union

from influx_http.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Nanoseconds per unit
PRECISIONS = {
    "n": 1,
    "ns": 1,
    "u": 10 ** 3,
    "ms": 10 ** 6,
    "s": 10 ** 9,
    "m": 60 * 10 ** 9,
    "h": 3600 * 10 ** 9,
}
DEFAULT_PRECISION = "n"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Timestamp = Union[int, float, datetime]

_MEASUREMENT_ESCAPE = re.compile(r"([, ])")
_KEY_ESCAPE = re.compile(r"([,= ])")
_STRING_ESCAPE = re.compile(r'(["\\])')
_MEASUREMENT_UNESCAPE = re.compile(r"\\([, ])")
_KEY_UNESCAPE = re.compile(r"\\([,= ])")
_STRING_UNESCAPE = re.compile(r'\\(["\\])')
# Backslash ending a name or preceding a delimiter
_DANGLING_BACKSLASH = re.compile(r"\\(?=[,= ]|$)")


@dataclass
class Point:
    """A structured data point."""
    measurement: str
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[Timestamp] = None
    precision: Optional[str] = None

    def to_line(self) -> str:
        return serialize(self.measurement, self.tags, self.fields, self.timestamp, self.precision)


def check_precision(precision: Optional[str]) -> str:
    precision = precision or DEFAULT_PRECISION
    if precision not in PRECISIONS:
        raise ValidationError(f"Unknown precision {precision!r}, expected one of {sorted(PRECISIONS)}")
    return precision


def format_timestamp(value: Timestamp, precision: Optional[str] = None) -> int:
    """Express ``value`` in the unit of ``precision``.

    Integers and floats are taken as already expressed in that unit.
    Naive datetimes are taken as UTC.
    """
    unit = PRECISIONS[check_precision(precision)]
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - EPOCH
        nanos = (delta.days * 86400 + delta.seconds) * 10 ** 9 + delta.microseconds * 1000
        return nanos // unit
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"Invalid timestamp {value!r}")
    return int(value)


def convert_timestamp(value: int, from_precision: str, to_precision: str = DEFAULT_PRECISION) -> int:
    """Convert an integer timestamp between precisions."""
    nanos = value * PRECISIONS[check_precision(from_precision)]
    return nanos // PRECISIONS[check_precision(to_precision)]


def escape_measurement(name: str) -> str:
    return _MEASUREMENT_ESCAPE.sub(r"\\\1", name)


def escape_key(key: str) -> str:
    """Escape a tag key, tag value or field key."""
    return _KEY_ESCAPE.sub(r"\\\1", key)


def escape_string(value: str) -> str:
    return _STRING_ESCAPE.sub(r"\\\1", value)


def format_field_value(value: Any) -> str:
    """Render a field value with its type marker."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Integral):
        return f"{int(value)}i"
    if isinstance(value, Real):
        number = float(value)
        if not math.isfinite(number):
            raise ValidationError(f"Field value {value!r} is not finite")
        return repr(number)
    if isinstance(value, str):
        return f'"{escape_string(value)}"'
    raise ValidationError(f"Unsupported field value type {type(value).__name__}")


def _check_name(kind: str, name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{kind} must be a non-empty string, got {name!r}")
    if "\n" in name:
        raise ValidationError(f"{kind} {name!r} contains a newline")
    if _DANGLING_BACKSLASH.search(name):
        raise ValidationError(
            f"{kind} {name!r} has a backslash at the end or before a delimiter"
        )
    return name


def serialize(
    measurement: str,
    tags: Optional[Mapping[str, Any]],
    fields: Mapping[str, Any],
    timestamp: Optional[Timestamp] = None,
    precision: Optional[str] = None,
) -> str:
    """Serialize one point to a line protocol statement.

    Raises:
        ValidationError: If the measurement is empty, no field is set, or a
            key or value cannot be represented
    """
    _check_name("Measurement", measurement)
    parts = [escape_measurement(measurement)]

    for key in sorted(tags or {}):
        value = tags[key]
        if value is None or value == "":
            continue
        _check_name("Tag key", key)
        value = _check_name("Tag value", str(value))
        parts.append(f"{escape_key(key)}={escape_key(value)}")

    encoded = []
    for key in sorted(fields):
        value = fields[key]
        if value is None:
            continue
        _check_name("Field key", key)
        encoded.append(f"{escape_key(key)}={format_field_value(value)}")
    if not encoded:
        raise ValidationError(f"Point of {measurement!r} has no fields")

    line = f"{','.join(parts)} {','.join(encoded)}"
    if timestamp is not None:
        line = f"{line} {format_timestamp(timestamp, precision)}"
    return line


def _split(text: str, sep: str, quotes: bool = False, maxsplit: int = -1) -> List[str]:
    """Split on unescaped ``sep`` outside double quotes; escapes are kept."""
    parts: List[str] = []
    buf: List[str] = []
    in_quote = False
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            buf.append(text[i:i + 2])
            i += 2
            continue
        if quotes and ch == '"':
            in_quote = not in_quote
        elif ch == sep and not in_quote and maxsplit != len(parts):
            parts.append("".join(buf))
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1
    if in_quote:
        raise ValidationError(f"Unterminated string in {text!r}")
    parts.append("".join(buf))
    return parts


def parse_field_value(raw: str) -> Any:
    if raw.startswith('"') and raw.endswith('"') and len(raw) >= 2:
        return _STRING_UNESCAPE.sub(r"\1", raw[1:-1])
    if raw in ("t", "T", "true", "True", "TRUE"):
        return True
    if raw in ("f", "F", "false", "False", "FALSE"):
        return False
    try:
        if raw.endswith(("i", "u")):
            return int(raw[:-1])
        return float(raw)
    except ValueError:
        raise ValidationError(f"Invalid field value {raw!r}") from None


def parse_line(line: str) -> Point:
    """Parse one line protocol statement back into a ``Point``.

    The timestamp is returned as the raw integer of the statement.
    """
    sections = _split(line.strip(), " ", quotes=True)
    if len(sections) not in (2, 3):
        raise ValidationError(f"Malformed line: {line!r}")

    head = _split(sections[0], ",")
    point = Point(measurement=_MEASUREMENT_UNESCAPE.sub(r"\1", head[0]))
    for pair in head[1:]:
        kv = _split(pair, "=", maxsplit=1)
        if len(kv) != 2:
            raise ValidationError(f"Malformed tag {pair!r}")
        point.tags[_KEY_UNESCAPE.sub(r"\1", kv[0])] = _KEY_UNESCAPE.sub(r"\1", kv[1])

    for pair in _split(sections[1], ",", quotes=True):
        kv = _split(pair, "=", quotes=True, maxsplit=1)
        if len(kv) != 2:
            raise ValidationError(f"Malformed field {pair!r}")
        point.fields[_KEY_UNESCAPE.sub(r"\1", kv[0])] = parse_field_value(kv[1])

    if len(sections) == 3:
        try:
            point.timestamp = int(sections[2])
        except ValueError:
            raise ValidationError(f"Invalid timestamp {sections[2]!r}") from None
    return point
