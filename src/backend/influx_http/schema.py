"""
Per-measurement schemas validating and coercing points before serialization.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from influx_http.exceptions import SchemaViolation

logger = logging.getLogger(__name__)

TRUE_TOKENS = frozenset(["t", "T", "true", "True", "TRUE"])
FALSE_TOKENS = frozenset(["f", "F", "false", "False", "FALSE"])

ANY_VALUE = "*"


class FieldType(str, Enum):
    """Declared type of a field."""
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"


@dataclass
class SchemaOptions:
    """Schema behaviour switches."""
    strip_unknown: bool = False

    @classmethod
    def coerce(cls, value: Union["SchemaOptions", Mapping[str, Any], None]) -> "SchemaOptions":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        strip = value.get("strip_unknown", value.get("stripUnknown", False))
        return cls(strip_unknown=bool(strip))


@dataclass
class Schema:
    """Field and tag declaration for one measurement."""
    measurement: str
    fields: Dict[str, FieldType] = field(default_factory=dict)
    # tag key -> allowed values, None when any value is allowed
    tags: Optional[Dict[str, Optional[FrozenSet[str]]]] = None
    options: SchemaOptions = field(default_factory=SchemaOptions)


def _to_integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
        try:
            number = float(value)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def _to_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value in TRUE_TOKENS:
            return True
        if value in FALSE_TOKENS:
            return False
    return None


def coerce_field(field_type: FieldType, value: Any) -> Any:
    """Coerce ``value`` to ``field_type``.

    Raises:
        ValueError: If the value cannot be represented as the declared type
    """
    if field_type is FieldType.INTEGER:
        result = _to_integer(value)
    elif field_type is FieldType.BOOLEAN:
        result = _to_boolean(value)
    elif field_type is FieldType.FLOAT:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        result = float(value) if ok else None
    else:
        result = value if isinstance(value, str) else None
    if result is None:
        raise ValueError(f"expected {field_type.value}, got {value!r}")
    return result


def _tag_rule(rule: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Optional[FrozenSet[str]]]]:
    if rule is None:
        return None
    result = {}
    for key, allowed in rule.items():
        if allowed is None or allowed == ANY_VALUE:
            result[key] = None
        elif isinstance(allowed, str):
            result[key] = frozenset([allowed])
        else:
            result[key] = frozenset(str(v) for v in allowed)
    return result


class SchemaRegistry:
    """Holds the schema of each measurement."""

    def __init__(self):
        self._schemas: Dict[str, Schema] = {}

    def __contains__(self, measurement: str) -> bool:
        return measurement in self._schemas

    def register(
        self,
        measurement: str,
        field_types: Mapping[str, Union[str, FieldType]],
        tag_rule: Optional[Mapping[str, Union[str, Iterable[str], None]]] = None,
        options: Union[SchemaOptions, Mapping[str, Any], None] = None,
    ) -> Schema:
        """Store the schema of ``measurement``, replacing any prior one.

        Args:
            measurement: Measurement name
            field_types: Field name to one of integer, float, boolean, string
            tag_rule: Tag key to allowed values; ``"*"`` allows any value.
                When omitted tags are unconstrained.
            options: ``SchemaOptions`` or a mapping with ``strip_unknown``

        Raises:
            ValueError: If a field type is unknown
        """
        fields = {name: FieldType(kind) for name, kind in field_types.items()}
        schema = Schema(
            measurement=measurement,
            fields=fields,
            tags=_tag_rule(tag_rule),
            options=SchemaOptions.coerce(options),
        )
        self._schemas[measurement] = schema
        logger.debug(f"Registered schema for {measurement}: {len(fields)} fields")
        return schema

    def get(self, measurement: str) -> Optional[Schema]:
        return self._schemas.get(measurement)

    def validate(
        self,
        measurement: str,
        fields: Mapping[str, Any],
        tags: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """Validate and coerce a point against its measurement schema.

        Without a registered schema the point passes through unchanged.

        Returns:
            The coerced ``(fields, tags)`` pair

        Raises:
            SchemaViolation: Naming the offending key and the reason
        """
        # Unset tags and fields are dropped by the serializer, never checked
        tags = {k: v for k, v in (tags or {}).items() if v is not None and v != ""}
        schema = self._schemas.get(measurement)
        if schema is None:
            return dict(fields), tags

        strip = schema.options.strip_unknown
        coerced_fields = {}
        for key, value in fields.items():
            if value is None:
                continue
            field_type = schema.fields.get(key)
            if field_type is None:
                if strip:
                    logger.debug(f"Dropping unknown field {key} of {measurement}")
                    continue
                raise SchemaViolation(measurement, key, "is not a declared field")
            try:
                coerced_fields[key] = coerce_field(field_type, value)
            except ValueError as e:
                raise SchemaViolation(measurement, key, str(e)) from None

        if schema.tags is None:
            return coerced_fields, {k: str(v) for k, v in tags.items()}

        coerced_tags = {}
        for key, value in tags.items():
            if key not in schema.tags:
                if strip:
                    logger.debug(f"Dropping unknown tag {key} of {measurement}")
                    continue
                raise SchemaViolation(measurement, key, "is not a declared tag")
            value = str(value)
            allowed = schema.tags[key]
            if allowed is not None and value not in allowed:
                raise SchemaViolation(measurement, key, f"value {value!r} is not allowed")
            coerced_tags[key] = value
        return coerced_fields, coerced_tags
