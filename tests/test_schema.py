"""
Test suite for measurement schemas.
"""

import pytest

from influx_http.exceptions import SchemaViolation
from influx_http.line_protocol import serialize
from influx_http.schema import FieldType, SchemaOptions, SchemaRegistry, coerce_field


@pytest.fixture
def registry():
    registry = SchemaRegistry()
    registry.register(
        "request",
        {"use": "integer", "ratio": "float", "ok": "boolean", "path": "string"},
        {"method": ["GET", "POST"], "host": "*"},
    )
    return registry


def test_no_schema_passes_through():
    registry = SchemaRegistry()
    fields, tags = registry.validate("free", {"a": "1"}, {"t": "x"})
    assert fields == {"a": "1"}
    assert tags == {"t": "x"}


@pytest.mark.parametrize(
    "value,expected",
    [(300, 300), (300.9, 300), ("42", 42), ("1.5", 1)],
)
def test_integer_coercion(value, expected):
    assert coerce_field(FieldType.INTEGER, value) == expected


@pytest.mark.parametrize("value", [True, "abc", None, float("nan")])
def test_integer_coercion_rejects(value):
    with pytest.raises(ValueError):
        coerce_field(FieldType.INTEGER, value)


@pytest.mark.parametrize(
    "value,expected",
    [(True, True), ("t", True), ("TRUE", True), ("False", False), ("f", False)],
)
def test_boolean_coercion(value, expected):
    assert coerce_field(FieldType.BOOLEAN, value) is expected


@pytest.mark.parametrize("value", ["yes", 1, 0, None])
def test_boolean_coercion_rejects(value):
    with pytest.raises(ValueError):
        coerce_field(FieldType.BOOLEAN, value)


def test_float_and_string_coercion():
    assert coerce_field(FieldType.FLOAT, 3) == 3.0
    assert isinstance(coerce_field(FieldType.FLOAT, 3), float)
    assert coerce_field(FieldType.STRING, "x") == "x"
    with pytest.raises(ValueError):
        coerce_field(FieldType.FLOAT, "3.0")
    with pytest.raises(ValueError):
        coerce_field(FieldType.STRING, 3)


def test_validate_coerces(registry):
    fields, tags = registry.validate(
        "request",
        {"use": "300", "ratio": 1, "ok": "T", "path": "/"},
        {"method": "GET", "host": "any-host"},
    )
    assert fields == {"use": 300, "ratio": 1.0, "ok": True, "path": "/"}
    assert tags == {"method": "GET", "host": "any-host"}


def test_unknown_field_rejected(registry):
    with pytest.raises(SchemaViolation) as exc_info:
        registry.validate("request", {"use": 1, "extra": 2})
    assert exc_info.value.key == "extra"
    assert exc_info.value.measurement == "request"


def test_unknown_tag_rejected(registry):
    with pytest.raises(SchemaViolation) as exc_info:
        registry.validate("request", {"use": 1}, {"zone": "a"})
    assert exc_info.value.key == "zone"


def test_tag_value_not_allowed(registry):
    with pytest.raises(SchemaViolation) as exc_info:
        registry.validate("request", {"use": 1}, {"method": "DELETE"})
    assert exc_info.value.key == "method"
    assert "DELETE" in exc_info.value.reason


def test_bad_field_value_names_key(registry):
    with pytest.raises(SchemaViolation) as exc_info:
        registry.validate("request", {"ok": "maybe"})
    assert exc_info.value.key == "ok"


def test_strip_unknown():
    registry = SchemaRegistry()
    registry.register("request", {"use": "integer"}, {"method": "*"}, {"stripUnknown": True})
    fields, tags = registry.validate("request", {"use": 300, "extra": 1}, {"method": "GET", "zone": "a"})
    assert fields == {"use": 300}
    assert tags == {"method": "GET"}


def test_tags_unconstrained_without_rule():
    registry = SchemaRegistry()
    registry.register("cpu", {"load": "float"})
    _, tags = registry.validate("cpu", {"load": 0.5}, {"host": 1})
    assert tags == {"host": "1"}


def test_register_replaces_and_rejects_unknown_type():
    registry = SchemaRegistry()
    registry.register("cpu", {"load": "float"})
    registry.register("cpu", {"load": "integer"}, options=SchemaOptions(strip_unknown=True))
    schema = registry.get("cpu")
    assert schema.fields == {"load": FieldType.INTEGER}
    assert schema.options.strip_unknown
    assert "cpu" in registry
    with pytest.raises(ValueError):
        registry.register("cpu", {"load": "decimal"})


def test_unset_tags_and_fields_dropped_with_schema(registry):
    fields, tags = registry.validate(
        "request",
        {"use": 1, "ratio": None},
        {"method": None, "host": ""},
    )
    assert fields == {"use": 1}
    assert tags == {}


def test_schema_does_not_change_serialized_unset_tags():
    registry = SchemaRegistry()
    point = ({"v": 1}, {"host": None, "dc": ""})
    plain = serialize("cpu", point[1], point[0])
    registry.register("cpu", {"v": "integer"})
    fields, tags = registry.validate("cpu", *point)
    assert serialize("cpu", tags, fields) == plain == "cpu v=1i"
