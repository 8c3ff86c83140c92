"""
Test suite for the InfluxQL statement builder.
"""

import re
from datetime import datetime, timezone

import pytest

from influx_http.exceptions import ValidationError
from influx_http.query import (
    QueryBuilder,
    format_time,
    format_value,
    join_statements,
    quote_identifier,
    quote_string,
)


def test_quoting():
    assert quote_identifier("cpu") == '"cpu"'
    assert quote_identifier('we"ird') == '"we\\"ird"'
    assert quote_identifier("*") == "*"
    assert quote_string("it's") == "'it\\'s'"
    assert quote_string("a\\b") == "'a\\\\b'"


def test_format_value():
    assert format_value(True) == "true"
    assert format_value(3) == "3"
    assert format_value(1.5) == "1.5"
    assert format_value("GET") == "'GET'"
    assert format_value(re.compile("^eu-")) == "/^eu-/"
    moment = datetime(2017, 1, 1, tzinfo=timezone.utc)
    assert format_value(moment) == "'2017-01-01T00:00:00.000000Z'"
    with pytest.raises(ValidationError):
        format_value(object())


def test_format_time():
    assert format_time("-1h") == "now() - 1h"
    assert format_time("now() - 5m") == "now() - 5m"
    assert format_time(1500000000000000000) == "1500000000000000000"
    assert format_time("2017-01-01T00:00:00Z") == "'2017-01-01T00:00:00Z'"


def test_select_all():
    assert QueryBuilder("http").render() == 'SELECT * FROM "http"'


def test_full_statement():
    q = (
        QueryBuilder("http", retention_policy="week")
        .add_function("mean", "use", "avg_use")
        .where("spdy", "1")
        .where("method", ["GET", "POST"])
        .start("-1h")
        .group_by_time("5m")
        .group_by("spdy")
        .fill(0)
        .order("desc")
        .limit(10)
        .offset(5)
        .tz("Europe/Paris")
    )
    assert q.render() == (
        'SELECT mean("use") AS "avg_use" FROM "week"."http" '
        "WHERE \"spdy\" = '1' AND (\"method\" = 'GET' OR \"method\" = 'POST') "
        "AND time >= now() - 1h "
        'GROUP BY time(5m),"spdy" fill(0) ORDER BY time DESC LIMIT 10 OFFSET 5 '
        "tz('Europe/Paris')"
    )


def test_or_relation_keeps_time_bounds_outside():
    q = QueryBuilder("http").where("a", 1).where("b", 2).relation("or").start("-1h").end("now()")
    assert str(q) == (
        'SELECT * FROM "http" WHERE ("a" = 1 OR "b" = 2) '
        "AND time >= now() - 1h AND time <= now()"
    )


def test_where_mapping_and_raw():
    q = QueryBuilder("cpu").where({"host": "a"}).where("load", 0.5, ">").where_raw("x = 1")
    assert str(q) == "SELECT * FROM \"cpu\" WHERE \"host\" = 'a' AND \"load\" > 0.5 AND (x = 1)"


def test_into_and_series_limits():
    q = QueryBuilder("cpu").add_field("load", "host").into("cpu_copy").slimit(2).soffset(1)
    assert str(q) == 'SELECT "load","host" INTO "cpu_copy" FROM "cpu" SLIMIT 2 SOFFSET 1'


def test_values_cannot_break_out_of_literals():
    q = QueryBuilder("cpu").where("host", "a' OR 1=1 --")
    assert str(q) == "SELECT * FROM \"cpu\" WHERE \"host\" = 'a\\' OR 1=1 --'"


@pytest.mark.parametrize(
    "call",
    [
        lambda q: q.where("a", 1, "LIKE"),
        lambda q: q.where("a", []),
        lambda q: q.relation("xor"),
        lambda q: q.order("sideways"),
        lambda q: q.limit(-1),
        lambda q: q.limit(True),
        lambda q: q.fill("zero"),
        lambda q: q.group_by_time("5 minutes"),
        lambda q: q.add_function("mean(x); DROP", "a"),
    ],
)
def test_invalid_clauses(call):
    with pytest.raises(ValidationError):
        call(QueryBuilder("cpu"))


def test_missing_measurement():
    with pytest.raises(ValidationError):
        QueryBuilder().render()


def test_join_statements():
    assert join_statements(["SELECT 1", "SELECT 2"]) == "SELECT 1;SELECT 2"
