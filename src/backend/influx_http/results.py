"""
Conversion of query responses.

A query response holds one result per statement; each result holds series
with a name, optional tags, column names and rows of values.
"""

import csv
import io
from typing import Any, Dict, Iterator, List, Optional

RAW = "raw"
JSON = "json"
CSV = "csv"


def iter_series(data: Optional[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    for result in (data or {}).get("results") or []:
        for series in result.get("series") or []:
            yield series


def series_rows(series: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Rows of one series as mappings, with the series tags merged in."""
    columns = series.get("columns") or []
    tags = series.get("tags") or {}
    rows = []
    for values in series.get("values") or []:
        row = dict(tags)
        row.update(zip(columns, values))
        rows.append(row)
    return rows


def to_json(data: Optional[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Demultiplex a response by measurement name."""
    result: Dict[str, List[Dict[str, Any]]] = {}
    for series in iter_series(data):
        result.setdefault(series.get("name", ""), []).extend(series_rows(series))
    return result


def to_csv(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Render each measurement of a response as CSV text."""
    result = {}
    for name, rows in to_json(data).items():
        fieldnames: List[str] = []
        for row in rows:
            fieldnames.extend(k for k in row if k not in fieldnames)
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
        result[name] = buffer.getvalue()
    return result


def convert(data: Optional[Dict[str, Any]], format: Optional[str] = None) -> Any:
    """Convert a response to ``format``: raw (default), json or csv."""
    if format == JSON:
        return to_json(data)
    if format == CSV:
        return to_csv(data)
    return data


def merge_values(data: Optional[Dict[str, Any]]) -> List[Any]:
    """Flatten the values of every series into one list."""
    values = []
    for series in iter_series(data):
        for row in series.get("values") or []:
            values.extend(row)
    return values


def series_records(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    records = []
    for series in iter_series(data):
        records.extend(series_rows(series))
    return records


def convert_keys(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Shape SHOW TAG KEYS / SHOW FIELD KEYS responses per measurement."""
    result = []
    for series in iter_series(data):
        columns = series.get("columns") or []
        values = [dict(zip(columns, row)) for row in series.get("values") or []]
        keys = []
        for value in values:
            item = {"key": value.get("tagKey", value.get("fieldKey"))}
            if "fieldType" in value:
                item["type"] = value["fieldType"]
            keys.append(item)
        result.append({"name": series.get("name"), "values": keys})
    return result
