"""Configuration for the InfluxDB HTTP client."""

from influx_http.config.logging_config import JsonFormatter, configure_logging
from influx_http.config.settings import ClientSettings, get_settings

__all__ = [
    "ClientSettings",
    "JsonFormatter",
    "configure_logging",
    "get_settings",
]
