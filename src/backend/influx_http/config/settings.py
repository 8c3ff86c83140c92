"""
Client configuration settings with environment variable support.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

EPOCH_PRECISIONS = ("h", "m", "s", "ms", "u", "ns")
QUERY_FORMATS = ("raw", "json", "csv")
ROUTING_POLICIES = ("round-robin", "first")


class ClientSettings(BaseSettings):
    """Default options applied to every client and the builders it creates."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INFLUX_HTTP_",
        extra="ignore",
        validate_assignment=True,
    )

    # Requests
    timeout: int = Field(0, ge=0)  # ms, 0 means unbounded
    format: Optional[str] = None
    epoch: Optional[str] = None
    routing: str = "round-robin"
    max_retries: int = Field(0, ge=0)

    # Health checking
    health_check_interval: float = Field(5.0, gt=0)  # seconds
    health_check_timeout: int = Field(2000, gt=0)  # ms
    failure_threshold: int = Field(3, ge=1)
    ping_path: str = "/ping"

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        """Validate the query response format."""
        if v is not None and v not in QUERY_FORMATS:
            raise ValueError(f"format must be one of {QUERY_FORMATS}")
        return v

    @field_validator("epoch")
    @classmethod
    def validate_epoch(cls, v):
        """Validate the epoch precision."""
        if v is not None and v not in EPOCH_PRECISIONS:
            raise ValueError(f"epoch must be one of {EPOCH_PRECISIONS}")
        return v

    @field_validator("routing")
    @classmethod
    def validate_routing(cls, v):
        """Validate the routing policy name."""
        v = v.lower()
        if v not in ROUTING_POLICIES:
            raise ValueError(f"routing must be one of {ROUTING_POLICIES}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v.lower() not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v.lower()


@lru_cache()
def get_settings() -> ClientSettings:
    """Get cached settings instance."""
    return ClientSettings()
