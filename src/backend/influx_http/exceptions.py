"""
Central exceptions module for the InfluxDB HTTP client.
"""

from typing import Any, Optional, Sequence


# Base exception
class InfluxHttpError(Exception):
    """Base exception for all client errors."""
    # Payloads captured by a flush that did not reach the server
    pending: Sequence[str] = ()

class ConfigError(InfluxHttpError):
    """Raised when the connection string or settings are malformed."""
    pass

# Point and schema exceptions
class ValidationError(InfluxHttpError):
    """Raised when a point or query is structurally invalid."""
    pass

class SchemaViolation(ValidationError):
    """Raised when a point does not match its measurement schema."""

    def __init__(self, measurement: str, key: str, reason: str):
        self.measurement = measurement
        self.key = key
        self.reason = reason
        super().__init__(f"{measurement}: {key} {reason}")

# Transport exceptions
class NoAvailableBackend(InfluxHttpError):
    """Raised when every endpoint of the pool is marked unavailable."""
    pass

class TransportError(InfluxHttpError):
    """Raised when a single request attempt fails at the network level."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url

class TransportTimeout(TransportError):
    """Raised when a request exceeds its timeout."""
    pass

class ResponseError(TransportError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status: int, body: Any, url: Optional[str] = None):
        super().__init__(f"HTTP {status}: {body}", url=url)
        self.status = status
        self.body = body

class QueryError(InfluxHttpError):
    """Raised when a query response reports a statement error."""
    pass
