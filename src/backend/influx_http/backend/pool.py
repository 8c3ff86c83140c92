"""
Pool of backend endpoints with availability flags.

The pool never performs I/O. Availability is written by the health checker
and read by the routing policy.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass
class Endpoint:
    """One backend node reachable via protocol, host and port."""
    protocol: str
    host: str
    port: int
    available: bool = field(default=True, compare=False)

    @property
    def key(self):
        return (self.protocol, self.host, self.port)

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    def __hash__(self):
        return hash(self.key)

    def __str__(self):
        return self.base_url


class BackendPool:
    """Set of candidate endpoints, each carrying an availability flag."""

    def __init__(self, endpoints: Sequence[Endpoint]):
        self._endpoints: List[Endpoint] = []
        seen = set()
        for endpoint in endpoints:
            if endpoint.key in seen:
                continue
            seen.add(endpoint.key)
            self._endpoints.append(replace(endpoint))
        logger.debug(f"Backend pool created with {len(self._endpoints)} endpoints")

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    @property
    def endpoints(self) -> List[Endpoint]:
        return list(self._endpoints)

    def get_servers(self, available: bool = True) -> List[Endpoint]:
        """Snapshot of the endpoints whose flag equals ``available``.

        The returned endpoints are copies; mutating them has no effect on
        the pool.
        """
        return [replace(e) for e in self._endpoints if e.available == bool(available)]

    def available(self) -> List[Endpoint]:
        """Live available endpoints, for routing."""
        return [e for e in self._endpoints if e.available]

    def has_available(self) -> bool:
        return any(e.available for e in self._endpoints)

    def find(self, endpoint: Endpoint) -> Endpoint:
        for candidate in self._endpoints:
            if candidate.key == endpoint.key:
                return candidate
        raise KeyError(str(endpoint))

    def set_availability(self, updates: Mapping[Endpoint, bool]) -> List[Endpoint]:
        """Apply a whole set of availability updates at once.

        Returns:
            The endpoints whose flag changed
        """
        changed = []
        for endpoint, available in updates.items():
            target = self.find(endpoint)
            if target.available != available:
                target.available = available
                changed.append(target)
        return changed
