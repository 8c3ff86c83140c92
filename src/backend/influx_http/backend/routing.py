"""Routing policies choosing which available endpoint serves a request."""

from abc import ABC, abstractmethod
from typing import Sequence

from influx_http.backend.pool import Endpoint
from influx_http.exceptions import NoAvailableBackend


class LoadBalancingStrategy(ABC):
    """Base class for routing policies."""

    name = "base"

    @abstractmethod
    def choose(self, candidates: Sequence[Endpoint]) -> Endpoint:
        """Choose one endpoint from a non-empty candidate list."""

    def select(self, candidates: Sequence[Endpoint]) -> Endpoint:
        if not candidates:
            raise NoAvailableBackend("No available backend")
        return self.choose(candidates)


class RoundRobin(LoadBalancingStrategy):
    """Cycle through the available endpoints in order."""

    name = "round-robin"

    def __init__(self):
        self._counter = 0

    def choose(self, candidates: Sequence[Endpoint]) -> Endpoint:
        endpoint = candidates[self._counter % len(candidates)]
        self._counter += 1
        return endpoint


class First(LoadBalancingStrategy):
    """Always use the first available endpoint; later ones act as backups."""

    name = "first"

    def choose(self, candidates: Sequence[Endpoint]) -> Endpoint:
        return candidates[0]


STRATEGIES = {
    RoundRobin.name: RoundRobin,
    First.name: First,
}


def get_strategy(name: str) -> LoadBalancingStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown routing policy: {name}") from None
