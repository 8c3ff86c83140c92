"""
Synchronous publish/subscribe channel with named topics.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class Topic(str, Enum):
    """Topics fired on every enqueue."""
    QUEUE = "queue"              # listener(kind, payload)
    WRITE_QUEUE = "writeQueue"   # listener(payload)
    QUERY_QUEUE = "queryQueue"   # listener(payload)


class EventEmitter:
    """Delivers events to listeners on the calling thread, in subscription order.

    Exceptions raised by a listener propagate to the code that emitted.
    """

    def __init__(self, topics: Iterable[Union[str, Topic]] = tuple(Topic)):
        self._listeners: Dict[str, List[Listener]] = {self._name(t): [] for t in topics}

    @staticmethod
    def _name(topic: Union[str, Topic]) -> str:
        return topic.value if isinstance(topic, Topic) else topic

    def _get(self, topic: Union[str, Topic]) -> List[Listener]:
        name = self._name(topic)
        if name not in self._listeners:
            raise ValueError(f"Unknown topic {name!r}, expected one of {sorted(self._listeners)}")
        return self._listeners[name]

    def on(self, topic: Union[str, Topic], listener: Optional[Listener] = None):
        """Subscribe ``listener`` to ``topic``; usable as a decorator."""
        listeners = self._get(topic)
        if listener is None:
            def decorator(func: Listener) -> Listener:
                listeners.append(func)
                return func
            return decorator
        listeners.append(listener)
        return listener

    def off(self, topic: Union[str, Topic], listener: Listener) -> None:
        listeners = self._get(topic)
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, topic: Union[str, Topic]) -> int:
        return len(self._get(topic))

    def emit(self, topic: Union[str, Topic], *args: Any) -> int:
        """Call every listener of ``topic`` and return how many were called."""
        listeners = list(self._get(topic))
        for listener in listeners:
            listener(*args)
        return len(listeners)
