"""
Deduplicating batch queues for pending writes and queries.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from influx_http.events import EventEmitter, Topic

logger = logging.getLogger(__name__)


class QueueKind(str, Enum):
    WRITE = "write"
    QUERY = "query"


_KIND_TOPICS = {
    QueueKind.WRITE: Topic.WRITE_QUEUE,
    QueueKind.QUERY: Topic.QUERY_QUEUE,
}


class BatchQueue:
    """Ordered set of serialized operations pending a flush.

    Enqueuing a payload byte-identical to a queued one leaves the queue
    unchanged. ``drain()`` captures and clears the contents in one step, so
    anything enqueued afterwards belongs to the next batch.
    """

    def __init__(self, kind: QueueKind, events: Optional[EventEmitter] = None):
        self.kind = QueueKind(kind)
        self.events = events
        self._items: Dict[str, None] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, payload: str) -> bool:
        return payload in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def size(self) -> int:
        return len(self._items)

    def enqueue(self, payload: str) -> bool:
        """Add ``payload`` and notify observers.

        Returns:
            True if the payload was not queued yet
        """
        added = payload not in self._items
        self._items[payload] = None
        logger.debug(f"{self.kind.value} queue: {'added' if added else 'duplicate'}, size={len(self._items)}")
        if self.events is not None:
            self.events.emit(Topic.QUEUE, self.kind.value, payload)
            self.events.emit(_KIND_TOPICS[self.kind], payload)
        return added

    def extend(self, payloads: Iterable[str]) -> None:
        """Put payloads back without notifying observers."""
        for payload in payloads:
            self._items[payload] = None

    def drain(self) -> List[str]:
        """Capture the current contents and leave the queue empty."""
        captured, self._items = list(self._items), {}
        return captured

    def clear(self) -> None:
        self._items = {}
