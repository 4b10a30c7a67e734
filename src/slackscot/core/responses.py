"""Response tracking: which bot messages answer which user message."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from cachetools import LRUCache

from ..models.message import MessageID
from .registry import ActionID


@dataclass(frozen=True)
class OutboundRecord:
    """A message the bot posted, with the action that produced it."""

    action_id: ActionID
    message_id: MessageID


class ResponseTracker:
    """Maps an original message to the ordered replies the bot produced for it.

    Capacity is bounded; the least recently used origins are forgotten first,
    after which edits and deletes of those origins no longer touch their
    replies. Each origin is only ever mutated from its own partition worker,
    the lock guards the shared map itself.
    """

    def __init__(self, capacity: int = 5000) -> None:
        if capacity < 1:
            raise ValueError(f"Response cache size must be at least 1 but was [{capacity}]")
        self._cache: LRUCache[MessageID, tuple[OutboundRecord, ...]] = LRUCache(maxsize=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return int(self._cache.maxsize)

    def get(self, origin: MessageID) -> list[OutboundRecord] | None:
        """Replies recorded for ``origin``, or None if there are none."""
        with self._lock:
            records = self._cache.get(origin)
        return list(records) if records is not None else None

    def put(self, origin: MessageID, records: list[OutboundRecord]) -> None:
        """Replace the replies of ``origin``. An empty list removes the entry."""
        with self._lock:
            if records:
                self._cache[origin] = tuple(records)
            else:
                self._cache.pop(origin, None)

    def remove(self, origin: MessageID) -> None:
        with self._lock:
            self._cache.pop(origin, None)

    def __contains__(self, origin: object) -> bool:
        with self._lock:
            return origin in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
