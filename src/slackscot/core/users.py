"""User info lookups with an optional read-through cache."""

from __future__ import annotations

from threading import Lock

import structlog
from cachetools import LRUCache

from ..interfaces.services import UserDirectory
from ..models.message import UserProfile
from ..utils.metrics import MetricsRegistry

log = structlog.get_logger()


class CachingUserInfoFinder:
    """Read-through cache in front of the remote user directory.

    A capacity of 0 or less disables caching and every lookup goes to the
    directory. Failed lookups are never cached, their error propagates to the
    caller.
    """

    def __init__(
        self,
        directory: UserDirectory,
        capacity: int = 0,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._directory = directory
        self._metrics = metrics or MetricsRegistry()
        self._cache: LRUCache[str, UserProfile] | None = (
            LRUCache(maxsize=capacity) if capacity > 0 else None
        )
        self._lock = Lock()

    @property
    def caching(self) -> bool:
        return self._cache is not None

    async def get_user(self, user_id: str) -> UserProfile:
        """
        Return the profile of ``user_id``.

        Raises:
            UserNotFoundError: If the directory has no such user
        """
        if self._cache is None:
            return await self._directory.fetch_user(user_id)

        with self._lock:
            cached = self._cache.get(user_id)
        if cached is not None:
            self._metrics.cache_lookups.inc(labels={"cache": "user_info", "result": "hit"})
            log.debug("cache_hit", cache="user_info", user_id=user_id)
            return cached

        self._metrics.cache_lookups.inc(labels={"cache": "user_info", "result": "miss"})
        log.debug("cache_miss", cache="user_info", user_id=user_id)
        user = await self._directory.fetch_user(user_id)

        with self._lock:
            self._cache[user_id] = user
        return user
