"""In-memory implementation of the storage contract."""

from __future__ import annotations

import threading

import structlog

log = structlog.get_logger()


class InMemoryStore:
    """Thread-safe dict-backed ``StringStorer``.

    Values don't survive a restart. After ``close``, every operation raises
    ``RuntimeError``.
    """

    def __init__(self, name: str = "memory", initial: dict[str, str] | None = None) -> None:
        self.name = name
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Store [{self.name}] is closed")

    def get_string(self, key: str) -> str:
        with self._lock:
            self._check_open()
            return self._data[key]

    def put_string(self, key: str, value: str) -> None:
        with self._lock:
            self._check_open()
            self._data[key] = value

    def delete_string(self, key: str) -> None:
        with self._lock:
            self._check_open()
            self._data.pop(key, None)

    def scan(self) -> dict[str, str]:
        with self._lock:
            self._check_open()
            return dict(self._data)

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._closed = True
                log.debug("store_closed", store=self.name, entries=len(self._data))

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
