"""Key/value storage contract used by plugins."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StringStorer(Protocol):
    """Persistent string storage.

    Implementations must be safe to call from concurrent partition workers.
    """

    def get_string(self, key: str) -> str:
        """
        Get the value stored at ``key``.

        Raises:
            KeyError: If nothing is stored at ``key``
        """
        ...

    def put_string(self, key: str, value: str) -> None:
        """Store ``value`` at ``key``, replacing any previous value."""
        ...

    def delete_string(self, key: str) -> None:
        """Remove ``key``. Removing a missing key is a no-op."""
        ...

    def scan(self) -> dict[str, str]:
        """Return a snapshot of every stored key and value."""
        ...

    def close(self) -> None:
        """Release the underlying resources."""
        ...
