"""Storage for plugins."""

from slackscot.store.base import StringStorer
from slackscot.store.memory import InMemoryStore

__all__ = [
    "InMemoryStore",
    "StringStorer",
]
