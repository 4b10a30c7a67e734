"""Concrete implementations of the transport interfaces."""

from .chat.slack import SlackAdapter

__all__ = [
    "SlackAdapter",
]
