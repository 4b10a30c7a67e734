"""Protocol definitions for the transport and plugin capabilities."""

from .chat import ChatDriver, EventSource
from .services import (
    EmojiReactor,
    FileUploader,
    RawFileUploader,
    RealTimeSender,
    UserDirectory,
    UserInfoFinder,
)

__all__ = [
    "ChatDriver",
    "EmojiReactor",
    "EventSource",
    "FileUploader",
    "RawFileUploader",
    "RealTimeSender",
    "UserDirectory",
    "UserInfoFinder",
]
