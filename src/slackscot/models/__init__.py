"""Data models and transfer objects."""

from .answer import (
    Answer,
    AnswerOption,
    AnswerOptions,
    answer_ephemeral,
    answer_in_existing_thread,
    answer_in_thread,
    answer_in_thread_with_broadcast,
    answer_in_thread_without_broadcast,
    answer_option,
    answer_without_threading,
    apply_answer_options,
)
from .events import (
    ConnectedEvent,
    Event,
    HelloEvent,
    InvalidAuthEvent,
    LatencyReport,
    MessageEvent,
    MessageKind,
    RTMErrorEvent,
    SubMessage,
    TerminationEvent,
)
from .message import IncomingMessage, MessageID, SelfIdentity, UserProfile
from .upload import FileUploadParams, UploadOption

__all__ = [
    # Message models
    "MessageID",
    "SelfIdentity",
    "UserProfile",
    "IncomingMessage",
    # Events
    "Event",
    "HelloEvent",
    "ConnectedEvent",
    "LatencyReport",
    "RTMErrorEvent",
    "InvalidAuthEvent",
    "TerminationEvent",
    "MessageEvent",
    "MessageKind",
    "SubMessage",
    # Answers
    "Answer",
    "AnswerOption",
    "AnswerOptions",
    "apply_answer_options",
    "answer_ephemeral",
    "answer_in_existing_thread",
    "answer_in_thread",
    "answer_in_thread_with_broadcast",
    "answer_in_thread_without_broadcast",
    "answer_option",
    "answer_without_threading",
    # Uploads
    "FileUploadParams",
    "UploadOption",
]
