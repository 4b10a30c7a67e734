"""Plugin answers and the options that shape how they're sent."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

THREADED_REPLY_OPT = "threadedReply"
THREAD_TIMESTAMP_OPT = "existingThreadTimestamp"
BROADCAST_OPT = "broadcast"
EPHEMERAL_OPT = "ephemeralToUser"

KNOWN_OPTIONS = frozenset({THREADED_REPLY_OPT, THREAD_TIMESTAMP_OPT, BROADCAST_OPT, EPHEMERAL_OPT})

# An option is a small set of key/value settings. Applying options in order
# merges them, later values for the same key overriding earlier ones.
AnswerOption = Mapping[str, str]


def answer_in_thread() -> AnswerOption:
    """Reply in a thread of the originating message."""
    return {THREADED_REPLY_OPT: "true"}


def answer_in_thread_with_broadcast() -> AnswerOption:
    """Reply in a thread and also broadcast the reply to the channel."""
    return {THREADED_REPLY_OPT: "true", BROADCAST_OPT: "true"}


def answer_in_thread_without_broadcast() -> AnswerOption:
    """Reply in a thread without broadcasting to the channel."""
    return {THREADED_REPLY_OPT: "true", BROADCAST_OPT: "false"}


def answer_without_threading() -> AnswerOption:
    """Reply on the channel, never in a thread."""
    return {THREADED_REPLY_OPT: "false"}


def answer_in_existing_thread(thread_timestamp: str) -> AnswerOption:
    """Reply in the named existing thread."""
    return {THREADED_REPLY_OPT: "true", THREAD_TIMESTAMP_OPT: thread_timestamp}


def answer_ephemeral(user_id: str) -> AnswerOption:
    """Send the answer as an ephemeral message only visible to ``user_id``."""
    return {EPHEMERAL_OPT: user_id}


def answer_option(key: str, value: str) -> AnswerOption:
    """Arbitrary option passed through untouched to ``AnswerOptions.extra``."""
    return {key: value}


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class AnswerOptions:
    """Resolved options of an answer.

    ``None`` means the option wasn't set and the configured default applies.
    """

    threaded_reply: bool | None = None
    existing_thread_timestamp: str | None = None
    broadcast: bool | None = None
    ephemeral_to_user: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> AnswerOptions:
        return cls(
            threaded_reply=_parse_bool(values.get(THREADED_REPLY_OPT)),
            existing_thread_timestamp=values.get(THREAD_TIMESTAMP_OPT) or None,
            broadcast=_parse_bool(values.get(BROADCAST_OPT)),
            ephemeral_to_user=values.get(EPHEMERAL_OPT) or None,
            extra={k: v for k, v in values.items() if k not in KNOWN_OPTIONS},
        )


def merge_answer_options(*options: AnswerOption) -> dict[str, str]:
    """Merge options in order into a flat key/value map."""
    merged: dict[str, str] = {}
    for option in options:
        merged.update(option)
    return merged


def apply_answer_options(*options: AnswerOption) -> AnswerOptions:
    """Apply options in order and return the resolved record."""
    return AnswerOptions.from_mapping(merge_answer_options(*options))


@dataclass
class Answer:
    """What a plugin action replies with.

    An answer with an empty ``text`` and no ``content_blocks`` is dropped.
    """

    text: str = ""
    content_blocks: list[dict[str, Any]] | None = None
    options: list[AnswerOption] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.content_blocks

    def resolve_options(self, *extra: AnswerOption) -> AnswerOptions:
        """Resolve this answer's options followed by ``extra`` ones."""
        return apply_answer_options(*self.options, *extra)
