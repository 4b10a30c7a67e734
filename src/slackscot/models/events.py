"""Typed events produced by an event source and consumed by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..errors import MalformedEventError
from .message import MessageID, SelfIdentity

MESSAGE_CHANGED = "message_changed"
MESSAGE_DELETED = "message_deleted"
MESSAGE_REPLIED = "message_replied"


class MessageKind(StrEnum):
    """How a message event is processed."""

    NEW = "new"
    EDIT = "edit"
    DELETE = "delete"
    IGNORED = "ignored"


@dataclass(frozen=True)
class HelloEvent:
    """Greeting sent by the remote service once the stream is open."""


@dataclass(frozen=True)
class ConnectedEvent:
    """Connection established; carries the bot's identity."""

    self_identity: SelfIdentity
    connection_count: int = 0


@dataclass(frozen=True)
class LatencyReport:
    """Round-trip latency measured by the transport."""

    latency_ms: float


@dataclass(frozen=True)
class RTMErrorEvent:
    """Non-fatal error reported by the transport."""

    code: int
    message: str


@dataclass(frozen=True)
class InvalidAuthEvent:
    """Credentials were rejected. Terminal."""


@dataclass(frozen=True)
class TerminationEvent:
    """Ends the run: workers drain their queues and exit."""


@dataclass(frozen=True)
class SubMessage:
    """The nested message carried by edit and delete events."""

    timestamp: str
    text: str = ""
    user_id: str = ""
    thread_timestamp: str | None = None

    @classmethod
    def from_slack(cls, payload: dict[str, Any]) -> SubMessage:
        return cls(
            timestamp=payload.get("ts", ""),
            text=payload.get("text", ""),
            user_id=payload.get("user", ""),
            thread_timestamp=payload.get("thread_ts"),
        )


@dataclass(frozen=True)
class MessageEvent:
    """A new, edited or deleted message.

    For an edit, ``sub_message`` holds the edited message with its new text
    and its original timestamp. For a delete, ``deleted_timestamp`` names the
    deleted message and ``previous_message`` holds its last content.
    """

    channel_id: str
    timestamp: str
    user_id: str = ""
    text: str = ""
    subtype: str = ""
    thread_timestamp: str | None = None
    bot_id: str | None = None
    reply_to: int | None = None
    sub_message: SubMessage | None = None
    previous_message: SubMessage | None = None
    deleted_timestamp: str | None = None

    # Original event payload
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def kind(self) -> MessageKind:
        """Classify the event. Reply acknowledgements are ignored."""
        if self.reply_to:
            return MessageKind.IGNORED
        if self.subtype == MESSAGE_DELETED:
            return MessageKind.DELETE
        if self.subtype == MESSAGE_CHANGED:
            return MessageKind.EDIT
        if self.subtype == MESSAGE_REPLIED:
            return MessageKind.IGNORED
        return MessageKind.NEW

    @property
    def msg_id(self) -> MessageID:
        """Identity of this event's own message."""
        return MessageID(self.channel_id, self.timestamp)

    @property
    def original_id(self) -> MessageID:
        """Identity of the message this event refers to.

        The event timestamp for a new message, the edited message's timestamp
        for an edit and the deleted message's timestamp for a delete.
        """
        kind = self.kind
        if kind == MessageKind.EDIT and self.sub_message is not None:
            return MessageID(self.channel_id, self.sub_message.timestamp)
        if kind == MessageKind.DELETE:
            if self.deleted_timestamp:
                return MessageID(self.channel_id, self.deleted_timestamp)
            if self.previous_message is not None:
                return MessageID(self.channel_id, self.previous_message.timestamp)
        return self.msg_id

    def validate(self) -> None:
        """Check that the event carries what processing needs.

        Raises:
            MalformedEventError: If a required field is missing
        """
        if not self.channel_id or not self.timestamp:
            raise MalformedEventError("Message event without channel or timestamp")

        kind = self.kind
        edited = self.sub_message
        if kind == MessageKind.EDIT and (edited is None or not edited.timestamp):
            raise MalformedEventError("Edit event without the edited message")
        if kind == MessageKind.DELETE and not (
            self.deleted_timestamp or (self.previous_message and self.previous_message.timestamp)
        ):
            raise MalformedEventError("Delete event without the deleted message timestamp")

    @classmethod
    def from_slack(cls, payload: dict[str, Any]) -> MessageEvent:
        """Build an event from a raw Slack ``message`` payload."""
        sub = payload.get("message")
        previous = payload.get("previous_message")

        return cls(
            channel_id=payload.get("channel", ""),
            timestamp=payload.get("ts", ""),
            user_id=payload.get("user", ""),
            text=payload.get("text", ""),
            subtype=payload.get("subtype", ""),
            thread_timestamp=payload.get("thread_ts"),
            bot_id=payload.get("bot_id"),
            reply_to=payload.get("reply_to"),
            sub_message=SubMessage.from_slack(sub) if isinstance(sub, dict) else None,
            previous_message=(
                SubMessage.from_slack(previous) if isinstance(previous, dict) else None
            ),
            deleted_timestamp=payload.get("deleted_ts"),
            raw=payload,
        )


Event = (
    HelloEvent
    | ConnectedEvent
    | LatencyReport
    | RTMErrorEvent
    | InvalidAuthEvent
    | TerminationEvent
    | MessageEvent
)
