"""Data models for chat messages and identities."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, order=True)
class MessageID:
    """Unique identity of a message within the workspace.

    Timestamps are opaque strings assigned by Slack (``seconds.micros``) and
    are only ever compared as strings.
    """

    channel_id: str
    timestamp: str

    def __str__(self) -> str:
        return f"{self.channel_id}/{self.timestamp}"


@dataclass(frozen=True)
class SelfIdentity:
    """The bot's own identity, discovered when the connection is established."""

    user_id: str
    user_name: str

    @property
    def mention(self) -> str:
        """Slack's mention markup for the bot (``<@U123>``)."""
        return f"<@{self.user_id}>"


@dataclass(frozen=True)
class UserProfile:
    """A user as returned by the remote directory."""

    id: str
    name: str
    real_name: str = ""
    display_name: str = ""
    is_bot: bool = False

    # Platform-specific payload
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_slack(cls, user: dict[str, Any]) -> UserProfile:
        """Build a profile from a ``users.info`` user object."""
        profile: dict[str, Any] = user.get("profile", {})
        return cls(
            id=user.get("id", ""),
            name=user.get("name", ""),
            real_name=user.get("real_name") or profile.get("real_name", ""),
            display_name=profile.get("display_name", ""),
            is_bot=bool(user.get("is_bot", False)),
            raw=user,
        )


@dataclass(frozen=True)
class IncomingMessage:
    """The normalized view of a message handed to plugin matchers and answerers.

    ``normalized_text`` is the raw text with any leading mention of the bot
    stripped and surrounding whitespace trimmed. For namespaced plugins, the
    plugin name prefix is stripped as well.

    ``msg_id`` identifies the event itself while ``original_msg_id`` identifies
    the message a reply reacts to: both are equal for a new message, and for
    an edit or delete ``original_msg_id`` is the edited/deleted message.
    """

    msg_id: MessageID
    original_msg_id: MessageID
    user_id: str
    channel_id: str
    raw_text: str
    normalized_text: str
    thread_timestamp: str | None = None
    subtype: str = ""

    # Original event payload
    raw_event: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def timestamp(self) -> str:
        """Timestamp of the originating message."""
        return self.original_msg_id.timestamp

    @property
    def in_thread(self) -> bool:
        """True if the message was posted inside a thread."""
        return bool(self.thread_timestamp)

    @property
    def is_direct_message(self) -> bool:
        """True if the message was posted on a direct message channel."""
        return self.channel_id.startswith("D")

    def with_normalized_text(self, text: str) -> IncomingMessage:
        """Return a copy with a different normalized text."""
        return replace(self, normalized_text=text)
