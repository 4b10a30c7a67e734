"""Interfaces between the engine and the chat transport."""

from collections.abc import AsyncIterator
from typing import Any, Protocol

from ..models.events import Event
from ..models.message import MessageID


class EventSource(Protocol):
    """Source of the real-time event stream consumed by the dispatcher.

    Adapters for a chat platform implement this alongside ``ChatDriver``.
    """

    async def connect(self) -> None:
        """
        Establish the connection to the chat platform.

        Raises:
            ConnectionError: If the connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Gracefully close the connection and release resources."""
        ...

    def events(self) -> AsyncIterator[Event]:
        """
        Yield typed events as they arrive.

        The stream starts with a ``HelloEvent`` and a ``ConnectedEvent``
        carrying the bot's identity. Exhausting the iterator ends the run the
        same way a ``TerminationEvent`` does.

        Example:
            async for event in source.events():
                # Dispatch event
                pass
        """
        ...


class ChatDriver(Protocol):
    """Outbound message operations against the chat platform.

    All operations raise on transport failure. The engine logs and drops such
    errors; it never retries.
    """

    async def send_message(
        self,
        channel_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        broadcast: bool = False,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageID:
        """
        Post a new message, optionally in a thread.

        Args:
            channel_id: Target channel identifier
            text: Plain text message (fallback for rich formatting)
            thread_ts: Thread root timestamp for a threaded reply
            broadcast: Also broadcast a threaded reply to the channel
            blocks: Optional rich content blocks

        Returns:
            Identity of the posted message
        """
        ...

    async def update_message(
        self,
        message_id: MessageID,
        text: str,
        *,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageID:
        """
        Replace the content of a message previously posted by the bot.

        Returns:
            Identity of the updated message
        """
        ...

    async def delete_message(self, message_id: MessageID) -> None:
        """Delete a message previously posted by the bot."""
        ...

    async def send_ephemeral(
        self,
        channel_id: str,
        user_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        blocks: list[dict[str, Any]] | None = None,
    ) -> None:
        """Post a message only visible to ``user_id``. It can't be edited or deleted."""
        ...
