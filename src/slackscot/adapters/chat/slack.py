"""Slack adapter using slack-bolt.

This module implements the EventSource and ChatDriver protocols for Slack,
along with the plugin capabilities (user directory, emoji reactions, file
uploads, real-time sends), using slack-bolt with Socket Mode for real-time
events and the slack-sdk web client for outbound calls.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import structlog
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.app.async_app import AsyncApp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from ...config.schema import BotConfig
from ...errors import ConfigurationError, SlackscotError, UserNotFoundError
from ...models.events import (
    ConnectedEvent,
    Event,
    HelloEvent,
    InvalidAuthEvent,
    LatencyReport,
    MessageEvent,
    TerminationEvent,
)
from ...models.message import MessageID, SelfIdentity, UserProfile
from ...models.upload import FileUploadParams
from ...utils.retry import connect_retry

if TYPE_CHECKING:
    from slack_bolt.context.async_context import AsyncBoltContext


log = structlog.get_logger()

AUTH_ERRORS = frozenset({"invalid_auth", "not_authed", "account_inactive", "token_revoked"})


class SlackAdapterError(SlackscotError):
    """Base exception for Slack adapter errors."""


class ConnectionError(SlackAdapterError):
    """Raised when connection to Slack fails."""


class SendError(SlackAdapterError):
    """Raised when posting, updating or deleting a message fails."""


class ReactionError(SlackAdapterError):
    """Raised when adding a reaction fails."""


class UploadError(SlackAdapterError):
    """Raised when uploading a file fails."""


class SlackAdapter:
    """Slack event source and chat driver.

    Example:
        adapter = SlackAdapter(config)
        bot = Bot("youppi", config, adapter, adapter, users=adapter,
                  emoji_reactor=adapter, uploader=adapter, real_time_sender=adapter)
        await bot.run()
    """

    def __init__(self, config: BotConfig) -> None:
        """
        Initialize the Slack adapter.

        Raises:
            ConfigurationError: If the Socket Mode app token is missing
        """
        if not config.app_token:
            raise ConfigurationError("Missing Socket Mode application token at key [appToken]")

        self._config = config
        self._connected = False
        self._connection_count = 0

        self._app = AsyncApp(token=config.token)
        self._client: AsyncWebClient = self._app.client
        self._socket_handler: AsyncSocketModeHandler | None = None

        self._events: asyncio.Queue[Event] = asyncio.Queue()

        self._register_handlers()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _register_handlers(self) -> None:
        """Register event handlers with the Slack app."""

        @self._app.event("message")
        async def handle_message(
            event: dict[str, Any],
            context: AsyncBoltContext,
        ) -> None:
            await self._enqueue_message_event(event)

    async def _enqueue_message_event(self, payload: dict[str, Any]) -> None:
        event = MessageEvent.from_slack(payload)
        await self._events.put(event)
        log.debug(
            "message_event_received",
            channel_id=event.channel_id,
            ts=event.timestamp,
            subtype=event.subtype or None,
        )

    @connect_retry
    async def _auth_test(self) -> dict[str, Any]:
        response = await self._client.auth_test()
        return dict(response.data) if isinstance(response.data, dict) else {}

    async def connect(self) -> None:
        """
        Authenticate and open the Socket Mode connection.

        Rejected credentials don't raise: an ``InvalidAuthEvent`` is queued
        instead so that the bot ends its run cleanly.

        Raises:
            ConnectionError: If the connection fails
        """
        if self._connected:
            return

        started = time.perf_counter()
        try:
            auth = await self._auth_test()
        except SlackApiError as e:
            if e.response.get("error") in AUTH_ERRORS:
                log.error("slack_auth_rejected", error=e.response.get("error"))
                await self._events.put(InvalidAuthEvent())
                return
            raise ConnectionError(f"Failed to authenticate with Slack: {e}") from e
        except Exception as e:
            log.error("slack_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Slack: {e}") from e

        latency_ms = (time.perf_counter() - started) * 1000

        # Identity goes ahead of any message the socket delivers
        self._connection_count += 1
        identity = SelfIdentity(user_id=auth.get("user_id", ""), user_name=auth.get("user", ""))
        await self._events.put(HelloEvent())
        await self._events.put(ConnectedEvent(identity, self._connection_count))

        try:
            self._socket_handler = AsyncSocketModeHandler(
                app=self._app,
                app_token=self._config.app_token,
            )
            await self._socket_handler.connect_async()  # type: ignore[no-untyped-call]
        except Exception as e:
            log.error("slack_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Slack: {e}") from e

        self._connected = True
        await self._events.put(LatencyReport(latency_ms))

        log.info("slack_connected", team=auth.get("team"), user_id=identity.user_id)

    async def disconnect(self) -> None:
        """Gracefully close the Slack connection and end the event stream."""
        if not self._connected:
            return

        if self._socket_handler:
            try:
                await self._socket_handler.close_async()  # type: ignore[no-untyped-call]
            except Exception as e:
                log.warning("disconnect_error", error=str(e))

        self._connected = False
        await self._events.put(TerminationEvent())
        log.info("slack_disconnected")

    async def events(self) -> AsyncIterator[Event]:
        """Yield events until a termination or invalid auth event."""
        while True:
            event = await self._events.get()
            yield event
            if isinstance(event, (TerminationEvent, InvalidAuthEvent)):
                return

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
        Post a message, optionally in a thread.

        Raises:
            SendError: If message delivery fails
        """
        kwargs: dict[str, Any] = {"channel": channel_id, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
            kwargs["reply_broadcast"] = broadcast
        if blocks:
            kwargs["blocks"] = blocks

        try:
            result = await self._client.chat_postMessage(**kwargs)
        except SlackApiError as e:
            log.error("send_message_failed", channel_id=channel_id, error=str(e))
            raise SendError(f"Failed to send message: {e}") from e

        sent = MessageID(result.get("channel", channel_id), result.get("ts", ""))
        log.debug("message_sent", message=str(sent), thread_ts=thread_ts)
        return sent

    async def update_message(
        self,
        message_id: MessageID,
        text: str,
        *,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageID:
        """
        Replace the content of a message.

        Raises:
            SendError: If the update fails
        """
        kwargs: dict[str, Any] = {
            "channel": message_id.channel_id,
            "ts": message_id.timestamp,
            "text": text,
        }
        if blocks:
            kwargs["blocks"] = blocks

        try:
            result = await self._client.chat_update(**kwargs)
        except SlackApiError as e:
            log.error("update_message_failed", message=str(message_id), error=str(e))
            raise SendError(f"Failed to update message: {e}") from e

        return MessageID(
            result.get("channel", message_id.channel_id),
            result.get("ts", message_id.timestamp),
        )

    async def delete_message(self, message_id: MessageID) -> None:
        """
        Delete a message.

        Raises:
            SendError: If the deletion fails
        """
        try:
            await self._client.chat_delete(channel=message_id.channel_id, ts=message_id.timestamp)
        except SlackApiError as e:
            log.error("delete_message_failed", message=str(message_id), error=str(e))
            raise SendError(f"Failed to delete message: {e}") from e

    async def send_ephemeral(
        self,
        channel_id: str,
        user_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        blocks: list[dict[str, Any]] | None = None,
    ) -> None:
        """
        Post a message only visible to one user.

        Raises:
            SendError: If message delivery fails
        """
        kwargs: dict[str, Any] = {"channel": channel_id, "user": user_id, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        if blocks:
            kwargs["blocks"] = blocks

        try:
            await self._client.chat_postEphemeral(**kwargs)
        except SlackApiError as e:
            log.error("send_ephemeral_failed", channel_id=channel_id, error=str(e))
            raise SendError(f"Failed to send ephemeral message: {e}") from e

    async def send_new_message(self, text: str, channel_id: str) -> MessageID:
        """Post a new message on a channel (real-time sender)."""
        return await self.send_message(channel_id, text)

    async def add_reaction(self, name: str, item: MessageID) -> None:
        """
        Add a reaction to a message.

        Raises:
            ReactionError: If adding the reaction fails
        """
        try:
            await self._client.reactions_add(
                channel=item.channel_id,
                timestamp=item.timestamp,
                name=name,
            )
            log.debug("reaction_added", message=str(item), reaction=name)

        except SlackApiError as e:
            # Ignore "already_reacted" error
            if e.response.get("error") == "already_reacted":
                return

            log.error("add_reaction_failed", message=str(item), reaction=name, error=str(e))
            raise ReactionError(f"Failed to add reaction: {e}") from e

    async def upload(self, params: FileUploadParams) -> None:
        """
        Upload a file.

        Raises:
            UploadError: If the upload fails
        """
        kwargs: dict[str, Any] = {}
        if len(params.channels) == 1:
            kwargs["channel"] = params.channels[0]
        elif params.channels:
            kwargs["channels"] = params.channels
        if params.content is not None:
            kwargs["content"] = params.content
        if params.file_path is not None:
            kwargs["file"] = str(params.file_path)
        for key, value in (
            ("filename", params.filename),
            ("title", params.title),
            ("initial_comment", params.initial_comment),
            ("thread_ts", params.thread_timestamp),
        ):
            if value:
                kwargs[key] = value

        try:
            await self._client.files_upload_v2(**kwargs)
        except SlackApiError as e:
            log.error("file_upload_failed", channels=params.channels, error=str(e))
            raise UploadError(f"Failed to upload file: {e}") from e

    async def fetch_user(self, user_id: str) -> UserProfile:
        """
        Look up a user in the workspace directory.

        Raises:
            UserNotFoundError: If no such user exists
            SlackAdapterError: If the lookup fails
        """
        try:
            result = await self._client.users_info(user=user_id)
        except SlackApiError as e:
            if e.response.get("error") == "user_not_found":
                raise UserNotFoundError(user_id) from e
            raise SlackAdapterError(f"Failed to look up user [{user_id}]: {e}") from e

        return UserProfile.from_slack(result.get("user", {}))
