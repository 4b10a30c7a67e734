"""Message processing: action matching and reply reconciliation.

For every message event a worker hands over, the processor:

1. Normalizes the message and decides whether it's addressed to the bot
   (a command) or overheard (a hear action context).
2. Evaluates the candidate actions in registration order and collects their
   answers.
3. Reconciles those answers with the replies already sent for the original
   message: new answers are sent, answers from actions that replied before
   update their previous reply, and previous replies whose action no longer
   answers are deleted. Deleting the original message deletes every reply.

The response tracker is only written with what the chat driver confirmed.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from ..errors import MalformedEventError
from ..interfaces.chat import ChatDriver
from ..models.answer import (
    Answer,
    AnswerOption,
    AnswerOptions,
    answer_in_existing_thread,
    answer_without_threading,
    apply_answer_options,
)
from ..models.events import MessageEvent, MessageKind
from ..models.message import IncomingMessage, MessageID, SelfIdentity
from ..utils.metrics import MetricsRegistry, Timer
from .registry import DEFAULT_ACTION_ID, ActionID, PluginRegistry, RegisteredAction
from .responses import OutboundRecord, ResponseTracker

log = structlog.get_logger()

DEFAULT_ANSWER_TEXT = "I don't understand, ask me for \"help\" to get a list of things I do"


def strip_self_mention(text: str, identity: SelfIdentity | None) -> tuple[bool, str]:
    """
    Strip a leading mention of the bot from ``text``.

    Accepted forms are ``<@ID>`` (optionally followed by a colon),
    ``ID:``, ``name:``, ``@name `` and ``@ID ``.

    Returns:
        Whether the bot was mentioned, and the text without the mention,
        trimmed
    """
    stripped = text.strip()
    if identity is None:
        return False, stripped

    mention = identity.mention
    if stripped.startswith(mention):
        rest = stripped[len(mention) :].removeprefix(":")
        return True, rest.strip()

    prefixes = [f"{identity.user_id}:", f"@{identity.user_id} "]
    if identity.user_name:
        prefixes += [f"{identity.user_name}:", f"@{identity.user_name} "]

    for prefix in prefixes:
        if stripped.startswith(prefix):
            return True, stripped[len(prefix) :].strip()

    return False, stripped


@dataclass(frozen=True)
class PendingReply:
    """An answer to send, resolved against its context."""

    action_id: ActionID
    answer: Answer
    options: AnswerOptions


@dataclass(frozen=True)
class ReplyDefaults:
    threaded_replies: bool = False
    broadcast_threaded_replies: bool = True


class MessageProcessor:
    """Turns message events into outbound chat operations.

    Safe to share across partition workers: each original message is only
    processed by one of them.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        driver: ChatDriver,
        tracker: ResponseTracker,
        defaults: ReplyDefaults | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._registry = registry
        self._driver = driver
        self._tracker = tracker
        self._defaults = defaults or ReplyDefaults()
        self._metrics = metrics or MetricsRegistry()
        self.self_identity: SelfIdentity | None = None

    @property
    def tracker(self) -> ResponseTracker:
        return self._tracker

    async def process(self, event: MessageEvent) -> None:
        """Process one message event. Never raises for plugin or transport failures."""
        kind = event.kind
        if kind == MessageKind.IGNORED:
            log.debug("message_ignored", channel_id=event.channel_id, subtype=event.subtype)
            return

        try:
            event.validate()
        except MalformedEventError as e:
            log.warning("malformed_message_skipped", error=str(e), channel_id=event.channel_id)
            return

        self._metrics.messages_processed.inc(labels={"type": str(kind)})
        with Timer(self._metrics.processing_duration, labels={"type": str(kind)}):
            if kind == MessageKind.DELETE:
                await self._process_delete(event.original_id)
            else:
                await self._process_message(event)

    def to_incoming_message(self, event: MessageEvent) -> IncomingMessage | None:
        """
        Build the plugin-facing view of an event.

        For an edit, the edited message's new text, author and thread drive
        matching. Returns None for deletes.
        """
        if event.kind == MessageKind.DELETE:
            return None

        text, user_id, thread_ts = event.text, event.user_id, event.thread_timestamp
        if event.kind == MessageKind.EDIT and event.sub_message is not None:
            text = event.sub_message.text
            user_id = event.sub_message.user_id or user_id
            thread_ts = event.sub_message.thread_timestamp or thread_ts

        _, normalized = strip_self_mention(text, self.self_identity)
        return IncomingMessage(
            msg_id=event.msg_id,
            original_msg_id=event.original_id,
            user_id=user_id,
            channel_id=event.channel_id,
            raw_text=text,
            normalized_text=normalized,
            thread_timestamp=thread_ts,
            subtype=event.subtype,
            raw_event=event.raw,
        )

    def is_command(self, message: IncomingMessage) -> bool:
        """Direct messages and messages starting with a mention of the bot are commands."""
        if message.is_direct_message:
            return True
        mentioned, _ = strip_self_mention(message.raw_text, self.self_identity)
        return mentioned

    def _is_from_self(self, event: MessageEvent, message: IncomingMessage) -> bool:
        identity = self.self_identity
        if identity is None:
            return False
        return identity.user_id in (message.user_id, event.bot_id)

    async def _process_message(self, event: MessageEvent) -> None:
        message = self.to_incoming_message(event)
        if message is None:
            return

        if self._is_from_self(event, message):
            log.debug("own_message_ignored", origin=str(message.original_msg_id))
            return

        replies = await self.collect_replies(message)
        prior = self._tracker.get(message.original_msg_id)
        await self._reconcile(message, replies, prior or [])

    async def collect_replies(self, message: IncomingMessage) -> list[PendingReply]:
        """Evaluate the candidate actions and resolve their answers."""
        command = self.is_command(message)
        candidates = self._registry.commands() if command else self._registry.hear_actions()

        replies: list[PendingReply] = []
        for registered in candidates:
            answer = await self._try_action(registered, message)
            if answer is not None:
                replies.append(self._pending(registered.id, answer, message))

        if command and not replies:
            default = Answer(text=DEFAULT_ANSWER_TEXT)
            replies.append(self._pending(DEFAULT_ACTION_ID, default, message))

        return replies

    async def _try_action(
        self,
        registered: RegisteredAction,
        message: IncomingMessage,
    ) -> Answer | None:
        view = registered.prepare(message)
        if view is None:
            return None

        plugin = registered.plugin.name
        started = time.perf_counter()
        try:
            if not registered.action.match(view):
                return None

            answer = registered.action.answer(view)
            if inspect.isawaitable(answer):
                answer = await answer
        except Exception:
            log.exception(
                "plugin_action_failed",
                plugin=plugin,
                action=str(registered.id),
                origin=str(message.original_msg_id),
            )
            return None
        finally:
            self._metrics.plugin_processing_duration.observe(
                time.perf_counter() - started, labels={"plugin": plugin}
            )

        if answer is None or answer.is_empty:
            return None

        self._metrics.plugin_answers.inc(labels={"plugin": plugin})
        return answer

    def _pending(
        self, action_id: ActionID, answer: Answer, message: IncomingMessage
    ) -> PendingReply:
        options: list[AnswerOption] = []
        if message.is_direct_message:
            options.append(answer_without_threading())
        options.extend(answer.options)
        if message.in_thread and message.thread_timestamp:
            options.append(answer_in_existing_thread(message.thread_timestamp))

        return PendingReply(action_id, answer, apply_answer_options(*options))

    async def _reconcile(
        self,
        message: IncomingMessage,
        replies: Sequence[PendingReply],
        prior: Sequence[OutboundRecord],
    ) -> None:
        origin = message.original_msg_id
        previous = {record.action_id: record for record in prior}
        records: list[OutboundRecord] = []

        for reply in replies:
            if reply.options.ephemeral_to_user:
                await self._send_ephemeral(message, reply)
                continue

            existing = previous.pop(reply.action_id, None)
            if existing is not None:
                records.append(await self._update(origin, existing, reply))
            else:
                sent = await self._send(message, reply)
                if sent is not None:
                    records.append(sent)

        for stale in previous.values():
            if not await self._delete(origin, stale):
                records.append(stale)

        if records or prior:
            log.debug("responses_recorded", origin=str(origin), responses=len(records))
        self._tracker.put(origin, records)

    async def _process_delete(self, origin: MessageID) -> None:
        prior = self._tracker.get(origin)
        if prior is None:
            log.debug("deleted_message_without_responses", origin=str(origin))
            return

        remaining = [record for record in prior if not await self._delete(origin, record)]
        self._tracker.put(origin, remaining)

    def _thread_for(
        self, message: IncomingMessage, options: AnswerOptions
    ) -> tuple[str | None, bool]:
        threaded = options.threaded_reply
        if threaded is None:
            threaded = self._defaults.threaded_replies
        if not threaded:
            return None, False

        broadcast = options.broadcast
        if broadcast is None:
            broadcast = self._defaults.broadcast_threaded_replies
        return options.existing_thread_timestamp or message.timestamp, broadcast

    async def _send(self, message: IncomingMessage, reply: PendingReply) -> OutboundRecord | None:
        thread_ts, broadcast = self._thread_for(message, reply.options)
        try:
            sent = await self._driver.send_message(
                message.channel_id,
                reply.answer.text,
                thread_ts=thread_ts,
                broadcast=broadcast,
                blocks=reply.answer.content_blocks,
            )
        except Exception:
            self._outbound_failed("send", message.original_msg_id, reply.action_id)
            return None
        return OutboundRecord(reply.action_id, sent)

    async def _send_ephemeral(self, message: IncomingMessage, reply: PendingReply) -> None:
        thread_ts, _ = self._thread_for(message, reply.options)
        user_id = reply.options.ephemeral_to_user or message.user_id
        try:
            await self._driver.send_ephemeral(
                message.channel_id,
                user_id,
                reply.answer.text,
                thread_ts=thread_ts,
                blocks=reply.answer.content_blocks,
            )
        except Exception:
            self._outbound_failed("send_ephemeral", message.original_msg_id, reply.action_id)

    async def _update(
        self,
        origin: MessageID,
        existing: OutboundRecord,
        reply: PendingReply,
    ) -> OutboundRecord:
        try:
            updated = await self._driver.update_message(
                existing.message_id,
                reply.answer.text,
                blocks=reply.answer.content_blocks,
            )
        except Exception:
            self._outbound_failed("update", origin, reply.action_id, response=existing.message_id)
            return existing
        return OutboundRecord(reply.action_id, updated)

    async def _delete(self, origin: MessageID, record: OutboundRecord) -> bool:
        try:
            await self._driver.delete_message(record.message_id)
        except Exception:
            self._outbound_failed("delete", origin, record.action_id, response=record.message_id)
            return False
        return True

    def _outbound_failed(
        self,
        operation: str,
        origin: MessageID,
        action_id: ActionID,
        response: MessageID | None = None,
    ) -> None:
        self._metrics.outbound_errors.inc(labels={"operation": operation})
        log.exception(
            "outbound_operation_failed",
            operation=operation,
            origin=str(origin),
            plugin=action_id.plugin,
            action=str(action_id),
            response=str(response) if response else None,
        )
