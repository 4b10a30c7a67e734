"""Helpers for testing plugins without a running bot.

Captors stand in for the services the bot injects into plugins and keep what
plugins send through them. ``PluginAsserter`` drives a plugin's actions the
way the bot would and hands back what they produced.

Example:
    asserter = PluginAsserter("BOT")
    result = await asserter.answers_and_reacts(plugin, "<@BOT> version")
    assert_answer_text(result.answers[0], "I'm `youppi`, version `1.0.0`")
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field

from .core.plugin import ActionDefinition, Plugin
from .core.processor import strip_self_mention
from .core.registry import ActionID, ActionKind, RegisteredAction
from .core.schedule import ScheduleDefinition
from .core.uploads import OptionsFileUploader
from .models.answer import Answer, merge_answer_options
from .models.message import IncomingMessage, MessageID, SelfIdentity
from .models.upload import FileUploadParams
from .utils.logging import SLogger


class SenderCaptor:
    """Real-time sender keeping sent messages by channel id."""

    def __init__(self) -> None:
        self.sent: dict[str, list[str]] = {}
        self._count = 0

    async def send_new_message(self, text: str, channel_id: str) -> MessageID:
        self.sent.setdefault(channel_id, []).append(text)
        self._count += 1
        return MessageID(channel_id, f"{self._count}.0")


class FileUploadCaptor:
    """Raw file uploader keeping the parameters of every upload."""

    def __init__(self) -> None:
        self.uploads: list[FileUploadParams] = []

    async def upload(self, params: FileUploadParams) -> None:
        self.uploads.append(params)


class EmojiReactionCaptor:
    """Emoji reactor keeping reactions along with the messages they were added to."""

    def __init__(self) -> None:
        self.emojis: list[str] = []
        self.items: list[MessageID] = []

    async def add_reaction(self, name: str, item: MessageID) -> None:
        self.emojis.append(name)
        self.items.append(item)


@dataclass
class PluginResult:
    """What a plugin produced in response to one message."""

    answers: list[Answer] = field(default_factory=list)
    emojis: list[str] = field(default_factory=list)
    uploads: list[FileUploadParams] = field(default_factory=list)


async def resolve_answer(action: ActionDefinition, message: IncomingMessage) -> Answer | None:
    """Call an action's answerer, awaiting it if it's a coroutine function."""
    answer = action.answer(message)
    if inspect.isawaitable(answer):
        answer = await answer
    return answer


class PluginAsserter:
    """Drives a plugin's actions as a bot with user id ``bot_user_id`` would.

    Messages starting with a mention of the bot, and messages on direct
    message channels, go to the plugin's commands. Everything else goes to
    its hear actions.
    """

    def __init__(self, bot_user_id: str, bot_user_name: str = "bot") -> None:
        self.identity = SelfIdentity(user_id=bot_user_id, user_name=bot_user_name)

    def inject_services(self, plugin: Plugin) -> tuple[EmojiReactionCaptor, FileUploadCaptor]:
        """Give ``plugin`` capturing services and return the captors."""
        emoji_captor = EmojiReactionCaptor()
        upload_captor = FileUploadCaptor()
        plugin.emoji_reactor = emoji_captor
        plugin.file_uploader = OptionsFileUploader(upload_captor)
        plugin.logger = SLogger(debug=True, plugin=plugin.name)
        return emoji_captor, upload_captor

    def incoming(
        self,
        text: str,
        channel_id: str = "C1",
        user_id: str = "U1",
        timestamp: str = "100.0",
        thread_timestamp: str | None = None,
    ) -> IncomingMessage:
        """Build the message a plugin would see for ``text``."""
        _, normalized = strip_self_mention(text, self.identity)
        msg_id = MessageID(channel_id, timestamp)
        return IncomingMessage(
            msg_id=msg_id,
            original_msg_id=msg_id,
            user_id=user_id,
            channel_id=channel_id,
            raw_text=text,
            normalized_text=normalized,
            thread_timestamp=thread_timestamp,
        )

    async def answers_and_reacts(
        self,
        plugin: Plugin,
        text: str,
        channel_id: str = "C1",
        user_id: str = "U1",
    ) -> PluginResult:
        """Run the actions matching ``text`` and collect answers, reactions and uploads."""
        emoji_captor, upload_captor = self.inject_services(plugin)
        message = self.incoming(text, channel_id, user_id)

        mentioned, _ = strip_self_mention(text, self.identity)
        if mentioned or message.is_direct_message:
            kind, actions = ActionKind.COMMAND, plugin.commands
        else:
            kind, actions = ActionKind.HEAR_ACTION, plugin.hear_actions

        answers: list[Answer] = []
        for index, action in enumerate(actions):
            view = RegisteredAction(plugin, action, ActionID(plugin.name, kind, index)).prepare(
                message
            )
            if view is None or not action.match(view):
                continue
            answer = await resolve_answer(action, view)
            if answer is not None:
                answers.append(answer)

        return PluginResult(answers, emoji_captor.emojis, upload_captor.uploads)

    async def runs_on_schedule(
        self, plugin: Plugin, schedule: ScheduleDefinition
    ) -> dict[str, list[str]]:
        """
        Run the plugin's scheduled actions on ``schedule``.

        Returns:
            The messages they sent, by channel id

        Raises:
            AssertionError: If no scheduled action has that schedule
        """
        self.inject_services(plugin)
        sender = SenderCaptor()

        ran = False
        for scheduled in plugin.scheduled_actions:
            if scheduled.schedule == schedule:
                result = scheduled.action(sender)
                if inspect.isawaitable(result):
                    await result
                ran = True

        if not ran:
            raise AssertionError(f"Expected an action to run on schedule [{schedule}] but none did")
        return sender.sent

    def does_not_run_on_schedule(self, plugin: Plugin, schedule: ScheduleDefinition) -> None:
        """
        Raises:
            AssertionError: If a scheduled action has ``schedule``
        """
        for scheduled in plugin.scheduled_actions:
            if scheduled.schedule == schedule:
                raise AssertionError(
                    f"Expected no action on schedule [{schedule}] "
                    f"but [{scheduled.description}] would run"
                )


async def assert_matches_and_answers(
    action: ActionDefinition, message: IncomingMessage
) -> Answer | None:
    """Check ``action`` matches ``message`` and return its answer."""
    if not action.match(message):
        raise AssertionError(
            f"Message [{message.normalized_text}] expected to match but the action didn't"
        )
    return await resolve_answer(action, message)


def assert_not_match(action: ActionDefinition, message: IncomingMessage) -> None:
    if action.match(message):
        raise AssertionError(
            f"Message [{message.normalized_text}] shouldn't match but the action did"
        )


async def assert_matches_and_reacts(
    plugin: Plugin,
    action: ActionDefinition,
    message: IncomingMessage,
    *emojis: str,
) -> None:
    """Check ``action`` matches and reacts to ``message`` with exactly ``emojis``, in any order."""
    captor = EmojiReactionCaptor()
    plugin.emoji_reactor = captor
    await assert_matches_and_answers(action, message)

    if any(item != message.original_msg_id for item in captor.items):
        raise AssertionError(
            f"Expected reactions on [{message.original_msg_id}] but got them on {captor.items}"
        )
    if sorted(captor.emojis) != sorted(emojis):
        raise AssertionError(f"Expected reactions {list(emojis)} but got {captor.emojis}")


def assert_answer_text(answer: Answer | None, text: str) -> None:
    if answer is None:
        raise AssertionError("Expected an answer but got None")
    if answer.text != text:
        raise AssertionError(f"Answer text expected to be [{text}] but was [{answer.text}]")


def assert_answer_text_contains(answer: Answer | None, sub_string: str) -> None:
    if answer is None:
        raise AssertionError("Expected an answer but got None")
    if sub_string not in answer.text:
        raise AssertionError(
            f"Answer expected to have text containing [{sub_string}] "
            f"but its text [{answer.text}] didn't"
        )


def assert_answer_options(answer: Answer | None, expected: Mapping[str, str]) -> None:
    """Check the answer's options, merged in order, are exactly ``expected``."""
    if answer is None:
        raise AssertionError("Expected an answer but got None")
    options = merge_answer_options(*answer.options)
    if options != dict(expected):
        raise AssertionError(f"Answer options expected {dict(expected)} but were {options}")
