"""Plugin model and the fluent builders used to author plugins."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..models.answer import Answer
from ..models.message import IncomingMessage
from .schedule import ScheduleDefinition

if TYPE_CHECKING:
    from ..interfaces.services import (
        EmojiReactor,
        FileUploader,
        RealTimeSender,
        UserInfoFinder,
    )
    from ..utils.logging import SLogger

# Side-effect free predicate selecting the messages an action answers
Matcher = Callable[[IncomingMessage], bool]

# Produces the answer to a matched message; may be a coroutine function
Answerer = Callable[[IncomingMessage], "Answer | None | Awaitable[Answer | None]"]

# Runs on schedule; may be a coroutine function
ScheduledActionFunc = Callable[["RealTimeSender"], "None | Awaitable[None]"]


def _always(_: IncomingMessage) -> bool:
    return True


def _never_answer(_: IncomingMessage) -> Answer | None:
    return None


@dataclass(frozen=True)
class ActionDefinition:
    """A command or hear action.

    Attributes:
        match: Predicate on the incoming message (no side effects)
        answer: Produces the answer when ``match`` is true
        usage: How to trigger the action, shown in help
        description: What the action does, shown in help
        hidden: Left out of help when true
    """

    match: Matcher = _always
    answer: Answerer = _never_answer
    usage: str = ""
    description: str = ""
    hidden: bool = False


@dataclass(frozen=True)
class ScheduledActionDefinition:
    """An action run on a schedule rather than in reaction to a message."""

    schedule: ScheduleDefinition
    action: ScheduledActionFunc
    description: str = ""
    hidden: bool = False


@dataclass
class Plugin:
    """A named set of actions.

    Services are injected by the bot before the first event is processed.
    """

    name: str
    commands: list[ActionDefinition] = field(default_factory=list)
    hear_actions: list[ActionDefinition] = field(default_factory=list)
    scheduled_actions: list[ScheduledActionDefinition] = field(default_factory=list)
    namespace_commands: bool = False

    # Injected services
    user_info_finder: UserInfoFinder | None = field(default=None, repr=False)
    logger: SLogger | None = field(default=None, repr=False)
    emoji_reactor: EmojiReactor | None = field(default=None, repr=False)
    file_uploader: FileUploader | None = field(default=None, repr=False)
    real_time_sender: RealTimeSender | None = field(default=None, repr=False)

    def namespaced_usage(self, usage: str) -> str:
        """Usage of a command as shown in help."""
        if self.namespace_commands and usage:
            return f"{self.name} {usage}"
        return usage


class ActionBuilder:
    """Fluent builder of an ``ActionDefinition``.

    Example:
        command = (
            new_command()
            .with_matcher(lambda m: m.normalized_text == "version")
            .with_answerer(lambda m: Answer(text="1.0.0"))
            .with_usage("version")
            .with_description("Reply with the version")
            .build()
        )
    """

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    def with_matcher(self, matcher: Matcher) -> ActionBuilder:
        self._fields["match"] = matcher
        return self

    def with_answerer(self, answerer: Answerer) -> ActionBuilder:
        self._fields["answer"] = answerer
        return self

    def with_usage(self, usage: str) -> ActionBuilder:
        self._fields["usage"] = usage
        return self

    def with_description(self, description: str) -> ActionBuilder:
        self._fields["description"] = description
        return self

    def with_descriptionf(self, fmt: str, *args: Any) -> ActionBuilder:
        return self.with_description(fmt % args)

    def hidden(self) -> ActionBuilder:
        self._fields["hidden"] = True
        return self

    def build(self) -> ActionDefinition:
        return ActionDefinition(**self._fields)


def new_command() -> ActionBuilder:
    """Start building a command (an action on messages addressed to the bot)."""
    return ActionBuilder()


def new_hear_action() -> ActionBuilder:
    """Start building a hear action (an action on overheard messages)."""
    return ActionBuilder()


class ScheduledActionBuilder:
    """Fluent builder of a ``ScheduledActionDefinition``."""

    def __init__(self) -> None:
        self._schedule = ScheduleDefinition()
        self._action: ScheduledActionFunc | None = None
        self._description = ""
        self._hidden = False

    def with_schedule(self, schedule: ScheduleDefinition) -> ScheduledActionBuilder:
        self._schedule = schedule
        return self

    def with_action(self, action: ScheduledActionFunc) -> ScheduledActionBuilder:
        self._action = action
        return self

    def with_description(self, description: str) -> ScheduledActionBuilder:
        self._description = description
        return self

    def with_descriptionf(self, fmt: str, *args: Any) -> ScheduledActionBuilder:
        return self.with_description(fmt % args)

    def hidden(self) -> ScheduledActionBuilder:
        self._hidden = True
        return self

    def build(self) -> ScheduledActionDefinition:
        """
        Build the definition.

        Raises:
            ValueError: If no action was set
        """
        if self._action is None:
            raise ValueError("A scheduled action needs an action function")
        return ScheduledActionDefinition(
            schedule=self._schedule,
            action=self._action,
            description=self._description,
            hidden=self._hidden,
        )


def new_scheduled_action() -> ScheduledActionBuilder:
    return ScheduledActionBuilder()


class PluginBuilder:
    """Fluent builder of a ``Plugin``.

    Example:
        plugin = PluginBuilder("versioner").with_command(command).build()
    """

    def __init__(self, name: str) -> None:
        self._plugin = Plugin(name=name)

    def with_command(self, command: ActionDefinition) -> PluginBuilder:
        self._plugin.commands.append(command)
        return self

    def with_hear_action(self, hear_action: ActionDefinition) -> PluginBuilder:
        self._plugin.hear_actions.append(hear_action)
        return self

    def with_scheduled_action(self, scheduled_action: ScheduledActionDefinition) -> PluginBuilder:
        self._plugin.scheduled_actions.append(scheduled_action)
        return self

    def with_command_namespacing(self) -> PluginBuilder:
        self._plugin.namespace_commands = True
        return self

    def build(self) -> Plugin:
        return self._plugin
