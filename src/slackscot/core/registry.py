"""Plugin registry: the ordered action lists the processor walks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import structlog

from ..errors import RegistrationError
from ..models.message import IncomingMessage
from .help import HELP_PLUGIN_NAME, new_help_plugin
from .plugin import ActionDefinition, Plugin, ScheduledActionDefinition

log = structlog.get_logger()


class ActionKind(StrEnum):
    COMMAND = "command"
    HEAR_ACTION = "hearAction"
    DEFAULT_ACTION = "defaultAction"


@dataclass(frozen=True, order=True)
class ActionID:
    """Deterministic identity of the action that produced an answer."""

    plugin: str
    kind: ActionKind
    index: int

    def __str__(self) -> str:
        return f"{self.plugin}.{self.kind}[{self.index}]"


DEFAULT_ACTION_ID = ActionID("default", ActionKind.DEFAULT_ACTION, 0)


@dataclass(frozen=True)
class RegisteredAction:
    """An action along with its owning plugin and identity."""

    plugin: Plugin
    action: ActionDefinition
    id: ActionID

    def prepare(self, message: IncomingMessage) -> IncomingMessage | None:
        """
        Return the message as this action sees it, or None if it can't apply.

        Commands of a namespaced plugin only apply to messages starting with
        ``<plugin name> ``, and see the text with that prefix stripped.
        """
        if self.id.kind != ActionKind.COMMAND or not self.plugin.namespace_commands:
            return message

        prefix = f"{self.plugin.name} "
        if not message.normalized_text.startswith(prefix):
            return None
        return message.with_normalized_text(message.normalized_text[len(prefix) :].strip())


@dataclass(frozen=True)
class RegisteredScheduledAction:
    plugin: Plugin
    action: ScheduledActionDefinition
    index: int


class PluginRegistry:
    """Plugins in registration order.

    Plugins are registered at startup. Sealing the registry freezes the
    plugin list and appends the help command after every other command.
    """

    def __init__(self, bot_name: str, version: str, time_location: str = "Local") -> None:
        self.bot_name = bot_name
        self.version = version
        self.time_location = time_location
        self._plugins: list[Plugin] = []
        self._help: Plugin | None = None
        self._commands: list[RegisteredAction] = []
        self._hear_actions: list[RegisteredAction] = []
        self._scheduled: list[RegisteredScheduledAction] = []

    @property
    def sealed(self) -> bool:
        return self._help is not None

    @property
    def plugins(self) -> list[Plugin]:
        """Registered plugins, without the help plugin."""
        return list(self._plugins)

    def register(self, plugin: Plugin) -> None:
        """
        Register a plugin.

        Plugin names identify the actions whose replies get updated on edits,
        so they must be unique and can't be the built-in ``help``.

        Raises:
            RegistrationError: If the registry is sealed or the name is taken
        """
        if self.sealed:
            raise RegistrationError(f"Can't register plugin [{plugin.name}] once the bot started")
        if plugin.name == HELP_PLUGIN_NAME:
            raise RegistrationError(f"Plugin name [{plugin.name}] is reserved")
        if any(p.name == plugin.name for p in self._plugins):
            raise RegistrationError(f"A plugin named [{plugin.name}] is already registered")
        self._plugins.append(plugin)
        log.debug(
            "plugin_registered",
            plugin=plugin.name,
            commands=len(plugin.commands),
            hear_actions=len(plugin.hear_actions),
            scheduled_actions=len(plugin.scheduled_actions),
        )

    def seal(self) -> None:
        """Freeze registration and build the action lists. Idempotent."""
        if self.sealed:
            return

        self._help = new_help_plugin(
            self.bot_name, self.version, self.time_location, self._plugins
        )
        for plugin in [*self._plugins, self._help]:
            self._commands += [
                RegisteredAction(plugin, a, ActionID(plugin.name, ActionKind.COMMAND, i))
                for i, a in enumerate(plugin.commands)
            ]
            self._hear_actions += [
                RegisteredAction(plugin, a, ActionID(plugin.name, ActionKind.HEAR_ACTION, i))
                for i, a in enumerate(plugin.hear_actions)
            ]
            self._scheduled += [
                RegisteredScheduledAction(plugin, a, i)
                for i, a in enumerate(plugin.scheduled_actions)
            ]

    def _ensure_sealed(self) -> None:
        if not self.sealed:
            self.seal()

    @property
    def help_plugin(self) -> Plugin:
        self._ensure_sealed()
        assert self._help is not None
        return self._help

    def commands(self) -> list[RegisteredAction]:
        """All commands in registration order, the help command last."""
        self._ensure_sealed()
        return list(self._commands)

    def hear_actions(self) -> list[RegisteredAction]:
        self._ensure_sealed()
        return list(self._hear_actions)

    def scheduled_actions(self) -> list[RegisteredScheduledAction]:
        self._ensure_sealed()
        return list(self._scheduled)
