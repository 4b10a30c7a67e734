"""The built-in help command listing what a bot does."""

from __future__ import annotations

from collections.abc import Sequence

from ..models.answer import Answer
from ..models.message import IncomingMessage
from .plugin import ActionDefinition, Plugin

HELP_PLUGIN_NAME = "help"


def is_help_request(message: IncomingMessage) -> bool:
    return message.normalized_text.strip().lower() == HELP_PLUGIN_NAME


def _bullet(usage: str, description: str) -> str:
    if not usage:
        return f"\t• {description}"
    return f"\t• `{usage}` - {description}"


def render_help(
    bot_name: str,
    version: str,
    time_location: str,
    plugins: Sequence[Plugin],
) -> str:
    """Render the help text for the given plugins.

    Hidden actions are left out. Namespaced commands show their plugin name
    as a prefix to their usage, and scheduled actions are grouped under the
    name of their plugin.
    """
    lines = [
        f"I'm `{bot_name}` (engine version `{version}`) that listens to the team's chat "
        "and provides automated functions."
    ]

    commands = [
        _bullet(p.namespaced_usage(c.usage), c.description)
        for p in plugins
        for c in p.commands
        if not c.hidden
    ]
    if commands:
        lines += ["", "I currently support the following commands:", *commands]

    hear_actions = [
        _bullet(h.usage, h.description) for p in plugins for h in p.hear_actions if not h.hidden
    ]
    if hear_actions:
        lines += ["", "And listen for the following:", *hear_actions]

    scheduled = [
        f"\t• [`{p.name}`] `{s.schedule}` (`{time_location}`) - {s.description}"
        for p in plugins
        for s in p.scheduled_actions
        if not s.hidden
    ]
    if scheduled:
        lines += ["", "And do those things periodically:", *scheduled]

    return "\n".join(lines) + "\n"


def new_help_plugin(
    bot_name: str,
    version: str,
    time_location: str,
    plugins: Sequence[Plugin],
) -> Plugin:
    """Build the help plugin for a sealed set of plugins.

    The help text is rendered once, the plugin list being fixed by then.
    """
    text = render_help(bot_name, version, time_location, plugins)

    def answer(_: IncomingMessage) -> Answer:
        return Answer(text=text)

    command = ActionDefinition(
        match=is_help_request,
        answer=answer,
        usage=HELP_PLUGIN_NAME,
        description="Reply with usage instructions",
    )
    return Plugin(name=HELP_PLUGIN_NAME, commands=[command])
