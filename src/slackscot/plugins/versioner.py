"""Versioner plugin: tells who the bot is and which version it runs."""

from __future__ import annotations

import re

from ..core.plugin import Plugin, PluginBuilder, new_command
from ..models.answer import Answer
from ..models.message import IncomingMessage

VERSIONER_PLUGIN_NAME = "versioner"

_VERSION_PATTERN = re.compile(r"version", re.IGNORECASE)


def new_versioner(name: str, version: str) -> Plugin:
    """Create the versioner plugin for a bot ``name`` running ``version``."""

    def answer(_: IncomingMessage) -> Answer:
        return Answer(text=f"I'm `{name}`, version `{version}`")

    return (
        PluginBuilder(VERSIONER_PLUGIN_NAME)
        .with_command(
            new_command()
            .with_matcher(lambda m: _VERSION_PATTERN.fullmatch(m.normalized_text) is not None)
            .with_answerer(answer)
            .with_usage("version")
            .with_description("Reply with the name and version of this slackscot instance")
            .build()
        )
        .build()
    )
