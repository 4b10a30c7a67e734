"""Fluent assembly of a bot with its plugins and closers."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from ..config.schema import BotConfig
from .bot import Bot, Closer
from .plugin import Plugin

if TYPE_CHECKING:
    from ..interfaces.chat import ChatDriver, EventSource

log = structlog.get_logger()

# A factory returns a plugin, or a (closer, plugin) pair when the plugin
# holds resources to release at shutdown
PluginFactoryResult = Plugin | tuple[Closer, Plugin]
PluginFactory = Callable[[], PluginFactoryResult]
ConfigurablePluginFactory = Callable[[dict[str, Any]], PluginFactoryResult]


class BotBuilder:
    """Collects plugins and closers, keeping the first error to raise from ``build``.

    Example:
        bot = (
            BotBuilder("youppi", config)
            .with_plugin(versioner.new_versioner("youppi", "1.0.0"))
            .with_configurable_plugin("ohMonday", ohmonday.new_oh_monday)
            .build(adapter, adapter, users=adapter)
        )
    """

    def __init__(self, name: str, config: BotConfig) -> None:
        self.name = name
        self.config = config
        self._plugins: list[Plugin] = []
        self._closers: list[Closer] = []
        self._error: Exception | None = None

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    @property
    def error(self) -> Exception | None:
        return self._error

    def _add(self, result: PluginFactoryResult) -> None:
        if isinstance(result, tuple):
            closer, plugin = result
            self._closers.append(closer)
        else:
            plugin = result
        self._plugins.append(plugin)

    def with_plugin(self, plugin: Plugin) -> BotBuilder:
        if self._error is None:
            self._plugins.append(plugin)
        return self

    def with_plugin_factory(self, factory: PluginFactory) -> BotBuilder:
        """Add the plugin created by ``factory``. A raised error is kept for ``build``."""
        if self._error is not None:
            return self
        try:
            self._add(factory())
        except Exception as e:
            log.error("plugin_creation_failed", error=str(e))
            self._error = e
        return self

    def with_configurable_plugin(self, name: str, factory: ConfigurablePluginFactory) -> BotBuilder:
        """Add a plugin created from the ``plugins.<name>`` configuration sub-tree."""
        if self._error is not None:
            return self
        try:
            self._add(factory(self.config.plugin_config(name)))
        except Exception as e:
            log.error("plugin_creation_failed", plugin=name, error=str(e))
            self._error = e
        return self

    def with_closer(self, closer: Closer) -> BotBuilder:
        self._closers.append(closer)
        return self

    def build(self, source: EventSource, driver: ChatDriver, **kwargs: Any) -> Bot:
        """
        Build the bot.

        Keyword arguments are passed on to ``Bot``.

        Raises:
            Exception: The first error raised while creating plugins
        """
        if self._error is not None:
            raise self._error

        bot = Bot(self.name, self.config, source, driver, **kwargs)
        for plugin in self._plugins:
            bot.register_plugin(plugin)
        for closer in self._closers:
            bot.add_closer(closer)
        return bot
