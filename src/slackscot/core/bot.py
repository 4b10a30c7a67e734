"""The bot engine: dispatcher, partition workers and lifecycle.

This module implements the Bot class. It:
- Connects to the event source and dispatches its events
- Routes message events onto partition workers, preserving per-message order
- Runs the scheduled actions of plugins
- Handles graceful shutdown on signals (SIGTERM, SIGINT), termination events
  and invalid credentials
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import signal
from typing import TYPE_CHECKING, Protocol

import structlog

from .._version import __version__
from ..config.schema import BotConfig
from ..models.events import (
    ConnectedEvent,
    Event,
    HelloEvent,
    InvalidAuthEvent,
    LatencyReport,
    MessageEvent,
    RTMErrorEvent,
    TerminationEvent,
)
from ..models.message import MessageID, SelfIdentity
from ..utils.logging import SLogger, bind_context
from ..utils.metrics import MetricsRegistry
from .plugin import Plugin
from .processor import MessageProcessor, ReplyDefaults
from .registry import PluginRegistry
from .responses import ResponseTracker
from .routing import STOP, PartitionRouter, QueueItem
from .scheduler import ActionScheduler
from .telemetry import (
    MeteredChatDriver,
    MeteredEmojiReactor,
    MeteredFileUploader,
    MeteredUserInfoFinder,
)
from .uploads import OptionsFileUploader
from .users import CachingUserInfoFinder

if TYPE_CHECKING:
    from ..interfaces.chat import ChatDriver, EventSource
    from ..interfaces.services import (
        EmojiReactor,
        RawFileUploader,
        RealTimeSender,
        UserDirectory,
    )

log = structlog.get_logger()


class Closer(Protocol):
    """A resource released when the bot stops. ``close`` may be a coroutine function."""

    def close(self) -> object: ...


class DriverRealTimeSender:
    """Real-time sender posting through the chat driver."""

    def __init__(self, driver: ChatDriver) -> None:
        self._driver = driver

    async def send_new_message(self, text: str, channel_id: str) -> MessageID:
        return await self._driver.send_message(channel_id, text)


class Bot:
    """A slackscot bot.

    The dispatcher reads events one at a time. Message events are routed by
    original message onto one of ``messagePartitionCount`` workers so that a
    message and its later edits and deletes are processed in order. All other
    events are handled inline.

    Example:
        bot = Bot("youppi", config, adapter, adapter, users=adapter)
        bot.register_plugin(versioner.new_versioner("youppi", "1.0.0"))
        await bot.run()  # Blocks until shutdown
    """

    def __init__(
        self,
        name: str,
        config: BotConfig,
        source: EventSource,
        driver: ChatDriver,
        *,
        users: UserDirectory | None = None,
        emoji_reactor: EmojiReactor | None = None,
        uploader: RawFileUploader | None = None,
        real_time_sender: RealTimeSender | None = None,
        version: str = __version__,
        metrics: MetricsRegistry | None = None,
        handle_signals: bool = True,
    ) -> None:
        self.name = name
        self.metrics = metrics or MetricsRegistry()
        self._config = config
        self._source = source
        self._driver = MeteredChatDriver(driver, self.metrics)
        self._users = users
        self._emoji_reactor = emoji_reactor
        self._uploader = uploader
        self._sender = real_time_sender or DriverRealTimeSender(self._driver)
        self._handle_signals = handle_signals

        self.registry = PluginRegistry(name, version, config.time_location)
        self.processor = MessageProcessor(
            self.registry,
            self._driver,
            ResponseTracker(config.response_cache_size),
            ReplyDefaults(config.threaded_replies, config.broadcast_threaded_replies),
            self.metrics,
        )
        self._closers: list[Closer] = []

        # Lifecycle state
        self._running = False
        self._stopping = False
        self._invalid_auth = False
        self._router: PartitionRouter | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._dispatcher: asyncio.Task[None] | None = None
        self._scheduler: ActionScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def invalid_auth(self) -> bool:
        """True if the last run ended because credentials were rejected."""
        return self._invalid_auth

    @property
    def self_identity(self) -> SelfIdentity | None:
        return self.processor.self_identity

    @property
    def router(self) -> PartitionRouter | None:
        return self._router

    def register_plugin(self, plugin: Plugin) -> None:
        """
        Register a plugin. Plugins are evaluated in registration order.

        Raises:
            RegistrationError: If the bot already started
        """
        self.registry.register(plugin)

    def add_closer(self, closer: Closer) -> None:
        """Register a resource to close at shutdown, in reverse registration order."""
        self._closers.append(closer)

    def _inject_services(self) -> None:
        finder: MeteredUserInfoFinder | None = None
        if self._users is not None:
            cache = CachingUserInfoFinder(
                self._users, self._config.user_info_cache_size, self.metrics
            )
            finder = MeteredUserInfoFinder(cache, self.metrics)
        uploader: OptionsFileUploader | None = None
        if self._uploader is not None:
            uploader = OptionsFileUploader(MeteredFileUploader(self._uploader, self.metrics))
        reactor: MeteredEmojiReactor | None = None
        if self._emoji_reactor is not None:
            reactor = MeteredEmojiReactor(self._emoji_reactor, self.metrics)

        for plugin in self.registry.plugins:
            plugin.user_info_finder = finder
            plugin.logger = SLogger(debug=self._config.debug, plugin=plugin.name)
            plugin.emoji_reactor = reactor
            plugin.file_uploader = uploader
            plugin.real_time_sender = self._sender

    async def run(self) -> None:
        """Run until termination, invalid credentials or ``stop()``.

        This method:
        1. Seals plugin registration and injects plugin services
        2. Connects to the event source
        3. Starts the partition workers and the scheduled actions
        4. Dispatches events until the run ends
        5. Shuts down cooperatively
        """
        if self._running:
            log.warning("bot_already_running")
            return

        log.info(
            "bot_starting",
            name=self.name,
            partitions=self._config.message_partition_count,
            plugins=[p.name for p in self.registry.plugins],
        )

        self.registry.seal()
        self._inject_services()
        self._running = True
        self._stopping = False
        self._invalid_auth = False

        try:
            await self._source.connect()
            log.info("chat_connected")

            self._router = PartitionRouter(
                self._config.message_partition_count,
                self._config.message_queue_buffer_size,
                self.metrics,
            )
            self._workers = [
                asyncio.create_task(self._work(i, q), name=f"slackscot-worker-{i}")
                for i, q in enumerate(self._router.queues)
            ]

            self._scheduler = ActionScheduler(
                self.registry.scheduled_actions(),
                self._sender,
                self._config.time_zone(),
            )
            self._scheduler.start()

            if self._handle_signals:
                self._setup_signal_handlers()

            log.info("bot_started")
            self._dispatcher = asyncio.create_task(self._dispatch(), name="slackscot-dispatcher")
            try:
                await self._dispatcher
            except asyncio.CancelledError:
                if not self._stopping:
                    raise
        finally:
            await self._shutdown()

    def stop(self) -> None:
        """Request a stop. The run drains partition queues before returning."""
        if not self._running or self._stopping:
            return
        log.info("bot_stopping")
        self._stopping = True
        if self._dispatcher is not None and not self._dispatcher.done():
            self._dispatcher.cancel()

    async def _dispatch(self) -> None:
        async for event in self._source.events():
            if not await self.handle_event(event):
                return
        log.info("event_stream_ended")

    async def handle_event(self, event: Event) -> bool:
        """
        Handle one event from the source.

        Returns:
            False when the event ends the run
        """
        match event:
            case MessageEvent():
                self.metrics.messages_seen.inc()
                assert self._router is not None
                await self._router.route(event)
            case HelloEvent():
                log.debug("hello_received")
            case ConnectedEvent(self_identity=identity):
                self.processor.self_identity = identity
                log.info(
                    "self_identity_discovered",
                    user_id=identity.user_id,
                    user_name=identity.user_name,
                    connection_count=event.connection_count,
                )
            case LatencyReport(latency_ms=latency):
                self.metrics.slack_latency.set(latency)
            case RTMErrorEvent(code=code, message=message):
                log.warning("rtm_error", code=code, message=message)
            case InvalidAuthEvent():
                log.error("invalid_auth")
                self._invalid_auth = True
                return False
            case TerminationEvent():
                log.info("termination_received")
                return False
            case _:
                log.warning("unknown_event_skipped", event_type=type(event).__name__)
        return True

    async def _work(self, partition: int, queue: asyncio.Queue[QueueItem]) -> None:
        bind_context(partition=partition)
        log.debug("worker_started")
        while True:
            item = await queue.get()
            try:
                if item is STOP:
                    log.debug("worker_stopped")
                    return
                assert isinstance(item, MessageEvent)
                await self.processor.process(item)
            except Exception:
                log.exception("message_processing_failed", partition=partition)
            finally:
                queue.task_done()

    async def _shutdown(self) -> None:
        """Drain workers, stop the scheduler, run closers and disconnect."""
        log.debug("bot_shutting_down")

        if self._dispatcher is not None and not self._dispatcher.done():
            self._dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher

        if self._router is not None:
            await self._router.close()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
            self._workers = []

        if self._scheduler is not None:
            self._scheduler.shutdown()

        await self._run_closers()

        try:
            await self._source.disconnect()
            log.info("chat_disconnected")
        except Exception as e:
            log.warning("chat_disconnect_error", error=str(e))

        if self._handle_signals:
            self._remove_signal_handlers()

        self._running = False
        log.info("bot_stopped", invalid_auth=self._invalid_auth)

    async def _run_closers(self) -> None:
        for closer in reversed(self._closers):
            try:
                result = closer.close()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("closer_failed", closer=type(closer).__name__)

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)
            log.debug("signal_handler_registered", signal=sig.name)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        log.info("received_signal", signal=sig.name)
        self.stop()
