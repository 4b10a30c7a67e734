"""Metered decorators of the chat driver and plugin services.

Each wrapper implements the same interface as the object it wraps and
records, per method, the number of calls, the number of failed calls and
the call duration in the bot's ``MetricsRegistry``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from ..models.message import MessageID, UserProfile
from ..models.upload import FileUploadParams
from ..utils.metrics import MetricsRegistry, Timer

if TYPE_CHECKING:
    from ..interfaces.chat import ChatDriver
    from ..interfaces.services import EmojiReactor, RawFileUploader, UserInfoFinder


class _Metered:
    service = ""

    def __init__(self, metrics: MetricsRegistry) -> None:
        self._metrics = metrics

    @contextmanager
    def _measure(self, method: str) -> Iterator[None]:
        labels = {"service": self.service, "method": method}
        self._metrics.service_calls.inc(labels=labels)
        try:
            with Timer(self._metrics.service_duration, labels):
                yield
        except Exception:
            self._metrics.service_errors.inc(labels=labels)
            raise


class MeteredChatDriver(_Metered):
    """Chat driver recording call, error and duration metrics.

    Example:
        driver = MeteredChatDriver(adapter, metrics)
        await driver.send_message("C1", "hello")
        metrics.service_calls.get({"service": "chat_driver", "method": "send_message"})  # 1
    """

    service = "chat_driver"

    def __init__(self, base: ChatDriver, metrics: MetricsRegistry) -> None:
        super().__init__(metrics)
        self.base = base

    async def send_message(
        self,
        channel_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        broadcast: bool = False,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageID:
        with self._measure("send_message"):
            return await self.base.send_message(
                channel_id, text, thread_ts=thread_ts, broadcast=broadcast, blocks=blocks
            )

    async def update_message(
        self,
        message_id: MessageID,
        text: str,
        *,
        blocks: list[dict[str, Any]] | None = None,
    ) -> MessageID:
        with self._measure("update_message"):
            return await self.base.update_message(message_id, text, blocks=blocks)

    async def delete_message(self, message_id: MessageID) -> None:
        with self._measure("delete_message"):
            await self.base.delete_message(message_id)

    async def send_ephemeral(
        self,
        channel_id: str,
        user_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        blocks: list[dict[str, Any]] | None = None,
    ) -> None:
        with self._measure("send_ephemeral"):
            await self.base.send_ephemeral(
                channel_id, user_id, text, thread_ts=thread_ts, blocks=blocks
            )


class MeteredEmojiReactor(_Metered):
    service = "emoji_reactor"

    def __init__(self, base: EmojiReactor, metrics: MetricsRegistry) -> None:
        super().__init__(metrics)
        self.base = base

    async def add_reaction(self, name: str, item: MessageID) -> None:
        with self._measure("add_reaction"):
            await self.base.add_reaction(name, item)


class MeteredFileUploader(_Metered):
    service = "file_uploader"

    def __init__(self, base: RawFileUploader, metrics: MetricsRegistry) -> None:
        super().__init__(metrics)
        self.base = base

    async def upload(self, params: FileUploadParams) -> None:
        with self._measure("upload"):
            await self.base.upload(params)


class MeteredUserInfoFinder(_Metered):
    """User info finder recording lookups, including the ones served from cache."""

    service = "user_info_finder"

    def __init__(self, base: UserInfoFinder, metrics: MetricsRegistry) -> None:
        super().__init__(metrics)
        self.base = base

    async def get_user(self, user_id: str) -> UserProfile:
        with self._measure("get_user"):
            return await self.base.get_user(user_id)
