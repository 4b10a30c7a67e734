"""Partition routing of message events onto worker queues.

All events referring to the same original message hash to the same
partition, which serializes new, edit and delete processing for it.
"""

from __future__ import annotations

import asyncio
import zlib
from typing import Final

import structlog

from ..errors import PartitionCountError
from ..models.events import MessageEvent
from ..models.message import MessageID
from ..utils.metrics import MetricsRegistry, Timer

log = structlog.get_logger()


class _Stop:
    """Queue sentinel telling a worker to exit."""

    def __repr__(self) -> str:
        return "STOP"


STOP: Final = _Stop()

QueueItem = MessageEvent | _Stop


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def partition_for(message_id: MessageID, partition_count: int) -> int:
    """
    Partition index of a message.

    CRC-32 (IEEE) of the channel id followed by the timestamp, masked by
    ``partition_count - 1``.

    Raises:
        PartitionCountError: If ``partition_count`` isn't a power of two
    """
    if not is_power_of_two(partition_count):
        raise PartitionCountError(partition_count)
    key = (message_id.channel_id + message_id.timestamp).encode("utf-8")
    return zlib.crc32(key) & (partition_count - 1)


class PartitionRouter:
    """Owns the bounded partition queues and routes events onto them.

    Example:
        router = PartitionRouter(4, buffer_size=100)
        await router.route(event)
        ...
        await router.close()
    """

    def __init__(
        self,
        partition_count: int,
        buffer_size: int = 100,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """
        Initialize the router.

        Raises:
            PartitionCountError: If ``partition_count`` isn't a power of two
            ValueError: If ``buffer_size`` is less than 1
        """
        if not is_power_of_two(partition_count):
            raise PartitionCountError(partition_count)
        if buffer_size < 1:
            raise ValueError(f"Partition buffer size must be at least 1 but was [{buffer_size}]")

        self.partition_count = partition_count
        self.buffer_size = buffer_size
        self._metrics = metrics or MetricsRegistry()
        self._queues: list[asyncio.Queue[QueueItem]] = [
            asyncio.Queue(maxsize=buffer_size) for _ in range(partition_count)
        ]
        self._closed = False

    @property
    def queues(self) -> list[asyncio.Queue[QueueItem]]:
        return self._queues

    @property
    def closed(self) -> bool:
        return self._closed

    def partition(self, message_id: MessageID) -> int:
        return partition_for(message_id, self.partition_count)

    async def route(self, event: MessageEvent) -> int:
        """
        Enqueue an event on the partition of its original message.

        Blocks while that partition's queue is full.

        Returns:
            The partition index

        Raises:
            RuntimeError: If the router was closed
        """
        if self._closed:
            raise RuntimeError("Can't route events once the router is closed")

        index = self.partition(event.original_id)
        with Timer(self._metrics.dispatch_duration):
            await self._queues[index].put(event)

        log.debug("message_dispatched", origin=str(event.original_id), partition=index)
        return index

    async def close(self) -> None:
        """Enqueue a stop sentinel behind the pending events of every queue."""
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            await queue.put(STOP)
