"""Registry of open SSE channels.

Each GET /mcp stream owns one SseChannel: a bounded queue of ready-to-write
frames. Broadcasting enqueues without awaiting, so one stalled client never
blocks the others. A full queue drops the frame for that channel only; after
``drop_limit`` consecutive drops the channel is evicted and closed.

The registry holds channels weakly and guards membership with a lock, so a
stream that dies without unregistering does not pin its channel, and
register/unregister may run while a broadcast is iterating its snapshot.

Example:
    registry = ChannelRegistry()
    channel = registry.open()
    registry.broadcast(b"data: {}\\n\\n")
    frame = await channel.queue.get()
    registry.unregister(channel)
"""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUEUE_SIZE = 100
DEFAULT_DROP_LIMIT = 10


@dataclass(eq=False)
class SseChannel:
    """One connected event-stream client.

    Attributes:
        queue: Frames waiting to be written. ``None`` tells the stream to end.
        consecutive_drops: Frames dropped in a row because the queue was full.
        closed: Set once the channel has been told to end.
    """

    queue: asyncio.Queue[bytes | None] = field(default_factory=asyncio.Queue)
    consecutive_drops: int = 0
    closed: bool = False

    def offer(self, frame: bytes) -> bool:
        """Enqueue a frame without waiting. Returns False if it was dropped."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.consecutive_drops += 1
            return False
        self.consecutive_drops = 0
        return True

    def close(self) -> None:
        """End the stream; pending frames are discarded."""
        if self.closed:
            return
        self.closed = True
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class ChannelRegistry:
    """Lock-guarded, weakly held set of SSE channels.

    Args:
        max_queue_size: Frames buffered per channel before dropping.
        drop_limit: Consecutive drops before a channel is evicted.
    """

    def __init__(
        self,
        max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE,
        drop_limit: int = DEFAULT_DROP_LIMIT,
    ) -> None:
        self._channels: weakref.WeakSet[SseChannel] = weakref.WeakSet()
        self._lock = threading.Lock()
        self._max_queue_size = max_queue_size
        self._drop_limit = drop_limit

    def open(self) -> SseChannel:
        """Create a bounded channel and register it."""
        channel = SseChannel(queue=asyncio.Queue(maxsize=self._max_queue_size))
        self.register(channel)
        return channel

    def register(self, channel: SseChannel) -> None:
        with self._lock:
            self._channels.add(channel)

    def unregister(self, channel: SseChannel) -> None:
        """Remove a channel. Safe to call for channels already removed."""
        with self._lock:
            self._channels.discard(channel)

    def snapshot(self) -> list[SseChannel]:
        """Channels registered right now, as an independent list."""
        with self._lock:
            return list(self._channels)

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)

    def __contains__(self, channel: object) -> bool:
        with self._lock:
            return channel in self._channels

    def broadcast(self, frame: bytes) -> int:
        """Offer a frame to every channel in a snapshot.

        Returns:
            Number of channels that accepted the frame.
        """
        delivered = 0
        for channel in self.snapshot():
            if channel.offer(frame):
                delivered += 1
            elif channel.consecutive_drops >= self._drop_limit:
                logger.warning(
                    "Evicting SSE channel after %d consecutive dropped frames",
                    channel.consecutive_drops,
                )
                self.unregister(channel)
                channel.close()
        return delivered

    def close_all(self) -> None:
        """Unregister and close every channel."""
        with self._lock:
            channels = list(self._channels)
            self._channels.clear()
        for channel in channels:
            channel.close()
