"""
Bounded snapshot stream with per-subscriber buffers.
A slow reader loses its oldest snapshots, never blocks the engine.
"""
import asyncio
from typing import AsyncIterator, Optional, Set
from dataclasses import dataclass
import logging

from ..core.snapshot import SimulationSnapshot

logger = logging.getLogger(__name__)


@dataclass
class StreamStats:
    """Stream performance metrics"""
    messages_published: int = 0
    messages_dropped: int = 0
    active_subscribers: int = 0


class BoundedSnapshotStream:
    """
    Non-blocking snapshot publisher.

    Features:
    - Bounded queue per subscriber (fixed memory)
    - Latest-wins drop policy when a subscriber falls behind
    - New subscribers start from the most recent snapshot
    - Metrics tracking
    """

    def __init__(self, maxsize: int = 16):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self.stats = StreamStats()
        self.latest: Optional[SimulationSnapshot] = None

        self._subscribers: Set[asyncio.Queue] = set()
        self._closed = False

    # ========================================================================
    # PUBLISHING
    # ========================================================================

    async def publish(self, snapshot: SimulationSnapshot) -> int:
        """
        Fan out a snapshot to every subscriber (non-blocking).
        Returns the number of stale snapshots dropped to make room.
        """
        if self._closed:
            return 0

        self.latest = snapshot
        self.stats.messages_published += 1

        dropped = 0
        for queue in list(self._subscribers):
            dropped += self._offer(queue, snapshot)

        if dropped:
            self.stats.messages_dropped += dropped
            if self.stats.messages_dropped % 100 < dropped:
                logger.warning(
                    f"Stream backpressure: dropped {self.stats.messages_dropped} snapshots"
                )
        return dropped

    @staticmethod
    def _offer(queue: asyncio.Queue, item) -> int:
        dropped = 0
        while True:
            try:
                queue.put_nowait(item)
                return dropped
            except asyncio.QueueFull:
                queue.get_nowait()
                dropped += 1

    # ========================================================================
    # SUBSCRIBING
    # ========================================================================

    async def subscribe(self) -> AsyncIterator[SimulationSnapshot]:
        """
        Subscribe to stream (creates independent queue).
        Yields the latest snapshot first, then each new one.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        if self._closed:
            return

        if self.latest is not None:
            queue.put_nowait(self.latest)
        self._subscribers.add(queue)
        self.stats.active_subscribers = len(self._subscribers)

        try:
            while True:
                snapshot = await queue.get()
                if snapshot is None:  # Shutdown signal
                    break
                yield snapshot
        finally:
            self._subscribers.discard(queue)
            self.stats.active_subscribers = len(self._subscribers)

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def get_stats(self) -> StreamStats:
        """Get current statistics"""
        return self.stats

    async def close(self):
        """Close stream and notify all subscribers"""
        self._closed = True
        for queue in list(self._subscribers):
            self._offer(queue, None)
