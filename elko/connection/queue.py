import asyncio
from typing import Generic, TypeVar

from elko.protocol.errors import BackpressureError


T = TypeVar("T")


class MessageQueue(Generic[T]):
    """
    FIFO queue between producers and a consumer loop.

    ``push`` never suspends. ``pop`` suspends until an item is available,
    and each pushed item wakes exactly one waiting ``pop``. A ``max_depth``
    of zero leaves the queue unbounded; otherwise ``push`` raises
    ``BackpressureError`` once the queue holds ``max_depth`` items.
    """

    def __init__(self, max_depth: int = 0) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be zero (unbounded) or positive")

        self.max_depth = max_depth
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=max_depth)

    def __len__(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def push(self, item: T) -> None:
        try:
            self._queue.put_nowait(item)

        except asyncio.QueueFull:
            raise BackpressureError(
                f"Queue is full ({self.max_depth} items pending)"
            )

    async def pop(self) -> T:
        return await self._queue.get()

    def pop_nowait(self) -> T | None:
        try:
            return self._queue.get_nowait()

        except asyncio.QueueEmpty:
            return None

    def clear(self) -> list[T]:
        drained: list[T] = []
        while (item := self.pop_nowait()) is not None:
            drained.append(item)

        return drained
