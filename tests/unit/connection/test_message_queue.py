import asyncio

import pytest

from elko.connection import MessageQueue
from elko.protocol import BackpressureError


class TestMessageQueueOrdering:
    @pytest.mark.asyncio
    async def test_fifo_when_pushed_before_pop(self) -> None:
        queue: MessageQueue[int] = MessageQueue()

        for item in range(10):
            queue.push(item)

        assert [await queue.pop() for _ in range(10)] == list(range(10))

    @pytest.mark.asyncio
    async def test_fifo_when_pop_waits_first(self) -> None:
        queue: MessageQueue[int] = MessageQueue()
        popped: list[int] = []

        async def consume():
            for _ in range(5):
                popped.append(await queue.pop())

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)

        for item in range(5):
            queue.push(item)
            await asyncio.sleep(0)

        await asyncio.wait_for(consumer, timeout=1)

        assert popped == list(range(5))

    @pytest.mark.asyncio
    async def test_one_push_wakes_one_waiter(self) -> None:
        queue: MessageQueue[str] = MessageQueue()

        waiters = [asyncio.create_task(queue.pop()) for _ in range(3)]
        await asyncio.sleep(0)

        queue.push("only")
        await asyncio.sleep(0.01)

        done = [waiter for waiter in waiters if waiter.done()]
        assert len(done) == 1
        assert done[0].result() == "only"

        for waiter in waiters:
            waiter.cancel()

        await asyncio.gather(*waiters, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_pop_suspends_until_push(self) -> None:
        queue: MessageQueue[int] = MessageQueue()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(queue.pop(), timeout=0.01)

        queue.push(1)
        assert await asyncio.wait_for(queue.pop(), timeout=1) == 1


class TestMessageQueueBounds:
    @pytest.mark.asyncio
    async def test_unbounded_by_default(self) -> None:
        queue: MessageQueue[int] = MessageQueue()

        for item in range(10_000):
            queue.push(item)

        assert len(queue) == 10_000

    @pytest.mark.asyncio
    async def test_bounded_queue_raises_backpressure(self) -> None:
        queue: MessageQueue[int] = MessageQueue(max_depth=2)
        queue.push(1)
        queue.push(2)

        with pytest.raises(BackpressureError):
            queue.push(3)

        assert await queue.pop() == 1
        queue.push(3)
        assert len(queue) == 2

    def test_negative_depth_rejected(self) -> None:
        with pytest.raises(ValueError):
            MessageQueue(max_depth=-1)

    @pytest.mark.asyncio
    async def test_clear_returns_drained_items(self) -> None:
        queue: MessageQueue[int] = MessageQueue()
        queue.push(1)
        queue.push(2)

        assert queue.clear() == [1, 2]
        assert queue.empty()
        assert queue.pop_nowait() is None
