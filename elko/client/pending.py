import asyncio
from typing import NamedTuple

from elko.protocol.messages import ServerResponse

from .context import Context
from .errors import Cancelled, DeadlineExceeded, RequestError


class PendingRequest(NamedTuple):
    context: Context
    future: asyncio.Future
    timer: asyncio.TimerHandle | None


class PendingRequests:
    """
    Waiters for responses to client-issued requests, keyed by correlation
    id.

    Each waiter is released exactly once: by its response, by its deadline
    timer, by cancellation of its context, or by ``fail_all`` when the
    connection closes. Once released the id is forgotten, so a late
    response finds nothing to resolve.
    """

    def __init__(self) -> None:
        self._requests: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._requests)

    def __contains__(self, request_id: int) -> bool:
        return request_id in self._requests

    def register(self, context: Context) -> asyncio.Future:
        if context.id in self._requests:
            raise RequestError(
                f"Request {context.id} is already pending",
                request_id=context.id,
            )

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        timer: asyncio.TimerHandle | None = None
        remaining = context.remaining()
        if remaining is not None:
            timer = loop.call_later(
                remaining,
                self._expire,
                context.id,
            )

        self._requests[context.id] = PendingRequest(
            context,
            future,
            timer,
        )

        context.add_cancel_callback(self._cancel)

        return future

    def resolve(self, response: ServerResponse) -> bool:
        pending = self._release(response.id)
        if pending is None:
            return False

        if not pending.future.done():
            pending.future.set_result(response)

        return True

    def forget(self, request_id: int) -> None:
        self._release(request_id)

    def fail_all(self, error: Exception) -> int:
        request_ids = list(self._requests)

        for request_id in request_ids:
            pending = self._release(request_id)
            if pending and not pending.future.done():
                pending.future.set_exception(error)

        return len(request_ids)

    def _expire(self, request_id: int) -> None:
        pending = self._release(request_id)
        if pending and not pending.future.done():
            pending.future.set_exception(
                DeadlineExceeded(
                    f"Request {request_id} exceeded its deadline",
                    request_id=request_id,
                )
            )

    def _cancel(self, context: Context) -> None:
        pending = self._requests.get(context.id)
        if pending is None or pending.context is not context:
            return

        self._release(context.id)
        if not pending.future.done():
            pending.future.set_exception(
                Cancelled(
                    f"Request {context.id} was cancelled",
                    request_id=context.id,
                )
            )

    def _release(self, request_id: int) -> PendingRequest | None:
        pending = self._requests.pop(request_id, None)
        if pending is None:
            return None

        if pending.timer:
            pending.timer.cancel()

        pending.context.remove_cancel_callback(self._cancel)

        return pending
