from __future__ import annotations

import time
import weakref
from typing import Callable


CancelCallback = Callable[["Context"], None]


class Context:
    """
    One in-flight operation: a correlation id, an optional monotonic
    deadline and a cancellation flag.

    Contexts derived with ``with_timeout`` share their parent's id and
    are cancelled together with it. Cancelling a derived context leaves
    the parent untouched.
    """

    def __init__(
        self,
        id: int,
        deadline: float | None = None,
        parent: Context | None = None,
    ) -> None:
        self.id = id
        self.deadline = deadline
        self.parent = parent

        self._cancelled = False
        self._callbacks: list[CancelCallback] = []
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()

        if parent is not None:
            parent._children.add(self)
            self._cancelled = parent.cancelled

    def __repr__(self) -> str:
        return f"Context(id={self.id}, deadline={self.deadline}, cancelled={self._cancelled})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None

        return max(self.deadline - time.monotonic(), 0.0)

    def with_timeout(self, duration: float) -> Context:
        if duration < 0:
            raise ValueError("Timeout must not be negative")

        deadline = time.monotonic() + duration
        if self.deadline is not None:
            deadline = min(self.deadline, deadline)

        return Context(
            self.id,
            deadline=deadline,
            parent=self,
        )

    def add_cancel_callback(self, callback: CancelCallback) -> None:
        if self._cancelled:
            callback(self)
            return

        self._callbacks.append(callback)

    def remove_cancel_callback(self, callback: CancelCallback) -> None:
        try:
            self._callbacks.remove(callback)

        except ValueError:
            pass

    def cancel(self) -> None:
        if self._cancelled:
            return

        self._cancelled = True

        callbacks = self._callbacks
        self._callbacks = []

        for callback in callbacks:
            callback(self)

        for child in list(self._children):
            child.cancel()
