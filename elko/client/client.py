from __future__ import annotations

import asyncio
import inspect
import sys
import time
import traceback
import weakref
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, NamedTuple, Union

import msgspec

from elko.connection import Connection, ConnectionState, MessageQueue
from elko.env import Env
from elko.logging import Logger
from elko.logging.elko_logging_models import (
    ClientDebug,
    ClientError,
    ClientFatal,
    ClientInfo,
    ClientTrace,
    ClientWarn,
)
from elko.protocol import (
    BackpressureError,
    ClientHello,
    ClientOpcode,
    ClientRequest,
    ClientResponse,
    ClientShutdown,
    ConnectionClosedError,
    ElkoError,
    FrameCodec,
    HandshakeError,
    Header,
    LivenessTimeoutError,
    LogEntry,
    RemoteError,
    ServerHello,
    ServerOpcode,
    ServerRequest,
    ServerResponse,
    derive_key,
)

from .context import Context
from .errors import NotReadyError, RemoteRequestError
from .pending import PendingRequests


MAX_INSTANCE_ID = 2**64 - 1
MAX_CORRELATION_ID = 2**64 - 1

LOG_SERVICE = "log.persist"
LOGGER_NAME = "elko_client"
LOG_TEMPLATE = "{timestamp} - {level} - {service_id}:{instance_id} - {host}:{port} - {message}"


HandlerResult = bytes | None
Handler = Callable[
    [ServerRequest, Context],
    Union[HandlerResult, Awaitable[HandlerResult]],
]


@dataclass(frozen=True)
class Identity:
    service_id: str
    instance_id: int | None = None

    def __post_init__(self) -> None:
        if not self.service_id:
            raise ValueError("Service id must be a non-empty string")

        if self.instance_id is not None and not (
            0 <= self.instance_id <= MAX_INSTANCE_ID
        ):
            raise ValueError(
                f"Instance id must be an unsigned 64-bit integer, got {self.instance_id}"
            )


@dataclass(frozen=True)
class Termination:
    exit_code: int
    reason: str
    error: Exception | None = None

    @property
    def clean(self) -> bool:
        return self.exit_code == 0


class OutgoingFrame(NamedTuple):
    opcode: ClientOpcode
    message: msgspec.Struct | None = None


class Client:
    """
    Worker side of one session with the coordinator.

    ``run`` connects, performs the handshake and then runs the writer,
    reader and heartbeat loops (plus the liveness monitor when enabled)
    until one of them finishes. The outcome is returned as a
    ``Termination`` rather than exiting the process.
    """

    def __init__(
        self,
        identity: Identity | str,
        env: Env | None = None,
        handlers: dict[str, Handler] | None = None,
        default_handler: Handler | None = None,
    ) -> None:
        if isinstance(identity, str):
            identity = Identity(identity)

        if env is None:
            env = Env()

        self.identity = identity
        self.env = env
        self.host = env.ELKO_HOST
        self.port = env.ELKO_PORT
        self.server_node_id: str | None = None

        self._key = derive_key(identity.service_id)
        self._connection = Connection(
            self.host,
            self.port,
            FrameCodec.for_client(self._key),
            max_frame_length=env.ELKO_MAX_FRAME_SIZE,
        )

        self._outgoing: MessageQueue[OutgoingFrame] = MessageQueue(
            max_depth=env.ELKO_MAX_OUTGOING_FRAMES,
        )
        self._pending = PendingRequests()

        self._handlers: dict[str, Handler] = dict(handlers or {})
        self._default_handler = default_handler

        self._tasks: list[asyncio.Task] = []
        self._dispatches: set[asyncio.Task] = set()
        self._failure: asyncio.Future | None = None
        self._last_id = 0
        self._issued: weakref.WeakSet[Context] = weakref.WeakSet()

        self._aborted = False
        self._shutdown_requested = asyncio.Event()
        self._shutdown_reason = ""
        self._hello_sent = False
        self._closed = asyncio.Event()
        self._termination: Termination | None = None

        log_fields = {
            "service_id": identity.service_id,
            "instance_id": identity.instance_id,
            "host": self.host,
            "port": self.port,
        }

        self._logger = Logger()
        self._logger.configure(
            name=LOGGER_NAME,
            template=LOG_TEMPLATE,
            path=env.ELKO_LOGS_PATH,
            models={
                "trace": (ClientTrace, log_fields),
                "debug": (ClientDebug, log_fields),
                "info": (ClientInfo, log_fields),
                "warn": (ClientWarn, log_fields),
                "error": (ClientError, log_fields),
                "fatal": (ClientFatal, log_fields),
            },
        )

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def termination(self) -> Termination | None:
        return self._termination

    @property
    def pending_requests(self) -> int:
        return len(self._pending)

    def register(self, service: str, handler: Handler) -> None:
        self._handlers[service] = handler

    def register_default(self, handler: Handler | None) -> None:
        self._default_handler = handler

    def handle(self, service: str):
        def wrap(handler: Handler) -> Handler:
            self.register(service, handler)
            return handler

        return wrap

    def new_context(self, timeout: float | None = None) -> Context:
        deadline: float | None = None
        if timeout is not None:
            deadline = time.monotonic() + timeout

        context = Context(
            self._next_id(),
            deadline=deadline,
        )
        self._issued.add(context)

        return context

    async def run(self) -> Termination:
        if self._termination is not None:
            return self._termination

        try:
            termination = await self.connect()
            if termination is None:
                termination = await self._serve()

        except ConnectionClosedError as err:
            termination = Termination(
                0 if err.clean and not self._aborted else 1,
                str(err),
                None if err.clean else err,
            )

        except ElkoError as err:
            termination = Termination(1, str(err), err)

        except asyncio.CancelledError:
            self.abort()
            await self._close(
                Termination(1, "Client run was cancelled"),
            )
            raise

        except Exception as err:
            termination = Termination(
                1,
                f"Unhandled failure - {err}",
                err,
            )

        if self._aborted:
            termination = Termination(1, "Client aborted", termination.error)

        await self._close(termination)

        return termination

    async def connect(self) -> Termination | None:
        """
        Open the connection and perform the handshake. Returns a
        termination when the session ends before it becomes ready,
        either because the coordinator shut it down or because the
        application called ``shutdown``.
        """
        self._connection.transition(ConnectionState.CONNECTING)
        await self._log(
            f"Connecting to coordinator at {self.host}:{self.port}",
            level="debug",
        )

        handshake = asyncio.create_task(self._open_and_handshake())
        stop = asyncio.create_task(self._shutdown_requested.wait())

        try:
            await asyncio.wait(
                [handshake, stop],
                return_when=asyncio.FIRST_COMPLETED,
            )

        finally:
            for task in (handshake, stop):
                task.cancel()

            await asyncio.gather(handshake, stop, return_exceptions=True)

        if self._shutdown_requested.is_set():
            return await self._shutdown_before_ready()

        return handshake.result()

    async def _open_and_handshake(self) -> Termination | None:
        await self._connection.open(timeout=self.env.connect_timeout or None)
        return await self._handshake()

    async def _shutdown_before_ready(self) -> Termination:
        reason = self._shutdown_reason

        if self._hello_sent and not self._connection.is_closing:
            try:
                await self._connection.write(
                    ClientOpcode.SHUTDOWN,
                    ClientShutdown(reason=reason),
                )

            except ElkoError as err:
                await self._log(
                    f"Could not send shutdown to coordinator - {err}",
                    level="debug",
                )

        return Termination(
            0,
            f"Client shut down - {reason}" if reason else "Client shut down",
        )

    async def _handshake(self) -> Termination | None:
        self._connection.transition(ConnectionState.HANDSHAKING)

        self._connection.send_version()
        self._hello_sent = True
        await self._connection.write(
            ClientOpcode.HELLO,
            ClientHello(
                service_id=self.identity.service_id,
                instance_id=self.identity.instance_id,
            ),
        )

        if self.env.ELKO_AWAIT_SERVER_HELLO is False:
            self._connection.transition(ConnectionState.READY)
            await self._log("Client ready, not waiting for coordinator hello")
            return None

        hello_timeout = self.env.hello_timeout or None

        try:
            opcode, message = await asyncio.wait_for(
                self._connection.read(),
                timeout=hello_timeout,
            )

        except asyncio.TimeoutError as err:
            raise HandshakeError(
                f"Coordinator did not send hello within {hello_timeout}s"
            ) from err

        if opcode == ServerOpcode.SHUTDOWN:
            reason = message.reason or "Coordinator shut down during handshake"
            await self._log(reason, level="warn")
            return Termination(0, reason)

        if opcode != ServerOpcode.HELLO:
            raise HandshakeError(
                f"Expected coordinator hello, received {opcode.name}"
            )

        self._accept_hello(message)
        self._connection.transition(ConnectionState.READY)
        await self._log(f"Client ready, coordinator node {self.server_node_id!r}")

        return None

    async def _serve(self) -> Termination:
        loop = asyncio.get_running_loop()
        self._failure = loop.create_future()

        self._tasks = [
            asyncio.create_task(self._write_loop()),
            asyncio.create_task(self._read_loop()),
        ]

        if self.env.heartbeat_interval > 0:
            self._tasks.append(
                asyncio.create_task(self._heartbeat_loop())
            )

        if self.env.liveness_timeout > 0:
            self._tasks.append(
                asyncio.create_task(self._liveness_monitor())
            )

        done, pending = await asyncio.wait(
            [*self._tasks, self._failure],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        return self._outcome(done)

    def _outcome(self, done: set[asyncio.Future]) -> Termination:
        terminations: list[Termination] = []
        failures: list[BaseException] = []

        for task in done:
            if task.cancelled():
                continue

            error = task.exception()
            if error is None:
                terminations.append(task.result())

            elif isinstance(error, ConnectionClosedError) and error.clean:
                terminations.append(Termination(0, str(error)))

            else:
                failures.append(error)

        if failures:
            raise failures[0]

        if terminations:
            return terminations[0]

        return Termination(1, "Client aborted")

    async def _write_loop(self) -> Termination:
        while True:
            frame = await self._outgoing.pop()
            await self._connection.write(frame.opcode, frame.message)

            if frame.opcode == ClientOpcode.SHUTDOWN:
                reason = frame.message.reason if frame.message else ""
                return Termination(
                    0,
                    f"Client shut down - {reason}" if reason else "Client shut down",
                )

    async def _read_loop(self) -> Termination:
        while True:
            opcode, message = await self._connection.read()

            if opcode == ServerOpcode.HELLO:
                self._accept_hello(message)
                await self._log(
                    f"Coordinator hello from node {self.server_node_id!r}",
                    level="debug",
                )

            elif opcode == ServerOpcode.REQUEST:
                self._dispatch(message)

            elif opcode == ServerOpcode.RESPONSE:
                await self._accept_response(message)

            elif opcode == ServerOpcode.SHUTDOWN:
                reason = message.reason or "Coordinator requested shutdown"
                await self._log(reason)
                return Termination(0, reason)

    async def _heartbeat_loop(self) -> None:
        interval = self.env.heartbeat_interval

        while True:
            await asyncio.sleep(interval)

            try:
                self._enqueue(ClientOpcode.HEARTBEAT)

            except BackpressureError as err:
                await self._log(
                    f"Skipped heartbeat - {err}",
                    level="warn",
                )

    async def _liveness_monitor(self) -> None:
        timeout = self.env.liveness_timeout
        loop = asyncio.get_running_loop()

        while True:
            last_activity = self._connection.last_activity
            if last_activity is None:
                last_activity = loop.time()

            remaining = last_activity + timeout - loop.time()
            if remaining <= 0:
                raise LivenessTimeoutError(
                    f"No traffic from coordinator for {timeout}s"
                )

            await asyncio.sleep(remaining)

    def _accept_hello(self, hello: ServerHello) -> None:
        self.server_node_id = hello.node_id

    async def _accept_response(self, response: ServerResponse) -> None:
        if self._pending.resolve(response) is False:
            await self._log(
                f"Discarded response to unknown or expired request {response.id}",
                level="debug",
            )

    def _dispatch(self, request: ServerRequest) -> None:
        task = asyncio.create_task(self._handle_request(request))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatch_done)

    def _dispatch_done(self, task: asyncio.Task) -> None:
        self._dispatches.discard(task)

        if task.cancelled():
            return

        error = task.exception()
        if error and self._failure and not self._failure.done():
            self._failure.set_exception(error)

    async def _handle_request(self, request: ServerRequest) -> None:
        handler = self._handlers.get(request.service, self._default_handler)

        result: HandlerResult = None
        error: RemoteError | None = None

        if handler is None:
            error = RemoteError(
                type="HandlerNotFound",
                message=f"No handler registered for {request.service}",
                args=[request.service],
            )

            await self._log(
                f"Request {request.id} for unknown service {request.service}",
                level="warn",
            )

        else:
            try:
                result = handler(request, Context(request.id))
                if inspect.isawaitable(result):
                    result = await result

                if result is not None and not isinstance(result, (bytes, bytearray)):
                    raise TypeError(
                        f"Handler for {request.service} returned {type(result).__name__}, expected bytes or None"
                    )

            except Exception as err:
                result = None
                error = RemoteError(
                    type=type(err).__name__,
                    message=str(err),
                    args=[str(arg) for arg in err.args],
                )

                await self._log(
                    f"Handler for {request.service} failed on request {request.id} - {err}",
                    level="error",
                )

        if request.id == 0:
            return

        try:
            self._enqueue(
                ClientOpcode.RESPONSE,
                ClientResponse(
                    id=request.id,
                    result=bytes(result) if result is not None else None,
                    error=error,
                ),
            )

        except BackpressureError as err:
            await self._log(
                f"Dropped response to request {request.id} - {err}",
                level="error",
            )

    async def request(
        self,
        service: str,
        *args: bytes,
        context: Context | None = None,
        timeout: float | None = None,
        headers: Header | None = None,
    ) -> bytes:
        self._require_ready()

        request_context = self._request_context(context, timeout)
        response_waiter = self._pending.register(request_context)

        try:
            if not response_waiter.done():
                self._enqueue(
                    ClientOpcode.REQUEST,
                    ClientRequest(
                        id=request_context.id,
                        service=service,
                        args=list(args),
                        headers=headers or Header(),
                        context=str(request_context.id),
                    ),
                )

            response: ServerResponse = await response_waiter

        finally:
            self._pending.forget(request_context.id)

        if response.error is not None:
            raise RemoteRequestError(
                service,
                response.error,
                request_id=request_context.id,
            )

        return response.result or b""

    def fire(
        self,
        service: str,
        *args: bytes,
        context: Context | None = None,
        headers: Header | None = None,
    ) -> None:
        self._require_ready()

        self._enqueue(
            ClientOpcode.REQUEST,
            ClientRequest(
                id=0,
                service=service,
                args=list(args),
                headers=headers or Header(),
                context=str(context.id) if context else "",
            ),
        )

    def log(
        self,
        message: str,
        data: Any = None,
        error: bool = False,
        context: Context | None = None,
    ) -> None:
        """Forward a log entry to the coordinator's log service."""
        frame = sys._getframe(1)

        stacktrace = ""
        if error and sys.exc_info()[0] is not None:
            stacktrace = traceback.format_exc()

        entry = LogEntry(
            context=str(context.id) if context else "",
            message=message,
            data=data,
            error=error,
            service_id=self.identity.service_id,
            instance_id=self.identity.instance_id,
            file=frame.f_code.co_filename,
            line=frame.f_lineno,
            stacktrace=stacktrace,
        )

        self.fire(
            LOG_SERVICE,
            msgspec.msgpack.encode(entry),
            context=context,
        )

    def shutdown(self, reason: str = "") -> None:
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        if self.state in (ConnectionState.CONNECTING, ConnectionState.HANDSHAKING):
            self._shutdown_reason = reason
            self._connection.transition(ConnectionState.CLOSING)
            self._shutdown_requested.set()
            return

        self._require_ready()

        self._enqueue(
            ClientOpcode.SHUTDOWN,
            ClientShutdown(reason=reason),
        )
        self._connection.transition(ConnectionState.CLOSING)

    async def wait_closed(self) -> Termination:
        await self._closed.wait()
        return self._termination

    def abort(self) -> None:
        self._aborted = True

        for task in [*self._tasks, *self._dispatches]:
            task.cancel()

        self._connection.abort()

    async def _close(self, termination: Termination) -> None:
        if self._termination is not None:
            return

        self._termination = termination

        if self.state not in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            self._connection.transition(ConnectionState.CLOSING)

        tasks = [*self._tasks, *self._dispatches]
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._connection.close()

        failed = self._pending.fail_all(
            ConnectionClosedError(
                f"Connection closed before a response arrived - {termination.reason}",
                clean=termination.clean,
            )
        )
        dropped = self._outgoing.clear()

        if self.state != ConnectionState.CLOSED:
            self._connection.transition(ConnectionState.CLOSED)

        if termination.clean:
            await self._log(
                f"Session closed - {termination.reason}",
            )

        else:
            await self._log(
                f"Session failed - {termination.reason}",
                level="fatal",
            )

        if failed or dropped:
            await self._log(
                f"Failed {failed} pending requests and dropped {len(dropped)} unsent frames",
                level="debug",
            )

        self._closed.set()
        await self._logger.close()

    def _require_ready(self) -> None:
        if self.state != ConnectionState.READY:
            raise NotReadyError(
                f"Client is {self.state.value}, operation requires READY"
            )

    def _request_context(
        self,
        context: Context | None,
        timeout: float | None,
    ) -> Context:
        if context is None:
            context = self.new_context()

        elif context not in self._issued or context.id in self._pending:
            # Handler contexts carry the coordinator's request id, so
            # requests made under them need an id of their own.
            context = Context(
                self._next_id(),
                deadline=context.deadline,
                parent=context,
            )

        if timeout is not None:
            return context.with_timeout(timeout)

        if context.deadline is None and self.env.request_timeout > 0:
            return context.with_timeout(self.env.request_timeout)

        return context

    def _next_id(self) -> int:
        while True:
            self._last_id = self._last_id % MAX_CORRELATION_ID + 1
            if self._last_id not in self._pending:
                return self._last_id

    def _enqueue(
        self,
        opcode: ClientOpcode,
        message: msgspec.Struct | None = None,
    ) -> None:
        self._outgoing.push(OutgoingFrame(opcode, message))

    async def _log(self, message: str, level: str = "info") -> None:
        async with self._logger.context(name=LOGGER_NAME) as ctx:
            await ctx.log_prepared(message, name=level)
