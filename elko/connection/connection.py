import asyncio
from enum import IntEnum

import msgspec

from elko.protocol.codec import FrameCodec
from elko.protocol.errors import (
    ConnectionClosedError,
    ElkoError,
    FrameTooLargeError,
    TransportError,
)
from elko.protocol.opcodes import PROTOCOL_VERSION

from .protocol import ElkoClientProtocol
from .queue import MessageQueue
from .receive_buffer import MAX_FRAME_LENGTH, ReceiveBuffer
from .state import (
    ConnectionState,
    InvalidStateTransition,
    can_transition,
)


class Connection:
    """
    One TCP connection to the coordinator.

    Inbound bytes are cut into whole frames by the receive buffer and pushed
    onto the incoming queue in arrival order; ``read`` authenticates and
    decodes them. Transport failures are pushed onto the same queue so the
    reader sees them after any frames that arrived first.
    """

    def __init__(
        self,
        host: str,
        port: int,
        codec: FrameCodec,
        max_frame_length: int = MAX_FRAME_LENGTH,
    ) -> None:
        self.host = host
        self.port = port
        self.codec = codec
        self.version = PROTOCOL_VERSION
        self.state = ConnectionState.DISCONNECTED

        self.protocol: ElkoClientProtocol | None = None
        self.incoming: MessageQueue[bytes | ElkoError] = MessageQueue()
        self.last_activity: float | None = None

        self._buffer = ReceiveBuffer(max_frame_length=max_frame_length)
        self._failed = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def transport(self) -> asyncio.Transport | None:
        if self.protocol is None:
            return None

        return self.protocol.transport

    @property
    def is_closing(self) -> bool:
        transport = self.transport
        return transport is None or transport.is_closing()

    def transition(self, target: ConnectionState) -> None:
        if not can_transition(self.state, target):
            raise InvalidStateTransition(self.state, target)

        self.state = target

    async def open(self, timeout: float | None = None) -> None:
        self._loop = asyncio.get_running_loop()

        try:
            await asyncio.wait_for(
                self._loop.create_connection(
                    self._create_protocol,
                    self.host,
                    self.port,
                ),
                timeout=timeout,
            )

        except asyncio.TimeoutError as err:
            raise TransportError(
                f"Timed out connecting to {self.host}:{self.port} after {timeout}s"
            ) from err

        except OSError as err:
            raise TransportError(
                f"Failed to connect to {self.host}:{self.port} - {err}"
            ) from err

        self.last_activity = self._loop.time()

    def attach(self, transport: asyncio.Transport) -> ElkoClientProtocol:
        """Bind this connection to an already established transport."""
        self._loop = asyncio.get_running_loop()

        protocol = self._create_protocol()
        protocol.connection_made(transport)
        self.last_activity = self._loop.time()

        return protocol

    def _create_protocol(self) -> ElkoClientProtocol:
        self.protocol = ElkoClientProtocol(
            self._receive,
            self._lost,
        )

        return self.protocol

    def _receive(self, data: bytes) -> None:
        if self._failed:
            return

        self.last_activity = self._loop.time()
        self._buffer += data

        try:
            while (frame := self._buffer.maybe_extract_next()) is not None:
                self.incoming.push(frame)

        except FrameTooLargeError as err:
            self._failed = True
            self._buffer.clear()
            self.incoming.push(err)

            if self.transport is not None:
                self.transport.abort()

    def _lost(self, exc: Exception | None) -> None:
        if exc is None:
            self.incoming.push(
                ConnectionClosedError(
                    "Connection closed by coordinator",
                    clean=True,
                )
            )

        else:
            error = TransportError(f"Connection to coordinator lost - {exc}")
            error.__cause__ = exc
            self.incoming.push(error)

    def send_version(self) -> None:
        self._write(bytes([self.version]))

    async def write(
        self,
        opcode: IntEnum,
        message: msgspec.Struct | None = None,
    ) -> None:
        self._write(
            self.codec.pack(opcode, message)
        )

        await self.protocol.drain()

    def _write(self, data: bytes) -> None:
        if self.is_closing:
            raise ConnectionClosedError("Cannot write to a closed connection")

        try:
            self.transport.write(data)

        except (OSError, RuntimeError) as err:
            raise TransportError(f"Failed to write to coordinator - {err}") from err

    async def read(self) -> tuple[IntEnum, msgspec.Struct | None]:
        item = await self.incoming.pop()

        if isinstance(item, ElkoError):
            # Keep failing subsequent reads with the same error.
            self.incoming.push(item)
            raise item

        return self.codec.unpack(item)

    def close(self) -> None:
        transport = self.transport
        if transport is not None and not transport.is_closing():
            transport.close()

    def abort(self) -> None:
        transport = self.transport
        if transport is not None:
            transport.abort()
