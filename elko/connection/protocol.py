import asyncio
import socket
from typing import Callable


class ElkoClientProtocol(asyncio.Protocol):
    """
    Hands raw bytes from the coordinator to the owning connection and tracks
    write flow control so the writer loop can wait for the transport to
    drain.
    """

    def __init__(
        self,
        on_data: Callable[[bytes], None],
        on_lost: Callable[[Exception | None], None],
    ) -> None:
        self.transport: asyncio.Transport | None = None
        self._on_data = on_data
        self._on_lost = on_lost
        self._can_write = asyncio.Event()
        self._can_write.set()

    def connection_made(self, transport: asyncio.Transport) -> None:
        self.transport = transport

        tcp_socket: socket.socket | None = transport.get_extra_info("socket")
        if tcp_socket is not None:
            try:
                tcp_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            except (OSError, AttributeError):
                pass

    def data_received(self, data: bytes) -> None:
        self._on_data(data)

    def eof_received(self) -> bool:
        return False

    def connection_lost(self, exc: Exception | None) -> None:
        self._can_write.set()
        self._on_lost(exc)

    def pause_writing(self) -> None:
        self._can_write.clear()

    def resume_writing(self) -> None:
        self._can_write.set()

    async def drain(self) -> None:
        await self._can_write.wait()
