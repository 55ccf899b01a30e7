from enum import IntEnum
from typing import Generic, Mapping, TypeVar

import msgspec

from .errors import PayloadDecodeError
from .frame import decode_frame, encode_frame
from .messages import (
    ClientHello,
    ClientRequest,
    ClientResponse,
    ClientShutdown,
    ServerHello,
    ServerRequest,
    ServerResponse,
    ServerShutdown,
)
from .opcodes import ClientOpcode, ServerOpcode


O = TypeVar("O", bound=IntEnum)


class PayloadCodec(Generic[O]):
    """
    Maps every opcode of one direction to the payload type it carries.

    Opcodes registered with ``None`` carry an empty payload. Payload types
    are selected by opcode, never by inspecting the message at runtime.
    """

    def __init__(
        self,
        opcodes: type[O],
        types: Mapping[O, type[msgspec.Struct] | None],
    ) -> None:
        missing = [opcode.name for opcode in opcodes if opcode not in types]
        if missing:
            raise ValueError(
                f"No payload type registered for {opcodes.__name__} opcodes: {', '.join(missing)}"
            )

        self.opcodes = opcodes
        self._types = dict(types)
        self._encoder = msgspec.msgpack.Encoder()
        self._decoders: dict[O, msgspec.msgpack.Decoder] = {
            opcode: msgspec.msgpack.Decoder(payload_type)
            for opcode, payload_type in self._types.items()
            if payload_type is not None
        }

    def payload_type(self, opcode: O) -> type[msgspec.Struct] | None:
        return self._types[opcode]

    def encode(
        self,
        opcode: O,
        message: msgspec.Struct | None,
    ) -> bytes:
        payload_type = self._types.get(opcode)

        if payload_type is None:
            if message is not None:
                raise TypeError(
                    f"{self.opcodes.__name__}.{opcode.name} carries no payload, got {type(message).__name__}"
                )

            return b""

        if not isinstance(message, payload_type):
            raise TypeError(
                f"{self.opcodes.__name__}.{opcode.name} requires {payload_type.__name__}, got {type(message).__name__}"
            )

        return self._encoder.encode(message)

    def decode(
        self,
        opcode: O,
        payload: bytes,
    ) -> msgspec.Struct | None:
        payload_type = self._types.get(opcode)

        if payload_type is None:
            return None

        if len(payload) == 0:
            try:
                return payload_type()

            except TypeError as err:
                raise PayloadDecodeError(
                    f"Empty payload for {self.opcodes.__name__}.{opcode.name}: {err}"
                ) from err

        try:
            return self._decoders[opcode].decode(payload)

        except msgspec.DecodeError as err:
            raise PayloadDecodeError(
                f"Malformed payload for {self.opcodes.__name__}.{opcode.name}: {err}"
            ) from err


CLIENT_PAYLOADS = PayloadCodec(
    ClientOpcode,
    {
        ClientOpcode.HEARTBEAT: None,
        ClientOpcode.HELLO: ClientHello,
        ClientOpcode.REQUEST: ClientRequest,
        ClientOpcode.RESPONSE: ClientResponse,
        ClientOpcode.SHUTDOWN: ClientShutdown,
    },
)


SERVER_PAYLOADS = PayloadCodec(
    ServerOpcode,
    {
        ServerOpcode.HELLO: ServerHello,
        ServerOpcode.REQUEST: ServerRequest,
        ServerOpcode.SHUTDOWN: ServerShutdown,
        ServerOpcode.RESPONSE: ServerResponse,
    },
)


class FrameCodec:
    """Packs outgoing and unpacks incoming frames for one side of a connection."""

    def __init__(
        self,
        key: bytes,
        outgoing: PayloadCodec,
        incoming: PayloadCodec,
    ) -> None:
        self.key = key
        self.outgoing = outgoing
        self.incoming = incoming

    @classmethod
    def for_client(cls, key: bytes) -> "FrameCodec":
        return cls(key, CLIENT_PAYLOADS, SERVER_PAYLOADS)

    @classmethod
    def for_server(cls, key: bytes) -> "FrameCodec":
        return cls(key, SERVER_PAYLOADS, CLIENT_PAYLOADS)

    def pack(
        self,
        opcode: IntEnum,
        message: msgspec.Struct | None = None,
    ) -> bytes:
        if not isinstance(opcode, self.outgoing.opcodes):
            raise TypeError(
                f"Cannot send {type(opcode).__name__}.{opcode.name} as a {self.outgoing.opcodes.__name__}"
            )

        return encode_frame(
            opcode,
            self.outgoing.encode(opcode, message),
            self.key,
        )

    def unpack(
        self,
        frame: bytes | bytearray | memoryview,
    ) -> tuple[IntEnum, msgspec.Struct | None]:
        opcode, payload = decode_frame(
            frame,
            self.key,
            self.incoming.opcodes,
        )

        return opcode, self.incoming.decode(opcode, payload)
