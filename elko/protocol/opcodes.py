from enum import IntEnum


PROTOCOL_VERSION = 1


class ClientOpcode(IntEnum):
    """Opcodes for frames written by the worker."""

    HEARTBEAT = 1
    HELLO = 2
    REQUEST = 3
    RESPONSE = 4
    SHUTDOWN = 5


class ServerOpcode(IntEnum):
    """Opcodes for frames written by the coordinator."""

    HELLO = 1
    REQUEST = 2
    SHUTDOWN = 3
    RESPONSE = 4
