from enum import Enum

from elko.protocol.errors import ElkoError


class ConnectionState(Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    HANDSHAKING = "HANDSHAKING"
    READY = "READY"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({
        ConnectionState.CONNECTING,
        ConnectionState.CLOSING,
    }),
    ConnectionState.CONNECTING: frozenset({
        ConnectionState.HANDSHAKING,
        ConnectionState.CLOSING,
    }),
    ConnectionState.HANDSHAKING: frozenset({
        ConnectionState.READY,
        ConnectionState.CLOSING,
    }),
    ConnectionState.READY: frozenset({
        ConnectionState.READY,
        ConnectionState.CLOSING,
    }),
    ConnectionState.CLOSING: frozenset({
        ConnectionState.CLOSED,
    }),
    ConnectionState.CLOSED: frozenset(),
}


class InvalidStateTransition(ElkoError):

    def __init__(
        self,
        current: ConnectionState,
        target: ConnectionState,
    ) -> None:
        super().__init__(
            f"Cannot transition from {current.value} to {target.value}"
        )
        self.current = current
        self.target = target


def can_transition(
    current: ConnectionState,
    target: ConnectionState,
) -> bool:
    return target in TRANSITIONS[current]
