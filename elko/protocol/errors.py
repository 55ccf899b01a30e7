"""
Error hierarchy for the elko wire protocol and transport.

Protocol errors and transport errors are fatal to the connection that raised
them. Request errors are local to a single request and never close the
connection.
"""


class ElkoError(Exception):
    """Base class for all elko errors."""
    pass


class ProtocolError(ElkoError):
    """The peer sent bytes that do not form a valid, authenticated frame."""
    pass


class IntegrityError(ProtocolError):
    """The integrity tag of a frame did not match its contents."""
    pass


class TruncatedFrameError(ProtocolError):
    """Fewer bytes are available than the frame header declares."""
    pass


class UnknownOpcodeError(ProtocolError):
    """The opcode does not belong to the expected direction's opcode space."""

    def __init__(self, opcode: int, expected: str) -> None:
        super().__init__(
            f"Opcode {opcode} is not a valid {expected} opcode"
        )
        self.opcode = opcode


class PayloadDecodeError(ProtocolError):
    """A frame payload could not be decoded into its registered type."""
    pass


class HandshakeError(ProtocolError):
    """The coordinator did not complete the handshake as expected."""
    pass


class FrameTooLargeError(ProtocolError, ValueError):
    """A frame exceeds the maximum representable or accepted size."""
    pass


class TransportError(ElkoError):
    """Connecting to, reading from, or writing to the coordinator failed."""
    pass


class LivenessTimeoutError(TransportError):
    """No traffic arrived from the coordinator within the liveness timeout."""
    pass


class ConnectionClosedError(TransportError):
    """
    The connection is closed. ``clean`` is True when the remote end closed
    the stream without a transport error.
    """

    def __init__(self, message: str = "Connection closed", clean: bool = False) -> None:
        super().__init__(message)
        self.clean = clean


class BackpressureError(ElkoError):
    """The outgoing queue is full."""
    pass
