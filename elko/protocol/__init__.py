from .codec import (
    CLIENT_PAYLOADS as CLIENT_PAYLOADS,
    SERVER_PAYLOADS as SERVER_PAYLOADS,
    FrameCodec as FrameCodec,
    PayloadCodec as PayloadCodec,
)
from .errors import (
    BackpressureError as BackpressureError,
    ConnectionClosedError as ConnectionClosedError,
    ElkoError as ElkoError,
    FrameTooLargeError as FrameTooLargeError,
    HandshakeError as HandshakeError,
    IntegrityError as IntegrityError,
    LivenessTimeoutError as LivenessTimeoutError,
    PayloadDecodeError as PayloadDecodeError,
    ProtocolError as ProtocolError,
    TransportError as TransportError,
    TruncatedFrameError as TruncatedFrameError,
    UnknownOpcodeError as UnknownOpcodeError,
)
from .frame import (
    HEADER_SIZE as HEADER_SIZE,
    MAX_PAYLOAD_LENGTH as MAX_PAYLOAD_LENGTH,
    TAG_SIZE as TAG_SIZE,
    compute_tag as compute_tag,
    decode_frame as decode_frame,
    encode_frame as encode_frame,
    frame_length as frame_length,
)
from .key import (
    KEY_SIZE as KEY_SIZE,
    derive_key as derive_key,
)
from .messages import (
    ClientHello as ClientHello,
    ClientRequest as ClientRequest,
    ClientResponse as ClientResponse,
    ClientShutdown as ClientShutdown,
    Header as Header,
    LogEntry as LogEntry,
    RemoteError as RemoteError,
    ServerHello as ServerHello,
    ServerRequest as ServerRequest,
    ServerResponse as ServerResponse,
    ServerShutdown as ServerShutdown,
)
from .opcodes import (
    PROTOCOL_VERSION as PROTOCOL_VERSION,
    ClientOpcode as ClientOpcode,
    ServerOpcode as ServerOpcode,
)
