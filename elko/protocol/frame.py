"""
Binary frame codec.

Frame layout:
    [opcode (1 byte)][length (4 bytes, big-endian)][payload (length bytes)][tag (8 bytes)]

The tag is HMAC-SHA256 over opcode, length and payload keyed with the
service key, truncated to 8 bytes. Authenticating the header as well as the
payload means a frame cannot be relabelled or truncated undetected.
"""

import struct
from enum import IntEnum
from typing import TypeVar

from cryptography.hazmat.primitives import constant_time, hashes, hmac

from .errors import (
    FrameTooLargeError,
    IntegrityError,
    TruncatedFrameError,
    UnknownOpcodeError,
)


O = TypeVar("O", bound=IntEnum)


HEADER = struct.Struct(">BI")
HEADER_SIZE = HEADER.size
TAG_SIZE = 8
MAX_PAYLOAD_LENGTH = 2**32 - 1


def compute_tag(key: bytes, data: bytes | memoryview) -> bytes:
    mac = hmac.HMAC(key, hashes.SHA256())
    mac.update(bytes(data))

    return mac.finalize()[:TAG_SIZE]


def frame_length(header: bytes | bytearray | memoryview) -> int:
    """Total size of the frame described by a header, tag included."""
    if len(header) < HEADER_SIZE:
        raise TruncatedFrameError(
            f"Frame header requires {HEADER_SIZE} bytes, got {len(header)}"
        )

    _, length = HEADER.unpack_from(header)

    return HEADER_SIZE + length + TAG_SIZE


def encode_frame(
    opcode: int,
    payload: bytes,
    key: bytes,
) -> bytes:
    if not 0 <= opcode <= 255:
        raise ValueError(f"Opcode {opcode} does not fit in one byte")

    payload_length = len(payload)
    if payload_length > MAX_PAYLOAD_LENGTH:
        raise FrameTooLargeError(
            f"Payload of {payload_length} bytes exceeds the maximum of {MAX_PAYLOAD_LENGTH} bytes"
        )

    body = HEADER.pack(int(opcode), payload_length) + payload

    return body + compute_tag(key, body)


def decode_frame(
    data: bytes | bytearray | memoryview,
    key: bytes,
    opcodes: type[O],
) -> tuple[O, bytes]:
    view = memoryview(data)
    total_length = frame_length(view)

    if len(view) < total_length:
        raise TruncatedFrameError(
            f"Frame declares {total_length} bytes, only {len(view)} available"
        )

    body_length = total_length - TAG_SIZE
    body = view[:body_length]
    tag = view[body_length:total_length]

    if not constant_time.bytes_eq(compute_tag(key, body), bytes(tag)):
        raise IntegrityError("Frame integrity tag mismatch")

    opcode, _ = HEADER.unpack_from(body)

    try:
        frame_opcode = opcodes(opcode)

    except ValueError:
        raise UnknownOpcodeError(opcode, opcodes.__name__)

    return frame_opcode, bytes(body[HEADER_SIZE:])
