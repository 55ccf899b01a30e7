"""
Tests for the binary frame codec.

Covers:
- Happy path: frame layout and round trips
- Negative path: tampering, truncation, unknown opcodes
- Edge cases: empty payloads, size and opcode limits
"""

import struct

import pytest

from elko.protocol import (
    HEADER_SIZE,
    TAG_SIZE,
    ClientOpcode,
    FrameTooLargeError,
    IntegrityError,
    ServerOpcode,
    TruncatedFrameError,
    UnknownOpcodeError,
    compute_tag,
    decode_frame,
    derive_key,
    encode_frame,
    frame_length,
)
from elko.protocol import frame as frame_module


def flip_bit(data: bytes, bit: int) -> bytes:
    flipped = bytearray(data)
    flipped[bit // 8] ^= 1 << (bit % 8)
    return bytes(flipped)


class TestFrameLayout:
    def test_frame_layout(self, key: bytes) -> None:
        """Opcode, big-endian length, payload and an 8 byte tag."""
        frame = encode_frame(ClientOpcode.HELLO, b"abc", key)

        assert frame[0] == 2
        assert frame[1:5] == struct.pack(">I", 3)
        assert frame[5:8] == b"abc"
        assert len(frame) == HEADER_SIZE + 3 + TAG_SIZE
        assert frame[-TAG_SIZE:] == compute_tag(key, frame[:-TAG_SIZE])

    def test_length_counts_payload_only(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"x" * 300, key)

        assert struct.unpack(">I", frame[1:5])[0] == 300
        assert frame_length(frame[:HEADER_SIZE]) == len(frame)

    def test_empty_payload(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.HEARTBEAT, b"", key)

        assert len(frame) == HEADER_SIZE + TAG_SIZE
        assert decode_frame(frame, key, ClientOpcode) == (ClientOpcode.HEARTBEAT, b"")

    @pytest.mark.parametrize(
        "opcode,payload",
        [
            (ClientOpcode.HELLO, b"\x82\xa1a\x01"),
            (ClientOpcode.REQUEST, bytes(range(256))),
            (ClientOpcode.SHUTDOWN, b"\x00" * 4096),
        ],
    )
    def test_round_trip(self, key: bytes, opcode: ClientOpcode, payload: bytes) -> None:
        assert decode_frame(
            encode_frame(opcode, payload, key),
            key,
            ClientOpcode,
        ) == (opcode, payload)

    def test_decode_ignores_trailing_bytes(self, key: bytes) -> None:
        frame = encode_frame(ServerOpcode.SHUTDOWN, b"bye", key)

        assert decode_frame(frame + b"next", key, ServerOpcode) == (
            ServerOpcode.SHUTDOWN,
            b"bye",
        )

    def test_tag_depends_on_key(self) -> None:
        first = encode_frame(ClientOpcode.HELLO, b"payload", derive_key("billing"))
        second = encode_frame(ClientOpcode.HELLO, b"payload", derive_key("shipping"))

        assert first[:-TAG_SIZE] == second[:-TAG_SIZE]
        assert first[-TAG_SIZE:] != second[-TAG_SIZE:]


class TestFrameTampering:
    @pytest.mark.parametrize("bit", range(8))
    def test_opcode_bit_flip_detected(self, key: bytes, bit: int) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"payload", key)

        with pytest.raises(IntegrityError):
            decode_frame(flip_bit(frame, bit), key, ClientOpcode)

    @pytest.mark.parametrize("bit", range(8, 40))
    def test_length_bit_flip_detected(self, key: bytes, bit: int) -> None:
        """A flipped length either overruns the buffer or breaks the tag."""
        frame = encode_frame(ClientOpcode.REQUEST, b"payload", key)

        with pytest.raises((IntegrityError, TruncatedFrameError)):
            decode_frame(flip_bit(frame, bit), key, ClientOpcode)

    @pytest.mark.parametrize("bit", [40, 43, 47, 60, 95])
    def test_payload_bit_flip_detected(self, key: bytes, bit: int) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"payload!!!!!", key)

        with pytest.raises(IntegrityError):
            decode_frame(flip_bit(frame, bit), key, ClientOpcode)

    def test_tag_bit_flip_detected(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"payload", key)

        with pytest.raises(IntegrityError):
            decode_frame(flip_bit(frame, len(frame) * 8 - 1), key, ClientOpcode)

    def test_wrong_key_rejected(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"payload", key)

        with pytest.raises(IntegrityError):
            decode_frame(frame, derive_key("shipping"), ClientOpcode)


class TestFrameErrors:
    def test_short_header(self, key: bytes) -> None:
        with pytest.raises(TruncatedFrameError):
            decode_frame(b"\x01\x00", key, ClientOpcode)

    def test_missing_tag(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.REQUEST, b"payload", key)

        with pytest.raises(TruncatedFrameError):
            decode_frame(frame[:-1], key, ClientOpcode)

    def test_unknown_opcode(self, key: bytes) -> None:
        frame = encode_frame(ClientOpcode.SHUTDOWN, b"", key)

        with pytest.raises(UnknownOpcodeError) as error:
            decode_frame(frame, key, ServerOpcode)

        assert error.value.opcode == 5

    def test_opcode_out_of_range(self, key: bytes) -> None:
        with pytest.raises(ValueError):
            encode_frame(256, b"", key)

        with pytest.raises(ValueError):
            encode_frame(-1, b"", key)

    def test_payload_too_large(
        self,
        key: bytes,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(frame_module, "MAX_PAYLOAD_LENGTH", 16)

        assert decode_frame(
            encode_frame(ClientOpcode.REQUEST, b"x" * 16, key),
            key,
            ClientOpcode,
        ) == (ClientOpcode.REQUEST, b"x" * 16)

        with pytest.raises(FrameTooLargeError):
            encode_frame(ClientOpcode.REQUEST, b"x" * 17, key)

    def test_frame_too_large_is_value_error(self) -> None:
        assert issubclass(FrameTooLargeError, ValueError)
