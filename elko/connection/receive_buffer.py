from __future__ import annotations

from elko.protocol.errors import FrameTooLargeError
from elko.protocol.frame import HEADER_SIZE, frame_length


MAX_FRAME_LENGTH = 64 * 1024 * 1024


class ReceiveBuffer:
    def __init__(self, max_frame_length: int = MAX_FRAME_LENGTH) -> None:
        self.buffer = bytearray()
        self.max_frame_length = max_frame_length

    def __iadd__(self, byteslike: bytes | bytearray) -> "ReceiveBuffer":
        self.buffer += byteslike
        return self

    def __bool__(self) -> bool:
        return bool(len(self))

    def __len__(self) -> int:
        return len(self.buffer)

    def __bytes__(self) -> bytes:
        return bytes(self.buffer)

    def maybe_extract_next(self) -> bytes | None:
        """
        Extract the first frame, if it is completed in the buffer.
        """
        if len(self.buffer) < HEADER_SIZE:
            return None

        total_length = frame_length(self.buffer)
        if total_length > self.max_frame_length:
            raise FrameTooLargeError(
                f"Frame of {total_length} bytes exceeds the limit of {self.max_frame_length} bytes"
            )

        if len(self.buffer) < total_length:
            return None

        out = bytes(self.buffer[:total_length])
        del self.buffer[:total_length]

        return out

    def clear(self):
        self.buffer.clear()
