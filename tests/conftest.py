"""Shared test helpers: an in-memory byte stream scripted with slave replies."""

from collections import deque
from typing import List, Optional

from modbus_rtu.crc import CRC16


def with_crc(hex_body: str) -> bytes:
    """Build a frame from a hex string and append its CRC."""
    body = bytes.fromhex(hex_body)
    return body + CRC16.to_bytes(body)


class FakeStream:
    """
    ByteStream double: each write() queues the next scripted reply for reading.

    A None reply leaves the line silent for that request.
    """

    def __init__(self, replies: Optional[List[bytes]] = None, timeout: float = 0.05):
        self.timeout = timeout
        self.replies = deque(replies or [])
        self.written: List[bytes] = []
        self.calls: List[str] = []
        self.rx = bytearray()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self.calls.append("open")
        self._open = True

    def close(self) -> None:
        self.calls.append("close")
        self._open = False

    def write(self, data: bytes) -> int:
        self.calls.append("write")
        self.written.append(bytes(data))
        if self.replies:
            reply = self.replies.popleft()
            if reply:
                self.rx.extend(reply)
        return len(data)

    def read_byte(self) -> Optional[int]:
        if not self.rx:
            return None
        return self.rx.pop(0)

    def discard_input_buffer(self) -> None:
        self.calls.append("discard_input")
        self.rx.clear()

    def discard_output_buffer(self) -> None:
        self.calls.append("discard_output")
