"""
Serial transport layer.

Defines the byte-stream contract consumed by the master and a pyserial
implementation of it. Reads are single bytes bounded by the port timeout,
which doubles as the inter-frame silence threshold.
"""

import logging
from typing import Optional, Protocol

import serial

from .constants import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT
from .exceptions import ConnectionError

logger = logging.getLogger(__name__)


class ByteStream(Protocol):
    """Byte-oriented, half-duplex stream the master talks through."""

    timeout: float

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def write(self, data: bytes) -> int: ...

    def read_byte(self) -> Optional[int]:
        """Return the next byte, or None if nothing arrived within timeout."""
        ...

    def discard_input_buffer(self) -> None: ...

    def discard_output_buffer(self) -> None: ...


class SerialTransport:
    """Serial communication transport layer."""

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        bytesize: int = serial.EIGHTBITS,
        parity: str = serial.PARITY_NONE,
        stopbits: float = serial.STOPBITS_ONE,
        timeout: float = DEFAULT_TIMEOUT
    ):
        """
        Initialize serial transport.

        Args:
            port: Serial port name (e.g., '/dev/ttyUSB0' or 'COM3')
            baudrate: Baud rate (default: 9600)
            bytesize: Data bits (default: 8)
            parity: Parity, one of 'N', 'E', 'O' (default: 'N')
            stopbits: Stop bits (default: 1)
            timeout: Per-byte read timeout in seconds
        """
        self.port = port
        self.baudrate = baudrate
        self.bytesize = bytesize
        self.parity = parity
        self.stopbits = stopbits
        self._timeout = timeout
        self._serial: Optional[serial.Serial] = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self._timeout = value
        if self._serial is not None:
            self._serial.timeout = value

    def open(self) -> None:
        """Open serial port."""
        if self.is_open:
            return

        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                timeout=self._timeout
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} bps")

        except serial.SerialException as e:
            raise ConnectionError(f"Failed to open {self.port}: {e}") from e

    def close(self) -> None:
        """Close serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException as e:
                raise ConnectionError(f"Failed to close {self.port}: {e}") from e
            finally:
                self._serial = None
            logger.info(f"Closed serial port {self.port}")

    def _require_open(self) -> serial.Serial:
        if not self._serial or not self._serial.is_open:
            raise ConnectionError("Serial port not open")
        return self._serial

    def write(self, data: bytes) -> int:
        """
        Send data over serial port.

        Args:
            data: Bytes to send

        Returns:
            Number of bytes sent

        Raises:
            ConnectionError: If port is not open or the write fails
        """
        port = self._require_open()

        try:
            count = port.write(data)
            port.flush()
            logger.debug(f"TX ({count} bytes): {data.hex(' ')}")
            return count
        except serial.SerialException as e:
            raise ConnectionError(f"Send failed: {e}") from e

    def read_byte(self) -> Optional[int]:
        """
        Read one byte, blocking up to timeout.

        Returns:
            Byte value, or None on timeout
        """
        port = self._require_open()

        try:
            data = port.read(1)
        except serial.SerialException as e:
            raise ConnectionError(f"Receive failed: {e}") from e
        return data[0] if data else None

    def discard_input_buffer(self) -> None:
        """Drop bytes received but not yet read."""
        self._require_open().reset_input_buffer()

    def discard_output_buffer(self) -> None:
        """Drop bytes queued but not yet transmitted."""
        self._require_open().reset_output_buffer()

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        return self._serial is not None and self._serial.is_open

    def __enter__(self) -> 'SerialTransport':
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"SerialTransport({self.port}, {self.baudrate}, {status})"
