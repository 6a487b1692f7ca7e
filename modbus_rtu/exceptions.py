"""
Custom exceptions for Modbus RTU.

Every exception carries a ``kind`` tag so callers can either catch by
class or switch on :class:`ErrorKind`.
"""

from enum import Enum
from typing import Any, Optional

from .constants import ExceptionCode, FunctionCode


class ErrorKind(Enum):
    """Failure categories."""
    PARAMETER = "parameter"
    TRANSPORT_TIMEOUT = "transport_timeout"
    FRAME_CORRUPTION = "frame_corruption"
    DEVICE_EXCEPTION = "device_exception"
    CONNECTION = "connection"


class ModbusError(Exception):
    """Base exception for Modbus RTU errors."""
    kind: Optional[ErrorKind] = None


class ParameterError(ModbusError, ValueError):
    """Caller input is outside protocol bounds. Raised before any I/O."""
    kind = ErrorKind.PARAMETER

    def __init__(self, name: str, value: Any, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class TransportTimeout(ModbusError):
    """No byte arrived before the silence threshold."""
    kind = ErrorKind.TRANSPORT_TIMEOUT

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No response from slave within {timeout}s")


class ConnectionError(ModbusError):
    """Serial connection error."""
    kind = ErrorKind.CONNECTION


class FrameCorruption(ModbusError):
    """Reply frame is malformed: bad CRC, wrong length, wrong function or bad echo."""
    kind = ErrorKind.FRAME_CORRUPTION

    def __init__(self, message: str, frame: Optional[bytes] = None):
        self.frame = bytes(frame) if frame is not None else None
        super().__init__(message)


class ChecksumMismatch(FrameCorruption):
    """CRC verification failed."""

    def __init__(self, received: int, computed: int, frame: Optional[bytes] = None):
        self.received = received
        self.computed = computed
        super().__init__(
            f"CRC mismatch: received 0x{received:04X}, computed 0x{computed:04X}",
            frame
        )


class FunctionCodeMismatch(FrameCorruption):
    """Reply function code differs from the request."""

    def __init__(self, expected: int, received: int, frame: Optional[bytes] = None):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Function code mismatch: expected 0x{expected:02X}, received 0x{received:02X}",
            frame
        )


class ByteCountMismatch(FrameCorruption):
    """Byte-count field disagrees with the requested quantity or frame size."""

    def __init__(self, expected: int, received: int, frame: Optional[bytes] = None):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Byte count mismatch: expected {expected}, received {received}",
            frame
        )


class FrameLengthMismatch(FrameCorruption):
    """Reply has the wrong total length."""

    def __init__(self, expected: int, received: int, frame: Optional[bytes] = None):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Frame length mismatch: expected {expected} bytes, received {received}",
            frame
        )


class EchoMismatch(FrameCorruption):
    """Write acknowledgement does not echo the request."""

    def __init__(self, expected: tuple, received: tuple, frame: Optional[bytes] = None):
        self.expected = expected
        self.received = received
        super().__init__(
            "Echo mismatch: expected "
            f"(0x{expected[0]:04X}, 0x{expected[1]:04X}), received "
            f"(0x{received[0]:04X}, 0x{received[1]:04X})",
            frame
        )


class DeviceException(ModbusError):
    """Slave returned an exception reply."""
    kind = ErrorKind.DEVICE_EXCEPTION

    def __init__(self, code: int, function: Optional[int] = None):
        self.code = code
        self.function = function
        self.name = ExceptionCode.name_of(code)
        self.description = ExceptionCode.describe(code)
        msg = f"Slave exception 0x{code:02X} ({self.name}): {self.description}"
        if function is not None:
            msg += f" [function {FunctionCode.name_of(function)}]"
        super().__init__(msg)
