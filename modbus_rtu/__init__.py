"""
Modbus RTU - master-side client for Modbus RTU over a serial line.

This package provides:
- Protocol constants, function and exception codes
- CRC-16/Modbus calculation
- Request frame building and reply validation
- Serial transport layer
- Blocking request/reply master
- Asyncio driver wrapper
"""

from .constants import (
    MAX_READ_BITS, MAX_READ_REGISTERS, MAX_WRITE_COILS, MAX_WRITE_REGISTERS,
    FunctionCode, ExceptionCode
)
from .crc import CRC16
from .exceptions import (
    ErrorKind, ModbusError, ParameterError, TransportTimeout, ConnectionError,
    FrameCorruption, ChecksumMismatch, FunctionCodeMismatch, ByteCountMismatch,
    FrameLengthMismatch, EchoMismatch, DeviceException
)
from .frame import (
    Frame, FrameBuilder, FrameParser,
    u16_to_bytes, bytes_to_u16, pack_bits, unpack_bits
)
from .transport import ByteStream, SerialTransport
from .client import ModbusRtuMaster, TransactionState
from .drivers import ModbusBusDriver, ModbusRtuDriver

__version__ = "1.0.0"
__all__ = [
    # Constants
    "MAX_READ_BITS", "MAX_READ_REGISTERS", "MAX_WRITE_COILS", "MAX_WRITE_REGISTERS",
    "FunctionCode", "ExceptionCode",
    # CRC
    "CRC16",
    # Exceptions
    "ErrorKind", "ModbusError", "ParameterError", "TransportTimeout",
    "ConnectionError", "FrameCorruption", "ChecksumMismatch",
    "FunctionCodeMismatch", "ByteCountMismatch", "FrameLengthMismatch",
    "EchoMismatch", "DeviceException",
    # Frame
    "Frame", "FrameBuilder", "FrameParser",
    "u16_to_bytes", "bytes_to_u16", "pack_bits", "unpack_bits",
    # Transport
    "ByteStream", "SerialTransport",
    # Client
    "ModbusRtuMaster", "TransactionState",
    # Drivers
    "ModbusBusDriver", "ModbusRtuDriver",
]
