"""
Modbus RTU master.

Drives one request/reply transaction at a time over a byte stream. The end
of a reply is the first read that stalls past the stream timeout; there is
no length prefix to wait for.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from .constants import (
    DEFAULT_BAUDRATE, DEFAULT_TIMEOUT, MAX_ADDRESS, MAX_READ_BITS,
    MAX_READ_REGISTERS, MAX_REGISTER_VALUE, MAX_UNIT_ID, MAX_WRITE_COILS,
    MAX_WRITE_REGISTERS
)
from .exceptions import (
    ConnectionError, DeviceException, FrameCorruption, ParameterError,
    TransportTimeout
)
from .frame import FrameBuilder, FrameParser
from .transport import ByteStream, SerialTransport

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    """Transaction state of a master. Every call ends back in IDLE."""
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_REPLY = "awaiting_reply"
    DECODING = "decoding"


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParameterError(name, value, "must be an integer")
    if not low <= value <= high:
        raise ParameterError(name, value, f"must be in range {low}-{high}")


class ModbusRtuMaster:
    """Master side of a Modbus RTU serial line."""

    def __init__(
        self,
        transport: ByteStream,
        timeout: Optional[float] = None
    ):
        """
        Initialize Modbus RTU master.

        Args:
            transport: Byte stream to the bus
            timeout: Inter-frame silence threshold in seconds
                (None keeps the transport's own timeout)
        """
        self.transport = transport
        if timeout is not None:
            self.transport.timeout = timeout
        self.state = TransactionState.IDLE

    @classmethod
    def from_serial(
        cls,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs
    ) -> 'ModbusRtuMaster':
        """
        Create a master on a serial port (not yet opened).

        Args:
            port: Serial port name
            baudrate: Baud rate
            timeout: Inter-frame silence threshold in seconds
            **kwargs: Extra SerialTransport arguments (parity, stopbits, bytesize)
        """
        return cls(SerialTransport(port, baudrate=baudrate, timeout=timeout, **kwargs))

    @property
    def timeout(self) -> float:
        return self.transport.timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self.transport.timeout = value

    @property
    def is_connected(self) -> bool:
        return self.transport.is_open

    def connect(self) -> None:
        """Open the underlying transport."""
        if not self.transport.is_open:
            self.transport.open()

    def disconnect(self) -> None:
        """Close the underlying transport."""
        if self.transport.is_open:
            self.transport.close()

    def __enter__(self) -> 'ModbusRtuMaster':
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def _send_and_receive(self, request: bytes) -> bytes:
        """
        Send request and collect the reply.

        Bytes are read one at a time until a read times out.

        Returns:
            Raw reply bytes

        Raises:
            ConnectionError: If the transport is not open
            TransportTimeout: If no byte arrived before the timeout
        """
        if not self.transport.is_open:
            raise ConnectionError("Serial port not connected")

        self.state = TransactionState.SENDING
        self.transport.discard_input_buffer()
        self.transport.discard_output_buffer()
        logger.debug(f"TX -> {request.hex(' ')}")
        self.transport.write(request)

        self.state = TransactionState.AWAITING_REPLY
        response = bytearray()
        while True:
            byte = self.transport.read_byte()
            if byte is None:
                break
            response.append(byte)

        if not response:
            logger.warning(f"No response within {self.transport.timeout}s")
            raise TransportTimeout(self.transport.timeout)

        logger.debug(f"RX <- {response.hex(' ')}")
        return bytes(response)

    def _transact(self, request: bytes, decode):
        """Run one transaction and decode the reply with decode(response)."""
        try:
            response = self._send_and_receive(request)
            self.state = TransactionState.DECODING
            return decode(response)
        except DeviceException as e:
            logger.info(f"Slave exception: {e}")
            raise
        except FrameCorruption as e:
            logger.warning(f"Corrupt reply: {e}")
            raise
        finally:
            # Failures are terminal for the call only; the line is reusable
            self.state = TransactionState.IDLE

    def _check_read(self, unit_id: int, start: int, quantity: int, limit: int) -> None:
        _check_range("unit_id", unit_id, 0, MAX_UNIT_ID)
        _check_range("start", start, 0, MAX_ADDRESS)
        _check_range("quantity", quantity, 0, limit)

    def read_coils(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        """
        Read coil states (function 0x01).

        Args:
            unit_id: Slave address
            start: First coil address
            quantity: Number of coils (0-2000)

        Returns:
            List of quantity booleans
        """
        self._check_read(unit_id, start, quantity, MAX_READ_BITS)
        return self._transact(
            FrameBuilder.build_read_coils(unit_id, start, quantity),
            lambda r: FrameParser.parse_read_coils(r, quantity)
        )

    def read_discrete_inputs(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        """
        Read discrete input states (function 0x02).

        Args:
            unit_id: Slave address
            start: First input address
            quantity: Number of inputs (0-2000)

        Returns:
            List of quantity booleans
        """
        self._check_read(unit_id, start, quantity, MAX_READ_BITS)
        return self._transact(
            FrameBuilder.build_read_discrete_inputs(unit_id, start, quantity),
            lambda r: FrameParser.parse_read_discrete_inputs(r, quantity)
        )

    def read_holding_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        """
        Read holding registers (function 0x03).

        Args:
            unit_id: Slave address
            start: First register address
            quantity: Number of registers (0-125)

        Returns:
            List of quantity 16-bit values
        """
        self._check_read(unit_id, start, quantity, MAX_READ_REGISTERS)
        return self._transact(
            FrameBuilder.build_read_holding_registers(unit_id, start, quantity),
            lambda r: FrameParser.parse_read_holding_registers(r, quantity)
        )

    def read_input_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        """Read input registers (function 0x04). Quantity 0-125."""
        self._check_read(unit_id, start, quantity, MAX_READ_REGISTERS)
        return self._transact(
            FrameBuilder.build_read_input_registers(unit_id, start, quantity),
            lambda r: FrameParser.parse_read_input_registers(r, quantity)
        )

    def write_single_coil(self, unit_id: int, address: int, on: bool) -> None:
        """
        Write one coil (function 0x05).

        The slave must echo address and value; anything else raises
        EchoMismatch.
        """
        _check_range("unit_id", unit_id, 0, MAX_UNIT_ID)
        _check_range("address", address, 0, MAX_ADDRESS)
        on = bool(on)
        self._transact(
            FrameBuilder.build_write_single_coil(unit_id, address, on),
            lambda r: FrameParser.parse_write_single_coil(r, address, on)
        )

    def write_single_register(self, unit_id: int, address: int, value: int) -> None:
        """Write one holding register (function 0x06)."""
        _check_range("unit_id", unit_id, 0, MAX_UNIT_ID)
        _check_range("address", address, 0, MAX_ADDRESS)
        _check_range("value", value, 0, MAX_REGISTER_VALUE)
        self._transact(
            FrameBuilder.build_write_single_register(unit_id, address, value),
            lambda r: FrameParser.parse_write_single_register(r, address, value)
        )

    def write_multiple_registers(self, unit_id: int, start: int, values: Sequence[int]) -> None:
        """
        Write consecutive holding registers (function 0x10).

        Args:
            unit_id: Slave address
            start: First register address
            values: 1-123 register values (0-65535)
        """
        _check_range("unit_id", unit_id, 0, MAX_UNIT_ID)
        _check_range("start", start, 0, MAX_ADDRESS)
        values = list(values or [])
        if not values:
            raise ParameterError("values", values, "must not be empty")
        if len(values) > MAX_WRITE_REGISTERS:
            raise ParameterError("values", f"<{len(values)} registers>",
                                 f"at most {MAX_WRITE_REGISTERS} registers per request")
        for i, value in enumerate(values):
            _check_range(f"values[{i}]", value, 0, MAX_REGISTER_VALUE)

        self._transact(
            FrameBuilder.build_write_multiple_registers(unit_id, start, values),
            lambda r: FrameParser.parse_write_multiple_registers(r, start, len(values))
        )

    def write_multiple_coils(self, unit_id: int, start: int, values: Sequence[bool]) -> None:
        """
        Write consecutive coils (function 0x0F).

        Args:
            unit_id: Slave address
            start: First coil address
            values: 1-1968 coil states
        """
        _check_range("unit_id", unit_id, 0, MAX_UNIT_ID)
        _check_range("start", start, 0, MAX_ADDRESS)
        values = [bool(v) for v in (values or [])]
        if not values:
            raise ParameterError("values", values, "must not be empty")
        if len(values) > MAX_WRITE_COILS:
            raise ParameterError("values", f"<{len(values)} coils>",
                                 f"at most {MAX_WRITE_COILS} coils per request")

        self._transact(
            FrameBuilder.build_write_multiple_coils(unit_id, start, values),
            lambda r: FrameParser.parse_write_multiple_coils(r, start, len(values))
        )

    def __repr__(self) -> str:
        return f"ModbusRtuMaster({self.transport!r}, state={self.state.value})"
