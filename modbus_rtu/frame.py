"""
Frame building and parsing.

Frame Format: [UNIT][FUNC][PAYLOAD...][CRC_LO][CRC_HI]
- UNIT: Slave address (0-255)
- FUNC: Function code (bit 7 set on exception replies)
- PAYLOAD: Function-specific data, 16-bit fields big-endian
- CRC: CRC-16/Modbus of UNIT+FUNC+PAYLOAD, low byte first

There is no length field: the end of a reply is detected by line silence,
so each parse method receives exactly the bytes collected for one reply.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .constants import (
    COIL_OFF, COIL_ON, CRC_SIZE, EXCEPTION_FLAG, MIN_FRAME_SIZE,
    WRITE_ACK_FRAME_SIZE, FunctionCode
)
from .crc import CRC16
from .exceptions import (
    ByteCountMismatch, ChecksumMismatch, DeviceException, EchoMismatch,
    FrameCorruption, FrameLengthMismatch, FunctionCodeMismatch
)


def u16_to_bytes(value: int) -> bytes:
    """Encode a 16-bit unsigned value big-endian."""
    return (value & 0xFFFF).to_bytes(2, "big")


def bytes_to_u16(buffer: bytes, offset: int = 0) -> int:
    """Decode a big-endian 16-bit unsigned value at offset."""
    return int.from_bytes(buffer[offset:offset + 2], "big")


def pack_bits(values: Sequence[bool]) -> bytes:
    """
    Pack booleans one bit each, LSB first within each byte.

    Coil i maps to bit (i % 8) of byte (i // 8). Unused high bits of the
    last byte are zero.
    """
    packed = bytearray((len(values) + 7) // 8)
    for i, value in enumerate(values):
        if value:
            packed[i // 8] |= 1 << (i % 8)
    return bytes(packed)


def unpack_bits(data: bytes, count: int) -> List[bool]:
    """Unpack the first count bits of data, LSB first within each byte."""
    return [bool(data[i // 8] & (1 << (i % 8))) for i in range(count)]


@dataclass
class Frame:
    """Decoded reply frame (CRC already stripped)."""
    unit_id: int
    function: int
    payload: bytes = field(default_factory=bytes)

    def __post_init__(self):
        if isinstance(self.payload, (list, tuple, bytearray)):
            self.payload = bytes(self.payload)

    @property
    def is_exception(self) -> bool:
        return self.function > EXCEPTION_FLAG

    def __repr__(self) -> str:
        return (f"Frame(unit={self.unit_id}, "
                f"function={FunctionCode.name_of(self.function & 0x7F)}"
                f"{' EXCEPTION' if self.is_exception else ''}, "
                f"payload={self.payload.hex(' ') if self.payload else '(empty)'})")


class FrameBuilder:
    """Builds request frames for transmission."""

    @staticmethod
    def build(unit_id: int, function: int, payload: bytes = b"") -> bytes:
        """
        Build complete frame with CRC.

        Args:
            unit_id: Slave address
            function: Function code
            payload: Function-specific data

        Returns:
            Complete frame bytes ready for transmission
        """
        body = bytes([unit_id, function]) + payload
        return body + CRC16.to_bytes(body)

    @staticmethod
    def _build_read(unit_id: int, function: int, start: int, quantity: int) -> bytes:
        return FrameBuilder.build(unit_id, function, u16_to_bytes(start) + u16_to_bytes(quantity))

    @staticmethod
    def build_read_coils(unit_id: int, start: int, quantity: int) -> bytes:
        """Build Read Coils (0x01) request."""
        return FrameBuilder._build_read(unit_id, FunctionCode.READ_COILS, start, quantity)

    @staticmethod
    def build_read_discrete_inputs(unit_id: int, start: int, quantity: int) -> bytes:
        """Build Read Discrete Inputs (0x02) request."""
        return FrameBuilder._build_read(unit_id, FunctionCode.READ_DISCRETE_INPUTS, start, quantity)

    @staticmethod
    def build_read_holding_registers(unit_id: int, start: int, quantity: int) -> bytes:
        """Build Read Holding Registers (0x03) request."""
        return FrameBuilder._build_read(unit_id, FunctionCode.READ_HOLDING_REGISTERS, start, quantity)

    @staticmethod
    def build_read_input_registers(unit_id: int, start: int, quantity: int) -> bytes:
        """Build Read Input Registers (0x04) request."""
        return FrameBuilder._build_read(unit_id, FunctionCode.READ_INPUT_REGISTERS, start, quantity)

    @staticmethod
    def build_write_single_coil(unit_id: int, address: int, on: bool) -> bytes:
        """Build Write Single Coil (0x05) request. ON is 0xFF00, OFF is 0x0000."""
        value = COIL_ON if on else COIL_OFF
        return FrameBuilder.build(
            unit_id, FunctionCode.WRITE_SINGLE_COIL,
            u16_to_bytes(address) + u16_to_bytes(value)
        )

    @staticmethod
    def build_write_single_register(unit_id: int, address: int, value: int) -> bytes:
        """Build Write Single Register (0x06) request."""
        return FrameBuilder.build(
            unit_id, FunctionCode.WRITE_SINGLE_REGISTER,
            u16_to_bytes(address) + u16_to_bytes(value)
        )

    @staticmethod
    def build_write_multiple_coils(unit_id: int, start: int, values: Sequence[bool]) -> bytes:
        """
        Build Write Multiple Coils (0x0F) request.

        Payload: start(2), quantity(2), byte-count(1), packed coil bits.
        """
        packed = pack_bits(values)
        payload = u16_to_bytes(start) + u16_to_bytes(len(values)) + bytes([len(packed)]) + packed
        return FrameBuilder.build(unit_id, FunctionCode.WRITE_MULTIPLE_COILS, payload)

    @staticmethod
    def build_write_multiple_registers(unit_id: int, start: int, values: Sequence[int]) -> bytes:
        """
        Build Write Multiple Registers (0x10) request.

        Payload: start(2), quantity(2), byte-count(1), values(2 each).
        """
        data = b"".join(u16_to_bytes(v) for v in values)
        payload = u16_to_bytes(start) + u16_to_bytes(len(values)) + bytes([len(data)]) + data
        return FrameBuilder.build(unit_id, FunctionCode.WRITE_MULTIPLE_REGISTERS, payload)


class FrameParser:
    """Validates and decodes reply frames."""

    @staticmethod
    def parse(data: bytes) -> Frame:
        """
        Split a CRC-valid reply into its fields.

        Raises:
            FrameCorruption: If the frame is too short or the CRC is wrong
        """
        FrameParser.validate(data)
        return Frame(data[0], data[1], bytes(data[2:-CRC_SIZE]))

    @staticmethod
    def validate(data: bytes) -> None:
        """
        Check minimum length and CRC.

        Raises:
            FrameCorruption: If fewer than 5 bytes were received
            ChecksumMismatch: If the trailing CRC is wrong
        """
        if len(data) < MIN_FRAME_SIZE:
            raise FrameCorruption(
                f"Frame too short: {len(data)} bytes, need at least {MIN_FRAME_SIZE}",
                data
            )

        received = int.from_bytes(data[-CRC_SIZE:], "little")
        computed = CRC16.calculate(data[:-CRC_SIZE])
        if received != computed:
            raise ChecksumMismatch(received, computed, data)

    @staticmethod
    def _check_header(data: bytes, function: int) -> None:
        """Validate frame, then surface exception replies and wrong functions."""
        FrameParser.validate(data)

        if data[1] > EXCEPTION_FLAG:
            raise DeviceException(data[2], data[1] & 0x7F)

        if data[1] != function:
            raise FunctionCodeMismatch(function, data[1], data)

    @staticmethod
    def _parse_bits(data: bytes, function: int, quantity: int) -> List[bool]:
        FrameParser._check_header(data, function)

        byte_count = data[2]
        available = len(data) - 3 - CRC_SIZE
        if byte_count > available:
            raise ByteCountMismatch(available, byte_count, data)
        if byte_count * 8 < quantity:
            raise ByteCountMismatch((quantity + 7) // 8, byte_count, data)

        # Bits past quantity in the last byte are padding
        return unpack_bits(data[3:3 + byte_count], quantity)

    @staticmethod
    def _parse_registers(data: bytes, function: int, quantity: int) -> List[int]:
        FrameParser._check_header(data, function)

        byte_count = data[2]
        if byte_count != quantity * 2:
            raise ByteCountMismatch(quantity * 2, byte_count, data)

        available = len(data) - 3 - CRC_SIZE
        if available < byte_count:
            raise FrameLengthMismatch(3 + byte_count + CRC_SIZE, len(data), data)

        return [bytes_to_u16(data, 3 + i * 2) for i in range(quantity)]

    @staticmethod
    def _parse_write_ack(data: bytes, function: int, expected: Tuple[int, int]) -> None:
        FrameParser._check_header(data, function)

        if len(data) != WRITE_ACK_FRAME_SIZE:
            raise FrameLengthMismatch(WRITE_ACK_FRAME_SIZE, len(data), data)

        received = (bytes_to_u16(data, 2), bytes_to_u16(data, 4))
        if received != tuple(expected):
            raise EchoMismatch(tuple(expected), received, data)

    @staticmethod
    def parse_read_coils(data: bytes, quantity: int) -> List[bool]:
        """
        Decode a Read Coils (0x01) reply.

        Args:
            data: Raw reply bytes including CRC
            quantity: Number of coils requested

        Returns:
            List of quantity coil states
        """
        return FrameParser._parse_bits(data, FunctionCode.READ_COILS, quantity)

    @staticmethod
    def parse_read_discrete_inputs(data: bytes, quantity: int) -> List[bool]:
        """Decode a Read Discrete Inputs (0x02) reply."""
        return FrameParser._parse_bits(data, FunctionCode.READ_DISCRETE_INPUTS, quantity)

    @staticmethod
    def parse_read_holding_registers(data: bytes, quantity: int) -> List[int]:
        """
        Decode a Read Holding Registers (0x03) reply.

        The byte-count must be exactly quantity * 2.

        Args:
            data: Raw reply bytes including CRC
            quantity: Number of registers requested

        Returns:
            List of quantity register values
        """
        return FrameParser._parse_registers(data, FunctionCode.READ_HOLDING_REGISTERS, quantity)

    @staticmethod
    def parse_read_input_registers(data: bytes, quantity: int) -> List[int]:
        """Decode a Read Input Registers (0x04) reply."""
        return FrameParser._parse_registers(data, FunctionCode.READ_INPUT_REGISTERS, quantity)

    @staticmethod
    def parse_write_single_coil(data: bytes, address: int, on: bool) -> None:
        """Check that a Write Single Coil (0x05) reply echoes address and value."""
        value = COIL_ON if on else COIL_OFF
        FrameParser._parse_write_ack(data, FunctionCode.WRITE_SINGLE_COIL, (address, value))

    @staticmethod
    def parse_write_single_register(data: bytes, address: int, value: int) -> None:
        """Check that a Write Single Register (0x06) reply echoes address and value."""
        FrameParser._parse_write_ack(data, FunctionCode.WRITE_SINGLE_REGISTER, (address, value))

    @staticmethod
    def parse_write_multiple_coils(data: bytes, start: int, quantity: int) -> None:
        """Check that a Write Multiple Coils (0x0F) reply echoes start and quantity."""
        FrameParser._parse_write_ack(data, FunctionCode.WRITE_MULTIPLE_COILS, (start, quantity))

    @staticmethod
    def parse_write_multiple_registers(data: bytes, start: int, quantity: int) -> None:
        """Check that a Write Multiple Registers (0x10) reply echoes start and quantity."""
        FrameParser._parse_write_ack(data, FunctionCode.WRITE_MULTIPLE_REGISTERS, (start, quantity))
