"""
CRC-16/Modbus calculation.

Polynomial 0x8005 (reflected mask 0xA001), initial value 0xFFFF.
The CRC is transmitted low byte first, unlike every other multi-byte
field in the frame.
"""

POLYNOMIAL = 0xA001
INITIAL_VALUE = 0xFFFF


class CRC16:
    """CRC-16 as used by Modbus RTU frames."""

    @staticmethod
    def calculate(data: bytes) -> int:
        """
        Calculate CRC-16 over data.

        Args:
            data: Bytes to checksum

        Returns:
            16-bit CRC value
        """
        crc = INITIAL_VALUE
        for byte in data:
            crc ^= byte
            for _ in range(8):
                if crc & 0x0001:
                    crc = (crc >> 1) ^ POLYNOMIAL
                else:
                    crc >>= 1
        return crc

    @staticmethod
    def to_bytes(data: bytes) -> bytes:
        """Calculate CRC-16 over data and return it in wire order (low byte first)."""
        return CRC16.calculate(data).to_bytes(2, "little")

    @staticmethod
    def verify(frame: bytes) -> bool:
        """Check that the last two bytes of frame are the CRC of the rest."""
        if len(frame) < 2:
            return False
        return CRC16.to_bytes(frame[:-2]) == bytes(frame[-2:])
