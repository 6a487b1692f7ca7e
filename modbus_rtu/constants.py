"""
Protocol constants for Modbus RTU.

Reference: Modbus Application Protocol Specification V1.1b3
"""

from enum import IntEnum

# Frame layout
MIN_FRAME_SIZE = 5        # unit + function + exception/byte-count + CRC(2)
WRITE_ACK_FRAME_SIZE = 8  # unit + function + address(2) + value(2) + CRC(2)
CRC_SIZE = 2

# Function code bit set by the device to flag an exception reply
EXCEPTION_FLAG = 0x80

# Write Single Coil wire values
COIL_ON = 0xFF00
COIL_OFF = 0x0000

# Quantity ceilings per function
MAX_READ_BITS = 2000
MAX_READ_REGISTERS = 125
MAX_WRITE_COILS = 1968
MAX_WRITE_REGISTERS = 123

# Field ranges
MAX_UNIT_ID = 0xFF
MAX_ADDRESS = 0xFFFF
MAX_REGISTER_VALUE = 0xFFFF

# Serial defaults
DEFAULT_BAUDRATE = 9600
DEFAULT_TIMEOUT = 1.0  # inter-frame silence threshold in seconds


class FunctionCode(IntEnum):
    """Function codes (Master -> Slave)."""
    READ_COILS = 0x01
    READ_DISCRETE_INPUTS = 0x02
    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_SINGLE_COIL = 0x05
    WRITE_SINGLE_REGISTER = 0x06
    WRITE_MULTIPLE_COILS = 0x0F
    WRITE_MULTIPLE_REGISTERS = 0x10

    @classmethod
    def name_of(cls, code: int) -> str:
        """Get function name from code."""
        try:
            return cls(code).name
        except ValueError:
            return f"Unknown(0x{code:02X})"


class ExceptionCode(IntEnum):
    """Exception codes reported by a slave device."""
    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    SLAVE_DEVICE_FAILURE = 0x04

    @classmethod
    def name_of(cls, code: int) -> str:
        """Get exception name from code."""
        try:
            return cls(code).name
        except ValueError:
            return f"Unknown(0x{code:02X})"

    @classmethod
    def describe(cls, code: int) -> str:
        """Get a human-readable description of an exception code."""
        descriptions = {
            cls.ILLEGAL_FUNCTION: "Illegal function: the slave does not support this function code",
            cls.ILLEGAL_DATA_ADDRESS: "Illegal data address: the requested address is not available on the slave",
            cls.ILLEGAL_DATA_VALUE: "Illegal data value: the request contains a value the slave cannot accept",
            cls.SLAVE_DEVICE_FAILURE: "Slave device failure: an unrecoverable error occurred while performing the request",
        }
        return descriptions.get(code, "Unknown slave exception")
