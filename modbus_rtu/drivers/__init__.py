"""
Drivers Package

Asyncio-facing wrappers around the blocking Modbus RTU master.
"""

from .base import ModbusBusDriver
from .rtu_master import ModbusRtuDriver

__all__ = ["ModbusBusDriver", "ModbusRtuDriver"]
