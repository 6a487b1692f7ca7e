"""
Modbus RTU Driver Module

Asyncio wrapper around ModbusRtuMaster. Each blocking transaction runs in
the default executor and an asyncio.Lock keeps one transaction on the line
at a time.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .base import ModbusBusDriver
from ..client import ModbusRtuMaster
from ..constants import DEFAULT_BAUDRATE, DEFAULT_TIMEOUT
from ..exceptions import ConnectionError
from ..transport import SerialTransport

logger = logging.getLogger(__name__)


class ModbusRtuDriver(ModbusBusDriver):
    """
    Async Modbus RTU master driver.

    Attributes:
        port: Serial port path
        baudrate: Communication speed
        timeout: Inter-frame silence threshold in seconds
    """

    def __init__(
        self,
        name: str = "ModbusRtuDriver",
        config: Optional[Dict[str, Any]] = None,
        transport_factory: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize Modbus RTU driver.

        Args:
            name: Driver name
            config: Configuration with keys:
                - port: Serial port (default: "/dev/ttyUSB0")
                - baudrate: Baud rate (default: 9600)
                - bytesize: Data bits (default: 8)
                - parity: 'N', 'E' or 'O' (default: 'N')
                - stopbits: Stop bits (default: 1)
                - timeout: Silence threshold in seconds (default: 1.0)
            transport_factory: Builds the byte stream from the config values
                (default: SerialTransport)
        """
        super().__init__(name=name, config=config)

        self.port: str = self.config.get("port", "/dev/ttyUSB0")
        self.baudrate: int = self.config.get("baudrate", DEFAULT_BAUDRATE)
        self.bytesize: int = self.config.get("bytesize", 8)
        self.parity: str = self.config.get("parity", "N")
        self.stopbits: float = self.config.get("stopbits", 1)
        self.timeout: float = self.config.get("timeout", DEFAULT_TIMEOUT)

        self._transport_factory = transport_factory or SerialTransport
        self._master: Optional[ModbusRtuMaster] = None
        # Bound to the loop that connects; see connect()
        self._lock: Optional[asyncio.Lock] = None

    async def connect(self) -> bool:
        """
        Open the serial port.

        Calling connect on an open driver keeps the existing port.

        Returns:
            bool: True if connection successful
        """
        if self._master:
            return True

        try:
            logger.info(f"Connecting to Modbus RTU bus on {self.port} at {self.baudrate} bps")

            transport = self._transport_factory(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self.bytesize,
                parity=self.parity,
                stopbits=self.stopbits,
                timeout=self.timeout
            )
            self._master = ModbusRtuMaster(transport)
            await self._run_sync(self._master.connect)

            self._lock = asyncio.Lock()
            self._connected = True
            logger.info(f"Connected to Modbus RTU bus on {self.port}")
            return True

        except Exception as e:
            logger.error(f"Failed to connect to Modbus RTU bus: {e}")
            await self.disconnect()
            return False

    async def disconnect(self) -> None:
        """Close the serial port."""
        if self._master:
            try:
                await self._run_sync(self._master.disconnect)
            finally:
                self._master = None
                self._lock = None
                self._connected = False
        logger.info(f"Disconnected from Modbus RTU bus on {self.port}")

    # === Bus Operations ===

    async def read_coils(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        return await self._call("read_coils", unit_id, start, quantity)

    async def read_discrete_inputs(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        return await self._call("read_discrete_inputs", unit_id, start, quantity)

    async def read_holding_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        return await self._call("read_holding_registers", unit_id, start, quantity)

    async def read_input_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        return await self._call("read_input_registers", unit_id, start, quantity)

    async def write_single_coil(self, unit_id: int, address: int, on: bool) -> None:
        await self._call("write_single_coil", unit_id, address, on)

    async def write_single_register(self, unit_id: int, address: int, value: int) -> None:
        await self._call("write_single_register", unit_id, address, value)

    async def write_multiple_coils(self, unit_id: int, start: int, values: Sequence[bool]) -> None:
        await self._call("write_multiple_coils", unit_id, start, list(values))

    async def write_multiple_registers(self, unit_id: int, start: int, values: Sequence[int]) -> None:
        await self._call("write_multiple_registers", unit_id, start, list(values))

    # === Helper Methods ===

    async def _call(self, operation: str, *args) -> Any:
        """Run one master operation, serialised against other callers."""
        if not self._master or not self._lock:
            raise ConnectionError("Not connected to Modbus RTU bus")

        async with self._lock:
            return await self._run_sync(getattr(self._master, operation), *args)

    async def _run_sync(self, func, *args, **kwargs) -> Any:
        """
        Run synchronous function in executor.

        The master blocks for a full round trip including the silence
        timeout, so it runs in a thread pool to keep the loop responsive.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
