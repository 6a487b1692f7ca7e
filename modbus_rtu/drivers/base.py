"""
Bus Driver Module

Async interface every Modbus master driver exposes: the line lifecycle plus
the eight data-access functions, addressed by unit id.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class ModbusBusDriver(ABC):
    """
    Abstract async Modbus master.

    Attributes:
        name: Driver identifier name
        config: Line settings (port, baudrate, parity, timeout, ...)
    """

    def __init__(
        self,
        name: str = "ModbusBusDriver",
        config: Optional[Dict[str, Any]] = None
    ):
        self.name = name
        self.config = config or {}
        self._connected = False

    @abstractmethod
    async def connect(self) -> bool:
        """
        Open the line.

        Returns:
            bool: True if the line is open and ready for transactions
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the line. Safe to call when not connected."""
        ...

    async def is_connected(self) -> bool:
        return self._connected

    # === Data Access ===

    @abstractmethod
    async def read_coils(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        ...

    @abstractmethod
    async def read_discrete_inputs(self, unit_id: int, start: int, quantity: int) -> List[bool]:
        ...

    @abstractmethod
    async def read_holding_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        ...

    @abstractmethod
    async def read_input_registers(self, unit_id: int, start: int, quantity: int) -> List[int]:
        ...

    @abstractmethod
    async def write_single_coil(self, unit_id: int, address: int, on: bool) -> None:
        ...

    @abstractmethod
    async def write_single_register(self, unit_id: int, address: int, value: int) -> None:
        ...

    @abstractmethod
    async def write_multiple_coils(self, unit_id: int, start: int, values: Sequence[bool]) -> None:
        ...

    @abstractmethod
    async def write_multiple_registers(self, unit_id: int, start: int, values: Sequence[int]) -> None:
        ...

    async def read_coil(self, unit_id: int, address: int) -> bool:
        """Read a single coil."""
        return (await self.read_coils(unit_id, address, 1))[0]

    async def read_holding_register(self, unit_id: int, address: int) -> int:
        """Read a single holding register."""
        return (await self.read_holding_registers(unit_id, address, 1))[0]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, connected={self._connected})"
