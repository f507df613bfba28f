"""Live dashboard core for polling Modbus TCP devices.

Usage:
    from modbusbrowser import RegisterBlock, ServerConfig, ServerRegistry

    async with ServerRegistry() as registry:
        state = await registry.add(
            ServerConfig(id="plc", address="192.168.1.100", poll_rate_ms=500)
        )
        await state.apply_blocks([RegisterBlock(start_address=40000, length=10)])

        readings, last_data = await state.read_registers()
        for reading in readings:
            print(reading.address, reading.name, reading.value.display)
"""

from __future__ import annotations

from .addressing import RegisterBank, locate
from .exceptions import (
    AddressRangeError,
    ConfigurationError,
    DuplicateServerError,
    ModbusBrowserError,
    ServerNotFoundError,
)
from .models import ConfigFile, RegisterBlock, RegisterConfig, RegisterFormat, ServerConfig
from .registry import ServerRegistry
from .server import ConnectionStatus, ServerState

__version__ = "0.1.0"
__all__ = [
    "ServerRegistry",
    "ServerState",
    "ConnectionStatus",
    # Configuration
    "ConfigFile",
    "ServerConfig",
    "RegisterBlock",
    "RegisterConfig",
    "RegisterFormat",
    # Address space
    "RegisterBank",
    "locate",
    # Exceptions
    "ModbusBrowserError",
    "ConfigurationError",
    "AddressRangeError",
    "DuplicateServerError",
    "ServerNotFoundError",
]
