"""Protocol-client layer for modbusbrowser.

Usage:
    from modbusbrowser.transports import connect_modbus_client

    client = await connect_modbus_client("192.168.1.100", 502)
    coils = await client.read_coils(0, 16)
"""

from __future__ import annotations

from .exceptions import (
    TransportConnectionError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
)
from .factory import connect_modbus_client
from .modbus import ModbusTcpClient
from .protocol import ClientFactory, RegisterClient

__all__ = [
    # Factory functions (recommended)
    "connect_modbus_client",
    # Protocol
    "ClientFactory",
    "RegisterClient",
    # Implementations
    "ModbusTcpClient",
    # Exceptions
    "TransportError",
    "TransportConnectionError",
    "TransportTimeoutError",
    "TransportReadError",
]
