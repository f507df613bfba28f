"""Factory functions for creating protocol clients.

Example:
    client = await connect_modbus_client("192.168.1.100", 502)
    values = await client.read_holding_registers(0, 10)
    await client.close()
"""

from __future__ import annotations

from modbusbrowser.constants import DEFAULT_TIMEOUT, DEFAULT_UNIT_ID

from .modbus import ModbusTcpClient


async def connect_modbus_client(
    host: str,
    port: int,
    *,
    unit_id: int = DEFAULT_UNIT_ID,
    timeout: float = DEFAULT_TIMEOUT,
) -> ModbusTcpClient:
    """Create and connect a Modbus TCP client.

    Matches :data:`~modbusbrowser.transports.protocol.ClientFactory`, so it
    is the default connector of the server registry.

    Args:
        host: Device IP address or hostname
        port: Modbus TCP port
        unit_id: Modbus unit/slave ID (default: 1)
        timeout: Connect and read timeout in seconds (default: 10.0)

    Returns:
        Connected ModbusTcpClient

    Raises:
        TransportConnectionError: If the device cannot be reached
    """
    client = ModbusTcpClient(host=host, port=port, unit_id=unit_id, timeout=timeout)
    await client.connect()
    return client


__all__ = ["connect_modbus_client"]
