"""Modbus TCP client backed by pymodbus.

This module provides the ModbusTcpClient class, the default protocol
client behind every monitored server. It performs single-attempt reads:
retrying is the polling engine's job, which drops the handle on the first
failed read and reconnects.

IMPORTANT: Single-Client Limitation
------------------------------------
Many Modbus TCP gateways accept only ONE concurrent connection. Running
this dashboard alongside another master on the same gateway causes
transaction ID desynchronization and intermittent timeouts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pymodbus.exceptions import ModbusException, ModbusIOException

from modbusbrowser.constants import DEFAULT_MODBUS_PORT, DEFAULT_TIMEOUT, DEFAULT_UNIT_ID

from .exceptions import TransportConnectionError, TransportReadError, TransportTimeoutError

if TYPE_CHECKING:
    from pymodbus.client import AsyncModbusTcpClient

_LOGGER = logging.getLogger(__name__)

__all__ = ["ModbusTcpClient"]


class ModbusTcpClient:
    """Modbus TCP client for one device.

    Example:
        client = ModbusTcpClient(host="192.168.1.100", port=502)
        await client.connect()

        values = await client.read_holding_registers(0, 10)

    Note:
        Requires the `pymodbus` package to be installed.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_MODBUS_PORT,
        unit_id: int = DEFAULT_UNIT_ID,
        timeout: float = DEFAULT_TIMEOUT,
        pymodbus_retries: int = 0,
    ) -> None:
        """Initialize Modbus TCP client.

        Args:
            host: IP address or hostname of the device or gateway
            port: TCP port (default 502 for Modbus)
            unit_id: Modbus unit/slave ID (default 1)
            timeout: Connection and operation timeout in seconds
            pymodbus_retries: Number of retries passed to pymodbus client
                (default 0)
        """
        self._host = host
        self._port = port
        self._unit_id = unit_id
        self._timeout = timeout
        self._pymodbus_retries = pymodbus_retries
        self._client: AsyncModbusTcpClient | None = None
        self._lock = asyncio.Lock()

    @property
    def host(self) -> str:
        """Get the Modbus device host."""
        return self._host

    @property
    def port(self) -> int:
        """Get the Modbus device port."""
        return self._port

    @property
    def is_connected(self) -> bool:
        return self._client is not None and bool(self._client.connected)

    async def connect(self) -> None:
        """Establish the Modbus TCP connection.

        Raises:
            TransportConnectionError: If connection fails
        """
        from pymodbus.client import AsyncModbusTcpClient

        self._client = AsyncModbusTcpClient(
            host=self._host,
            port=self._port,
            timeout=self._timeout,
            retries=self._pymodbus_retries,
        )

        try:
            connected = await self._client.connect()
        except (TimeoutError, OSError) as err:
            _LOGGER.error(
                "Failed to connect to Modbus server at %s:%s: %s",
                self._host,
                self._port,
                err,
            )
            self._client = None
            raise TransportConnectionError(
                f"failed to connect to Modbus server at {self._host}:{self._port}: {err}"
            ) from err

        if not connected:
            self._client = None
            raise TransportConnectionError(
                f"failed to connect to Modbus server at {self._host}:{self._port}"
            )

        _LOGGER.info(
            "Modbus client connected to %s:%s (unit %s)",
            self._host,
            self._port,
            self._unit_id,
        )

    async def close(self) -> None:
        """Close the Modbus TCP connection."""
        if self._client:
            self._client.close()
            self._client = None
        _LOGGER.debug("Modbus client disconnected from %s:%s", self._host, self._port)

    async def _read(self, function: str, address: int, count: int) -> Any:
        """Issue one read request and return the pymodbus response.

        Raises:
            TransportConnectionError: If the client is not connected
            TransportReadError: If the device answers with an error
            TransportTimeoutError: If the request times out
        """
        if self._client is None:
            raise TransportConnectionError("Modbus client not connected")

        kind = function.removeprefix("read_").replace("_", " ")
        async with self._lock:
            try:
                read_fn = getattr(self._client, function)
                result = await read_fn(address=address, count=count, device_id=self._unit_id)
            except ModbusIOException as err:
                if "timeout" in str(err).lower():
                    raise TransportTimeoutError(f"timeout reading {kind} at {address}") from err
                raise TransportReadError(f"failed to read {kind} at {address}: {err}") from err
            except TimeoutError as err:
                raise TransportTimeoutError(f"timeout reading {kind} at {address}") from err
            except (ModbusException, OSError) as err:
                raise TransportReadError(f"failed to read {kind} at {address}: {err}") from err

        if result.isError():
            raise TransportReadError(f"Modbus read error at address {address}: {result}")
        return result

    async def _read_bits(self, function: str, address: int, count: int) -> list[bool]:
        result = await self._read(function, address, count)
        bits = getattr(result, "bits", None)
        # pymodbus pads bit responses to a multiple of 8
        if bits is None or len(bits) < count:
            raise TransportReadError(
                f"Invalid Modbus response at address {address}: expected {count} bits"
            )
        return [bool(bit) for bit in bits[:count]]

    async def _read_words(self, function: str, address: int, count: int) -> list[int]:
        result = await self._read(function, address, count)
        registers = getattr(result, "registers", None)
        if registers is None or len(registers) < count:
            raise TransportReadError(
                f"Invalid Modbus response at address {address}: expected {count} registers"
            )
        return [int(value) for value in registers[:count]]

    async def read_coils(self, address: int, count: int) -> list[bool]:
        """Read coils (FC 01)."""
        return await self._read_bits("read_coils", address, count)

    async def read_discrete_inputs(self, address: int, count: int) -> list[bool]:
        """Read discrete inputs (FC 02)."""
        return await self._read_bits("read_discrete_inputs", address, count)

    async def read_input_registers(self, address: int, count: int) -> list[int]:
        """Read input registers (FC 04)."""
        return await self._read_words("read_input_registers", address, count)

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        """Read holding registers (FC 03)."""
        return await self._read_words("read_holding_registers", address, count)
