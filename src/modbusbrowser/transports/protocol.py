"""Protocol-client boundary consumed by the polling engine.

Any object with these four typed reads and ``close()`` can back a server;
:class:`~modbusbrowser.transports.modbus.ModbusTcpClient` is the default.
Tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class RegisterClient(Protocol):
    """Connected handle to one Modbus device.

    Addresses are protocol-level (bank offsets, not global addresses).
    ``count`` never exceeds 125; the block planner guarantees it.
    Read failures raise :class:`~modbusbrowser.transports.exceptions.TransportError`.
    """

    async def read_coils(self, address: int, count: int) -> list[bool]: ...

    async def read_discrete_inputs(self, address: int, count: int) -> list[bool]: ...

    async def read_input_registers(self, address: int, count: int) -> list[int]: ...

    async def read_holding_registers(self, address: int, count: int) -> list[int]: ...

    async def close(self) -> None: ...


# async (host, port) -> connected client, raising TransportConnectionError
ClientFactory = Callable[[str, int], Awaitable[RegisterClient]]


__all__ = ["ClientFactory", "RegisterClient"]
