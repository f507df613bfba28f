"""Exception hierarchy for modbusbrowser.

Connection problems are raised by the transport layer and recorded as
server state by the polling engine; configuration problems are raised at
the boundary where a server or block enters the system.
"""

from __future__ import annotations


class ModbusBrowserError(Exception):
    """Base exception for all modbusbrowser errors."""

    pass


class ConfigurationError(ModbusBrowserError, ValueError):
    """Server, block or register configuration is invalid."""

    pass


class AddressRangeError(ConfigurationError):
    """Address resolves to a bank offset outside the bank.

    Blocks are validated before they are stored, so this indicates a
    configuration that bypassed validation rather than a device fault.
    """

    def __init__(self, address: int, bank: str, offset: int) -> None:
        """Initialize with the offending address and its resolved location.

        Args:
            address: Global register address
            bank: Name of the bank the address routed to
            offset: Offset within that bank
        """
        self.address = address
        self.bank = bank
        self.offset = offset
        super().__init__(f"Address {address} routes to {bank} offset {offset}, outside the bank")


class ServerNotFoundError(ModbusBrowserError, KeyError):
    """No server with the requested id is registered."""

    def __init__(self, server_id: str) -> None:
        self.server_id = server_id
        super().__init__(f"Server not found: {server_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class DuplicateServerError(ModbusBrowserError):
    """A server with the requested id is already registered."""

    def __init__(self, server_id: str) -> None:
        self.server_id = server_id
        super().__init__(f"Server already exists: {server_id}")


__all__ = [
    "AddressRangeError",
    "ConfigurationError",
    "DuplicateServerError",
    "ModbusBrowserError",
    "ServerNotFoundError",
]
