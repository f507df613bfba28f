"""Configuration models for monitored Modbus servers.

These dataclasses carry the exportable part of a server's configuration
and round-trip through the JSON document used for import and export:

    {
        "servers": [
            {
                "id": "boiler",
                "address": "192.168.1.50",
                "port": 502,
                "pollRate": 1000,
                "registerBlocks": [
                    {
                        "startAddress": 40001,
                        "length": 4,
                        "registers": [
                            {"name": "Flow temp", "format": "float", "address": 40001}
                        ]
                    }
                ]
            }
        ]
    }

Banks, the register map, the client handle and locks are runtime state and
never appear here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .addressing import span_bank
from .constants import (
    DEFAULT_MODBUS_PORT,
    DEFAULT_POLL_RATE_MS,
    MAX_ADDRESS,
    MAX_STRING_LENGTH,
)
from .exceptions import AddressRangeError, ConfigurationError

_LOGGER = logging.getLogger(__name__)


class RegisterFormat(str, Enum):
    """Display format of a configured register."""

    DECIMAL = "decimal"
    HEX = "hex"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING_BYTE = "string-byte"
    STRING_WORD = "string-word"

    @classmethod
    def parse(cls, value: Any) -> RegisterFormat:
        """Parse a format name, falling back to decimal for unknown values."""
        if isinstance(value, RegisterFormat):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            _LOGGER.debug("Unknown register format %r, using decimal", value)
            return cls.DECIMAL


def _as_int(data: dict[str, Any], key: str, default: int | None = None) -> int:
    value = data.get(key, default)
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"{key} is required and must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"{key} must be a whole number, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as err:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from err


@dataclass
class RegisterConfig:
    """Name and display format for one register address.

    Attributes:
        name: Human readable label
        format: Display format
        address: Global register address
        string_length: Character count for the string formats
    """

    name: str
    format: RegisterFormat
    address: int
    string_length: int = 0

    @classmethod
    def default_for(cls, address: int) -> RegisterConfig:
        """Synthetic config for an address without an explicit entry."""
        return cls(name=f"Register {address}", format=RegisterFormat.DECIMAL, address=address)

    def validate(self) -> None:
        """Validate address and string length.

        Raises:
            ConfigurationError: If the register config is invalid
        """
        if not 0 <= self.address <= MAX_ADDRESS:
            raise ConfigurationError(f"register address {self.address} is outside 0..{MAX_ADDRESS}")
        if not 0 <= self.string_length <= MAX_STRING_LENGTH:
            raise ConfigurationError(
                f"register {self.address}: stringLength must be in 0..{MAX_STRING_LENGTH}"
            )
        if self.format is RegisterFormat.STRING_WORD and self.string_length < 1:
            raise ConfigurationError(
                f"register {self.address}: string-word format requires stringLength >= 1"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "format": self.format.value,
            "address": self.address,
        }
        if self.string_length:
            data["stringLength"] = self.string_length
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegisterConfig:
        if not isinstance(data, dict):
            raise ConfigurationError(f"register entry must be an object, got {data!r}")
        return cls(
            name=str(data.get("name", "")),
            format=RegisterFormat.parse(data.get("format", RegisterFormat.DECIMAL.value)),
            address=_as_int(data, "address"),
            string_length=_as_int(data, "stringLength", 0),
        )


@dataclass
class RegisterBlock:
    """Contiguous address span read with one protocol request.

    ``registers`` need not cover every address in the span; addresses
    without a config are displayed with :meth:`RegisterConfig.default_for`.
    Stored blocks never exceed ``MAX_BLOCK_LENGTH``; requested blocks may,
    and are split by the planner.
    """

    start_address: int
    length: int
    registers: list[RegisterConfig] = field(default_factory=list)

    @property
    def end_address(self) -> int:
        """One past the last address of the span."""
        return self.start_address + self.length

    def contains(self, address: int) -> bool:
        return self.start_address <= address < self.end_address

    def validate(self) -> None:
        """Reject blocks that cannot be read or would misroute.

        The whole span must map onto slots of a single bank, which rules
        out the unassigned 20000-29999 range and addresses above 49999.

        Raises:
            ConfigurationError: If the block is inconsistent
        """
        if self.length < 1:
            raise ConfigurationError(f"block at {self.start_address}: length must be at least 1")
        if self.start_address < 0 or self.end_address > MAX_ADDRESS + 1:
            raise ConfigurationError(
                f"block {self.start_address}+{self.length} is outside 0..{MAX_ADDRESS}"
            )
        try:
            span_bank(self.start_address, self.length)
        except AddressRangeError as err:
            raise ConfigurationError(
                f"block {self.start_address}+{self.length} does not fit in one register bank: {err}"
            ) from err
        for reg in self.registers:
            reg.validate()
            if not self.contains(reg.address):
                raise ConfigurationError(
                    f"register {reg.address} lies outside block "
                    f"{self.start_address}..{self.end_address - 1}"
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "startAddress": self.start_address,
            "length": self.length,
            "registers": [reg.to_dict() for reg in self.registers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegisterBlock:
        if not isinstance(data, dict):
            raise ConfigurationError(f"register block must be an object, got {data!r}")
        registers = data.get("registers") or []
        if not isinstance(registers, list):
            raise ConfigurationError("registers must be a list")
        return cls(
            start_address=_as_int(data, "startAddress"),
            length=_as_int(data, "length"),
            registers=[RegisterConfig.from_dict(reg) for reg in registers],
        )


def blocks_from_list(items: Any) -> list[RegisterBlock]:
    """Parse and validate a list of register block dicts.

    Raises:
        ConfigurationError: If any block is malformed or inconsistent
    """
    if items is None:
        return []
    if not isinstance(items, list):
        raise ConfigurationError("registerBlocks must be a list")
    blocks = [RegisterBlock.from_dict(item) for item in items]
    for block in blocks:
        block.validate()
    return blocks


@dataclass
class ServerConfig:
    """Exportable configuration of one monitored server.

    Attributes:
        id: Unique, immutable identifier
        address: Hostname or IP of the Modbus TCP device
        port: TCP port
        poll_rate_ms: Poll interval in milliseconds
        register_blocks: Requested register blocks
    """

    id: str
    address: str
    port: int = DEFAULT_MODBUS_PORT
    poll_rate_ms: int = DEFAULT_POLL_RATE_MS
    register_blocks: list[RegisterBlock] = field(default_factory=list)

    def validate(self) -> None:
        """Validate server fields and every block.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        if not self.id or "/" in self.id:
            raise ConfigurationError("id must be a non-empty string without '/'")
        if not self.address:
            raise ConfigurationError(f"server {self.id}: address is required")
        if not 1 <= self.port <= 65535:
            raise ConfigurationError(f"server {self.id}: port must be in 1..65535")
        if self.poll_rate_ms <= 0:
            raise ConfigurationError(f"server {self.id}: pollRate must be positive")
        for block in self.register_blocks:
            block.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "port": self.port,
            "pollRate": self.poll_rate_ms,
            "registerBlocks": [block.to_dict() for block in self.register_blocks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerConfig:
        """Create configuration from a dictionary.

        ``pollIntervalMs`` is accepted as an alias of ``pollRate``. Status
        fields present in exported documents are ignored.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"server entry must be an object, got {data!r}")
        poll_key = "pollRate" if "pollRate" in data else "pollIntervalMs"
        blocks = data.get("registerBlocks") or []
        if not isinstance(blocks, list):
            raise ConfigurationError("registerBlocks must be a list")
        return cls(
            id=str(data.get("id", "")).strip(),
            address=str(data.get("address", "")).strip(),
            port=_as_int(data, "port", DEFAULT_MODBUS_PORT),
            poll_rate_ms=_as_int(data, poll_key, DEFAULT_POLL_RATE_MS),
            register_blocks=[RegisterBlock.from_dict(block) for block in blocks],
        )


@dataclass
class ConfigFile:
    """The whole import/export document."""

    servers: list[ServerConfig] = field(default_factory=list)

    def validate(self) -> None:
        seen: set[str] = set()
        for server in self.servers:
            server.validate()
            if server.id in seen:
                raise ConfigurationError(f"duplicate server id: {server.id}")
            seen.add(server.id)

    def to_dict(self) -> dict[str, Any]:
        return {"servers": [server.to_dict() for server in self.servers]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigFile:
        if not isinstance(data, dict):
            raise ConfigurationError("configuration must be a JSON object")
        servers = data.get("servers") or []
        if not isinstance(servers, list):
            raise ConfigurationError("servers must be a list")
        return cls(servers=[ServerConfig.from_dict(server) for server in servers])


__all__ = [
    "ConfigFile",
    "RegisterBlock",
    "RegisterConfig",
    "RegisterFormat",
    "ServerConfig",
    "blocks_from_list",
]
