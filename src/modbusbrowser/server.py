"""Runtime state of one monitored Modbus server.

A ServerState owns everything that changes while a server is monitored:
its stored blocks, the register map, the four banks, the connection status
and the client handle. ``lock`` guards all of them; every read-modify-write
sequence (one poll tick, one block merge, one snapshot) holds it for the
whole sequence.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from .banks import RegisterBanks
from .codec import RegisterReading, decode_block
from .models import RegisterBlock, RegisterConfig, ServerConfig
from .planner import build_register_map, merge_blocks

if TYPE_CHECKING:
    from .polling import PollerMode, ServerPoller
    from .transports.protocol import RegisterClient

_LOGGER = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectionStatus:
    """``ok`` or ``error`` with the last error message."""

    state: ConnectionState
    message: str = ""

    @classmethod
    def ok(cls) -> ConnectionStatus:
        return cls(ConnectionState.OK)

    @classmethod
    def error(cls, message: str) -> ConnectionStatus:
        return cls(ConnectionState.ERROR, message)

    @property
    def is_ok(self) -> bool:
        return self.state is ConnectionState.OK


@dataclass(frozen=True)
class StatusSnapshot:
    """Point-in-time connection status of one server."""

    id: str
    status: ConnectionStatus
    address: str
    port: int
    poll_rate_ms: int
    last_data_received: datetime | None
    mode: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ID": self.id,
            "ConnectionStatus": self.status.state.value,
            "ConnectionError": self.status.message,
            "Address": self.address,
            "Port": self.port,
            "PollRate": self.poll_rate_ms,
            "LastDataReceived": _isoformat(self.last_data_received),
            "Mode": self.mode,
        }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ServerState:
    """One monitored device.

    Created with no blocks and an erroring status; the poller attached by
    the registry connects it. ``stop_event`` is the cancellation signal:
    once set, nothing installs a client or writes the banks again.
    """

    def __init__(self, config: ServerConfig) -> None:
        """Initialize from the server's configuration.

        ``config.register_blocks`` is not applied here; the registry feeds
        it through :meth:`apply_blocks` so the block planner stays the only
        producer of stored blocks.
        """
        self.id = config.id
        self.address = config.address
        self.port = config.port
        self.poll_rate_ms = config.poll_rate_ms

        self.blocks: list[RegisterBlock] = []
        self.register_map: dict[int, RegisterConfig] = {}
        self.banks = RegisterBanks()
        self.connection_status = ConnectionStatus.error("not connected")
        self.last_data_received: datetime | None = None
        self.client: RegisterClient | None = None

        self.lock = asyncio.Lock()
        self.stop_event = asyncio.Event()
        self.poller: ServerPoller | None = None

    def __repr__(self) -> str:
        return f"ServerState(id={self.id!r}, target={self.address}:{self.port})"

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_rate_ms / 1000.0

    @property
    def mode(self) -> PollerMode | None:
        return self.poller.mode if self.poller else None

    async def apply_blocks(self, blocks: list[RegisterBlock]) -> list[RegisterBlock]:
        """Merge/split requested blocks into the stored block list.

        The register map is rebuilt from *blocks* alone; entries from
        earlier batches are discarded.

        Args:
            blocks: Requested blocks; copied, never stored as given

        Returns:
            Newly appended blocks

        Raises:
            ConfigurationError: If any block is inconsistent (nothing is applied)
        """
        incoming = copy.deepcopy(blocks)
        for block in incoming:
            block.validate()

        async with self.lock:
            self.register_map = build_register_map(incoming)
            appended = merge_blocks(self.blocks, incoming)
            _LOGGER.debug(
                "Server %s: %d stored blocks after applying %d requested",
                self.id,
                len(self.blocks),
                len(incoming),
            )
        return appended

    async def read_registers(self) -> tuple[list[RegisterReading], datetime | None]:
        """Decode every stored block, in block then address order.

        Returns:
            (readings, last_data_received)

        Raises:
            AddressRangeError: If a stored block does not map onto bank slots
        """
        async with self.lock:
            readings: list[RegisterReading] = []
            for block in self.blocks:
                readings.extend(decode_block(self.banks, block, self.register_map))
            return readings, self.last_data_received

    async def status(self) -> StatusSnapshot:
        async with self.lock:
            return self._status_locked()

    def _status_locked(self) -> StatusSnapshot:
        return StatusSnapshot(
            id=self.id,
            status=self.connection_status,
            address=self.address,
            port=self.port,
            poll_rate_ms=self.poll_rate_ms,
            last_data_received=self.last_data_received,
            mode=self.mode.value if self.mode else "idle",
        )

    async def to_dict(self) -> dict[str, Any]:
        """Configuration plus connection status, as exported."""
        async with self.lock:
            data = ServerConfig(
                id=self.id,
                address=self.address,
                port=self.port,
                poll_rate_ms=self.poll_rate_ms,
                register_blocks=self.blocks,
            ).to_dict()
            data["connectionStatus"] = self.connection_status.state.value
            if self.connection_status.message:
                data["connectionError"] = self.connection_status.message
            data["lastDataReceived"] = _isoformat(self.last_data_received)
            return data

    async def shutdown(self) -> None:
        """Stop the poller and release the client handle."""
        if self.poller is not None:
            await self.poller.stop()
            return
        self.stop_event.set()
        async with self.lock:
            client, self.client = self.client, None
        if client is not None:
            await client.close()


__all__ = [
    "ConnectionState",
    "ConnectionStatus",
    "ServerState",
    "StatusSnapshot",
]
