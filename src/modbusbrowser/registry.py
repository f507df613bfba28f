"""Directory of monitored servers.

Membership is guarded by a shared/exclusive lock: listings and the
pollers' per-tick membership checks take it shared, add and remove take
it exclusive. It is never held across network I/O; stopping a removed
server's poller happens after the entry is gone.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from .constants import RECONNECT_DELAY
from .exceptions import DuplicateServerError, ServerNotFoundError
from .models import ConfigFile, ServerConfig
from .polling import ServerPoller
from .server import ServerState, StatusSnapshot
from .transports.factory import connect_modbus_client
from .transports.protocol import ClientFactory

_LOGGER = logging.getLogger(__name__)


class SharedLock:
    """Readers/writer lock for asyncio tasks."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class ServerRegistry:
    """Concurrent ``id -> ServerState`` directory with add/remove lifecycle.

    Example:
        async with ServerRegistry() as registry:
            state = await registry.add(ServerConfig(id="plc", address="10.0.0.5"))
            await state.apply_blocks([RegisterBlock(40000, 10)])
            readings, _ = await state.read_registers()
    """

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        *,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        """Initialize an empty registry.

        Args:
            client_factory: Async ``(host, port)`` connector (default:
                :func:`~modbusbrowser.transports.factory.connect_modbus_client`)
            reconnect_delay: Seconds between reconnection attempts
        """
        self._client_factory: ClientFactory = client_factory or connect_modbus_client
        self._reconnect_delay = reconnect_delay
        self._servers: dict[str, ServerState] = {}
        self._lock = SharedLock()

    async def __aenter__(self) -> ServerRegistry:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def add(self, config: ServerConfig, *, replace: bool = False) -> ServerState:
        """Register a server and start its poller.

        The configured blocks are applied through the block planner before
        the server becomes visible.

        Args:
            config: Server configuration
            replace: Replace an existing server with the same id instead of
                raising

        Raises:
            ConfigurationError: If the configuration is invalid
            DuplicateServerError: If the id exists and *replace* is False
        """
        config.validate()
        state = ServerState(config)
        if config.register_blocks:
            await state.apply_blocks(config.register_blocks)

        async with self._lock.exclusive():
            previous = self._servers.get(config.id)
            if previous is not None and not replace:
                raise DuplicateServerError(config.id)
            self._servers[config.id] = state

        if previous is not None:
            _LOGGER.info("Replacing server %s", config.id)
            await previous.shutdown()

        poller = ServerPoller(
            state,
            self,
            self._client_factory,
            reconnect_delay=self._reconnect_delay,
        )
        poller.start()
        _LOGGER.info("Added server %s (%s:%s)", state.id, state.address, state.port)
        return state

    async def remove(self, server_id: str) -> None:
        """Unregister a server, stop its poller and close its client.

        Raises:
            ServerNotFoundError: If no server has this id
        """
        async with self._lock.exclusive():
            state = self._servers.pop(server_id, None)
        if state is None:
            raise ServerNotFoundError(server_id)
        await state.shutdown()
        _LOGGER.info("Removed server %s", server_id)

    async def get(self, server_id: str) -> ServerState:
        """Return the server with *server_id*.

        Raises:
            ServerNotFoundError: If no server has this id
        """
        async with self._lock.shared():
            state = self._servers.get(server_id)
        if state is None:
            raise ServerNotFoundError(server_id)
        return state

    async def is_registered(self, state: ServerState) -> bool:
        """True while *state* is the registered entry for its id."""
        async with self._lock.shared():
            return self._servers.get(state.id) is state

    async def servers(self) -> list[ServerState]:
        async with self._lock.shared():
            return list(self._servers.values())

    async def status_snapshots(self) -> list[StatusSnapshot]:
        return [await state.status() for state in await self.servers()]

    async def import_config(self, config: ConfigFile) -> list[ServerState]:
        """Add every server of an imported document.

        Existing servers with the same id are replaced. The document is
        validated as a whole before any server is touched.

        Raises:
            ConfigurationError: If any server or block is invalid
        """
        config.validate()
        return [await self.add(server, replace=True) for server in config.servers]

    async def export_config(self) -> dict[str, Any]:
        """Export all servers with their blocks and connection status."""
        return {"servers": [await state.to_dict() for state in await self.servers()]}

    async def close(self) -> None:
        """Remove every server."""
        async with self._lock.exclusive():
            states = list(self._servers.values())
            self._servers.clear()
        for state in states:
            await state.shutdown()

    def __len__(self) -> int:
        return len(self._servers)

    def __contains__(self, server_id: object) -> bool:
        return server_id in self._servers


__all__ = ["ServerRegistry", "SharedLock"]
