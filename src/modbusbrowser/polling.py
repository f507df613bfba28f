"""Per-server polling and reconnection state machine.

Each registered server gets one ServerPoller running a single asyncio task
that alternates between two modes, so polling and reconnecting can never
run at the same time for one server:

    CONNECTING --ok--> POLLING --read error--> RECONNECTING --ok--> POLLING
        |                                           ^
        +-------------------fail--------------------+

POLLING ticks every ``poll_rate_ms``. Each tick holds the server lock for
the whole tick, including the network reads, and reads every stored block
in order. The first failed read records ``error``, drops the client handle
and switches to RECONNECTING, which retries the connect every
``RECONNECT_DELAY`` seconds with no backoff.

Removal sets the server's ``stop_event`` and cancels the task. Every sleep
waits on that event, and a freshly connected client is only installed
after re-checking it under the server lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from .addressing import RegisterBank, check_offset
from .constants import RECONNECT_DELAY
from .exceptions import AddressRangeError
from .server import ConnectionStatus

if TYPE_CHECKING:
    from .models import RegisterBlock
    from .registry import ServerRegistry
    from .server import ServerState
    from .transports.protocol import ClientFactory, RegisterClient

_LOGGER = logging.getLogger(__name__)


class PollerMode(str, Enum):
    CONNECTING = "connecting"
    POLLING = "polling"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


async def read_block(client: RegisterClient, block: RegisterBlock) -> list[bool] | list[int]:
    """Issue the read matching the block's bank.

    The block's start is converted to its protocol-level offset within
    the bank.

    Raises:
        AddressRangeError: If the block does not start on a bank slot
        TransportError: If the read fails
    """
    bank, offset = check_offset(block.start_address)
    if bank is RegisterBank.COILS:
        values: list[bool] | list[int] = await client.read_coils(offset, block.length)
    elif bank is RegisterBank.DISCRETE_INPUTS:
        values = await client.read_discrete_inputs(offset, block.length)
    elif bank is RegisterBank.INPUT_REGISTERS:
        values = await client.read_input_registers(offset, block.length)
    else:
        values = await client.read_holding_registers(offset, block.length)
    return values[: block.length]


class ServerPoller:
    """Drives one server's connection lifecycle."""

    def __init__(
        self,
        state: ServerState,
        registry: ServerRegistry,
        client_factory: ClientFactory,
        *,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        """Initialize the poller.

        Args:
            state: Server to drive; the poller attaches itself as ``state.poller``
            registry: Registry consulted each tick for membership
            client_factory: Async ``(host, port)`` connector
            reconnect_delay: Seconds between reconnection attempts
        """
        self._state = state
        self._registry = registry
        self._client_factory = client_factory
        self._reconnect_delay = reconnect_delay
        self._mode = PollerMode.CONNECTING
        self._task: asyncio.Task[None] | None = None
        state.poller = self

    @property
    def mode(self) -> PollerMode:
        return self._mode

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task (connect, then poll or reconnect)."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"modbusbrowser-poller-{self._state.id}")

    async def stop(self) -> None:
        """Signal cancellation, wait for the task, and close the client."""
        state = self._state
        state.stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        async with state.lock:
            client, state.client = state.client, None
            self._mode = PollerMode.STOPPED
        if client is not None:
            await self._close_client(client)
        _LOGGER.info("Stopped polling server %s", state.id)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        try:
            if await self._connect():
                self._mode = PollerMode.POLLING
            else:
                self._mode = PollerMode.RECONNECTING

            while not self._state.stopped:
                if self._mode is PollerMode.POLLING:
                    await self._poll_loop()
                else:
                    await self._reconnect_loop()
        finally:
            self._mode = PollerMode.STOPPED

    async def _sleep(self, delay: float) -> bool:
        """Sleep up to *delay* seconds; True if the server was stopped."""
        try:
            await asyncio.wait_for(self._state.stop_event.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def _connect(self) -> bool:
        """Try to obtain and install a client handle.

        Returns:
            True if a client is installed
        """
        state = self._state
        try:
            client = await self._client_factory(state.address, state.port)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            # Any connector failure counts as a connection error
            async with state.lock:
                if not state.stopped:
                    state.connection_status = ConnectionStatus.error(str(err) or type(err).__name__)
            _LOGGER.debug("Connect to %s (%s:%s) failed: %s", state.id, state.address, state.port, err)
            return False

        async with state.lock:
            if state.stopped:
                installed = False
            else:
                state.client = client
                state.connection_status = ConnectionStatus.ok()
                installed = True
        if not installed:
            await self._close_client(client)
            return False
        _LOGGER.info("Connected to server %s at %s:%s", state.id, state.address, state.port)
        return True

    async def _poll_loop(self) -> None:
        state = self._state
        while True:
            if await self._sleep(state.poll_interval):
                return
            if not await self._registry.is_registered(state):
                _LOGGER.debug("Server %s no longer registered, stopping poller", state.id)
                state.stop_event.set()
                return
            if not await self.tick():
                self._mode = PollerMode.RECONNECTING
                return

    async def tick(self) -> bool:
        """Read every stored block once.

        Returns:
            False if a read failed and the server must reconnect
        """
        state = self._state
        async with state.lock:
            if state.stopped:
                return True
            client = state.client
            if client is None:
                state.connection_status = ConnectionStatus.error("not connected")
                return False

            blocks_read = 0
            for block in state.blocks:
                try:
                    values = await read_block(client, block)
                    state.banks.store(block.start_address, values)
                except AddressRangeError as err:
                    _LOGGER.error("Server %s: skipping misconfigured block: %s", state.id, err)
                    continue
                except asyncio.CancelledError:
                    raise
                except Exception as err:
                    message = str(err) or type(err).__name__
                    _LOGGER.warning(
                        "Server %s: read of block %d+%d failed: %s",
                        state.id,
                        block.start_address,
                        block.length,
                        message,
                    )
                    state.connection_status = ConnectionStatus.error(message)
                    state.client = None
                    await self._close_client(client)
                    return False
                blocks_read += 1

            if blocks_read:
                state.last_data_received = datetime.now()
            state.connection_status = ConnectionStatus.ok()
            _LOGGER.debug("Server %s: polled %d blocks", state.id, blocks_read)
            return True

    async def _reconnect_loop(self) -> None:
        state = self._state
        _LOGGER.info("Reconnecting to server %s every %.1fs", state.id, self._reconnect_delay)
        while True:
            if await self._sleep(self._reconnect_delay):
                return
            if not await self._registry.is_registered(state):
                state.stop_event.set()
                return
            if await self._connect():
                self._mode = PollerMode.POLLING
                return

    async def _close_client(self, client: RegisterClient) -> None:
        try:
            await client.close()
        except Exception as err:
            _LOGGER.debug("Error closing client for %s: %s", self._state.id, err)


__all__ = ["PollerMode", "ServerPoller", "read_block"]
