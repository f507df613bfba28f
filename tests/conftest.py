"""Pytest configuration and fixtures for modbusbrowser tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest

from modbusbrowser.registry import ServerRegistry
from modbusbrowser.transports.exceptions import TransportConnectionError, TransportReadError


class FakeDevice:
    """In-memory Modbus device shared by every client connected to it.

    Values are keyed by protocol-level offset within each bank.
    """

    def __init__(self) -> None:
        self.coils: dict[int, bool] = {}
        self.discrete_inputs: dict[int, bool] = {}
        self.input_registers: dict[int, int] = {}
        self.holding_registers: dict[int, int] = {}
        self.read_error: str | None = None
        self.reads: list[tuple[str, int, int]] = []

    def read(self, function: str, table: dict[int, Any], address: int, count: int) -> list[Any]:
        if self.read_error is not None:
            raise TransportReadError(self.read_error)
        self.reads.append((function, address, count))
        default: Any = False if table in (self.coils, self.discrete_inputs) else 0
        return [table.get(address + i, default) for i in range(count)]


class FakeRegisterClient:
    """RegisterClient backed by a FakeDevice."""

    def __init__(self, device: FakeDevice) -> None:
        self.device = device
        self.closed = False

    async def read_coils(self, address: int, count: int) -> list[bool]:
        return self.device.read("read_coils", self.device.coils, address, count)

    async def read_discrete_inputs(self, address: int, count: int) -> list[bool]:
        return self.device.read(
            "read_discrete_inputs", self.device.discrete_inputs, address, count
        )

    async def read_input_registers(self, address: int, count: int) -> list[int]:
        return self.device.read(
            "read_input_registers", self.device.input_registers, address, count
        )

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        return self.device.read(
            "read_holding_registers", self.device.holding_registers, address, count
        )

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    """ClientFactory handing out clients for one FakeDevice."""

    def __init__(self, device: FakeDevice) -> None:
        self.device = device
        self.fail = False
        self.attempts = 0
        self.clients: list[FakeRegisterClient] = []

    async def __call__(self, host: str, port: int) -> FakeRegisterClient:
        self.attempts += 1
        if self.fail:
            raise TransportConnectionError(f"connection refused by {host}:{port}")
        client = FakeRegisterClient(self.device)
        self.clients.append(client)
        return client


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it holds or *timeout* elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def device() -> FakeDevice:
    """A fake device with no stored values."""
    return FakeDevice()


@pytest.fixture
def connector(device: FakeDevice) -> FakeConnector:
    """Connector for the fake device."""
    return FakeConnector(device)


@pytest.fixture
def waiter() -> Callable[..., Any]:
    """The wait_until helper."""
    return wait_until


@pytest.fixture
async def registry(connector: FakeConnector) -> AsyncGenerator[ServerRegistry, None]:
    """Registry with the fake connector and a short reconnect delay."""
    reg = ServerRegistry(connector, reconnect_delay=0.02)
    yield reg
    await reg.close()
