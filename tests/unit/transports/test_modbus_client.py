"""Tests for the pymodbus-backed client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymodbus.exceptions import ModbusIOException

from modbusbrowser.exceptions import ModbusBrowserError
from modbusbrowser.transports import ModbusTcpClient, RegisterClient, connect_modbus_client
from modbusbrowser.transports.exceptions import (
    TransportConnectionError,
    TransportReadError,
    TransportTimeoutError,
)


def _response(*, bits: list[bool] | None = None, registers: list[int] | None = None) -> MagicMock:
    response = MagicMock()
    response.isError.return_value = False
    response.bits = bits
    response.registers = registers
    return response


async def _connected_client(mock_client: MagicMock) -> ModbusTcpClient:
    client = ModbusTcpClient(host="192.168.1.100")
    with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
        mock_client.connect = AsyncMock(return_value=True)
        mock_client_class.return_value = mock_client
        await client.connect()
    return client


class TestModbusTcpClient:
    """Tests for ModbusTcpClient class."""

    def test_init_default_values(self) -> None:
        client = ModbusTcpClient(host="192.168.1.100")

        assert client.host == "192.168.1.100"
        assert client.port == 502
        assert client._unit_id == 1
        assert client._timeout == 10.0
        assert client.is_connected is False

    def test_satisfies_protocol(self) -> None:
        assert isinstance(ModbusTcpClient(host="h"), RegisterClient)

    @pytest.mark.asyncio
    async def test_connect_success(self) -> None:
        client = ModbusTcpClient(host="192.168.1.100", port=1502, timeout=3.0)

        with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
            mock_client = MagicMock()
            mock_client.connect = AsyncMock(return_value=True)
            mock_client_class.return_value = mock_client

            await client.connect()

            mock_client_class.assert_called_once_with(
                host="192.168.1.100", port=1502, timeout=3.0, retries=0
            )
            mock_client.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        client = ModbusTcpClient(host="192.168.1.100")

        with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
            mock_client = MagicMock()
            mock_client.connect = AsyncMock(return_value=False)
            mock_client_class.return_value = mock_client

            with pytest.raises(TransportConnectionError, match="failed to connect"):
                await client.connect()
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_connect_os_error(self) -> None:
        client = ModbusTcpClient(host="192.168.1.100")

        with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
            mock_client = MagicMock()
            mock_client.connect = AsyncMock(side_effect=OSError("unreachable"))
            mock_client_class.return_value = mock_client

            with pytest.raises(TransportConnectionError, match="unreachable"):
                await client.connect()

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)

        await client.close()

        mock_client.close.assert_called_once()
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_read_without_connect(self) -> None:
        client = ModbusTcpClient(host="192.168.1.100")
        with pytest.raises(TransportConnectionError, match="not connected"):
            await client.read_holding_registers(0, 2)

    @pytest.mark.asyncio
    async def test_read_holding_registers(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_holding_registers = AsyncMock(
            return_value=_response(registers=[1, 2, 3])
        )

        assert await client.read_holding_registers(10, 3) == [1, 2, 3]
        mock_client.read_holding_registers.assert_awaited_once_with(
            address=10, count=3, device_id=1
        )

    @pytest.mark.asyncio
    async def test_read_input_registers(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_input_registers = AsyncMock(return_value=_response(registers=[9]))

        assert await client.read_input_registers(0, 1) == [9]

    @pytest.mark.asyncio
    async def test_read_coils_truncates_padding(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_coils = AsyncMock(
            return_value=_response(bits=[True, False, True] + [False] * 5)
        )

        assert await client.read_coils(0, 3) == [True, False, True]

    @pytest.mark.asyncio
    async def test_read_discrete_inputs(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_discrete_inputs = AsyncMock(return_value=_response(bits=[1] + [0] * 7))

        assert await client.read_discrete_inputs(4, 1) == [True]
        mock_client.read_discrete_inputs.assert_awaited_once_with(
            address=4, count=1, device_id=1
        )

    @pytest.mark.asyncio
    async def test_error_response(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        response = MagicMock()
        response.isError.return_value = True
        mock_client.read_holding_registers = AsyncMock(return_value=response)

        with pytest.raises(TransportReadError, match="Modbus read error"):
            await client.read_holding_registers(0, 2)

    @pytest.mark.asyncio
    async def test_short_response(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_holding_registers = AsyncMock(return_value=_response(registers=[1]))

        with pytest.raises(TransportReadError, match="expected 2 registers"):
            await client.read_holding_registers(0, 2)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_input_registers = AsyncMock(side_effect=TimeoutError())

        with pytest.raises(TransportTimeoutError, match="timeout reading input registers"):
            await client.read_input_registers(0, 2)

    @pytest.mark.asyncio
    async def test_modbus_io_timeout(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_coils = AsyncMock(
            side_effect=ModbusIOException("No response received, timeout")
        )

        with pytest.raises(TransportTimeoutError):
            await client.read_coils(0, 2)

    @pytest.mark.asyncio
    async def test_connection_reset(self) -> None:
        mock_client = MagicMock()
        client = await _connected_client(mock_client)
        mock_client.read_coils = AsyncMock(side_effect=ConnectionResetError("reset"))

        with pytest.raises(TransportReadError, match="reset"):
            await client.read_coils(0, 2)


class TestConnectModbusClient:
    """Test the default connector."""

    @pytest.mark.asyncio
    async def test_returns_connected_client(self) -> None:
        with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
            mock_client = MagicMock()
            mock_client.connect = AsyncMock(return_value=True)
            mock_client_class.return_value = mock_client

            client = await connect_modbus_client("10.0.0.5", 1502, unit_id=3)

        assert client.host == "10.0.0.5"
        assert client.port == 1502
        assert client._unit_id == 3

    @pytest.mark.asyncio
    async def test_propagates_failure(self) -> None:
        with patch("pymodbus.client.AsyncModbusTcpClient") as mock_client_class:
            mock_client = MagicMock()
            mock_client.connect = AsyncMock(return_value=False)
            mock_client_class.return_value = mock_client

            with pytest.raises(TransportConnectionError):
                await connect_modbus_client("10.0.0.5", 502)


class TestTransportErrors:
    """Test the client error hierarchy."""

    @pytest.mark.parametrize(
        "error_class",
        [TransportConnectionError, TransportReadError, TransportTimeoutError],
    )
    def test_caught_as_package_error(self, error_class: type[Exception]) -> None:
        with pytest.raises(ModbusBrowserError):
            raise error_class("device went away")
