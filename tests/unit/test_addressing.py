"""Tests for flat address to register bank routing."""

from __future__ import annotations

import pytest

from modbusbrowser.addressing import (
    RegisterBank,
    bank_base,
    check_offset,
    locate,
    span_bank,
)
from modbusbrowser.exceptions import AddressRangeError, ConfigurationError


class TestLocate:
    """Test locate()."""

    @pytest.mark.parametrize(
        ("address", "bank", "offset"),
        [
            (0, RegisterBank.COILS, 0),
            (9999, RegisterBank.COILS, 9999),
            (10000, RegisterBank.DISCRETE_INPUTS, 0),
            (19999, RegisterBank.DISCRETE_INPUTS, 9999),
            (30000, RegisterBank.INPUT_REGISTERS, 0),
            (39999, RegisterBank.INPUT_REGISTERS, 9999),
            (40000, RegisterBank.HOLDING_REGISTERS, 0),
            (49999, RegisterBank.HOLDING_REGISTERS, 9999),
        ],
    )
    def test_bank_boundaries(self, address: int, bank: RegisterBank, offset: int) -> None:
        assert locate(address) == (bank, offset)

    def test_gap_routes_to_holding_registers(self) -> None:
        """20000-29999 has no bank and falls through to holding registers."""
        for address in (20000, 25000, 29999):
            bank, offset = locate(address)
            assert bank is RegisterBank.HOLDING_REGISTERS
            assert offset == address - 40000

    def test_input_register_range(self) -> None:
        for address in (30000, 35000, 39999):
            assert locate(address)[0] is RegisterBank.INPUT_REGISTERS

    def test_above_holding_range(self) -> None:
        assert locate(65535) == (RegisterBank.HOLDING_REGISTERS, 25535)

    def test_total_and_deterministic(self) -> None:
        """Every uint16 maps to a bank with offset = address - base."""
        for address in range(0x10000):
            bank, offset = locate(address)
            assert offset == address - bank_base(bank)
            assert locate(address) == (bank, offset)

    @pytest.mark.parametrize("address", [-1, 65536])
    def test_rejects_non_uint16(self, address: int) -> None:
        with pytest.raises(ValueError):
            locate(address)


class TestCheckOffset:
    """Test check_offset() and span_bank()."""

    def test_valid_address(self) -> None:
        assert check_offset(40010) == (RegisterBank.HOLDING_REGISTERS, 10)

    @pytest.mark.parametrize("address", [20000, 29999, 50000, 65535])
    def test_out_of_bank_raises(self, address: int) -> None:
        with pytest.raises(AddressRangeError) as exc_info:
            check_offset(address)
        assert exc_info.value.address == address
        assert exc_info.value.bank == "holding_registers"

    def test_address_range_error_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            check_offset(25000)

    def test_span_within_bank(self) -> None:
        assert span_bank(30000, 125) is RegisterBank.INPUT_REGISTERS
        assert span_bank(9990, 10) is RegisterBank.COILS

    def test_span_crossing_bank_boundary(self) -> None:
        with pytest.raises(AddressRangeError):
            span_bank(9995, 10)

    def test_span_into_gap(self) -> None:
        with pytest.raises(AddressRangeError):
            span_bank(19990, 20)

    def test_bit_banks(self) -> None:
        assert RegisterBank.COILS.is_bit
        assert RegisterBank.DISCRETE_INPUTS.is_bit
        assert not RegisterBank.INPUT_REGISTERS.is_bit
        assert not RegisterBank.HOLDING_REGISTERS.is_bit
