"""Per-server register banks."""

from __future__ import annotations

from collections.abc import Sequence

from .addressing import RegisterBank, check_offset, is_valid_offset
from .constants import BANK_SIZE
from .exceptions import AddressRangeError


class RegisterBanks:
    """The four fixed-size register arrays of one device.

    Coils and Discrete Inputs hold ``bool``; Input and Holding Registers
    hold ``int`` in ``0..0xFFFF``. Every access is routed through
    :func:`~modbusbrowser.addressing.check_offset`.
    """

    def __init__(self) -> None:
        self.coils: list[bool] = [False] * BANK_SIZE
        self.discrete_inputs: list[bool] = [False] * BANK_SIZE
        self.input_registers: list[int] = [0] * BANK_SIZE
        self.holding_registers: list[int] = [0] * BANK_SIZE

    def bank(self, bank: RegisterBank) -> list:
        if bank is RegisterBank.COILS:
            return self.coils
        if bank is RegisterBank.DISCRETE_INPUTS:
            return self.discrete_inputs
        if bank is RegisterBank.INPUT_REGISTERS:
            return self.input_registers
        return self.holding_registers

    def read(self, address: int) -> bool | int:
        """Return the stored value for a global address.

        Raises:
            AddressRangeError: If the address has no bank slot
        """
        bank, offset = check_offset(address)
        return self.bank(bank)[offset]

    def store(self, address: int, values: Sequence[bool | int]) -> None:
        """Copy *values* into the bank slots starting at *address*.

        Raises:
            AddressRangeError: If the slice would leave the bank
        """
        bank, offset = check_offset(address)
        end = offset + len(values)
        if values and not is_valid_offset(end - 1):
            raise AddressRangeError(address + len(values) - 1, bank.value, end - 1)
        self.bank(bank)[offset:end] = values

    def copy(self, bank: RegisterBank) -> list:
        """Return a copy of one bank's contents."""
        return list(self.bank(bank))


__all__ = ["RegisterBanks"]
