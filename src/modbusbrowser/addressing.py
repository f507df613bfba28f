"""Flat Modbus address space to register bank routing.

A global address selects one of four banks by range:

- ``[0, 10000)``       Coils, offset = address
- ``[10000, 20000)``   Discrete Inputs, offset = address - 10000
- ``[30000, 40000)``   Input Registers, offset = address - 30000
- everything else      Holding Registers, offset = address - 40000

The ``[20000, 30000)`` range has no bank of its own and falls through to
Holding Registers, which yields a negative offset. ``locate`` reports that
faithfully; callers that index a bank go through ``check_offset`` so such
an address surfaces as an ``AddressRangeError`` instead of a bad index.
"""

from __future__ import annotations

from enum import Enum

from .constants import (
    BANK_SIZE,
    COILS_BASE,
    DISCRETE_INPUTS_BASE,
    HOLDING_REGISTERS_BASE,
    INPUT_REGISTERS_BASE,
    MAX_ADDRESS,
)
from .exceptions import AddressRangeError


class RegisterBank(str, Enum):
    """The four physically distinct register banks of a device."""

    COILS = "coils"
    DISCRETE_INPUTS = "discrete_inputs"
    INPUT_REGISTERS = "input_registers"
    HOLDING_REGISTERS = "holding_registers"

    @property
    def is_bit(self) -> bool:
        """True for single-bit banks (Coils, Discrete Inputs)."""
        return self in (RegisterBank.COILS, RegisterBank.DISCRETE_INPUTS)


_BANK_BASES: dict[RegisterBank, int] = {
    RegisterBank.COILS: COILS_BASE,
    RegisterBank.DISCRETE_INPUTS: DISCRETE_INPUTS_BASE,
    RegisterBank.INPUT_REGISTERS: INPUT_REGISTERS_BASE,
    RegisterBank.HOLDING_REGISTERS: HOLDING_REGISTERS_BASE,
}


def bank_base(bank: RegisterBank) -> int:
    """Return the first global address of *bank*."""
    return _BANK_BASES[bank]


def bank_for(address: int) -> RegisterBank:
    """Return the bank a global address routes to."""
    if address < DISCRETE_INPUTS_BASE:
        return RegisterBank.COILS
    if address < 20000:
        return RegisterBank.DISCRETE_INPUTS
    if INPUT_REGISTERS_BASE <= address < HOLDING_REGISTERS_BASE:
        return RegisterBank.INPUT_REGISTERS
    return RegisterBank.HOLDING_REGISTERS


def locate(address: int) -> tuple[RegisterBank, int]:
    """Map a global address to ``(bank, offset)``.

    Total over ``0..0xFFFF``. The offset is always ``address - bank_base``,
    so addresses in the unassigned gap or above 49999 produce offsets outside
    ``[0, BANK_SIZE)``; use :func:`check_offset` before indexing.

    Raises:
        ValueError: If *address* is not a uint16
    """
    if not 0 <= address <= MAX_ADDRESS:
        raise ValueError(f"address {address} is outside 0..{MAX_ADDRESS}")
    bank = bank_for(address)
    return bank, address - _BANK_BASES[bank]


def is_valid_offset(offset: int) -> bool:
    """True if *offset* indexes a slot of a bank."""
    return 0 <= offset < BANK_SIZE


def check_offset(address: int) -> tuple[RegisterBank, int]:
    """Like :func:`locate` but reject offsets that fall outside the bank.

    Raises:
        AddressRangeError: If the address does not map onto a bank slot
    """
    bank, offset = locate(address)
    if not is_valid_offset(offset):
        raise AddressRangeError(address, bank.value, offset)
    return bank, offset


def span_bank(start: int, length: int) -> RegisterBank:
    """Return the single bank covering ``[start, start + length)``.

    Raises:
        AddressRangeError: If the span leaves its bank or misroutes
    """
    first_bank, _ = check_offset(start)
    last_bank, _ = check_offset(start + length - 1)
    if first_bank is not last_bank:
        end = start + length - 1
        raise AddressRangeError(end, first_bank.value, end - bank_base(first_bank))
    return first_bank


__all__ = [
    "RegisterBank",
    "bank_base",
    "bank_for",
    "check_offset",
    "is_valid_offset",
    "locate",
    "span_bank",
]
