"""Decoding of raw bank values into display values.

Each configured register decodes to one of a closed set of value types:

- ``DecimalValue``: raw 16-bit word passed through
- ``HexValue``: ``0xHHHH`` upper-case, zero padded
- ``BoolValue``: coil/discrete state, or a nonzero test of a word
- ``FloatValue``: IEEE-754 single from two words, high word first
- ``TextValue``: string-byte / string-word decodes
- ``NotAvailable``: the ``"N/A"`` sentinel

Multi-register formats consume the registers that follow them, so
:func:`decode_block` skips those addresses rather than emitting a row for
each of them.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from .banks import RegisterBanks
from .constants import NOT_AVAILABLE
from .models import RegisterBlock, RegisterConfig, RegisterFormat


@dataclass(frozen=True)
class DecimalValue:
    value: int

    @property
    def display(self) -> int:
        return self.value


@dataclass(frozen=True)
class HexValue:
    text: str

    @property
    def display(self) -> str:
        return self.text


@dataclass(frozen=True)
class BoolValue:
    value: bool

    @property
    def display(self) -> bool:
        return self.value


@dataclass(frozen=True)
class FloatValue:
    """32-bit float decoded from two registers.

    ``value`` is the exact single-precision value widened to a Python float.
    """

    value: float

    @property
    def display(self) -> float | str:
        if not math.isfinite(self.value):
            return str(self.value)
        return _shortest_single(self.value)


@dataclass(frozen=True)
class TextValue:
    text: str

    @property
    def display(self) -> str:
        return self.text


@dataclass(frozen=True)
class NotAvailable:
    @property
    def display(self) -> str:
        return NOT_AVAILABLE


DisplayValue = Union[DecimalValue, HexValue, BoolValue, FloatValue, TextValue, NotAvailable]


@dataclass(frozen=True)
class RegisterReading:
    """One row of a server's register snapshot."""

    address: int
    name: str
    value: DisplayValue
    format: RegisterFormat

    def to_dict(self) -> dict[str, Any]:
        return {
            "Address": self.address,
            "Name": self.name,
            "Value": self.value.display,
            "Format": self.format.value,
        }


def _shortest_single(value: float) -> float:
    """Shortest decimal that still packs to the same float32."""
    packed = struct.pack(">f", value)
    for precision in range(6, 10):
        candidate = float(f"{value:.{precision}g}")
        if struct.pack(">f", candidate) == packed:
            return candidate
    return value


def words_to_float(high: int, low: int) -> float:
    """Reinterpret ``(high << 16) | low`` as an IEEE-754 single."""
    bits = ((high & 0xFFFF) << 16) | (low & 0xFFFF)
    result: float = struct.unpack(">f", struct.pack(">I", bits))[0]
    return result


def _read_words(banks: RegisterBanks, block: RegisterBlock, address: int, count: int) -> list[int]:
    """Read *count* words from *address*, zero past the block's span."""
    stop = min(address + count, block.end_address)
    words = [int(banks.read(addr)) for addr in range(address, stop)]
    return words + [0] * (count - len(words))


def words_to_byte_string(words: list[int]) -> str:
    """Two bytes per register (high, low), trailing NULs trimmed."""
    data = b"".join(struct.pack(">H", word & 0xFFFF) for word in words)
    return data.rstrip(b"\x00").decode("utf-8", errors="replace")


def words_to_char_string(words: list[int]) -> str:
    """One character per register."""
    # Lone surrogates are not valid code points
    return "".join("\ufffd" if 0xD800 <= word <= 0xDFFF else chr(word) for word in words)


def decode_value(
    banks: RegisterBanks,
    block: RegisterBlock,
    config: RegisterConfig,
    raw: bool | int,
) -> tuple[DisplayValue, int]:
    """Decode the raw value at ``config.address``.

    Args:
        banks: Bank storage to read following registers from
        block: Block the address belongs to (bounds for multi-word formats)
        config: Register config (format, string length)
        raw: Raw value already read at ``config.address``

    Returns:
        ``(value, extra)`` where *extra* is the number of following
        positions the format consumed.

    Raises:
        AddressRangeError: If a following register has no bank slot
    """
    fmt = config.format
    address = config.address
    is_word = not isinstance(raw, bool)

    if fmt is RegisterFormat.HEX:
        return (HexValue(f"0x{raw:04X}") if is_word else BoolValue(raw)), 0

    if fmt is RegisterFormat.BOOLEAN:
        return BoolValue(raw != 0 if is_word else raw), 0

    if fmt is RegisterFormat.FLOAT:
        if not block.contains(address + 1) or not is_word:
            return NotAvailable(), 1
        low = int(banks.read(address + 1))
        return FloatValue(words_to_float(int(raw), low)), 1

    if fmt is RegisterFormat.STRING_BYTE:
        consumed = config.string_length // 2
        if not is_word:
            return NotAvailable(), consumed
        words = _read_words(banks, block, address, consumed + 1)
        return TextValue(words_to_byte_string(words)), consumed

    if fmt is RegisterFormat.STRING_WORD:
        consumed = max(config.string_length - 1, 0)
        if not is_word:
            return NotAvailable(), consumed
        words = _read_words(banks, block, address, config.string_length)
        return TextValue(words_to_char_string(words)), consumed

    if is_word:
        return DecimalValue(int(raw)), 0
    return BoolValue(raw), 0


def decode_block(
    banks: RegisterBanks,
    block: RegisterBlock,
    register_map: Mapping[int, RegisterConfig],
) -> list[RegisterReading]:
    """Decode every row of *block* in address order.

    Addresses without an entry in *register_map* use
    :meth:`RegisterConfig.default_for`.
    """
    readings: list[RegisterReading] = []
    index = 0
    while index < block.length:
        address = block.start_address + index
        config = register_map.get(address) or RegisterConfig.default_for(address)
        raw = banks.read(address)
        value, extra = decode_value(banks, block, config, raw)
        readings.append(RegisterReading(address, config.name, value, config.format))
        index += 1 + extra
    return readings


__all__ = [
    "BoolValue",
    "DecimalValue",
    "DisplayValue",
    "FloatValue",
    "HexValue",
    "NotAvailable",
    "RegisterReading",
    "TextValue",
    "decode_block",
    "decode_value",
    "words_to_byte_string",
    "words_to_char_string",
    "words_to_float",
]
