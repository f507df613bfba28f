"""Register block planning against the 125-register request ceiling.

Incoming blocks are folded into a server's existing block list:

1. An existing block qualifies when the new block starts inside it or
   exactly at its end (adjacency counts).
2. The first qualifying block whose combined span stays within
   ``MAX_BLOCK_LENGTH`` and within one register bank absorbs the new block:
   its length grows to cover both and the new register configs are appended.
3. Otherwise the new block is split into chunks of at most
   ``MAX_BLOCK_LENGTH`` registers, each carrying the configs that fall in
   its span.
4. Chunks are appended after all incoming blocks have been processed, so
   chunks of one batch are never merged into each other.

Register configs are not de-duplicated when the same block is merged twice;
the register map rebuilt by :func:`build_register_map` decides what each
address displays.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .addressing import bank_for
from .constants import MAX_BLOCK_LENGTH
from .models import RegisterBlock, RegisterConfig

_LOGGER = logging.getLogger(__name__)


def build_register_map(blocks: Iterable[RegisterBlock]) -> dict[int, RegisterConfig]:
    """Build address -> config from *blocks*, last write wins per address."""
    register_map: dict[int, RegisterConfig] = {}
    for block in blocks:
        for reg in block.registers:
            register_map[reg.address] = reg
    return register_map


def split_block(block: RegisterBlock, max_length: int = MAX_BLOCK_LENGTH) -> list[RegisterBlock]:
    """Split *block* into consecutive chunks of at most *max_length* registers.

    Chunk spans concatenate to exactly the original span. Each register
    config goes to the chunk containing its address, in original order.
    """
    chunks: list[RegisterBlock] = []
    current = block.start_address
    remaining = block.length
    while remaining > 0:
        length = min(remaining, max_length)
        chunk = RegisterBlock(start_address=current, length=length)
        chunk.registers = [reg for reg in block.registers if chunk.contains(reg.address)]
        chunks.append(chunk)
        remaining -= length
        current += length
    return chunks


def _merged_length(existing: RegisterBlock, new: RegisterBlock) -> int | None:
    """Combined length if *new* may be merged into *existing*, else None."""
    if not existing.start_address <= new.start_address <= existing.end_address:
        return None
    total = max(new.end_address, existing.end_address) - existing.start_address
    if total > MAX_BLOCK_LENGTH:
        return None
    # Adjacent spans may sit on either side of a bank boundary
    if bank_for(existing.start_address) is not bank_for(existing.start_address + total - 1):
        return None
    return total


def merge_blocks(existing: list[RegisterBlock], incoming: Iterable[RegisterBlock]) -> list[RegisterBlock]:
    """Fold *incoming* blocks into *existing* in place.

    Args:
        existing: The server's stored block list (mutated)
        incoming: Requested blocks, already validated

    Returns:
        The newly appended blocks (split chunks of unmerged requests)
    """
    appended: list[RegisterBlock] = []
    for new_block in incoming:
        merged = False
        for stored in existing:
            total = _merged_length(stored, new_block)
            if total is None:
                continue
            _LOGGER.debug(
                "Merging block %d+%d into %d+%d (new length %d)",
                new_block.start_address,
                new_block.length,
                stored.start_address,
                stored.length,
                total,
            )
            stored.length = total
            stored.registers.extend(new_block.registers)
            merged = True
            break

        if not merged:
            chunks = split_block(new_block)
            if len(chunks) > 1:
                _LOGGER.debug(
                    "Split block %d+%d into %d chunks",
                    new_block.start_address,
                    new_block.length,
                    len(chunks),
                )
            appended.extend(chunks)

    existing.extend(appended)
    return appended


__all__ = ["build_register_map", "merge_blocks", "split_block"]
