"""Tests for register block planning."""

from __future__ import annotations

from modbusbrowser.constants import MAX_BLOCK_LENGTH
from modbusbrowser.models import RegisterBlock, RegisterConfig, RegisterFormat
from modbusbrowser.planner import build_register_map, merge_blocks, split_block


def _reg(address: int, name: str = "", fmt: RegisterFormat = RegisterFormat.DECIMAL) -> RegisterConfig:
    return RegisterConfig(name or f"r{address}", fmt, address)


def _covered(blocks: list[RegisterBlock]) -> set[int]:
    return {addr for block in blocks for addr in range(block.start_address, block.end_address)}


class TestSplitBlock:
    """Test split_block()."""

    def test_short_block_unchanged(self) -> None:
        chunks = split_block(RegisterBlock(40000, 10, [_reg(40001)]))
        assert chunks == [RegisterBlock(40000, 10, [_reg(40001)])]

    def test_split_300(self) -> None:
        block = RegisterBlock(40000, 300, [_reg(40000), _reg(40130), _reg(40299)])
        chunks = split_block(block)

        assert [(c.start_address, c.length) for c in chunks] == [
            (40000, 125),
            (40125, 125),
            (40250, 50),
        ]
        assert [[r.address for r in c.registers] for c in chunks] == [[40000], [40130], [40299]]

    def test_exact_multiple(self) -> None:
        chunks = split_block(RegisterBlock(0, 250))
        assert [c.length for c in chunks] == [125, 125]


class TestMergeBlocks:
    """Test merge_blocks()."""

    def test_into_empty_list(self) -> None:
        stored: list[RegisterBlock] = []
        appended = merge_blocks(stored, [RegisterBlock(40000, 10)])
        assert stored == [RegisterBlock(40000, 10)]
        assert appended == stored

    def test_overlap_merges(self) -> None:
        stored = [RegisterBlock(40000, 10, [_reg(40000)])]
        merge_blocks(stored, [RegisterBlock(40005, 10, [_reg(40012)])])

        assert len(stored) == 1
        assert stored[0].start_address == 40000
        assert stored[0].length == 15
        assert [r.address for r in stored[0].registers] == [40000, 40012]

    def test_adjacent_merges(self) -> None:
        stored = [RegisterBlock(40000, 10)]
        merge_blocks(stored, [RegisterBlock(40010, 5)])
        assert stored == [RegisterBlock(40000, 15)]

    def test_contained_block_keeps_length(self) -> None:
        stored = [RegisterBlock(40000, 20)]
        merge_blocks(stored, [RegisterBlock(40002, 3)])
        assert stored == [RegisterBlock(40000, 20)]

    def test_start_before_existing_does_not_merge(self) -> None:
        stored = [RegisterBlock(40010, 10)]
        merge_blocks(stored, [RegisterBlock(40005, 10)])
        assert [(b.start_address, b.length) for b in stored] == [(40010, 10), (40005, 10)]

    def test_gap_does_not_merge(self) -> None:
        stored = [RegisterBlock(40000, 10)]
        merge_blocks(stored, [RegisterBlock(40011, 5)])
        assert len(stored) == 2

    def test_merge_limited_by_ceiling(self) -> None:
        stored = [RegisterBlock(40000, 100)]
        merge_blocks(stored, [RegisterBlock(40100, 30)])
        assert [(b.start_address, b.length) for b in stored] == [(40000, 100), (40100, 30)]

    def test_first_fitting_candidate_wins(self) -> None:
        stored = [RegisterBlock(40000, 120), RegisterBlock(40110, 10)]
        merge_blocks(stored, [RegisterBlock(40115, 15)])
        assert [(b.start_address, b.length) for b in stored] == [(40000, 120), (40110, 20)]

    def test_adjacent_across_bank_boundary(self) -> None:
        stored = [RegisterBlock(9990, 10)]
        merge_blocks(stored, [RegisterBlock(10000, 10)])
        assert [(b.start_address, b.length) for b in stored] == [(9990, 10), (10000, 10)]

    def test_chunks_of_one_batch_do_not_merge(self) -> None:
        stored: list[RegisterBlock] = []
        merge_blocks(stored, [RegisterBlock(40000, 10), RegisterBlock(40005, 10)])
        assert [(b.start_address, b.length) for b in stored] == [(40000, 10), (40005, 10)]

    def test_long_block_split_and_appended(self) -> None:
        stored = [RegisterBlock(0, 8)]
        merge_blocks(stored, [RegisterBlock(40000, 300)])
        assert [(b.start_address, b.length) for b in stored] == [
            (0, 8),
            (40000, 125),
            (40125, 125),
            (40250, 50),
        ]

    def test_ceiling_and_coverage(self) -> None:
        stored: list[RegisterBlock] = []
        requests = [
            RegisterBlock(40000, 60),
            RegisterBlock(40060, 60),
            RegisterBlock(40100, 200),
            RegisterBlock(30000, 500),
            RegisterBlock(0, 3),
        ]
        expected = _covered(requests)
        merge_blocks(stored, requests)

        assert all(block.length <= MAX_BLOCK_LENGTH for block in stored)
        assert _covered(stored) == expected

    def test_idempotent_span(self) -> None:
        stored: list[RegisterBlock] = []
        batch = [RegisterBlock(40000, 10, [_reg(40000)])]
        merge_blocks(stored, batch)
        merge_blocks(stored, [RegisterBlock(40000, 10, [_reg(40000)])])

        assert [(b.start_address, b.length) for b in stored] == [(40000, 10)]
        # Register configs are kept as given, duplicates included
        assert [r.address for r in stored[0].registers] == [40000, 40000]


class TestBuildRegisterMap:
    """Test build_register_map()."""

    def test_last_write_wins(self) -> None:
        first = _reg(40000, "first")
        second = _reg(40000, "second", RegisterFormat.HEX)
        register_map = build_register_map(
            [RegisterBlock(40000, 2, [first]), RegisterBlock(40000, 1, [second])]
        )
        assert register_map == {40000: second}

    def test_empty(self) -> None:
        assert build_register_map([RegisterBlock(0, 10)]) == {}
