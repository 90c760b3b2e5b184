import random

import pytest

from lora_rx.deinterleave import (
    deinterleave, deinterleave_block, leftover_symbols, swap_msbs,
    to_hamming_order,
)
from lora_rx.encoder import interleave, to_wire_order


def test_swap_msbs():
    assert swap_msbs(0b1000, 4) == 0b0100
    assert swap_msbs(0b0100, 4) == 0b1000
    assert swap_msbs(0b1100, 4) == 0b1100
    assert swap_msbs(0b1011, 4) == 0b0111


def test_swap_msbs_drops_bits_above_ppm():
    assert swap_msbs(0b110000, 4) == 0
    assert swap_msbs(0b11_1000_0001, 8) == 0b0100_0001


def test_hamming_order_tables():
    assert to_hamming_order(0b0001_0000, 4) == 0b0000_0001
    assert to_hamming_order(0b0000_1000, 4) == 0b0010_0000
    assert to_hamming_order(0b0001_0000, 3) == 0b0000_1000
    assert to_hamming_order(0b0000_1000, 3) == 0b0001_0000
    assert to_hamming_order(0b11_1111, 2) == 0b11_1111


def test_hamming_order_masks_to_codeword_width():
    assert to_hamming_order(0xFF, 1) == 0x1F


def test_single_bit_block():
    # codeword 0, bit 0 is read from symbol 0 at its MSB (before the swap)
    assert deinterleave([0b0100, 0, 0, 0, 0], 4, 1).tolist() == [1, 0, 0, 0]
    assert deinterleave_block([0b1000, 0, 0, 0, 0], 4, 1) == [1, 0, 0, 0]


def test_diagonal_walk():
    # symbol 1 arrives with bit ppm-2 set, is swapped up to the MSB and is
    # read on the last diagonal, into bit 1 of codeword ppm-1
    ppm = 6
    block = [0, swap_msbs(1 << (ppm - 1), ppm), 0, 0, 0]
    codewords = deinterleave(block, ppm, 1).tolist()
    assert codewords == [0] * (ppm - 1) + [0b10]


@pytest.mark.parametrize("rdd", [1, 2, 3, 4])
@pytest.mark.parametrize("ppm", range(4, 13))
def test_interleave_round_trip(ppm, rdd):
    rng = random.Random(ppm * 10 + rdd)
    codewords = [rng.randrange(1 << (4 + rdd)) for _ in range(3 * ppm)]
    symbols = interleave(codewords, ppm, rdd)
    assert len(symbols) == 3 * (4 + rdd)
    assert all(int(s) < (1 << ppm) for s in symbols)
    assert deinterleave(symbols, ppm, rdd).tolist() == codewords


@pytest.mark.parametrize("rdd", [3, 4])
def test_wire_order_inverts_hamming_order(rdd):
    for cw in range(1 << (4 + rdd)):
        assert to_hamming_order(to_wire_order(cw, rdd), rdd) == cw


def test_trailing_symbols_dropped():
    ppm, rdd = 8, 2
    symbols = list(range(2 * (4 + rdd) + 3))
    assert len(deinterleave(symbols, ppm, rdd)) == 2 * ppm
    assert leftover_symbols(len(symbols), rdd) == 3
    assert len(deinterleave(symbols[:5], ppm, rdd)) == 0


def test_input_not_modified():
    symbols = [255, 1, 2, 3, 4, 5, 6, 7]
    deinterleave(symbols, 8, 4)
    assert symbols == [255, 1, 2, 3, 4, 5, 6, 7]


@pytest.mark.parametrize("ppm,rdd", [(3, 1), (13, 1), (8, 0), (8, 5)])
def test_bad_geometry(ppm, rdd):
    with pytest.raises(ValueError):
        deinterleave([0] * 8, ppm, rdd)
