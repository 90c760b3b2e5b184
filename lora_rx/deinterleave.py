"""
deinterleave.py: LoRa Diagonal Deinterleaver (RX Stage 4)
==========================================================

Reverses the diagonal block interleaving applied by the LoRa transmitter.

Dimensions
──────────
  PPM     = bits per symbol IN to the deinterleaver
            = number of codewords OUT per block
  4 + RDD = symbols IN per block
            = bits per codeword OUT

  Header  : PPM = SF - 2, RDD = 4 (always one 8-symbol block)
  Payload : PPM = SF,     RDD = CR

Per block the transform is:

  1. MSB swap.  Bits PPM-1 and PPM-2 of every symbol are exchanged on the
     wire; swap them back.  Bits at or above PPM are dropped here.
  2. Diagonal read.  Walk ``bitcount`` over PPM × (4+RDD) bits:

        symbol   = bitcount % (4+RDD)
        codeword = bitcount // (4+RDD)
        bit      = (PPM-1) - ((bit_idx + bit_offset) % PPM)

     ``bit_idx`` counts up inside each run of (4+RDD) bits and restarts
     at 0; ``bit_offset`` increases by one at every restart.  The symbol
     bit lands in bit ``symbol`` of the codeword.
  3. Hamming order.  Permute each codeword into p1,p2,d1,p3,d2,d3,d4,p4
     order (RDD 3 and 4 only) and mask to 4+RDD bits.

Symbols left over after the last complete block are dropped.

Pipeline position:
  … → Dewhiten → Split → **[Deinterleave]** → Hamming decode → Assemble
"""

from typing import Iterable, List, Sequence

import numpy as np


CODEWORD_DTYPE = np.uint8

PPM_MIN, PPM_MAX = 4, 12
RDD_MIN, RDD_MAX = 1, 4


# ══════════════════════════════════════════════════════════════════════════════
#  HAMMING ORDER PATTERNS
# ══════════════════════════════════════════════════════════════════════════════
#
#  result_bit[j] = input_bit[pattern[j]]
#
#    RDD 4:  j  :  0  1  2  3  4  5  6  7
#            src:  4  0  1  2  5  3  6  7
#
#    RDD 3:  bits 3 and 4 exchanged
#
#  RDD 1 and 2 codewords are already in order.
#
HAMMING_ORDER = {
    3: (0, 1, 2, 4, 3, 5, 6),
    4: (4, 0, 1, 2, 5, 3, 6, 7),
}


def check_geometry(ppm: int, rdd: int) -> None:
    if not PPM_MIN <= ppm <= PPM_MAX:
        raise ValueError(f"ppm must be in [{PPM_MIN}, {PPM_MAX}], got {ppm}")
    if not RDD_MIN <= rdd <= RDD_MAX:
        raise ValueError(f"rdd must be in [{RDD_MIN}, {RDD_MAX}], got {rdd}")


def codeword_mask(rdd: int) -> int:
    return (1 << (4 + rdd)) - 1


# ══════════════════════════════════════════════════════════════════════════════
#  §1  BIT HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def swap_msbs(symbol: int, ppm: int) -> int:
    """
    Exchange bits ``ppm-1`` and ``ppm-2`` of *symbol*.

    Bits below ``ppm-2`` are kept; bits at or above ``ppm`` are discarded.
    The operation is its own inverse on PPM-bit values.
    """
    hi = 1 << (ppm - 1)
    lo = 1 << (ppm - 2)
    return ((symbol & hi) >> 1) | ((symbol & lo) << 1) | (symbol & (lo - 1))


def to_hamming_order(codeword: int, rdd: int) -> int:
    """Permute a raw deinterleaved codeword into Hamming bit order."""
    pattern = HAMMING_ORDER.get(rdd)
    if pattern is not None:
        result = 0
        for j, src_bit in enumerate(pattern):
            if codeword & (1 << src_bit):
                result |= (1 << j)
        codeword = result
    return codeword & codeword_mask(rdd)


# ══════════════════════════════════════════════════════════════════════════════
#  §2  DIAGONAL DEINTERLEAVER
# ══════════════════════════════════════════════════════════════════════════════

def deinterleave_block(block: Sequence[int], ppm: int, rdd: int) -> List[int]:
    """
    Deinterleave one block of MSB-swapped symbols.

    Parameters
    ----------
    block : list of ``4 + rdd`` symbol values, already passed through
            :func:`swap_msbs`
    ppm   : bits per symbol, also the number of codewords produced
    rdd   : redundancy bits per codeword

    Returns
    -------
    List of ``ppm`` codewords of ``4 + rdd`` bits, in Hamming order.
    """
    n = 4 + rdd
    top = 1 << (ppm - 1)
    words = [0] * ppm
    bit_idx = 0
    bit_offset = 0

    for bitcount in range(ppm * n):
        if block[bitcount % n] & (top >> ((bit_idx + bit_offset) % ppm)):
            words[bitcount // n] |= 1 << (bitcount % n)

        if bitcount % n == n - 1:
            bit_idx = 0
            bit_offset += 1
        else:
            bit_idx += 1

    return [to_hamming_order(w, rdd) for w in words]


def deinterleave(symbols: Iterable[int], ppm: int, rdd: int) -> np.ndarray:
    """
    Deinterleave a symbol sequence into codewords.

    Processes ``len(symbols) // (4 + rdd)`` complete blocks and returns
    ``ppm`` codewords per block.  Trailing symbols that do not fill a
    block produce nothing.
    """
    check_geometry(ppm, rdd)
    n = 4 + rdd
    swapped = [swap_msbs(int(s), ppm) for s in symbols]

    codewords: List[int] = []
    for start in range(0, len(swapped) - n + 1, n):
        codewords.extend(deinterleave_block(swapped[start:start + n], ppm, rdd))

    return np.array(codewords, dtype=CODEWORD_DTYPE)


def leftover_symbols(count: int, rdd: int) -> int:
    """Number of trailing symbols :func:`deinterleave` will drop."""
    return count % (4 + rdd)
