"""
gray.py: Gray mapping of received symbols (RX Stage 1)
=======================================================

The transmitter applies the Gray *inverse* to every interleaved symbol
before modulating it onto a chirp, so the bin index recovered by the
demodulator is still in Gray-code space.  The receiver undoes that with
the standard binary-reflected Gray map:

    symbol = s ^ (s >> 1)

Naming trap: the RX step is called "degray" because it leaves the
Gray-coded chirp domain, even though the arithmetic is the textbook
binary->Gray encode.  The TX direction (cumulative XOR of all right
shifts) is provided as ``degray_inverse`` for the encoder and tests.

Pipeline position:
  demodulated symbols -> **[Degray]** -> Dewhiten -> Split
  -> Deinterleave -> Hamming decode -> Assemble
"""

from typing import Iterable

import numpy as np


# Symbols are at most 12 bits wide (SF12); the native width is 16 bits.
SYMBOL_DTYPE = np.uint16


def as_symbols(symbols: Iterable[int]) -> np.ndarray:
    """Copy *symbols* into a fresh uint16 working buffer."""
    return np.array(list(symbols), dtype=SYMBOL_DTYPE)


def degray(symbols: Iterable[int]) -> np.ndarray:
    """
    Map every received symbol out of Gray-code space.

    Returns a new array; the input is never modified.  Bits above the
    spreading factor are don't-care and are dropped by the deinterleaver.
    """
    s = as_symbols(symbols)
    return s ^ (s >> 1)


def degray_inverse(symbols: Iterable[int]) -> np.ndarray:
    """
    Inverse of :func:`degray` over the full 16-bit symbol width.

    Each pass folds the running prefix XOR down by half the previous
    distance, so four passes cover all 16 bits.
    """
    s = as_symbols(symbols)
    for shift in (8, 4, 2, 1):
        s = s ^ (s >> shift)
    return s
