"""
whitening.py: Whitening sequences and dewhitening (RX Stage 2)
===============================================================

LoRa XORs the start of every packet with a pseudo-random sequence so the
transmitted bit distribution stays flat.  On this receiver the XOR is
undone in the *symbol* domain, right after the Gray map and before the
deinterleaver, one mask per symbol.

Only the first ``len(table)`` symbols are touched; any symbol past the
end of the table passes through unchanged.  With the default tables that
is the 8-symbol header region.

Default tables
──────────────
There is one implicit-header table per spreading factor.  Explicit-header
mode shares the implicit table, except at SF8 where it has its own.  The
tables are drawn from the SX126x whitening LFSR (x^9 + x^5 + 1, state
[X8..X0] = [1,0,0,0,0,0,0,0,0], X0 is the output bit) and packed MSB
first into symbol-width masks:

  • implicit header  : SF bits per mask
  • SF8 explicit     : 6 bits per mask (the reduced-rate header width)

Chips with an empirically captured sequence (SX1272 / RN2483) need their
own table; pass it to ``DecoderConfig(whitening=...)``.
"""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .gray import SYMBOL_DTYPE, as_symbols


WHITENING_LENGTH = 8
SPREADING_FACTORS = tuple(range(6, 13))

LFSR_SEED = (1, 0, 0, 0, 0, 0, 0, 0, 0)


# ══════════════════════════════════════════════════════════════════════════════
#  §1  TABLE GENERATION
# ══════════════════════════════════════════════════════════════════════════════

def lfsr_bits(count: int) -> List[int]:
    """Return the first *count* output bits of the whitening LFSR."""
    lfsr = list(LFSR_SEED)
    bits = []
    for _ in range(count):
        bits.append(lfsr[8])                # X0 is output
        feedback = lfsr[8] ^ lfsr[4]        # taps: X0 ⊕ X4
        lfsr = [feedback] + lfsr[:8]        # shift right, insert feedback
    return bits


def generate_table(width: int, length: int = WHITENING_LENGTH) -> Tuple[int, ...]:
    """Pack consecutive LFSR bits into *length* masks of *width* bits."""
    bits = lfsr_bits(width * length)
    table = []
    for i in range(length):
        mask = 0
        for b in bits[i * width:(i + 1) * width]:
            mask = (mask << 1) | b
        table.append(mask)
    return tuple(table)


def _build_tables() -> Mapping[Tuple[int, bool], Tuple[int, ...]]:
    tables = {}
    for sf in SPREADING_FACTORS:
        tables[(sf, False)] = generate_table(sf)
        # SF6 has no explicit-header mode
        if sf > 6:
            tables[(sf, True)] = tables[(sf, False)]
    tables[(8, True)] = generate_table(8 - 2)
    return MappingProxyType(tables)


WHITENING_TABLES = _build_tables()


def select_table(spreading_factor: int, header_present: bool) -> Tuple[int, ...]:
    """Look up the default whitening table for one configuration."""
    try:
        return WHITENING_TABLES[(spreading_factor, bool(header_present))]
    except KeyError:
        raise ValueError(
            f"no whitening table for SF={spreading_factor}, "
            f"header_present={header_present}") from None


# ══════════════════════════════════════════════════════════════════════════════
#  §2  DEWHITENING
# ══════════════════════════════════════════════════════════════════════════════

def dewhiten(symbols: Iterable[int], table: Sequence[int]) -> np.ndarray:
    """
    XOR ``symbols[i]`` with ``table[i]`` for every index both cover.

    Symbols beyond the table length are copied through unchanged.
    Returns a new array.
    """
    out = as_symbols(symbols)
    n = min(len(out), len(table))
    if n:
        out[:n] ^= np.asarray(table[:n], dtype=SYMBOL_DTYPE)
    return out
