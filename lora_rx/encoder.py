"""
encoder.py: LoRa PHY nibble-to-symbol encoder
=============================================

The exact inverse of :mod:`lora_rx.decoder`, used to build symbol vectors
with known content (tests, ``lora-rx encode``).

Processing pipeline (reverse order of the RX stages):
──────────────────────────────────────────────────────
  nibbles
    ① Hamming encode       →  codewords of (4 + RDD) bits, Hamming order
    ② Pad                  →  whole interleaver blocks (PPM codewords each)
    ③ Wire order           →  undo the RX Hamming-order permutation
    ④ Diagonal interleave  →  (4 + RDD) symbols of PPM bits per block
    ⑤ MSB swap             →  exchange bits PPM-1 and PPM-2
    ⑥ Whiten               →  XOR with the configured table
    ⑦ Gray inverse         →  what the demodulator would hand us

Header nibbles always fill exactly one (SF-2, RDD 4) block = 8 symbols;
payload nibbles fill as many (SF, CR) blocks as needed.
"""

from typing import Iterable, List, Sequence

import numpy as np

from .config import HEADER_RDD, DecoderConfig
from .deinterleave import HAMMING_ORDER, check_geometry, swap_msbs
from .gray import SYMBOL_DTYPE, degray_inverse
from .hamming import HAMMING_T8_BITMASK, parity
from .whitening import dewhiten


# ══════════════════════════════════════════════════════════════════════════════
#  §1  NIBBLE HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def split_nibbles(data: bytes) -> List[int]:
    """Split bytes into nibbles, high nibble first (inverse of pack_nibbles)."""
    nibbles = []
    for byte in data:
        nibbles.append((byte >> 4) & 0x0F)
        nibbles.append(byte & 0x0F)
    return nibbles


# ══════════════════════════════════════════════════════════════════════════════
#  §2  HAMMING ENCODE
# ══════════════════════════════════════════════════════════════════════════════
#
#  Data bits sit where hamming.extract_nibble() reads them; parity bits are
#  chosen so that every syndrome of hamming.SYNDROMES[rdd] is zero.
#
#    RDD 4:  d3→5  d2→3  d1→2  d0→1   p(7)=d3^d2^d0  p(6)=d3^d1^d0
#                                      p(4)=d2^d1^d0  p(0)=parity of 7..1
#    RDD 3:  d3→4  d2→2  d1→1  d0→0   p(6)=d3^d2^d0  p(5)=d3^d1^d0
#                                      p(3)=d2^d1^d0
#    RDD 2:  data in 3..0             p(5)=d3^d1     p(4)=d3^d0
#    RDD 1:  data in 3..0             p(4)=d2^d0
# ──────────────────────────────────────────────────────────────────────────────

def hamming_encode(nibble: int, rdd: int) -> int:
    """Encode one nibble into a Hamming-ordered (4+rdd)-bit codeword."""
    d0 = nibble & 1
    d1 = (nibble >> 1) & 1
    d2 = (nibble >> 2) & 1
    d3 = (nibble >> 3) & 1

    if rdd == 4:
        cw = (d3 << 5) | (d2 << 3) | (d1 << 2) | (d0 << 1)
        cw |= (d3 ^ d2 ^ d0) << 7
        cw |= (d3 ^ d1 ^ d0) << 6
        cw |= (d2 ^ d1 ^ d0) << 4
        cw |= parity(cw, HAMMING_T8_BITMASK)
    elif rdd == 3:
        cw = (d3 << 4) | (d2 << 2) | (d1 << 1) | d0
        cw |= (d3 ^ d2 ^ d0) << 6
        cw |= (d3 ^ d1 ^ d0) << 5
        cw |= (d2 ^ d1 ^ d0) << 3
    elif rdd == 2:
        cw = (nibble & 0x0F) | ((d3 ^ d1) << 5) | ((d3 ^ d0) << 4)
    elif rdd == 1:
        cw = (nibble & 0x0F) | ((d2 ^ d0) << 4)
    else:
        raise ValueError(f"rdd must be in [1, 4], got {rdd}")
    return cw


# ══════════════════════════════════════════════════════════════════════════════
#  §3  DIAGONAL INTERLEAVER
# ══════════════════════════════════════════════════════════════════════════════

def to_wire_order(codeword: int, rdd: int) -> int:
    """Inverse of deinterleave.to_hamming_order()."""
    pattern = HAMMING_ORDER.get(rdd)
    if pattern is None:
        return codeword
    result = 0
    for j, src_bit in enumerate(pattern):
        if codeword & (1 << j):
            result |= (1 << src_bit)
    return result


def interleave_block(codewords: Sequence[int], ppm: int, rdd: int) -> List[int]:
    """
    Interleave ``ppm`` Hamming-ordered codewords into ``4 + rdd`` symbols.

    Codeword k bit j goes to symbol j bit ``(ppm-1) - ((j + k) % ppm)``,
    which is where deinterleave_block() reads it back from.
    """
    n = 4 + rdd
    top = 1 << (ppm - 1)
    symbols = [0] * n
    for k, cw in enumerate(codewords):
        wire = to_wire_order(int(cw), rdd)
        for j in range(n):
            if wire & (1 << j):
                symbols[j] |= top >> ((j + k) % ppm)
    return [swap_msbs(s, ppm) for s in symbols]


def interleave(codewords: Sequence[int], ppm: int, rdd: int) -> np.ndarray:
    """
    Interleave a codeword sequence; the last block is zero-padded to
    ``ppm`` codewords.
    """
    check_geometry(ppm, rdd)
    words = [int(cw) for cw in codewords]
    if len(words) % ppm:
        words += [0] * (ppm - len(words) % ppm)

    symbols: List[int] = []
    for start in range(0, len(words), ppm):
        symbols.extend(interleave_block(words[start:start + ppm], ppm, rdd))
    return np.array(symbols, dtype=SYMBOL_DTYPE)


# ══════════════════════════════════════════════════════════════════════════════
#  §4  WHITENING + PACKET ENCODE
# ══════════════════════════════════════════════════════════════════════════════

def whiten(symbols: Iterable[int], table: Sequence[int]) -> np.ndarray:
    """XOR whitening is its own inverse."""
    return dewhiten(symbols, table)


def encode_packet(header_nibbles: Sequence[int],
                  payload_nibbles: Sequence[int],
                  config: DecoderConfig) -> np.ndarray:
    """
    Build the symbol sequence a demodulator would deliver for these nibbles.

    ``header_nibbles`` holds at most SF - 2 nibbles (zero-padded to that);
    ``payload_nibbles`` is zero-padded to a whole number of SF-codeword
    blocks.
    """
    if len(header_nibbles) > config.header_ppm:
        raise ValueError(
            f"header block holds {config.header_ppm} nibbles at "
            f"SF{config.spreading_factor}, got {len(header_nibbles)}")

    header_cw = [hamming_encode(n, HEADER_RDD) for n in header_nibbles]
    header_syms = interleave(header_cw or [0], config.header_ppm, HEADER_RDD)

    payload_cw = [hamming_encode(n, config.code_rate) for n in payload_nibbles]
    payload_syms = interleave(payload_cw, config.payload_ppm, config.code_rate)

    symbols = np.concatenate([header_syms, payload_syms])
    return degray_inverse(whiten(symbols, config.whitening_table))


def encode_bytes(data: bytes, config: DecoderConfig) -> np.ndarray:
    """
    Encode bytes, filling the header block first and the payload after.

    The decoded output of the result starts with ``split_nibbles(data)``.
    """
    nibbles = split_nibbles(data)
    head = config.header_ppm
    return encode_packet(nibbles[:head], nibbles[head:], config)
