"""
hamming.py: LoRa Hamming(4+RDD, 4) Decode (RX Stage 5)
=======================================================

Checks and, where the code allows, corrects each deinterleaved codeword,
then extracts its 4-bit data nibble.

Codeword layout (Hamming order, RDD = 4):

    Bit position:   7    6    5    4    3    2    1    0
    Role:          p1   p2   d1   p3   d2   d3   d4   p4

For RDD < 4 the layout is the same with the low ``4 - RDD`` positions
dropped, so every syndrome mask except t8 is shifted right by ``4 - RDD``.

Syndromes
─────────
  t1 : parity over 0xAA >> (4 - RDD)
  t2 : parity over 0x66 >> (4 - RDD)
  t4 : parity over 0x1E >> (4 - RDD)
  t8 : parity over 0xFE              (RDD 4 only)

  error_pos     = -1 + t1 + 2·t2 + 4·t4
  num_set_flags = t1 + t2 + t4

Correction policy
─────────────────
  RDD 1, 2 : detection only, nothing is changed.
  RDD 3, 4 : if 0 <= error_pos and num_set_flags < 3, flip the bit
             ``(0x80 >> (4 - RDD)) >> error_pos``.  A codeword with all
             three flags set is left as received.
  RDD 4    : afterwards count the set bits of the byte: fewer than 3
             clears the codeword, more than 5 sets it to 0xFF.

No error is ever raised for noisy codewords; the CRC above the PHY is the
real detector of residual corruption.
"""

from typing import Dict, Iterable, List, Tuple

import numpy as np

from .deinterleave import CODEWORD_DTYPE, RDD_MAX, RDD_MIN


HAMMING_T1_BITMASK = 0xAA  # 0b10101010
HAMMING_T2_BITMASK = 0x66  # 0b01100110
HAMMING_T4_BITMASK = 0x1E  # 0b00011110
HAMMING_T8_BITMASK = 0xFE  # 0b11111110

# Which syndromes exist at each redundancy level
SYNDROMES = {
    1: ('t1',),
    2: ('t1', 't2'),
    3: ('t1', 't2', 't4'),
    4: ('t1', 't2', 't4', 't8'),
}


def _syndrome_masks(rdd: int) -> Dict[str, int]:
    shift = 4 - rdd
    masks = {
        't1': HAMMING_T1_BITMASK >> shift,
        't2': HAMMING_T2_BITMASK >> shift,
        't4': HAMMING_T4_BITMASK >> shift,
        't8': HAMMING_T8_BITMASK,
    }
    return {name: masks[name] for name in SYNDROMES[rdd]}


SYNDROME_MASKS = {rdd: _syndrome_masks(rdd) for rdd in SYNDROMES}


# ══════════════════════════════════════════════════════════════════════════════
#  §1  SYNDROMES
# ══════════════════════════════════════════════════════════════════════════════

def parity(c: int, bitmask: int) -> int:
    """XOR-parity of the bits of *c* selected by *bitmask*."""
    return bin(c & bitmask).count('1') % 2


def syndromes(codeword: int, rdd: int) -> Dict[str, int]:
    """Syndrome flags that apply at *rdd*, keyed 't1', 't2', 't4', 't8'."""
    return {name: parity(codeword, mask)
            for name, mask in SYNDROME_MASKS[rdd].items()}


# ══════════════════════════════════════════════════════════════════════════════
#  §2  CORRECTION + NIBBLE EXTRACTION
# ══════════════════════════════════════════════════════════════════════════════

def correct_codeword(codeword: int, rdd: int) -> Tuple[int, bool]:
    """
    Apply the correction policy for *rdd* to one codeword.

    Returns
    -------
    (codeword, uncorrected) : tuple
        codeword    : codeword after correction (and RDD 4 cleanup)
        uncorrected : True when all three of t1, t2, t4 fired at RDD > 2,
                      which this code does not try to fix
    """
    flags = syndromes(codeword, rdd)
    t1 = flags.get('t1', 0)
    t2 = flags.get('t2', 0)
    t4 = flags.get('t4', 0)

    error_pos = -1 + t1 + 2 * t2 + 4 * t4
    num_set_flags = t1 + t2 + t4
    uncorrected = False

    # Hamming(4+rdd, 4) only corrects from rdd 3 up
    if rdd > 2:
        if error_pos >= 0 and num_set_flags < 3:
            codeword ^= (0x80 >> (4 - rdd)) >> error_pos
        elif num_set_flags == 3:
            uncorrected = True

        if rdd == 4:
            num_set_bits = bin(codeword & 0xFF).count('1')
            if num_set_bits < 3:
                codeword = 0x00
            elif num_set_bits > 5:
                codeword = 0xFF

    return codeword, uncorrected


def extract_nibble(codeword: int, rdd: int) -> int:
    """Pick the four data bits out of a Hamming-ordered codeword."""
    if rdd == 3:
        return (((codeword & 0x10) >> 1) |
                (codeword & 0x04) |
                (codeword & 0x02) |
                (codeword & 0x01)) & 0x0F
    if rdd == 4:
        return (((codeword & 0x20) >> 2) |
                ((codeword & 0x08) >> 1) |
                ((codeword & 0x04) >> 1) |
                ((codeword & 0x02) >> 1)) & 0x0F
    return codeword & 0x0F


def decode_codeword(codeword: int, rdd: int) -> Tuple[int, bool]:
    """Correct one codeword and return ``(nibble, uncorrected)``."""
    corrected, uncorrected = correct_codeword(codeword, rdd)
    return extract_nibble(corrected, rdd), uncorrected


# ══════════════════════════════════════════════════════════════════════════════
#  §3  SEQUENCE DECODE
# ══════════════════════════════════════════════════════════════════════════════

def hamming_decode_with_flags(codewords: Iterable[int],
                              rdd: int) -> Tuple[np.ndarray, List[int]]:
    """
    Decode a codeword sequence.

    Returns the nibbles and the indices of codewords passed through
    uncorrected.
    """
    if not RDD_MIN <= rdd <= RDD_MAX:
        raise ValueError(f"rdd must be in [{RDD_MIN}, {RDD_MAX}], got {rdd}")

    nibbles = []
    uncorrected = []
    for i, cw in enumerate(codewords):
        nibble, missed = decode_codeword(int(cw), rdd)
        nibbles.append(nibble)
        if missed:
            uncorrected.append(i)
    return np.array(nibbles, dtype=CODEWORD_DTYPE), uncorrected


def hamming_decode(codewords: Iterable[int], rdd: int) -> np.ndarray:
    """Decode a codeword sequence to one nibble per codeword."""
    nibbles, _ = hamming_decode_with_flags(codewords, rdd)
    return nibbles
