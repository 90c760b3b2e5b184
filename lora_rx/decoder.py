"""
decoder.py: LoRa PHY symbol-to-nibble decoder
=============================================

Runs one demodulated packet through every RX stage:

  symbols
    ① Degray           s ^ (s >> 1)
    ② Dewhiten         XOR with the configured whitening table
    ③ Split            first 8 symbols = header block, rest = payload
    ④ Deinterleave     header at (SF-2, RDD 4), payload at (SF, CR)
    ⑤ Hamming decode   header at RDD 4, payload at RDD CR
    ⑥ Assemble         header nibbles followed by payload nibbles

Each stage returns a new buffer, so a :class:`Decoder` holds no state
besides its frozen config and can be shared across threads.

The output carries one decoded nibble per byte.  :func:`pack_nibbles`
folds them two per byte for consumers that want packed data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from .config import HEADER_RDD, HEADER_SYMBOL_COUNT, DecoderConfig
from .deinterleave import deinterleave, leftover_symbols
from .gray import as_symbols, degray
from .hamming import hamming_decode_with_flags
from .whitening import dewhiten


@dataclass(eq=False)
class PacketResult:
    """Every intermediate buffer of one decoded packet."""
    symbols: np.ndarray
    degrayed: np.ndarray
    dewhitened: np.ndarray
    header_symbols: np.ndarray
    payload_symbols: np.ndarray
    header_codewords: np.ndarray
    payload_codewords: np.ndarray
    header_nibbles: np.ndarray
    payload_nibbles: np.ndarray
    uncorrected_header: List[int] = field(default_factory=list)
    uncorrected_payload: List[int] = field(default_factory=list)
    # header leftovers (packets under 8 symbols) plus payload leftovers
    dropped_symbols: int = 0

    @property
    def nibbles(self) -> np.ndarray:
        return np.concatenate([self.header_nibbles, self.payload_nibbles])

    @property
    def truncated(self) -> bool:
        return self.dropped_symbols > 0

    def to_bytes(self) -> bytes:
        return assemble(self.header_nibbles, self.payload_nibbles)


# ══════════════════════════════════════════════════════════════════════════════
#  §1  SPLITTER + ASSEMBLER
# ══════════════════════════════════════════════════════════════════════════════

def split_symbols(symbols: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Partition a packet into its header block and payload symbols."""
    return symbols[:HEADER_SYMBOL_COUNT].copy(), symbols[HEADER_SYMBOL_COUNT:].copy()


def assemble(header_nibbles: Iterable[int], payload_nibbles: Iterable[int]) -> bytes:
    """Concatenate header and payload nibbles, one nibble per byte."""
    return bytes(int(n) & 0x0F for n in header_nibbles) + \
        bytes(int(n) & 0x0F for n in payload_nibbles)


def pack_nibbles(nibbles: Sequence[int]) -> bytes:
    """
    Pack nibble pairs into bytes, first nibble in the high half.

    An odd trailing nibble ends up in the high half of a last byte.
    """
    out = bytearray()
    for i in range(0, len(nibbles), 2):
        hi = int(nibbles[i]) & 0x0F
        lo = int(nibbles[i + 1]) & 0x0F if i + 1 < len(nibbles) else 0
        out.append((hi << 4) | lo)
    return bytes(out)


# ══════════════════════════════════════════════════════════════════════════════
#  §2  DECODER
# ══════════════════════════════════════════════════════════════════════════════

class Decoder:
    """Per-packet decoder for one fixed configuration."""

    def __init__(self, config: DecoderConfig):
        self.config = config

    @classmethod
    def from_params(cls, spreading_factor: int, code_rate: int,
                    header_present: bool = True) -> 'Decoder':
        return cls(DecoderConfig(spreading_factor, code_rate, header_present))

    def decode_packet(self, symbols: Iterable[int]) -> PacketResult:
        cfg = self.config
        raw = as_symbols(symbols)

        degrayed = degray(raw)
        dewhitened = dewhiten(degrayed, cfg.whitening_table)
        header_syms, payload_syms = split_symbols(dewhitened)

        header_cw = deinterleave(header_syms, cfg.header_ppm, HEADER_RDD)
        header_nib, header_bad = hamming_decode_with_flags(header_cw, HEADER_RDD)

        payload_cw = deinterleave(payload_syms, cfg.payload_ppm, cfg.code_rate)
        payload_nib, payload_bad = hamming_decode_with_flags(payload_cw, cfg.code_rate)

        dropped = (leftover_symbols(len(header_syms), HEADER_RDD) +
                   leftover_symbols(len(payload_syms), cfg.code_rate))

        return PacketResult(
            symbols=raw,
            degrayed=degrayed,
            dewhitened=dewhitened,
            header_symbols=header_syms,
            payload_symbols=payload_syms,
            header_codewords=header_cw,
            payload_codewords=payload_cw,
            header_nibbles=header_nib,
            payload_nibbles=payload_nib,
            uncorrected_header=header_bad,
            uncorrected_payload=payload_bad,
            dropped_symbols=dropped,
        )

    def decode(self, symbols: Iterable[int]) -> bytes:
        """Decode one packet to its header + payload nibbles."""
        return self.decode_packet(symbols).to_bytes()

    def handle_message(self, msg: Tuple[Dict[str, Any], Iterable[int]]) -> Tuple[Dict[str, Any], bytes]:
        """
        Message-port entry point: ``(meta, symbols)`` in,
        ``(meta, nibbles)`` out.  *meta* is passed through as a copy.
        """
        meta, symbols = msg
        return dict(meta or {}), self.decode(symbols)

    def __repr__(self) -> str:
        c = self.config
        mode = 'explicit' if c.header_present else 'implicit'
        return f"Decoder(SF={c.spreading_factor}, CR=4/{4 + c.code_rate}, {mode})"
