"""
lora_rx: LoRa PHY symbol decoder
================================

Turns one packet of demodulated LoRa symbols back into the data nibbles
the transmitter coded: Gray map, dewhitening, diagonal deinterleaving and
Hamming(4+CR, 4) decoding.
"""

from .config import ConfigError, DecoderConfig
from .decoder import Decoder, PacketResult, assemble, pack_nibbles
from .deinterleave import deinterleave
from .gray import degray
from .hamming import hamming_decode
from .whitening import WHITENING_TABLES, dewhiten, select_table

__version__ = '0.1.0'

__all__ = [
    'ConfigError',
    'Decoder',
    'DecoderConfig',
    'PacketResult',
    'WHITENING_TABLES',
    'assemble',
    'degray',
    'deinterleave',
    'dewhiten',
    'hamming_decode',
    'pack_nibbles',
    'select_table',
]
