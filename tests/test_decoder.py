import threading

import numpy as np
import pytest

from lora_rx.config import DecoderConfig
from lora_rx.decoder import Decoder, assemble, pack_nibbles, split_symbols
from lora_rx.encoder import encode_bytes, encode_packet, split_nibbles


ALL_CONFIGS = [(sf, cr, header)
               for sf in range(6, 13)
               for cr in range(1, 5)
               for header in (False, True)
               if not (sf == 6 and header)]


def test_known_three_byte_message_sf8_cr4():
    cfg = DecoderConfig(spreading_factor=8, code_rate=4, header_present=True)
    message = b'\x4c\x6f\x52'
    header = encode_bytes(message, cfg)
    assert len(header) == 8

    # four trailing payload symbols: half a CR 4/8 block
    symbols = np.concatenate([header, np.array([17, 99, 3, 250], dtype=np.uint16)])
    result = Decoder(cfg).decode_packet(symbols)

    assert result.header_nibbles.tolist() == split_nibbles(message)
    assert len(result.payload_nibbles) == 0
    assert pack_nibbles(result.to_bytes()) == message
    assert result.dropped_symbols == 4
    assert result.truncated


@pytest.mark.parametrize("sf,cr,header", ALL_CONFIGS)
def test_round_trip_every_configuration(sf, cr, header):
    cfg = DecoderConfig(sf, cr, header)
    data = bytes([0x13, 0x37, 0xC0, 0xDE, 0xA5, 0x5A, 0xF0])
    nibbles = split_nibbles(data)

    out = Decoder(cfg).decode(encode_bytes(data, cfg))

    head = sf - 2
    payload_blocks = -(-(len(nibbles) - head) // sf)
    assert len(out) == head + payload_blocks * sf
    assert list(out[:len(nibbles)]) == nibbles
    assert not any(out[len(nibbles):])


def test_output_is_one_nibble_per_byte():
    cfg = DecoderConfig(7, 1, header_present=False)
    out = Decoder(cfg).decode(encode_bytes(b'\xff\xff\xff\xff\xff', cfg))
    assert all(b <= 0x0F for b in out)


def test_payload_partial_block_not_an_error():
    cfg = DecoderConfig(9, 2, header_present=True)
    symbols = encode_packet([1, 2, 3], [4, 5, 6], cfg).tolist()
    result = Decoder(cfg).decode_packet(symbols + [1, 2, 3])
    assert len(result.payload_codewords) == 9
    assert result.payload_nibbles.tolist()[:3] == [4, 5, 6]
    assert result.dropped_symbols == 3


def test_short_packets():
    dec = Decoder.from_params(8, 4, True)
    assert dec.decode([]) == b''
    result = dec.decode_packet([1, 2, 3, 4, 5])
    assert result.to_bytes() == b''
    assert result.dropped_symbols == 5


def test_split_symbols():
    symbols = np.arange(12, dtype=np.uint16)
    header, payload = split_symbols(symbols)
    assert header.tolist() == list(range(8))
    assert payload.tolist() == [8, 9, 10, 11]


def test_stage_buffers():
    cfg = DecoderConfig(10, 3, header_present=True)
    symbols = encode_bytes(b'hello', cfg)
    original = symbols.copy()
    result = Decoder(cfg).decode_packet(symbols)

    assert np.array_equal(symbols, original)
    assert len(result.header_symbols) == 8
    assert len(result.header_codewords) == 8       # SF - 2
    assert len(result.payload_codewords) == 10     # one SF10 block
    assert result.uncorrected_header == []
    assert result.uncorrected_payload == []
    assert not result.truncated


def test_custom_whitening_table():
    cfg = DecoderConfig(8, 4, header_present=True,
                        whitening=[0x3F, 0x01, 0x22, 0x00, 0x15, 0x2A, 0x07, 0x30, 0xFF])
    data = b'\x01\x23\x45\x67\x89'
    out = Decoder(cfg).decode(encode_bytes(data, cfg))
    assert pack_nibbles(out)[:len(data)] == data


def test_whitening_mismatch_complements_header():
    tx = DecoderConfig(8, 4, header_present=True)
    # every header bit inverted relative to the transmitter's table
    rx = DecoderConfig(8, 4, header_present=True,
                       whitening=[w ^ 0x3F for w in tx.whitening_table])
    message = b'\x4c\x6f\x52'
    out = Decoder(rx).decode(encode_bytes(message, tx))
    assert list(out) == [n ^ 0xF for n in split_nibbles(message)]


def test_handle_message():
    cfg = DecoderConfig(7, 2, header_present=False)
    dec = Decoder(cfg)
    symbols = encode_bytes(b'\xab\xcd', cfg)
    meta = {'freq': 868.1e6}
    out_meta, out = dec.handle_message((meta, symbols))
    assert out_meta == meta and out_meta is not meta
    assert out == dec.decode(symbols)


def test_assemble_and_pack():
    assert assemble([1], [2, 3]) == b'\x01\x02\x03'
    assert pack_nibbles([1, 2, 3]) == b'\x12\x30'
    assert pack_nibbles([]) == b''


def test_decoder_shared_across_threads():
    cfg = DecoderConfig(12, 4, header_present=True)
    dec = Decoder(cfg)
    packets = [encode_bytes(bytes([i] * 6), cfg) for i in range(8)]
    expected = [dec.decode(p) for p in packets]
    results = [None] * len(packets)

    def work(i):
        results[i] = dec.decode(packets[i])

    threads = [threading.Thread(target=work, args=(i,)) for i in range(len(packets))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results == expected


def test_repr():
    assert repr(Decoder.from_params(8, 4, False)) == "Decoder(SF=8, CR=4/8, implicit)"
