"""
cli.py: ``lora-rx`` stage tool
==============================

  lora-rx decode [input.json] [-o decoded.json] [--sf N --cr N --header|--implicit]
                 [--whitening table.json] [--pack] [--dump-stages] [--plot fig.png]

      Reads a symbol file, runs the full RX chain and writes the input
      document back out with a 'decoded' section added.

  lora-rx encode --sf N --cr N [--header|--implicit] [--hex 48656C6C6F]
                 [--header-hex …] [--payload-hex …] [-o symbols.json]

      Builds the symbol file a demodulator would produce for known data.

Symbol file format (shared with the capture stages):

    {
      "config":  {"sf": 8, "cr": 4, "header": true},
      "symbols": [{"index": 0, "role": "header", "symbol_value": 93}, …]
    }

Plain integers are also accepted in "symbols".
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from .config import ConfigError, DecoderConfig
from .decoder import Decoder, PacketResult, pack_nibbles
from .encoder import encode_packet, split_nibbles
from .plot import plot_packet


# ══════════════════════════════════════════════════════════════════════════════
#  §1  HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def load_symbols(data: dict) -> List[int]:
    symbols = []
    for s in data.get('symbols', []):
        symbols.append(int(s['symbol_value']) if isinstance(s, dict) else int(s))
    return symbols


def resolve_config(args, file_config: dict) -> DecoderConfig:
    """Command-line values win over the input file's 'config' section."""
    sf = args.sf if args.sf is not None else file_config.get('sf')
    cr = args.cr if args.cr is not None else file_config.get('cr')
    header = args.header if args.header is not None else file_config.get('header', True)
    if sf is None or cr is None:
        raise ConfigError("spreading factor and code rate are required (--sf/--cr)")

    whitening = file_config.get('whitening')
    if getattr(args, 'whitening', None):
        with open(args.whitening, 'r') as f:
            whitening = json.load(f)
    return DecoderConfig(int(sf), int(cr), bool(header), whitening)


def fmt_hex(vals) -> str:
    return ' '.join(f'0x{int(v):02X}' for v in vals)


def print_bitwise(title: str, values, width: int) -> None:
    print(f"── {title} ({len(values)}) ──")
    for i, v in enumerate(values):
        print(f"{i:4}\t{int(v):0{width}b}\t{int(v):x}")


def dump_stages(result: PacketResult, cfg: DecoderConfig) -> None:
    sf = cfg.spreading_factor
    print_bitwise("Degrayed symbols", result.degrayed, 16)
    print_bitwise("Header symbols", result.header_symbols, 16)
    print_bitwise("Payload symbols", result.payload_symbols, 16)
    print_bitwise(f"Header codewords (PPM={sf - 2}, RDD=4)",
                  result.header_codewords, 8)
    print_bitwise(f"Payload codewords (PPM={sf}, RDD={cfg.code_rate})",
                  result.payload_codewords, 8)
    print()


# ══════════════════════════════════════════════════════════════════════════════
#  §2  DECODE
# ══════════════════════════════════════════════════════════════════════════════

def cmd_decode(args) -> int:
    if not os.path.exists(args.input):
        print(f"ERROR: {args.input} not found.")
        return 1

    with open(args.input, 'r') as f:
        data = json.load(f)

    try:
        cfg = resolve_config(args, data.get('config', {}))
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 1

    decoder = Decoder(cfg)
    symbols = load_symbols(data)
    result = decoder.decode_packet(symbols)

    if args.dump_stages:
        dump_stages(result, cfg)

    nibbles = result.nibbles.tolist()
    out_bytes = pack_nibbles(nibbles) if args.pack else result.to_bytes()

    data['decoded'] = {
        'config': cfg.as_dict(),
        'header': {
            'codewords': result.header_codewords.tolist(),
            'nibbles': result.header_nibbles.tolist(),
            'uncorrected': result.uncorrected_header,
        },
        'payload': {
            'codewords': result.payload_codewords.tolist(),
            'nibbles': result.payload_nibbles.tolist(),
            'uncorrected': result.uncorrected_payload,
        },
        'dropped_symbols': result.dropped_symbols,
        'packed': bool(args.pack),
        'bytes': list(out_bytes),
        'hex': out_bytes.hex().upper(),
    }

    with open(args.output, 'w') as f:
        json.dump(data, f, indent=2)

    # ── Summary ───────────────────────────────────────────────────────────
    print(f"{decoder!r}")
    print(f"Header  : {len(result.header_symbols):3d} symbols → "
          f"{len(result.header_codewords):3d} codewords")
    print(f"Payload : {len(result.payload_symbols):3d} symbols → "
          f"{len(result.payload_codewords):3d} codewords  "
          f"(block size {cfg.payload_block_size})")
    if result.truncated:
        print(f"  dropped {result.dropped_symbols} trailing symbol(s) "
              f"that did not fill an interleaver block")
    n_bad = len(result.uncorrected_header) + len(result.uncorrected_payload)
    if n_bad:
        print(f"  {n_bad} codeword(s) passed through uncorrected")
    print(f"Output ({len(out_bytes)} byte(s)): {fmt_hex(out_bytes)}")

    if args.plot:
        plot_packet(result, cfg.spreading_factor, cfg.code_rate, args.plot)
        print(f"Wrote stage plot to: {args.plot}")

    print(f"Wrote decoded output to: {args.output}")
    return 0


# ══════════════════════════════════════════════════════════════════════════════
#  §3  ENCODE
# ══════════════════════════════════════════════════════════════════════════════

def cmd_encode(args) -> int:
    try:
        cfg = resolve_config(args, {})
        nibbles = split_nibbles(bytes.fromhex(args.hex or ''))
    except (ConfigError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    head = cfg.header_ppm
    header_nibbles, payload_nibbles = nibbles[:head], nibbles[head:]
    try:
        if args.header_hex is not None:
            header_nibbles = split_nibbles(bytes.fromhex(args.header_hex))
        if args.payload_hex is not None:
            payload_nibbles = split_nibbles(bytes.fromhex(args.payload_hex))
        symbols = encode_packet(header_nibbles, payload_nibbles, cfg)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    data = {
        'config': cfg.as_dict(),
        'symbols': [
            {'index': i,
             'role': 'header' if i < cfg.header_block_size else 'payload',
             'symbol_value': int(v)}
            for i, v in enumerate(symbols)
        ],
    }
    with open(args.output, 'w') as f:
        json.dump(data, f, indent=2)

    print(f"SF = {cfg.spreading_factor}, CR = 4/{cfg.payload_block_size}")
    print(f"Header  nibbles ({len(header_nibbles)}): {header_nibbles}")
    print(f"Payload nibbles ({len(payload_nibbles)}): {payload_nibbles}")
    print(f"Symbols ({len(symbols)}): {symbols.tolist()}")
    print(f"Wrote symbols to: {args.output}")
    return 0


# ══════════════════════════════════════════════════════════════════════════════
#  §4  MAIN
# ══════════════════════════════════════════════════════════════════════════════

def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument('--sf', type=int, default=None,
                   help="Spreading factor 6..12")
    p.add_argument('--cr', type=int, default=None,
                   help="Code rate 1..4 (payload coded 4/(4+CR))")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument('--header', dest='header', action='store_true', default=None,
                      help="Explicit-header mode")
    mode.add_argument('--implicit', dest='header', action='store_false',
                      help="Implicit-header mode (required at SF6)")
    p.set_defaults(header=None)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog='lora-rx',
        description="LoRa PHY symbol decoder: Gray map, dewhiten, "
                    "deinterleave and Hamming-decode demodulated symbols.")
    sub = ap.add_subparsers(dest='command')
    sub.required = True

    dec = sub.add_parser('decode', help="Decode a symbol file")
    dec.add_argument('input', nargs='?', default='lora_symbols.json',
                     help="Input symbol JSON (default: lora_symbols.json)")
    dec.add_argument('-o', '--output', default='lora_decoded.json',
                     help="Output JSON path (default: lora_decoded.json)")
    _add_config_args(dec)
    dec.add_argument('--whitening', default=None,
                     help="JSON list overriding the whitening table")
    dec.add_argument('--pack', action='store_true',
                     help="Pack two nibbles per output byte")
    dec.add_argument('--dump-stages', action='store_true',
                     help="Print every intermediate buffer bit by bit")
    dec.add_argument('--plot', default=None, metavar='PATH',
                     help="Save a figure of the stage bit matrices")
    dec.set_defaults(func=cmd_decode)

    enc = sub.add_parser('encode', help="Build a symbol file from known data")
    enc.add_argument('-o', '--output', default='lora_symbols.json',
                     help="Output JSON path (default: lora_symbols.json)")
    _add_config_args(enc)
    enc.add_argument('--hex', default='',
                     help="Data bytes; the header block is filled first")
    enc.add_argument('--header-hex', default=None,
                     help="Header block bytes (overrides --hex split)")
    enc.add_argument('--payload-hex', default=None,
                     help="Payload bytes (overrides --hex split)")
    enc.set_defaults(func=cmd_encode)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
