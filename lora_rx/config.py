"""
config.py: Decoder configuration
================================

The decoder is configured once and never changes afterwards:

  • spreading_factor  6..12   bits per symbol
  • code_rate         1..4    Hamming redundancy of the payload (RDD)
  • header_present    bool    explicit-header mode; not available at SF6

The whitening table is resolved here, once, from the
(spreading_factor, header_present) pair, and held on the frozen config so
every packet decoded with it shares the same read-only sequence.
"""

import numbers
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .whitening import select_table


SF_MIN, SF_MAX = 6, 12
CR_MIN, CR_MAX = 1, 4

# The first 8 symbols of every packet are one CR 4/8 block coded at SF - 2,
# whatever the header mode.
HEADER_SYMBOL_COUNT = 8
HEADER_RDD = 4


class ConfigError(ValueError):
    """Invalid decoder configuration."""


def _as_int(name, value) -> int:
    # numpy integers are Integral; bool is too, but is never a valid setting
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class DecoderConfig:
    spreading_factor: int
    code_rate: int
    header_present: bool = True
    whitening: Optional[Sequence[int]] = field(default=None)

    def __post_init__(self):
        sf = _as_int("spreading factor", self.spreading_factor)
        cr = _as_int("code rate", self.code_rate)
        if not SF_MIN <= sf <= SF_MAX:
            raise ConfigError(
                f"spreading factor must be in [{SF_MIN}, {SF_MAX}], got {sf!r}")
        if not CR_MIN <= cr <= CR_MAX:
            raise ConfigError(
                f"code rate must be in [{CR_MIN}, {CR_MAX}], got {cr!r}")
        if sf == 6 and self.header_present:
            raise ConfigError("SF6 only supports implicit-header mode")

        if self.whitening is None:
            table = select_table(sf, self.header_present)
        else:
            table = tuple(int(w) for w in self.whitening)
            bad = [w for w in table if not 0 <= w < (1 << sf)]
            if bad:
                raise ConfigError(
                    f"whitening entries {bad} do not fit {sf}-bit symbols")
        # frozen: bypass __setattr__ to store the normalised values
        object.__setattr__(self, 'spreading_factor', sf)
        object.__setattr__(self, 'code_rate', cr)
        object.__setattr__(self, 'header_present', bool(self.header_present))
        object.__setattr__(self, 'whitening', table)

    @property
    def header_ppm(self) -> int:
        return self.spreading_factor - 2

    @property
    def payload_ppm(self) -> int:
        return self.spreading_factor

    @property
    def header_block_size(self) -> int:
        return 4 + HEADER_RDD

    @property
    def payload_block_size(self) -> int:
        return 4 + self.code_rate

    @property
    def whitening_table(self) -> Tuple[int, ...]:
        return self.whitening

    def as_dict(self) -> dict:
        """Config in the JSON shape the stage files use."""
        return {
            'sf': self.spreading_factor,
            'cr': self.code_rate,
            'header': self.header_present,
        }
