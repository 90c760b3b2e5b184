"""
plot.py: Stage bit-matrix figures
=================================

Draws every intermediate buffer of a decoded packet as a bit matrix
(one row per symbol or codeword, MSB on the left), so a flipped bit or a
misaligned interleaver block stands out at a glance.
"""

from typing import Optional

import numpy as np
import matplotlib.pyplot as plt

from .decoder import PacketResult


def bit_matrix(values: np.ndarray, width: int) -> np.ndarray:
    """Rows of *width* bits, MSB first, one row per value."""
    values = np.asarray(values, dtype=np.int64).reshape(-1, 1)
    shifts = np.arange(width - 1, -1, -1)
    return (values >> shifts) & 1


def plot_packet(result: PacketResult, sf: int, code_rate: int,
                path: Optional[str] = None):
    """
    Plot the symbol and codeword stages of one packet.

    Saves to *path* when given, otherwise shows the figure.  Returns the
    matplotlib Figure.
    """
    panels = [
        ("Received symbols", result.symbols, sf),
        ("Degrayed", result.degrayed, sf),
        ("Dewhitened", result.dewhitened, sf),
        ("Header codewords (4/8)", result.header_codewords, 8),
        (f"Payload codewords (4/{4 + code_rate})",
         result.payload_codewords, 4 + code_rate),
    ]

    fig, axes = plt.subplots(1, len(panels), figsize=(3 * len(panels), 6))
    for ax, (title, values, width) in zip(axes, panels):
        ax.set_title(title, fontsize=9)
        if len(values):
            ax.imshow(bit_matrix(values, width), cmap='Greys',
                      aspect='auto', interpolation='nearest', vmin=0, vmax=1)
        ax.set_xlabel("bit (MSB → LSB)")
        ax.set_ylabel("index")
    fig.tight_layout()

    if path:
        fig.savefig(path)
        plt.close(fig)
    else:
        plt.show()
    return fig
