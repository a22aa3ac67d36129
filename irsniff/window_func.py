"""Window function generation."""

from __future__ import annotations

import numpy as np


def blackman_window(n: int) -> np.ndarray:
    """Return a Blackman window of length ``n`` as float32."""
    if n < 0:
        raise ValueError("window length must not be negative")
    i = np.arange(n, dtype=np.float32)
    denom = np.float32(n - 1)
    two_pi = np.float32(2.0 * np.pi)
    four_pi = np.float32(4.0 * np.pi)
    with np.errstate(divide="ignore", invalid="ignore"):
        w = (
            np.float32(0.42)
            - np.float32(0.5) * np.cos(two_pi * i / denom)
            + np.float32(0.08) * np.cos(four_pi * i / denom)
        )
    return w.astype(np.float32)