"""Complex frequency rotator."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class Rotator:
    """Multiplies samples by a phase that advances by ``phase_incr`` per sample."""

    phase: complex = 1.0 + 0.0j
    phase_incr: complex = 1.0 + 0.0j

    def rotate(self, samples) -> np.ndarray:
        """Rotate ``samples``, advancing and renormalising the phase."""
        data = np.asarray(samples, dtype=np.complex64)
        n = data.size
        if n == 0:
            return data.copy()
        steps = np.full(n, np.complex64(self.phase_incr), dtype=np.complex64)
        powers = np.empty(n + 1, dtype=np.complex64)
        powers[0] = 1.0
        powers[1:] = np.cumprod(steps)
        phases = np.complex64(self.phase) * powers
        out = (data * phases[:n]).astype(np.complex64)
        final = complex(phases[n])
        mag = abs(final)
        self.phase = final / mag if mag > 0 else final
        return out