"""Batched, windowed FFTs for burst detection.

Each frame of ``fft_size`` complex samples is multiplied by the window,
transformed, rotated so that the zero-frequency bin sits at the centre,
and reduced to squared magnitudes.
"""

from __future__ import annotations

import numpy as np


class BatchFFT:
    """Runs windowed forward FFTs over up to ``batch_size`` frames at once."""

    def __init__(self, fft_size: int, batch_size: int, window) -> None:
        if fft_size <= 0:
            raise ValueError("fft_size must be positive")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        window = np.asarray(window, dtype=np.float32)
        if window.shape != (fft_size,):
            raise ValueError(
                f"window must hold {fft_size} coefficients, got {window.size}"
            )
        self.fft_size = fft_size
        self.batch_size = batch_size
        self.window = window.copy()

    def process(self, samples, batch_count: int) -> np.ndarray:
        """Return ``batch_count * fft_size`` shifted squared magnitudes.

        ``samples`` must hold at least ``batch_count * fft_size`` complex values;
        frame ``f`` occupies ``samples[f * fft_size:(f + 1) * fft_size]``.
        """
        if batch_count <= 0 or batch_count > self.batch_size:
            raise ValueError(
                f"batch_count must be between 1 and {self.batch_size}, got {batch_count}"
            )
        n = batch_count * self.fft_size
        data = np.asarray(samples, dtype=np.complex64).ravel()
        if data.size < n:
            raise ValueError(f"need {n} samples, got {data.size}")

        frames = data[:n].reshape(batch_count, self.fft_size) * self.window
        spectra = np.fft.fft(frames.astype(np.complex64), axis=1)
        # Output bin b takes source bin (b + fft_size // 2) % fft_size.
        shifted = np.roll(spectra, -(self.fft_size // 2), axis=1)
        mags = shifted.real * shifted.real + shifted.imag * shifted.imag
        return mags.astype(np.float32).ravel()