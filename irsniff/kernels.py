"""Vectorised signal-processing kernels."""

from __future__ import annotations

import numpy as np

_MAX_FLOOR = np.float32(-1e30)


def _check_len(samples: np.ndarray, needed: int) -> None:
    if samples.size < needed:
        raise ValueError(f"need at least {needed} input samples, got {samples.size}")


def fir_ccf(taps, samples, n: int) -> np.ndarray:
    """Filter complex samples with real taps, producing ``n`` outputs."""
    taps = np.asarray(taps, dtype=np.float32)
    samples = np.asarray(samples, dtype=np.complex64)
    if n <= 0:
        return np.zeros(0, dtype=np.complex64)
    _check_len(samples, n + taps.size - 1)
    full = np.convolve(samples, taps[::-1], mode="valid")
    return full[:n].astype(np.complex64)


def fir_ccf_dec(taps, samples, n_out: int, decimation: int) -> np.ndarray:
    """Decimating complex FIR: output ``i`` starts at input ``i * decimation``."""
    if decimation < 1:
        raise ValueError("decimation must be at least 1")
    taps = np.asarray(taps, dtype=np.float32)
    samples = np.asarray(samples, dtype=np.complex64)
    if n_out <= 0:
        return np.zeros(0, dtype=np.complex64)
    _check_len(samples, (n_out - 1) * decimation + taps.size)
    full = np.convolve(samples, taps[::-1], mode="valid")
    return full[::decimation][:n_out].astype(np.complex64)


def fir_fff(taps, samples, n: int) -> np.ndarray:
    """Filter real samples with real taps, producing ``n`` outputs."""
    taps = np.asarray(taps, dtype=np.float32)
    samples = np.asarray(samples, dtype=np.float32)
    if n <= 0:
        return np.zeros(0, dtype=np.float32)
    _check_len(samples, n + taps.size - 1)
    full = np.convolve(samples, taps[::-1], mode="valid")
    return full[:n].astype(np.float32)


def window_cf(samples, window) -> np.ndarray:
    """Multiply complex samples by a real window."""
    samples = np.asarray(samples, dtype=np.complex64)
    window = np.asarray(window, dtype=np.float32)
    return (samples * window[: samples.size]).astype(np.complex64)


def fftshift_mag(fft_out) -> np.ndarray:
    """Swap the halves of an FFT and return the squared magnitudes."""
    fft_out = np.asarray(fft_out, dtype=np.complex64)
    half = fft_out.size // 2
    mag = mag_squared(fft_out)
    return np.concatenate([mag[half : 2 * half], mag[:half]])


def baseline_update(total, old_hist, new_mag) -> np.ndarray:
    """Return a running sum with ``old_hist`` removed and ``new_mag`` added."""
    total = np.asarray(total, dtype=np.float32)
    old_hist = np.asarray(old_hist, dtype=np.float32)
    new_mag = np.asarray(new_mag, dtype=np.float32)
    return ((total - old_hist) + new_mag).astype(np.float32)


def relative_mag(mag, baseline) -> np.ndarray:
    """Divide by the baseline where it is positive, zero elsewhere."""
    mag = np.asarray(mag, dtype=np.float32)
    baseline = np.asarray(baseline, dtype=np.float32)
    out = np.zeros(mag.shape, dtype=np.float32)
    np.divide(mag, baseline, out=out, where=baseline > 0)
    return out


def convert_i8_cf(iq) -> np.ndarray:
    """Convert interleaved signed 8-bit I/Q to complex samples scaled by 1/128."""
    if isinstance(iq, (bytes, bytearray, memoryview)):
        raw = np.frombuffer(iq, dtype=np.int8)
    else:
        raw = np.asarray(iq, dtype=np.int8)
    if raw.size % 2:
        raise ValueError("interleaved I/Q data must have an even length")
    scaled = raw.astype(np.float32) / np.float32(128.0)
    return (scaled[0::2] + 1j * scaled[1::2]).astype(np.complex64)


def mag_squared(samples) -> np.ndarray:
    """Return ``re**2 + im**2`` for each complex sample."""
    samples = np.asarray(samples, dtype=np.complex64)
    return (samples.real * samples.real + samples.imag * samples.imag).astype(np.float32)


def max_float(values) -> float:
    """Largest value, never below -1e30 (which is also the result for no input)."""
    values = np.asarray(values, dtype=np.float32)
    if values.size == 0:
        return float(_MAX_FLOOR)
    return float(max(values.max(), _MAX_FLOOR))


def csquare_window(samples, window) -> np.ndarray:
    """Square each complex sample and scale it by a real window."""
    samples = np.asarray(samples, dtype=np.complex64)
    window = np.asarray(window, dtype=np.float32)
    return (samples * samples * window[: samples.size]).astype(np.complex64)