"""QPSK/DQPSK burst demodulator.

Pipeline: decimate to one sample per symbol, first-order PLL, hard decision,
unique-word check (with a soft-decision rescue), DQPSK differential decode and
symbol-to-bit mapping.
"""

from __future__ import annotations

import cmath
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from .protocol import SYMBOLS_PER_SECOND, UW_LENGTH, Direction, unique_word

log = logging.getLogger(__name__)

PLL_ALPHA = 0.2
_SQRT1_2 = 0.70710678118654752
CONFIDENCE_ANGLE = 22  # degrees from the ideal constellation point
MAGNITUDE_DROP = 8.0  # end of frame: signal below peak / 8
MAX_LOW_COUNT = 3  # consecutive weak symbols that end a frame
UW_MAX_ERRORS = 2  # largest Hamming-like distance for the hard check
UW_SOFT_THRESHOLD = 3.0  # soft-decision rescue threshold
SOFT_CHECK_TOO_SHORT = 999.0

# Maps (new - old) % 4 to the decoded DQPSK symbol.
_DQPSK_MAP = (0, 2, 3, 1)

# Gardner loop filter gains.
GARDNER_KP = 0.02
GARDNER_KI = 0.0002


@dataclass
class DownmixFrame:
    """A burst that has been mixed down to baseband and resampled."""

    id: int
    timestamp: int  # nanoseconds
    center_frequency: float  # Hz
    sample_rate: float  # Hz
    samples_per_symbol: float
    samples: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.complex64))
    direction: Direction = Direction.UNDEF
    magnitude: float = 0.0  # dB
    noise: float = 0.0  # dBFS/Hz
    uw_start: float = 0.0

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.complex64)

    @property
    def num_samples(self) -> int:
        return int(self.samples.size)


@dataclass
class DemodFrame:
    """A demodulated burst: two bits per symbol plus per-bit reliabilities."""

    id: int
    timestamp: int
    center_frequency: float
    direction: Direction
    magnitude: float
    noise: float
    confidence: int  # 0-100 %
    level: float  # average signal amplitude
    n_symbols: int  # including the unique word
    n_payload_symbols: int  # after the unique word
    bits: np.ndarray
    llr: np.ndarray

    @property
    def n_bits(self) -> int:
        return int(self.bits.size)


def cubic_interp(samples, pos: float) -> complex:
    """Catmull-Rom interpolation of complex samples at a fractional position."""
    data = np.asarray(samples, dtype=np.complex64)
    n = data.size
    if n < 4:
        raise ValueError("cubic interpolation needs at least 4 samples")
    idx = int(pos)
    mu = pos - idx
    idx = max(idx, 1)
    if idx >= n - 2:
        idx = n - 3

    s0, s1, s2, s3 = (complex(v) for v in data[idx - 1 : idx + 3])
    a = -0.5 * s0 + 1.5 * s1 - 1.5 * s2 + 0.5 * s3
    b = s0 - 2.5 * s1 + 2.0 * s2 - 0.5 * s3
    c = -0.5 * s0 + 0.5 * s2
    d = s1
    mu2 = mu * mu
    return a * mu2 * mu + b * mu2 + c * mu + d


def decimate_gardner(samples, sps: float) -> np.ndarray:
    """Resample to one sample per symbol, tracking timing with a Gardner detector."""
    data = np.asarray(samples, dtype=np.complex64)
    n_samples = data.size
    out: list[complex] = []
    pos = 0.0
    timing_offset = 0.0
    prev_sym = 0j

    while pos < n_samples - 3:
        on_time = cubic_interp(data, pos)
        out.append(on_time)

        if len(out) > 1:
            mid_pos = pos - sps * 0.5
            if mid_pos >= 1.0:
                mid = cubic_interp(data, mid_pos)
                error = ((prev_sym - on_time) * mid.conjugate()).real
                error = min(max(error, -1.0), 1.0)
                timing_offset += GARDNER_KI * error
                adjust = GARDNER_KP * error + timing_offset
                adjust = min(max(adjust, -0.5), 0.5)
                pos += adjust

        prev_sym = on_time
        pos += sps

    return np.array(out, dtype=np.complex64)


def decimate_simple(samples, sps: float) -> np.ndarray:
    """Keep every ``int(sps)``-th sample."""
    step = int(sps)
    if step < 1:
        raise ValueError("samples per symbol must be at least 1")
    return np.asarray(samples, dtype=np.complex64)[::step].copy()


def _nearest_point(value: complex) -> complex:
    re, im = value.real, value.imag
    if re >= 0 and im >= 0:
        return complex(_SQRT1_2, _SQRT1_2)
    if re >= 0:
        return complex(_SQRT1_2, -_SQRT1_2)
    if im < 0:
        return complex(-_SQRT1_2, -_SQRT1_2)
    return complex(-_SQRT1_2, _SQRT1_2)


def qpsk_pll(symbols, alpha: float = PLL_ALPHA) -> tuple[np.ndarray, float]:
    """Track carrier phase with a first-order PLL.

    Returns the phase-corrected symbols and the total phase the loop removed.
    """
    phi_hat = 1 + 0j
    total_phase = 0.0
    out: list[complex] = []

    for value in np.asarray(symbols, dtype=np.complex64):
        corrected = complex(value) * phi_hat
        out.append(corrected)

        er = _nearest_point(corrected).conjugate() * corrected
        if abs(er) < 1e-10:
            continue
        scaled_angle = alpha * cmath.phase(er)
        total_phase += scaled_angle
        phi_hat = cmath.exp(-1j * scaled_angle) * phi_hat
        mag = abs(phi_hat)
        if mag > 0:
            phi_hat /= mag

    return np.array(out, dtype=np.complex64), total_phase


def demod_qpsk(symbols) -> tuple[np.ndarray, float, int]:
    """Hard-decide QPSK symbols and stop where the signal fades.

    Returns ``(hard_symbols, level, confidence)``: the decided symbols up to the
    end of the frame, the mean amplitude and the percentage of symbols within
    the confidence angle of an ideal constellation point.
    """
    data = np.asarray(symbols, dtype=np.complex64)
    re = data.real.astype(np.float64)
    im = data.imag.astype(np.float64)
    mags = np.sqrt(re * re + im * im)

    hard = np.select(
        [(re >= 0) & (im >= 0), (re < 0) & (im >= 0), re < 0],
        [0, 1, 2],
        default=3,
    ).astype(np.int64)

    phase = (np.arctan2(im, re) + math.pi) * 180.0 / math.pi
    offsets = 45.0 - np.fmod(phase, 90.0)

    n = data.size
    if n:
        running_max = np.maximum.accumulate(mags)
        low = (mags < running_max / MAGNITUDE_DROP).astype(np.int64)
        runs = np.convolve(low, np.ones(MAX_LOW_COUNT, dtype=np.int64), mode="valid")
        ends = np.flatnonzero(runs == MAX_LOW_COUNT)
        if ends.size:
            # run found ending at ends[0] + MAX_LOW_COUNT - 1; drop the weak symbols
            n = int(ends[0])

    if n == 0:
        return hard[:0], 0.0, 0
    level = float(mags[:n].sum() / n)
    n_ok = int(np.count_nonzero(np.abs(offsets[:n]) <= CONFIDENCE_ANGLE))
    return hard[:n], level, (100 * n_ok) // n


def decode_dqpsk(symbols) -> list[int]:
    """Differentially decode hard QPSK symbols."""
    decoded: list[int] = []
    old = 0
    for s in symbols:
        s = int(s)
        decoded.append(_DQPSK_MAP[(s - old + 4) % 4])
        old = s
    return decoded


def check_sync_word(symbols, direction: Direction) -> bool:
    """Hard check of the unique word; a 3-step difference counts as 1."""
    symbols = list(symbols)
    if len(symbols) < UW_LENGTH:
        return False
    uw = unique_word(direction)
    diffs = 0
    for got, want in zip(symbols, uw):
        diff = abs(int(got) - want)
        diffs += 1 if diff == 3 else diff
    return diffs <= UW_MAX_ERRORS


def soft_check_sync_word(pll_out, direction: Direction) -> float:
    """Total angular error against the unique word, one quadrant counting 1.0."""
    data = np.asarray(pll_out, dtype=np.complex64)
    if data.size < UW_LENGTH:
        return SOFT_CHECK_TOO_SHORT
    uw = unique_word(direction)
    total = 0.0
    for value, sym in zip(data[:UW_LENGTH], uw):
        expected = math.pi * 0.25 + sym * math.pi * 0.5
        actual = cmath.phase(complex(value))
        if actual < 0:
            actual += 2.0 * math.pi
        diff = actual - expected
        if diff > math.pi:
            diff -= 2.0 * math.pi
        if diff < -math.pi:
            diff += 2.0 * math.pi
        total += abs(diff) * (2.0 / math.pi)
    return total


def map_symbols_to_bits(symbols) -> np.ndarray:
    """Expand each symbol into two bits, most significant first."""
    syms = np.asarray(list(symbols), dtype=np.int64)
    bits = np.empty(2 * syms.size, dtype=np.uint8)
    bits[0::2] = (syms >> 1) & 1
    bits[1::2] = syms & 1
    return bits


def save_burst_iq(frame: DownmixFrame, directory) -> Path | None:
    """Write the burst's samples (``.cf32``) and a ``.meta`` text file.

    Returns the common path stem, or ``None`` if the samples could not be saved.
    """
    if directory is None:
        return None
    directory = Path(directory)
    try:
        directory.mkdir(mode=0o755, exist_ok=True)
    except OSError as exc:
        log.warning("failed to create burst save directory: %s", exc)
        return None

    label = frame.direction.label
    stem = directory / (
        f"{frame.timestamp:020d}_{frame.center_frequency:011.0f}_{frame.id}_{label}"
    )
    try:
        frame.samples.astype(np.complex64).tofile(f"{stem}.cf32")
    except OSError as exc:
        log.warning("failed to save burst IQ: %s", exc)
        return None

    meta = (
        f"burst_id: {frame.id}\n"
        f"timestamp_ns: {frame.timestamp}\n"
        f"center_freq_hz: {frame.center_frequency:.0f}\n"
        f"sample_rate_hz: {frame.sample_rate:.0f}\n"
        f"samples_per_symbol: {frame.samples_per_symbol:.2f}\n"
        f"direction: {label}\n"
        f"magnitude_db: {frame.magnitude:.2f}\n"
        f"noise_dbfs_hz: {frame.noise:.2f}\n"
        f"num_samples: {frame.num_samples}\n"
        f"uw_start_offset: {frame.uw_start:.2f}\n"
    )
    try:
        Path(f"{stem}.meta").write_text(meta)
    except OSError:
        pass
    return stem


def _llr(pll_out: np.ndarray) -> np.ndarray:
    n = pll_out.size
    sum_mag = float(np.abs(pll_out).astype(np.float64).sum())
    scale = _SQRT1_2 / (sum_mag / n) if n > 0 and sum_mag > 0 else 1.0
    llr = np.empty(2 * n, dtype=np.float32)
    llr[0::2] = np.abs(pll_out.real) * scale
    llr[1::2] = np.abs(pll_out.imag) * scale
    return llr


def qpsk_demod(
    frame: DownmixFrame, save_bursts_dir=None, use_gardner: bool = False
) -> DemodFrame | None:
    """Demodulate a burst; return ``None`` if no unique word is found.

    The frame's ``direction`` is updated from the unique-word check. When
    ``save_bursts_dir`` is given the burst is saved there, rejected or not.
    """
    if use_gardner:
        decimated = decimate_gardner(frame.samples, frame.samples_per_symbol)
    else:
        decimated = decimate_simple(frame.samples, frame.samples_per_symbol)

    pll_out, total_phase = qpsk_pll(decimated, PLL_ALPHA)
    symbols, level, confidence = demod_qpsk(pll_out)
    n = int(symbols.size)
    pll_used = pll_out[:n]

    dl_ok = check_sync_word(symbols, Direction.DOWNLINK)
    ul_ok = check_sync_word(symbols, Direction.UPLINK)
    if not dl_ok and not ul_ok:
        dl_err = soft_check_sync_word(pll_used, Direction.DOWNLINK)
        ul_err = soft_check_sync_word(pll_used, Direction.UPLINK)
        if min(dl_err, ul_err) > UW_SOFT_THRESHOLD:
            if save_bursts_dir is not None:
                frame.direction = Direction.UNDEF
                save_burst_iq(frame, save_bursts_dir)
            return None
        frame.direction = Direction.UPLINK if ul_err < dl_err else Direction.DOWNLINK
    elif ul_ok and not dl_ok:
        frame.direction = Direction.UPLINK
    elif dl_ok and not ul_ok:
        frame.direction = Direction.DOWNLINK

    if save_bursts_dir is not None:
        save_burst_iq(frame, save_bursts_dir)

    bits = map_symbols_to_bits(decode_dqpsk(symbols))

    center = frame.center_frequency
    if n > 0:
        duration = n / SYMBOLS_PER_SECOND
        center += total_phase / duration / math.pi / 2.0

    return DemodFrame(
        id=frame.id,
        timestamp=frame.timestamp,
        center_frequency=center,
        direction=frame.direction,
        magnitude=frame.magnitude,
        noise=frame.noise,
        confidence=confidence,
        level=level,
        n_symbols=n,
        n_payload_symbols=n - UW_LENGTH,
        bits=bits,
        llr=_llr(pll_used),
    )