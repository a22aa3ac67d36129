import math

import numpy as np
import pytest

from irsniff.protocol import UW_DOWNLINK, UW_UPLINK, Direction
from irsniff.qpsk_demod import (
    DownmixFrame,
    check_sync_word,
    cubic_interp,
    decimate_gardner,
    decimate_simple,
    decode_dqpsk,
    demod_qpsk,
    map_symbols_to_bits,
    qpsk_demod,
    qpsk_pll,
    save_burst_iq,
    soft_check_sync_word,
)

PAYLOAD = [1, 3, 0, 2] * 10


def _points(symbols, rotation=0.0):
    s = np.asarray(symbols, dtype=np.float64)
    return np.exp(1j * (np.pi / 4 + np.pi / 2 * s + rotation)).astype(np.complex64)


def _burst(symbols, sps=10, tail=5, rotation=0.0):
    samples = np.repeat(_points(symbols, rotation), sps)
    return np.concatenate([samples, np.zeros(tail * sps, dtype=np.complex64)])


def _frame(samples, **kw):
    defaults = dict(
        id=7,
        timestamp=123456789,
        center_frequency=1_626_000_000.0,
        sample_rate=250_000.0,
        samples_per_symbol=10.0,
        samples=samples,
    )
    defaults.update(kw)
    return DownmixFrame(**defaults)


def test_cubic_interp_integer_position_returns_sample():
    data = np.array([1, 2 + 1j, 3, 4 - 2j, 5, 6], dtype=np.complex64)
    assert cubic_interp(data, 2.0) == pytest.approx(3 + 0j)
    assert cubic_interp(data, 3.0) == pytest.approx(4 - 2j)


def test_cubic_interp_reproduces_linear_ramp():
    data = np.arange(10, dtype=np.complex64)
    assert cubic_interp(data, 4.25) == pytest.approx(4.25)


def test_cubic_interp_needs_four_samples():
    with pytest.raises(ValueError):
        cubic_interp([1, 2, 3], 1.0)


def test_decimate_simple_takes_every_nth():
    data = np.arange(25, dtype=np.complex64)
    out = decimate_simple(data, 10.0)
    assert list(out) == [0, 10, 20]


def test_decimate_simple_rejects_sub_unity_sps():
    with pytest.raises(ValueError):
        decimate_simple(np.ones(10), 0.5)


def test_decimate_gardner_on_constant_signal_matches_simple_positions():
    data = np.full(100, 0.5 + 0.5j, dtype=np.complex64)
    out = decimate_gardner(data, 10.0)
    assert len(out) == len(decimate_simple(data[:97], 10.0))
    assert np.allclose(out, 0.5 + 0.5j)


def test_pll_leaves_ideal_points_unchanged():
    pts = _points(UW_DOWNLINK)
    out, total = qpsk_pll(pts)
    assert np.allclose(out, pts, atol=1e-5)
    assert total == pytest.approx(0.0, abs=1e-5)


def test_pll_removes_constant_phase_offset():
    pts = _points(PAYLOAD * 3, rotation=0.1)
    out, total = qpsk_pll(pts)
    assert total == pytest.approx(0.1, abs=1e-3)
    assert np.allclose(out[-5:], _points((PAYLOAD * 3)[-5:]), atol=1e-3)


def test_demod_qpsk_recovers_symbols_and_stops_at_fade():
    syms = list(UW_DOWNLINK) + PAYLOAD
    data = np.concatenate([_points(syms), np.zeros(5, dtype=np.complex64)])
    hard, level, confidence = demod_qpsk(data)
    assert list(hard) == syms
    assert level == pytest.approx(1.0, abs=1e-5)
    assert confidence == 100


def test_demod_qpsk_on_axis_points_have_no_confidence():
    hard, _level, confidence = demod_qpsk(np.ones(6, dtype=np.complex64))
    assert len(hard) == 6
    assert confidence == 0


def test_demod_qpsk_empty():
    hard, level, confidence = demod_qpsk([])
    assert len(hard) == 0 and level == 0.0 and confidence == 0


def test_decode_dqpsk_constant_input_decodes_to_zero_after_first():
    assert decode_dqpsk([2, 2, 2, 2])[1:] == [0, 0, 0]


def test_decode_dqpsk_uses_transition_table():
    assert decode_dqpsk([0, 1, 2, 3]) == [0, 2, 2, 2]


def test_check_sync_word_exact_and_tolerance():
    assert check_sync_word(list(UW_DOWNLINK) + [0, 1], Direction.DOWNLINK)
    assert check_sync_word(UW_UPLINK, Direction.UPLINK)
    one_error = list(UW_DOWNLINK)
    one_error[0] = 2
    assert check_sync_word(one_error, Direction.DOWNLINK)
    two_errors = list(one_error)
    two_errors[1] = 0
    assert not check_sync_word(two_errors, Direction.DOWNLINK)


def test_check_sync_word_wraparound_counts_one():
    word = list(UW_DOWNLINK)
    word[0] = 3  # 3 steps from 0 counts as one
    word[5] = 3
    assert check_sync_word(word, Direction.DOWNLINK)


def test_check_sync_word_too_short():
    assert not check_sync_word(UW_DOWNLINK[:-1], Direction.DOWNLINK)


def test_soft_check_ideal_and_short():
    assert soft_check_sync_word(_points(UW_UPLINK), Direction.UPLINK) == pytest.approx(
        0.0, abs=1e-4
    )
    assert soft_check_sync_word(_points(UW_UPLINK[:5]), Direction.UPLINK) == 999.0


def test_soft_check_is_larger_for_wrong_direction():
    pts = _points(UW_DOWNLINK)
    assert soft_check_sync_word(pts, Direction.UPLINK) > soft_check_sync_word(
        pts, Direction.DOWNLINK
    )


def test_map_symbols_to_bits_msb_first():
    assert list(map_symbols_to_bits([0, 1, 2, 3])) == [0, 0, 0, 1, 1, 0, 1, 1]


def test_qpsk_demod_downlink_burst():
    syms = list(UW_DOWNLINK) + PAYLOAD
    frame = _frame(_burst(syms))
    out = qpsk_demod(frame)
    assert out.direction is Direction.DOWNLINK
    assert frame.direction is Direction.DOWNLINK
    assert out.n_symbols == len(syms)
    assert out.n_payload_symbols == len(PAYLOAD)
    assert out.n_bits == 2 * len(syms)
    assert list(out.bits) == list(map_symbols_to_bits(decode_dqpsk(syms)))
    assert out.confidence == 100
    assert out.center_frequency == pytest.approx(frame.center_frequency, abs=1.0)
    assert out.llr.size == out.n_bits
    assert out.id == 7 and out.timestamp == 123456789


def test_qpsk_demod_uplink_burst():
    frame = _frame(_burst(list(UW_UPLINK) + PAYLOAD))
    out = qpsk_demod(frame)
    assert out.direction is Direction.UPLINK


def test_qpsk_demod_phase_offset_raises_frequency_estimate():
    frame = _frame(_burst(list(UW_DOWNLINK) + PAYLOAD, rotation=0.1))
    out = qpsk_demod(frame)
    assert out.center_frequency > frame.center_frequency


def test_qpsk_demod_rejects_burst_without_unique_word():
    assert qpsk_demod(_frame(_burst([1] * 30))) is None


def test_qpsk_demod_rejects_empty_frame():
    assert qpsk_demod(_frame(np.zeros(0, dtype=np.complex64))) is None


def test_qpsk_demod_saves_rejected_burst_as_undefined(tmp_path):
    frame = _frame(_burst([1] * 30), direction=Direction.DOWNLINK)
    assert qpsk_demod(frame, save_bursts_dir=tmp_path) is None
    files = sorted(p.name for p in tmp_path.iterdir())
    assert len(files) == 2
    assert all("_7_UN." in name for name in files)


def test_save_burst_iq_round_trip(tmp_path):
    samples = _burst(list(UW_DOWNLINK), tail=0)
    frame = _frame(samples, direction=Direction.DOWNLINK)
    stem = save_burst_iq(frame, tmp_path / "bursts")
    iq_path = stem.with_name(stem.name + ".cf32")
    meta_path = stem.with_name(stem.name + ".meta")
    assert iq_path.name.endswith("_7_DL.cf32")
    assert np.array_equal(np.fromfile(iq_path, dtype=np.complex64), samples)
    meta = meta_path.read_text().splitlines()
    assert "burst_id: 7" in meta
    assert "direction: DL" in meta
    assert f"num_samples: {samples.size}" in meta


def test_save_burst_iq_without_directory():
    assert save_burst_iq(_frame(np.ones(4)), None) is None


def test_downmix_frame_converts_samples():
    frame = _frame([1, 2, 3])
    assert frame.samples.dtype == np.complex64
    assert frame.num_samples == 3
    assert math.isclose(abs(frame.samples[2]), 3.0)