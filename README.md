# irsniff

This package provides building blocks for receiving and decoding Iridium L-band bursts in Python.

It covers these stages:

- the stages after a burst has been detected and mixed down to baseband,
- the DSP kernels, windowed FFTs and threading helpers that a receiver pipeline uses,
- a small web map of ring alerts and satellites.

numpy is the only dependency.

## Modules

| Module | Contents |
| --- | --- |
| `irsniff.protocol` | Iridium constants such as `SYMBOLS_PER_SECOND`, `UW_LENGTH`, `UW_DOWNLINK` and `UW_UPLINK`. The `Direction` enum (`UNDEF`, `DOWNLINK`, `UPLINK`, with a `label` of `DL`, `UL` or `UN`). `unique_word(direction)`. |
| `irsniff.window_func` | `blackman_window(n)`, which returns a float32 array. |
| `irsniff.rotator` | `Rotator`, a complex frequency rotator whose phase is renormalised after each `rotate()` call. |
| `irsniff.kernels` | Vectorised kernels: `fir_ccf`, `fir_ccf_dec`, `fir_fff`, `window_cf`, `fftshift_mag`, `baseline_update`, `relative_mag`, `convert_i8_cf`, `mag_squared`, `max_float` and `csquare_window`. |
| `irsniff.burst_fft` | `BatchFFT`, which runs windowed forward FFTs over a batch of frames and returns the fftshifted squared magnitudes. |
| `irsniff.barrier` | `Barrier`, a reusable thread barrier. Its `shutdown()` releases the threads waiting on it, and they get `BarrierShutdown`. |
| `irsniff.blocking_queue` | `BlockingQueue`, a fair FIFO queue that can be bounded or boundless. It has `add`/`put`, `poll`/`take` and `close`, and the exceptions `QueueFull`, `QueueEmpty` and `QueueClosed`. |
| `irsniff.qpsk_demod` | The QPSK/DQPSK demodulator and each of its stages. |
| `irsniff.web_map` | `MapState`, `RingAlertPoint`, `SatelliteEntry`, `WebMapServer` and `render_page()`. |
| `irsniff.sdr` | `SampleBuffer`, `SampleFormat` and helpers for receiver device strings and sample formats. |

## Demodulating a burst

`qpsk_demod(frame, save_bursts_dir=None, use_gardner=False)` takes a `DownmixFrame`. The frame holds complex baseband samples at `samples_per_symbol` samples per symbol.

The demodulator runs these stages in order:

1. **Decimation to one sample per symbol.** By default it keeps every `int(sps)`-th sample (`decimate_simple`). When `use_gardner` is true it uses a Gardner timing loop with cubic interpolation instead (`decimate_gardner`).
2. **Phase tracking.** A first-order PLL with `alpha = 0.2` tracks the carrier phase (`qpsk_pll`).
3. **Hard QPSK decisions** (`demod_qpsk`). This stage also finds the end of the frame, which is three consecutive symbols below 1/8 of the peak amplitude. It computes the mean level and the confidence, which is the percentage of symbols within 22° of an ideal point.
4. **Unique-word check against both directions** (`check_sync_word`). Up to two symbol errors are allowed. If neither direction passes, a soft-decision check (`soft_check_sync_word`) rescues the frame when its angular error is at most 3.0. Otherwise `qpsk_demod` returns `None`.
5. **Decoding and bit mapping.** The symbols go through DQPSK differential decoding (`decode_dqpsk`) and are then mapped to two bits each, MSB first (`map_symbols_to_bits`).

The frame's `direction` is updated from the unique-word check.

On success the result is a `DemodFrame`. It holds:

- `bits` and a per-bit reliability `llr`,
- `confidence` and `level`,
- `n_symbols` and `n_payload_symbols`,
- the centre frequency, corrected by the residual offset that the PLL measured.

When `save_bursts_dir` is given, the burst is written there whether it is accepted or not. `save_burst_iq` writes two files that share the stem `<timestamp>_<frequency>_<id>_<DL|UL|UN>`:

- the raw complex64 samples, in a `.cf32` file,
- a `.meta` text file.

```python
import numpy as np
from irsniff.qpsk_demod import DownmixFrame, qpsk_demod

frame = DownmixFrame(
    id=1,
    timestamp=0,
    center_frequency=1_626_000_000.0,
    sample_rate=250_000.0,
    samples_per_symbol=10.0,
    samples=np.zeros(4000, dtype=np.complex64),
)
result = qpsk_demod(frame)  # None when no unique word is found
```

## DSP kernels and batched FFTs

```python
import numpy as np
from irsniff.burst_fft import BatchFFT
from irsniff.kernels import fftshift_mag, window_cf
from irsniff.window_func import blackman_window

samples = np.ones(256 * 4, dtype=np.complex64)
window = blackman_window(256)

power = fftshift_mag(np.fft.fft(window_cf(samples[:256], window)))

fft = BatchFFT(fft_size=256, batch_size=8, window=window)
powers = fft.process(samples, batch_count=4)  # 4 * 256 values
```

In `BatchFFT.process`, an out-of-range `batch_count` raises `ValueError`, and so do too few samples.

## Map state and web server

```python
from irsniff.web_map import MapState, WebMapServer

state = MapState()
state.add_sat(sat_id=42, beam_id=7, timestamp=0)
state.add_ra(lat=48.1, lon=11.6, alt=780, sat_id=42, beam_id=7,
             n_pages=0, tmsi=0, timestamp=0, frequency=1_626_270_000)
print(state.to_json())

with WebMapServer(state, port=8888) as server:
    ...  # browse to http://localhost:8888/
```

`MapState` keeps a fixed number of entries:

- the last 2000 ring alerts; the JSON output includes the newest 500 of them,
- up to 100 satellites.

It rejects positions outside the valid latitude and longitude range. It also rejects an alert where the satellite, beam, latitude and longitude are all zero.

`WebMapServer` runs on a background thread between `start()` and `shutdown()`, or inside a `with` block. It serves these paths:

- `/` and `/index.html` serve a Leaflet map page. The page is built by `render_page()`, which loads Leaflet and the map tiles from the network.
- `/api/state` serves one JSON snapshot.
- `/api/events` streams Server-Sent Events named `update`, once every `interval` seconds (default 1).

Any other path gets 404, and any method other than GET gets 405.

## Receiver helpers

The helpers in `irsniff.sdr` are:

- `parse_kv_pairs(text)` splits `key=value,...` device strings.
- `usrp_get_serial(name)` returns the serial from a `usrp-<product>-<serial>` interface name.
- `usrp_interfaces(...)` and `soapy_interfaces(...)` produce interface listing lines.
- `choose_soapy_format(formats)` prefers CS8, then CF32, then CS16.
- `sample_format_for(stream_format)` returns the `SampleFormat` for a stream format.
- `cs16_to_float(samples)` scales 16-bit I/Q values.

`SampleBuffer.to_complex()` turns int8 or float I/Q data into complex64.

```python
from irsniff.sdr import usrp_get_serial

usrp_get_serial("usrp-b200-EXAMPLE0001")  # "EXAMPLE0001"
```

## What the package does not do

- **It does not talk to radio hardware.** There is no capture from HackRF, bladeRF, USRP or SoapySDR devices. The `irsniff.sdr` helpers only handle sample buffers and device strings that you supply.
- **It does not detect bursts or mix them down.** Callers build `DownmixFrame` objects themselves.
- **It does not decode frame contents** such as ring alerts or broadcast frames. `MapState` takes the decoded fields as plain arguments.
- **It installs no command-line program.**

## Running the tests

Install the package with its `test` extra, then run `pytest` from the project root.