"""Radio sample buffers and helpers shared by the SDR front ends."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .kernels import convert_i8_cf

KV_FIELD_MAX = 15  # longest key or value kept from a device string
_CS16_SCALE = np.float32(1.0 / 32768.0)

SOAPY_CS8 = "CS8"
SOAPY_CF32 = "CF32"
SOAPY_CS16 = "CS16"


class SampleFormat(Enum):
    """Layout of the interleaved I/Q data in a :class:`SampleBuffer`."""

    INT8 = 0
    FLOAT = 1


@dataclass(frozen=True)
class SampleBuffer:
    """A block of interleaved I/Q samples as delivered by a receiver.

    ``data`` may be longer than needed; only the first ``num`` I/Q pairs count.
    """

    data: bytes
    num: int
    format: SampleFormat = SampleFormat.INT8

    def __post_init__(self) -> None:
        if self.num < 0:
            raise ValueError("sample count must not be negative")
        if len(self.data) < self.num * self._pair_size:
            raise ValueError(
                f"buffer holds {len(self.data)} bytes, "
                f"{self.num} samples need {self.num * self._pair_size}"
            )

    @property
    def _pair_size(self) -> int:
        return 2 if self.format is SampleFormat.INT8 else 8

    def to_complex(self) -> np.ndarray:
        """Return the ``num`` samples as complex64 values."""
        used = memoryview(self.data)[: self.num * self._pair_size]
        if self.format is SampleFormat.INT8:
            return convert_i8_cf(bytes(used))
        floats = np.frombuffer(bytes(used), dtype=np.float32)
        return (floats[0::2] + 1j * floats[1::2]).astype(np.complex64)


def parse_kv_pairs(text: str) -> list[tuple[str, str]]:
    """Split ``key=value,key=value`` into pairs, keeping their order.

    Keys and values are cut to 15 characters. A trailing comma is allowed;
    any other piece without ``=`` raises :class:`ValueError`.
    """
    pairs: list[tuple[str, str]] = []
    if not text:
        return pairs
    pieces = text.split(",")
    if pieces[-1] == "":
        pieces.pop()
    for piece in pieces:
        key, sep, value = piece.partition("=")
        if not sep:
            raise ValueError(f"malformed key/value pair: {piece!r}")
        pairs.append((key[:KV_FIELD_MAX], value[:KV_FIELD_MAX]))
    return pairs


def _find(pairs: Iterable[tuple[str, str]], key: str) -> str | None:
    return next((v for k, v in pairs if k == key), None)


def usrp_interfaces(device_strings: Iterable[str]) -> Iterator[str]:
    """Yield an interface line for each USRP with a type and a serial."""
    for device in device_strings:
        pairs = parse_kv_pairs(device)
        product = _find(pairs, "product") or "unk"
        kind = _find(pairs, "type")
        serial = _find(pairs, "serial")
        if kind is None or serial is None:
            continue
        yield (
            f"interface {{value=usrp-{product}-{serial}}}"
            f"{{display=Iridium Sniffer (USRP {product})}}"
        )


def usrp_get_serial(name: str) -> str | None:
    """Return the serial from an interface name ``usrp-<product>-<serial>``."""
    if not name.startswith("usrp-"):
        return None
    _, dash, serial = name[5:].partition("-")
    return serial if dash else None


def soapy_interfaces(devices: Iterable[Mapping[str, str]]) -> Iterator[str]:
    """Yield an interface line for each enumerated SoapySDR device."""
    for index, info in enumerate(devices):
        driver = info.get("driver") or "SoapySDR"
        label = info.get("label")
        suffix = f" - {label}" if label is not None else ""
        yield (
            f"interface {{value=soapy-{index}}}"
            f"{{display=Iridium Sniffer ({driver}{suffix})}}"
        )


def choose_soapy_format(formats: Iterable[str]) -> str:
    """Pick the stream format: CS8 if offered, then CF32, else CS16."""
    chosen = SOAPY_CS16
    for fmt in formats:
        if fmt == SOAPY_CS8:
            return SOAPY_CS8
        if fmt == SOAPY_CF32:
            chosen = SOAPY_CF32
    return chosen


def sample_format_for(stream_format: str) -> SampleFormat:
    """The buffer layout produced by a stream format (CS16 is widened to float)."""
    if stream_format == SOAPY_CS8:
        return SampleFormat.INT8
    if stream_format in (SOAPY_CF32, SOAPY_CS16):
        return SampleFormat.FLOAT
    raise ValueError(f"unsupported stream format: {stream_format!r}")


def cs16_to_float(samples) -> np.ndarray:
    """Scale interleaved signed 16-bit I/Q values by 1/32768 into float32."""
    if isinstance(samples, (bytes, bytearray, memoryview)):
        if len(samples) % 2:
            raise ValueError("16-bit sample data must have an even byte length")
        raw = np.frombuffer(samples, dtype=np.int16)
    else:
        raw = np.asarray(samples, dtype=np.int16)
    return raw.astype(np.float32) * _CS16_SCALE