"""Iridium burst demodulation, DSP kernels, batched FFTs, threading primitives and a web map."""

__version__ = "0.1.0"