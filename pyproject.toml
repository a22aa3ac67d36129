[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "irsniff"
version = "0.1.0"
description = "Iridium burst demodulation toolkit: QPSK/DQPSK demodulator, DSP kernels, batched FFTs, threading primitives and a live web map"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "iridium",
    "sdr",
    "dsp",
    "qpsk",
    "dqpsk",
    "demodulation",
    "satellite",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["irsniff"]

[tool.pytest.ini_options]
addopts = "-ra"
