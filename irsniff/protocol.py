"""Iridium air-interface constants and unique words."""

from __future__ import annotations

from enum import Enum

SYMBOLS_PER_SECOND = 25000
UW_LENGTH = 12

SIMPLEX_FREQUENCY_MIN = 1_626_000_000

PREAMBLE_LENGTH_SHORT = 16
PREAMBLE_LENGTH_LONG = 64

MIN_FRAME_LENGTH_NORMAL = 131  # IBC frame
MAX_FRAME_LENGTH_NORMAL = 191

MIN_FRAME_LENGTH_SIMPLEX = 80  # single page IRA
MAX_FRAME_LENGTH_SIMPLEX = 444

# Unique words, as DQPSK symbols rather than bits.
UW_DOWNLINK = (0, 2, 2, 2, 2, 0, 0, 0, 2, 0, 0, 2)
UW_UPLINK = (2, 2, 0, 0, 0, 2, 0, 0, 2, 0, 2, 2)

DEFAULT_CENTER_FREQ = 1_622_000_000
DEFAULT_THRESHOLD_DB = 16.0
DEFAULT_BURST_WIDTH = 40000
DEFAULT_SPS = 10
DEFAULT_HISTORY_SIZE = 512

BURST_POST_MS = 16
MAX_BURST_MS = 90


class Direction(Enum):
    """Link direction of a burst."""

    UNDEF = 0
    DOWNLINK = 1
    UPLINK = 2

    @property
    def label(self) -> str:
        """Short label used in file names and metadata."""
        return {Direction.DOWNLINK: "DL", Direction.UPLINK: "UL"}.get(self, "UN")


def unique_word(direction: Direction) -> tuple[int, ...]:
    """Return the unique word expected for a link direction."""
    if direction is Direction.DOWNLINK:
        return UW_DOWNLINK
    if direction is Direction.UPLINK:
        return UW_UPLINK
    raise ValueError(f"no unique word for direction {direction!r}")