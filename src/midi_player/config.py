"""
Configuration module for the MIDI player.

Provides dataclass configurations for the engine, the playback clock and the
byte sources, with sensible defaults.
"""

from dataclasses import dataclass


@dataclass
class EngineConfig:
    """Configuration for the playback engine."""

    default_tempo_us: int = 500_000
    """Microseconds per quarter note before the first tempo event (120 BPM)."""


@dataclass
class ClockConfig:
    """Configuration for the background playback clock."""

    tick_interval_sec: float = 0.005
    """Time between two clock ticks sent to the engine."""

    def __post_init__(self):
        if self.tick_interval_sec <= 0:
            raise ValueError("tick_interval_sec must be positive")


@dataclass
class SourceConfig:
    """Configuration for acquiring MIDI bytes."""

    fetch_timeout_sec: float = 10.0
    """Timeout for fetching a MIDI file over HTTP."""

    max_bytes: int = 16 * 1024 * 1024
    """Largest file accepted from any source."""
