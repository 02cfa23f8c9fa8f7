"""Tick <-> microsecond conversion over a piecewise-constant tempo schedule."""

from bisect import bisect_right
from itertools import accumulate
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .midi_events import MetaTempo, Timeline

DEFAULT_TEMPO = 500_000  # microseconds per quarter note (120 BPM)


class TempoMap:
    """Ordered (absolute_tick, microseconds_per_quarter_note) segments.

    Each segment runs from its tick to the next segment's tick. Offsets are
    computed with exact integer arithmetic: a segment contributes
    ticks * tempo to a running numerator which is floor-divided by the
    ticks per quarter note at the end.

    Args:
        ticks_per_quarter_note: Time division from the file header
        entries: (tick, tempo) pairs sorted by tick; must start at tick 0
    """

    def __init__(self, ticks_per_quarter_note: int, entries: List[Tuple[int, int]]):
        if ticks_per_quarter_note <= 0:
            raise ValueError("ticks_per_quarter_note must be positive")
        if not entries or entries[0][0] != 0:
            raise ValueError("tempo map must start at tick 0")

        self.ticks_per_quarter_note = ticks_per_quarter_note
        self._ticks = np.array([tick for tick, _ in entries], dtype=np.int64)
        self._tempos = np.array([tempo for _, tempo in entries], dtype=np.int64)

        # Numerator (tick * microseconds) accumulated at the start of each segment.
        # Kept as Python ints: the products overflow 64 bits on long segments.
        spans = (int(span) * int(tempo)
                 for span, tempo in zip(np.diff(self._ticks), self._tempos[:-1]))
        self._numerators: List[int] = [0] + list(accumulate(spans))
        self._start_us = [numerator // ticks_per_quarter_note for numerator in self._numerators]

    def __len__(self):
        return len(self._ticks)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self.entries)

    @property
    def entries(self) -> List[Tuple[int, int]]:
        return [(int(tick), int(tempo)) for tick, tempo in zip(self._ticks, self._tempos)]

    def _segment_for_tick(self, tick: int) -> int:
        return int(np.searchsorted(self._ticks, tick, side='right')) - 1

    def tempo_at(self, tick: int) -> int:
        """Microseconds per quarter note in effect at the given tick."""
        return int(self._tempos[self._segment_for_tick(tick)])

    def tick_to_us(self, tick: int) -> int:
        """Convert an absolute tick to microseconds from the start.

        Args:
            tick: Absolute tick (non-negative)

        Returns:
            int: Offset in microseconds, rounded down
        """
        if tick < 0:
            raise ValueError("tick must be non-negative")
        i = self._segment_for_tick(tick)
        numerator = self._numerators[i] + (tick - int(self._ticks[i])) * int(self._tempos[i])
        return numerator // self.ticks_per_quarter_note

    def us_to_tick(self, position_us: int) -> int:
        """Largest tick whose offset does not exceed position_us.

        Inverse of tick_to_us: tick_to_us(us_to_tick(p)) <= p and
        tick_to_us(us_to_tick(p) + 1) > p.
        """
        if position_us < 0:
            raise ValueError("position_us must be non-negative")
        i = bisect_right(self._start_us, position_us) - 1
        start_tick = int(self._ticks[i])
        tempo = int(self._tempos[i])
        limit = (position_us + 1) * self.ticks_per_quarter_note - self._numerators[i] - 1
        return start_tick + limit // tempo


def collect_tempo_events(timeline: Timeline,
                         track_indices: Optional[List[int]] = None) -> List[Tuple[int, int, int, int]]:
    """Gather MetaTempo events as (tick, track, in-track index, tempo), sorted."""
    found = []
    for track in timeline.tracks:
        if track_indices is not None and track.index not in track_indices:
            continue
        for position, (event, tick) in enumerate(zip(track.events, track.absolute_ticks)):
            if isinstance(event.kind, MetaTempo):
                found.append((tick, track.index, position,
                              event.kind.microseconds_per_quarter_note))
    found.sort()
    return found


def build_tempo_map(timeline: Timeline, track_index: Optional[int] = None,
                    default_tempo: int = DEFAULT_TEMPO) -> TempoMap:
    """Build the tempo map of a timeline.

    Formats 0 and 1 merge tempo events from every track. Format 2 tracks are
    independent, so only the requested track (track 0 by default) counts.

    Args:
        timeline: Parsed timeline
        track_index: Track whose tempo events apply (format 2 only)
        default_tempo: Tempo used before the first tempo event

    Returns:
        TempoMap: Segments starting at tick 0
    """
    if timeline.format == 2:
        sources = [track_index if track_index is not None else 0]
    else:
        sources = None

    entries = [(tick, tempo) for tick, _, _, tempo in collect_tempo_events(timeline, sources)]
    if not entries or entries[0][0] != 0:
        entries.insert(0, (0, default_tempo))
    return TempoMap(timeline.ticks_per_quarter_note, entries)
