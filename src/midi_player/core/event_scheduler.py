import heapq
from bisect import bisect_left
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .midi_events import EventKind, RawEvent, Timeline
from .tempo_map import DEFAULT_TEMPO, TempoMap, build_tempo_map


@dataclass(frozen=True)
class ScheduledEvent:
    """A RawEvent placed on the absolute tick and wall-clock axes."""
    track_index: int
    event_index: int  # position inside its track
    tick: int
    time_us: int
    event: RawEvent

    @property
    def kind(self) -> EventKind:
        return self.event.kind

    @property
    def order_key(self) -> Tuple[int, int, int]:
        return (self.tick, self.track_index, self.event_index)


def schedule(timeline: Timeline, tempo_map: TempoMap, from_tick: int,
             to_tick: Optional[int] = None,
             tracks: Optional[Iterable[int]] = None) -> List[ScheduledEvent]:
    """Collect the events whose absolute tick lies in [from_tick, to_tick).

    The result is ordered by absolute tick, then track index, then in-track
    order. This is the delivery order relied on by the dispatcher.

    Args:
        timeline: Parsed timeline
        tempo_map: Tempo context used to compute wall-clock offsets
        from_tick: First tick of the window (inclusive)
        to_tick: End of the window (exclusive), None for no upper bound
        tracks: Restrict to these track indices, None for all tracks

    Returns:
        List[ScheduledEvent]: Events in delivery order
    """
    wanted = None if tracks is None else set(tracks)
    per_track = []

    for track in timeline.tracks:
        if wanted is not None and track.index not in wanted:
            continue
        ticks = track.absolute_ticks
        # Absolute ticks are non-decreasing within a track
        first = bisect_left(ticks, from_tick)
        last = len(ticks) if to_tick is None else bisect_left(ticks, to_tick)
        per_track.append([
            ScheduledEvent(track.index, i, ticks[i], tempo_map.tick_to_us(ticks[i]), track.events[i])
            for i in range(first, last)
        ])

    return list(heapq.merge(*per_track, key=lambda e: e.order_key))


class EventScheduler:
    """Event scheduler responsible for placing a timeline on the wall clock

    Holds the tempo context of one timeline: a single shared TempoMap for
    formats 0 and 1, one TempoMap per track for format 2 where tracks are
    independent sequences.
    """

    def __init__(self, timeline: Timeline, default_tempo: int = DEFAULT_TEMPO):
        """Initialize event scheduler

        Args:
            timeline: Parsed timeline
            default_tempo: Tempo in effect before any tempo event
        """
        self.timeline = timeline
        self.default_tempo = default_tempo

        if timeline.format == 2:
            self.tempo_maps: Tuple[TempoMap, ...] = tuple(
                build_tempo_map(timeline, track.index, default_tempo) for track in timeline.tracks
            )
            self.tempo_map = self.tempo_maps[0] if self.tempo_maps else \
                build_tempo_map(timeline, default_tempo=default_tempo)
        else:
            self.tempo_map = build_tempo_map(timeline, default_tempo=default_tempo)
            self.tempo_maps = tuple(self.tempo_map for _ in timeline.tracks)

        self.duration_us = max(
            (tempo_map.tick_to_us(track.end_tick)
             for track, tempo_map in zip(timeline.tracks, self.tempo_maps)),
            default=0,
        )

    def _tempo_groups(self) -> Dict[int, Tuple[TempoMap, List[int]]]:
        """Group track indices sharing the same tempo map."""
        groups: Dict[int, Tuple[TempoMap, List[int]]] = {}
        for track, tempo_map in zip(self.timeline.tracks, self.tempo_maps):
            groups.setdefault(id(tempo_map), (tempo_map, []))[1].append(track.index)
        return groups

    def due_events(self, cursors: Sequence[int], position_us: int) -> List[ScheduledEvent]:
        """Events not yet delivered whose offset is at or before position_us

        Args:
            cursors: Index of the next undelivered event per track
            position_us: Current playback position in microseconds

        Returns:
            List[ScheduledEvent]: Due events in delivery order
        """
        batches = []
        for tempo_map, track_indices in self._tempo_groups().values():
            pending = [t for t in track_indices if cursors[t] < len(self.timeline.tracks[t])]
            if not pending:
                continue
            upto_tick = tempo_map.us_to_tick(position_us)
            from_tick = min(self.timeline.tracks[t].absolute_ticks[cursors[t]] for t in pending)
            if from_tick > upto_tick:
                continue
            window = schedule(self.timeline, tempo_map, from_tick, upto_tick + 1, pending)
            batches.append([e for e in window if e.event_index >= cursors[e.track_index]])

        if len(batches) == 1:
            return batches[0]
        # Independent tempo contexts only agree on wall-clock time
        return list(heapq.merge(*batches, key=lambda e: (e.time_us,) + e.order_key))

    def tick_to_us(self, track_index: int, tick: int) -> int:
        return self.tempo_maps[track_index].tick_to_us(tick)
