"""Player session state management.

This module provides the PlaybackSession owned by one engine, including:
- The installed timeline and its scheduler (tempo context)
- Transport state and playback position
- Per-track cursors to the next undelivered event
- Muted tracks
"""

from typing import List, Optional, Set

from .event_scheduler import EventScheduler
from .midi_events import Timeline
from .playback_mode import TransportState


class PlaybackSession:
    """Manages the state of a playback session."""

    def __init__(self):
        """Initialize an empty, stopped session."""
        self.timeline: Optional[Timeline] = None
        self.scheduler: Optional[EventScheduler] = None
        self.state: TransportState = TransportState.STOPPED
        self.position_us: int = 0
        self.next_event_cursor: List[int] = []
        self.muted_tracks: Set[int] = set()
        self.end_reached: bool = False
        self.run_id: int = 0  # Incremented whenever position and cursors are reset

    @property
    def tempo_map(self):
        return self.scheduler.tempo_map if self.scheduler else None

    @property
    def duration_us(self) -> int:
        return self.scheduler.duration_us if self.scheduler else 0

    def install(self, timeline: Timeline, scheduler: EventScheduler):
        """Replace the timeline and rewind."""
        self.timeline = timeline
        self.scheduler = scheduler
        self.muted_tracks.clear()
        self.rewind()

    def rewind(self):
        """Reset position to 0 and every track cursor to the first event."""
        self.position_us = 0
        tracks = self.timeline.tracks if self.timeline else ()
        self.next_event_cursor = [0] * len(tracks)
        self.end_reached = False
        self.run_id += 1

    def __str__(self):
        """Return a string representation of the session state."""
        status = [f"State: {self.state}"]
        if self.timeline is None:
            status.append("No timeline loaded")
        else:
            status.append(f"Position: {self.position_us / 1e6:.3f}s / {self.duration_us / 1e6:.3f}s")
            status.append(f"Tracks: {len(self.timeline.tracks)}")
        if self.muted_tracks:
            status.append(f"Muted: {sorted(self.muted_tracks)}")
        return ", ".join(status)
