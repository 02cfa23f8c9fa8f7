"""Delivery of due events and transport notifications to the observer.

The dispatcher performs no I/O: it reads the session position, asks the
scheduler for due events, invokes the observer, and advances the track
cursors.
"""

import logging
from typing import Callable, Optional

from .event_scheduler import ScheduledEvent
from .midi_events import EventKind
from .playback_mode import TransportEvent, TransportState
from .player_session_state import PlaybackSession

logger = logging.getLogger(__name__)


class PlaybackObserver:
    """Receives engine notifications. Both channels default to no-ops."""

    def on_transport(self, event: TransportEvent) -> None:
        pass

    def on_midi_event(self, track_index: int, tick: int, kind: EventKind) -> None:
        pass


class CallbackObserver(PlaybackObserver):
    """Observer built from two plain callables.

    Args:
        on_transport: Called with each TransportEvent
        on_midi_event: Called with (track_index, tick, kind) for each event
    """

    def __init__(self, on_transport: Optional[Callable[[TransportEvent], None]] = None,
                 on_midi_event: Optional[Callable[[int, int, EventKind], None]] = None):
        self._on_transport = on_transport
        self._on_midi_event = on_midi_event

    def on_transport(self, event: TransportEvent) -> None:
        if self._on_transport:
            self._on_transport(event)

    def on_midi_event(self, track_index: int, tick: int, kind: EventKind) -> None:
        if self._on_midi_event:
            self._on_midi_event(track_index, tick, kind)


class EventDispatcher:
    """Pushes scheduled events and transport notifications to one observer."""

    def __init__(self, observer: Optional[PlaybackObserver] = None):
        self.observer = observer or PlaybackObserver()

    def notify_transport(self, event: TransportEvent):
        """Send a transport notification to the observer."""
        try:
            self.observer.on_transport(event)
        except Exception:
            logger.exception("Observer failed handling transport event %s", event)

    def _deliver(self, scheduled: ScheduledEvent):
        try:
            self.observer.on_midi_event(scheduled.track_index, scheduled.tick, scheduled.kind)
        except Exception:
            logger.exception("Observer failed handling event on track %d at tick %d",
                             scheduled.track_index, scheduled.tick)

    def dispatch(self, session: PlaybackSession) -> bool:
        """Deliver every event due at the session's current position.

        Each track cursor is advanced before its event is delivered, so an
        observer that pauses or stops the session from inside the callback
        never sees an event twice.

        Args:
            session: Playing session to dispatch from

        Returns:
            bool: True exactly once per run, when the position has reached
                the end of the timeline
        """
        if session.end_reached:
            return False

        if session.scheduler is not None:
            run_id = session.run_id
            cursors = session.next_event_cursor
            for scheduled in session.scheduler.due_events(cursors, session.position_us):
                track_index = scheduled.track_index
                if scheduled.event_index < cursors[track_index]:
                    continue
                cursors[track_index] = scheduled.event_index + 1

                if track_index not in session.muted_tracks:
                    self._deliver(scheduled)

                # The observer may have paused, stopped or rewound the session
                if session.run_id != run_id or session.state is not TransportState.PLAYING:
                    return False

        if session.position_us >= session.duration_us:
            session.end_reached = True
            return True
        return False
