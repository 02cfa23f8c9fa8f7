"""Transport state machine: Stopped, Playing, Paused.

| Command   | Stopped           | Playing           | Paused            |
|-----------|-------------------|-------------------|-------------------|
| load      | Stopped, rewound  | IllegalTransition | IllegalTransition |
| play      | Playing from 0    | no-op             | Playing, resumed  |
| pause     | IllegalTransition | Paused            | no-op             |
| stop      | no-op             | Stopped, rewound  | Stopped, rewound  |
| tick      | ignored           | advance, dispatch | ignored           |

Reaching the end of the timeline while playing stops the session and emits
END_OF_FILE instead of STOPPED.
"""

import logging

from .errors import IllegalTransition
from .event_dispatcher import EventDispatcher
from .event_scheduler import EventScheduler
from .midi_events import Timeline
from .playback_mode import TransportEvent, TransportState
from .player_session_state import PlaybackSession

logger = logging.getLogger(__name__)


class Transport:
    """Applies transport commands to a PlaybackSession.

    Args:
        session: Session mutated by the commands
        dispatcher: Dispatcher used for notifications and event delivery
    """

    def __init__(self, session: PlaybackSession, dispatcher: EventDispatcher):
        self.session = session
        self.dispatcher = dispatcher

    @property
    def state(self) -> TransportState:
        return self.session.state

    def _transition(self, new_state: TransportState, notification: TransportEvent):
        logger.debug("Transport %s -> %s", self.session.state, new_state)
        self.session.state = new_state
        self.dispatcher.notify_transport(notification)

    def load(self, timeline: Timeline, scheduler: EventScheduler):
        """Install a new timeline. Only allowed while stopped."""
        if self.session.state is not TransportState.STOPPED:
            raise IllegalTransition('load', self.session.state)
        self.session.install(timeline, scheduler)

    def play(self):
        """Start from the beginning, or resume from the paused position."""
        state = self.session.state
        if state is TransportState.PLAYING:
            return
        if state is TransportState.STOPPED:
            self.session.rewind()

        self._transition(TransportState.PLAYING, TransportEvent.STARTED)
        # Events at the current position (tick 0 on a fresh start) are due immediately
        if self.session.state is TransportState.PLAYING:
            self._dispatch()

    def pause(self):
        """Freeze the clock, keeping the position."""
        state = self.session.state
        if state is TransportState.STOPPED:
            raise IllegalTransition('pause', state)
        if state is TransportState.PAUSED:
            return
        self._transition(TransportState.PAUSED, TransportEvent.PAUSED)

    def stop(self):
        """Stop and rewind. Always succeeds."""
        if self.session.state is TransportState.STOPPED:
            return
        self.session.rewind()
        self._transition(TransportState.STOPPED, TransportEvent.STOPPED)

    def tick(self, elapsed_us: int):
        """Advance the clock by elapsed_us and deliver due events.

        Ignored unless playing.
        """
        if elapsed_us < 0:
            raise ValueError("elapsed_us must be non-negative")
        if self.session.state is not TransportState.PLAYING:
            return
        self.session.position_us += int(elapsed_us)
        self._dispatch()

    def _dispatch(self):
        if self.dispatcher.dispatch(self.session):
            self._end_of_timeline()

    def _end_of_timeline(self):
        if self.session.state is not TransportState.PLAYING:
            return
        self.session.rewind()
        self._transition(TransportState.STOPPED, TransportEvent.END_OF_FILE)
