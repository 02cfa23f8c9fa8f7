"""Transport state and notification definitions for the MIDI player.

This module defines:
- TransportState: STOPPED, PLAYING or PAUSED
- TransportEvent: notifications emitted when the state changes
"""

from enum import Enum, auto


class TransportState(Enum):
    """Enum defining the transport states of a playback session."""

    STOPPED = auto()  # Initial state, also reached after stop and end of file
    PLAYING = auto()  # Clock ticks advance the position and dispatch events
    PAUSED = auto()   # Position frozen, resumable with play

    def __str__(self):
        """Return a user-friendly string representation."""
        return self.name.capitalize()


class TransportEvent(Enum):
    """Notification sent to the observer on every state change."""

    STARTED = auto()
    PAUSED = auto()
    STOPPED = auto()
    END_OF_FILE = auto()

    def __str__(self):
        return self.name.replace('_', ' ').capitalize()
