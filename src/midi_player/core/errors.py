"""Error types raised by the playback engine.

Two families exist:
- LoadError: the bytes handed to the engine could not become a Timeline
- TransportError: a transport command is not allowed in the current state
"""

from enum import Enum


class LoadErrorKind(Enum):
    """Reason a load failed."""

    MALFORMED_HEADER = "MalformedHeader"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    TRUNCATED_DATA = "TruncatedData"
    INVALID_EVENT_ENCODING = "InvalidEventEncoding"
    SOURCE_UNAVAILABLE = "SourceUnavailable"

    def __str__(self):
        return self.value


class MidiPlayerError(Exception):
    """Base class for all engine errors."""


class LoadError(MidiPlayerError):
    """Raised when MIDI bytes cannot be acquired or parsed.

    Args:
        kind: Tagged failure reason
        detail: Human-readable description of what went wrong
    """

    def __init__(self, kind: LoadErrorKind, detail: str):
        super().__init__(f"{kind}: {detail}")
        self.kind = kind
        self.detail = detail


class TransportError(MidiPlayerError):
    """Base class for transport command failures."""


class IllegalTransition(TransportError):
    """Raised when a command is not valid in the current transport state.

    Args:
        command: Name of the rejected command
        state: Transport state the command was issued in
    """

    def __init__(self, command: str, state):
        super().__init__(f"IllegalTransition: cannot {command} while {state}")
        self.command = command
        self.state = state
