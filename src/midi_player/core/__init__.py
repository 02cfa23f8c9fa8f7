"""
Core Components for the MIDI Player

This package contains all core engine components including:
- MIDI file parser
- Tempo map and event scheduler
- Transport state machine and event dispatcher
- MIDI engine facade and playback clock
- Timeline metadata analysis
"""

from .errors import IllegalTransition, LoadError, LoadErrorKind, MidiPlayerError, TransportError
from .event_dispatcher import CallbackObserver, EventDispatcher, PlaybackObserver
from .event_scheduler import EventScheduler, ScheduledEvent, schedule
from .midi_engine import MidiEngine
from .midi_events import (ControlChange, MetaEndOfTrack, MetaOther, MetaTempo, NoteOff, NoteOn,
                          Other, ProgramChange, RawEvent, SysEx, Timeline, Track, describe_event)
from .midi_metadata import MidiMetadataAnalyzer
from .midi_parser import parse
from .playback_mode import TransportEvent, TransportState
from .player_session_state import PlaybackSession
from .precision_timer import PlaybackClock
from .tempo_map import DEFAULT_TEMPO, TempoMap, build_tempo_map

__all__ = [
    'MidiEngine',
    'PlaybackClock',
    'PlaybackSession',
    'EventScheduler',
    'EventDispatcher',
    'MidiMetadataAnalyzer',
    'PlaybackObserver',
    'CallbackObserver',
    'TransportState',
    'TransportEvent',
    'ScheduledEvent',
    'TempoMap',
    'DEFAULT_TEMPO',
    'build_tempo_map',
    'schedule',
    'parse',
    'describe_event',
    'Timeline',
    'Track',
    'RawEvent',
    'NoteOn',
    'NoteOff',
    'ControlChange',
    'ProgramChange',
    'MetaTempo',
    'MetaEndOfTrack',
    'MetaOther',
    'SysEx',
    'Other',
    'MidiPlayerError',
    'LoadError',
    'LoadErrorKind',
    'TransportError',
    'IllegalTransition',
]
