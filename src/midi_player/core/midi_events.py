"""Parsed MIDI data structures.

A Timeline holds one Track per MTrk chunk; a Track holds RawEvents in file
order. Event payloads are a closed set of frozen dataclasses (EventKind).
"""

from dataclasses import dataclass, field
from functools import cached_property
from itertools import accumulate
from typing import Optional, Tuple, Union

import mido

NOTE_NAMES = ('C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B')

# Meta event type byte -> display name
META_EVENT_NAMES = {
    0x00: 'Sequence Number',
    0x01: 'Text Event',
    0x02: 'Copyright Notice',
    0x03: 'Sequence/Track Name',
    0x04: 'Instrument Name',
    0x05: 'Lyric',
    0x06: 'Marker',
    0x07: 'Cue Point',
    0x20: 'MIDI Channel Prefix',
    0x21: 'MIDI Port',
    0x54: 'SMPTE Offset',
    0x58: 'Time Signature',
    0x59: 'Key Signature',
    0x7F: 'Sequencer-Specific Meta-event',
}

META_TRACK_NAME = 0x03
META_TIME_SIGNATURE = 0x58
META_KEY_SIGNATURE = 0x59

# Status high nibble -> name, for channel messages kept as Other
_OTHER_CHANNEL_NAMES = {
    0xA0: 'Polyphonic Key Pressure',
    0xD0: 'Channel Key Pressure',
    0xE0: 'Pitch Bend',
}


def note_name(note: int) -> str:
    """Return scientific pitch name for a MIDI note number (60 -> C4)."""
    return f"{NOTE_NAMES[note % 12]}{note // 12 - 1}"


@dataclass(frozen=True)
class NoteOn:
    channel: int
    note: int
    velocity: int

    name = 'Note on'


@dataclass(frozen=True)
class NoteOff:
    channel: int
    note: int
    velocity: int

    name = 'Note off'


@dataclass(frozen=True)
class ControlChange:
    channel: int
    controller: int
    value: int

    name = 'Controller Change'


@dataclass(frozen=True)
class ProgramChange:
    channel: int
    program: int

    name = 'Program Change'


@dataclass(frozen=True)
class MetaTempo:
    microseconds_per_quarter_note: int

    name = 'Set Tempo'

    @property
    def bpm(self) -> float:
        return mido.tempo2bpm(self.microseconds_per_quarter_note)


@dataclass(frozen=True)
class MetaEndOfTrack:
    name = 'End of Track'


@dataclass(frozen=True)
class MetaOther:
    type: int
    data: bytes

    @property
    def name(self) -> str:
        return META_EVENT_NAMES.get(self.type, f'Meta 0x{self.type:02X}')

    @property
    def text(self) -> Optional[str]:
        """Decoded payload for the text meta types (0x01-0x07), else None."""
        if 0x01 <= self.type <= 0x07:
            return self.data.decode('latin-1')
        return None


@dataclass(frozen=True)
class SysEx:
    data: bytes

    name = 'Sysex'


@dataclass(frozen=True)
class Other:
    """Any event the decoder keeps verbatim (aftertouch, pitch bend, vendor bytes)."""
    raw: bytes

    @property
    def name(self) -> str:
        if self.raw and 0x80 <= self.raw[0] < 0xF0:
            return _OTHER_CHANNEL_NAMES.get(self.raw[0] & 0xF0, 'Unknown')
        return 'Unknown'


EventKind = Union[NoteOn, NoteOff, ControlChange, ProgramChange, MetaTempo,
                  MetaEndOfTrack, MetaOther, SysEx, Other]


@dataclass(frozen=True)
class RawEvent:
    """One decoded event: delta time plus payload."""
    track_index: int
    delta_ticks: int
    kind: EventKind


@dataclass(frozen=True)
class Track:
    """Events of one track chunk, in file order."""
    index: int
    events: Tuple[RawEvent, ...] = ()

    def __len__(self):
        return len(self.events)

    @cached_property
    def absolute_ticks(self) -> Tuple[int, ...]:
        """Absolute tick of every event (prefix sums of the deltas)."""
        return tuple(accumulate(event.delta_ticks for event in self.events))

    @property
    def end_tick(self) -> int:
        ticks = self.absolute_ticks
        return ticks[-1] if ticks else 0

    @cached_property
    def name(self) -> Optional[str]:
        """Text of the first Sequence/Track Name meta event, if any."""
        for event in self.events:
            kind = event.kind
            if isinstance(kind, MetaOther) and kind.type == META_TRACK_NAME:
                return kind.text.strip() or None
        return None


@dataclass(frozen=True)
class Timeline:
    """A parsed Standard MIDI File."""
    format: int
    ticks_per_quarter_note: int
    tracks: Tuple[Track, ...] = field(default_factory=tuple)

    @property
    def end_tick(self) -> int:
        """Largest absolute tick over all tracks (0 for an empty timeline)."""
        return max((track.end_tick for track in self.tracks), default=0)

    @property
    def event_count(self) -> int:
        return sum(len(track) for track in self.tracks)


def describe_event(track_index: int, tick: int, kind: EventKind) -> str:
    """Render an observed event as a single display line.

    Args:
        track_index: Track the event belongs to
        tick: Absolute tick of the event
        kind: Decoded event payload

    Returns:
        str: e.g. "Track: 0, Tick: 480, Event: Note off, Note: C4, Velocity: 0"
    """
    parts = [f"Track: {track_index}", f"Tick: {tick}", f"Event: {kind.name}"]

    if isinstance(kind, (NoteOn, NoteOff)):
        parts.append(f"Channel: {kind.channel}")
        parts.append(f"Note: {note_name(kind.note)}")
        parts.append(f"Velocity: {kind.velocity}")
    elif isinstance(kind, ControlChange):
        parts.append(f"Channel: {kind.channel}")
        parts.append(f"Controller: {kind.controller}")
        parts.append(f"Value: {kind.value}")
    elif isinstance(kind, ProgramChange):
        parts.append(f"Channel: {kind.channel}")
        parts.append(f"Value: {kind.program}")
    elif isinstance(kind, MetaTempo):
        parts.append(f"Tempo: {kind.bpm:.2f} BPM")
    elif isinstance(kind, MetaOther):
        text = kind.text
        if text is not None:
            parts.append(f"Text: {text}")
        elif kind.data:
            parts.append(f"Data: {list(kind.data)}")
    elif isinstance(kind, SysEx):
        parts.append(f"Data: {list(kind.data)}")
    elif isinstance(kind, Other):
        parts.append(f"Data: {list(kind.raw)}")

    return ", ".join(parts)
