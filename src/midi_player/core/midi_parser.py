"""Standard MIDI File decoding.

Turns raw SMF bytes into an immutable Timeline. Any problem raises LoadError
before a Timeline exists, so a failed parse never produces partial results.
"""

import logging
import struct
from typing import List, Optional, Tuple

import mido

from .errors import LoadError, LoadErrorKind
from .midi_events import (ControlChange, EventKind, MetaEndOfTrack, MetaOther, MetaTempo,
                          NoteOff, NoteOn, Other, ProgramChange, RawEvent, SysEx, Timeline,
                          Track)

logger = logging.getLogger(__name__)

HEADER_TAG = b'MThd'
TRACK_TAG = b'MTrk'
HEADER_LENGTH = 6
MAX_VLQ_BYTES = 4

META_PREFIX = 0xFF
META_TEMPO = 0x51
META_END_OF_TRACK = 0x2F
SYSEX_START = 0xF0
SYSEX_ESCAPE = 0xF7

# Number of data bytes following a channel-voice status (high nibble)
CHANNEL_DATA_LENGTHS = {
    0x80: 2,  # note off
    0x90: 2,  # note on
    0xA0: 2,  # polyphonic key pressure
    0xB0: 2,  # control change
    0xC0: 1,  # program change
    0xD0: 1,  # channel pressure
    0xE0: 2,  # pitch bend
}

# Data bytes following system common / real-time status bytes
SYSTEM_DATA_LENGTHS = {
    0xF1: 1, 0xF2: 2, 0xF3: 1, 0xF4: 0, 0xF5: 0, 0xF6: 0,
    0xF8: 0, 0xF9: 0, 0xFA: 0, 0xFB: 0, 0xFC: 0, 0xFD: 0, 0xFE: 0,
}


class ChunkReader:
    """Cursor over a byte range with SMF primitive readers.

    Args:
        data: Complete file contents
        start: First readable offset
        end: One past the last readable offset
    """

    def __init__(self, data: bytes, start: int = 0, end: Optional[int] = None):
        self.data = data
        self.offset = start
        self.end = len(data) if end is None else end

    @property
    def remaining(self) -> int:
        return self.end - self.offset

    def read_byte(self) -> int:
        if self.offset >= self.end:
            raise LoadError(LoadErrorKind.TRUNCATED_DATA,
                            f"unexpected end of data at offset {self.offset}")
        value = self.data[self.offset]
        self.offset += 1
        return value

    def read_bytes(self, count: int) -> bytes:
        if count > self.remaining:
            raise LoadError(LoadErrorKind.TRUNCATED_DATA,
                            f"needed {count} bytes at offset {self.offset}, "
                            f"only {self.remaining} available")
        value = bytes(self.data[self.offset:self.offset + count])
        self.offset += count
        return value

    def read_vlq(self) -> int:
        """Read a variable-length quantity (7 bits per byte, at most 4 bytes)."""
        start = self.offset
        value = 0
        for _ in range(MAX_VLQ_BYTES):
            byte = self.read_byte()
            value = (value << 7) | (byte & 0x7F)
            if not byte & 0x80:
                return value
        raise LoadError(LoadErrorKind.INVALID_EVENT_ENCODING,
                        f"variable-length quantity at offset {start} exceeds {MAX_VLQ_BYTES} bytes")


def read_header(reader: ChunkReader) -> Tuple[int, int, int]:
    """Validate the MThd chunk.

    Returns:
        Tuple[int, int, int]: (format, track count, ticks per quarter note)
    """
    if reader.remaining < 4 or reader.data[reader.offset:reader.offset + 4] != HEADER_TAG:
        raise LoadError(LoadErrorKind.MALFORMED_HEADER, "missing MThd header chunk tag")
    reader.offset += 4
    if reader.remaining < 4 + HEADER_LENGTH:
        raise LoadError(LoadErrorKind.TRUNCATED_DATA, "header chunk is incomplete")

    length, = struct.unpack('>I', reader.read_bytes(4))
    if length != HEADER_LENGTH:
        raise LoadError(LoadErrorKind.MALFORMED_HEADER,
                        f"header chunk length is {length}, expected {HEADER_LENGTH}")

    file_format, track_count, division = struct.unpack('>HHH', reader.read_bytes(6))
    if file_format not in (0, 1, 2):
        raise LoadError(LoadErrorKind.UNSUPPORTED_FORMAT, f"unknown SMF format {file_format}")
    if division & 0x8000:
        raise LoadError(LoadErrorKind.UNSUPPORTED_FORMAT,
                        "SMPTE time division is not supported, only ticks per quarter note")
    if division == 0:
        raise LoadError(LoadErrorKind.MALFORMED_HEADER, "ticks per quarter note must be positive")

    return file_format, track_count, division


def decode_channel_message(status: int, data: bytes) -> EventKind:
    """Decode a channel-voice message into its event kind.

    mido validates the data bytes; anything outside 0..127 is rejected.
    """
    raw = bytes([status]) + data
    try:
        msg = mido.Message.from_bytes(raw)
    except ValueError as e:
        raise LoadError(LoadErrorKind.INVALID_EVENT_ENCODING,
                        f"bad channel message {list(raw)}: {e}") from e

    if msg.type == 'note_on':
        # Note on with velocity 0 is a note off
        if msg.velocity == 0:
            return NoteOff(msg.channel, msg.note, 0)
        return NoteOn(msg.channel, msg.note, msg.velocity)
    if msg.type == 'note_off':
        return NoteOff(msg.channel, msg.note, msg.velocity)
    if msg.type == 'control_change':
        return ControlChange(msg.channel, msg.control, msg.value)
    if msg.type == 'program_change':
        return ProgramChange(msg.channel, msg.program)
    return Other(raw)


def decode_meta_event(meta_type: int, data: bytes, offset: int) -> EventKind:
    """Decode the payload of an FF meta event."""
    if meta_type == META_TEMPO:
        if len(data) != 3:
            raise LoadError(LoadErrorKind.INVALID_EVENT_ENCODING,
                            f"tempo event at offset {offset} has {len(data)} data bytes, expected 3")
        tempo = int.from_bytes(data, 'big')
        if tempo == 0:
            raise LoadError(LoadErrorKind.INVALID_EVENT_ENCODING,
                            f"tempo event at offset {offset} is zero")
        return MetaTempo(tempo)
    if meta_type == META_END_OF_TRACK:
        return MetaEndOfTrack()
    return MetaOther(meta_type, data)


def read_track_events(reader: ChunkReader, track_index: int) -> List[RawEvent]:
    """Decode (delta-time, event) pairs until the chunk is consumed.

    Args:
        reader: Reader bounded to the chunk body
        track_index: Index stamped on every decoded event

    Returns:
        List[RawEvent]: Events in file order
    """
    events = []
    running_status = None

    while reader.remaining > 0:
        delta = reader.read_vlq()
        event_offset = reader.offset
        status = reader.read_byte()

        if status < 0x80:
            # Running status: this byte is already the first data byte
            if running_status is None:
                raise LoadError(LoadErrorKind.INVALID_EVENT_ENCODING,
                                f"data byte 0x{status:02X} at offset {event_offset} "
                                "without running status")
            length = CHANNEL_DATA_LENGTHS[running_status & 0xF0]
            data = bytes([status]) + reader.read_bytes(length - 1)
            kind = decode_channel_message(running_status, data)

        elif status < 0xF0:
            running_status = status
            data = reader.read_bytes(CHANNEL_DATA_LENGTHS[status & 0xF0])
            kind = decode_channel_message(status, data)

        elif status == META_PREFIX:
            running_status = None
            meta_type = reader.read_byte()
            data = reader.read_bytes(reader.read_vlq())
            kind = decode_meta_event(meta_type, data, event_offset)

        elif status in (SYSEX_START, SYSEX_ESCAPE):
            running_status = None
            kind = SysEx(reader.read_bytes(reader.read_vlq()))

        else:
            # System common / real-time bytes do not belong in a file; keep them verbatim
            if status < 0xF8:
                # System common cancels running status, real-time does not
                running_status = None
            data = reader.read_bytes(SYSTEM_DATA_LENGTHS[status])
            kind = Other(bytes([status]) + data)

        events.append(RawEvent(track_index, delta, kind))

        if isinstance(kind, MetaEndOfTrack):
            if reader.remaining:
                logger.debug("Track %d: ignoring %d bytes after End of Track",
                             track_index, reader.remaining)
            break

    return events


def parse(data: bytes) -> Timeline:
    """Parse Standard MIDI File bytes into a Timeline.

    Args:
        data: Raw file contents

    Returns:
        Timeline: Fully decoded, immutable timeline

    Raises:
        LoadError: MalformedHeader, UnsupportedFormat, TruncatedData or
            InvalidEventEncoding
    """
    data = bytes(data)
    reader = ChunkReader(data)
    file_format, track_count, ticks_per_quarter_note = read_header(reader)

    tracks = []
    for track_index in range(track_count):
        if reader.remaining < 8:
            raise LoadError(LoadErrorKind.TRUNCATED_DATA,
                            f"file ends before track {track_index} of {track_count}")
        tag = reader.read_bytes(4)
        if tag != TRACK_TAG:
            raise LoadError(LoadErrorKind.MALFORMED_HEADER,
                            f"expected MTrk for track {track_index}, found {tag!r}")
        length, = struct.unpack('>I', reader.read_bytes(4))
        if length > reader.remaining:
            raise LoadError(LoadErrorKind.TRUNCATED_DATA,
                            f"track {track_index} declares {length} bytes, "
                            f"only {reader.remaining} available")

        body = ChunkReader(data, reader.offset, reader.offset + length)
        events = read_track_events(body, track_index)
        tracks.append(Track(track_index, tuple(events)))
        reader.offset += length

    timeline = Timeline(file_format, ticks_per_quarter_note, tuple(tracks))
    logger.debug("Parsed SMF format %d: %d tracks, %d events, %d ticks per quarter note",
                 file_format, len(tracks), timeline.event_count, ticks_per_quarter_note)
    return timeline
