"""MIDI timeline metadata analysis.

This module summarizes a parsed timeline, including:
- Title and track names
- Tempo changes (with wall-clock offsets)
- Time signature and key signature
- Per-track note activity
"""

from typing import Dict, List, Optional

import mido

from .event_scheduler import EventScheduler
from .midi_events import (META_KEY_SIGNATURE, META_TIME_SIGNATURE, MetaOther, MetaTempo,
                          NoteOff, NoteOn, Timeline)

MIDI_TYPE_INFO = {
    0: "Type 0: single multi-channel track",
    1: "Type 1: simultaneous tracks",
    2: "Type 2: independent sequences",
}

MAJOR_KEYS = ('Cb', 'Gb', 'Db', 'Ab', 'Eb', 'Bb', 'F', 'C', 'G', 'D', 'A', 'E', 'B', 'F#', 'C#')
MINOR_KEYS = ('Abm', 'Ebm', 'Bbm', 'Fm', 'Cm', 'Gm', 'Dm', 'Am', 'Em', 'Bm', 'F#m', 'C#m',
              'G#m', 'D#m', 'A#m')


def decode_key_signature(data: bytes) -> Optional[str]:
    """Key name from a key signature payload (sharps/flats count, major/minor)."""
    if len(data) != 2:
        return None
    sharps = data[0] - 256 if data[0] > 127 else data[0]
    if not -7 <= sharps <= 7:
        return None
    keys = MINOR_KEYS if data[1] else MAJOR_KEYS
    return keys[sharps + 7]


class MidiMetadataAnalyzer:
    """Analyzes parsed timelines for metadata and musical characteristics"""

    def analyze(self, timeline: Timeline, scheduler: Optional[EventScheduler] = None) -> Dict:
        """Analyze timeline metadata
            Args:
                timeline: Parsed timeline
                scheduler: Scheduler holding the timeline's tempo context;
                    built from the timeline when omitted

            Returns:
                Dict containing the metadata summary
        """
        scheduler = scheduler or EventScheduler(timeline)

        metadata = {
            'format': timeline.format,
            'midi_type_info': MIDI_TYPE_INFO.get(timeline.format, f"Type {timeline.format}"),
            'tracks': len(timeline.tracks),
            'ticks_per_beat': timeline.ticks_per_quarter_note,
            'events': timeline.event_count,
            'end_tick': timeline.end_tick,
            'duration_us': scheduler.duration_us,
            'length': scheduler.duration_us / 1e6,  # Length (seconds)
            'title': None,
            'time_signature': {'numerator': 4, 'denominator': 4, 'text': '4/4'},  # Default 4/4 time
            'time_signature_changes': [],
            'key_signature': None,
        }

        tempo_changes = []
        for track in timeline.tracks:
            for event, tick in zip(track.events, track.absolute_ticks):
                kind = event.kind
                if isinstance(kind, MetaTempo):
                    tempo_changes.append({
                        'track': track.index,
                        'tick': tick,
                        'time_us': scheduler.tick_to_us(track.index, tick),
                        'microseconds_per_beat': kind.microseconds_per_quarter_note,
                        'tempo_bpm': kind.bpm,
                    })
                elif isinstance(kind, MetaOther):
                    self._process_meta_event(kind, tick, metadata)

        tempo_changes.sort(key=lambda change: (change['tick'], change['track']))
        metadata['tempo_changes'] = tempo_changes
        metadata['has_tempo_events'] = bool(tempo_changes)
        if tempo_changes and tempo_changes[0]['tick'] == 0:
            metadata['initial_tempo'] = tempo_changes[0]['tempo_bpm']
        else:
            metadata['initial_tempo'] = mido.tempo2bpm(scheduler.default_tempo)

        changes = metadata['time_signature_changes']
        if changes:
            changes.sort(key=lambda change: change['tick'])
            metadata['time_signature'] = changes[0]

        if metadata['title'] is None:
            metadata['title'] = next((track.name for track in timeline.tracks if track.name), None)

        metadata['track_info'] = self._extract_track_info(timeline)
        return metadata

    def _process_meta_event(self, kind: MetaOther, tick: int, metadata: Dict):
        """Process individual meta event for metadata extraction"""
        if kind.type == META_TIME_SIGNATURE and len(kind.data) >= 2:
            numerator = kind.data[0]
            denominator = 2 ** kind.data[1]
            metadata['time_signature_changes'].append({
                'tick': tick,
                'numerator': numerator,
                'denominator': denominator,
                'text': f"{numerator}/{denominator}",
            })
        elif kind.type == META_KEY_SIGNATURE and metadata['key_signature'] is None:
            metadata['key_signature'] = decode_key_signature(kind.data)

    def _extract_track_info(self, timeline: Timeline) -> List[Dict]:
        """Per-track name, event count, note count and channels"""
        track_info = []
        for track in timeline.tracks:
            channels = set()
            notes = 0
            for event in track.events:
                kind = event.kind
                if isinstance(kind, (NoteOn, NoteOff)):
                    channels.add(kind.channel)
                    if isinstance(kind, NoteOn):
                        notes += 1
            track_info.append({
                'index': track.index,
                'name': track.name or f"Track {track.index}",
                'events': len(track),
                'notes': notes,
                'channels': sorted(channels),
                'end_tick': track.end_tick,
            })
        return track_info
