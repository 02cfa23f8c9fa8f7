import pytest

from midi_player import sources
from midi_player.core.midi_events import (MetaOther, MetaTempo, NoteOff, NoteOn, Other,
                                          ProgramChange, describe_event, note_name)
from midi_player.core.midi_metadata import MidiMetadataAnalyzer, decode_key_signature
from midi_player.core.midi_parser import parse

from midi_fixtures import end_of_track, event, note_on, smf, tempo, track_name


@pytest.fixture
def sample_metadata() -> dict:
    return MidiMetadataAnalyzer().analyze(parse(sources.SAMPLE_MIDI))


def test_sample_summary(sample_metadata: dict) -> None:
    assert sample_metadata['format'] == 1
    assert sample_metadata['tracks'] == 2
    assert sample_metadata['ticks_per_beat'] == 480
    assert sample_metadata['title'] == 'Sample'
    assert sample_metadata['end_tick'] == 1920
    assert sample_metadata['duration_us'] == 2_000_000
    assert sample_metadata['length'] == pytest.approx(2.0)
    assert sample_metadata['time_signature']['text'] == '4/4'
    assert sample_metadata['initial_tempo'] == pytest.approx(120.0)
    assert sample_metadata['has_tempo_events']
    assert sample_metadata['key_signature'] is None


def test_sample_track_info(sample_metadata: dict) -> None:
    first, second = sample_metadata['track_info']

    assert first['name'] == 'Sample'
    assert first['notes'] == 0
    assert second['name'] == 'Piano'
    assert second['notes'] == 4
    assert second['channels'] == [0]
    assert second['end_tick'] == 1920


def test_tempo_changes_carry_wall_clock_offsets() -> None:
    timeline = parse(smf([
        tempo(0, 400_000) + tempo(960, 600_000) + end_of_track(),
        note_on(0, 60) + end_of_track(1920),
    ]))
    metadata = MidiMetadataAnalyzer().analyze(timeline)

    assert [(c['tick'], c['time_us']) for c in metadata['tempo_changes']] == [
        (0, 0), (960, 800_000),
    ]
    assert metadata['initial_tempo'] == pytest.approx(150.0)
    assert metadata['duration_us'] == 800_000 + 1_200_000


def test_defaults_without_meta_events() -> None:
    metadata = MidiMetadataAnalyzer().analyze(parse(smf([note_on(0, 60) + end_of_track(480)])))

    assert metadata['title'] is None
    assert metadata['tempo_changes'] == []
    assert not metadata['has_tempo_events']
    assert metadata['initial_tempo'] == pytest.approx(120.0)
    assert metadata['time_signature']['text'] == '4/4'
    assert metadata['track_info'][0]['name'] == 'Track 0'


def test_time_and_key_signature() -> None:
    timeline = parse(smf([
        track_name(0, 'Waltz')
        + event(0, 0xFF, 0x58, 0x04, 3, 2, 24, 8)
        + event(0, 0xFF, 0x59, 0x02, 0xFE, 0x01)
        + event(960, 0xFF, 0x58, 0x04, 6, 3, 24, 8)
        + end_of_track(),
    ]))
    metadata = MidiMetadataAnalyzer().analyze(timeline)

    assert metadata['time_signature']['text'] == '3/4'
    assert [c['text'] for c in metadata['time_signature_changes']] == ['3/4', '6/8']
    assert metadata['key_signature'] == 'Gm'


def test_decode_key_signature() -> None:
    assert decode_key_signature(bytes([0, 0])) == 'C'
    assert decode_key_signature(bytes([3, 0])) == 'A'
    assert decode_key_signature(bytes([0xF9, 0])) == 'Cb'
    assert decode_key_signature(bytes([0, 1])) == 'Am'
    assert decode_key_signature(bytes([8, 0])) is None
    assert decode_key_signature(b'\x00') is None


def test_note_name() -> None:
    assert note_name(60) == 'C4'
    assert note_name(61) == 'C#4'
    assert note_name(0) == 'C-1'
    assert note_name(127) == 'G9'


def test_describe_event() -> None:
    assert describe_event(0, 480, NoteOff(0, 60, 0)) == \
        "Track: 0, Tick: 480, Event: Note off, Channel: 0, Note: C4, Velocity: 0"
    assert describe_event(1, 0, NoteOn(9, 36, 127)) == \
        "Track: 1, Tick: 0, Event: Note on, Channel: 9, Note: C2, Velocity: 127"
    assert describe_event(1, 0, ProgramChange(2, 41)) == \
        "Track: 1, Tick: 0, Event: Program Change, Channel: 2, Value: 41"
    assert describe_event(0, 0, MetaTempo(500_000)) == \
        "Track: 0, Tick: 0, Event: Set Tempo, Tempo: 120.00 BPM"
    assert describe_event(0, 0, MetaOther(0x03, b'Piano')) == \
        "Track: 0, Tick: 0, Event: Sequence/Track Name, Text: Piano"
    assert describe_event(0, 5, Other(bytes([0xE0, 0, 64]))) == \
        "Track: 0, Tick: 5, Event: Pitch Bend, Data: [224, 0, 64]"
