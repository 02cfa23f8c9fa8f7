import base64
from pathlib import Path

import pytest

from midi_player.main import build_parser, main

from midi_fixtures import end_of_track, note_off, note_on, smf


def _short_data_uri() -> str:
    data = smf([note_on(0, 60) + note_off(48, 60) + end_of_track()])
    return "data:audio/midi;base64," + base64.b64encode(data).decode('ascii')


def test_info_prints_summary(capsys: pytest.CaptureFixture) -> None:
    assert main(['sample', '--info']) == 0

    out = capsys.readouterr().out
    assert "MIDI file loaded successfully." in out
    assert "Title: Sample" in out
    assert "Length: 2.00s" in out
    assert "Initial tempo: 120.0 BPM" in out
    assert "[1] Piano: 11 events, 4 notes, channels 0" in out
    assert "Playback started." not in out


def test_missing_file_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    assert main([str(tmp_path / "missing.mid")]) == 1

    assert "Error loading MIDI file" in capsys.readouterr().err


def test_invalid_file_returns_error(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    path = tmp_path / "bad.mid"
    path.write_bytes(b'not a midi file')

    assert main([str(path)]) == 1
    assert "MalformedHeader" in capsys.readouterr().err


def test_plays_file_and_prints_events(capsys: pytest.CaptureFixture) -> None:
    assert main([_short_data_uri(), '--tick-ms', '1']) == 0

    out = capsys.readouterr().out
    assert "Playback started." in out
    assert "Track: 0, Tick: 0, Event: Note on, Channel: 0, Note: C4, Velocity: 100" in out
    assert "Track: 0, Tick: 48, Event: Note off, Channel: 0, Note: C4, Velocity: 64" in out
    assert out.rstrip().endswith("End of MIDI file reached.")


def test_quiet_and_mute(capsys: pytest.CaptureFixture) -> None:
    assert main([_short_data_uri(), '--tick-ms', '1', '--quiet', '--mute', '0']) == 0

    out = capsys.readouterr().out
    assert "Event:" not in out
    assert "End of MIDI file reached." in out


def test_parser_defaults() -> None:
    args = build_parser().parse_args(['song.mid'])

    assert args.tick_ms == 5.0
    assert args.mute == []
    assert not args.info
