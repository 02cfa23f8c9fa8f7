import base64
from pathlib import Path
from urllib.parse import quote_from_bytes

import pytest

from midi_player import sources
from midi_player.config import SourceConfig
from midi_player.core.errors import LoadError, LoadErrorKind
from midi_player.core.midi_parser import parse

from midi_fixtures import two_track_note_file


def test_resolve_sample() -> None:
    data = sources.resolve('sample')

    assert data == sources.SAMPLE_MIDI
    assert len(parse(data).tracks) == 2


def test_read_file(tmp_path: Path) -> None:
    path = tmp_path / "song.mid"
    path.write_bytes(two_track_note_file())

    assert sources.resolve(str(path)) == two_track_note_file()


def test_missing_file_is_unavailable(tmp_path: Path) -> None:
    with pytest.raises(LoadError) as excinfo:
        sources.read_file(tmp_path / "missing.mid")

    assert excinfo.value.kind is LoadErrorKind.SOURCE_UNAVAILABLE


def test_file_larger_than_limit(tmp_path: Path) -> None:
    path = tmp_path / "big.mid"
    path.write_bytes(bytes(100))

    with pytest.raises(LoadError) as excinfo:
        sources.read_file(path, SourceConfig(max_bytes=50))

    assert excinfo.value.kind is LoadErrorKind.SOURCE_UNAVAILABLE


def test_base64_data_uri() -> None:
    payload = base64.b64encode(two_track_note_file()).decode('ascii')

    assert sources.resolve(f"data:audio/midi;base64,{payload}") == two_track_note_file()


def test_percent_encoded_data_uri() -> None:
    uri = "data:audio/midi," + quote_from_bytes(two_track_note_file())

    assert sources.decode_data_uri(uri) == two_track_note_file()


@pytest.mark.parametrize("uri", [
    "data:audio/midi;base64,@@@not-base64@@@",
    "data:audio/midi;base64",
    "http://example.com/song.mid",
])
def test_bad_data_uri(uri: str) -> None:
    with pytest.raises(LoadError) as excinfo:
        sources.decode_data_uri(uri)

    assert excinfo.value.kind is LoadErrorKind.SOURCE_UNAVAILABLE


def test_unreachable_url() -> None:
    with pytest.raises(LoadError) as excinfo:
        sources.fetch_url("http://127.0.0.1:1/song.mid", SourceConfig(fetch_timeout_sec=1.0))

    assert excinfo.value.kind is LoadErrorKind.SOURCE_UNAVAILABLE
