"""Byte sources for the engine.

Resolves a MIDI source (local path, http(s) URL, data URI, or the embedded
sample) into raw bytes. Any failure is reported as LoadError with kind
SOURCE_UNAVAILABLE; the bytes themselves are only validated by the parser.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional, Union
from urllib.error import HTTPError, URLError
from urllib.parse import unquote_to_bytes
from urllib.request import Request, urlopen

from .config import SourceConfig
from .core.errors import LoadError, LoadErrorKind

logger = logging.getLogger(__name__)

SAMPLE_SOURCE = 'sample'

# Format 1, two tracks, 480 ticks per quarter note, 120 BPM, 4/4.
# Track 1 plays a C major arpeggio in quarter notes.
SAMPLE_MIDI = (
    b'MThd' + (6).to_bytes(4, 'big') + bytes([0, 1, 0, 2, 0x01, 0xE0])
    + b'MTrk' + (29).to_bytes(4, 'big')
    + b'\x00\xff\x03\x06Sample'
    + b'\x00\xff\x51\x03\x07\xa1\x20'
    + b'\x00\xff\x58\x04\x04\x02\x18\x08'
    + b'\x00\xff\x2f\x00'
    + b'MTrk' + (52).to_bytes(4, 'big')
    + b'\x00\xff\x03\x05Piano'
    + b'\x00\xc0\x00'
    + b'\x00\x90\x3c\x64' + b'\x83\x60\x80\x3c\x40'
    + b'\x00\x90\x40\x64' + b'\x83\x60\x80\x40\x40'
    + b'\x00\x90\x43\x64' + b'\x83\x60\x80\x43\x40'
    + b'\x00\x90\x48\x64' + b'\x83\x60\x80\x48\x40'
    + b'\x00\xff\x2f\x00'
)


def _unavailable(detail: str) -> LoadError:
    return LoadError(LoadErrorKind.SOURCE_UNAVAILABLE, detail)


def _check_size(data: bytes, source: str, config: SourceConfig) -> bytes:
    if len(data) > config.max_bytes:
        raise _unavailable(f"{source} is larger than {config.max_bytes} bytes")
    return data


def load_sample() -> bytes:
    """Bytes of the embedded sample file."""
    return SAMPLE_MIDI


def read_file(path: Union[str, Path], config: Optional[SourceConfig] = None) -> bytes:
    """Read a MIDI file from disk."""
    config = config or SourceConfig()
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise _unavailable(f"cannot read {path}: {e}") from e
    return _check_size(data, str(path), config)


def fetch_url(url: str, config: Optional[SourceConfig] = None) -> bytes:
    """Download a MIDI file over HTTP(S)."""
    config = config or SourceConfig()
    logger.info("Fetching MIDI file from %s", url)
    req = Request(url, headers={'Accept': 'audio/midi, audio/x-midi, */*'})
    try:
        with urlopen(req, timeout=config.fetch_timeout_sec) as resp:  # noqa: S310
            data = resp.read(config.max_bytes + 1)
    except (HTTPError, URLError, OSError, TimeoutError) as e:
        raise _unavailable(f"cannot fetch {url}: {e}") from e
    return _check_size(data, url, config)


def decode_data_uri(uri: str) -> bytes:
    """Decode a data: URI (base64 or percent-encoded payload)."""
    if not uri.startswith('data:') or ',' not in uri:
        raise _unavailable("not a data URI")
    header, _, payload = uri[len('data:'):].partition(',')
    if header.endswith(';base64'):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise _unavailable(f"invalid base64 payload: {e}") from e
    return unquote_to_bytes(payload)


def resolve(source: str, config: Optional[SourceConfig] = None) -> bytes:
    """Turn a source string into MIDI bytes

    Args:
        source: 'sample', a data: URI, an http(s):// URL, or a file path
        config: Source configuration

    Returns:
        bytes: Raw file contents

    Raises:
        LoadError: SOURCE_UNAVAILABLE if the bytes cannot be obtained
    """
    config = config or SourceConfig()
    if source == SAMPLE_SOURCE:
        return load_sample()
    if source.startswith('data:'):
        return _check_size(decode_data_uri(source), 'data URI', config)
    if source.startswith(('http://', 'https://')):
        return fetch_url(source, config)
    return read_file(source, config)
