"""Command-line MIDI player.

Resolves a MIDI source, loads it into a MidiEngine, prints a summary of the
file and plays it in real time, printing every event as it is delivered.

Usage:
    midi-player song.mid
    midi-player https://example.com/song.mid --mute 2
    midi-player sample --info
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from . import sources
from .config import ClockConfig, SourceConfig
from .core.errors import LoadError
from .core.event_dispatcher import PlaybackObserver
from .core.midi_engine import MidiEngine
from .core.midi_events import EventKind, describe_event
from .core.playback_mode import TransportEvent
from .core.precision_timer import PlaybackClock

TRANSPORT_MESSAGES = {
    TransportEvent.STARTED: "Playback started.",
    TransportEvent.PAUSED: "Playback paused.",
    TransportEvent.STOPPED: "Playback stopped.",
    TransportEvent.END_OF_FILE: "End of MIDI file reached.",
}


class ConsolePrinter(PlaybackObserver):
    """Prints transport changes and (unless quiet) every MIDI event"""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def on_transport(self, event: TransportEvent) -> None:
        print(TRANSPORT_MESSAGES[event])

    def on_midi_event(self, track_index: int, tick: int, kind: EventKind) -> None:
        if not self.quiet:
            print(describe_event(track_index, tick, kind))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='midi-player',
        description="Play a Standard MIDI File and print its events in real time",
    )
    parser.add_argument('source',
                        help="File path, http(s) URL, data: URI, or 'sample' for the built-in file")
    parser.add_argument('--info', action='store_true',
                        help="Print file information and exit without playing")
    parser.add_argument('--mute', type=int, action='append', default=[], metavar='TRACK',
                        help="Do not print events of this track (repeatable)")
    parser.add_argument('--tick-ms', type=float, default=5.0,
                        help="Clock tick interval in milliseconds (default: 5)")
    parser.add_argument('--timeout', type=float, default=10.0,
                        help="Timeout in seconds when fetching a URL (default: 10)")
    parser.add_argument('--quiet', action='store_true',
                        help="Only print transport changes, not individual events")
    parser.add_argument('--verbose', action='store_true', help="Enable debug logging")
    return parser


def format_file_info(metadata: Dict) -> List[str]:
    """Summary lines for a loaded file"""
    lines = [
        f"Title: {metadata['title'] or '(untitled)'}",
        f"Format: {metadata['midi_type_info']}",
        f"Tracks: {metadata['tracks']}, ticks per beat: {metadata['ticks_per_beat']}",
        f"Length: {metadata['length']:.2f}s",
        f"Initial tempo: {metadata['initial_tempo']:.1f} BPM"
        + (f" ({len(metadata['tempo_changes'])} tempo events)" if metadata['tempo_changes'] else ""),
        f"Time signature: {metadata['time_signature']['text']}",
    ]
    if metadata['key_signature']:
        lines.append(f"Key signature: {metadata['key_signature']}")
    for info in metadata['track_info']:
        channels = ", ".join(str(c) for c in info['channels']) or "-"
        lines.append(f"  [{info['index']}] {info['name']}: {info['events']} events, "
                     f"{info['notes']} notes, channels {channels}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    """Main program entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    engine = MidiEngine(ConsolePrinter(quiet=args.quiet))

    try:
        data = sources.resolve(args.source, SourceConfig(fetch_timeout_sec=args.timeout))
        engine.load(data)
    except LoadError as e:
        print(f"❌ Error loading MIDI file: {e}", file=sys.stderr)
        return 1

    print("✅ MIDI file loaded successfully.")
    for line in format_file_info(engine.get_metadata()):
        print(line)

    if args.info:
        return 0

    for track_index in args.mute:
        engine.mute_track(track_index)

    clock = PlaybackClock(engine, ClockConfig(tick_interval_sec=args.tick_ms / 1000.0))
    engine.play()
    clock.start()
    try:
        while not clock.wait(0.2):
            pass
    except KeyboardInterrupt:
        engine.stop()
        clock.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
