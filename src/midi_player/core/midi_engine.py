import logging
import threading
from typing import Dict, Optional, Set

from ..config import EngineConfig
from .errors import IllegalTransition
from .event_dispatcher import EventDispatcher, PlaybackObserver
from .event_scheduler import EventScheduler
from .midi_events import Timeline
from .midi_metadata import MidiMetadataAnalyzer
from .midi_parser import parse
from .playback_mode import TransportState
from .player_session_state import PlaybackSession
from .transport import Transport

logger = logging.getLogger(__name__)


class MidiEngine:
    """MIDI engine class responsible for MIDI file loading, playback control and event delivery

    Single Session:
    ===============
    Each engine owns exactly one PlaybackSession for its whole lifetime.
    There is no process-wide player instance.

    - **Atomic loading**
      Bytes are parsed completely before anything in the session changes.
      A failed parse leaves the previously loaded timeline in place.

    - **Host-driven clock**
      The engine starts no threads and never sleeps. The host calls
      tick(elapsed_us) periodically (see PlaybackClock).

    - **Thread safety via session_lock**
      Transport commands, clock ticks and queries are serialized by a
      threading.RLock. The lock is re-entrant so observer callbacks may
      issue transport commands.
    """

    def __init__(self, observer: Optional[PlaybackObserver] = None,
                 config: Optional[EngineConfig] = None):
        """Initialize MIDI engine

        Args:
            observer: Receives transport and MIDI event notifications
            config: Engine configuration
        """
        self.config = config or EngineConfig()
        self.session = PlaybackSession()
        self.dispatcher = EventDispatcher(observer)
        self.transport = Transport(self.session, self.dispatcher)
        self.session_lock = threading.RLock()

        self.metadata_analyzer = MidiMetadataAnalyzer()
        self._cached_metadata: Optional[Dict] = None

    def load(self, data: bytes):
        """Parse MIDI bytes and install the timeline

        Args:
            data: Standard MIDI File contents

        Raises:
            IllegalTransition: If the session is playing or paused
            LoadError: If the bytes are not a valid MIDI file
        """
        self._check_can_load()
        timeline = parse(data)
        self.load_timeline(timeline)

    def load_timeline(self, timeline: Timeline):
        """Install an already parsed timeline

        Args:
            timeline: Parsed timeline

        Raises:
            IllegalTransition: If the session is playing or paused
        """
        scheduler = EventScheduler(timeline, self.config.default_tempo_us)
        with self.session_lock:
            self.transport.load(timeline, scheduler)
            self._cached_metadata = None
        logger.info("Loaded MIDI timeline: format %d, %d tracks, %d events, %.3fs",
                    timeline.format, len(timeline.tracks), timeline.event_count,
                    scheduler.duration_us / 1e6)

    def _check_can_load(self):
        # Fail before parsing; load_timeline checks again under the lock
        with self.session_lock:
            if self.session.state is not TransportState.STOPPED:
                raise IllegalTransition('load', self.session.state)

    def play(self):
        """Start playback from the beginning, or resume after pause"""
        with self.session_lock:
            self.transport.play()

    def pause(self):
        """Pause playback, keeping the position

        Raises:
            IllegalTransition: If the session is stopped
        """
        with self.session_lock:
            self.transport.pause()

    def stop(self):
        """Stop playback and reset position"""
        with self.session_lock:
            self.transport.stop()

    def tick(self, elapsed_us: int):
        """Advance the playback clock

        Args:
            elapsed_us: Microseconds elapsed since the previous tick
        """
        with self.session_lock:
            self.transport.tick(elapsed_us)

    # Track muting

    def mute_track(self, track_index: int):
        """Stop delivering events of a track (its cursor still advances)"""
        with self.session_lock:
            self.session.muted_tracks.add(track_index)

    def unmute_track(self, track_index: int):
        with self.session_lock:
            self.session.muted_tracks.discard(track_index)

    def toggle_track_mute(self, track_index: int):
        """Mute or unmute specified track

        Args:
            track_index: Track index
        """
        with self.session_lock:
            if track_index in self.session.muted_tracks:
                self.session.muted_tracks.remove(track_index)
            else:
                self.session.muted_tracks.add(track_index)

    @property
    def muted_tracks(self) -> Set[int]:
        with self.session_lock:
            return set(self.session.muted_tracks)

    # Queries

    @property
    def state(self) -> TransportState:
        with self.session_lock:
            return self.session.state

    @property
    def timeline(self) -> Optional[Timeline]:
        with self.session_lock:
            return self.session.timeline

    def is_playing(self) -> bool:
        with self.session_lock:
            return self.session.state is TransportState.PLAYING

    def position_us(self) -> int:
        with self.session_lock:
            return self.session.position_us

    def duration_us(self) -> int:
        """Length of the loaded timeline in microseconds (0 if none)"""
        with self.session_lock:
            return self.session.duration_us

    def remaining_us(self) -> int:
        with self.session_lock:
            return max(0, self.session.duration_us - self.session.position_us)

    def progress(self) -> float:
        """Playback progress from 0.0 to 1.0"""
        with self.session_lock:
            duration = self.session.duration_us
            if duration <= 0:
                return 0.0
            return min(1.0, self.session.position_us / duration)

    def get_metadata(self) -> Dict:
        """Get metadata of the loaded timeline

        Returns:
            Dict: Metadata dictionary with track information, tempo, etc.
        """
        with self.session_lock:
            if self.session.timeline is None:
                return {}
            if self._cached_metadata is None:
                self._cached_metadata = self.metadata_analyzer.analyze(
                    self.session.timeline, self.session.scheduler
                )
            return self._cached_metadata
