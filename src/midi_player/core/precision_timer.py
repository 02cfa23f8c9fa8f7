"""
High-precision playback clock for driving the engine in real time

The engine itself has no notion of time passing; this host-side helper runs
a background thread that measures elapsed time with the performance counter
and forwards it to MidiEngine.tick(). Elapsed time is forwarded in whole
microseconds and the remainder is carried over, so no drift accumulates.
"""

import threading
import time
from typing import Callable, Optional

from ..config import ClockConfig
from .playback_mode import TransportState


class PlaybackClock:
    """High-precision clock for real-time playback

    Uses the performance counter as the authoritative time source. The clock
    thread exits on its own once the engine is stopped (after stop() or at
    the end of the file).
    """

    def __init__(self, engine, config: Optional[ClockConfig] = None,
                 time_source: Callable[[], float] = time.perf_counter):
        """Initialize playback clock

        Args:
            engine: MidiEngine to advance
            config: Clock configuration
            time_source: Monotonic clock returning seconds
        """
        self.engine = engine
        self.config = config or ClockConfig()
        self._time_source = time_source
        self._timer_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._timer_thread is not None and self._timer_thread.is_alive()

    def start(self):
        """Start the clock thread (no-op if already running)"""
        if self.is_running:
            return
        self._stop_event.clear()
        self._timer_thread = threading.Thread(target=self._precision_loop, daemon=True)
        self._timer_thread.start()

    def stop(self):
        """Stop the clock thread. The engine keeps its state."""
        self._stop_event.set()
        if self._timer_thread and self._timer_thread.is_alive():
            self._timer_thread.join(timeout=1.0)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the clock thread exits

        Returns:
            bool: True if the thread has finished
        """
        if self._timer_thread is None:
            return True
        self._timer_thread.join(timeout)
        return not self._timer_thread.is_alive()

    def _precision_loop(self):
        """Forward elapsed time to the engine until it stops"""
        last_time = self._time_source()
        interval = self.config.tick_interval_sec

        while not self._stop_event.is_set():
            state = self.engine.state
            if state is TransportState.STOPPED:
                break

            now = self._time_source()
            if state is TransportState.PAUSED:
                # Time spent paused is not playback time
                last_time = now
            else:
                elapsed_us = int((now - last_time) * 1_000_000)
                if elapsed_us > 0:
                    last_time += elapsed_us / 1_000_000
                    self.engine.tick(elapsed_us)

            self._stop_event.wait(interval)
