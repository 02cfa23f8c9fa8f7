"""MIDI playback engine.

Parses Standard MIDI Files, places their events on the wall clock using the
file's tempo map, and delivers them to an observer under play/pause/stop
transport control.

```python
from midi_player import CallbackObserver, MidiEngine, PlaybackClock, sources

engine = MidiEngine(CallbackObserver(on_midi_event=print))
engine.load(sources.resolve('song.mid'))
engine.play()
PlaybackClock(engine).start()
```
"""

from . import sources
from .config import ClockConfig, EngineConfig, SourceConfig
from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all

__version__ = '1.0.0'

__all__ = ['sources', 'ClockConfig', 'EngineConfig', 'SourceConfig', '__version__'] + _core_all
